from pathlib import Path

import pytest

from netplan_dns.core.backups import BackupStore
from netplan_dns.core.dns_updater import DNSUpdater
from netplan_dns.core.errors import ValidationFailed
from netplan_dns.core.interfaces import InterfaceDetector
from netplan_dns.core.system import NetplanCommandError
from netplan_dns.models.network_models import Context

DHCP_CONFIG = """\
network:
  version: 2
  renderer: networkd
  ethernets:
    eth0:
      dhcp4: true
"""


def link(name, *flags, operstate="UP", link_type="ether"):
    return {"ifname": name, "flags": list(flags), "operstate": operstate, "link_type": link_type}


DEFAULT_LINKS = [
    link("lo", "LOOPBACK", "UP", operstate="UNKNOWN", link_type="loopback"),
    link("eth0", "BROADCAST", "MULTICAST", "UP"),
    link("docker0", "BROADCAST", "MULTICAST", "UP"),
]


class FakeCommands:
    """Stands in for the netplan binary and records what was run."""

    def __init__(self, fail_validate=False, fail_apply=0):
        self.fail_validate = fail_validate
        # number of apply calls that fail; -1 means every call
        self.fail_apply = fail_apply
        self.calls = []
        self.validated = []
        self.status = None

    def validate(self, candidate, target):
        self.calls.append("validate")
        self.validated.append((candidate, Path(target)))
        if self.fail_validate:
            raise ValidationFailed("Configuration validation failed: simulated")

    def apply(self):
        self.calls.append("apply")
        if self.fail_apply == -1:
            raise NetplanCommandError("'netplan apply' exited with 1: simulated")
        if self.fail_apply > 0:
            self.fail_apply -= 1
            raise NetplanCommandError("'netplan apply' exited with 1: simulated")

    def resolver_status(self):
        return self.status


@pytest.fixture
def ctx(tmp_path):
    netplan_dir = tmp_path / "netplan"
    netplan_dir.mkdir()
    return Context(
        netplan_dir=netplan_dir,
        backup_dir=tmp_path / "backups",
        sysfs_net_dir=tmp_path / "sys",
        resolv_conf=tmp_path / "resolv.conf",
        verify_domains=[],
    )


@pytest.fixture
def commands():
    return FakeCommands()


@pytest.fixture
def links():
    return list(DEFAULT_LINKS)


@pytest.fixture
def updater(ctx, commands, links):
    return DNSUpdater(
        ctx,
        commands=commands,
        detector=InterfaceDetector(ctx, lister=lambda: links),
        backups=BackupStore(ctx.backup_dir),
    )


@pytest.fixture
def config_file(ctx):
    path = ctx.netplan_dir / "50-cloud-init.yaml"
    path.write_text(DHCP_CONFIG)
    return path
