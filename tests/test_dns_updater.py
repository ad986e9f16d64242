import pytest
import yaml

from netplan_dns.core.errors import (
    AmbiguousConfiguration, ApplyFailed, BackupNotFound, InvalidAddress, ValidationFailed,
)
from netplan_dns.models.network_models import UpdateState

from conftest import DHCP_CONFIG


def test_configure_existing_document(updater, commands, config_file):
    result = updater.configure_dns("cloudflare")

    assert result.state == UpdateState.COMMITTED
    assert updater.state == UpdateState.COMMITTED
    assert result.interface == "eth0"
    assert result.nameservers == ["1.1.1.1", "1.0.0.1"]
    assert commands.calls == ["validate", "apply"]

    document = yaml.safe_load(config_file.read_text())
    assert document == {"network": {"version": 2, "renderer": "networkd", "ethernets": {"eth0": {
        "dhcp4": True,
        "nameservers": {"addresses": ["1.1.1.1", "1.0.0.1"]},
        "dhcp4-overrides": {"use-dns": False},
    }}}}
    assert updater.backups.path_for(result.backup_id).read_text() == DHCP_CONFIG
    assert oct(config_file.stat().st_mode & 0o777) == oct(0o600)


def test_candidate_is_validated_before_it_is_written(updater, commands, config_file):
    updater.configure_dns("google")

    candidate, target = commands.validated[0]
    assert target == config_file
    assert "8.8.8.8" in candidate
    assert config_file.read_text() == candidate


def test_configure_empty_directory_creates_document(updater, ctx):
    result = updater.configure_dns("quad9")

    created = ctx.netplan_dir / "01-dns-config.yaml"
    assert result.config_file == str(created)
    assert result.backup_id is None
    document = yaml.safe_load(created.read_text())
    assert document["network"]["version"] == 2
    assert document["network"]["ethernets"]["eth0"]["nameservers"]["addresses"] == [
        "9.9.9.9", "149.112.112.112",
    ]


def test_reapplying_provider_is_byte_identical(updater, config_file):
    updater.configure_dns("cloudflare")
    first = config_file.read_bytes()

    updater.configure_dns("cloudflare")

    assert config_file.read_bytes() == first


def test_validation_failure_leaves_document_untouched(updater, commands, config_file):
    commands.fail_validate = True

    with pytest.raises(ValidationFailed):
        updater.configure_dns("cloudflare")

    assert config_file.read_text() == DHCP_CONFIG
    assert updater.state == UpdateState.ROLLED_BACK
    assert "apply" not in commands.calls
    assert len(updater.list_backups()) == 1


def test_apply_failure_rolls_back(updater, commands, config_file):
    commands.fail_apply = 1

    with pytest.raises(ApplyFailed) as exc:
        updater.configure_dns("cloudflare")

    assert exc.value.rolled_back is True
    assert config_file.read_text() == DHCP_CONFIG
    assert commands.calls == ["validate", "apply", "apply"]
    assert updater.state == UpdateState.ROLLED_BACK


def test_apply_failure_without_previous_document_removes_it(updater, commands, ctx):
    commands.fail_apply = 1

    with pytest.raises(ApplyFailed) as exc:
        updater.configure_dns("cloudflare")

    assert exc.value.rolled_back is True
    assert list(ctx.netplan_dir.iterdir()) == []


def test_failed_rollback_is_reported(updater, commands, config_file):
    commands.fail_apply = -1

    with pytest.raises(ApplyFailed) as exc:
        updater.configure_dns("cloudflare")

    assert exc.value.rolled_back is False


def test_invalid_custom_address_changes_nothing(updater, commands, config_file):
    with pytest.raises(InvalidAddress):
        updater.configure_dns("custom", ["8.8.8.256"])

    assert commands.calls == []
    assert updater.list_backups() == []


def test_ambiguous_configuration(updater, ctx, config_file):
    (ctx.netplan_dir / "99-extra.yaml").write_text("network: {version: 2}\n")

    with pytest.raises(AmbiguousConfiguration):
        updater.configure_dns("cloudflare")

    change = updater.prepare("cloudflare", config_file="99-extra.yaml")
    assert change.config_file.name == "99-extra.yaml"


def test_restore_round_trip(updater, config_file):
    original = config_file.read_bytes()
    updater.configure_dns("adguard")
    assert config_file.read_bytes() != original

    result = updater.restore()

    assert result.state == UpdateState.COMMITTED
    assert config_file.read_bytes() == original


def test_restore_specific_backup(updater, config_file):
    first = updater.configure_dns("adguard").backup_id
    updater.configure_dns("opendns")

    updater.restore(first)

    assert config_file.read_text() == DHCP_CONFIG


def test_restore_unknown_backup(updater, config_file):
    with pytest.raises(BackupNotFound):
        updater.restore("20000101-000000-000000")

    assert config_file.read_text() == DHCP_CONFIG


def test_restore_apply_failure_rolls_back(updater, commands, config_file):
    updater.configure_dns("nextdns")
    configured = config_file.read_bytes()
    commands.fail_apply = 1

    with pytest.raises(ApplyFailed) as exc:
        updater.restore("latest")

    assert exc.value.rolled_back is True
    assert config_file.read_bytes() == configured


def test_show_current(updater, ctx, config_file):
    ctx.resolv_conf.write_text("# generated\nnameserver 127.0.0.53\noptions edns0\n")
    updater.configure_dns("cloudflare")

    current = updater.show_current()

    assert current["config_file"] == str(config_file)
    assert current["interfaces"] == {"eth0": ["1.1.1.1", "1.0.0.1"]}
    assert current["resolver_nameservers"] == ["127.0.0.53"]
    assert current["netplan_files"] == ["50-cloud-init.yaml"]


def test_show_current_with_several_documents(updater, ctx, config_file):
    (ctx.netplan_dir / "99-extra.yaml").write_text("network: {version: 2}\n")

    current = updater.show_current()

    assert current["config_file"] is None
    assert current["netplan_files"] == ["50-cloud-init.yaml", "99-extra.yaml"]


def test_failed_backup_stops_before_validation(updater, commands, config_file, monkeypatch):
    def unwritable(source):
        raise PermissionError(13, "Permission denied", str(updater.backups.backup_dir))

    monkeypatch.setattr(updater.backups, "create", unwritable)

    with pytest.raises(OSError):
        updater.configure_dns("cloudflare")

    assert commands.calls == []
    assert updater.state == UpdateState.IDLE
    assert config_file.read_text() == DHCP_CONFIG


def test_show_current_lists_physical_interfaces_and_resolver_status(updater, commands, config_file):
    commands.status = "Global\n  DNS Servers: 1.1.1.1\n"

    current = updater.show_current()

    assert [i["name"] for i in current["candidate_interfaces"]] == ["eth0"]
    assert current["candidate_interfaces"][0]["kind"] == "ethernet"
    assert current["resolver_status"] == "Global\n  DNS Servers: 1.1.1.1\n"
