import logging
import os
import shutil
import socket
import subprocess
import tempfile
from pathlib import Path
from typing import Dict, List, Optional

from ..models.network_models import Context
from .errors import ValidationFailed

logger = logging.getLogger(__name__)


class NetplanCommandError(Exception):
    """A netplan invocation failed, timed out or was not found."""


def detect_container_environment() -> bool:
    """Whether we run inside a container, where netplan apply cannot reach systemd."""
    if os.path.exists("/.dockerenv"):
        return True

    if os.environ.get("container") or os.environ.get("DOCKER_CONTAINER"):
        return True

    try:
        with open("/proc/1/cgroup", "r") as f:
            content = f.read()
            if "docker" in content or "containerd" in content:
                return True
    except OSError:
        pass

    return False


def read_resolver_nameservers(resolv_conf: Path) -> List[str]:
    """Nameserver lines of resolv.conf."""
    dns_servers = []
    try:
        with open(resolv_conf, "r") as f:
            for line in f:
                parts = line.split()
                if len(parts) >= 2 and parts[0] == "nameserver":
                    dns_servers.append(parts[1])
    except OSError:
        pass
    return dns_servers


def tool_available(name: str) -> bool:
    return shutil.which(name) is not None


def verify_resolution(domains: List[str], timeout: float = 5.0) -> Dict[str, bool]:
    """Try to resolve each domain; failures are only reported."""
    results = {}
    previous = socket.getdefaulttimeout()
    socket.setdefaulttimeout(timeout)
    try:
        for domain in domains:
            try:
                socket.getaddrinfo(domain, None)
                results[domain] = True
                logger.info("DNS resolution test passed: %s", domain)
            except OSError:
                results[domain] = False
                logger.warning("DNS resolution test failed: %s", domain)
    finally:
        socket.setdefaulttimeout(previous)
    return results


class NetplanCommands:
    """Thin wrapper over the netplan binary."""

    def __init__(self, ctx: Context):
        self.ctx = ctx

    def _run(self, args: List[str], timeout: float) -> subprocess.CompletedProcess:
        logger.debug("Running: %s", " ".join(args))
        try:
            return subprocess.run(args, capture_output=True, text=True, check=True, timeout=timeout)
        except subprocess.TimeoutExpired as e:
            raise NetplanCommandError(f"'{' '.join(args)}' timed out after {timeout:g}s") from e
        except subprocess.CalledProcessError as e:
            detail = (e.stderr or e.stdout or "").strip()
            raise NetplanCommandError(f"'{' '.join(args)}' exited with {e.returncode}: {detail}") from e
        except FileNotFoundError as e:
            raise NetplanCommandError(f"{args[0]} is not installed") from e

    def validate(self, candidate: str, target: Path) -> None:
        """Dry-run ``candidate`` as ``target`` next to the other live documents.

        The documents are staged under a temporary root and rendered with
        ``netplan generate --root-dir`` so the live tree is never touched.
        """
        with tempfile.TemporaryDirectory(prefix="netplan-dns-") as root:
            staged = Path(root) / "etc" / "netplan"
            staged.mkdir(parents=True)
            if self.ctx.netplan_dir.is_dir():
                for config_file in self.ctx.netplan_dir.iterdir():
                    if config_file.suffix in (".yaml", ".yml") and config_file.name != target.name:
                        shutil.copyfile(config_file, staged / config_file.name)
            (staged / target.name).write_text(candidate)

            try:
                self._run(["netplan", "generate", "--root-dir", root], self.ctx.validate_timeout)
            except NetplanCommandError as e:
                raise ValidationFailed(f"Configuration validation failed: {e}") from e
        logger.info("Configuration validation passed")

    def apply(self) -> None:
        if self.ctx.is_container:
            # systemd is usually unavailable in containers, only render the backend files
            self._run(["netplan", "generate"], self.ctx.apply_timeout)
            logger.info("netplan generate executed (container mode)")
        else:
            self._run(["netplan", "apply"], self.ctx.apply_timeout)
            logger.info("Configuration applied successfully")

    def resolver_status(self) -> Optional[str]:
        """systemd-resolved status output, if the tooling is installed."""
        for args in (["resolvectl", "status"], ["systemd-resolve", "--status"]):
            if not tool_available(args[0]):
                continue
            try:
                return self._run(args, self.ctx.validate_timeout).stdout
            except NetplanCommandError as e:
                logger.warning("Could not query resolver status: %s", e)
                return None
        return None
