import logging
import subprocess
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from pydantic import BaseModel, ConfigDict

from ..models.network_models import (
    BackupInfo, Context, DNSProvider, NetworkInterface, OperationResult, UpdateState,
)
from . import netplan_config
from .netplan_config import Chooser
from .backups import BackupStore, atomic_write
from .errors import AmbiguousConfiguration, ApplyFailed, DNSConfigError, ValidationFailed
from .interfaces import InterfaceDetector
from .providers import resolve_provider
from .system import (
    NetplanCommandError, NetplanCommands, read_resolver_nameservers, verify_resolution,
)

logger = logging.getLogger(__name__)


class DNSChange(BaseModel):
    """A fully resolved, not yet written, nameserver change."""

    model_config = ConfigDict(frozen=True)

    config_file: Path
    existed: bool
    interface: NetworkInterface
    provider: DNSProvider
    candidate: str


class DNSUpdater:
    """Backup -> Validate -> Commit pipeline around a single netplan document."""

    def __init__(self, ctx: Context, commands: Optional[NetplanCommands] = None,
                 detector: Optional[InterfaceDetector] = None,
                 backups: Optional[BackupStore] = None,
                 chooser: Optional[Chooser] = None):
        self.ctx = ctx
        self.commands = commands or NetplanCommands(ctx)
        self.detector = detector or InterfaceDetector(ctx)
        self.backups = backups or BackupStore(ctx.backup_dir)
        self.chooser = chooser
        self.state = UpdateState.IDLE

    def locate_configuration(self, selection: Optional[str] = None):
        return netplan_config.locate_config(self.ctx, selection, self.chooser)

    def load(self, config_file: Path, existed: bool) -> Dict[str, Any]:
        if not existed:
            return netplan_config.new_document()
        return netplan_config.load_document(config_file)

    def prepare(self, provider: str, custom_addresses: Optional[Iterable[str]] = None,
                interface: Optional[str] = None, config_file: Optional[str] = None) -> DNSChange:
        """Resolve everything needed for a change without touching any file."""
        config_path, existed = self.locate_configuration(config_file)
        dns_provider = resolve_provider(provider, custom_addresses)
        target = self.detector.detect(interface, self.chooser)

        document = self.load(config_path, existed)
        updated = netplan_config.apply_nameservers(
            document, target.name, dns_provider.addresses, target.kind
        )
        return DNSChange(
            config_file=config_path,
            existed=existed,
            interface=target,
            provider=dns_provider,
            candidate=netplan_config.dump_document(updated),
        )

    def _rollback(self, config_file: Path, existed: bool) -> bool:
        """Put the last backed-up document back and apply it again."""
        backup_id = self.backups.latest_id()
        try:
            if existed and backup_id:
                self.backups.restore_to(backup_id, config_file)
            elif not existed and config_file.exists():
                config_file.unlink()
            self.commands.apply()
        except (DNSConfigError, NetplanCommandError, OSError) as e:
            logger.critical("Rollback failed, network configuration is in an indeterminate state: %s", e)
            return False
        logger.info("Previous configuration restored")
        return True

    def commit(self, change: DNSChange, verify: bool = False) -> OperationResult:
        self.state = UpdateState.IDLE
        backup_id = self.backups.create(change.config_file)
        self.state = UpdateState.VALIDATING

        try:
            self.commands.validate(change.candidate, change.config_file)
        except ValidationFailed:
            self.state = UpdateState.ROLLED_BACK
            logger.error("Configuration failed validation, live document left unchanged")
            raise

        atomic_write(change.config_file, change.candidate.encode())
        try:
            self.commands.apply()
        except NetplanCommandError as e:
            logger.error("Failed to apply configuration: %s", e)
            rolled_back = self._rollback(change.config_file, change.existed)
            self.state = UpdateState.ROLLED_BACK
            raise ApplyFailed(f"Failed to apply configuration: {e}",
                              rolled_back=rolled_back, backup_id=backup_id) from e

        self.state = UpdateState.COMMITTED
        logger.info("DNS provider %s (%s) configured on %s", change.provider.name,
                    ", ".join(change.provider.addresses), change.interface.name)
        if verify:
            verify_resolution(self.ctx.verify_domains)

        return OperationResult(
            state=self.state,
            config_file=str(change.config_file),
            interface=change.interface.name,
            provider=change.provider.name,
            nameservers=change.provider.addresses,
            backup_id=backup_id,
            message="DNS configuration completed successfully",
        )

    def configure_dns(self, provider: str, custom_addresses: Optional[Iterable[str]] = None,
                      interface: Optional[str] = None, config_file: Optional[str] = None,
                      verify: bool = False) -> OperationResult:
        change = self.prepare(provider, custom_addresses, interface, config_file)
        return self.commit(change, verify=verify)

    def restore(self, backup_id: Optional[str] = None,
                config_file: Optional[str] = None) -> OperationResult:
        """Copy a backup over the live document and apply it."""
        source = self.backups.resolve(backup_id)
        restored_id = self.backups.id_of(source)
        config_path, existed = self.locate_configuration(config_file)

        self.state = UpdateState.IDLE
        pre_restore_id = self.backups.create(config_path)
        self.state = UpdateState.VALIDATING

        self.backups.restore_to(restored_id, config_path)
        try:
            self.commands.apply()
        except NetplanCommandError as e:
            logger.error("Failed to apply restored configuration: %s", e)
            rolled_back = self._rollback(config_path, existed)
            self.state = UpdateState.ROLLED_BACK
            raise ApplyFailed(f"Failed to apply restored configuration: {e}",
                              rolled_back=rolled_back, backup_id=pre_restore_id) from e

        self.state = UpdateState.COMMITTED
        return OperationResult(
            state=self.state,
            config_file=str(config_path),
            backup_id=pre_restore_id,
            message=f"Backup {restored_id} restored",
        )

    def list_backups(self) -> List[BackupInfo]:
        return self.backups.list()

    def show_current(self, config_file: Optional[str] = None) -> Dict[str, Any]:
        """Current DNS state as seen by netplan and the resolver."""
        files = netplan_config.find_config_files(self.ctx.netplan_dir)
        current: Dict[str, Any] = {
            "config_file": None,
            "content": None,
            "interfaces": {},
            "netplan_files": [f.name for f in files],
            "resolver_nameservers": read_resolver_nameservers(self.ctx.resolv_conf),
            "resolver_status": self.commands.resolver_status(),
            "candidate_interfaces": [],
        }
        try:
            current["candidate_interfaces"] = [i.model_dump() for i in self.detector.candidates()]
        except (subprocess.CalledProcessError, OSError) as e:
            logger.warning("Could not list network interfaces: %s", e)

        try:
            config_path, existed = netplan_config.locate_config(self.ctx, config_file)
        except AmbiguousConfiguration as e:
            logger.info("%s", e)
            return current

        current["config_file"] = str(config_path)
        if existed:
            content = config_path.read_text()
            current["content"] = content
            current["interfaces"] = netplan_config.interface_nameservers(
                netplan_config.parse_document(content)
            )
        return current
