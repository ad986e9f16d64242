from enum import Enum
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Context(BaseModel):
    """Immutable per-invocation context handed to every operation."""

    model_config = ConfigDict(frozen=True)

    netplan_dir: Path = Path("/etc/netplan")
    backup_dir: Path = Path("/root/netplan-backups")
    default_config_name: str = "01-dns-config.yaml"
    sysfs_net_dir: Path = Path("/sys/class/net")
    resolv_conf: Path = Path("/etc/resolv.conf")
    validate_timeout: float = 10.0
    apply_timeout: float = 30.0
    verify_domains: List[str] = Field(default_factory=list)
    interactive: bool = False
    is_container: bool = False

    @classmethod
    def from_settings(cls, settings, **overrides) -> "Context":
        data = {
            "netplan_dir": settings.netplan_dir,
            "backup_dir": settings.backup_dir,
            "default_config_name": settings.default_config_name,
            "sysfs_net_dir": settings.sysfs_net_dir,
            "resolv_conf": settings.resolv_conf,
            "validate_timeout": settings.validate_timeout,
            "apply_timeout": settings.apply_timeout,
            "verify_domains": list(settings.verify_domains),
        }
        data.update(overrides)
        return cls(**data)


class DNSProvider(BaseModel):
    key: str
    number: int
    name: str
    description: str = ""
    addresses: List[str] = Field(default_factory=list)


class NetworkInterface(BaseModel):
    name: str
    kind: str = "ethernet"
    state: Optional[str] = None
    is_physical: bool = False


class BackupInfo(BaseModel):
    backup_id: str
    path: str
    size: int
    is_latest: bool = False


class UpdateState(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


class OperationResult(BaseModel):
    state: UpdateState
    config_file: str
    interface: Optional[str] = None
    provider: Optional[str] = None
    nameservers: List[str] = Field(default_factory=list)
    backup_id: Optional[str] = None
    message: str = ""


class DNSApplyRequest(BaseModel):
    provider: str
    custom_addresses: Optional[List[str]] = None
    interface: Optional[str] = None
    config_file: Optional[str] = None
    verify: bool = False


class RestoreRequest(BaseModel):
    backup_id: str = "latest"
    config_file: Optional[str] = None
