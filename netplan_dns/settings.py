from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="NETPLAN_DNS_", env_file=".env", extra="ignore")

    netplan_dir: str = Field(default="/etc/netplan")
    backup_dir: str = Field(default="/root/netplan-backups")
    default_config_name: str = Field(default="01-dns-config.yaml")
    sysfs_net_dir: str = Field(default="/sys/class/net")
    resolv_conf: str = Field(default="/etc/resolv.conf")

    validate_timeout: float = 10.0
    apply_timeout: float = 30.0
    verify_domains: List[str] = Field(default=["google.com", "cloudflare.com", "ubuntu.com"])

    # logging
    log_level: str = "INFO"
    log_file: Optional[str] = None
    log_console: bool = True

    api_host: str = "0.0.0.0"
    api_port: int = 8000


settings = Settings()
