from typing import List

from fastapi import APIRouter, Depends

from ..core.dns_updater import DNSUpdater
from ..core.errors import DNSConfigError
from ..core.providers import CUSTOM, CUSTOM_NUMBER, PROVIDERS
from ..models.network_models import BackupInfo, DNSApplyRequest, OperationResult, RestoreRequest
from .deps import get_updater, http_error

router = APIRouter()


@router.get("/dns/providers", tags=["DNS Configuration"])
async def get_providers():
    """Available DNS provider presets."""
    return {
        "providers": [p.model_dump() for p in PROVIDERS],
        "custom": {"key": CUSTOM, "number": CUSTOM_NUMBER},
    }


@router.get("/dns/current", tags=["DNS Configuration"])
async def get_current_dns(updater: DNSUpdater = Depends(get_updater)):
    """Nameservers from the netplan document and the resolver."""
    try:
        return updater.show_current()
    except DNSConfigError as e:
        raise http_error(e)


@router.post("/dns/apply", response_model=OperationResult, tags=["DNS Configuration"])
def apply_dns(request: DNSApplyRequest, updater: DNSUpdater = Depends(get_updater)):
    # blocking: runs netplan generate/apply, so FastAPI puts it on the threadpool
    try:
        return updater.configure_dns(
            request.provider,
            custom_addresses=request.custom_addresses,
            interface=request.interface,
            config_file=request.config_file,
            verify=request.verify,
        )
    except DNSConfigError as e:
        raise http_error(e)


@router.get("/dns/backups", response_model=List[BackupInfo], tags=["Backups"])
async def get_backups(updater: DNSUpdater = Depends(get_updater)):
    """Stored netplan backups, newest first."""
    return updater.list_backups()


@router.post("/dns/restore", response_model=OperationResult, tags=["Backups"])
def restore_backup(request: RestoreRequest, updater: DNSUpdater = Depends(get_updater)):
    try:
        return updater.restore(request.backup_id, config_file=request.config_file)
    except DNSConfigError as e:
        raise http_error(e)
