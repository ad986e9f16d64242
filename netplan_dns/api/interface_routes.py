import subprocess
from typing import List

from fastapi import APIRouter, Depends, HTTPException

from ..core.dns_updater import DNSUpdater
from ..core.errors import DNSConfigError
from ..models.network_models import NetworkInterface
from .deps import get_updater, http_error

router = APIRouter()


@router.get("/network/interfaces", response_model=List[NetworkInterface], tags=["Network Interfaces"])
async def get_interfaces(updater: DNSUpdater = Depends(get_updater)):
    """All non-loopback interfaces, flagged physical or virtual."""
    try:
        return updater.detector.interfaces()
    except (subprocess.CalledProcessError, FileNotFoundError) as e:
        raise HTTPException(status_code=500, detail=f"Could not list interfaces: {e}")


@router.get("/network/interfaces/target", response_model=NetworkInterface, tags=["Network Interfaces"])
async def get_target_interface(updater: DNSUpdater = Depends(get_updater)):
    """Interface a DNS change would be applied to without an explicit selection."""
    try:
        return updater.detector.detect()
    except DNSConfigError as e:
        raise http_error(e)
    except (subprocess.CalledProcessError, FileNotFoundError) as e:
        raise HTTPException(status_code=500, detail=f"Could not list interfaces: {e}")
