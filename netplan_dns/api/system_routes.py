from fastapi import APIRouter, Depends

from .. import __version__
from ..core import netplan_config
from ..core.dns_updater import DNSUpdater
from ..core.errors import ValidationFailed
from ..core.system import tool_available
from .deps import get_updater

router = APIRouter()


@router.get("/", tags=["System Info"])
async def root():
    return {"message": "Netplan DNS Configuration API", "version": __version__}


@router.get("/container/status", tags=["System Info"])
async def get_container_status(updater: DNSUpdater = Depends(get_updater)):
    """Execution environment and available tooling."""
    return {
        "is_container": updater.ctx.is_container,
        "environment": "Docker Container" if updater.ctx.is_container else "Host System",
        "available_tools": {
            "netplan": tool_available("netplan"),
            "ip": tool_available("ip"),
            "resolvectl": tool_available("resolvectl"),
        },
    }


@router.get("/network/netplan/files", tags=["System Info"])
async def get_netplan_files(updater: DNSUpdater = Depends(get_updater)):
    """Netplan documents and the interfaces each one defines."""
    netplan_dir = updater.ctx.netplan_dir
    files_info = []

    for config_file in netplan_config.find_config_files(netplan_dir):
        stat = config_file.stat()
        file_info = {
            "filename": config_file.name,
            "path": str(config_file),
            "interfaces": [],
            "size": stat.st_size,
            "modified": stat.st_mtime,
        }
        try:
            document = netplan_config.load_document(config_file)
            file_info["interfaces"] = list(netplan_config.interface_nameservers(document))
        except (ValidationFailed, OSError) as e:
            file_info["error"] = str(e)
        files_info.append(file_info)

    return {
        "netplan_directory": str(netplan_dir),
        "total_files": len(files_info),
        "files": files_info,
    }
