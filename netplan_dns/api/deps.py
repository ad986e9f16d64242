from functools import lru_cache

from fastapi import HTTPException

from ..core.dns_updater import DNSUpdater
from ..core.errors import ApplyFailed, DNSConfigError
from ..core.system import detect_container_environment
from ..models.network_models import Context
from ..settings import settings


@lru_cache()
def get_updater() -> DNSUpdater:
    """Shared updater for the API; requests are never interactive."""
    ctx = Context.from_settings(settings, interactive=False,
                                is_container=detect_container_environment())
    return DNSUpdater(ctx)


def http_error(e: DNSConfigError) -> HTTPException:
    detail = {"error": e.category, "detail": str(e)}
    if isinstance(e, ApplyFailed):
        detail["rolled_back"] = e.rolled_back
    return HTTPException(status_code=e.status_code, detail=detail)
