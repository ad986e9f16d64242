from fastapi import FastAPI

from . import __version__
from .api import dns_routes, interface_routes, system_routes
from .logutil import init_logging
from .settings import settings

app = FastAPI(
    title="Netplan DNS Configuration API",
    version=__version__,
    description="Manage nameservers of netplan-configured hosts with backup and rollback",
    openapi_tags=[
        {
            "name": "System Info",
            "description": "Execution environment and netplan documents",
        },
        {
            "name": "Network Interfaces",
            "description": "Physical interface detection",
        },
        {
            "name": "DNS Configuration",
            "description": "DNS providers and nameserver updates",
        },
        {
            "name": "Backups",
            "description": "Netplan backups and restore",
        },
    ]
)

app.include_router(system_routes.router)
app.include_router(interface_routes.router)
app.include_router(dns_routes.router)


def serve():
    import uvicorn

    init_logging(settings)
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)


if __name__ == "__main__":
    serve()
