"""endpointwatch-fastapi — интеграция endpointwatch с FastAPI."""

from endpointwatch_fastapi.endpoints import endpoints_router
from endpointwatch_fastapi.lifespan import endpointwatch_lifespan, get_watch
from endpointwatch_fastapi.middleware import EndpointWatchMiddleware

__all__ = [
    "EndpointWatchMiddleware",
    "endpoints_router",
    "endpointwatch_lifespan",
    "get_watch",
]
