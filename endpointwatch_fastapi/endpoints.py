"""Endpoint /health/endpoints — JSON with endpoint liveness."""

from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from endpointwatch_fastapi.lifespan import get_watch

endpoints_router = APIRouter()


@endpoints_router.get("/health/endpoints")
async def health_endpoints(request: Request, details: bool = False) -> JSONResponse:
    """Return JSON with the liveness of every monitored endpoint.

    Response format::

        {
            "status": "degraded",
            "online": 1,
            "total": 2,
            "endpoints": {
                "203.0.113.7@tcp": true,
                "ext1-fra1.example.net@ws": false
            }
        }

    With ``?details=true`` each endpoint maps to its full state instead of a
    boolean. The watcher itself is healthy while it runs, so the status code
    is 200 even when endpoints are down; 503 means no watcher is attached.
    """
    watch = get_watch(request)
    if watch is None:
        return JSONResponse(
            content={"status": "unknown", "online": 0, "total": 0, "endpoints": {}},
            status_code=503,
        )

    health = watch.health()
    online = sum(1 for up in health.values() if up)
    status = "healthy" if health and online == len(health) else "degraded"

    endpoints: dict[str, object]
    if details:
        endpoints = {key: st.to_dict() for key, st in watch.health_details().items()}
    else:
        endpoints = dict(health)

    return JSONResponse(
        content={"status": status, "online": online, "total": len(health), "endpoints": endpoints},
        status_code=200,
    )
