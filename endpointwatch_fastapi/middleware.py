"""ASGI-middleware для экспорта Prometheus-метрик на /metrics."""

from __future__ import annotations

from prometheus_client import CONTENT_TYPE_LATEST, REGISTRY, CollectorRegistry, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from endpointwatch_fastapi.lifespan import get_watch


class EndpointWatchMiddleware(BaseHTTPMiddleware):
    """Middleware для FastAPI: обслуживает ``/metrics`` endpoint.

    Если ``registry`` не указан, метрики берутся из registry запущенного
    ``EndpointWatch`` (см. ``endpointwatch_lifespan``), а без него —
    из глобального ``REGISTRY``.

    Пример::

        app = FastAPI(lifespan=endpointwatch_lifespan(store, registry=my_registry))
        app.add_middleware(EndpointWatchMiddleware)  # отдаёт my_registry
    """

    def __init__(
        self,
        app: ASGIApp,
        registry: CollectorRegistry | None = None,
        metrics_path: str = "/metrics",
    ) -> None:
        super().__init__(app)
        self._registry = registry
        self._metrics_path = metrics_path

    def _resolve_registry(self, request: Request) -> CollectorRegistry:
        if self._registry is not None:
            return self._registry
        watch = get_watch(request)
        if watch is not None:
            return watch.metrics_registry
        return REGISTRY

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        """Отдаёт метрики на ``metrics_path``, остальное передаёт дальше."""
        if request.url.path != self._metrics_path:
            return await call_next(request)
        registry = self._resolve_registry(request)
        return Response(content=generate_latest(registry), media_type=CONTENT_TYPE_LATEST)
