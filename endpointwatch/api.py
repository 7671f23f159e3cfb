"""Public API: EndpointWatch, the process-level entry point."""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Callable, Iterable
from datetime import datetime

from prometheus_client import CollectorRegistry

from endpointwatch.config import WatchConfig
from endpointwatch.context import WatchContext, utc_now
from endpointwatch.discovery import DiscoverySource
from endpointwatch.endpoint import EndpointRecord
from endpointwatch.endpoint_status import EndpointStatus
from endpointwatch.metrics import MetricsExporter
from endpointwatch.monitor import EndpointMonitor
from endpointwatch.reconciler import Reconciler, ReconcileResult
from endpointwatch.registry import Registry
from endpointwatch.reporter import StatusReporter
from endpointwatch.scheduler import Scheduler
from endpointwatch.session import SessionFactory
from endpointwatch.sessions import default_session_factory
from endpointwatch.status import StatusCode
from endpointwatch.store import PersistenceStore
from endpointwatch.tasks import BackgroundTasks

logger = logging.getLogger("endpointwatch")


class EndpointWatch:
    """Main object: watches endpoint liveness and keeps the store up to date.

    Example:

        watch = EndpointWatch(
            MySQLStore("mysql://watch:secret@db:3306/status"),
            discovery=HTTPDiscoverySource("https://directory.example.net/list"),
        )
        await watch.start()
        # ...
        await watch.stop()
    """

    def __init__(
        self,
        store: PersistenceStore,
        *,
        discovery: DiscoverySource | None = None,
        session_factory: SessionFactory | None = None,
        config: WatchConfig | None = None,
        registry: CollectorRegistry | None = None,
        rng: random.Random | None = None,
        clock: Callable[[], datetime] | None = None,
        log: logging.Logger | None = None,
    ) -> None:
        self._config = config or WatchConfig()
        self._config.validate()
        self._store = store
        self._log = log or logger

        metrics = MetricsExporter(registry=registry)
        tasks = BackgroundTasks(self._log)
        self._ctx = WatchContext(
            config=self._config,
            registry=Registry(),
            reporter=StatusReporter(store, tasks, metrics, log=self._log),
            session_factory=session_factory or default_session_factory(self._config),
            metrics=metrics,
            tasks=tasks,
            rng=rng or random.Random(),
            clock=clock or utc_now,
            log=self._log,
        )
        self._reconciler = Reconciler(self._ctx)
        self._scheduler = Scheduler(self._ctx, self._reconciler, discovery)

    @property
    def context(self) -> WatchContext:
        return self._ctx

    @property
    def scheduler(self) -> Scheduler:
        return self._scheduler

    @property
    def metrics_registry(self) -> CollectorRegistry:
        """Prometheus registry the watcher's metrics are registered in."""
        return self._ctx.metrics.registry

    async def start(self) -> None:
        """Seed monitors from the store and start the tick loop.

        A store failure here is fatal and propagates to the caller.
        """
        stored = await self._store.load_all()
        self._log.info("Got %d stored endpoints", len(stored))
        self._reconciler.reconcile([row.record for row in stored], self._ctx.clock())
        await self._scheduler.start()

    async def stop(self) -> None:
        """Disconnect every monitor, flush pending writes and reset stored statuses."""
        await self._scheduler.stop()

        monitors = self._ctx.registry.snapshot()
        for monitor in monitors:
            self._log.info("Disconnecting monitor %s", monitor.record.address)
            monitor.begin_shutdown()
        await asyncio.gather(*(m.wait_disconnected() for m in monitors))
        self._log.info("All monitors disconnected")

        await self._ctx.tasks.drain()
        try:
            await self._store.reset_all_statuses(StatusCode.INVALID)
        except Exception as e:
            self._log.error("Failed to reset endpoint statuses: %s", e)

    def reconcile(self, records: Iterable[EndpointRecord]) -> ReconcileResult:
        """Merge an externally obtained endpoint batch into the registry."""
        return self._reconciler.reconcile(records, self._ctx.clock())

    def monitors(self) -> list[EndpointMonitor]:
        return self._ctx.registry.snapshot()

    def health(self) -> dict[str, bool]:
        """Return ``{identity: online}`` for every monitored endpoint."""
        return {
            str(m.identity): m.state.last_reported_status is StatusCode.OK
            for m in self._ctx.registry.snapshot()
        }

    def health_details(self) -> dict[str, EndpointStatus]:
        """Return detailed state of every endpoint, keyed by ``host@transport``."""
        result: dict[str, EndpointStatus] = {}
        for monitor in self._ctx.registry.snapshot():
            state = monitor.state
            status = state.last_reported_status
            healthy = None if status in (None, StatusCode.PENDING) else status is StatusCode.OK
            result[str(monitor.identity)] = EndpointStatus(
                healthy=healthy,
                status=str(status) if status is not None else "unknown",
                detail=state.last_detail,
                phase=str(state.phase),
                host=state.record.host,
                port=state.record.port,
                transport=str(state.record.transport),
                locality=state.record.locality,
                reconnect_attempts=state.reconnect_attempts,
                last_seen_at=state.last_seen_at,
                last_success_at=state.last_success_at,
                status_since=state.status_since,
                next_connect_at=state.next_connect_at,
            )
        return result
