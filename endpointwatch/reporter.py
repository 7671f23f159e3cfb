"""StatusReporter: deduplicates status notifications and persists transitions."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime
from functools import partial
from typing import TYPE_CHECKING, Any

from endpointwatch.endpoint import EndpointIdentity, EndpointRecord
from endpointwatch.metrics import MetricsExporter
from endpointwatch.status import StatusCode
from endpointwatch.store import PersistenceStore
from endpointwatch.tasks import BackgroundTasks

if TYPE_CHECKING:
    from endpointwatch.monitor import EndpointMonitor

logger = logging.getLogger("endpointwatch.reporter")
status_logger = logging.getLogger("endpointwatch.status")


class StatusReporter:
    """Receive status notifications from monitors and write changes to the store.

    The in-memory status is authoritative: it is updated before the write is
    scheduled, and a failed write is only logged. The next differing status
    writes again.

    Writes for one identity run in the order they were scheduled, so an
    address change always lands before a later status of the new address.
    """

    def __init__(
        self,
        store: PersistenceStore,
        tasks: BackgroundTasks,
        metrics: MetricsExporter | None = None,
        log: logging.Logger | None = None,
    ) -> None:
        self._store = store
        self._tasks = tasks
        self._metrics = metrics
        self._log = log or logger
        self._last_write: dict[EndpointIdentity, asyncio.Task[Any]] = {}

    def notify(
        self,
        monitor: EndpointMonitor,
        code: StatusCode,
        detail: str,
        now: datetime | None = None,
    ) -> bool:
        """Report the status of ``monitor``.

        Returns True when the status changed and a write was scheduled.
        """
        state = monitor.state
        record = state.record
        status_logger.info(
            "> %40s | %-3s | %-6s | %-20s | %s",
            record.address,
            "WS" if record.transport.is_secure else "TCP",
            record.locality,
            code,
            detail,
        )

        state.last_detail = detail
        if self._metrics is not None:
            self._metrics.set_attempts(record, state.reconnect_attempts)

        if state.last_reported_status == code:
            return False

        state.last_reported_status = code
        state.status_since = now
        if self._metrics is not None:
            self._metrics.set_status(record, code)

        self._schedule(
            record.identity, partial(self._write, record, code), f"upsert-status:{record.address}"
        )
        return True

    def forget(self, monitor: EndpointMonitor) -> None:
        """Delete the persisted record and metric series of a removed monitor."""
        record = monitor.state.record
        if self._metrics is not None:
            self._metrics.delete_metrics(record)
        self._schedule(
            record.identity, partial(self._delete, record.identity), f"delete:{record.address}"
        )

    def migrate(self, monitor: EndpointMonitor, new: EndpointRecord) -> None:
        """Persist an address change of ``monitor`` to ``new``."""
        old = monitor.state.record
        if self._metrics is not None:
            self._metrics.delete_metrics(old)
            if monitor.state.last_reported_status is not None:
                self._metrics.set_status(new, monitor.state.last_reported_status)
        self._schedule(
            old.identity, partial(self._update_address, old, new), f"migrate:{old.address}"
        )

    def _schedule(
        self,
        identity: EndpointIdentity,
        write: Callable[[], Awaitable[None]],
        name: str,
    ) -> None:
        previous = self._last_write.get(identity)
        task = self._tasks.spawn(self._after(previous, write), name=name)
        self._last_write[identity] = task
        task.add_done_callback(partial(self._release, identity))

    def _release(self, identity: EndpointIdentity, task: asyncio.Task[Any]) -> None:
        if self._last_write.get(identity) is task:
            del self._last_write[identity]

    @staticmethod
    async def _after(
        previous: asyncio.Task[Any] | None, write: Callable[[], Awaitable[None]]
    ) -> None:
        if previous is not None and not previous.done():
            # wait() never raises, even for a cancelled predecessor.
            await asyncio.wait([previous])
        await write()

    async def _write(self, record: EndpointRecord, code: StatusCode) -> None:
        try:
            await self._store.upsert_status(record, code)
        except Exception as e:
            self._log.error("Failed to update status of %s: %s", record.address, e)

    async def _delete(self, identity: EndpointIdentity) -> None:
        try:
            await self._store.delete_endpoint(identity)
        except Exception as e:
            self._log.error("Failed to remove endpoint %s: %s", identity, e)

    async def _update_address(self, old: EndpointRecord, new: EndpointRecord) -> None:
        try:
            await self._store.update_address(old, new)
        except Exception as e:
            self._log.error("Failed to change %s to %s: %s", old.address, new.address, e)
