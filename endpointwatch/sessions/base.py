"""Shared connect → logon → watch lifecycle for the reference sessions."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Generic, TypeVar

from endpointwatch.endpoint import EndpointRecord
from endpointwatch.session import (
    Authenticated,
    Connected,
    Disconnected,
    EventSink,
    SessionEvent,
)
from endpointwatch.status import StatusCode, classify_error

logger = logging.getLogger("endpointwatch.sessions")

ConnT = TypeVar("ConnT")


class StreamSession(Generic[ConnT]):
    """Session running each connection in its own task.

    ``connect`` while a connection is open replaces it silently: events of a
    superseded connection are dropped. ``disconnect`` closes the current
    connection and reports Disconnected.
    """

    def __init__(self, sink: EventSink, timeout: float = 15.0) -> None:
        self._sink = sink
        self._timeout = timeout
        self._generation = 0
        self._task: asyncio.Task[None] | None = None
        self._logon: asyncio.Event | None = None

    def connect(self, record: EndpointRecord) -> None:
        self._generation += 1
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._logon = asyncio.Event()
        self._task = asyncio.get_running_loop().create_task(
            self._run(record, self._generation, self._logon),
            name=f"session:{record.address}",
        )

    def disconnect(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()

    def logon(self) -> None:
        if self._logon is not None:
            self._logon.set()

    async def _open(self, record: EndpointRecord) -> ConnT:
        raise NotImplementedError

    async def _authenticate(self, conn: ConnT) -> None:
        """Anonymous logon: an open connection counts as authenticated."""

    async def _wait_closed(self, conn: ConnT) -> tuple[StatusCode, str]:
        raise NotImplementedError

    async def _close(self, conn: ConnT) -> None:
        raise NotImplementedError

    async def _run(self, record: EndpointRecord, generation: int, logon: asyncio.Event) -> None:
        def emit(event: SessionEvent) -> None:
            if generation == self._generation:
                self._sink(event)

        conn: ConnT | None = None
        code, detail = StatusCode.NO_CONNECTION, "Disconnected"
        try:
            try:
                conn = await asyncio.wait_for(self._open(record), self._timeout)
            except Exception as e:
                result = classify_error(e)
                logger.debug("Connect to %s failed: %s", record.address, e)
                code, detail = result.code, result.detail
                emit(Connected(code=code, detail=detail))
                return
            emit(Connected())

            try:
                await asyncio.wait_for(logon.wait(), self._timeout)
                await asyncio.wait_for(self._authenticate(conn), self._timeout)
            except Exception as e:
                result = classify_error(e)
                logger.debug("Logon to %s failed: %s", record.address, e)
                code, detail = result.code, result.detail
                emit(Authenticated(code=code, detail=detail))
                return
            emit(Authenticated())

            code, detail = await self._wait_closed(conn)
        except asyncio.CancelledError:
            code, detail = StatusCode.NO_CONNECTION, "Disconnected by client"
            raise
        finally:
            if conn is not None:
                with contextlib.suppress(Exception):
                    await self._close(conn)
            emit(Disconnected(code=code, detail=detail))
