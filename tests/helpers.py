"""Shared fakes for endpointwatch tests."""

from __future__ import annotations

import random
from datetime import UTC, datetime, timedelta
from typing import Any

from prometheus_client import CollectorRegistry

from endpointwatch.config import WatchConfig
from endpointwatch.context import WatchContext
from endpointwatch.endpoint import EndpointRecord, Transport
from endpointwatch.metrics import MetricsExporter
from endpointwatch.registry import Registry
from endpointwatch.reporter import StatusReporter
from endpointwatch.session import Disconnected, EventSink
from endpointwatch.store import MemoryStore
from endpointwatch.tasks import BackgroundTasks

T0 = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)


def at(seconds: float) -> datetime:
    return T0 + timedelta(seconds=seconds)


def record(
    host: str = "203.0.113.7",
    port: int = 27017,
    locality: str = "fra1",
    transport: Transport = Transport.TCP,
) -> EndpointRecord:
    return EndpointRecord(host=host, port=port, locality=locality, transport=transport)


class FixedRandom(random.Random):
    """random() always returns ``value``, so uniform(a, b) lands at a fixed point."""

    def __init__(self, value: float = 0.5) -> None:
        super().__init__(0)
        self.value = value

    def random(self) -> float:
        return self.value


class FakeSession:
    """Records calls; events are injected by the test through ``sink``."""

    def __init__(self, record: EndpointRecord, sink: EventSink) -> None:
        self.record = record
        self.sink = sink
        self.connects: list[EndpointRecord] = []
        self.disconnects = 0
        self.logons = 0
        self.connected = False

    def connect(self, record: EndpointRecord) -> None:
        self.connects.append(record)
        self.connected = True

    def disconnect(self) -> None:
        self.disconnects += 1
        if self.connected:
            self.connected = False
            self.sink(Disconnected(detail="Disconnected by client"))

    def logon(self) -> None:
        self.logons += 1


class FakeSessions:
    """Session factory remembering the session built for each host."""

    def __init__(self) -> None:
        self.by_host: dict[str, FakeSession] = {}

    def __call__(self, record: EndpointRecord, sink: EventSink) -> FakeSession:
        session = FakeSession(record, sink)
        self.by_host[record.host] = session
        return session


def make_context(
    config: WatchConfig | None = None,
    store: Any = None,
    rng: random.Random | None = None,
    metrics_registry: CollectorRegistry | None = None,
) -> tuple[WatchContext, FakeSessions, Any]:
    store = store if store is not None else MemoryStore()
    sessions = FakeSessions()
    metrics = MetricsExporter(registry=metrics_registry or CollectorRegistry())
    tasks = BackgroundTasks()
    ctx = WatchContext(
        config=config or WatchConfig(),
        registry=Registry(),
        reporter=StatusReporter(store, tasks, metrics),
        session_factory=sessions,
        metrics=metrics,
        tasks=tasks,
        rng=rng or FixedRandom(),
        clock=lambda: T0,
    )
    return ctx, sessions, store
