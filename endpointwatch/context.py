"""WatchContext: the collaborators shared by scheduler, reconciler and monitors."""

from __future__ import annotations

import logging
import random
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime

from endpointwatch.config import WatchConfig
from endpointwatch.endpoint import EndpointRecord
from endpointwatch.metrics import MetricsExporter
from endpointwatch.monitor import EndpointMonitor
from endpointwatch.registry import Registry
from endpointwatch.reporter import StatusReporter
from endpointwatch.session import SessionFactory
from endpointwatch.tasks import BackgroundTasks


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(UTC)


@dataclass
class WatchContext:
    """Explicit replacement for process-wide state.

    Built once by EndpointWatch and handed to every component; tests build
    their own with fakes.
    """

    config: WatchConfig
    registry: Registry
    reporter: StatusReporter
    session_factory: SessionFactory
    metrics: MetricsExporter
    tasks: BackgroundTasks
    rng: random.Random = field(default_factory=random.Random)
    clock: Callable[[], datetime] = utc_now
    log: logging.Logger = field(default_factory=lambda: logging.getLogger("endpointwatch"))

    def create_monitor(self, record: EndpointRecord, now: datetime) -> EndpointMonitor:
        """Build a monitor (and its session) for a newly sighted endpoint."""
        return EndpointMonitor(record, self, now)
