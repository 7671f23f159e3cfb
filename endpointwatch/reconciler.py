"""Reconciler: merge discovery batches into the live registry."""

from __future__ import annotations

import functools
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta

from endpointwatch.context import WatchContext
from endpointwatch.endpoint import EndpointRecord
from endpointwatch.status import StatusCode


@dataclass(frozen=True)
class ReconcileResult:
    """Counts of what a reconcile pass did."""

    added: int = 0
    migrated: int = 0
    seen: int = 0


class Reconciler:
    """Create monitors for new endpoints and refresh known ones.

    Never removes monitors: removal is decided by the monitor itself when it
    has been both unseen and offline for longer than the retention window.
    """

    def __init__(self, context: WatchContext) -> None:
        self._ctx = context
        self._log = context.log.getChild("reconciler")

    def reconcile(
        self, records: Iterable[EndpointRecord], now: datetime | None = None
    ) -> ReconcileResult:
        """Merge ``records`` into the registry."""
        ctx = self._ctx
        now = now or ctx.clock()
        added = migrated = seen = 0

        for record in sorted(records, key=lambda r: r.port):
            monitor, created = ctx.registry.get_or_create(
                record.identity, functools.partial(ctx.create_monitor, record, now)
            )

            if created:
                added += 1
                ctx.reporter.notify(monitor, StatusCode.PENDING, "New endpoint", now)
                # Spread first connects so a large batch does not connect at once.
                stagger = added % ctx.config.stagger_modulo
                monitor.schedule_connect(now + timedelta(seconds=stagger))
                continue

            seen += 1
            monitor.mark_seen(now)

            if (
                monitor.state.reconnect_attempts > ctx.config.migrate_attempts_threshold
                and monitor.record.port != record.port
            ):
                ctx.reporter.migrate(monitor, record)
                monitor.migrate(record)
                migrated += 1

        if added:
            ctx.metrics.set_monitor_count(len(ctx.registry))
            self._log.info(
                "There are now %d monitors, added %d new ones", len(ctx.registry), added
            )

        return ReconcileResult(added=added, migrated=migrated, seen=seen)
