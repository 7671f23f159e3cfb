"""Scheduler: fixed-cadence tick loop, discovery refresh and locality sweeps."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta

from endpointwatch.context import WatchContext
from endpointwatch.discovery import DiscoverySource
from endpointwatch.endpoint import EndpointRecord, dedupe_by_identity
from endpointwatch.reconciler import Reconciler, ReconcileResult
from endpointwatch.tasks import BackgroundTasks


class Scheduler:
    """Drive every monitor at a fixed cadence.

    Each cycle snapshots the registry and ticks every monitor. Discovery
    refreshes and full locality sweeps run as background jobs so the cycle
    never waits on network I/O.
    """

    def __init__(
        self,
        context: WatchContext,
        reconciler: Reconciler,
        discovery: DiscoverySource | None = None,
    ) -> None:
        self._ctx = context
        self._reconciler = reconciler
        self._discovery = discovery
        self._log = context.log.getChild("scheduler")
        self._jobs = BackgroundTasks(self._log)

        self._locality = 0
        self._next_discovery_at: datetime | None = None
        self._next_sweep_at: datetime | None = None
        self._sweep_task: asyncio.Task[None] | None = None

        self._loop_task: asyncio.Task[None] | None = None
        self._started = False
        self._stopped = False

    @property
    def locality(self) -> int:
        """Locality id the next discovery refresh will query."""
        return self._locality

    async def start(self) -> None:
        """Start the tick loop."""
        if self._started:
            msg = "Scheduler already started"
            raise RuntimeError(msg)
        self._started = True
        self._stopped = False
        self._loop_task = asyncio.create_task(self._run_loop(), name="endpointwatch-tick")
        self._log.info("Scheduler started (%d monitors)", len(self._ctx.registry))

    async def stop(self) -> None:
        """Stop the tick loop and cancel pending discovery jobs."""
        self._stopped = True
        if self._loop_task is not None:
            self._loop_task.cancel()
            await asyncio.gather(self._loop_task, return_exceptions=True)
            self._loop_task = None
        await self._jobs.cancel_all()
        self._log.info("Scheduler stopped")

    def run_once(self, now: datetime | None = None) -> None:
        """Run one cycle: tick every monitor, then start due discovery jobs."""
        ctx = self._ctx
        now = now or ctx.clock()

        for monitor in ctx.registry.snapshot():
            try:
                monitor.tick(now)
            except Exception:
                self._log.exception("Tick failed for %s", monitor.record.address)

        if self._discovery is None or self._stopped:
            return

        if self._next_discovery_at is None or now >= self._next_discovery_at:
            cfg = ctx.config
            jitter = ctx.rng.uniform(cfg.discovery_jitter_min, cfg.discovery_jitter_max)
            self._next_discovery_at = now + timedelta(seconds=cfg.discovery_interval + jitter)
            locality = self._advance_locality()
            self._jobs.spawn(self.refresh(locality), name=f"discovery:{locality}")

        if ctx.config.sweep_interval > 0:
            if self._next_sweep_at is None:
                self._next_sweep_at = now + timedelta(seconds=ctx.config.sweep_interval)
            elif now >= self._next_sweep_at and not self._sweep_running():
                self._next_sweep_at = now + timedelta(seconds=ctx.config.sweep_interval)
                self._sweep_task = self._jobs.spawn(self.sweep(), name="discovery-sweep")

    async def refresh(self, locality: int) -> ReconcileResult | None:
        """Fetch one locality (plus the supplemental one when due) and reconcile it."""
        self._log.info("Updating endpoint list from locality %d", locality)
        records = await self._fetch(locality)
        if records is None:
            return None
        self._log.info("Got %d endpoints from locality %d", len(records), locality)

        cfg = self._ctx.config
        extra_locality = cfg.supplemental_locality
        if (
            extra_locality is not None
            and extra_locality != locality
            and locality % cfg.supplemental_every == 0
        ):
            extra = await self._fetch(extra_locality) or []
            merged = dedupe_by_identity(records + extra)
            self._log.info(
                "Got %d additional endpoints from locality %d",
                len(merged) - len(records),
                extra_locality,
            )
            records = merged

        return self._reconciler.reconcile(records, self._ctx.clock())

    async def sweep(self) -> None:
        """Walk every locality once with a randomized delay between fetches."""
        cfg = self._ctx.config
        self._log.info("Starting full sweep of %d localities", cfg.locality_count)
        added = 0
        for locality in range(cfg.locality_count):
            if self._stopped:
                return
            await asyncio.sleep(self._ctx.rng.uniform(cfg.sweep_delay_min, cfg.sweep_delay_max))
            records = await self._fetch(locality)
            if records:
                added += self._reconciler.reconcile(records, self._ctx.clock()).added
        self._log.info("Full sweep finished, added %d endpoints", added)

    async def _fetch(self, locality: int) -> list[EndpointRecord] | None:
        if self._discovery is None:
            return None
        try:
            records = await self._discovery.fetch(locality)
        except Exception as e:
            self._ctx.metrics.count_fetch(ok=False)
            self._log.error("Discovery fetch for locality %d failed: %s", locality, e)
            return None
        self._ctx.metrics.count_fetch(ok=True)
        return records

    def _advance_locality(self) -> int:
        locality = self._locality
        self._locality = (self._locality + 1) % self._ctx.config.locality_count
        return locality

    def _sweep_running(self) -> bool:
        return self._sweep_task is not None and not self._sweep_task.done()

    async def _run_loop(self) -> None:
        while not self._stopped:
            self.run_once(self._ctx.clock())
            await asyncio.sleep(self._ctx.config.tick_interval)
