"""Tests for reconciler.py — merging discovery batches into the registry."""

from __future__ import annotations

from helpers import T0, at, make_context, record

from endpointwatch.endpoint import Transport
from endpointwatch.reconciler import Reconciler
from endpointwatch.status import StatusCode


class TestReconcile:
    async def test_new_endpoints_are_staggered_by_port_order(self) -> None:
        ctx, _, store = make_context()
        records = [
            record(host="c.example.net", port=27019),
            record(host="a.example.net", port=27017),
            record(host="b.example.net", port=27018),
        ]

        result = Reconciler(ctx).reconcile(records, T0)
        await ctx.tasks.drain()

        assert result.added == 3
        assert len(ctx.registry) == 3
        due = {m.record.host: m.state.next_connect_at for m in ctx.registry.snapshot()}
        assert due == {
            "a.example.net": at(1),
            "b.example.net": at(2),
            "c.example.net": at(3),
        }
        for m in ctx.registry.snapshot():
            assert m.state.last_reported_status is StatusCode.PENDING
            assert store.get(m.identity).status is StatusCode.PENDING

    async def test_stagger_wraps_at_modulo(self) -> None:
        ctx, _, _ = make_context()
        records = [record(host=f"h{i:02d}.example.net", port=1000 + i) for i in range(41)]

        Reconciler(ctx).reconcile(records, T0)

        last = ctx.registry.get(records[-1].identity)
        assert last.state.next_connect_at == at(41 % 40)

    async def test_known_endpoint_is_marked_seen(self) -> None:
        ctx, _, _ = make_context()
        reconciler = Reconciler(ctx)
        reconciler.reconcile([record()], T0)

        result = reconciler.reconcile([record()], at(600))

        assert result.added == 0
        assert result.seen == 1
        assert len(ctx.registry) == 1
        assert ctx.registry.get(record().identity).state.last_seen_at == at(600)

    async def test_no_duplicates_within_batch(self) -> None:
        ctx, _, _ = make_context()

        result = Reconciler(ctx).reconcile([record(port=27017), record(port=27018)], T0)

        assert result.added == 1
        assert len(ctx.registry) == 1

    async def test_transport_is_part_of_identity(self) -> None:
        ctx, _, _ = make_context()

        Reconciler(ctx).reconcile(
            [
                record(host="ext1.example.net", port=27017),
                record(host="ext1.example.net", port=443, transport=Transport.WEBSOCKET),
            ],
            T0,
        )

        assert len(ctx.registry) == 2

    async def test_migrates_failing_endpoint_to_new_port(self) -> None:
        ctx, _, store = make_context()
        reconciler = Reconciler(ctx)
        reconciler.reconcile([record(port=27017)], T0)
        await ctx.tasks.drain()
        monitor = ctx.registry.get(record().identity)
        monitor.state.reconnect_attempts = 5

        result = reconciler.reconcile([record(port=27018)], at(60))
        await ctx.tasks.drain()

        assert result.migrated == 1
        assert monitor.record.port == 27018
        assert monitor.state.reconnect_attempts == 0
        assert store.get(monitor.identity).record.port == 27018

    async def test_no_migration_below_threshold(self) -> None:
        ctx, _, _ = make_context()
        reconciler = Reconciler(ctx)
        reconciler.reconcile([record(port=27017)], T0)
        monitor = ctx.registry.get(record().identity)
        monitor.state.reconnect_attempts = 2

        result = reconciler.reconcile([record(port=27018)], at(60))

        assert result.migrated == 0
        assert monitor.record.port == 27017
        assert monitor.state.reconnect_attempts == 2

    async def test_no_migration_for_same_port(self) -> None:
        ctx, _, _ = make_context()
        reconciler = Reconciler(ctx)
        reconciler.reconcile([record(port=27017)], T0)
        monitor = ctx.registry.get(record().identity)
        monitor.state.reconnect_attempts = 7

        result = reconciler.reconcile([record(port=27017)], at(60))

        assert result.migrated == 0
        assert monitor.state.reconnect_attempts == 7

    async def test_empty_batch(self) -> None:
        ctx, _, _ = make_context()

        result = Reconciler(ctx).reconcile([], T0)

        assert result.added == 0
        assert len(ctx.registry) == 0
