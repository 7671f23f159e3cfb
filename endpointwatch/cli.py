"""Command-line entry point: run the watcher until SIGINT/SIGTERM."""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
from collections.abc import Sequence

from prometheus_client import CollectorRegistry, start_http_server

from endpointwatch.api import EndpointWatch
from endpointwatch.config import WatchConfig
from endpointwatch.discovery import HTTPDiscoverySource
from endpointwatch.errors import ConfigError
from endpointwatch.store import MemoryStore, MySQLStore, PersistenceStore

logger = logging.getLogger("endpointwatch.cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="endpointwatch",
        description="Watch the liveness of remote service endpoints",
    )
    parser.add_argument(
        "--memory-store",
        action="store_true",
        help="Keep statuses in memory instead of MySQL (no database required)",
    )
    parser.add_argument(
        "--metrics-port",
        type=int,
        default=0,
        help="Serve Prometheus metrics on this port (0 = disabled)",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Debug logging",
    )
    return parser


def build_watch(
    config: WatchConfig,
    memory_store: bool = False,
    registry: CollectorRegistry | None = None,
) -> EndpointWatch:
    """Wire store and discovery from the configuration.

    Raises ConfigError when the store DSN is missing.
    """
    store: PersistenceStore
    if memory_store:
        store = MemoryStore()
    else:
        store = MySQLStore(config.require_database_url(), connect_timeout=config.session_timeout)

    discovery = None
    if config.discovery_url:
        realms = {}
        if config.supplemental_locality is not None and config.supplemental_realm:
            realms[config.supplemental_locality] = config.supplemental_realm
        discovery = HTTPDiscoverySource(config.discovery_url, realms=realms)
    else:
        logger.warning("No discovery url configured; watching stored endpoints only")

    return EndpointWatch(store, discovery=discovery, config=config, registry=registry)


async def serve(watch: EndpointWatch) -> None:
    """Start the watcher, wait for a shutdown signal, then stop it."""
    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop_event.set)

    await watch.start()
    try:
        await stop_event.wait()
        logger.info("Stopping")
    finally:
        await watch.stop()


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)-5s %(name)s: %(message)s",
    )

    try:
        config = WatchConfig.from_env()
        watch = build_watch(config, memory_store=args.memory_store)
    except ConfigError as e:
        logger.error("%s", e)
        return 1

    if args.metrics_port:
        start_http_server(args.metrics_port)

    try:
        asyncio.run(serve(watch))
    except Exception:
        logger.exception("Watcher crashed")
        return 1
    return 0
