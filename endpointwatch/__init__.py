"""endpointwatch — liveness monitoring for a large, slowly-changing set of service endpoints."""

from __future__ import annotations

from endpointwatch.api import EndpointWatch
from endpointwatch.config import WatchConfig, default_watch_config
from endpointwatch.context import WatchContext
from endpointwatch.discovery import DiscoverySource, HTTPDiscoverySource, parse_server_list
from endpointwatch.endpoint import (
    EndpointIdentity,
    EndpointRecord,
    Transport,
    dedupe_by_identity,
)
from endpointwatch.endpoint_status import EndpointStatus
from endpointwatch.errors import ConfigError, DiscoveryError, EndpointWatchError, StoreError
from endpointwatch.monitor import EndpointMonitor, MonitorPhase, MonitorState
from endpointwatch.reconciler import Reconciler, ReconcileResult
from endpointwatch.registry import Registry
from endpointwatch.reporter import StatusReporter
from endpointwatch.scheduler import Scheduler
from endpointwatch.session import (
    Authenticated,
    Connected,
    Deauthenticated,
    Disconnected,
    Session,
    SessionAuthError,
    SessionConnectError,
    SessionError,
    SessionEvent,
    SessionFactory,
    SessionTimeoutError,
)
from endpointwatch.status import ALL_STATUS_CODES, StatusCode, StatusResult, classify_error
from endpointwatch.store import MemoryStore, MySQLStore, PersistenceStore, StoredEndpoint

__all__ = [
    "ALL_STATUS_CODES",
    "Authenticated",
    "ConfigError",
    "Connected",
    "Deauthenticated",
    "Disconnected",
    "DiscoveryError",
    "DiscoverySource",
    "EndpointIdentity",
    "EndpointMonitor",
    "EndpointRecord",
    "EndpointStatus",
    "EndpointWatch",
    "EndpointWatchError",
    "HTTPDiscoverySource",
    "MemoryStore",
    "MonitorPhase",
    "MonitorState",
    "MySQLStore",
    "PersistenceStore",
    "ReconcileResult",
    "Reconciler",
    "Registry",
    "Scheduler",
    "Session",
    "SessionAuthError",
    "SessionConnectError",
    "SessionError",
    "SessionEvent",
    "SessionFactory",
    "SessionTimeoutError",
    "StatusCode",
    "StatusReporter",
    "StatusResult",
    "StoreError",
    "StoredEndpoint",
    "Transport",
    "WatchConfig",
    "WatchContext",
    "classify_error",
    "dedupe_by_identity",
    "default_watch_config",
    "parse_server_list",
]
