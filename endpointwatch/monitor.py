"""EndpointMonitor: reconnect/backoff state machine for a single endpoint."""

from __future__ import annotations

import asyncio
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import StrEnum
from typing import TYPE_CHECKING

from endpointwatch.endpoint import EndpointIdentity, EndpointRecord
from endpointwatch.session import (
    Authenticated,
    Connected,
    Deauthenticated,
    Disconnected,
    SessionEvent,
)
from endpointwatch.status import StatusCode

if TYPE_CHECKING:
    from endpointwatch.context import WatchContext


class MonitorPhase(StrEnum):
    """Lifecycle phase of a monitor."""

    IDLE = "idle"
    CONNECTING = "connecting"
    AUTHENTICATING = "authenticating"
    ONLINE = "online"
    RETRYING = "retrying"
    REMOVING = "removing"


# Phases in which the session holds (or is opening) a connection.
_LIVE_PHASES = frozenset(
    {MonitorPhase.CONNECTING, MonitorPhase.AUTHENTICATING, MonitorPhase.ONLINE}
)


@dataclass
class MonitorState:
    """Mutable state of one monitor; touched only by its tick and event handler."""

    record: EndpointRecord
    last_seen_at: datetime
    last_success_at: datetime
    reconnect_attempts: int = 0
    is_disconnecting: bool = False
    last_reported_status: StatusCode | None = None
    last_detail: str = ""
    status_since: datetime | None = None
    next_connect_at: datetime | None = None
    phase: MonitorPhase = MonitorPhase.IDLE


class EndpointMonitor:
    """Owns one Session and decides when to (re)connect it.

    Session events are queued by ``emit`` and handled at the start of every
    ``tick``; both run on the event loop thread, so the state needs no lock.
    """

    def __init__(self, record: EndpointRecord, context: WatchContext, now: datetime) -> None:
        self.state = MonitorState(record=record, last_seen_at=now, last_success_at=now)
        self._ctx = context
        self._log = context.log.getChild("monitor")
        self._events: deque[SessionEvent] = deque()
        self._has_events = asyncio.Event()
        self._acknowledged = False
        self._session = context.session_factory(record, self.emit)

    @property
    def identity(self) -> EndpointIdentity:
        return self.state.record.identity

    @property
    def record(self) -> EndpointRecord:
        return self.state.record

    @property
    def phase(self) -> MonitorPhase:
        return self.state.phase

    @property
    def is_removed(self) -> bool:
        return self.state.phase is MonitorPhase.REMOVING

    # --- Inputs ---

    def emit(self, event: SessionEvent) -> None:
        """Queue a session event; must be called on the event loop thread."""
        self._events.append(event)
        self._has_events.set()

    def schedule_connect(self, when: datetime) -> None:
        """Set the next connect time."""
        if self.is_removed or self.state.is_disconnecting:
            return
        self.state.next_connect_at = when

    def mark_seen(self, now: datetime) -> None:
        """Record that discovery returned this endpoint."""
        self.state.last_seen_at = now

    def migrate(self, record: EndpointRecord) -> None:
        """Replace the endpoint address in place and start counting attempts afresh."""
        self._log.info("Changed %s to %s", self.state.record.address, record.address)
        self.state.record = record
        self.state.reconnect_attempts = 0

    def tick(self, now: datetime) -> None:
        """Service queued events, then connect if the due time has passed.

        Never blocks: the session handshake runs out of line.
        """
        if self.is_removed:
            return
        self.drain_events(now)
        if self.is_removed or self.state.is_disconnecting:
            return

        due = self.state.next_connect_at
        if due is None or now < due:
            return

        # Safety net in case the session never reports back.
        self.state.next_connect_at = now + timedelta(seconds=self._ctx.config.connect_fallback)
        self.state.reconnect_attempts += 1
        # Live only once the session has taken the connect; a raising connect
        # leaves the monitor waiting for the fallback time.
        self._session.connect(self.state.record)
        self.state.phase = MonitorPhase.CONNECTING

    def drain_events(self, now: datetime | None = None) -> None:
        """Handle every queued session event."""
        while self._events:
            event = self._events.popleft()
            self.handle_event(event, now or self._ctx.clock())

    def handle_event(self, event: SessionEvent, now: datetime) -> None:
        """Apply one session event to the state machine."""
        if self.is_removed:
            return

        match event:
            case Connected(code=code, detail=detail):
                self._on_connected(code, detail, now)
            case Disconnected(code=code, detail=detail):
                self._on_disconnected(code, detail, now)
            case Authenticated(code=code, detail=detail):
                self._on_authenticated(code, detail, now)
            case Deauthenticated(code=code, detail=detail):
                self._on_deauthenticated(code, detail, now)

    # --- Shutdown ---

    def begin_shutdown(self) -> None:
        """Disconnect for good; no further reconnects are scheduled."""
        state = self.state
        state.is_disconnecting = True
        state.next_connect_at = None
        if state.phase not in _LIVE_PHASES:
            self._acknowledged = True
        self._session.disconnect()

    async def wait_disconnected(self) -> None:
        """Wait until the session has acknowledged the shutdown disconnect."""
        while not self._acknowledged:
            self._has_events.clear()
            self.drain_events()
            if self._acknowledged:
                break
            await self._has_events.wait()

    # --- Event handlers ---

    def _on_connected(self, code: StatusCode, detail: str, now: datetime) -> None:
        if self.state.is_disconnecting:
            return
        if code is not StatusCode.OK:
            # Reported by the Disconnected event that follows a failed connect.
            self._log.debug("Connect to %s failed: %s", self.state.record.address, detail or code)
            return
        self.state.phase = MonitorPhase.AUTHENTICATING
        self._session.logon()

    def _on_disconnected(self, code: StatusCode, detail: str, now: datetime) -> None:
        if self.state.is_disconnecting:
            self._acknowledged = True
            self.state.phase = MonitorPhase.IDLE
            return
        if self.state.phase not in _LIVE_PHASES:
            return
        self._connection_lost(code, detail or "Disconnected", now)

    def _on_authenticated(self, code: StatusCode, detail: str, now: datetime) -> None:
        state = self.state
        if state.is_disconnecting or state.phase not in _LIVE_PHASES:
            return
        if code is not StatusCode.OK:
            self._session.disconnect()
            self._connection_lost(code, f"Logon failed: {detail or code}", now)
            return

        state.phase = MonitorPhase.ONLINE
        state.reconnect_attempts = 0
        state.last_success_at = now
        self._ctx.reporter.notify(self, StatusCode.OK, "Online", now)

        # Proactive reconnect so the endpoint is periodically re-homed.
        cfg = self._ctx.config
        delay = cfg.online_reconnect_min + self._ctx.rng.random() * cfg.online_reconnect_jitter
        state.next_connect_at = now + timedelta(seconds=delay)

    def _on_deauthenticated(self, code: StatusCode, detail: str, now: datetime) -> None:
        if self.state.is_disconnecting:
            return
        self._ctx.reporter.notify(self, code, f"Logged off: {detail or code}", now)

    def _connection_lost(self, code: StatusCode, detail: str, now: datetime) -> None:
        state = self.state
        cfg = self._ctx.config

        unseen = now - state.last_seen_at > timedelta(seconds=cfg.removal_seen_window)
        unsuccessful = now - state.last_success_at > timedelta(seconds=cfg.removal_success_window)
        if unseen and unsuccessful:
            self._remove(now)
            return

        attempts = state.reconnect_attempts
        upper = cfg.first_retry_delay_max if attempts == 1 else cfg.retry_delay_max
        delay = cfg.retry_delay_min + self._ctx.rng.random() * (upper - cfg.retry_delay_min)
        if attempts == 0:
            # Dropped while online: count it as a second failure, not a fresh attempt.
            attempts = state.reconnect_attempts = 2

        state.phase = MonitorPhase.RETRYING
        state.next_connect_at = now + timedelta(seconds=delay)

        failure = code if code.is_alerting else StatusCode.NO_CONNECTION
        if attempts == 1:
            self._ctx.reporter.notify(self, StatusCode.RECONNECTING, "Reconnecting", now)
        elif attempts >= cfg.alert_attempts_threshold:
            self._ctx.reporter.notify(
                self,
                failure,
                f"{detail} (attempt {attempts}, last seen {state.last_seen_at:%Y-%m-%d %H:%M:%S}, "
                f"last online {state.last_success_at:%Y-%m-%d %H:%M:%S})",
                now,
            )
        else:
            self._ctx.reporter.notify(self, failure, f"{detail} (attempt {attempts})", now)

    def _remove(self, now: datetime) -> None:
        state = self.state
        self._log.info(
            "Removing endpoint %s: unseen since %s, offline since %s",
            state.record.address,
            state.last_seen_at,
            state.last_success_at,
        )
        state.phase = MonitorPhase.REMOVING
        state.is_disconnecting = True
        state.next_connect_at = None
        self._acknowledged = True

        self._session.disconnect()
        if self._ctx.registry.get(self.identity) is self:
            self._ctx.registry.remove(self.identity)
        self._ctx.metrics.set_monitor_count(len(self._ctx.registry))
        self._ctx.reporter.forget(self)
