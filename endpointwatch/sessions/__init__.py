"""Reference sessions for TCP and WebSocket endpoints."""

from __future__ import annotations

from endpointwatch.config import WatchConfig
from endpointwatch.endpoint import EndpointRecord, Transport
from endpointwatch.session import EventSink, Session, SessionFactory
from endpointwatch.sessions.base import StreamSession
from endpointwatch.sessions.tcp import TCPSession
from endpointwatch.sessions.websocket import WebSocketSession


def default_session_factory(config: WatchConfig) -> SessionFactory:
    """Return a factory picking the session class by endpoint transport."""

    def factory(record: EndpointRecord, sink: EventSink) -> Session:
        if record.transport is Transport.WEBSOCKET:
            return WebSocketSession(sink, timeout=config.session_timeout)
        return TCPSession(sink, timeout=config.session_timeout)

    return factory


__all__ = [
    "StreamSession",
    "TCPSession",
    "WebSocketSession",
    "default_session_factory",
]
