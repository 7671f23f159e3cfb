"""Endpoint status codes and error classification."""

from __future__ import annotations

import asyncio
import socket
import ssl
from dataclasses import dataclass
from enum import StrEnum


class StatusCode(StrEnum):
    """Status of a monitored endpoint as persisted and exported."""

    OK = "ok"
    PENDING = "pending"
    RECONNECTING = "reconnecting"
    NO_CONNECTION = "no_connection"
    TIMEOUT = "timeout"
    CONNECTION_REFUSED = "connection_refused"
    DNS_ERROR = "dns_error"
    TLS_ERROR = "tls_error"
    AUTH_ERROR = "auth_error"
    LOGGED_OFF = "logged_off"
    ERROR = "error"
    INVALID = "invalid"

    @property
    def is_alerting(self) -> bool:
        """Return True when the status should be treated as an outage."""
        return self not in _NON_ALERTING


_NON_ALERTING = frozenset(
    {StatusCode.OK, StatusCode.PENDING, StatusCode.RECONNECTING, StatusCode.INVALID}
)

ALL_STATUS_CODES: tuple[StatusCode, ...] = tuple(StatusCode)


@dataclass(frozen=True)
class StatusResult:
    """Classification of a session failure."""

    code: StatusCode
    detail: str


def classify_error(err: BaseException | None) -> StatusResult:
    """Classify a session error into a status code and detail.

    Classification chain:
    1. SessionError subclasses carrying their own status code
    2. Standard library error types (TimeoutError, socket errors, SSL errors)
    3. Wrapped cause, then fallback → error
    """
    if err is None:
        return StatusResult(code=StatusCode.OK, detail="ok")

    # Deferred to avoid a circular import with session.py.
    from endpointwatch.session import SessionError

    if isinstance(err, SessionError) and err.status_code is not StatusCode.ERROR:
        return StatusResult(code=err.status_code, detail=str(err) or err.status_code.value)

    if isinstance(err, TimeoutError | asyncio.TimeoutError):
        return StatusResult(code=StatusCode.TIMEOUT, detail="timeout")
    if isinstance(err, socket.gaierror):
        return StatusResult(code=StatusCode.DNS_ERROR, detail="dns_error")
    if isinstance(err, ssl.SSLError):
        return StatusResult(code=StatusCode.TLS_ERROR, detail="tls_error")
    if isinstance(err, ConnectionRefusedError):
        return StatusResult(code=StatusCode.CONNECTION_REFUSED, detail="connection_refused")
    if isinstance(err, ConnectionError | OSError):
        return StatusResult(code=StatusCode.NO_CONNECTION, detail=str(err) or "no_connection")

    cause = err.__cause__ or err.__context__
    if cause is not None and cause is not err:
        inner = classify_error(cause)
        if inner.code is not StatusCode.ERROR:
            return inner

    return StatusResult(code=StatusCode.ERROR, detail="error")


__all__ = [
    "ALL_STATUS_CODES",
    "StatusCode",
    "StatusResult",
    "classify_error",
]
