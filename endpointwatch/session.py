"""Session interface, session events and session error types."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from endpointwatch.endpoint import EndpointRecord
from endpointwatch.errors import EndpointWatchError
from endpointwatch.status import StatusCode


class SessionError(EndpointWatchError):
    """Base session error with a status classification."""

    def __init__(self, *args: object, status_code: StatusCode = StatusCode.ERROR) -> None:
        super().__init__(*args)
        self._status_code = status_code

    @property
    def status_code(self) -> StatusCode:
        """Return the status code for this error."""
        return self._status_code


class SessionConnectError(SessionError):
    """Connection could not be established."""

    def __init__(self, *args: object) -> None:
        super().__init__(*args, status_code=StatusCode.NO_CONNECTION)


class SessionTimeoutError(SessionError):
    """Connection or logon timed out."""

    def __init__(self, *args: object) -> None:
        super().__init__(*args, status_code=StatusCode.TIMEOUT)


class SessionAuthError(SessionError):
    """Endpoint rejected the logon."""

    def __init__(self, *args: object) -> None:
        super().__init__(*args, status_code=StatusCode.AUTH_ERROR)


# --- Events ---


@dataclass(frozen=True)
class Connected:
    """Transport connection attempt finished."""

    code: StatusCode = StatusCode.OK
    detail: str = ""


@dataclass(frozen=True)
class Disconnected:
    """Transport connection closed or failed to open."""

    code: StatusCode = StatusCode.NO_CONNECTION
    detail: str = ""


@dataclass(frozen=True)
class Authenticated:
    """Logon finished."""

    code: StatusCode = StatusCode.OK
    detail: str = ""


@dataclass(frozen=True)
class Deauthenticated:
    """Endpoint logged the session off while connected."""

    code: StatusCode = StatusCode.LOGGED_OFF
    detail: str = ""


SessionEvent = Connected | Disconnected | Authenticated | Deauthenticated

EventSink = Callable[[SessionEvent], None]


class Session(Protocol):
    """Live connection to one endpoint.

    All methods return immediately; the handshake runs out of line and its
    outcome is reported through the event sink the session was built with.
    """

    def connect(self, record: EndpointRecord) -> None:
        """Open (or re-open) the connection to ``record``."""
        ...

    def disconnect(self) -> None:
        """Close the connection; a Disconnected event follows."""
        ...

    def logon(self) -> None:
        """Authenticate on the open connection."""
        ...


SessionFactory = Callable[[EndpointRecord, EventSink], Session]
