"""EndpointStatus: detailed liveness state of a single endpoint."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class EndpointStatus:
    """Detailed state of a monitored endpoint.

    Returned by health_details(). ``healthy`` is None while the endpoint has
    not reported anything but ``pending``.
    """

    healthy: bool | None
    status: str
    detail: str
    phase: str
    host: str
    port: int
    transport: str
    locality: str
    reconnect_attempts: int
    last_seen_at: datetime
    last_success_at: datetime
    status_since: datetime | None
    next_connect_at: datetime | None

    def down_for(self, now: datetime) -> float:
        """Return seconds since the endpoint was last online (0 when online)."""
        if self.healthy:
            return 0.0
        return max((now - self.last_success_at).total_seconds(), 0.0)

    def to_dict(self) -> dict[str, object]:
        """Serialize to a JSON-compatible dictionary.

        Datetimes are serialized as ISO 8601 strings or None.
        """
        return {
            "healthy": self.healthy,
            "status": self.status,
            "detail": self.detail,
            "phase": self.phase,
            "host": self.host,
            "port": self.port,
            "transport": self.transport,
            "locality": self.locality,
            "reconnect_attempts": self.reconnect_attempts,
            "last_seen_at": self.last_seen_at.isoformat(),
            "last_success_at": self.last_success_at.isoformat(),
            "status_since": _iso(self.status_since),
            "next_connect_at": _iso(self.next_connect_at),
        }


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


__all__ = [
    "EndpointStatus",
]
