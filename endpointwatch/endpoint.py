"""Core abstractions: Transport, EndpointIdentity, EndpointRecord."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import StrEnum

_HOST_PATTERN = re.compile(r"^[A-Za-z0-9_.\-\[\]:]+$")

MIN_PORT: int = 1
MAX_PORT: int = 65535


class Transport(StrEnum):
    """Transport kind used to reach an endpoint."""

    TCP = "tcp"
    WEBSOCKET = "websocket"

    @property
    def is_secure(self) -> bool:
        """WebSocket endpoints are served over TLS."""
        return self is Transport.WEBSOCKET

    @classmethod
    def from_secure(cls, secure: bool) -> Transport:
        """Map the secure flag back to a transport kind."""
        return cls.WEBSOCKET if secure else cls.TCP


@dataclass(frozen=True)
class EndpointIdentity:
    """Lookup key of a monitored endpoint, stable across port changes."""

    host: str
    secure: bool

    def __str__(self) -> str:
        return f"{self.host}@{'ws' if self.secure else 'tcp'}"


@dataclass(frozen=True)
class EndpointRecord:
    """Endpoint address as returned by discovery or the persistence store."""

    host: str
    port: int
    locality: str = ""
    transport: Transport = Transport.TCP

    @property
    def identity(self) -> EndpointIdentity:
        """Return the dedup key (host + transport kind)."""
        return EndpointIdentity(host=self.host, secure=self.transport.is_secure)

    @property
    def address(self) -> str:
        """Return ``host:port``."""
        return f"{self.host}:{self.port}"

    def with_port(self, port: int) -> EndpointRecord:
        """Return a copy of the record pointing at another port."""
        return EndpointRecord(
            host=self.host, port=port, locality=self.locality, transport=self.transport
        )

    def validate(self) -> None:
        """Validate host and port."""
        if not self.host or not _HOST_PATTERN.match(self.host):
            msg = f"invalid host {self.host!r}"
            raise ValueError(msg)
        if not MIN_PORT <= self.port <= MAX_PORT:
            msg = f"port must be between {MIN_PORT} and {MAX_PORT}, got {self.port}"
            raise ValueError(msg)

    @classmethod
    def parse(
        cls,
        address: str,
        locality: str = "",
        transport: Transport = Transport.TCP,
    ) -> EndpointRecord:
        """Build a record from a ``host:port`` string.

        The split happens on the last colon so that bracketed IPv6 hosts
        (``[::1]:443``) keep their inner colons.
        """
        host, sep, port_str = address.strip().rpartition(":")
        if not sep or not host:
            msg = f"invalid endpoint address {address!r}: expected host:port"
            raise ValueError(msg)
        try:
            port = int(port_str)
        except ValueError:
            msg = f"invalid port in endpoint address {address!r}"
            raise ValueError(msg) from None

        record = cls(host=host, port=port, locality=locality, transport=transport)
        record.validate()
        return record


def dedupe_by_identity(records: list[EndpointRecord]) -> list[EndpointRecord]:
    """Drop records whose identity was already seen, keeping the first one."""
    seen: set[EndpointIdentity] = set()
    result: list[EndpointRecord] = []
    for record in records:
        if record.identity in seen:
            continue
        seen.add(record.identity)
        result.append(record)
    return result
