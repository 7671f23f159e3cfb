"""Discovery source interface and the HTTP directory implementation."""

from __future__ import annotations

import logging
from typing import Any, Protocol

import aiohttp

from endpointwatch.endpoint import EndpointRecord, Transport
from endpointwatch.errors import DiscoveryError

logger = logging.getLogger("endpointwatch.discovery")

DEFAULT_MAX_COUNT = 10000

_WEBSOCKET_TYPES = frozenset({"websockets", "websocket", "ws"})


class DiscoverySource(Protocol):
    """Supplies candidate endpoints, partitioned by locality id."""

    async def fetch(self, locality: int) -> list[EndpointRecord]:
        """Return the endpoints discovery knows for ``locality``."""
        ...


class HTTPDiscoverySource:
    """Discovery via an HTTP directory returning a JSON server list.

    Expected response::

        {"response": {"serverlist": [
            {"endpoint": "203.0.113.7:27017", "dc": "fra1", "type": "netfilter"},
            {"endpoint": "ext1-fra1.example.net:443", "dc": "fra1", "type": "websockets"}
        ]}}
    """

    def __init__(
        self,
        url: str,
        timeout: float = 10.0,
        max_count: int = DEFAULT_MAX_COUNT,
        realms: dict[int, str] | None = None,
    ) -> None:
        if not url:
            msg = "discovery url is required"
            raise ValueError(msg)
        self._url = url
        self._timeout = timeout
        self._max_count = max_count
        self._realms = dict(realms or {})

    async def fetch(self, locality: int) -> list[EndpointRecord]:
        """Query the directory for one locality."""
        params = {"cellid": str(locality), "maxcount": str(self._max_count)}
        realm = self._realms.get(locality)
        if realm:
            params["realm"] = realm

        timeout = aiohttp.ClientTimeout(total=self._timeout)
        try:
            async with (
                aiohttp.ClientSession(timeout=timeout) as session,
                session.get(self._url, params=params) as resp,
            ):
                if resp.status != 200:
                    raise DiscoveryError(locality, f"HTTP {resp.status}")
                payload = await resp.json(content_type=None)
        except TimeoutError as exc:
            raise DiscoveryError(locality, "timed out") from exc
        except aiohttp.ClientError as e:
            raise DiscoveryError(locality, str(e)) from e

        return parse_server_list(payload, locality)


def parse_server_list(payload: Any, locality: int = 0) -> list[EndpointRecord]:  # noqa: ANN401
    """Extract endpoint records from a directory response.

    Malformed entries are skipped with a warning; a malformed envelope raises
    DiscoveryError.
    """
    try:
        entries = payload["response"]["serverlist"]
    except (KeyError, TypeError):
        raise DiscoveryError(locality, "response has no serverlist") from None
    if not isinstance(entries, list):
        raise DiscoveryError(locality, "serverlist is not a list")

    records: list[EndpointRecord] = []
    for entry in entries:
        try:
            transport = (
                Transport.WEBSOCKET
                if str(entry.get("type", "")).lower() in _WEBSOCKET_TYPES
                else Transport.TCP
            )
            records.append(
                EndpointRecord.parse(str(entry["endpoint"]), str(entry.get("dc", "")), transport)
            )
        except (KeyError, AttributeError, ValueError) as e:
            logger.warning("Skipping malformed discovery entry %r: %s", entry, e)
    return records
