"""TCP session over asyncio streams."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

from endpointwatch.endpoint import EndpointRecord
from endpointwatch.session import EventSink
from endpointwatch.sessions.base import StreamSession
from endpointwatch.status import StatusCode, classify_error

TCPConnection = tuple[asyncio.StreamReader, asyncio.StreamWriter]
TCPAuthenticator = Callable[[asyncio.StreamReader, asyncio.StreamWriter], Awaitable[None]]


class TCPSession(StreamSession[TCPConnection]):
    """Session holding a plain TCP connection open until the endpoint closes it."""

    def __init__(
        self,
        sink: EventSink,
        timeout: float = 15.0,
        authenticator: TCPAuthenticator | None = None,
    ) -> None:
        super().__init__(sink, timeout)
        self._authenticator = authenticator

    async def _open(self, record: EndpointRecord) -> TCPConnection:
        # getaddrinfo wants IPv6 literals without the brackets.
        return await asyncio.open_connection(record.host.strip("[]"), record.port)

    async def _authenticate(self, conn: TCPConnection) -> None:
        if self._authenticator is not None:
            reader, writer = conn
            await self._authenticator(reader, writer)

    async def _wait_closed(self, conn: TCPConnection) -> tuple[StatusCode, str]:
        reader, _ = conn
        try:
            while await reader.read(4096):
                pass
        except OSError as e:
            result = classify_error(e)
            return result.code, result.detail
        return StatusCode.NO_CONNECTION, "Connection closed by remote"

    async def _close(self, conn: TCPConnection) -> None:
        _, writer = conn
        writer.close()
        await writer.wait_closed()
