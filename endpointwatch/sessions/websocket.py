"""WebSocket session over aiohttp."""

from __future__ import annotations

from collections.abc import Awaitable, Callable

import aiohttp

from endpointwatch.endpoint import EndpointRecord
from endpointwatch.session import EventSink, SessionAuthError, SessionConnectError
from endpointwatch.sessions.base import StreamSession
from endpointwatch.status import StatusCode

WebSocketConnection = tuple[aiohttp.ClientSession, aiohttp.ClientWebSocketResponse]
WebSocketAuthenticator = Callable[[aiohttp.ClientWebSocketResponse], Awaitable[None]]


class WebSocketSession(StreamSession[WebSocketConnection]):
    """Session holding a WebSocket open until the endpoint closes it.

    Endpoints are dialled over TLS (``wss``) unless ``scheme`` says otherwise.
    """

    def __init__(
        self,
        sink: EventSink,
        timeout: float = 15.0,
        path: str = "/",
        heartbeat: float = 30.0,
        authenticator: WebSocketAuthenticator | None = None,
        scheme: str = "wss",
    ) -> None:
        super().__init__(sink, timeout)
        self._path = path
        self._heartbeat = heartbeat
        self._authenticator = authenticator
        self._scheme = scheme

    async def _open(self, record: EndpointRecord) -> WebSocketConnection:
        url = f"{self._scheme}://{record.host}:{record.port}{self._path}"
        session = aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=None, connect=self._timeout),
            headers={"User-Agent": "endpointwatch/0.1.0"},
        )
        try:
            ws = await session.ws_connect(url, heartbeat=self._heartbeat)
        except aiohttp.WSServerHandshakeError as e:
            await session.close()
            msg = f"WebSocket handshake with {url} failed: HTTP {e.status}"
            if e.status in (401, 403):
                raise SessionAuthError(msg) from e
            raise SessionConnectError(msg) from e
        except BaseException:
            await session.close()
            raise
        return session, ws

    async def _authenticate(self, conn: WebSocketConnection) -> None:
        if self._authenticator is not None:
            _, ws = conn
            await self._authenticator(ws)

    async def _wait_closed(self, conn: WebSocketConnection) -> tuple[StatusCode, str]:
        _, ws = conn
        async for msg in ws:
            if msg.type is aiohttp.WSMsgType.ERROR:
                return StatusCode.NO_CONNECTION, f"WebSocket error: {ws.exception()}"
        return StatusCode.NO_CONNECTION, f"WebSocket closed (code {ws.close_code})"

    async def _close(self, conn: WebSocketConnection) -> None:
        session, ws = conn
        try:
            await ws.close()
        finally:
            await session.close()
