"""Tests for the reference TCP and WebSocket sessions and the session factory."""

from __future__ import annotations

import asyncio
import socket
from collections.abc import AsyncIterator

import aiohttp
import pytest
from aiohttp import web
from helpers import record

from endpointwatch.config import WatchConfig
from endpointwatch.endpoint import EndpointRecord, Transport
from endpointwatch.session import (
    Authenticated,
    Connected,
    Disconnected,
    SessionAuthError,
    SessionEvent,
)
from endpointwatch.sessions import TCPSession, WebSocketSession, default_session_factory
from endpointwatch.status import StatusCode


async def _wait_for(events: list[SessionEvent], count: int, timeout: float = 2.0) -> None:
    async def poll() -> None:
        while len(events) < count:
            await asyncio.sleep(0.01)

    await asyncio.wait_for(poll(), timeout)


@pytest.fixture()
async def server() -> AsyncIterator[tuple[EndpointRecord, list[asyncio.StreamWriter]]]:
    """Local TCP endpoint that keeps connections open until the test closes them."""
    writers: list[asyncio.StreamWriter] = []

    async def handle(_: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        writers.append(writer)

    srv = await asyncio.start_server(handle, "127.0.0.1", 0)
    port = srv.sockets[0].getsockname()[1]
    try:
        yield record(host="127.0.0.1", port=port), writers
    finally:
        for writer in writers:
            writer.close()
        srv.close()
        await srv.wait_closed()


def _closed_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


class TestTCPSession:
    async def test_connect_logon_and_remote_close(
        self, server: tuple[EndpointRecord, list[asyncio.StreamWriter]]
    ) -> None:
        rec, writers = server
        events: list[SessionEvent] = []
        session = TCPSession(events.append, timeout=2.0)

        session.connect(rec)
        await _wait_for(events, 1)
        assert events[0] == Connected()

        session.logon()
        await _wait_for(events, 2)
        assert events[1] == Authenticated()

        await _wait_for_writers(writers)
        writers[0].close()
        await _wait_for(events, 3)
        assert events[2] == Disconnected(
            code=StatusCode.NO_CONNECTION, detail="Connection closed by remote"
        )

    async def test_connection_refused(self) -> None:
        events: list[SessionEvent] = []
        session = TCPSession(events.append, timeout=2.0)

        session.connect(record(host="127.0.0.1", port=_closed_port()))
        await _wait_for(events, 2)

        assert events[0].code is StatusCode.CONNECTION_REFUSED
        assert isinstance(events[0], Connected)
        assert isinstance(events[1], Disconnected)
        assert events[1].code is StatusCode.CONNECTION_REFUSED

    async def test_disconnect_reports_once(
        self, server: tuple[EndpointRecord, list[asyncio.StreamWriter]]
    ) -> None:
        rec, _ = server
        events: list[SessionEvent] = []
        session = TCPSession(events.append, timeout=2.0)
        session.connect(rec)
        await _wait_for(events, 1)

        session.disconnect()
        await _wait_for(events, 2)
        await asyncio.sleep(0.05)

        assert len(events) == 2
        assert isinstance(events[1], Disconnected)

    async def test_reconnect_silences_old_connection(
        self, server: tuple[EndpointRecord, list[asyncio.StreamWriter]]
    ) -> None:
        rec, _ = server
        events: list[SessionEvent] = []
        session = TCPSession(events.append, timeout=2.0)
        session.connect(rec)
        await _wait_for(events, 1)

        session.connect(rec)
        await _wait_for(events, 2)
        await asyncio.sleep(0.05)

        assert events == [Connected(), Connected()]
        session.disconnect()

    async def test_authenticator_failure(
        self, server: tuple[EndpointRecord, list[asyncio.StreamWriter]]
    ) -> None:
        rec, _ = server
        events: list[SessionEvent] = []

        async def reject(_: asyncio.StreamReader, __: asyncio.StreamWriter) -> None:
            raise SessionAuthError("bad credentials")

        session = TCPSession(events.append, timeout=2.0, authenticator=reject)
        session.connect(rec)
        session.logon()
        await _wait_for(events, 3)

        assert events[1] == Authenticated(code=StatusCode.AUTH_ERROR, detail="bad credentials")
        assert isinstance(events[2], Disconnected)

    async def test_ipv6_literal(self) -> None:
        async def handle(_: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
            writer.close()

        try:
            srv = await asyncio.start_server(handle, "::1", 0)
        except OSError:
            pytest.skip("IPv6 loopback not available")
        port = srv.sockets[0].getsockname()[1]
        events: list[SessionEvent] = []
        session = TCPSession(events.append, timeout=2.0)
        try:
            session.connect(EndpointRecord.parse(f"[::1]:{port}"))
            await _wait_for(events, 1)
        finally:
            session.disconnect()
            srv.close()
            await srv.wait_closed()

        assert events[0] == Connected()


async def _wait_for_writers(writers: list[asyncio.StreamWriter]) -> None:
    async def poll() -> None:
        while not writers:
            await asyncio.sleep(0.01)

    await asyncio.wait_for(poll(), 2.0)


@pytest.fixture()
async def ws_server() -> AsyncIterator[EndpointRecord]:
    """Local WebSocket endpoint.

    ``/`` echoes until the client leaves, ``/bye`` closes right after the
    handshake, ``/auth`` answers 401 and any other path 404.
    """

    async def echo(request: web.Request) -> web.WebSocketResponse:
        ws = web.WebSocketResponse()
        await ws.prepare(request)
        async for msg in ws:
            await ws.send_str(msg.data)
        return ws

    async def bye(request: web.Request) -> web.WebSocketResponse:
        ws = web.WebSocketResponse()
        await ws.prepare(request)
        await ws.close()
        return ws

    async def auth(_: web.Request) -> web.Response:
        return web.Response(status=401)

    app = web.Application()
    app.router.add_get("/", echo)
    app.router.add_get("/bye", bye)
    app.router.add_get("/auth", auth)
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "127.0.0.1", 0)
    await site.start()
    host, port = runner.addresses[0][:2]
    try:
        yield record(host=host, port=port, transport=Transport.WEBSOCKET)
    finally:
        await runner.cleanup()


class TestWebSocketSession:
    async def test_connect_logon_and_remote_close(self, ws_server: EndpointRecord) -> None:
        events: list[SessionEvent] = []
        session = WebSocketSession(events.append, timeout=2.0, path="/bye", scheme="ws")

        session.connect(ws_server)
        await _wait_for(events, 1)
        assert events[0] == Connected()

        session.logon()
        await _wait_for(events, 3)
        assert events[1] == Authenticated()
        assert events[2] == Disconnected(
            code=StatusCode.NO_CONNECTION, detail="WebSocket closed (code 1000)"
        )

    async def test_disconnect_closes_socket(self, ws_server: EndpointRecord) -> None:
        events: list[SessionEvent] = []
        session = WebSocketSession(events.append, timeout=2.0, scheme="ws")
        session.connect(ws_server)
        session.logon()
        await _wait_for(events, 2)

        session.disconnect()
        await _wait_for(events, 3)

        assert events == [
            Connected(),
            Authenticated(),
            Disconnected(code=StatusCode.NO_CONNECTION, detail="Disconnected by client"),
        ]

    async def test_unauthorized_handshake(self, ws_server: EndpointRecord) -> None:
        events: list[SessionEvent] = []
        session = WebSocketSession(events.append, timeout=2.0, path="/auth", scheme="ws")

        session.connect(ws_server)
        await _wait_for(events, 2)

        assert isinstance(events[0], Connected)
        assert events[0].code is StatusCode.AUTH_ERROR
        assert "HTTP 401" in events[0].detail
        assert isinstance(events[1], Disconnected)
        assert events[1].code is StatusCode.AUTH_ERROR

    async def test_rejected_handshake(self, ws_server: EndpointRecord) -> None:
        events: list[SessionEvent] = []
        session = WebSocketSession(events.append, timeout=2.0, path="/missing", scheme="ws")

        session.connect(ws_server)
        await _wait_for(events, 2)

        assert events[0].code is StatusCode.NO_CONNECTION
        assert "HTTP 404" in events[0].detail
        assert events[1].code is StatusCode.NO_CONNECTION

    async def test_authenticator_receives_socket(self, ws_server: EndpointRecord) -> None:
        events: list[SessionEvent] = []
        replies: list[str] = []

        async def hello(ws: aiohttp.ClientWebSocketResponse) -> None:
            await ws.send_str("hello")
            replies.append(await ws.receive_str())

        session = WebSocketSession(events.append, timeout=2.0, authenticator=hello, scheme="ws")
        session.connect(ws_server)
        session.logon()
        await _wait_for(events, 2)
        session.disconnect()
        await _wait_for(events, 3)

        assert replies == ["hello"]
        assert events[1] == Authenticated()


class TestDefaultSessionFactory:
    def test_picks_session_by_transport(self) -> None:
        factory = default_session_factory(WatchConfig(session_timeout=3.0))

        tcp = factory(record(), lambda _: None)
        ws = factory(record(port=443, transport=Transport.WEBSOCKET), lambda _: None)

        assert isinstance(tcp, TCPSession)
        assert isinstance(ws, WebSocketSession)
