"""Tests for status.py — status codes and error classification."""

from __future__ import annotations

import asyncio
import socket
import ssl

import pytest

from endpointwatch.session import SessionAuthError, SessionConnectError, SessionError
from endpointwatch.status import StatusCode, classify_error


class TestStatusCode:
    @pytest.mark.parametrize(
        "code", [StatusCode.OK, StatusCode.PENDING, StatusCode.RECONNECTING, StatusCode.INVALID]
    )
    def test_not_alerting(self, code: StatusCode) -> None:
        assert not code.is_alerting

    @pytest.mark.parametrize(
        "code",
        [StatusCode.NO_CONNECTION, StatusCode.TIMEOUT, StatusCode.AUTH_ERROR, StatusCode.ERROR],
    )
    def test_alerting(self, code: StatusCode) -> None:
        assert code.is_alerting


class TestClassifyError:
    def test_none_is_ok(self) -> None:
        assert classify_error(None).code is StatusCode.OK

    @pytest.mark.parametrize(
        ("err", "expected"),
        [
            (TimeoutError(), StatusCode.TIMEOUT),
            (asyncio.TimeoutError(), StatusCode.TIMEOUT),
            (socket.gaierror(-2, "Name or service not known"), StatusCode.DNS_ERROR),
            (ssl.SSLError(1, "handshake failure"), StatusCode.TLS_ERROR),
            (ConnectionRefusedError(111, "refused"), StatusCode.CONNECTION_REFUSED),
            (ConnectionResetError(104, "reset"), StatusCode.NO_CONNECTION),
            (SessionAuthError("denied"), StatusCode.AUTH_ERROR),
            (SessionConnectError("handshake HTTP 502"), StatusCode.NO_CONNECTION),
            (RuntimeError("boom"), StatusCode.ERROR),
        ],
    )
    def test_classification(self, err: BaseException, expected: StatusCode) -> None:
        assert classify_error(err).code is expected

    def test_session_error_detail(self) -> None:
        result = classify_error(SessionAuthError("denied"))

        assert result.detail == "denied"

    def test_wrapped_cause(self) -> None:
        try:
            try:
                raise ConnectionRefusedError(111, "refused")
            except ConnectionRefusedError as e:
                raise SessionError("connect failed") from e
        except SessionError as err:
            result = classify_error(err)

        assert result.code is StatusCode.CONNECTION_REFUSED
