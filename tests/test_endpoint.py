"""Tests for endpoint.py — records, identities and dedup."""

from __future__ import annotations

import pytest

from endpointwatch.endpoint import EndpointIdentity, EndpointRecord, Transport, dedupe_by_identity


class TestEndpointRecord:
    def test_parse(self) -> None:
        rec = EndpointRecord.parse("203.0.113.7:27017", "fra1")

        assert rec == EndpointRecord("203.0.113.7", 27017, "fra1", Transport.TCP)
        assert rec.address == "203.0.113.7:27017"

    def test_parse_ipv6(self) -> None:
        rec = EndpointRecord.parse("[2001:db8::1]:443", transport=Transport.WEBSOCKET)

        assert rec.host == "[2001:db8::1]"
        assert rec.port == 443

    @pytest.mark.parametrize(
        "address",
        ["", "no-port", ":27017", "host:", "host:abc", "host:0", "host:70000", "bad host:1"],
    )
    def test_parse_invalid(self, address: str) -> None:
        with pytest.raises(ValueError):
            EndpointRecord.parse(address)

    def test_identity_ignores_port_and_locality(self) -> None:
        a = EndpointRecord("ext1.example.net", 27017, "fra1")
        b = EndpointRecord("ext1.example.net", 27018, "ams1")

        assert a.identity == b.identity
        assert str(a.identity) == "ext1.example.net@tcp"

    def test_identity_distinguishes_transport(self) -> None:
        tcp = EndpointRecord("ext1.example.net", 27017)
        ws = EndpointRecord("ext1.example.net", 443, transport=Transport.WEBSOCKET)

        assert tcp.identity != ws.identity
        assert ws.identity == EndpointIdentity("ext1.example.net", secure=True)
        assert str(ws.identity) == "ext1.example.net@ws"

    def test_with_port(self) -> None:
        rec = EndpointRecord("ext1.example.net", 27017, "fra1", Transport.WEBSOCKET)

        moved = rec.with_port(443)

        assert moved.port == 443
        assert moved.identity == rec.identity
        assert moved.locality == "fra1"


class TestTransport:
    def test_from_secure(self) -> None:
        assert Transport.from_secure(True) is Transport.WEBSOCKET
        assert Transport.from_secure(False) is Transport.TCP
        assert Transport.WEBSOCKET.is_secure
        assert not Transport.TCP.is_secure


def test_dedupe_keeps_first() -> None:
    records = [
        EndpointRecord("a.example.net", 1),
        EndpointRecord("b.example.net", 2),
        EndpointRecord("a.example.net", 3),
        EndpointRecord("a.example.net", 4, transport=Transport.WEBSOCKET),
    ]

    assert [r.port for r in dedupe_by_identity(records)] == [1, 2, 4]
