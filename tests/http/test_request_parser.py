"""Tests for inbound request body parsing."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest
from fastapi import Request

from packages.service_kit.context import RequestContext
from packages.service_kit.errors import Status
from packages.service_kit.http import ParserClient, new_parser_client
from packages.service_kit.logging import MockLogClient


def _request(body: bytes = b"", *, disconnect: bool = False) -> Request:
    """Create a minimal Starlette request object for parser tests."""
    sent = False
    scope: dict[str, Any] = {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": "POST",
        "scheme": "http",
        "path": "/",
        "raw_path": b"/",
        "query_string": b"",
        "headers": [(b"host", b"test.local")],
        "client": ("127.0.0.1", 12345),
        "server": ("127.0.0.1", 80),
        "root_path": "",
        "request_context": RequestContext("parser-cid"),
    }

    async def receive() -> dict[str, Any]:
        nonlocal sent
        if sent or disconnect:
            return {"type": "http.disconnect"}
        sent = True
        return {"type": "http.request", "body": body, "more_body": False}

    return Request(scope, receive=receive)


def test_read_request_body_returns_bytes_and_logs() -> None:
    """The body should be returned and logged with the bound context."""
    log = MockLogClient()
    parser = ParserClient(log)

    body = asyncio.run(parser.read_request_body(_request(b'{"a":1}')))

    assert body == b'{"a":1}'
    assert log.messages() == ["Reading", "Read"]
    assert log.entries[1].fields[0].value == '{"a":1}'
    assert log.entries[1].ctx.correlation_id == "parser-cid"


def test_read_request_body_returns_empty_bytes_for_missing_body() -> None:
    """A missing body should read as empty bytes."""
    parser = ParserClient(MockLogClient())
    assert asyncio.run(parser.read_request_body(_request())) == b""


def test_read_request_body_maps_disconnect_to_malformed_body() -> None:
    """A failed read should surface as a 400 status."""
    parser = ParserClient(MockLogClient())
    with pytest.raises(Status) as exc_info:
        asyncio.run(parser.read_request_body(_request(disconnect=True)))
    assert exc_info.value.code == 400
    assert exc_info.value.message == "Bad Request: Malformed body"


def test_read_json_body_decodes_payload() -> None:
    """read_json_body should decode JSON bodies."""
    parser = ParserClient(MockLogClient())
    assert asyncio.run(parser.read_json_body(_request(b'{"name":"ana"}'))) == {"name": "ana"}


@pytest.mark.parametrize(
    ("body", "message"),
    [
        (b"", "Bad Request: BODY_MUST_EXIST"),
        (b"{not json", "Bad Request: Body is not valid JSON"),
    ],
)
def test_read_json_body_rejects_missing_or_invalid_json(body: bytes, message: str) -> None:
    """Empty and undecodable bodies should raise 400 statuses."""
    parser = ParserClient(MockLogClient())
    with pytest.raises(Status) as exc_info:
        asyncio.run(parser.read_json_body(_request(body)))
    assert exc_info.value.message == message


def test_new_parser_client_logs_initialization() -> None:
    """Construction should be logged."""
    log = MockLogClient()
    assert isinstance(new_parser_client(RequestContext("cid"), log), ParserClient)
    assert log.messages() == ["Initializing", "Initialized"]
