"""Inbound request body parsing."""

from __future__ import annotations

import json
from http import HTTPStatus
from typing import Any

from fastapi import Request
from starlette.requests import ClientDisconnect

from packages.service_kit.context import RequestContext, get_current
from packages.service_kit.errors import new_status, new_status_with_cause
from packages.service_kit.logging import StructuredLogger, fmt_bytes


class ParserClient:
    """Read request bodies with logging and status errors."""

    def __init__(self, log_client: StructuredLogger) -> None:
        self._log = log_client

    async def read_request_body(self, request: Request) -> bytes:
        """Read raw body bytes; read failures surface as 400 statuses."""
        ctx = _request_context(request)
        self._log.info("Reading", ctx=ctx)

        try:
            body = await request.body()
        except (ClientDisconnect, RuntimeError) as exc:
            raise new_status_with_cause(exc, HTTPStatus.BAD_REQUEST, "Malformed body") from exc

        self._log.info("Read", fmt_bytes(body, "body"), ctx=ctx)
        return body

    async def read_json_body(self, request: Request) -> Any:
        """Read and decode one request body as JSON."""
        body = await self.read_request_body(request)
        if not body:
            raise new_status(HTTPStatus.BAD_REQUEST, "BODY_MUST_EXIST")
        try:
            return json.loads(body)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise new_status_with_cause(exc, HTTPStatus.BAD_REQUEST, "Body is not valid JSON") from exc


def new_parser_client(ctx: RequestContext, log_client: StructuredLogger) -> ParserClient:
    log_client.info("Initializing", ctx=ctx)
    client = ParserClient(log_client)
    log_client.info("Initialized", ctx=ctx)
    return client


def _request_context(request: Request) -> RequestContext:
    """Return the context bound by middleware, falling back to the current one."""
    ctx = request.scope.get("request_context")
    if isinstance(ctx, RequestContext):
        return ctx
    return get_current()
