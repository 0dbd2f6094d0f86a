"""Default ASGI middleware stack for shared services."""

from __future__ import annotations

import time
import uuid
from http import HTTPStatus
from typing import Any, Awaitable, Callable, Iterable, MutableMapping

import anyio
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.datastructures import Headers, MutableHeaders
from starlette.middleware.cors import CORSMiddleware
from starlette.middleware.gzip import GZipMiddleware

from packages.service_kit.context import (
    RequestContext,
    get_current,
    reset_current,
    set_current,
    with_correlation_id,
    with_correlation_id_append,
    with_test,
)
from packages.service_kit.errors import Status, new_status, new_status_with_cause
from packages.service_kit.logging import (
    StructuredLogger,
    fmt_any,
    fmt_duration,
    fmt_error,
    fmt_int,
    fmt_string,
)

from .headers import TEST_VALUE_DEFAULT, HeadersClient
from .render import render_status

Scope = MutableMapping[str, Any]
Message = MutableMapping[str, Any]
Receive = Callable[[], Awaitable[Message]]
Send = Callable[[Message], Awaitable[None]]
ASGIApp = Callable[[Scope, Receive, Send], Awaitable[None]]

REQUEST_ID_HEADER = "X-Request-Id"
REQUEST_CONTEXT_SCOPE_KEY = "request_context"
DEFAULT_TIMEOUT_SECONDS = 30.0

CORS_ALLOWED_METHODS = ["GET", "POST", "PUT", "DELETE", "OPTIONS", "HEAD"]
CORS_ALLOWED_HEADERS = [
    "Accept",
    "Accept-Language",
    "Authorization",
    "Content-Disposition",
    "Content-Type",
]
CORS_EXPOSED_HEADERS = ["Content-Type", "Location"]
CORS_MAX_AGE_SECONDS = 300
GZIP_COMPRESS_LEVEL = 5


def install_defaults(
    app: FastAPI,
    headers_client: HeadersClient,
    log_client: StructuredLogger,
    exclude_paths_for_log_info_requests: Iterable[str] = (),
    *,
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
) -> None:
    """Install the default middleware stack and the status handler.

    Starlette wraps later middleware around earlier middleware, so the stack
    is added innermost first.
    """
    app.add_middleware(GZipMiddleware, minimum_size=500, compresslevel=GZIP_COMPRESS_LEVEL)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=CORS_ALLOWED_METHODS,
        allow_headers=CORS_ALLOWED_HEADERS,
        expose_headers=CORS_EXPOSED_HEADERS,
        allow_credentials=True,
        max_age=CORS_MAX_AGE_SECONDS,
    )
    app.add_middleware(
        LogInfoRequestsMiddleware,
        log_client=log_client,
        exclude_paths=tuple(exclude_paths_for_log_info_requests),
    )
    app.add_middleware(PopulateContextMiddleware, headers_client=headers_client)
    app.add_middleware(
        TimeoutMiddleware,
        headers_client=headers_client,
        timeout_seconds=timeout_seconds,
    )
    app.add_middleware(RecovererMiddleware, headers_client=headers_client, log_client=log_client)
    app.add_middleware(AccessLogMiddleware, log_client=log_client)
    app.add_middleware(RequestIdMiddleware)

    async def handle_status(request: Request, exc: Exception) -> JSONResponse:
        ctx = scope_context(request.scope)
        if not isinstance(exc, Status):
            exc = new_status_with_cause(exc, HTTPStatus.INTERNAL_SERVER_ERROR)
        if exc.code >= HTTPStatus.INTERNAL_SERVER_ERROR:
            log_client.error("Responding with status", fmt_error(exc), ctx=ctx)
        else:
            log_client.info("Responding with status", fmt_any(exc.to_dict(), "status"), ctx=ctx)
        return render_status(ctx, headers_client, exc)

    app.add_exception_handler(Status, handle_status)


def scope_context(scope: Scope) -> RequestContext:
    """Return the request context bound for ``scope``."""
    ctx = scope.get(REQUEST_CONTEXT_SCOPE_KEY)
    if isinstance(ctx, RequestContext):
        return ctx
    return get_current()


class RequestIdMiddleware:
    """Ensure every request carries an ``X-Request-Id``, echoed on the response."""

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request_id = Headers(scope=scope).get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        scope["request_id"] = request_id

        async def send_wrapper(message: Message) -> None:
            if message["type"] == "http.response.start":
                headers = MutableHeaders(scope=message)
                if REQUEST_ID_HEADER not in headers:
                    headers.append(REQUEST_ID_HEADER, request_id)
            await send(message)

        await self.app(scope, receive, send_wrapper)


class AccessLogMiddleware:
    """Log method, path, status and duration of every request."""

    def __init__(self, app: ASGIApp, log_client: StructuredLogger) -> None:
        self.app = app
        self._log = log_client

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        start = time.monotonic()
        status_code = HTTPStatus.INTERNAL_SERVER_ERROR.value

        async def send_wrapper(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = int(message.get("status", 200))
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            self._log.info(
                "Request completed",
                fmt_string(scope.get("method", ""), "method"),
                fmt_string(scope.get("path", ""), "path"),
                fmt_int(status_code, "status"),
                fmt_duration(time.monotonic() - start, "duration"),
                ctx=scope_context(scope),
            )


class RecovererMiddleware:
    """Render unhandled exceptions as 500 statuses instead of dropping the connection."""

    def __init__(
        self, app: ASGIApp, headers_client: HeadersClient, log_client: StructuredLogger
    ) -> None:
        self.app = app
        self._headers = headers_client
        self._log = log_client

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        response_started = False

        async def send_wrapper(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except Exception as exc:
            ctx = scope_context(scope)
            self._log.error("Recovered from unhandled exception", fmt_error(exc), ctx=ctx)
            if response_started:
                raise
            status = new_status_with_cause(exc, HTTPStatus.INTERNAL_SERVER_ERROR)
            response = render_status(ctx, self._headers, status)
            await response(scope, receive, send)


class TimeoutMiddleware:
    """Answer 504 when a request runs longer than the configured timeout."""

    def __init__(
        self,
        app: ASGIApp,
        headers_client: HeadersClient,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self.app = app
        self._headers = headers_client
        self.timeout_seconds = timeout_seconds

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        response_started = False

        async def send_wrapper(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            with anyio.fail_after(self.timeout_seconds):
                await self.app(scope, receive, send_wrapper)
        except TimeoutError:
            if response_started:
                raise
            status = new_status(HTTPStatus.GATEWAY_TIMEOUT, "Request timed out")
            response = render_status(scope_context(scope), self._headers, status)
            await response(scope, receive, send)


class PopulateContextMiddleware:
    """Bind a request context built from inbound correlation and test headers.

    Each request gets a fresh correlation ID; inbound correlation IDs are
    appended so the caller's chain stays searchable.
    """

    def __init__(self, app: ASGIApp, headers_client: HeadersClient) -> None:
        self.app = app
        self._headers = headers_client

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        ctx = build_request_context(Headers(scope=scope), self._headers)
        scope[REQUEST_CONTEXT_SCOPE_KEY] = ctx
        token = set_current(ctx)
        try:
            await self.app(scope, receive, send)
        finally:
            reset_current(token)


def build_request_context(headers: Headers, headers_client: HeadersClient) -> RequestContext:
    ctx = with_correlation_id(RequestContext(), str(uuid.uuid4()))
    inbound = headers.getlist(headers_client.correlation_id_key)
    if inbound:
        ctx = with_correlation_id_append(ctx, ",".join(inbound))
    test_values = headers.getlist(headers_client.test_key)
    return with_test(ctx, bool(test_values) and ",".join(test_values) == TEST_VALUE_DEFAULT)


class LogInfoRequestsMiddleware:
    """Log every received request whose URL is not excluded."""

    def __init__(
        self, app: ASGIApp, log_client: StructuredLogger, exclude_paths: Iterable[str] = ()
    ) -> None:
        self.app = app
        self._log = log_client
        self._exclude = frozenset(exclude_paths)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        url = request_uri(scope)
        if url not in self._exclude:
            self._log.info(
                "Request received",
                fmt_string(url, "url"),
                fmt_string(scope.get("method", ""), "method"),
                fmt_any(dict(Headers(scope=scope).items()), "headers"),
                ctx=scope_context(scope),
            )
        await self.app(scope, receive, send)


def request_uri(scope: Scope) -> str:
    """Return path plus query string as sent by the client."""
    path = scope.get("path", "")
    query = scope.get("query_string", b"")
    if query:
        return f"{path}?{query.decode('latin-1')}"
    return path
