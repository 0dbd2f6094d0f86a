"""Public shared HTTP API."""

from .client import AsyncHttpClient, HttpClient
from .headers import (
    CORRELATION_ID_KEY_DEFAULT,
    TEST_KEY_DEFAULT,
    TEST_VALUE_DEFAULT,
    HeadersClient,
    new_headers_client,
)
from .middleware import (
    AccessLogMiddleware,
    LogInfoRequestsMiddleware,
    PopulateContextMiddleware,
    RecovererMiddleware,
    RequestIdMiddleware,
    TimeoutMiddleware,
    build_request_context,
    install_defaults,
    scope_context,
)
from .parser import ParserClient, new_parser_client
from .render import render_error, render_json, render_status, set_headers_incl_defaults
from .server import create_app, run_app

__all__ = [
    "CORRELATION_ID_KEY_DEFAULT",
    "TEST_KEY_DEFAULT",
    "TEST_VALUE_DEFAULT",
    "AccessLogMiddleware",
    "AsyncHttpClient",
    "HeadersClient",
    "HttpClient",
    "LogInfoRequestsMiddleware",
    "ParserClient",
    "PopulateContextMiddleware",
    "RecovererMiddleware",
    "RequestIdMiddleware",
    "TimeoutMiddleware",
    "build_request_context",
    "create_app",
    "install_defaults",
    "new_headers_client",
    "new_parser_client",
    "render_error",
    "render_json",
    "render_status",
    "run_app",
    "scope_context",
    "set_headers_incl_defaults",
]
