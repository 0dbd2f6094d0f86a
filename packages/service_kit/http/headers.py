"""Header names used to carry request context across services."""

from __future__ import annotations

from packages.service_kit.context import RequestContext, get_current
from packages.service_kit.logging import StructuredLogger, fmt_string

CORRELATION_ID_KEY_DEFAULT = "X-Correlation-Id"
TEST_KEY_DEFAULT = "X-Test"
TEST_VALUE_DEFAULT = "true"


class HeadersClient:
    """Resolve correlation and test header names for one service.

    A service name namespaces the headers, for example
    ``X-Billing-Correlation-Id`` for service ``Billing``.
    """

    def __init__(self, service_name: str = "") -> None:
        self.service_name = service_name
        self._correlation_id_key = _header_key(service_name, "Correlation-Id")
        self._test_key = _header_key(service_name, "Test")

    @property
    def correlation_id_key(self) -> str:
        return self._correlation_id_key

    @property
    def test_key(self) -> str:
        return self._test_key

    def outbound_headers(self, ctx: RequestContext | None = None) -> dict[str, str]:
        """Return headers forwarding ``ctx`` (or the current context) downstream."""
        ctx = ctx if ctx is not None else get_current()
        headers = {self._correlation_id_key: ctx.correlation_id}
        if ctx.test:
            headers[self._test_key] = TEST_VALUE_DEFAULT
        return headers


def new_headers_client(
    ctx: RequestContext, log_client: StructuredLogger, service_name: str = ""
) -> HeadersClient:
    log_client.info("Initializing", fmt_string(service_name, "service_name"), ctx=ctx)
    client = HeadersClient(service_name)
    log_client.info("Initialized", ctx=ctx)
    return client


def _header_key(service_name: str, suffix: str) -> str:
    if service_name:
        return f"X-{service_name}-{suffix}"
    return f"X-{suffix}"
