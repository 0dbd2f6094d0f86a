"""Response rendering with context headers."""

from __future__ import annotations

from typing import Any, Mapping

from fastapi.responses import JSONResponse, Response

from packages.service_kit.context import RequestContext
from packages.service_kit.errors import Status, exception_to_status

from .headers import TEST_VALUE_DEFAULT, HeadersClient


def set_headers_incl_defaults(
    ctx: RequestContext,
    headers_client: HeadersClient,
    response: Response,
    headers: Mapping[str, str] | None = None,
) -> dict[str, str]:
    """Set context headers plus ``headers`` on ``response``.

    Explicit headers override the defaults. Returns the merged mapping.
    """
    merged = {headers_client.correlation_id_key: ctx.correlation_id}
    if ctx.test:
        merged[headers_client.test_key] = TEST_VALUE_DEFAULT
    merged.update(headers or {})
    for key, value in merged.items():
        response.headers[key] = value
    return merged


def render_json(
    ctx: RequestContext,
    headers_client: HeadersClient,
    data: Any,
    *,
    status_code: int = 200,
    headers: Mapping[str, str] | None = None,
) -> JSONResponse:
    response = JSONResponse(content=data, status_code=status_code)
    set_headers_incl_defaults(ctx, headers_client, response, headers)
    return response


def render_status(
    ctx: RequestContext,
    headers_client: HeadersClient,
    status: Status,
    *,
    headers: Mapping[str, str] | None = None,
) -> JSONResponse:
    """Render a status as its JSON body with its HTTP code."""
    return render_json(
        ctx,
        headers_client,
        status.to_dict(),
        status_code=status.code,
        headers=headers,
    )


def render_error(
    ctx: RequestContext,
    headers_client: HeadersClient,
    exc: BaseException,
) -> JSONResponse:
    return render_status(ctx, headers_client, exception_to_status(exc))
