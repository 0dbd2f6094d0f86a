"""Outbound HTTP clients over httpx that forward the request context.

Transport failures and non-success responses are raised as ``Status`` errors
so callers handle downstream failures the same way as local ones.
"""

from __future__ import annotations

from collections.abc import Mapping
from http import HTTPStatus
from typing import Any

import httpx

from packages.service_kit.errors import Status, new_status, new_status_with_cause

from .headers import HeadersClient


def _response_text(response: httpx.Response) -> str:
    """Return response text without raising secondary decode errors."""
    try:
        return response.text
    except UnicodeDecodeError:
        return ""


def _transport_status(exc: httpx.RequestError, method: str, url: str) -> Status:
    request = exc.request if _has_request(exc) else None
    request_url = str(request.url) if request is not None else url
    request_method = request.method if request is not None else method.upper()
    code = (
        HTTPStatus.GATEWAY_TIMEOUT
        if isinstance(exc, httpx.TimeoutException)
        else HTTPStatus.SERVICE_UNAVAILABLE
    )
    return new_status_with_cause(
        exc, code, f"HTTP request failed for {request_method} {request_url}"
    )


def _has_request(exc: httpx.RequestError) -> bool:
    try:
        exc.request
    except RuntimeError:
        return False
    return True


def _response_status(response: httpx.Response) -> Status:
    return new_status(
        response.status_code,
        f"{response.request.method} {response.request.url}: {_response_text(response)}",
    )


def _decode_json(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError as exc:
        raise new_status_with_cause(
            exc,
            HTTPStatus.BAD_GATEWAY,
            f"Invalid JSON response for {response.request.method} {response.request.url}",
        ) from exc


class HttpClient:
    """Synchronous wrapper over ``httpx.Client``."""

    def __init__(
        self,
        headers_client: HeadersClient,
        *,
        base_url: str = "",
        timeout_seconds: float = 10.0,
        headers: Mapping[str, str] | None = None,
        transport: httpx.BaseTransport | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        self._headers = headers_client
        self._owns_client = client is None
        self._client = client or httpx.Client(
            base_url=base_url,
            timeout=timeout_seconds,
            headers=dict(headers or {}),
            transport=transport,
        )

    def close(self) -> None:
        """Close the underlying client when this wrapper created it."""
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> HttpClient:
        """Return this client for use in a with block."""
        return self

    def __exit__(self, *_: object) -> None:
        """Close the client on leaving the with block."""
        self.close()

    def request(
        self,
        method: str,
        url: str,
        *,
        raise_for_status: bool = True,
        **kwargs: Any,
    ) -> httpx.Response:
        """Issue one request carrying the current correlation and test headers."""
        kwargs["headers"] = {**self._headers.outbound_headers(), **dict(kwargs.get("headers") or {})}
        try:
            response = self._client.request(method=method, url=url, **kwargs)
        except httpx.RequestError as exc:
            raise _transport_status(exc, method, url) from exc

        if raise_for_status and response.is_error:
            raise _response_status(response)
        return response

    def get_json(self, url: str, **kwargs: Any) -> Any:
        """GET ``url`` and decode the JSON response body."""
        return _decode_json(self.request("GET", url, **kwargs))

    def post_json(self, url: str, *, json: Any, **kwargs: Any) -> Any:
        """POST ``json`` to ``url`` and decode the JSON response body."""
        return _decode_json(self.request("POST", url, json=json, **kwargs))


class AsyncHttpClient:
    """Asynchronous wrapper over ``httpx.AsyncClient``."""

    def __init__(
        self,
        headers_client: HeadersClient,
        *,
        base_url: str = "",
        timeout_seconds: float = 10.0,
        headers: Mapping[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._headers = headers_client
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout_seconds,
            headers=dict(headers or {}),
            transport=transport,
        )

    async def aclose(self) -> None:
        """Close the underlying client when this wrapper created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> AsyncHttpClient:
        """Return this client for use in an async with block."""
        return self

    async def __aexit__(self, *_: object) -> None:
        """Close the client on leaving the async with block."""
        await self.aclose()

    async def request(
        self,
        method: str,
        url: str,
        *,
        raise_for_status: bool = True,
        **kwargs: Any,
    ) -> httpx.Response:
        """Issue one request carrying the current correlation and test headers."""
        kwargs["headers"] = {**self._headers.outbound_headers(), **dict(kwargs.get("headers") or {})}
        try:
            response = await self._client.request(method=method, url=url, **kwargs)
        except httpx.RequestError as exc:
            raise _transport_status(exc, method, url) from exc

        if raise_for_status and response.is_error:
            raise _response_status(response)
        return response

    async def get_json(self, url: str, **kwargs: Any) -> Any:
        """GET ``url`` and decode the JSON response body."""
        return _decode_json(await self.request("GET", url, **kwargs))

    async def post_json(self, url: str, *, json: Any, **kwargs: Any) -> Any:
        """POST ``json`` to ``url`` and decode the JSON response body."""
        return _decode_json(await self.request("POST", url, json=json, **kwargs))
