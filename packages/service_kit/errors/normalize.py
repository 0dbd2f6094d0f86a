"""Exception normalization into ``Status`` errors."""

from __future__ import annotations

from http import HTTPStatus

from .status import Status, new_status_with_cause


def exception_to_status(exc: BaseException) -> Status:
    """Normalize a Python exception into a ``Status``.

    Statuses pass through unchanged. The mapping for other exceptions is
    generic; services can map domain errors before falling back to it.
    """
    if isinstance(exc, Status):
        return exc

    if isinstance(exc, ValueError):
        return new_status_with_cause(exc, HTTPStatus.BAD_REQUEST, str(exc))

    if isinstance(exc, KeyError):
        return new_status_with_cause(exc, HTTPStatus.NOT_FOUND, str(exc))

    if isinstance(exc, PermissionError):
        return new_status_with_cause(exc, HTTPStatus.FORBIDDEN, str(exc))

    if isinstance(exc, TimeoutError):
        return new_status_with_cause(exc, HTTPStatus.GATEWAY_TIMEOUT, str(exc))

    if isinstance(exc, ConnectionError):
        return new_status_with_cause(exc, HTTPStatus.SERVICE_UNAVAILABLE, str(exc))

    return new_status_with_cause(exc, HTTPStatus.INTERNAL_SERVER_ERROR, "")
