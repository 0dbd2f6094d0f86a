"""Status errors carrying an HTTP status code.

A ``Status`` is raised wherever a failure should surface to an HTTP caller
with a specific code. It records where it was created, an optional cause and
optional field-level items (for example schema validation failures).
"""

from __future__ import annotations

import json
import sys
from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Any, Sequence


@dataclass(frozen=True)
class Item:
    """One field-level detail attached to a status."""

    field: str | None
    message: str

    def to_dict(self) -> dict[str, str]:
        payload: dict[str, str] = {}
        if self.field:
            payload["field"] = self.field
        payload["message"] = self.message
        return payload


@dataclass
class Status(Exception):
    """Error value with HTTP status code, message, optional cause and items."""

    code: int
    message: str
    at: str = ""
    cause: BaseException | None = None
    items: list[Item] = field(default_factory=list)

    def __post_init__(self) -> None:
        super().__init__(self.message)
        if self.cause is not None:
            self.__cause__ = self.cause

    def __str__(self) -> str:
        rendered_items = [item.to_dict() for item in self.items]
        text = (
            f"Code: {self.code}, Message: {json.dumps(self.message)}, "
            f"At: {json.dumps(self.at)}, Items: {rendered_items}"
        )
        if self.cause is not None:
            text = f"{text}, Cause: {self.cause!r}"
        return text

    def __hash__(self) -> int:
        return id(self)

    def render_items(self) -> bytes | None:
        """Return items as JSON bytes, or ``None`` when there are none."""
        if not self.items:
            return None
        return json.dumps(
            [item.to_dict() for item in self.items], separators=(",", ":")
        ).encode("utf-8")

    def to_dict(self) -> dict[str, Any]:
        """Return the response body shape for this status."""
        payload: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.items:
            payload["items"] = [item.to_dict() for item in self.items]
        return payload


def new_status(code: int, message: str = "") -> Status:
    """Create a status with code and message."""
    return _new_status(None, code, message, None)


def statusf(code: int, fmt: str, *args: object) -> Status:
    """Create a status with code and ``%``-formatted message."""
    message = fmt % args if args else fmt
    return _new_status(None, code, message, None)


def new_status_with_cause(
    cause: BaseException | None, code: int, message: str = ""
) -> Status:
    """Create a status recording the error that caused it."""
    return _new_status(cause, code, message, None)


def new_status_with_items(
    code: int, message: str, items: Sequence[Item] | None
) -> Status:
    """Create a status with field-level items."""
    return _new_status(None, code, message, items)


def status_code(err: BaseException | None) -> int:
    """Return the status code of ``err``, or zero when it is not a status."""
    if isinstance(err, Status):
        return err.code
    return 0


def is_status(err: BaseException | None) -> bool:
    return isinstance(err, Status)


def status_text(code: int) -> str:
    """Return the standard reason phrase for ``code``, or an empty string."""
    try:
        return HTTPStatus(code).phrase
    except ValueError:
        return ""


def _new_status(
    cause: BaseException | None,
    code: int,
    message: str,
    items: Sequence[Item] | None,
) -> Status:
    text = status_text(code)
    if message:
        text = f"{text}: {message}" if text else message
    return Status(
        code=int(code),
        message=text,
        at=_caller_location(depth=3),
        cause=cause,
        items=list(items or []),
    )


def _caller_location(depth: int) -> str:
    """Return ``module.function:line`` for the frame ``depth`` levels up."""
    try:
        frame = sys._getframe(depth)
    except ValueError:
        return ""
    module = frame.f_globals.get("__name__", "")
    return f"{module}.{frame.f_code.co_name}:{frame.f_lineno}"
