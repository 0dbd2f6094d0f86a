"""Tests for Status errors and exception normalization."""

from __future__ import annotations

import json
from http import HTTPStatus

import pytest

from packages.service_kit.errors import (
    Item,
    Status,
    exception_to_status,
    is_status,
    new_status,
    new_status_with_cause,
    new_status_with_items,
    status_code,
    status_text,
    statusf,
)


def test_new_status_prefixes_reason_phrase() -> None:
    """Messages should start with the standard phrase for the code."""
    status = new_status(HTTPStatus.BAD_REQUEST, "missing name")
    assert status.code == 400
    assert status.message == "Bad Request: missing name"
    assert status.cause is None
    assert status.items == []


def test_new_status_without_message_uses_phrase_only() -> None:
    """An empty message should leave only the reason phrase."""
    assert new_status(404).message == "Not Found"


def test_new_status_with_unknown_code_keeps_message() -> None:
    """Unknown codes have no phrase, so the message stands alone."""
    status = new_status(599, "custom")
    assert status.code == 599
    assert status.message == "custom"
    assert status_text(599) == ""


def test_new_status_records_caller_location() -> None:
    """at should name the calling function and line."""
    status = new_status(500)
    module, _, line = status.at.rpartition(":")
    assert module.endswith("test_new_status_records_caller_location")
    assert line.isdigit()


def test_statusf_formats_message() -> None:
    """statusf should apply %-formatting to the message."""
    status = statusf(409, "user %s exists %d times", "ana", 2)
    assert status.message == "Conflict: user ana exists 2 times"
    assert status.at.rpartition(":")[0].endswith("test_statusf_formats_message")


def test_new_status_with_cause_chains_exception() -> None:
    """The cause should be stored and set as the exception cause."""
    cause = ValueError("boom")
    status = new_status_with_cause(cause, 502, "upstream")
    assert status.cause is cause
    assert status.__cause__ is cause
    assert str(status).endswith(", Cause: ValueError('boom')")


def test_new_status_with_items_renders_items() -> None:
    """Items should render as compact JSON omitting empty fields."""
    status = new_status_with_items(
        400,
        "Failed schema validation",
        [Item(field="name", message="required"), Item(field=None, message="bad")],
    )
    assert json.loads(status.render_items() or b"") == [
        {"field": "name", "message": "required"},
        {"message": "bad"},
    ]
    assert status.to_dict() == {
        "code": 400,
        "message": "Bad Request: Failed schema validation",
        "items": [{"field": "name", "message": "required"}, {"message": "bad"}],
    }


def test_item_positional_arguments_are_field_then_message() -> None:
    """Items built positionally should take the field first."""
    item = Item("name", "is required")
    assert item.field == "name"
    assert item.message == "is required"
    assert item.to_dict() == {"field": "name", "message": "is required"}


def test_render_items_is_none_without_items() -> None:
    """Statuses without items render no items."""
    status = new_status(400, "x")
    assert status.render_items() is None
    assert "items" not in status.to_dict()


def test_str_includes_code_message_and_location() -> None:
    """str() should list code, quoted message, location and items."""
    status = Status(code=418, message="I'm a Teapot: short", at="mod.fn:3")
    assert str(status) == 'Code: 418, Message: "I\'m a Teapot: short", At: "mod.fn:3", Items: []'


def test_status_code_and_is_status() -> None:
    """Helpers should only recognize Status errors."""
    status = new_status(403)
    assert status_code(status) == 403
    assert status_code(RuntimeError("x")) == 0
    assert status_code(None) == 0
    assert is_status(status) is True
    assert is_status(RuntimeError("x")) is False


def test_status_can_be_raised_and_caught() -> None:
    """Status should behave as a regular exception."""
    with pytest.raises(Status) as exc_info:
        raise new_status(401, "token expired")
    assert exc_info.value.code == 401


@pytest.mark.parametrize(
    ("exc", "expected"),
    [
        (ValueError("bad"), 400),
        (KeyError("missing"), 404),
        (PermissionError("denied"), 403),
        (TimeoutError("slow"), 504),
        (ConnectionError("down"), 503),
        (RuntimeError("other"), 500),
    ],
)
def test_exception_to_status_maps_builtin_exceptions(exc: BaseException, expected: int) -> None:
    """Builtin exceptions should map to conventional HTTP codes."""
    status = exception_to_status(exc)
    assert status.code == expected
    assert status.cause is exc


def test_exception_to_status_passes_status_through() -> None:
    """A Status should be returned unchanged."""
    status = new_status(422, "x")
    assert exception_to_status(status) is status
