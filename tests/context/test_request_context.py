"""Tests for request context construction and propagation."""

from __future__ import annotations

import asyncio
import uuid

import pytest

from packages.service_kit import context
from packages.service_kit.context import (
    CORRELATION_ID_BACKGROUND,
    CORRELATION_ID_SHUT_DOWN,
    CORRELATION_ID_START_UP,
    RequestContext,
)
from packages.service_kit.context import test as is_test


@pytest.mark.parametrize(
    ("factory", "expected"),
    [
        (context.background, CORRELATION_ID_BACKGROUND),
        (context.start_up, CORRELATION_ID_START_UP),
        (context.shut_down, CORRELATION_ID_SHUT_DOWN),
    ],
)
def test_lifecycle_contexts_use_constant_correlation_ids(factory, expected: str) -> None:
    """Lifecycle factories should carry their constant ID and no test flag."""
    ctx = factory()
    assert context.correlation_id(ctx) == expected
    assert is_test(ctx) is False


def test_new_without_parent_has_uuid_correlation_id() -> None:
    """new() should generate a UUID4 correlation ID."""
    ctx = context.new()
    assert uuid.UUID(ctx.correlation_id).version == 4
    assert ctx.test is False


def test_new_appends_parent_correlation_id_and_inherits_test() -> None:
    """new(parent) should chain the parent's ID and copy its test flag."""
    parent = RequestContext(correlation_id="parent-id", test=True)
    ctx = context.new(parent)
    generated, appended = ctx.correlation_id.split(",")
    assert uuid.UUID(generated).version == 4
    assert appended == "parent-id"
    assert ctx.test is True


def test_new_appends_background_parent_id() -> None:
    """A background parent ID is appended after the fresh ID."""
    ctx = context.new(context.background())
    assert ctx.correlation_id.endswith(",BACKGROUND")


def test_accessors_handle_missing_context() -> None:
    """Accessors should return empty values for a missing context."""
    assert context.correlation_id(None) == ""
    assert is_test(None) is False
    assert is_test(RequestContext(correlation_id="x", test=True)) is True


def test_with_correlation_id_replaces_value() -> None:
    """with_correlation_id should return a copy with the new ID."""
    original = RequestContext(correlation_id="a", test=True)
    updated = context.with_correlation_id(original, "b")
    assert updated == RequestContext(correlation_id="b", test=True)
    assert original.correlation_id == "a"


@pytest.mark.parametrize(
    ("existing", "value", "expected"),
    [
        ("a", "b", "a,b"),
        ("a,b", "c", "a,b,c"),
        (CORRELATION_ID_BACKGROUND, "b", "b"),
        ("", "b", "b"),
        ("a", "", "a"),
    ],
)
def test_with_correlation_id_append(existing: str, value: str, expected: str) -> None:
    """Appending should join with commas and replace background IDs."""
    ctx = context.with_correlation_id_append(RequestContext(correlation_id=existing), value)
    assert ctx.correlation_id == expected


def test_with_test_sets_flag() -> None:
    """with_test should return a copy with the test flag replaced."""
    ctx = context.with_test(context.start_up(), True)
    assert ctx.test is True
    assert ctx.correlation_id == CORRELATION_ID_START_UP


def test_get_current_defaults_to_background() -> None:
    """Without a bound context the current one should be background."""
    assert context.get_current() == context.background()


def test_use_binds_and_restores_current_context() -> None:
    """use() should bind a context for the block and restore the previous one."""
    ctx = RequestContext(correlation_id="bound")
    with context.use(ctx) as bound:
        assert bound is ctx
        assert context.get_current() is ctx
    assert context.get_current() == context.background()


def test_set_and_reset_current() -> None:
    """set_current should return a token that reset_current restores from."""
    token = context.set_current(RequestContext(correlation_id="manual"))
    try:
        assert context.get_current().correlation_id == "manual"
    finally:
        context.reset_current(token)
    assert context.get_current() == context.background()


def test_current_context_is_isolated_between_tasks() -> None:
    """Each asyncio task should see the context bound inside it."""

    async def worker(name: str) -> str:
        with context.use(RequestContext(correlation_id=name)):
            await asyncio.sleep(0)
            return context.get_current().correlation_id

    async def main() -> list[str]:
        return list(await asyncio.gather(worker("one"), worker("two")))

    assert asyncio.run(main()) == ["one", "two"]
