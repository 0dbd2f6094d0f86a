"""Request-scoped context values for correlation and test traffic.

A ``RequestContext`` is an immutable pair of correlation ID and test flag. The
current value is held in a ``ContextVar`` so it follows sync calls, copied
thread contexts and asyncio tasks without manual threading through callers.
"""

from __future__ import annotations

import uuid
from contextlib import contextmanager
from contextvars import ContextVar, Token
from dataclasses import dataclass, replace
from typing import Iterator

CORRELATION_ID_BACKGROUND = "BACKGROUND"
CORRELATION_ID_START_UP = "START_UP"
CORRELATION_ID_SHUT_DOWN = "SHUT_DOWN"


@dataclass(frozen=True)
class RequestContext:
    """Correlation ID and test flag for one unit of work."""

    correlation_id: str = ""
    test: bool = False


def background() -> RequestContext:
    """Return a context for background work."""
    return RequestContext(correlation_id=CORRELATION_ID_BACKGROUND)


def start_up() -> RequestContext:
    """Return a context for process start-up."""
    return RequestContext(correlation_id=CORRELATION_ID_START_UP)


def shut_down() -> RequestContext:
    """Return a context for process shut-down."""
    return RequestContext(correlation_id=CORRELATION_ID_SHUT_DOWN)


def new(parent: RequestContext | None = None) -> RequestContext:
    """Return a context with a fresh correlation ID.

    The parent's correlation ID is appended so log lines can be grouped across
    the chain of work, and the parent's test flag is inherited.
    """
    ctx = RequestContext(correlation_id=str(uuid.uuid4()))
    if parent is not None:
        ctx = with_correlation_id_append(ctx, correlation_id(parent))
        ctx = with_test(ctx, test(parent))
    return ctx


def correlation_id(ctx: RequestContext | None) -> str:
    if ctx is None:
        return ""
    return ctx.correlation_id


def with_correlation_id(ctx: RequestContext, value: str) -> RequestContext:
    return replace(ctx, correlation_id=value)


def with_correlation_id_append(ctx: RequestContext, value: str) -> RequestContext:
    """Append ``value`` to the existing correlation ID, comma separated.

    A ``BACKGROUND`` correlation ID is replaced rather than extended.
    """
    existing = correlation_id(ctx)
    if existing == CORRELATION_ID_BACKGROUND or not existing:
        return with_correlation_id(ctx, value)
    if not value:
        return ctx
    return with_correlation_id(ctx, f"{existing},{value}")


def test(ctx: RequestContext | None) -> bool:
    if ctx is None:
        return False
    return ctx.test


def with_test(ctx: RequestContext, value: bool) -> RequestContext:
    return replace(ctx, test=value)


_CURRENT: ContextVar[RequestContext | None] = ContextVar(
    "service_kit_request_context", default=None
)


def get_current() -> RequestContext:
    """Return the bound request context, or a background context."""
    ctx = _CURRENT.get()
    if ctx is None:
        return background()
    return ctx


def set_current(ctx: RequestContext) -> Token[RequestContext | None]:
    """Bind ``ctx`` as current and return a token for ``reset_current``."""
    return _CURRENT.set(ctx)


def reset_current(token: Token[RequestContext | None]) -> None:
    _CURRENT.reset(token)


@contextmanager
def use(ctx: RequestContext) -> Iterator[RequestContext]:
    """Bind ``ctx`` as the current request context for a block."""
    token = _CURRENT.set(ctx)
    try:
        yield ctx
    finally:
        _CURRENT.reset(token)
