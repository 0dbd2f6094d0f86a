"""Public request context API for shared service packages."""

from .request import (
    CORRELATION_ID_BACKGROUND,
    CORRELATION_ID_SHUT_DOWN,
    CORRELATION_ID_START_UP,
    RequestContext,
    background,
    correlation_id,
    get_current,
    new,
    reset_current,
    set_current,
    shut_down,
    start_up,
    test,
    use,
    with_correlation_id,
    with_correlation_id_append,
    with_test,
)

__all__ = [
    "CORRELATION_ID_BACKGROUND",
    "CORRELATION_ID_SHUT_DOWN",
    "CORRELATION_ID_START_UP",
    "RequestContext",
    "background",
    "correlation_id",
    "get_current",
    "new",
    "reset_current",
    "set_current",
    "shut_down",
    "start_up",
    "test",
    "use",
    "with_correlation_id",
    "with_correlation_id_append",
    "with_test",
]
