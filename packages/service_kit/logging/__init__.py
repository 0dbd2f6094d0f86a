"""Public logging API for shared services.

This package wraps Python's ``logging`` module with opinionated defaults for
stdout emission, request context propagation and structured fields.
"""

from .client import LogClient, LogConfig, StructuredLogger, new_log_client
from .config import NOTICE, ContextFilter, JsonFormatter, PlainFormatter, configure_logging
from .fields import (
    Field,
    fmt_any,
    fmt_anys,
    fmt_bool,
    fmt_bools,
    fmt_byte,
    fmt_bytes,
    fmt_duration,
    fmt_durations,
    fmt_error,
    fmt_fields,
    fmt_float,
    fmt_floats,
    fmt_float64,
    fmt_float64s,
    fmt_int,
    fmt_ints,
    fmt_log,
    fmt_string,
    fmt_strings,
    fmt_time,
    fmt_times,
)
from .mock import LogEntry, MockLogClient

__all__ = [
    "NOTICE",
    "ContextFilter",
    "Field",
    "JsonFormatter",
    "LogClient",
    "LogConfig",
    "LogEntry",
    "MockLogClient",
    "PlainFormatter",
    "StructuredLogger",
    "configure_logging",
    "fmt_any",
    "fmt_anys",
    "fmt_bool",
    "fmt_bools",
    "fmt_byte",
    "fmt_bytes",
    "fmt_duration",
    "fmt_durations",
    "fmt_error",
    "fmt_fields",
    "fmt_float",
    "fmt_floats",
    "fmt_float64",
    "fmt_float64s",
    "fmt_int",
    "fmt_ints",
    "fmt_log",
    "fmt_string",
    "fmt_strings",
    "fmt_time",
    "fmt_times",
    "new_log_client",
]
