"""Structured log field names and field builders.

Field names are centralized so every service emits the same keys. Builders
turn arbitrary values into ``Field`` pairs whose value is JSON-ready; the
formatters decide whether fields are rendered pretty (local) or compact
(remote).
"""

from __future__ import annotations

import json
import traceback
from dataclasses import asdict, dataclass, is_dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Iterable, Sequence

TIMESTAMP = "timestamp"
SEVERITY = "severity"
LOGGER = "logger"
MESSAGE = "message"
CORRELATION_ID = "correlation_id"
TEST = "test"
SERVICE = "service"
ENVIRONMENT = "environment"
FIELDS = "fields"
EXCEPTION = "exception"
SOURCE_LOCATION = "logging.googleapis.com/sourceLocation"

ERROR_FIELD_NAME = "error"
NOT_JSON_MARSHALLABLE = "NOT JSON MARSHALLABLE"
COLOR_RESET = "\x1b[0m"


@dataclass(frozen=True)
class Field:
    """One named, JSON-ready structured log value.

    ``literal`` renders scalar values (or each list element) as raw text in
    place of JSON, for fixed-precision floats and quoted bytes.
    """

    name: str
    value: Any
    literal: Callable[[Any], str] | None = None

    def render(self, *, remote: bool) -> str:
        """Render as a ``"name": value`` JSON fragment."""
        indent = None if remote else "\t"
        if self.literal is None:
            rendered = _dumps(self.value, indent=indent)
        else:
            rendered = _dumps_literal(self.value, self.literal, indent=indent)
        if remote:
            return f"{json.dumps(self.name)}:{rendered}"
        # Nested lines sit one level inside the enclosing field block.
        rendered = rendered.replace("\n", "\n\t")
        return f"{json.dumps(self.name)}: {rendered}"


def fmt_any(value: Any, name: str) -> Field:
    """Describe any value with its type name and JSON value."""
    return Field(name, _typed(value))


def fmt_anys(values: Iterable[Any] | None, name: str) -> Field:
    return Field(name, [_typed(value) for value in values or ()])


def fmt_bool(value: bool, name: str) -> Field:
    return Field(name, bool(value))


def fmt_bools(values: Sequence[bool] | None, name: str) -> Field:
    return Field(name, [bool(value) for value in values or ()])


def fmt_bytes(value: bytes | bytearray | None, name: str) -> Field:
    """Render bytes as text with non-printable bytes escaped."""
    return Field(name, _escape_bytes(value or b""))


def fmt_duration(value: timedelta | float | None, name: str) -> Field:
    """Render a duration like ``1ms``, ``1s`` or ``1m0s``."""
    return Field(name, format_duration(value))


def fmt_durations(values: Sequence[timedelta | float] | None, name: str) -> Field:
    return Field(name, [format_duration(value) for value in values or ()])


def fmt_error(err: BaseException | None) -> Field:
    """Render an error; tracebacks are kept alongside the friendly text."""
    if err is None:
        return Field(ERROR_FIELD_NAME, None)
    if err.__traceback__ is None:
        return Field(ERROR_FIELD_NAME, str(err))
    trace = "".join(traceback.format_exception(type(err), err, err.__traceback__))
    return Field(ERROR_FIELD_NAME, {"friendly": str(err), "trace": trace})


def fmt_byte(value: int | bytes, name: str) -> Field:
    """Render a single byte quoted, like ``'A'`` or ``'\\x00'``."""
    byte = value[0] if isinstance(value, (bytes, bytearray)) else int(value)
    return Field(name, chr(byte), _quote_byte)


def fmt_float(value: float, name: str) -> Field:
    """Render a float fixed to five decimal places."""
    return Field(name, round(float(value), 5), _five_places)


def fmt_floats(values: Sequence[float] | None, name: str) -> Field:
    return Field(name, [round(float(value), 5) for value in values or ()], _five_places)


def fmt_float64(value: float, name: str) -> Field:
    """Render a float fixed to ten decimal places."""
    return Field(name, round(float(value), 10), _ten_places)


def fmt_float64s(values: Sequence[float] | None, name: str) -> Field:
    return Field(name, [round(float(value), 10) for value in values or ()], _ten_places)


def fmt_int(value: int, name: str) -> Field:
    return Field(name, int(value))


def fmt_ints(values: Sequence[int] | None, name: str) -> Field:
    return Field(name, [int(value) for value in values or ()])


def fmt_string(value: str, name: str) -> Field:
    return Field(name, value)


def fmt_strings(values: Sequence[str] | None, name: str) -> Field:
    return Field(name, list(values or ()))


def fmt_time(value: datetime, name: str) -> Field:
    return Field(name, value.isoformat())


def fmt_times(values: Sequence[datetime] | None, name: str) -> Field:
    return Field(name, [value.isoformat() for value in values or ()])


def fmt_fields(fields: Sequence[Field] | None, *, remote: bool) -> str:
    """Render a block of fields; an empty block renders as an empty string."""
    if not fields:
        return ""
    rendered = [field.render(remote=remote) for field in fields]
    if remote:
        return "{" + ",".join(rendered) + "}"
    return "{\n\t" + ",\n\t".join(rendered) + "\n}"


def fmt_log(
    message: str,
    correlation_id: str,
    func_name: str,
    line: int,
    fields: Sequence[Field] | None,
    *,
    remote: bool,
) -> str:
    """Render one log line body, terminated by a colour reset."""
    return (
        f"[{message}] [{correlation_id}] [{func_name}:{line}] "
        f"{fmt_fields(fields, remote=remote)}{COLOR_RESET}"
    )


def fields_to_dict(fields: Sequence[Field] | None) -> dict[str, Any]:
    """Collapse fields into a mapping; later names win."""
    return {field.name: field.value for field in fields or ()}


def format_duration(value: timedelta | float | None) -> str:
    """Format a duration with the largest sensible units."""
    if value is None:
        return "0s"
    seconds = value.total_seconds() if isinstance(value, timedelta) else float(value)
    if seconds == 0:
        return "0s"
    sign = "-" if seconds < 0 else ""
    seconds = abs(seconds)
    if seconds < 1e-6:
        return f"{sign}{_trim(seconds * 1e9)}ns"
    if seconds < 1e-3:
        return f"{sign}{_trim(seconds * 1e6)}µs"
    if seconds < 1:
        return f"{sign}{_trim(seconds * 1e3)}ms"
    hours, remainder = divmod(seconds, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours:
        return f"{sign}{int(hours)}h{int(minutes)}m{_trim(secs)}s"
    if minutes:
        return f"{sign}{int(minutes)}m{_trim(secs)}s"
    return f"{sign}{_trim(secs)}s"


def _trim(number: float) -> str:
    text = f"{number:.9f}".rstrip("0").rstrip(".")
    return text or "0"


def _typed(value: Any) -> Any:
    if value is None:
        return None
    kind = type(value)
    type_name = f"{kind.__module__}.{kind.__qualname__}"
    if kind.__module__ == "builtins":
        type_name = kind.__qualname__
    return {"type": type_name, "value": _json_value(value)}


def _json_value(value: Any) -> Any:
    if hasattr(value, "model_dump"):
        value = value.model_dump(mode="json")
    elif is_dataclass(value) and not isinstance(value, type):
        value = asdict(value)
    try:
        return json.loads(json.dumps(value, default=_model_default))
    except (TypeError, ValueError):
        return NOT_JSON_MARSHALLABLE


def _model_default(value: Any) -> Any:
    if hasattr(value, "model_dump"):
        return value.model_dump(mode="json")
    raise TypeError(f"{type(value).__name__} is not JSON serializable")


def _dumps(value: Any, *, indent: str | None) -> str:
    separators = (",", ":") if indent is None else (",", ": ")
    return json.dumps(
        value, indent=indent, separators=separators, ensure_ascii=False, default=str
    )


def _dumps_literal(value: Any, literal: Callable[[Any], str], *, indent: str | None) -> str:
    if not isinstance(value, list):
        return literal(value)
    if not value:
        return "[]"
    items = [literal(item) for item in value]
    if indent is None:
        return "[" + ",".join(items) + "]"
    return "[\n" + ",\n".join(indent + item for item in items) + "\n]"


def _five_places(value: float) -> str:
    return f"{value:.5f}"


def _ten_places(value: float) -> str:
    return f"{value:.10f}"


def _quote_byte(value: str) -> str:
    if value == "'":
        return "'\\''"
    return repr(value)


def _escape_bytes(value: bytes | bytearray) -> str:
    chars: list[str] = []
    for byte in bytes(value):
        if 0x20 <= byte < 0x7F:
            chars.append(chr(byte))
        else:
            chars.append(f"\\x{byte:02x}")
    return "".join(chars)
