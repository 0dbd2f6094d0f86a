"""Stdout logging configuration for shared services.

Design goals:
- Always emit logs to stdout for container log collection.
- Remote processes emit one JSON object per line in the cloud log ingestion
  shape (``severity``, ``message``, source location, structured fields).
- Local processes emit coloured, human-readable lines with pretty fields.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from typing import IO, Any

from packages.service_kit.context import RequestContext, get_current

from . import fields

NOTICE = 25
logging.addLevelName(NOTICE, "NOTICE")

_LEVEL_COLORS = {
    logging.DEBUG: "\x1b[36m",
    logging.INFO: "\x1b[32m",
    NOTICE: "\x1b[34m",
    logging.WARNING: "\x1b[33m",
    logging.ERROR: "\x1b[31m",
    logging.CRITICAL: "\x1b[35m",
}


class ContextFilter(logging.Filter):
    """Inject the request context and service identity into each record."""

    def __init__(self, *, service: str | None = None, environment: str | None = None) -> None:
        super().__init__()
        self._service = service
        self._environment = environment

    def filter(self, record: logging.LogRecord) -> bool:
        ctx = getattr(record, "request_context", None)
        if not isinstance(ctx, RequestContext):
            ctx = get_current()
            record.request_context = ctx
        record.correlation_id = ctx.correlation_id
        record.test = ctx.test
        if not hasattr(record, "log_fields"):
            record.log_fields = []
        if self._service:
            record.service = self._service
        if self._environment:
            record.environment = self._environment
        return True


class JsonFormatter(logging.Formatter):
    """Emit newline-delimited JSON logs for remote log ingestion."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            fields.TIMESTAMP: datetime.fromtimestamp(record.created, UTC).isoformat(),
            fields.SEVERITY: record.levelname,
            fields.LOGGER: record.name,
            fields.MESSAGE: record.getMessage(),
            fields.CORRELATION_ID: getattr(record, "correlation_id", ""),
            fields.TEST: getattr(record, "test", False),
            fields.SOURCE_LOCATION: {
                "file": record.pathname,
                "line": str(record.lineno),
                "function": f"{record.module}.{record.funcName}",
            },
        }
        for key in (fields.SERVICE, fields.ENVIRONMENT):
            value = getattr(record, key, None)
            if value:
                payload[key] = value

        log_fields = fields.fields_to_dict(getattr(record, "log_fields", None))
        if log_fields:
            payload[fields.FIELDS] = log_fields

        if record.exc_info:
            payload[fields.EXCEPTION] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str, separators=(",", ":"))


class PlainFormatter(logging.Formatter):
    """Coloured developer formatter with pretty-printed fields."""

    def format(self, record: logging.LogRecord) -> str:
        color = _LEVEL_COLORS.get(record.levelno, "")
        body = fields.fmt_log(
            record.getMessage(),
            getattr(record, "correlation_id", ""),
            f"{record.module}.{record.funcName}",
            record.lineno,
            getattr(record, "log_fields", None),
            remote=False,
        )
        line = f"{color}[{record.levelname}] {body}"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def configure_logging(
    *,
    level: str = "INFO",
    remote: bool = False,
    service: str | None = None,
    environment: str | None = None,
    stream: IO[str] | None = None,
) -> None:
    """Configure root logging with a single stdout handler.

    Existing root handlers are replaced, so repeated calls never duplicate
    emissions.
    """
    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(level.upper())

    handler = logging.StreamHandler(stream=stream if stream is not None else sys.stdout)
    handler.setLevel(level.upper())
    handler.addFilter(ContextFilter(service=service, environment=environment))
    handler.setFormatter(JsonFormatter() if remote else PlainFormatter())

    root.addHandler(handler)
