"""In-memory log client for tests."""

from __future__ import annotations

from dataclasses import dataclass, field

from packages.service_kit.context import RequestContext, get_current

from .client import FATAL_EXIT_CODE
from .fields import Field


@dataclass(frozen=True)
class LogEntry:
    level: str
    message: str
    fields: tuple[Field, ...]
    ctx: RequestContext


@dataclass
class MockLogClient:
    """Record log calls instead of emitting them."""

    entries: list[LogEntry] = field(default_factory=list)

    def debug(self, message: str, *fields: Field, ctx: RequestContext | None = None) -> None:
        self._record("DEBUG", message, fields, ctx)

    def info(self, message: str, *fields: Field, ctx: RequestContext | None = None) -> None:
        self._record("INFO", message, fields, ctx)

    def notice(self, message: str, *fields: Field, ctx: RequestContext | None = None) -> None:
        self._record("NOTICE", message, fields, ctx)

    def warn(self, message: str, *fields: Field, ctx: RequestContext | None = None) -> None:
        self._record("WARNING", message, fields, ctx)

    def error(self, message: str, *fields: Field, ctx: RequestContext | None = None) -> None:
        self._record("ERROR", message, fields, ctx)

    def fatal(self, message: str, *fields: Field, ctx: RequestContext | None = None) -> None:
        self._record("CRITICAL", message, fields, ctx)
        raise SystemExit(FATAL_EXIT_CODE)

    def messages(self, level: str | None = None) -> list[str]:
        """Return recorded messages, optionally filtered by level."""
        return [
            entry.message
            for entry in self.entries
            if level is None or entry.level == level
        ]

    def _record(
        self,
        level: str,
        message: str,
        fields: tuple[Field, ...],
        ctx: RequestContext | None,
    ) -> None:
        self.entries.append(
            LogEntry(
                level=level,
                message=message,
                fields=fields,
                ctx=ctx if ctx is not None else get_current(),
            )
        )
