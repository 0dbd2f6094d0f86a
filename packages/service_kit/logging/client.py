"""Structured log client bound to the request context."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

from packages.service_kit.context import RequestContext, get_current
from packages.service_kit.environment import Environment

from .config import NOTICE, configure_logging
from .fields import Field, fmt_any

FATAL_EXIT_CODE = 1


class StructuredLogger(Protocol):
    """Logging contract shared by the real client and test doubles."""

    def debug(self, message: str, *fields: Field, ctx: RequestContext | None = None) -> None: ...

    def info(self, message: str, *fields: Field, ctx: RequestContext | None = None) -> None: ...

    def notice(self, message: str, *fields: Field, ctx: RequestContext | None = None) -> None: ...

    def warn(self, message: str, *fields: Field, ctx: RequestContext | None = None) -> None: ...

    def error(self, message: str, *fields: Field, ctx: RequestContext | None = None) -> None: ...

    def fatal(self, message: str, *fields: Field, ctx: RequestContext | None = None) -> None: ...


@dataclass(frozen=True)
class LogConfig:
    """Log client configuration derived from the process environment."""

    env: Environment


class LogClient:
    """Log client emitting structured records through ``logging``.

    ``ctx`` defaults to the current request context so call sites inside a
    request never pass it explicitly.
    """

    def __init__(self, config: LogConfig, *, logger: logging.Logger | None = None) -> None:
        self.config = config
        self._logger = logger or logging.getLogger(config.env.app or None)

    def debug(self, message: str, *fields: Field, ctx: RequestContext | None = None) -> None:
        self._log(logging.DEBUG, message, fields, ctx)

    def info(self, message: str, *fields: Field, ctx: RequestContext | None = None) -> None:
        self._log(logging.INFO, message, fields, ctx)

    def notice(self, message: str, *fields: Field, ctx: RequestContext | None = None) -> None:
        self._log(NOTICE, message, fields, ctx)

    def warn(self, message: str, *fields: Field, ctx: RequestContext | None = None) -> None:
        self._log(logging.WARNING, message, fields, ctx)

    def error(self, message: str, *fields: Field, ctx: RequestContext | None = None) -> None:
        self._log(logging.ERROR, message, fields, ctx)

    def fatal(self, message: str, *fields: Field, ctx: RequestContext | None = None) -> None:
        """Log at CRITICAL and terminate the process."""
        self._log(logging.CRITICAL, message, fields, ctx)
        raise SystemExit(FATAL_EXIT_CODE)

    def _log(
        self,
        level: int,
        message: str,
        fields: tuple[Field, ...],
        ctx: RequestContext | None,
    ) -> None:
        if not self._logger.isEnabledFor(level):
            return
        self._logger.log(
            level,
            message,
            extra={
                "log_fields": list(fields),
                "request_context": ctx if ctx is not None else get_current(),
            },
            # Attribute the record to the caller of debug()/info()/...
            stacklevel=3,
        )


def new_log_client(ctx: RequestContext, config: LogConfig) -> LogClient:
    """Configure process logging for ``config.env`` and return a client."""
    env = config.env
    configure_logging(
        level="DEBUG" if env.debug else "INFO",
        remote=env.remote,
        service=env.app or None,
    )
    client = LogClient(config)
    client.info("Initializing", fmt_any(config, "config"), ctx=ctx)
    client.info("Initialized", ctx=ctx)
    return client
