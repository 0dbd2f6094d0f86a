"""Environment loading with deterministic precedence.

The cascade is always:
1) Explicit overrides passed by the caller
2) Environment variables
3) Optional dotenv file
4) Built-in defaults

``REMOTE`` or ``DYNO`` being non-empty marks the process as remote. Debug is
on for local processes unless ``DEBUG`` says otherwise.
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Any

from .models import DEFAULT_PORT, Environment, EnvironmentSettings

logger = logging.getLogger(__name__)

_TRUE_VALUES = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE_VALUES = frozenset({"0", "f", "F", "FALSE", "false", "False"})
_INT_PATTERN = re.compile(r"^[+-]?[0-9]+$")


class EnvironmentParseError(ValueError):
    """An environment variable could not be parsed."""

    def __init__(self, variable: str, raw_value: str) -> None:
        super().__init__(f"Failed to parse environment variable {variable}")
        self.variable = variable
        self.raw_value = raw_value


def new_environment(
    app: str,
    *,
    env_file: str | Path | None = None,
    **overrides: Any,
) -> Environment:
    """Generate the environment for ``app`` from process settings."""
    logger.info("Generating environment %s", app)

    raw = EnvironmentSettings(_env_file=env_file)

    remote = raw.remote != "" or raw.dyno != ""

    debug = not remote
    if raw.debug != "":
        try:
            debug = parse_bool(raw.debug)
        except ValueError as exc:
            raise EnvironmentParseError("DEBUG", raw.debug) from exc

    port = DEFAULT_PORT
    if raw.port != "":
        try:
            port = parse_int(raw.port)
        except ValueError as exc:
            raise EnvironmentParseError("PORT", raw.port) from exc

    try:
        working_directory = os.getcwd()
    except OSError as exc:
        raise RuntimeError("Failed to get working directory") from exc

    values: dict[str, Any] = {
        "app": app,
        "database_url": raw.database_url,
        "debug": debug,
        "remote": remote,
        "port": port,
        "working_directory": working_directory,
    }
    values.update(overrides)
    env = Environment.model_validate(values)

    logger.info("Generated environment %s", env)
    return env


def parse_bool(raw: str) -> bool:
    """Parse a boolean using the strict token set accepted for flags."""
    if raw in _TRUE_VALUES:
        return True
    if raw in _FALSE_VALUES:
        return False
    raise ValueError(f"invalid boolean: {raw!r}")


def parse_int(raw: str) -> int:
    """Parse a base-10 integer without surrounding whitespace or separators."""
    if not _INT_PATTERN.match(raw):
        raise ValueError(f"invalid integer: {raw!r}")
    return int(raw, 10)
