"""Public API for process environment parsing."""

from .loader import EnvironmentParseError, new_environment, parse_bool, parse_int
from .models import DEFAULT_PORT, Environment, EnvironmentSettings

__all__ = [
    "DEFAULT_PORT",
    "Environment",
    "EnvironmentParseError",
    "EnvironmentSettings",
    "new_environment",
    "parse_bool",
    "parse_int",
]
