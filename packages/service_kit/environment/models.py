"""Typed models for process environment settings."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_PORT = 8080


class EnvironmentSettings(BaseSettings):
    """Raw environment variables, read before any interpretation.

    Values stay strings so parse failures can be reported against the
    variable that caused them.
    """

    model_config = SettingsConfigDict(
        extra="ignore",
        env_file_encoding="utf-8",
    )

    database_url: str = ""
    debug: str = ""
    dyno: str = ""
    port: str = ""
    remote: str = ""


class Environment(BaseModel):
    """Resolved runtime environment of one application process."""

    model_config = ConfigDict(frozen=True)

    app: str
    database_url: str = ""
    debug: bool = True
    remote: bool = False
    port: int = DEFAULT_PORT
    working_directory: str = ""
