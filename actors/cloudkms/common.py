"""Start-up and flag checks shared by the Cloud KMS command-line tools."""

from __future__ import annotations

import os
from dataclasses import dataclass

from google.auth.exceptions import GoogleAuthError

from packages.service_kit.context import RequestContext, start_up
from packages.service_kit.environment import EnvironmentParseError, new_environment
from packages.service_kit.logging import LogClient, LogConfig, fmt_error, new_log_client
from packages.service_kit.secrets import (
    SecretsClient,
    SecretsConfig,
    SecretsConfigError,
    new_secrets_client,
)

DEFAULT_ENV = "dev"


class FlagError(ValueError):
    """Command-line flag values are missing or conflict."""


@dataclass(frozen=True)
class KmsFlags:
    """Flags every Cloud KMS tool accepts."""

    env: str
    gcp_project_id: str
    cloudkms_key: str
    cloudkms_key_ring: str
    save_as_secret_domain: str
    save_as_secret_type: str


def start(app_name: str) -> tuple[RequestContext, LogClient]:
    """Build the environment and log client under the start-up context."""
    try:
        environment = new_environment(app_name)
    except EnvironmentParseError as exc:
        raise SystemExit(f"Failed generating new environment: {exc}") from exc

    ctx = start_up()
    return ctx, new_log_client(ctx, LogConfig(env=environment))


def environ_names() -> list[str]:
    """Names of the process environment variables, values withheld."""
    return sorted(os.environ)


def check_flags(source_name: str, source_value: str, path_to_file: str, flags: KmsFlags) -> None:
    """Raise ``FlagError`` for the first problem found, in a fixed order."""
    if bool(source_value) == bool(path_to_file):
        raise FlagError(
            f"Either `--{source_name}` or `--path-to-file` flag values must be provided, not both"
        )
    if bool(flags.save_as_secret_domain) != bool(flags.save_as_secret_type):
        raise FlagError(
            "Both or neither `--save-as-secret-domain` and `--save-as-secret-type` flag values must be provided"
        )
    if not flags.env:
        raise FlagError("Missing `--env` flag value")
    if not flags.gcp_project_id:
        raise FlagError("Missing `--gcp-project-id` flag value")
    if not flags.cloudkms_key:
        raise FlagError("Missing `--cloudkms-key` flag value")
    if not flags.cloudkms_key_ring:
        raise FlagError("Missing `--cloudkms-key-ring` flag value")


def run_flag_check(
    ctx: RequestContext,
    log_client: LogClient,
    source_name: str,
    source_value: str,
    path_to_file: str,
    flags: KmsFlags,
) -> None:
    log_client.info("Checking required flags", ctx=ctx)
    try:
        check_flags(source_name, source_value, path_to_file, flags)
    except FlagError as exc:
        log_client.fatal("Failed flag check", fmt_error(exc), ctx=ctx)
    log_client.info("Passed flag check", ctx=ctx)


def connect_secrets(ctx: RequestContext, log_client: LogClient, flags: KmsFlags) -> SecretsClient:
    config = SecretsConfig(
        env=flags.env,
        gcp_project_id=flags.gcp_project_id,
        cloudkms_key_ring=flags.cloudkms_key_ring,
        cloudkms_key=flags.cloudkms_key,
    )
    try:
        return new_secrets_client(ctx, config, log_client)
    except (SecretsConfigError, GoogleAuthError) as exc:
        log_client.fatal("Failed creating secrets client", fmt_error(exc), ctx=ctx)
        raise

