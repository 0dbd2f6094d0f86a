"""Encrypt plaintext with Cloud KMS and optionally save it as a secret file."""

from __future__ import annotations

import json
from pathlib import Path

import typer

from actors.cloudkms import common
from packages.service_kit.context import RequestContext
from packages.service_kit.logging import (
    LogClient,
    fmt_any,
    fmt_bytes,
    fmt_error,
    fmt_string,
    fmt_strings,
)
from packages.service_kit.secrets import Secret, SecretsClient, SecretsError, secret_file_name

APP_NAME = "Encrypt"

app = typer.Typer(add_completion=False, help="Encrypt plaintext with a Cloud KMS key")


@app.command()
def encrypt(
    cloudkms_key: str = typer.Option("", help="Cloud KMS key to use"),
    cloudkms_key_ring: str = typer.Option("", help="Cloud KMS key ring to use"),
    env: str = typer.Option(
        common.DEFAULT_ENV, help="Friendly environment name, used for file naming"
    ),
    path_to_file: str = typer.Option(
        "", help="Path to file to be encrypted. Required if no --plaintext given"
    ),
    gcp_project_id: str = typer.Option(
        "", help="GCP project ID which has Cloud KMS used for encryption"
    ),
    plaintext: str = typer.Option(
        "", help="Plaintext to be encrypted. Required if no --path-to-file given"
    ),
    save_as_secret_domain: str = typer.Option(
        "", help="Secret domain used in the saved file name, requires --save-as-secret-type"
    ),
    save_as_secret_type: str = typer.Option(
        "", help="Secret type used in the saved file name, requires --save-as-secret-domain"
    ),
    output_dir: Path | None = typer.Option(
        None, help="Directory saved files are written to, defaults to the working directory"
    ),
) -> None:
    """Encrypt ``--plaintext`` or the contents of ``--path-to-file``."""
    ctx, log_client = common.start(APP_NAME)
    log_client.info(
        "Starting",
        fmt_string(cloudkms_key, "cloudkms_key"),
        fmt_string(cloudkms_key_ring, "cloudkms_key_ring"),
        fmt_string(env, "env"),
        fmt_string(path_to_file, "path_to_file"),
        fmt_string(gcp_project_id, "gcp_project_id"),
        fmt_bytes(plaintext.encode("utf-8"), "plaintext"),
        fmt_string(save_as_secret_domain, "save_as_secret_domain"),
        fmt_string(save_as_secret_type, "save_as_secret_type"),
        fmt_strings(common.environ_names(), "environ"),
        ctx=ctx,
    )

    flags = common.KmsFlags(
        env=env,
        gcp_project_id=gcp_project_id,
        cloudkms_key=cloudkms_key,
        cloudkms_key_ring=cloudkms_key_ring,
        save_as_secret_domain=save_as_secret_domain,
        save_as_secret_type=save_as_secret_type,
    )
    common.run_flag_check(ctx, log_client, "plaintext", plaintext, path_to_file, flags)
    secrets_client = common.connect_secrets(ctx, log_client, flags)

    data = plaintext.encode("utf-8")
    if path_to_file:
        try:
            data = Path(path_to_file).read_bytes()
        except OSError as exc:
            log_client.fatal("Failed reading file", fmt_error(exc), ctx=ctx)
        log_client.info("Loaded from file", fmt_bytes(data, "plaintext"), ctx=ctx)

    secret = _encrypt(ctx, log_client, secrets_client, data)
    if save_as_secret_domain:
        directory = output_dir if output_dir is not None else Path.cwd()
        path = directory / secret_file_name(save_as_secret_domain, save_as_secret_type, env)
        _save(ctx, log_client, secret, path)


def _encrypt(
    ctx: RequestContext, log_client: LogClient, secrets_client: SecretsClient, data: bytes
) -> Secret:
    log_client.info("Encrypting", fmt_bytes(data, "plaintext"), ctx=ctx)
    try:
        secret = secrets_client.encrypt(data, ctx=ctx)
    except SecretsError as exc:
        log_client.fatal("Failed encrypting plaintext", fmt_error(exc), ctx=ctx)
        raise
    log_client.info("Encrypted", fmt_any(secret, "secret"), ctx=ctx)
    return secret


def _save(ctx: RequestContext, log_client: LogClient, secret: Secret, path: Path) -> None:
    try:
        path.write_text(json.dumps(secret.model_dump(), indent="\t"), encoding="utf-8")
    except OSError as exc:
        log_client.fatal("Failed to save file", fmt_error(exc), ctx=ctx)
    log_client.info("Saved", fmt_string(str(path), "path"), ctx=ctx)


if __name__ == "__main__":
    app()
