"""Decrypt a Cloud KMS secret and optionally save the plaintext."""

from __future__ import annotations

from pathlib import Path

import typer
from pydantic import ValidationError

from actors.cloudkms import common
from packages.service_kit.logging import (
    fmt_any,
    fmt_bytes,
    fmt_error,
    fmt_string,
    fmt_strings,
)
from packages.service_kit.secrets import Secret, SecretsError

APP_NAME = "Decrypt"
DEFAULT_FILE_TYPE = "json"

app = typer.Typer(add_completion=False, help="Decrypt ciphertext with a Cloud KMS key")


@app.command()
def decrypt(
    ciphertext: str = typer.Option(
        "", help="Ciphertext to be decrypted. Required if no --path-to-file given"
    ),
    cloudkms_key: str = typer.Option("", help="Cloud KMS key to use"),
    cloudkms_key_ring: str = typer.Option("", help="Cloud KMS key ring to use"),
    env: str = typer.Option(
        common.DEFAULT_ENV, help="Friendly environment name, used for file naming"
    ),
    path_to_file: str = typer.Option(
        "", help="Path to secret file to be decrypted. Required if no --ciphertext given"
    ),
    gcp_project_id: str = typer.Option(
        "", help="GCP project ID which has Cloud KMS used for decryption"
    ),
    save_as_file_type: str = typer.Option(
        DEFAULT_FILE_TYPE, help="File type used as the saved file extension"
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
    """Decrypt ``--ciphertext`` or the secret saved at ``--path-to-file``."""
    ctx, log_client = common.start(APP_NAME)
    log_client.info(
        "Starting",
        fmt_string(ciphertext, "ciphertext"),
        fmt_string(env, "env"),
        fmt_string(path_to_file, "path_to_file"),
        fmt_string(gcp_project_id, "gcp_project_id"),
        fmt_string(cloudkms_key, "cloudkms_key"),
        fmt_string(cloudkms_key_ring, "cloudkms_key_ring"),
        fmt_string(save_as_file_type, "save_as_file_type"),
        fmt_string(save_as_secret_type, "save_as_secret_type"),
        fmt_string(save_as_secret_domain, "save_as_secret_domain"),
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
    common.run_flag_check(ctx, log_client, "ciphertext", ciphertext, path_to_file, flags)
    secrets_client = common.connect_secrets(ctx, log_client, flags)

    try:
        if path_to_file:
            secret = secrets_client.secret_from_file(path_to_file)
            log_client.info("Loaded from file", fmt_any(secret, "secret"), ctx=ctx)
        else:
            secret = Secret(ciphertext=ciphertext)
    except (OSError, ValidationError) as exc:
        log_client.fatal("Failed reading secret", fmt_error(exc), ctx=ctx)
        raise

    log_client.info("Decrypting", fmt_any(secret, "secret"), ctx=ctx)
    try:
        plaintext = secrets_client.decrypt(secret, ctx=ctx)
    except SecretsError as exc:
        log_client.fatal("Failed decrypting ciphertext", fmt_error(exc), ctx=ctx)
        raise
    log_client.info("Decrypted", fmt_bytes(plaintext, "plaintext"), ctx=ctx)

    if save_as_secret_type:
        directory = output_dir if output_dir is not None else Path.cwd()
        path = directory / (
            f"{save_as_secret_domain}_{save_as_secret_type}_plaintext.{save_as_file_type}"
        )
        try:
            path.write_bytes(plaintext)
        except OSError as exc:
            log_client.fatal("Failed to save file", fmt_error(exc), ctx=ctx)
        log_client.info("Saved", fmt_string(str(path), "path"), ctx=ctx)


if __name__ == "__main__":
    app()
