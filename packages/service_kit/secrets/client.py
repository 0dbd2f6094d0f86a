"""Cloud KMS backed encryption and decryption of secrets."""

from __future__ import annotations

import base64
from pathlib import Path
from typing import Any, Protocol

from google.api_core.exceptions import GoogleAPICallError
from google.cloud import kms

from packages.service_kit.context import RequestContext, get_current
from packages.service_kit.logging import (
    StructuredLogger,
    fmt_any,
    fmt_int,
    fmt_string,
)

from .models import Secret, SecretsConfig
from .required import Required


class SecretsError(RuntimeError):
    """Cloud KMS rejected or failed a secrets operation."""


class SecretsConfigError(ValueError):
    """Secrets client configuration is incomplete."""

    def __init__(self, missing: list[str]) -> None:
        super().__init__(f"Missing secrets config values: {', '.join(missing)}")
        self.missing = missing


class KmsClient(Protocol):
    """Subset of ``KeyManagementServiceClient`` used here."""

    def encrypt(self, request: Any = None, **kwargs: Any) -> Any: ...

    def decrypt(self, request: Any = None, **kwargs: Any) -> Any: ...


def secret_file_name(domain: str, secret_type: str, env: str) -> str:
    """File name a saved secret of ``domain``/``secret_type`` uses in ``env``."""
    return f"{domain}_{secret_type}_cloudkms-{env}.json"


def secret_from_file(path: str | Path) -> Secret:
    """Read a saved secret JSON file."""
    return Secret.model_validate_json(Path(path).read_text(encoding="utf-8"))


class SecretsClient:
    """Encrypt and decrypt with one Cloud KMS crypto key."""

    def __init__(
        self,
        config: SecretsConfig,
        log_client: StructuredLogger,
        kms_client: KmsClient,
    ) -> None:
        self.config = config
        self._log = log_client
        self._kms = kms_client
        self.crypto_key_name = kms.KeyManagementServiceClient.crypto_key_path(
            config.gcp_project_id,
            config.location,
            config.cloudkms_key_ring,
            config.cloudkms_key,
        )

    def encrypt(self, plaintext: bytes, *, ctx: RequestContext | None = None) -> Secret:
        ctx = ctx if ctx is not None else get_current()
        self._log.info("Encrypting", fmt_int(len(plaintext), "len(plaintext)"), ctx=ctx)
        try:
            response = self._kms.encrypt(
                request={"name": self.crypto_key_name, "plaintext": plaintext}
            )
        except GoogleAPICallError as exc:
            raise SecretsError(f"Failed encrypting with {self.crypto_key_name}") from exc

        secret = Secret(
            ciphertext=base64.b64encode(response.ciphertext).decode("ascii"),
            crypto_key=response.name or self.crypto_key_name,
        )
        self._log.info("Encrypted", fmt_string(secret.crypto_key, "crypto_key"), ctx=ctx)
        return secret

    def decrypt(self, secret: Secret, *, ctx: RequestContext | None = None) -> bytes:
        ctx = ctx if ctx is not None else get_current()
        self._log.info("Decrypting", fmt_any(secret, "secret"), ctx=ctx)
        try:
            response = self._kms.decrypt(
                request={
                    "name": self.crypto_key_name,
                    "ciphertext": secret.ciphertext_bytes(),
                }
            )
        except GoogleAPICallError as exc:
            raise SecretsError(f"Failed decrypting with {self.crypto_key_name}") from exc

        plaintext = bytes(response.plaintext)
        self._log.info("Decrypted", fmt_int(len(plaintext), "len(plaintext)"), ctx=ctx)
        return plaintext

    def secret_from_file(self, path: str | Path) -> Secret:
        return secret_from_file(path)

    def secret_file_name(self, domain: str, secret_type: str) -> str:
        return secret_file_name(domain, secret_type, self.config.env)

    def load_required(
        self,
        required: Required,
        directory: str | Path,
        *,
        ctx: RequestContext | None = None,
    ) -> dict[tuple[str, str], bytes]:
        """Decrypt every required secret from its saved file in ``directory``."""
        ctx = ctx if ctx is not None else get_current()
        self._log.info("Loading required secrets", fmt_any(required, "required"), ctx=ctx)
        base = Path(directory)
        loaded: dict[tuple[str, str], bytes] = {}
        for domain, secret_types in required.items():
            for secret_type in secret_types:
                path = base / self.secret_file_name(domain, secret_type)
                loaded[(domain, secret_type)] = self.decrypt(secret_from_file(path), ctx=ctx)
        self._log.info("Loaded required secrets", fmt_int(len(loaded), "count"), ctx=ctx)
        return loaded


def new_secrets_client(
    ctx: RequestContext,
    config: SecretsConfig,
    log_client: StructuredLogger,
    kms_client: KmsClient | None = None,
) -> SecretsClient:
    """Validate ``config`` and connect a secrets client to Cloud KMS."""
    log_client.info("Initializing", fmt_any(config, "config"), ctx=ctx)

    missing = config.missing()
    if missing:
        raise SecretsConfigError(missing)

    client = SecretsClient(
        config,
        log_client,
        kms_client if kms_client is not None else kms.KeyManagementServiceClient(),
    )
    log_client.info("Initialized", ctx=ctx)
    return client
