"""Secret payloads and secrets client configuration."""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass, fields

from pydantic import BaseModel, ConfigDict, field_validator

DEFAULT_LOCATION = "global"


class Secret(BaseModel):
    """Base64 ciphertext produced by Cloud KMS, as saved to secret files."""

    model_config = ConfigDict(frozen=True)

    ciphertext: str
    crypto_key: str = ""

    @field_validator("ciphertext")
    @classmethod
    def _ciphertext_is_base64(cls, value: str) -> str:
        try:
            base64.b64decode(value, validate=True)
        except binascii.Error as exc:
            raise ValueError("ciphertext must be base64 encoded") from exc
        return value

    def ciphertext_bytes(self) -> bytes:
        return base64.b64decode(self.ciphertext)


@dataclass(frozen=True)
class SecretsConfig:
    """Cloud KMS key coordinates plus the friendly environment name."""

    env: str
    gcp_project_id: str
    cloudkms_key_ring: str
    cloudkms_key: str
    location: str = DEFAULT_LOCATION

    def missing(self) -> list[str]:
        """Names of required fields left empty."""
        return [field.name for field in fields(self) if not getattr(self, field.name)]
