"""Public shared secrets API."""

from .client import (
    KmsClient,
    SecretsClient,
    SecretsConfigError,
    SecretsError,
    new_secrets_client,
    secret_file_name,
    secret_from_file,
)
from .models import DEFAULT_LOCATION, Secret, SecretsConfig
from .required import Required, reduce_required

__all__ = [
    "DEFAULT_LOCATION",
    "KmsClient",
    "Required",
    "Secret",
    "SecretsClient",
    "SecretsConfig",
    "SecretsConfigError",
    "SecretsError",
    "new_secrets_client",
    "reduce_required",
    "secret_file_name",
    "secret_from_file",
]
