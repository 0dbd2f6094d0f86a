"""Public shared schema-validation API."""

from .client import (
    BODY_MUST_EXIST,
    FAILED_SCHEMA_VALIDATION,
    ROOT_FIELD,
    SchemaClient,
    SchemaConfig,
    SchemaLoadError,
    SchemaNotLoadedError,
    load_schema_from_file,
    new_schema_client,
)

__all__ = [
    "BODY_MUST_EXIST",
    "FAILED_SCHEMA_VALIDATION",
    "ROOT_FIELD",
    "SchemaClient",
    "SchemaConfig",
    "SchemaLoadError",
    "SchemaNotLoadedError",
    "load_schema_from_file",
    "new_schema_client",
]
