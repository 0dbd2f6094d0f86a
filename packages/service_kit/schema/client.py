"""JSON-schema validation of request bodies.

Schemas are loaded once at start-up. Every file is loaded on its own worker
and all loads are awaited before reporting, so a single start-up log lists
every broken schema rather than only the first.
"""

from __future__ import annotations

import json
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from functools import partial
from http import HTTPStatus
from pathlib import Path
from typing import Any, Sequence
from urllib.parse import urldefrag, urljoin, urlparse
from urllib.request import url2pathname

from jsonschema import Draft202012Validator
from jsonschema.exceptions import SchemaError, ValidationError
from jsonschema.protocols import Validator
from jsonschema.validators import validator_for
from referencing import Registry, Resource, Specification
from referencing.exceptions import NoSuchResource
from referencing.jsonschema import DRAFT202012, specification_with
from referencing.retrieval import to_cached_resource
from referencing.typing import Retrieve

from packages.service_kit.context import RequestContext, get_current
from packages.service_kit.environment import Environment
from packages.service_kit.errors import (
    Item,
    new_status,
    new_status_with_cause,
    new_status_with_items,
)
from packages.service_kit.logging import (
    StructuredLogger,
    fmt_any,
    fmt_error,
    fmt_int,
    fmt_string,
    fmt_strings,
)

BODY_MUST_EXIST = "BODY_MUST_EXIST"
FAILED_SCHEMA_VALIDATION = "Failed schema validation"
ROOT_FIELD = "(root)"


class SchemaLoadError(RuntimeError):
    """One or more schema files failed to load."""

    def __init__(self, failures: dict[str, BaseException]) -> None:
        names = ", ".join(sorted(failures))
        super().__init__(f"Failed to load schemas from files: {names}")
        self.failures = failures


class SchemaNotLoadedError(LookupError):
    """Validation was requested against a schema that was never loaded."""

    def __init__(self, schema_file_name: str) -> None:
        super().__init__(f"Schema {schema_file_name!r} not loaded")
        self.schema_file_name = schema_file_name


@dataclass(frozen=True)
class SchemaConfig:
    env: Environment


class SchemaClient:
    """Validate JSON bodies against schemas loaded by file name."""

    def __init__(
        self,
        config: SchemaConfig,
        log_client: StructuredLogger,
        validators: dict[str, Validator],
    ) -> None:
        self.config = config
        self._log = log_client
        self._validators = validators

    @property
    def schema_file_names(self) -> list[str]:
        return sorted(self._validators)

    def validate(
        self, ctx: RequestContext | None, schema_file_name: str, body: bytes
    ) -> None:
        """Validate ``body`` against a loaded schema, raising 400 statuses."""
        ctx = ctx if ctx is not None else get_current()
        self._log.info(
            "Validating",
            fmt_string(schema_file_name, "schema_file_name"),
            fmt_int(len(body or b""), "len(body)"),
            ctx=ctx,
        )

        if not body:
            raise new_status(HTTPStatus.BAD_REQUEST, BODY_MUST_EXIST)

        validator = self._validators.get(schema_file_name)
        if validator is None:
            raise SchemaNotLoadedError(schema_file_name)

        try:
            instance = json.loads(body)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise new_status_with_cause(exc, HTTPStatus.BAD_REQUEST, str(exc)) from exc

        errors = sorted(
            validator.iter_errors(instance),
            key=lambda error: [str(part) for part in error.absolute_path],
        )
        if errors:
            raise new_status_with_items(
                HTTPStatus.BAD_REQUEST,
                FAILED_SCHEMA_VALIDATION,
                [_item(error) for error in errors],
            )

        self._log.info("Validated", ctx=ctx)


def new_schema_client(
    ctx: RequestContext,
    config: SchemaConfig,
    log_client: StructuredLogger,
    schema_file_names: Sequence[str],
) -> SchemaClient:
    """Load all schema files concurrently and return a client over them."""
    log_client.info(
        "Initializing",
        fmt_any(config, "config"),
        fmt_strings(list(schema_file_names), "schema_file_names"),
        ctx=ctx,
    )

    working_directory = Path(config.env.working_directory)
    unique_names = list(dict.fromkeys(schema_file_names))

    def load(name: str) -> Validator:
        log_client.info("Loading", fmt_string(name, "schema_file_name"), ctx=ctx)
        validator = load_schema_from_file(name, working_directory)
        log_client.info("Loaded", fmt_string(name, "schema_file_name"), ctx=ctx)
        return validator

    validators: dict[str, Validator] = {}
    failures: dict[str, BaseException] = {}
    if unique_names:
        with ThreadPoolExecutor(max_workers=len(unique_names)) as pool:
            futures = {name: pool.submit(load, name) for name in unique_names}
        for name, future in futures.items():
            exc = future.exception()
            if exc is not None:
                log_client.error(
                    "Failed to load schema from file, will check others and raise",
                    fmt_string(name, "schema_file_name"),
                    fmt_error(exc),
                    ctx=ctx,
                )
                failures[name] = exc
                continue
            validators[name] = future.result()

    if failures:
        raise SchemaLoadError(failures)

    log_client.info("Initialized", ctx=ctx)
    return SchemaClient(config, log_client, validators)


def load_schema_from_file(file_name: str, working_directory: Path) -> Validator:
    """Load one schema file; relative ``$ref`` values resolve beside it.

    The draft is taken from ``$schema`` (2020-12 when absent) and applies to
    referenced files that do not declare their own. Every reachable reference
    is resolved here, so a broken one fails the load instead of validation.
    """
    path = (working_directory / file_name).resolve()
    with path.open("r", encoding="utf-8") as handle:
        schema = json.load(handle)
    if not isinstance(schema, dict):
        raise SchemaError(f"Schema file {file_name!r} must contain a JSON object")

    cls = validator_for(schema, default=Draft202012Validator)
    cls.check_schema(schema)
    specification = specification_with(str(schema.get("$schema", "")), default=DRAFT202012)

    uri = path.as_uri()
    resource = Resource.from_contents(schema, default_specification=specification)
    registry: Registry[Any] = Registry(retrieve=_file_retriever(specification)).with_resource(
        uri, resource
    )
    _check_references(registry.resolver(base_uri=uri), resource, uri, specification, {uri})

    # Validating through a reference to the file keeps its URI as the base.
    return cls({"$ref": uri}, registry=registry)


def _file_retriever(specification: Specification[Any]) -> Retrieve[Any]:
    """Return a cached retriever reading ``file://`` URIs from disk."""

    @to_cached_resource(
        from_contents=partial(Resource.from_contents, default_specification=specification)
    )
    def retrieve(uri: str) -> str:
        parsed = urlparse(uri)
        if parsed.scheme != "file":
            raise NoSuchResource(ref=uri)
        return Path(url2pathname(parsed.path)).read_text(encoding="utf-8")

    return retrieve


def _check_references(
    resolver: Any,
    resource: Resource[Any],
    base_uri: str,
    specification: Specification[Any],
    seen: set[str],
) -> None:
    """Resolve each ``$ref`` under ``resource``, following it into other files."""
    resolver = resolver.in_subresource(resource)
    resource_id = resource.id()
    if resource_id is not None:
        base_uri = urljoin(base_uri, resource_id)

    contents = resource.contents
    ref = contents.get("$ref") if isinstance(contents, dict) else None
    if isinstance(ref, str):
        resolved = resolver.lookup(ref)
        target = urljoin(base_uri, ref)
        if target not in seen:
            seen.add(target)
            _check_references(
                resolved.resolver,
                Resource.from_contents(resolved.contents, default_specification=specification),
                urldefrag(target).url,
                specification,
                seen,
            )

    for subresource in resource.subresources():
        _check_references(resolver, subresource, base_uri, specification, seen)


def _item(error: ValidationError) -> Item:
    path = ".".join(str(part) for part in error.absolute_path)
    return Item(field=path or ROOT_FIELD, message=error.message)
