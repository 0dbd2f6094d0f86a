"""FastAPI and uvicorn helpers with the shared defaults installed."""

from __future__ import annotations

from typing import Iterable

import uvicorn
from fastapi import FastAPI

from packages.service_kit.environment import Environment
from packages.service_kit.logging import StructuredLogger

from .headers import HeadersClient
from .middleware import install_defaults


def create_app(
    env: Environment,
    headers_client: HeadersClient,
    log_client: StructuredLogger,
    *,
    exclude_paths_for_log_info_requests: Iterable[str] = (),
    version: str = "0.0.0",
) -> FastAPI:
    """Create a FastAPI app named after ``env.app`` with default middleware."""
    app = FastAPI(title=env.app, version=version, debug=env.debug)
    install_defaults(app, headers_client, log_client, exclude_paths_for_log_info_requests)
    return app


def run_app(app: FastAPI, env: Environment, *, host: str = "0.0.0.0") -> None:
    """Serve ``app`` through uvicorn on ``env.port``."""
    uvicorn.run(
        app,
        host=host,
        port=env.port,
        log_level="debug" if env.debug else "info",
        # Process logging is configured by the log client.
        log_config=None,
    )
