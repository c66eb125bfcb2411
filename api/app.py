"""
FastAPI Application

Main application setup and configuration.

Usage:
    uvicorn api.app:app --port 2345

    # Or run directly
    python -m api.app
"""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from api.routes import batches, health
from api.errors import (
    APIError,
    api_error_handler,
    domain_error_handler,
    generic_error_handler,
    validation_error_handler,
)
from core.config.runtime import RuntimeConfig, load_runtime_config
from core.schemas.errors import MerkleVaultException
from core.storage import ServerStore


def _resolve_log_level(config: RuntimeConfig) -> int:
    """Resolve log level from MERKLEVAULT_LOG_LEVEL or the config file, defaulting to INFO."""
    return getattr(logging, (config.log_level or "INFO").upper(), logging.INFO)


def create_app(
    store: ServerStore | None = None,
    config: RuntimeConfig | None = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        store: Store to serve; opened lazily from ``config.server`` if omitted
        config: Runtime configuration (default: loaded from file and env)
    """
    config = config or load_runtime_config()

    app = FastAPI(
        title="MerkleVault API",
        description="""
HTTP API for Merkle-verified file storage.

## Endpoints

- **POST /batches** - Store a batch of files under its Merkle root
- **GET /batches** - List stored batches
- **GET /batches/{root}/files/{filename}** - Download a file with its inclusion proof
- **GET /health** - Health check

File contents travel base64-encoded; digests are lowercase hex.
The server is untrusted: clients verify every download against the
root they computed at upload time.
        """,
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.config = config
    app.state.store = store

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Register exception handlers
    app.add_exception_handler(APIError, api_error_handler)
    app.add_exception_handler(MerkleVaultException, domain_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, generic_error_handler)

    # Include routers
    app.include_router(health.router)
    app.include_router(batches.router)

    return app


_config = load_runtime_config()

logging.basicConfig(
    level=_resolve_log_level(_config),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

# Create the application instance
app = create_app(config=_config)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=_config.server.host, port=_config.server.port)
