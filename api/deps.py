"""
API Dependencies

Dependency injection for the API.
Provides the runtime config and the server store to the routes.
"""

from __future__ import annotations

import logging
import threading

from fastapi import Request

from core.config.runtime import RuntimeConfig
from core.storage import ServerStore

logger = logging.getLogger(__name__)

_store_lock = threading.Lock()


def get_config(request: Request) -> RuntimeConfig:
    """The RuntimeConfig the application was created with."""
    return request.app.state.config


def get_store(request: Request) -> ServerStore:
    """
    The application's ServerStore.

    Opened on first use from ``config.server`` when the application was
    created without an explicit store.
    """
    state = request.app.state
    if state.store is None:
        with _store_lock:
            if state.store is None:
                config = get_config(request)
                logger.info(
                    f"Opening store at {config.server.store_dir} "
                    f"(verify_uploads={config.server.verify_uploads})"
                )
                state.store = ServerStore(
                    config.server.store_dir,
                    verify_uploads=config.server.verify_uploads,
                )
    return state.store
