"""
CLI Serve Command

Run the HTTP server with uvicorn.

Usage:
    merklevault serve [--host HOST] [--port PORT] [--store-dir DIR] [--no-verify-uploads]
"""

from __future__ import annotations

import logging
from argparse import Namespace

from core.storage import ServerStore
from merklevault_cli.commands import common


logger = logging.getLogger(__name__)


def serve_cmd(args: Namespace) -> int:
    """
    Execute the serve command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code
    """
    config = common.runtime_config(args)
    if args.host:
        config.server.host = args.host
    if args.port:
        config.server.port = args.port
    if args.store_dir:
        config.server.store_dir = args.store_dir
    if args.no_verify_uploads:
        config.server.verify_uploads = False

    import uvicorn
    from api.app import create_app

    store = ServerStore(config.server.store_dir, verify_uploads=config.server.verify_uploads)
    app = create_app(store=store, config=config)

    logger.info(
        f"Serving {len(store.list_batches())} batches from {config.server.store_dir} "
        f"on {config.server.host}:{config.server.port}"
    )
    uvicorn.run(
        app,
        host=config.server.host,
        port=config.server.port,
        log_level=config.log_level.lower(),
    )
    return common.EXIT_SUCCESS
