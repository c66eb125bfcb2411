"""
CLI Download Command

Fetch one file, verify its proof against the trusted root and write it.

Usage:
    merklevault download a.txt [--root HEX] [--out PATH] [--server URL] [--json]

Exits with code 2 if the file fails verification; nothing is written.
"""

from __future__ import annotations

import json
import logging
from argparse import Namespace

from client.download import DownloadProtocol
from merklevault_cli.commands import common


logger = logging.getLogger(__name__)


def download_cmd(args: Namespace) -> int:
    """
    Execute the download command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code
    """
    config = common.runtime_config(args)
    index = common.open_index(config)

    connection = common.build_connection(config)
    try:
        protocol = DownloadProtocol(
            connection,
            index,
            hasher=common.hasher_for(config),
            download_dir=config.client.download_dir,
        )
        result = protocol.download(args.filename, root=args.root, dest=args.out)
    finally:
        connection.close()

    if args.json:
        print(json.dumps({
            "filename": result.filename,
            "root": result.root,
            "leaf_index": result.leaf_index,
            "size": result.size,
            "path": str(result.path),
            "verified": True,
        }, indent=2))
    else:
        print(f"verified: {result.filename} (leaf {result.leaf_index}, {result.size} bytes)")
        print(f"root: {result.root}")
        print(f"written: {result.path}")

    return common.EXIT_SUCCESS
