"""
CLI Upload Command

Hash local files into one batch, send it to the server and record the
root in the upload index.

Usage:
    merklevault upload a.txt b.txt [--server URL] [--json]
"""

from __future__ import annotations

import json
import logging
from argparse import Namespace

from client.upload import UploadProtocol
from merklevault_cli.commands import common


logger = logging.getLogger(__name__)


def upload_cmd(args: Namespace) -> int:
    """
    Execute the upload command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code
    """
    config = common.runtime_config(args)
    index = common.open_index(config)
    hasher = common.hasher_for(config)

    connection = common.build_connection(config)
    try:
        result = UploadProtocol(connection, index, hasher).upload(args.files)
    finally:
        connection.close()

    if args.json:
        print(json.dumps({
            "root": result.root,
            "hash_algorithm": result.hash_algorithm,
            "filenames": list(result.filenames),
            "created": result.created,
        }, indent=2))
    else:
        print(f"root: {result.root}")
        print(f"files: {len(result.filenames)}")
        for name in result.filenames:
            print(f"  - {name}")
        if not result.created:
            print("(batch was already stored on the server)")

    return common.EXIT_SUCCESS
