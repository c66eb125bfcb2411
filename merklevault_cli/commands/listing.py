"""
CLI List Command

Show uploaded batches: from the local upload index by default, or as
stored on the server with --remote.

Usage:
    merklevault list [--remote] [--server URL] [--json]
"""

from __future__ import annotations

import json
from argparse import Namespace
from typing import Any

from merklevault_cli.commands import common


def _local_batches(args: Namespace) -> list[dict[str, Any]]:
    config = common.runtime_config(args)
    return [
        {
            "root": r.root,
            "filenames": list(r.filenames),
            "hash_algorithm": r.hash_algorithm,
            "uploaded_at": r.uploaded_at,
        }
        for r in common.open_index(config).records
    ]


def _remote_batches(args: Namespace) -> list[dict[str, Any]]:
    config = common.runtime_config(args)
    connection = common.build_connection(config)
    try:
        listing = connection.list_batches()
    finally:
        connection.close()
    return [b.model_dump() for b in listing.batches]


def list_cmd(args: Namespace) -> int:
    """
    Execute the list command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code
    """
    batches = _remote_batches(args) if args.remote else _local_batches(args)

    if args.json:
        print(json.dumps(batches, indent=2))
        return common.EXIT_SUCCESS

    if not batches:
        print("No batches")
        return common.EXIT_SUCCESS

    for batch in batches:
        print(f"{batch['root']} ({batch['hash_algorithm']})")
        for name in batch["filenames"]:
            print(f"  - {name}")

    return common.EXIT_SUCCESS
