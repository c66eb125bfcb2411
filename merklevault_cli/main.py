"""
CLI Main Entry Point

Parses command-line arguments and dispatches to subcommands.

Usage:
    python -m merklevault_cli upload FILE... [--server URL] [--json]
    python -m merklevault_cli download FILENAME [--root HEX] [--out PATH] [--server URL] [--json]
    python -m merklevault_cli list [--remote] [--server URL] [--json]
    python -m merklevault_cli serve [--host HOST] [--port PORT] [--store-dir DIR] [--no-verify-uploads]
    python -m merklevault_cli config --init

Environment Variables:
    MERKLEVAULT_SERVER_URL      Server the client talks to (default: http://127.0.0.1:2345)
    MERKLEVAULT_INDEX_PATH      Client upload index (default: uploads.json)
    MERKLEVAULT_STORE_DIR       Server blob store directory (default: server_store)
    MERKLEVAULT_HASH_ALGORITHM  Hash algorithm for new uploads (default: sha256)
    MERKLEVAULT_LOG_LEVEL       Log level (default: INFO)
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
import traceback
from pathlib import Path
from typing import Sequence

from core.config.runtime import get_default_config_template, load_runtime_config
from core.schemas.errors import IntegrityMismatchException, MerkleVaultException
from merklevault_cli.commands import download, listing, serve, upload
from merklevault_cli.commands.common import (
    EXIT_INTEGRITY_FAILED,
    EXIT_RUNTIME_ERROR,
    EXIT_SUCCESS,
)


def setup_logging(level: str = "INFO", log_file: str | None = None) -> None:
    """Configure logging for the CLI."""
    log_level = getattr(logging, level.upper(), logging.INFO)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]

    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=handlers,
    )


def _add_client_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--server",
        type=str,
        default=None,
        help="Server base URL (overrides config)",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        default=False,
        help="Output machine-readable JSON",
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        prog="merklevault",
        description="MerkleVault CLI - Upload files under a Merkle root and download them with proofs.",
    )
    parser.add_argument(
        "--version", action="version", version="%(prog)s 0.1.0"
    )
    parser.add_argument(
        "--config", "-c",
        type=Path,
        default=None,
        help="Path to configuration file (default: ./merklevault.json or ~/.config/merklevault/config.json)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (overrides config)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        default=False,
        help="Print tracebacks for errors",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # --- upload command ---
    upload_parser = subparsers.add_parser(
        "upload",
        help="Upload files as one batch",
        description="Build a Merkle tree over the files, upload them and record the root locally.",
    )
    upload_parser.add_argument(
        "files",
        nargs="+",
        type=str,
        help="Files to upload, in leaf order",
    )
    _add_client_options(upload_parser)
    upload_parser.set_defaults(func=upload.upload_cmd)

    # --- download command ---
    download_parser = subparsers.add_parser(
        "download",
        help="Download and verify one file",
        description="Fetch a file with its inclusion proof and verify it against the trusted root.",
    )
    download_parser.add_argument(
        "filename",
        type=str,
        help="Name of the file inside its batch",
    )
    download_parser.add_argument(
        "--root",
        type=str,
        default=None,
        help="Batch root (default: most recent upload containing the file)",
    )
    download_parser.add_argument(
        "--out", "-o",
        type=str,
        default=None,
        help="Output file or directory (default: download_dir/FILENAME)",
    )
    _add_client_options(download_parser)
    download_parser.set_defaults(func=download.download_cmd)

    # --- list command ---
    list_parser = subparsers.add_parser(
        "list",
        help="List uploaded batches",
        description="Show batches from the local upload index, or from the server with --remote.",
    )
    list_parser.add_argument(
        "--remote",
        action="store_true",
        default=False,
        help="List batches stored on the server",
    )
    _add_client_options(list_parser)
    list_parser.set_defaults(func=listing.list_cmd)

    # --- serve command ---
    serve_parser = subparsers.add_parser(
        "serve",
        help="Run the HTTP server",
        description="Serve the blob store over HTTP.",
    )
    serve_parser.add_argument("--host", type=str, default=None, help="Bind address")
    serve_parser.add_argument("--port", type=int, default=None, help="Bind port")
    serve_parser.add_argument("--store-dir", type=str, default=None, help="Blob store directory")
    serve_parser.add_argument(
        "--no-verify-uploads",
        action="store_true",
        default=False,
        help="Store batches without recomputing their roots",
    )
    serve_parser.set_defaults(func=serve.serve_cmd)

    # --- config command ---
    config_parser = subparsers.add_parser(
        "config",
        help="Manage configuration",
        description="Initialize or display configuration.",
    )
    config_parser.add_argument(
        "--init",
        action="store_true",
        default=False,
        help="Create a template configuration file",
    )
    config_parser.add_argument(
        "--show",
        action="store_true",
        default=False,
        help="Show the effective configuration",
    )
    config_parser.add_argument(
        "--path",
        type=str,
        default="merklevault.json",
        help="Path for config file (default: merklevault.json)",
    )
    config_parser.set_defaults(func=config_cmd)

    return parser


def config_cmd(args: argparse.Namespace) -> int:
    """Handle config command."""
    if args.init:
        config_path = Path(args.path)
        if config_path.exists():
            print(f"Error: Config file already exists: {config_path}", file=sys.stderr)
            return EXIT_RUNTIME_ERROR

        config_path.write_text(get_default_config_template())
        print(f"Created configuration file: {config_path}")
        print("\nEdit this file to configure your settings.")
        print("You can also use environment variables (MERKLEVAULT_* prefix).")
        return EXIT_SUCCESS

    if args.show:
        print(json.dumps(args.runtime_config.to_dict(), indent=2))
        return EXIT_SUCCESS

    # Default: show help
    print("Usage: merklevault config [--init|--show]")
    print("  --init  Create a template configuration file")
    print("  --show  Show current configuration")
    return EXIT_SUCCESS


def main(argv: Sequence[str] | None = None) -> int:
    """
    Main entry point for the CLI.

    Args:
        argv: Command-line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code (0=success, 1=error, 2=integrity check failed)
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return EXIT_RUNTIME_ERROR

    # Load configuration
    try:
        config = load_runtime_config(args.config)
    except (OSError, ValueError, TypeError) as e:
        print(f"Error loading configuration: {e}", file=sys.stderr)
        return EXIT_RUNTIME_ERROR

    # Setup logging
    log_level = args.log_level or config.log_level
    setup_logging(level=log_level, log_file=config.log_file)

    # Attach config to args for commands to use
    args.runtime_config = config

    try:
        return args.func(args)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        return EXIT_RUNTIME_ERROR
    except IntegrityMismatchException as e:
        print(f"Integrity check FAILED: {e.message}", file=sys.stderr)
        return EXIT_INTEGRITY_FAILED
    except MerkleVaultException as e:
        if args.debug:
            traceback.print_exc()
        print(f"Error [{e.code}]: {e.message}", file=sys.stderr)
        return EXIT_RUNTIME_ERROR
    except Exception as e:
        if args.debug:
            traceback.print_exc()
        else:
            print(f"Error: {e}", file=sys.stderr)
        return EXIT_RUNTIME_ERROR


if __name__ == "__main__":
    sys.exit(main())
