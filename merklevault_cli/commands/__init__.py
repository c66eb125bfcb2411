"""
CLI command modules.
"""

from merklevault_cli.commands import common, download, listing, serve, upload

__all__ = ["common", "download", "listing", "serve", "upload"]
