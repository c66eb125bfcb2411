"""
MerkleVault CLI

Command-line interface for Merkle-verified file storage.

Usage:
    python -m merklevault_cli upload a.txt b.txt
    python -m merklevault_cli download a.txt --out ./restored
    python -m merklevault_cli list --remote
    python -m merklevault_cli serve --port 2345
"""

__version__ = "0.1.0"
