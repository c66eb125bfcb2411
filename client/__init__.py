"""
Client side of the MerkleVault protocol.

Usage:
    from client import HttpServerConnection, UploadProtocol, DownloadProtocol
    from core.storage import UploadIndex

    index = UploadIndex("uploads.json")
    with HttpServerConnection("http://127.0.0.1:2345") as conn:
        result = UploadProtocol(conn, index).upload(["a.txt", "b.txt"])
        DownloadProtocol(conn, index).download("a.txt", root=result.root)
"""

from client.connection import HttpServerConnection, LocalServerConnection, ServerConnection
from client.download import DownloadProtocol, DownloadResult
from client.upload import UploadProtocol, UploadResult, read_batch

__all__ = [
    "ServerConnection",
    "HttpServerConnection",
    "LocalServerConnection",
    "UploadProtocol",
    "UploadResult",
    "read_batch",
    "DownloadProtocol",
    "DownloadResult",
]
