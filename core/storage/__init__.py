"""
Persistent storage for both sides of the protocol.

- ServerStore: server-owned blobs and batch manifests
- UploadIndex: client-owned record of uploaded batches
"""

from .blob_store import ServerStore, StoredFile, StoreResult
from .handlers import handle_download, handle_list, handle_upload, parse_download_request
from .upload_index import UploadIndex

__all__ = [
    "ServerStore",
    "StoredFile",
    "StoreResult",
    "UploadIndex",
    "handle_download",
    "handle_list",
    "handle_upload",
    "parse_download_request",
]
