"""
Server-side message handling.

Translates transport messages into ServerStore calls and store results back
into transport messages. Shared by the HTTP routes and the in-process
connection so both bindings answer identically.
"""
from __future__ import annotations

from pydantic import ValidationError

from core.schemas.errors import InvalidRequestException
from core.schemas.transport import (
    BatchSummary,
    DownloadRequest,
    DownloadResponse,
    ListResponse,
    ProofModel,
    UploadAck,
    UploadRequest,
    encode_content,
)
from core.storage.blob_store import ServerStore


def parse_download_request(root: str, filename: str) -> DownloadRequest:
    """Validate a (root, filename) pair taken from a URL or a caller."""
    try:
        return DownloadRequest(root=root, filename=filename)
    except ValidationError as e:
        raise InvalidRequestException(
            "Malformed download request",
            details={
                "errors": [
                    {"loc": [str(part) for part in err["loc"]], "msg": err["msg"]}
                    for err in e.errors()
                ]
            },
        ) from e


def handle_upload(store: ServerStore, request: UploadRequest) -> UploadAck:
    files = [(entry.filename, entry.content) for entry in request.files]
    result = store.store_batch(request.root, files, request.hash_algorithm)
    return UploadAck(
        ok=True,
        root=result.manifest.root,
        file_count=len(result.manifest.entries),
        created=result.created,
    )


def handle_download(store: ServerStore, request: DownloadRequest) -> DownloadResponse:
    stored = store.fetch(request.root, request.filename)
    return DownloadResponse(
        root=stored.root,
        filename=stored.filename,
        leaf_index=stored.leaf_index,
        hash_algorithm=stored.hash_algorithm,
        content_b64=encode_content(stored.content),
        proof=ProofModel.from_proof(stored.proof),
    )


def handle_list(store: ServerStore) -> ListResponse:
    """One summary per uploaded filename list; aliases share their root."""
    return ListResponse(
        batches=[
            BatchSummary(
                root=manifest.root,
                filenames=names,
                hash_algorithm=manifest.hash_algorithm,
            )
            for manifest in store.list_batches()
            for names in manifest.filename_lists
        ]
    )
