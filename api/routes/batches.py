"""
Batch Routes

Upload, list and download over HTTP. The handlers are shared with the
in-process connection, so both bindings answer identically.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from api.deps import get_store
from core.schemas.transport import DownloadResponse, ListResponse, UploadAck, UploadRequest
from core.storage import (
    ServerStore,
    handle_download,
    handle_list,
    handle_upload,
    parse_download_request,
)


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/batches", tags=["batches"])


@router.post("", response_model=UploadAck)
def upload_batch(
    request: UploadRequest,
    store: ServerStore = Depends(get_store),
) -> UploadAck:
    """
    Store an upload batch under its root.

    Repeating an upload with the same file list succeeds with
    ``created=False``. The same bytes under new names are stored alongside
    the earlier batch; moving a stored name to another leaf is a
    BATCH_CONFLICT.
    """
    logger.info(f"Upload of {len(request.files)} files for root {request.root}")
    return handle_upload(store, request)


@router.get("", response_model=ListResponse)
def list_batches(store: ServerStore = Depends(get_store)) -> ListResponse:
    """List stored batches, oldest first."""
    return handle_list(store)


@router.get("/{root}/files/{filename}", response_model=DownloadResponse)
def download_file(
    root: str,
    filename: str,
    store: ServerStore = Depends(get_store),
) -> DownloadResponse:
    """Return one file of a batch with the inclusion proof for its leaf."""
    return handle_download(store, parse_download_request(root, filename))
