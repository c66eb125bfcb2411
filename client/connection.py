"""
Server Connections

The client protocols talk to the server through a ``ServerConnection``:

- HttpServerConnection: the HTTP binding (requests)
- LocalServerConnection: calls a ServerStore in-process

Both raise the same domain exceptions, so the protocols never see which
binding they run over.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol, TypeVar
from urllib.parse import quote

from pydantic import BaseModel, ValidationError

from core.http.client import HttpClient, HttpError, HttpResponse
from core.schemas.errors import MerkleVaultError, MerkleVaultException, TransportException
from core.schemas.transport import DownloadResponse, ListResponse, UploadAck, UploadRequest
from core.storage import (
    ServerStore,
    handle_download,
    handle_list,
    handle_upload,
    parse_download_request,
)


logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class ServerConnection(Protocol):
    """Message exchange with a server."""

    def upload(self, request: UploadRequest) -> UploadAck:
        ...

    def download(self, root: str, filename: str) -> DownloadResponse:
        ...

    def list_batches(self) -> ListResponse:
        ...

    def close(self) -> None:
        ...


class LocalServerConnection:
    """In-process binding to a ServerStore."""

    def __init__(self, store: ServerStore) -> None:
        self.store = store

    def upload(self, request: UploadRequest) -> UploadAck:
        return handle_upload(self.store, request)

    def download(self, root: str, filename: str) -> DownloadResponse:
        return handle_download(self.store, parse_download_request(root, filename))

    def list_batches(self) -> ListResponse:
        return handle_list(self.store)

    def close(self) -> None:
        pass


class HttpServerConnection:
    """
    HTTP binding to a MerkleVault server.

    Error responses are turned back into the domain exception named by their
    error code. Connection failures, timeouts and unparseable responses
    raise TransportException.

    Usage:
        with HttpServerConnection("http://127.0.0.1:2345") as conn:
            listing = conn.list_batches()
    """

    def __init__(
        self,
        base_url: str,
        http_client: HttpClient | None = None,
        *,
        timeout: float = 30.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.http = http_client or HttpClient(timeout=timeout)

    def _url(self, *parts: str) -> str:
        return "/".join([self.base_url, *(quote(p, safe="") for p in parts)])

    def _send(self, method: str, url: str, json: Any | None = None) -> HttpResponse:
        try:
            if method == "POST":
                return self.http.post(url, json=json)
            return self.http.get(url)
        except HttpError as e:
            logger.warning(f"{method} {url} failed: {e}")
            raise TransportException(
                f"Cannot reach server at {self.base_url}: {e}",
                details={"url": url},
            ) from e

    @staticmethod
    def _error_from(response: HttpResponse) -> MerkleVaultException:
        try:
            payload = response.json()
            error = MerkleVaultError.model_validate(payload["error"])
        except (ValueError, KeyError, TypeError, ValidationError):
            return TransportException(
                f"Unexpected HTTP {response.status_code} from server",
                status_code=response.status_code,
            )
        return error.to_exception()

    def _parse(self, response: HttpResponse, model: type[ModelT]) -> ModelT:
        if not response.ok:
            raise self._error_from(response)
        try:
            return model.model_validate_json(response.content)
        except ValidationError as e:
            raise TransportException(
                f"Malformed {model.__name__} from server: {e.error_count()} errors",
                status_code=response.status_code,
            ) from e

    def upload(self, request: UploadRequest) -> UploadAck:
        response = self._send(
            "POST", self._url("batches"), json=request.model_dump(mode="json")
        )
        return self._parse(response, UploadAck)

    def download(self, root: str, filename: str) -> DownloadResponse:
        response = self._send("GET", self._url("batches", root, "files", filename))
        return self._parse(response, DownloadResponse)

    def list_batches(self) -> ListResponse:
        response = self._send("GET", self._url("batches"))
        return self._parse(response, ListResponse)

    def close(self) -> None:
        self.http.close()

    def __enter__(self) -> "HttpServerConnection":
        return self

    def __exit__(self, *args) -> None:
        self.close()
