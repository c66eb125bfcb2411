"""
Common test fixtures shared by all modules.

Provides factory functions for:
- Source files on disk
- ServerStore / UploadIndex instances
- Connections that misbehave like a compromised server
- An HttpClient that answers from a FastAPI TestClient
"""

from pathlib import Path
from typing import Any, Callable, Optional

from fastapi.testclient import TestClient

from core.http.client import HttpClient, HttpResponse
from core.schemas.transport import DownloadResponse, ListResponse, UploadAck, UploadRequest
from core.storage import ServerStore, UploadIndex


# =============================================================================
# Files and stores
# =============================================================================

def write_files(directory: Path, files: dict[str, bytes]) -> list[Path]:
    """
    Write ``files`` into ``directory`` and return their paths in order.

    Args:
        directory: Target directory (created if missing)
        files: Mapping of filename to content; insertion order is kept
    """
    directory.mkdir(parents=True, exist_ok=True)
    paths = []
    for name, content in files.items():
        path = directory / name
        path.write_bytes(content)
        paths.append(path)
    return paths


def make_store(path: Path, verify_uploads: bool = True) -> ServerStore:
    return ServerStore(path, verify_uploads=verify_uploads)


def make_index(path: Path) -> UploadIndex:
    return UploadIndex(path)


# =============================================================================
# Connections
# =============================================================================

class TamperingConnection:
    """
    Wraps a connection and rewrites its download responses.

    Args:
        inner: Connection that does the real work
        tamper: Function applied to every DownloadResponse
    """

    def __init__(self, inner: Any, tamper: Callable[[DownloadResponse], DownloadResponse]):
        self.inner = inner
        self.tamper = tamper
        self.upload_requests: list[UploadRequest] = []

    def upload(self, request: UploadRequest) -> UploadAck:
        self.upload_requests.append(request)
        return self.inner.upload(request)

    def download(self, root: str, filename: str) -> DownloadResponse:
        return self.tamper(self.inner.download(root, filename))

    def list_batches(self) -> ListResponse:
        return self.inner.list_batches()

    def close(self) -> None:
        pass


class TestClientHttpClient(HttpClient):
    """HttpClient that sends requests to an in-process FastAPI app."""

    __test__ = False

    def __init__(self, test_client: TestClient) -> None:
        super().__init__(timeout=5.0)
        self.test_client = test_client
        self.calls: list[tuple[str, str]] = []

    def request(
        self,
        method: str,
        url: str,
        *,
        json: Optional[Any] = None,
    ) -> HttpResponse:
        self.calls.append((method, url))
        response = self.test_client.request(method, url, json=json)
        return HttpResponse(status_code=response.status_code, content=response.content)

    def close(self) -> None:
        pass
