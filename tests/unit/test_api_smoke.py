"""
API Smoke Tests

Tests for the FastAPI endpoints:
1. GET /health returns ok
2. POST /batches stores a batch and is idempotent
3. GET /batches lists stored batches
4. GET /batches/{root}/files/{filename} returns bytes with a verifying proof
5. Errors carry stable codes and status codes
"""
import pytest
from fastapi.testclient import TestClient

from api.app import create_app
from core.crypto.hashing import SHA256, from_hex, to_hex
from core.merkle import MerkleTree, verify_proof
from core.schemas.transport import DownloadResponse, FileEntry, UploadRequest


FILES = [("a", b"hello"), ("b", b"world")]
ROOT = MerkleTree.build(content for _, content in FILES).root_hex


def upload_body(root: str = ROOT, files=FILES) -> dict:
    return UploadRequest(
        root=root,
        files=[FileEntry.from_bytes(name, content) for name, content in files],
    ).model_dump(mode="json")


@pytest.fixture
def client(store):
    return TestClient(create_app(store=store))


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["ok"] is True
        assert data["service"] == "merklevault-server"
        assert data["batches"] == 0

    def test_root_endpoint(self, client):
        assert client.get("/").json()["ok"] is True


class TestUploadEndpoint:
    def test_upload(self, client):
        response = client.post("/batches", json=upload_body())

        assert response.status_code == 200
        data = response.json()
        assert data == {"ok": True, "root": ROOT, "file_count": 2, "created": True}

    def test_repeat_upload(self, client):
        client.post("/batches", json=upload_body())
        response = client.post("/batches", json=upload_body())

        assert response.status_code == 200
        assert response.json()["created"] is False

    def test_root_mismatch(self, client):
        response = client.post("/batches", json=upload_body(root=to_hex(SHA256.digest(b"x"))))

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "ROOT_MISMATCH"

    def test_renamed_files_stored(self, client):
        client.post("/batches", json=upload_body())
        renamed = [("x", b"hello"), ("y", b"world")]
        response = client.post("/batches", json=upload_body(files=renamed))

        assert response.status_code == 200
        assert response.json()["created"] is True
        assert client.get(f"/batches/{ROOT}/files/y").json()["leaf_index"] == 1

    def test_conflict(self, client):
        client.post("/batches", json=upload_body())
        swapped = [("b", b"hello"), ("a", b"world")]
        response = client.post("/batches", json=upload_body(files=swapped))

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "BATCH_CONFLICT"

    def test_empty_batch(self, client):
        response = client.post("/batches", json={"root": ROOT, "files": []})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "EMPTY_INPUT"

    def test_malformed_body(self, client):
        response = client.post("/batches", json={"root": "not-hex", "files": []})

        assert response.status_code == 400
        body = response.json()
        assert body["ok"] is False
        assert body["error"]["code"] == "INVALID_REQUEST"


class TestListEndpoint:
    def test_list(self, client):
        assert client.get("/batches").json() == {"batches": []}

        client.post("/batches", json=upload_body())
        batches = client.get("/batches").json()["batches"]

        assert batches == [{"root": ROOT, "filenames": ["a", "b"], "hash_algorithm": "sha256"}]


class TestDownloadEndpoint:
    def test_download_verifies(self, client):
        client.post("/batches", json=upload_body())
        response = client.get(f"/batches/{ROOT}/files/b")

        assert response.status_code == 200
        payload = DownloadResponse.model_validate(response.json())
        assert payload.content == b"world"
        assert payload.leaf_index == 1
        assert verify_proof(payload.proof.to_proof(), SHA256.digest(b"world"), from_hex(ROOT))

    def test_missing_file(self, client):
        client.post("/batches", json=upload_body())
        response = client.get(f"/batches/{ROOT}/files/c")

        assert response.status_code == 404
        error = response.json()["error"]
        assert error["code"] == "NOT_FOUND"
        assert error["details"]["filename"] == "c"

    def test_unknown_root(self, client):
        response = client.get(f"/batches/{'cd' * 32}/files/a")
        assert response.status_code == 404

    def test_invalid_root(self, client):
        response = client.get("/batches/xyz/files/a")

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "INVALID_REQUEST"
        assert error["details"]["errors"][0]["loc"] == ["root"]


class TestLazyStore:
    def test_store_opened_from_config(self, tmp_path):
        from core.config.runtime import RuntimeConfig, ServerConfig

        config = RuntimeConfig(server=ServerConfig(store_dir=str(tmp_path / "lazy")))
        client = TestClient(create_app(config=config))

        assert client.post("/batches", json=upload_body()).status_code == 200
        assert (tmp_path / "lazy" / ROOT).is_dir()
