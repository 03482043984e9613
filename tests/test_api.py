"""Tests for the HTTP endpoints."""
from pathlib import Path

import httpx
import pytest

from multipart_storage.api.upload import get_delay_job, get_storage_config
from multipart_storage.main import app
from multipart_storage.services.delay_job import StorageDelayJob
from multipart_storage.services.redis_service import RedisClientManager


@pytest.fixture
async def client(storage_config, delay_job):
    app.dependency_overrides[get_storage_config] = lambda: storage_config
    app.dependency_overrides[get_delay_job] = lambda: delay_job
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as http_client:
        yield http_client
    app.dependency_overrides.clear()


async def _start(client, **overrides):
    body = {"upload_id": "S1", "filename": "a.png", "chunks": 2, "type": 1}
    body.update(overrides)
    return await client.post("/api/v1/multipart/start", json=body)


async def _chunk(client, chunk, content, upload_id="S1"):
    return await client.post(
        "/api/v1/multipart/chunk",
        data={"upload_id": upload_id, "chunk": str(chunk), "content_md5": f"md5-{chunk}"},
        files={"file": ("blob.png", content, "application/octet-stream")}
    )


async def test_multipart_flow(client, storage_config):
    response = await _start(client)
    assert response.status_code == 200
    assert response.json() == {"upload_id": "S1"}

    response = await _chunk(client, 1, b"world")
    assert response.status_code == 200
    assert response.json()["download_path"].startswith("/tmp/S1/1.png?v=")
    assert (await _chunk(client, 0, b"hello ")).status_code == 200

    response = await client.get("/api/v1/multipart/S1/chunks")
    assert response.status_code == 200
    assert [c["chunk"] for c in response.json()["chunks"]] == [0, 1]

    response = await client.get("/api/v1/multipart/S1/chunks/1")
    assert response.status_code == 200
    assert response.json()["content_md5"] == "md5-1"

    response = await client.post("/api/v1/multipart/done", json={"upload_id": "S1"})
    assert response.status_code == 200
    body = response.json()
    assert body["download_path"].startswith("/icon/S1.png?v=")
    assert body["validity"] == "10m0s"
    assert (Path(storage_config.upload_path) / "icon" / "S1.png").read_bytes() == b"hello world"


async def test_client_error_is_400(client):
    response = await _chunk(client, 0, b"data", upload_id="missing")

    assert response.status_code == 400
    error = response.json()["error"]
    assert error["code"] == "UPLOAD_NOT_FOUND"
    assert error["message"] == "upload 'missing' not found"


async def test_chunks_not_enough_is_400(client):
    await _start(client)
    await _chunk(client, 0, b"data")

    response = await client.post("/api/v1/multipart/done", json={"upload_id": "S1"})

    assert response.status_code == 400
    assert response.json()["error"]["message"] == "upload 'S1' chunks not enough, current 1, want 2"


async def test_missing_chunk_is_400(client):
    await _start(client)
    response = await client.get("/api/v1/multipart/S1/chunks/0")

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "CHUNK_NOT_FOUND"


async def test_internal_error_is_opaque(client, storage_config):
    unconnected = StorageDelayJob(manager=RedisClientManager(key_prefix="test"), config=storage_config)
    app.dependency_overrides[get_delay_job] = lambda: unconnected

    response = await _start(client)

    assert response.status_code == 500
    error = response.json()["error"]
    assert error["message"] == "internal server error"
    assert "details" not in error


async def test_request_validation_is_422(client):
    response = await _chunk(client, -1, b"data")
    assert response.status_code == 422
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


async def test_upload_and_rename(client, storage_config, delay_job, redis_client):
    response = await client.post(
        "/api/v1/upload",
        data={"type": "1", "resource_id": "banner"},
        files={"file": ("photo.png", b"png", "image/png")}
    )
    assert response.status_code == 200
    body = response.json()
    assert body["resource_id"] == "banner"
    assert body["upload_path"].startswith("/icon/banner.png?v=")
    assert body["upload_path"].endswith("&where=upload")
    assert body["validity"] == "10m0s"

    response = await client.post(
        "/api/v1/upload/rename",
        json={"type": 1, "resource_id": "banner", "upload_path": body["upload_path"]}
    )
    assert response.status_code == 200
    assert response.json()["path"].startswith("/icon/banner.png?v=")
    assert (Path(storage_config.root_path) / "icon" / "banner.png").read_bytes() == b"png"
    assert await redis_client.zcard(delay_job.queue) == 0


async def test_upload_invalid_type_is_400(client):
    response = await client.post(
        "/api/v1/upload",
        data={"type": "0"},
        files={"file": ("photo.png", b"png", "image/png")}
    )
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_RESOURCE_TYPE"


async def test_health_without_redis(client):
    response = await client.get("/health")
    assert response.status_code == 503
    assert response.json()["redis"] is False
