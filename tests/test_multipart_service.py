"""Tests for multipart upload sessions."""
import dataclasses
import hashlib
from pathlib import Path

import pytest

from multipart_storage.core.exceptions import (
    ChunkNotFoundException,
    ChunksNotEnoughException,
    ChunkTooLargeException,
    ContentMismatchException,
    InternalServerException,
    InvalidRequestException,
    InvalidResourceTypeException,
    SizeMismatchException,
    UnsupportedSuffixException,
    UploadNotFoundException,
)
from multipart_storage.schemas.multipart import MultipartChunkRequest, MultipartStartRequest
from multipart_storage.models.resource import ResourceType
from multipart_storage.services.multipart_service import MultipartStorage
from multipart_storage.services.storage_service import Storage

BYTES_A = b"A" * 100
BYTES_B = b"B" * 50


def _md5(data: bytes) -> str:
    return hashlib.md5(data).hexdigest()


def _aggregate(*checksums: str) -> str:
    return hashlib.md5("".join(checksums).encode()).hexdigest()


async def _start(service, upload_id="S1", filename="a.png", chunks=2, content_md5=""):
    request = MultipartStartRequest(upload_id=upload_id, filename=filename, chunks=chunks, type=1,
                                    content_md5=content_md5)
    return await service.start(request)


async def _chunk(service, chunk, content, content_md5="", size=0, upload_id="S1"):
    request = MultipartChunkRequest(upload_id=upload_id, chunk=chunk, content_md5=content_md5, size=size)
    return await service.upload(request, "blob.png", content)


def _with(service, **changes):
    config = dataclasses.replace(service.config, **changes)
    return MultipartStorage(config=config, job=service.delay_job, sessions=service.sessions, chunks=service.chunks)


async def test_upload_and_done(multipart_storage, storage_config, redis_client):
    assert (await _start(multipart_storage)).upload_id == "S1"
    await _chunk(multipart_storage, 0, BYTES_A, "md5a", 100)
    await _chunk(multipart_storage, 1, BYTES_B, "md5b", 50)

    result = await multipart_storage.done("S1")

    destination = Path(storage_config.upload_path).resolve() / "icon" / "S1.png"
    assert destination.read_bytes() == BYTES_A + BYTES_B
    assert result.upload_id == "S1"
    assert result.download_path.startswith("/icon/S1.png?v=")
    assert result.download_path.endswith("&where=multi_upload")
    assert result.validity == "10m0s"

    queued = await redis_client.zrange(multipart_storage.delay_job.queue, 0, -1)
    assert str(destination) in queued


async def test_chunk_record(multipart_storage, storage_config, redis_client):
    await _start(multipart_storage)

    record = await _chunk(multipart_storage, 0, BYTES_A, "md5a")

    staged = Path(storage_config.upload_path).resolve() / "tmp" / "S1" / "0.png"
    assert staged.read_bytes() == BYTES_A
    assert record.upload_id == "S1"
    assert record.chunk == 0
    assert record.content_md5 == "md5a"
    assert record.validity == "10m0s"
    assert record.download_path == f"/tmp/S1/0.png?v={multipart_storage.version}&where=multi_upload"
    assert await redis_client.zscore(multipart_storage.delay_job.queue, str(staged)) is not None
    assert await redis_client.zscore(multipart_storage.delay_job.queue, str(staged.parent)) is not None
    assert await multipart_storage.get_chunk("S1", 0) == record


async def test_out_of_order_chunks_merge_by_index(multipart_storage, storage_config):
    await _start(multipart_storage, chunks=3)
    for index, data in ((2, b"C"), (0, b"A"), (1, b"B")):
        await _chunk(multipart_storage, index, data)

    await multipart_storage.done("S1")

    assert (Path(storage_config.upload_path) / "icon" / "S1.png").read_bytes() == b"ABC"
    assert [c.chunk for c in await multipart_storage.get_chunks("S1")] == [0, 1, 2]


async def test_reupload_overwrites_chunk(multipart_storage, storage_config):
    await _start(multipart_storage)
    await _chunk(multipart_storage, 0, b"old", "old")
    await _chunk(multipart_storage, 0, b"new", "new")
    await _chunk(multipart_storage, 1, b"!")

    await multipart_storage.done("S1")

    assert (Path(storage_config.upload_path) / "icon" / "S1.png").read_bytes() == b"new!"
    assert (await multipart_storage.get_chunk("S1", 0)).content_md5 == "new"


async def test_done_is_repeatable(multipart_storage, storage_config):
    await _start(multipart_storage)
    await _chunk(multipart_storage, 0, BYTES_A)
    await _chunk(multipart_storage, 1, BYTES_B)

    await multipart_storage.done("S1")
    await multipart_storage.done("S1")

    assert (Path(storage_config.upload_path) / "icon" / "S1.png").read_bytes() == BYTES_A + BYTES_B


async def test_done_with_missing_chunks(multipart_storage):
    await _start(multipart_storage)
    await _chunk(multipart_storage, 0, BYTES_A)

    with pytest.raises(ChunksNotEnoughException) as exc_info:
        await multipart_storage.done("S1")
    assert exc_info.value.message == "upload 'S1' chunks not enough, current 1, want 2"


async def test_done_with_extra_chunks(multipart_storage):
    await _start(multipart_storage, upload_id="S2")
    for index in (0, 1, 2):
        await _chunk(multipart_storage, index, BYTES_B, upload_id="S2")

    with pytest.raises(ChunksNotEnoughException) as exc_info:
        await multipart_storage.done("S2")
    assert exc_info.value.message == "upload 'S2' chunks not enough, current 3, want 2"


async def test_done_without_chunks(multipart_storage):
    await _start(multipart_storage)
    with pytest.raises(ChunkNotFoundException):
        await multipart_storage.done("S1")


async def test_unknown_session(multipart_storage):
    with pytest.raises(UploadNotFoundException):
        await _chunk(multipart_storage, 0, BYTES_A, upload_id="nope")
    with pytest.raises(UploadNotFoundException):
        await multipart_storage.done("nope")


async def test_aggregate_checksum(multipart_storage):
    service = _with(multipart_storage, check_content_enabled=True)
    await _start(service, content_md5=_aggregate(_md5(BYTES_A), _md5(BYTES_B)))
    await _chunk(service, 0, BYTES_A, _md5(BYTES_A))
    await _chunk(service, 1, BYTES_B, _md5(BYTES_B))

    result = await service.done("S1")
    assert result.upload_id == "S1"


async def test_aggregate_checksum_mismatch_keeps_destination_scheduled(multipart_storage, storage_config,
                                                                       redis_client):
    service = _with(multipart_storage, check_content_enabled=True)
    await _start(service, content_md5="0" * 32)
    await _chunk(service, 0, BYTES_A, _md5(BYTES_A))
    await _chunk(service, 1, BYTES_B, _md5(BYTES_B))

    with pytest.raises(ContentMismatchException) as exc_info:
        await service.done("S1")

    destination = Path(storage_config.upload_path).resolve() / "icon" / "S1.png"
    assert exc_info.value.details["actual"] == _aggregate(_md5(BYTES_A), _md5(BYTES_B))
    assert destination.exists()
    assert await redis_client.zscore(service.delay_job.queue, str(destination)) is not None


async def test_aggregate_checksum_ignored_when_disabled(multipart_storage):
    await _start(multipart_storage, content_md5="0" * 32)
    await _chunk(multipart_storage, 0, BYTES_A, "md5a")
    await _chunk(multipart_storage, 1, BYTES_B, "md5b")

    await multipart_storage.done("S1")


async def test_chunk_size_checks(multipart_storage):
    service = _with(multipart_storage, check_size_enabled=True, type_check_size_max={1: 64})
    await _start(service)

    with pytest.raises(ChunkTooLargeException) as exc_info:
        await _chunk(service, 0, BYTES_A, size=100)
    assert exc_info.value.message == "request file too large, max size 64 bytes"

    with pytest.raises(SizeMismatchException) as exc_info:
        await _chunk(service, 0, BYTES_B, size=40)
    assert exc_info.value.message == "upload file size not equal input 40, want 50"

    # Undeclared sizes are not checked
    await _chunk(service, 0, BYTES_A)


async def test_chunk_size_checks_disabled(multipart_storage):
    await _start(multipart_storage)
    await _chunk(multipart_storage, 0, BYTES_A, size=1)


async def test_chunk_content_check(multipart_storage):
    service = _with(multipart_storage, check_content_enabled=True)
    await _start(service)

    with pytest.raises(ContentMismatchException) as exc_info:
        await _chunk(service, 0, BYTES_A, "md5a")
    assert exc_info.value.message == f"upload file content_md5 not equal input 'md5a', want '{_md5(BYTES_A)}'"

    await _chunk(service, 0, BYTES_A, _md5(BYTES_A))


async def test_start_validation(multipart_storage):
    with pytest.raises(UnsupportedSuffixException):
        await _start(multipart_storage, filename="a.exe")
    with pytest.raises(InvalidRequestException):
        await _start(multipart_storage, upload_id="../S1")
    with pytest.raises(InvalidResourceTypeException):
        await multipart_storage.start(MultipartStartRequest(filename="a.png", chunks=1, type=0))


async def test_start_generates_upload_id(multipart_storage):
    from multipart_storage.config import settings

    started = await multipart_storage.start(MultipartStartRequest(filename="a.png", chunks=1, type=1))

    assert started.upload_id.endswith(f"_{settings.hostname}")
    assert (await multipart_storage.sessions.get_start(started.upload_id)).filename == "a.png"


async def test_unexpected_merge_error_is_internal(multipart_storage, monkeypatch):
    await _start(multipart_storage, chunks=1)
    await _chunk(multipart_storage, 0, BYTES_A)

    async def broken_merge(chunks, destination):
        raise RuntimeError("disk vanished")

    monkeypatch.setattr(multipart_storage, "_merge", broken_merge)

    with pytest.raises(InternalServerException) as exc_info:
        await multipart_storage.done("S1")
    assert exc_info.value.message == "internal server error"
    assert isinstance(exc_info.value.original_error, RuntimeError)


async def test_start_rejects_multipart_staging_type(multipart_storage):
    with pytest.raises(InvalidResourceTypeException):
        await multipart_storage.start(MultipartStartRequest(upload_id="S1_0", filename="a.png", chunks=1, type=11))


async def test_sessions_never_share_staged_chunks(multipart_storage, storage_config):
    await _start(multipart_storage, chunks=1)
    await _chunk(multipart_storage, 0, b"CHUNK-OF-S1")

    await _start(multipart_storage, upload_id="S1_0", chunks=1)
    await _chunk(multipart_storage, 0, b"OTHER", upload_id="S1_0")
    await multipart_storage.done("S1_0")
    staging = Storage(ResourceType.MULTIPART, "S1_0", config=storage_config, job=multipart_storage.delay_job)
    await staging.upload("x.png", b"SINGLE")

    staged = Path(storage_config.upload_path) / "tmp" / "S1" / "0.png"
    assert staged.read_bytes() == b"CHUNK-OF-S1"
    await multipart_storage.done("S1")
    assert (Path(storage_config.upload_path) / "icon" / "S1.png").read_bytes() == b"CHUNK-OF-S1"
