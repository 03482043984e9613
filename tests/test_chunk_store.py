"""Tests for the chunk metadata store."""
import pytest

from multipart_storage.core.exceptions import ChunkNotFoundException, SerializationException
from multipart_storage.models.multipart import MultipartUploadChunk

HASH_KEY = "test:multipart_storage:hash:S1:chunks"


def _chunk(chunk, content_md5=""):
    return MultipartUploadChunk(
        upload_id="S1",
        chunk=chunk,
        content_md5=content_md5 or f"md5-{chunk}",
        validity="10m0s",
        download_path=f"/tmp/S1/{chunk}.png?v=1&where=multi_upload"
    )


async def test_get_all_chunks_sorted(chunk_store):
    for index in (2, 0, 1):
        await chunk_store.put_chunk(_chunk(index))

    chunks = await chunk_store.get_all_chunks("S1")
    assert [c.chunk for c in chunks] == [0, 1, 2]


async def test_put_overwrites_index(chunk_store):
    await chunk_store.put_chunk(_chunk(0, "first"))
    await chunk_store.put_chunk(_chunk(0, "second"))

    chunks = await chunk_store.get_all_chunks("S1")
    assert len(chunks) == 1
    assert chunks[0].content_md5 == "second"


async def test_ttl_set_only_once(chunk_store, redis_client):
    await chunk_store.put_chunk(_chunk(0))
    await redis_client.pexpire(HASH_KEY, 5000)

    await chunk_store.put_chunk(_chunk(1))

    assert 0 < await redis_client.pttl(HASH_KEY) <= 5000


async def test_ttl_set_on_first_write(chunk_store, redis_client):
    await chunk_store.put_chunk(_chunk(0))
    assert 0 < await redis_client.pttl(HASH_KEY) <= 600 * 1000


async def test_get_all_chunks_missing(chunk_store):
    with pytest.raises(ChunkNotFoundException) as exc_info:
        await chunk_store.get_all_chunks("S1")
    assert exc_info.value.message == "upload 'S1' chunks not found"


async def test_get_all_chunks_skips_empty_record(chunk_store, redis_client):
    await chunk_store.put_chunk(_chunk(0))
    await redis_client.hset(HASH_KEY, "1", "")

    chunks = await chunk_store.get_all_chunks("S1")
    assert [c.chunk for c in chunks] == [0]


async def test_get_all_chunks_corrupted_record(chunk_store, redis_client):
    await chunk_store.put_chunk(_chunk(0))
    await redis_client.hset(HASH_KEY, "1", "{broken")

    with pytest.raises(SerializationException):
        await chunk_store.get_all_chunks("S1")


async def test_get_chunk(chunk_store):
    await chunk_store.put_chunk(_chunk(3))
    assert (await chunk_store.get_chunk("S1", 3)).content_md5 == "md5-3"

    with pytest.raises(ChunkNotFoundException) as exc_info:
        await chunk_store.get_chunk("S1", 4)
    assert exc_info.value.message == "upload 'S1' chunk 4 not found"
