"""Shared fixtures: an in-memory Redis and storage directories under tmp_path."""
import os

# Settings are read once at import time
os.environ.setdefault("MULTIPART_LOG_ENABLE_FILE", "false")
os.environ.setdefault("MULTIPART_ENVIRONMENT", "testing")

import fakeredis
import pytest

from multipart_storage.core.config import StorageConfig
from multipart_storage.services.chunk_store import ChunkStore
from multipart_storage.services.delay_job import StorageDelayJob
from multipart_storage.services.multipart_service import MultipartStorage
from multipart_storage.services.redis_service import RedisClientManager
from multipart_storage.services.session_store import SessionStore

KEY_PREFIX = "test:multipart_storage"


@pytest.fixture
async def redis_client():
    client = fakeredis.FakeAsyncRedis(decode_responses=True)
    await client.flushall()
    yield client
    await client.flushall()
    await client.aclose()


@pytest.fixture
def redis_manager(redis_client):
    return RedisClientManager(redis_client=redis_client, key_prefix=KEY_PREFIX)


@pytest.fixture
def storage_config(tmp_path):
    return StorageConfig(
        upload_path=str(tmp_path / "upload"),
        root_path=str(tmp_path / "cdn"),
        download_path=str(tmp_path / "download"),
    )


@pytest.fixture
def delay_job(redis_manager, storage_config):
    return StorageDelayJob(manager=redis_manager, config=storage_config)


@pytest.fixture
def session_store(redis_manager, delay_job):
    return SessionStore(manager=redis_manager, job=delay_job)


@pytest.fixture
def chunk_store(redis_manager, delay_job):
    return ChunkStore(manager=redis_manager, job=delay_job)


@pytest.fixture
def multipart_storage(storage_config, delay_job, session_store, chunk_store):
    return MultipartStorage(config=storage_config, job=delay_job, sessions=session_store, chunks=chunk_store)
