"""Chunk metadata of multipart uploads, one Redis hash per session keyed by chunk index."""
import logging
from typing import List, Optional

from pydantic import ValidationError
from redis.exceptions import RedisError

from multipart_storage.core.exceptions import (
    ChunkNotFoundException,
    SerializationException,
    StorageException,
)
from multipart_storage.models.multipart import MultipartUploadChunk
from multipart_storage.services.delay_job import StorageDelayJob, delay_job
from multipart_storage.services.redis_service import RedisClientManager
from multipart_storage.utils.logger import get_logger

logger: logging.Logger = get_logger(__name__)


class ChunkStore:
    """
    Stores MultipartUploadChunk records in a per-session hash.

    Writes to an index overwrite the previous record. The hash gets its TTL
    only while it has none, so the retention window runs from the first
    stored chunk and later chunks cannot keep a stalled upload alive.
    """

    def __init__(self, manager: Optional[RedisClientManager] = None, job: Optional[StorageDelayJob] = None):
        self.delay_job = job or delay_job
        self.redis_manager = manager or self.delay_job.redis_manager

    def _key(self, upload_id: str) -> str:
        return self.redis_manager.key("hash", upload_id, "chunks")

    async def put_chunk(self, record: MultipartUploadChunk) -> None:
        key = self._key(record.upload_id)
        try:
            payload = record.model_dump_json()
        except (TypeError, ValueError) as e:
            logger.error("Marshal chunk %s of upload '%s' failed: %s", record.chunk, record.upload_id, e)
            raise SerializationException(key, e)

        client = self.redis_manager.client
        try:
            await client.hset(key, str(record.chunk), payload)
        except RedisError as e:
            logger.error("Redis hset chunk %s into '%s' failed: %s", record.chunk, key, e)
            raise StorageException("hset", key, e)

        ttl = self.delay_job.delay_duration()
        try:
            # -1: key exists without expiry
            if await client.ttl(key) == -1:
                await client.pexpire(key, max(1, int(ttl.total_seconds() * 1000)))
        except RedisError as e:
            logger.error("Set expire %s on chunk hash '%s' failed: %s", ttl, key, e)

        logger.info("Multipart upload '%s' chunk %s stored in '%s'", record.upload_id, record.chunk, key)

    async def get_all_chunks(self, upload_id: str) -> List[MultipartUploadChunk]:
        """
        Every stored chunk of the upload, sorted by ascending chunk index.

        Raises:
            ChunkNotFoundException: the hash is absent or empty
            SerializationException: a stored value cannot be decoded
        """
        key = self._key(upload_id)
        try:
            entries = await self.redis_manager.client.hgetall(key)
        except RedisError as e:
            logger.error("Redis hgetall '%s' failed: %s", key, e)
            raise StorageException("hgetall", key, e)

        if not entries:
            raise ChunkNotFoundException(upload_id)

        chunks: List[MultipartUploadChunk] = []
        for field, value in entries.items():
            if not value:
                logger.warning("Empty chunk record, hash '%s' field '%s'", key, field)
                continue
            try:
                chunks.append(MultipartUploadChunk.model_validate_json(value))
            except ValidationError as e:
                logger.error("Unmarshal chunk record '%s' failed: %s", value, e)
                raise SerializationException(key, e)

        chunks.sort(key=lambda c: c.chunk)
        return chunks

    async def get_chunk(self, upload_id: str, chunk: int) -> MultipartUploadChunk:
        key = self._key(upload_id)
        try:
            value = await self.redis_manager.client.hget(key, str(chunk))
        except RedisError as e:
            logger.error("Redis hget '%s' field %s failed: %s", key, chunk, e)
            raise StorageException("hget", key, e)

        if not value:
            raise ChunkNotFoundException(upload_id, chunk)

        try:
            return MultipartUploadChunk.model_validate_json(value)
        except ValidationError as e:
            logger.error("Unmarshal upload '%s' chunk %s failed: %s", upload_id, chunk, value)
            raise SerializationException(key, e)
