"""Start metadata of multipart uploads, one TTL-bounded Redis string per session."""
import logging
from typing import Optional

from pydantic import ValidationError
from redis.exceptions import RedisError

from multipart_storage.core.exceptions import (
    SerializationException,
    StorageException,
    UploadNotFoundException,
)
from multipart_storage.models.multipart import MultipartUploadStart
from multipart_storage.services.delay_job import StorageDelayJob, delay_job
from multipart_storage.services.redis_service import RedisClientManager
from multipart_storage.utils.logger import get_logger

logger: logging.Logger = get_logger(__name__)


class SessionStore:
    """Persists MultipartUploadStart records for the retention window."""

    def __init__(self, manager: Optional[RedisClientManager] = None, job: Optional[StorageDelayJob] = None):
        self.delay_job = job or delay_job
        self.redis_manager = manager or self.delay_job.redis_manager

    def _key(self, upload_id: str) -> str:
        return self.redis_manager.key(upload_id, "metadata")

    async def put_start(self, upload_id: str, metadata: MultipartUploadStart) -> None:
        key = self._key(upload_id)
        try:
            payload = metadata.model_dump_json()
        except (TypeError, ValueError) as e:
            logger.error("Marshal multipart upload start '%s' failed: %s", upload_id, e)
            raise SerializationException(key, e)

        ttl = self.delay_job.delay_duration()
        try:
            await self.redis_manager.client.set(key, payload, px=max(1, int(ttl.total_seconds() * 1000)))
        except RedisError as e:
            logger.error("Redis set multipart upload metadata '%s' failed: %s", key, e)
            raise StorageException("set", key, e)

        logger.info("Multipart upload '%s' started, metadata %s, expire %s", upload_id, payload, ttl)

    async def get_start(self, upload_id: str) -> MultipartUploadStart:
        """
        Load the start metadata.

        Raises:
            UploadNotFoundException: absent, expired or empty
            SerializationException: the stored value cannot be decoded
        """
        key = self._key(upload_id)
        try:
            raw = await self.redis_manager.client.get(key)
        except RedisError as e:
            logger.error("Redis get multipart upload metadata '%s' failed: %s", key, e)
            raise StorageException("get", key, e)

        if not raw:
            raise UploadNotFoundException(upload_id)

        try:
            return MultipartUploadStart.model_validate_json(raw)
        except ValidationError as e:
            logger.error("Unmarshal multipart upload start '%s' failed: %s", raw, e)
            raise SerializationException(key, e)
