"""Service modules for storage and upload logic."""
from multipart_storage.services.chunk_store import ChunkStore
from multipart_storage.services.delay_job import StorageDelayJob, delay_job
from multipart_storage.services.multipart_service import MultipartStorage
from multipart_storage.services.redis_service import RedisClientManager, redis_manager
from multipart_storage.services.session_store import SessionStore
from multipart_storage.services.storage_service import Storage, cdn_file_path

__all__ = [
    "RedisClientManager",
    "redis_manager",
    "StorageDelayJob",
    "delay_job",
    "SessionStore",
    "ChunkStore",
    "Storage",
    "cdn_file_path",
    "MultipartStorage",
]
