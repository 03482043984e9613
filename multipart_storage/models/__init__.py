"""Records persisted in Redis and resource classification."""
from multipart_storage.models.multipart import MultipartUploadChunk, MultipartUploadStart
from multipart_storage.models.resource import (
    DOWNLOAD_RESOURCE_TYPES,
    RESOURCE_TYPE_DIRS,
    ResourceType,
    resource_dir,
)

__all__ = [
    "MultipartUploadStart",
    "MultipartUploadChunk",
    "ResourceType",
    "RESOURCE_TYPE_DIRS",
    "DOWNLOAD_RESOURCE_TYPES",
    "resource_dir",
]
