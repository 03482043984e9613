"""Pydantic schemas for API requests and responses."""
from multipart_storage.schemas.multipart import (
    MultipartChunkRequest,
    MultipartChunksResponse,
    MultipartDoneRequest,
    MultipartDoneResponse,
    MultipartStartRequest,
    MultipartStartResponse,
)
from multipart_storage.schemas.upload import (
    RenameRequest,
    RenameResponse,
    UnzipRequest,
    UnzipResponse,
    UploadResponse,
)

__all__ = [
    # Multipart schemas
    "MultipartStartRequest",
    "MultipartStartResponse",
    "MultipartChunkRequest",
    "MultipartDoneRequest",
    "MultipartDoneResponse",
    "MultipartChunksResponse",
    # Upload schemas
    "UploadResponse",
    "RenameRequest",
    "RenameResponse",
    "UnzipRequest",
    "UnzipResponse",
]
