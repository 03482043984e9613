"""Multipart upload schemas."""
from typing import List

from pydantic import BaseModel, Field

from multipart_storage.models.multipart import MultipartUploadChunk


class MultipartStartRequest(BaseModel):
    """Schema for starting a multipart upload."""
    upload_id: str = Field("", description="Upload session ID, generated when empty")
    filename: str = Field(..., min_length=1, description="Target filename of the merged file")
    chunks: int = Field(..., ge=0, description="Total number of chunks")
    type: int = Field(..., description="Resource type of the merged file")
    content_md5: str = Field("", description="MD5 over the concatenated chunk checksums")
    size: int = Field(0, ge=0, description="Declared total size in bytes")


class MultipartStartResponse(BaseModel):
    upload_id: str = Field(..., description="Upload session ID")


class MultipartChunkRequest(BaseModel):
    """Schema for one chunk upload; the bytes travel as a multipart form file."""
    upload_id: str = Field(..., min_length=1, description="Upload session ID")
    chunk: int = Field(..., ge=0, description="Chunk index")
    content_md5: str = Field("", description="MD5 of the chunk bytes")
    size: int = Field(0, ge=0, description="Size of the chunk bytes")


class MultipartDoneRequest(BaseModel):
    upload_id: str = Field(..., min_length=1, description="Upload session ID")


class MultipartDoneResponse(BaseModel):
    """Schema for the merged file."""
    upload_id: str = Field(..., description="Upload session ID")
    download_path: str = Field(..., description="Staged path reference of the merged file")
    validity: str = Field(..., description="Time until the merged file is deleted unless finalized")


class MultipartChunksResponse(BaseModel):
    upload_id: str = Field(..., description="Upload session ID")
    chunks: List[MultipartUploadChunk] = Field(default_factory=list, description="Stored chunks by ascending index")
