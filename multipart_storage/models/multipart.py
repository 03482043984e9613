"""Records persisted in Redis for multipart uploads."""
from pydantic import BaseModel, Field


class MultipartUploadStart(BaseModel):
    """Session metadata written by Start; chunks is fixed for the session's lifetime."""
    upload_id: str = Field(..., description="Upload session ID")
    filename: str = Field(..., description="Target filename of the merged file")
    chunks: int = Field(..., ge=0, description="Declared total number of chunks")
    type: int = Field(..., description="Resource type of the merged file")
    content_md5: str = Field("", description="MD5 over the concatenated chunk checksums")
    size: int = Field(0, ge=0, description="Declared total size in bytes")

    model_config = {
        "json_schema_extra": {
            "example": {
                "upload_id": "0f5e7c1a-4b8e-4d0c-9a57-2f1b8d1c3e44_api-1",
                "filename": "banner.png",
                "chunks": 2,
                "type": 1,
                "content_md5": "",
                "size": 0
            }
        }
    }


class MultipartUploadChunk(BaseModel):
    """Metadata of one staged chunk; the chunk index is unique within a session."""
    upload_id: str = Field(..., description="Upload session ID")
    chunk: int = Field(..., description="Chunk index, ordering key of the merge")
    content_md5: str = Field("", description="Checksum supplied by the caller")
    validity: str = Field("", description="Retention window at the time of the write")
    download_path: str = Field(..., description="Staged path reference")
