"""Single-file upload schemas."""
from pydantic import BaseModel, Field


class UploadResponse(BaseModel):
    """Schema for a staged upload."""
    resource_id: str = Field(..., description="Resource ID of the staged file")
    upload_path: str = Field(..., description="Staged path reference")
    validity: str = Field(..., description="Time until the staged file is deleted unless finalized")


class RenameRequest(BaseModel):
    """Schema for publishing a staged file."""
    type: int = Field(..., description="Resource type")
    resource_id: str = Field("", description="Published name, the staged name is kept when empty")
    upload_path: str = Field(..., min_length=1, description="Staged path reference")


class RenameResponse(BaseModel):
    path: str = Field(..., description="Published path reference")


class UnzipRequest(BaseModel):
    """Schema for extracting a staged archive into the publish directory."""
    type: int = Field(..., description="Resource type")
    upload_path: str = Field(..., min_length=1, description="Staged path reference of a zip archive")
    unzip_path: str = Field("", description="Sub-directory of the resource directory")


class UnzipResponse(BaseModel):
    extracted: int = Field(..., description="Number of extracted files")
