"""Single-file upload API endpoints."""
import logging

from fastapi import APIRouter, Depends, File, Form, UploadFile

from multipart_storage.config import storage_config
from multipart_storage.core.config import StorageConfig
from multipart_storage.schemas.upload import (
    RenameRequest,
    RenameResponse,
    UnzipRequest,
    UnzipResponse,
    UploadResponse,
)
from multipart_storage.services.delay_job import StorageDelayJob, delay_job
from multipart_storage.services.storage_service import Storage
from multipart_storage.utils.logger import get_logger

logger: logging.Logger = get_logger(__name__)

router = APIRouter()


def get_storage_config() -> StorageConfig:
    return storage_config


def get_delay_job() -> StorageDelayJob:
    return delay_job


@router.post("/upload", response_model=UploadResponse)
async def upload_file(
    type: int = Form(...),
    resource_id: str = Form(""),
    file: UploadFile = File(...),
    config: StorageConfig = Depends(get_storage_config),
    job: StorageDelayJob = Depends(get_delay_job)
):
    """
    Stage a single file.

    The staged file is deleted after the retention window unless it is
    published through /upload/rename.

    Args:
        type: Resource type
        resource_id: Optional resource ID, generated when empty
        file: File content

    Returns:
        UploadResponse: Staged path reference and its validity
    """
    storage = Storage(type, resource_id, config=config, job=job)
    content = await file.read()
    upload_path = await storage.upload(file.filename or "", content)

    logger.info("Resource '%s' staged as '%s'", storage.resource_id, upload_path)
    return UploadResponse(resource_id=storage.resource_id, upload_path=upload_path, validity=job.validity())


@router.post("/upload/rename", response_model=RenameResponse)
async def rename_upload(
    request: RenameRequest,
    config: StorageConfig = Depends(get_storage_config),
    job: StorageDelayJob = Depends(get_delay_job)
):
    """Publish a staged file into the CDN (or download) directory."""
    storage = Storage(request.type, request.resource_id, config=config, job=job)
    path = await storage.upload_and_rename(request.upload_path)
    return RenameResponse(path=path)


@router.post("/upload/unzip", response_model=UnzipResponse)
async def unzip_upload(
    request: UnzipRequest,
    config: StorageConfig = Depends(get_storage_config),
    job: StorageDelayJob = Depends(get_delay_job)
):
    storage = Storage(request.type, config=config, job=job)
    extracted = await storage.unzip_and_delete(request.upload_path, request.unzip_path)
    return UnzipResponse(extracted=extracted)
