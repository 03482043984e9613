"""Multipart upload API endpoints."""
import logging

from fastapi import APIRouter, Depends, File, Form, Path, UploadFile

from multipart_storage.api.upload import get_delay_job, get_storage_config
from multipart_storage.core.config import StorageConfig
from multipart_storage.models.multipart import MultipartUploadChunk
from multipart_storage.schemas.multipart import (
    MultipartChunkRequest,
    MultipartChunksResponse,
    MultipartDoneRequest,
    MultipartDoneResponse,
    MultipartStartRequest,
    MultipartStartResponse,
)
from multipart_storage.services.delay_job import StorageDelayJob
from multipart_storage.services.multipart_service import MultipartStorage
from multipart_storage.utils.logger import get_logger

logger: logging.Logger = get_logger(__name__)

router = APIRouter(prefix="/multipart")


def get_multipart_storage(
    config: StorageConfig = Depends(get_storage_config),
    job: StorageDelayJob = Depends(get_delay_job)
) -> MultipartStorage:
    return MultipartStorage(config=config, job=job)


@router.post("/start", response_model=MultipartStartResponse)
async def start_multipart_upload(
    request: MultipartStartRequest,
    storage: MultipartStorage = Depends(get_multipart_storage)
):
    """
    Start a multipart upload session.

    Returns:
        MultipartStartResponse: ID used by every later chunk and done call
    """
    return await storage.start(request)


@router.post("/chunk", response_model=MultipartUploadChunk)
async def upload_chunk(
    upload_id: str = Form(...),
    chunk: int = Form(..., ge=0),
    content_md5: str = Form(""),
    size: int = Form(0, ge=0),
    file: UploadFile = File(...),
    storage: MultipartStorage = Depends(get_multipart_storage)
):
    """
    Upload one chunk of a session.

    Args:
        upload_id: Upload session ID
        chunk: Chunk index
        content_md5: MD5 of the chunk bytes
        size: Size of the chunk bytes
        file: Chunk content

    Returns:
        MultipartUploadChunk: Stored chunk record
    """
    request = MultipartChunkRequest(upload_id=upload_id, chunk=chunk, content_md5=content_md5, size=size)
    content = await file.read()
    return await storage.upload(request, file.filename or "", content)


@router.post("/done", response_model=MultipartDoneResponse)
async def complete_multipart_upload(
    request: MultipartDoneRequest,
    storage: MultipartStorage = Depends(get_multipart_storage)
):
    """Merge every chunk of a session into one staged file."""
    return await storage.done(request.upload_id)


@router.get("/{upload_id}/chunks", response_model=MultipartChunksResponse)
async def list_chunks(
    upload_id: str,
    storage: MultipartStorage = Depends(get_multipart_storage)
):
    chunks = await storage.get_chunks(upload_id)
    return MultipartChunksResponse(upload_id=upload_id, chunks=chunks)


@router.get("/{upload_id}/chunks/{chunk}", response_model=MultipartUploadChunk)
async def get_chunk(
    upload_id: str,
    chunk: int = Path(..., ge=0),
    storage: MultipartStorage = Depends(get_multipart_storage)
):
    return await storage.get_chunk(upload_id, chunk)
