"""Multipart upload sessions: start, chunk upload, merge and chunk queries."""
import hashlib
import logging
from typing import List, Optional

import aiofiles

from multipart_storage.core.config import StorageConfig
from multipart_storage.core.decorators import async_exception_handler, async_performance_monitor
from multipart_storage.core.exceptions import (
    ChunksNotEnoughException,
    ChunkTooLargeException,
    ContentMismatchException,
    FileSystemException,
    InvalidRequestException,
    InvalidResourceTypeException,
    SizeMismatchException,
)
from multipart_storage.models.multipart import MultipartUploadChunk, MultipartUploadStart
from multipart_storage.models.resource import ResourceType, resource_dir
from multipart_storage.schemas.multipart import (
    MultipartChunkRequest,
    MultipartDoneResponse,
    MultipartStartRequest,
    MultipartStartResponse,
)
from multipart_storage.services.chunk_store import ChunkStore
from multipart_storage.services.delay_job import StorageDelayJob
from multipart_storage.services.session_store import SessionStore
from multipart_storage.services.storage_service import Storage, new_resource_id
from multipart_storage.utils.file_utils import FileProcessor, get_extension, is_valid_filename
from multipart_storage.utils.logger import get_logger
from multipart_storage.utils.upload_path import (
    WHERE_MULTI_UPLOAD,
    build_upload_path,
    parse_upload_path,
)

logger: logging.Logger = get_logger(__name__)


class MultipartStorage(Storage):
    """
    Orchestrates multipart upload sessions.

    Chunks are staged in the multipart directory and registered with the
    delay job; session and chunk metadata live in Redis for the retention
    window. The state machine is implicit: a session exists while its start
    metadata exists, and Done can be repeated, each call merging from scratch.
    """

    def __init__(
        self,
        config: Optional[StorageConfig] = None,
        job: Optional[StorageDelayJob] = None,
        sessions: Optional[SessionStore] = None,
        chunks: Optional[ChunkStore] = None
    ):
        super().__init__(ResourceType.MULTIPART, config=config, job=job)
        self.sessions = sessions or SessionStore(job=self.delay_job)
        self.chunks = chunks or ChunkStore(job=self.delay_job)

    def chunk_file_name(self, upload_id: str, chunk: int, filename: str) -> str:
        """Reference path "/<multipart dir>/<upload id>/<chunk><ext>", one directory per session."""
        return f"/{resource_dir(self.resource_type)}/{upload_id}/{chunk}{get_extension(filename)}"

    @async_performance_monitor(operation_name="multipart.start")
    async def start(self, request: MultipartStartRequest) -> MultipartStartResponse:
        """Validate the target file and persist the session metadata."""
        target = Storage(request.type, config=self.config, job=self.delay_job)
        # Merged files never land in the chunk staging area
        if target.resource_type == ResourceType.MULTIPART:
            raise InvalidResourceTypeException(request.type)
        target.validate_suffix(request.filename)

        upload_id = request.upload_id or new_resource_id()
        if not is_valid_filename(upload_id):
            raise InvalidRequestException(f"invalid upload_id '{upload_id}'", error_code="INVALID_UPLOAD_ID")

        metadata = MultipartUploadStart(
            upload_id=upload_id,
            filename=request.filename,
            chunks=request.chunks,
            type=int(target.resource_type),
            content_md5=request.content_md5,
            size=request.size
        )
        await self.sessions.put_start(upload_id, metadata)
        return MultipartStartResponse(upload_id=upload_id)

    def _validate_chunk(self, start: MultipartUploadStart, request: MultipartChunkRequest, content: bytes) -> None:
        actual_size = len(content)
        if self.config.check_size_enabled and request.size > 0:
            limit = self.config.max_chunk_size(start.type)
            if actual_size > limit:
                raise ChunkTooLargeException(f"request file too large, max size {limit} bytes", actual_size, limit)
            if request.size != actual_size:
                raise SizeMismatchException(request.size, actual_size)

        if self.config.check_content_enabled and request.content_md5:
            actual_md5 = FileProcessor.md5_bytes(content)
            if request.content_md5 != actual_md5:
                raise ContentMismatchException(request.content_md5, actual_md5)

    @async_performance_monitor(operation_name="multipart.upload")
    async def upload(self, request: MultipartChunkRequest, filename: str, content: bytes) -> MultipartUploadChunk:
        """
        Stage one chunk and record its metadata.

        Re-uploading an index overwrites both the staged bytes and the record.

        Raises:
            UploadNotFoundException: the session is absent or expired
            ChunkTooLargeException, SizeMismatchException, ContentMismatchException:
                the chunk fails an enabled check
        """
        start = await self.sessions.get_start(request.upload_id)
        self._validate_chunk(start, request, content)

        chunk_name = self.chunk_file_name(request.upload_id, request.chunk, filename)
        file_path = self._ensure_parent(self.upload_path / chunk_name.lstrip("/"))
        await self.write_staged(file_path, content)
        await self.delay_job.add(file_path)
        # Session directory is due together with its latest chunk
        await self.delay_job.add(file_path.parent)

        record = MultipartUploadChunk(
            upload_id=request.upload_id,
            chunk=request.chunk,
            content_md5=request.content_md5,
            validity=self.delay_job.validity(),
            download_path=build_upload_path(chunk_name, self.version, WHERE_MULTI_UPLOAD)
        )
        await self.chunks.put_chunk(record)
        return record

    async def _merge(self, chunks: List[MultipartUploadChunk], destination) -> str:
        """Concatenate staged chunks into destination; returns the MD5 over their checksum strings."""
        digest = hashlib.md5()
        try:
            async with aiofiles.open(destination, "wb") as dst:
                for record in chunks:
                    staged_path = self.upload_path / parse_upload_path(record.download_path).path.lstrip("/")
                    try:
                        await FileProcessor.append_file(dst, staged_path)
                    except OSError as e:
                        logger.error("Read chunk %s file '%s' failed: %s", record.chunk, staged_path, e)
                        raise FileSystemException("read", str(staged_path), e)
                    digest.update(record.content_md5.encode())
        except OSError as e:
            logger.error("Write merged file '%s' failed: %s", destination, e)
            raise FileSystemException("write", str(destination), e)
        return digest.hexdigest()

    @async_performance_monitor(operation_name="multipart.done", slow_threshold=5.0)
    @async_exception_handler("Multipart merge failed")
    async def done(self, upload_id: str) -> MultipartDoneResponse:
        """
        Merge every chunk into the destination file.

        The destination is registered with the delay job before any byte is
        written, so it is reclaimed even when the merge or the checksum check
        fails.

        Raises:
            UploadNotFoundException: the session is absent or expired
            ChunkNotFoundException: no chunk was stored
            ChunksNotEnoughException: fewer chunks than declared at start
            ContentMismatchException: the aggregate checksum differs
        """
        start = await self.sessions.get_start(upload_id)
        chunks = await self.chunks.get_all_chunks(upload_id)
        if len(chunks) != start.chunks:
            raise ChunksNotEnoughException(upload_id, len(chunks), start.chunks)

        target = Storage(start.type, upload_id, config=self.config, job=self.delay_job)
        destination = target.upload_full_path_by_name(start.filename)
        try:
            destination.touch()
        except OSError as e:
            logger.error("Create merged file '%s' failed: %s", destination, e)
            raise FileSystemException("create", str(destination), e)
        await self.delay_job.add(destination)

        content_md5 = await self._merge(chunks, destination)
        if self.config.check_content_enabled and start.content_md5 and start.content_md5 != content_md5:
            raise ContentMismatchException(start.content_md5, content_md5)

        logger.info("Multipart upload '%s' merged %d chunk(s) into '%s'", upload_id, len(chunks), destination)
        return MultipartDoneResponse(
            upload_id=upload_id,
            download_path=build_upload_path(target.file_name(start.filename), target.version, WHERE_MULTI_UPLOAD),
            validity=self.delay_job.validity()
        )

    async def get_chunk(self, upload_id: str, chunk: int) -> MultipartUploadChunk:
        return await self.chunks.get_chunk(upload_id, chunk)

    async def get_chunks(self, upload_id: str) -> List[MultipartUploadChunk]:
        return await self.chunks.get_all_chunks(upload_id)
