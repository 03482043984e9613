"""Staging and publishing of uploaded files on the local filesystem."""
import asyncio
import logging
import time
import uuid
import zipfile
from pathlib import Path
from typing import Optional, Tuple

from multipart_storage.config import settings, storage_config
from multipart_storage.core.config import StorageConfig
from multipart_storage.core.decorators import async_exception_handler
from multipart_storage.core.exceptions import (
    ChunkTooLargeException,
    FileSystemException,
    InvalidRequestException,
    InvalidResourceTypeException,
    UnsupportedSuffixException,
)
from multipart_storage.models.resource import (
    DOWNLOAD_RESOURCE_TYPES,
    RESOURCE_TYPE_DIRS,
    ResourceType,
    resource_dir,
)
from multipart_storage.services.delay_job import StorageDelayJob, delay_job
from multipart_storage.utils.file_utils import (
    ArchiveProcessor,
    FileProcessor,
    get_extension,
    is_valid_filename,
    resolve_under,
    safe_remove,
)
from multipart_storage.utils.logger import get_logger
from multipart_storage.utils.upload_path import (
    WHERE_UPLOAD,
    UploadPathInfo,
    build_upload_path,
    parse_upload_path,
)

logger: logging.Logger = get_logger(__name__)


def to_resource_type(value) -> ResourceType:
    """Validate a caller-supplied resource type."""
    try:
        resource_type = ResourceType(int(value))
    except (TypeError, ValueError):
        raise InvalidResourceTypeException(value)
    if resource_type not in RESOURCE_TYPE_DIRS:
        raise InvalidResourceTypeException(value)
    return resource_type


def new_resource_id() -> str:
    return f"{uuid.uuid4()}_{settings.hostname}"


def cdn_file_path(resource_type, config: Optional[StorageConfig] = None) -> Path:
    """Publish directory of a resource type."""
    config = config or storage_config
    resource_type = to_resource_type(resource_type)
    root = config.download_path if resource_type in DOWNLOAD_RESOURCE_TYPES else config.root_path
    return Path(root).resolve() / resource_dir(resource_type)


class Storage:
    """
    Files of one resource, identified by resource type and resource id.

    Files are first staged under the upload path and registered with the
    delay job; publishing moves them under the CDN root (or the download
    directory for documents and agent control files) and cancels the
    pending deletion. Staged files that are never published are reclaimed.
    """

    def __init__(
        self,
        resource_type,
        resource_id: str = "",
        config: Optional[StorageConfig] = None,
        job: Optional[StorageDelayJob] = None
    ):
        self.resource_type = to_resource_type(resource_type)
        if resource_id and not is_valid_filename(resource_id):
            raise InvalidRequestException(f"invalid resource_id '{resource_id}'", error_code="INVALID_RESOURCE_ID")

        self.config = config or storage_config
        self.delay_job = job or delay_job
        self.upload_path = Path(self.config.upload_path).resolve()
        self.cdn_path = cdn_file_path(self.resource_type, self.config).parent
        self.custom_resource_id = bool(resource_id)
        self.resource_id = resource_id or new_resource_id()
        self.version = str(int(time.time()))

    def file_name(self, filename: str, resource_id: Optional[str] = None) -> str:
        """Reference path "/<type dir>/<resource id><ext>"."""
        return f"/{resource_dir(self.resource_type)}/{resource_id or self.resource_id}{get_extension(filename)}"

    def _ensure_parent(self, file_path: Path) -> Path:
        try:
            FileProcessor.ensure_directory(file_path.parent)
        except OSError as e:
            logger.error("Mkdir '%s' failed: %s", file_path.parent, e)
            raise FileSystemException("mkdir", str(file_path.parent), e)
        return file_path

    def upload_full_path_by_name(self, filename: str, resource_id: Optional[str] = None) -> Path:
        """Staging path of filename; its directory is created on demand."""
        return self._ensure_parent(self.upload_path / self.file_name(filename, resource_id).lstrip("/"))

    def cdn_full_path(self, filename: str, resource_id: Optional[str] = None) -> Path:
        return self._ensure_parent(self.cdn_path / self.file_name(filename, resource_id).lstrip("/"))

    def validate_suffix(self, filename: str) -> None:
        suffixes = self.config.accept_suffixes(self.resource_type)
        if suffixes:
            suffix = get_extension(filename)
            if suffix not in suffixes:
                raise UnsupportedSuffixException(suffix, int(self.resource_type), suffixes)

    def validate_size(self, size: int) -> None:
        limit = self.config.max_upload_size(self.resource_type)
        if size > limit:
            raise ChunkTooLargeException(f"upload size exceed limit({size}, {limit})", size, limit)

    async def write_staged(self, file_path: Path, content: bytes) -> None:
        logger.debug("Save resource '%s' to '%s'", self.resource_id, file_path)
        try:
            await FileProcessor.write_bytes(file_path, content)
        except OSError as e:
            logger.error("Save upload file to '%s' failed: %s", file_path, e)
            raise FileSystemException("write", str(file_path), e)

    async def upload(self, filename: str, content: bytes) -> str:
        """
        Stage a single file.

        The file is deleted after the retention window unless it is published
        with upload_and_rename() first.

        Returns:
            The staged path reference.
        """
        self.validate_size(len(content))
        self.validate_suffix(filename)

        file_path = self.upload_full_path_by_name(filename)
        await self.write_staged(file_path, content)
        await self.delay_job.add(file_path)
        return build_upload_path(self.file_name(filename), self.version, WHERE_UPLOAD)

    def resolve_staged(self, reference: str) -> Tuple[UploadPathInfo, Optional[Path]]:
        """
        Parse a reference and locate its staged file.

        Returns:
            The parsed reference, and the staged file path or None when the
            reference points at an already published file.
        """
        info = parse_upload_path(reference)
        if not info.is_staged:
            return info, None

        full_path = resolve_under(self.upload_path, info.path)
        if full_path is None:
            raise InvalidRequestException(f"invalid upload_path '{reference}'", error_code="INVALID_UPLOAD_PATH")
        if not FileProcessor.is_exist(full_path):
            raise InvalidRequestException(f"file '{info.path}' not found", error_code="FILE_NOT_FOUND")
        return info, full_path

    async def upload_and_rename(self, reference: str) -> str:
        """
        Publish a staged file and cancel its pending deletion.

        Without a caller-supplied resource id the staged name is kept.

        Returns:
            The published path reference; published references are returned unchanged.
        """
        info, staged_path = self.resolve_staged(reference)
        if staged_path is None:
            return reference

        resource_id = self.resource_id if self.custom_resource_id else staged_path.stem
        cdn_path = self.cdn_full_path(staged_path.name, resource_id)
        if cdn_path != staged_path:
            logger.debug("Move file '%s' to '%s'", staged_path, cdn_path)
            try:
                await asyncio.to_thread(FileProcessor.move, staged_path, cdn_path)
            except OSError as e:
                logger.error("Move file '%s' to '%s' failed: %s", staged_path, cdn_path, e)
                raise FileSystemException("move", str(staged_path), e)

        await self.delay_job.remove(staged_path)
        return build_upload_path(self.file_name(staged_path.name, resource_id), info.version or self.version)

    @async_exception_handler("Unzip staged archive failed")
    async def unzip_and_delete(self, reference: str, unzip_path: str = "") -> int:
        """
        Extract a staged zip archive into the publish directory, then delete it.

        Returns:
            Number of extracted files.
        """
        _, staged_path = self.resolve_staged(reference)
        if staged_path is None:
            raise InvalidRequestException(f"'{reference}' is not a staged file", error_code="INVALID_UPLOAD_PATH")

        unzip_dir = cdn_file_path(self.resource_type, self.config)
        if unzip_path:
            unzip_dir = resolve_under(unzip_dir, unzip_path)
            if unzip_dir is None:
                raise InvalidRequestException(f"invalid unzip_path '{unzip_path}'", error_code="INVALID_UNZIP_PATH")

        try:
            result = await asyncio.to_thread(ArchiveProcessor.extract_zip_safe, staged_path, unzip_dir)
        except zipfile.BadZipFile:
            raise InvalidRequestException(f"file '{reference}' is not a zip archive", error_code="INVALID_ARCHIVE")
        except OSError as e:
            logger.error("Unzip file '%s' into '%s' failed: %s", staged_path, unzip_dir, e)
            raise FileSystemException("unzip", str(staged_path), e)

        if not result.success:
            logger.warning("Unzip file '%s' skipped entries: %s", staged_path, result.errors)
            raise InvalidRequestException(
                "archive contains entries outside the target directory",
                error_code="INVALID_ARCHIVE",
                details={"errors": result.errors}
            )

        if not safe_remove(staged_path):
            raise FileSystemException("remove", str(staged_path))
        await self.delay_job.remove(staged_path)

        logger.info("Unzipped %d file(s) from '%s' into '%s'", len(result.extracted_files), staged_path, unzip_dir)
        return len(result.extracted_files)
