"""Utility functions for file operations"""
import hashlib
import logging
import os
import shutil
import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Union

import aiofiles

from multipart_storage.utils.logger import get_logger

logger: logging.Logger = get_logger(__name__)

DIR_FILE_MODE = 0o755

# Read size used when streaming staged files
COPY_BUFFER_SIZE = 1024 * 1024


@dataclass
class ArchiveExtractionResult:
    """Archive extraction result data class"""
    success: bool
    extracted_files: List[Path] = field(default_factory=list)
    total_size: int = 0
    errors: List[str] = field(default_factory=list)


class FileProcessor:
    """File Processor - filesystem helpers shared by the storage services"""

    @staticmethod
    def md5_bytes(content: bytes) -> str:
        """Hex MD5 digest of an in-memory payload."""
        return hashlib.md5(content).hexdigest()

    @staticmethod
    def is_exist(path: Union[str, Path]) -> bool:
        return os.path.exists(path)

    @staticmethod
    def safe_remove(path: Union[str, Path]) -> bool:
        """
        Delete a file or a directory tree.

        Failures are logged and reported through the return value, never raised.

        Returns:
            bool: True if deletion succeeded, False otherwise
        """
        path = Path(path)

        try:
            if path.is_dir() and not path.is_symlink():
                shutil.rmtree(path)
                logger.debug(f"Directory removed: {path}")
                return True
            elif path.exists() or path.is_symlink():
                path.unlink()
                logger.debug(f"File removed: {path}")
                return True
            else:
                logger.warning(f"Path does not exist: {path}")
                return False

        except OSError as e:
            logger.error(f"Failed to remove path {path}: {e}")
            return False

    @staticmethod
    def ensure_directory(path: Union[str, Path], mode: int = DIR_FILE_MODE) -> Path:
        """
        Ensure directory exists; create if it doesn't

        Args:
            path: Directory path
            mode: Directory permission mode

        Returns:
            Path: Created directory path
        """
        path = Path(path)
        path.mkdir(parents=True, exist_ok=True, mode=mode)
        return path

    @staticmethod
    async def write_bytes(file_path: Union[str, Path], content: bytes) -> int:
        """Create or truncate file_path and write content into it."""
        async with aiofiles.open(file_path, "wb") as f:
            await f.write(content)
        return len(content)

    @staticmethod
    async def append_file(dst, src_path: Union[str, Path]) -> int:
        """Stream src_path into an already opened aiofiles handle."""
        written = 0
        async with aiofiles.open(src_path, "rb") as src:
            while True:
                data = await src.read(COPY_BUFFER_SIZE)
                if not data:
                    break
                await dst.write(data)
                written += len(data)
        return written

    @staticmethod
    def move(src: Union[str, Path], dst: Union[str, Path]) -> Path:
        """Move src to dst, creating the destination directory; a rename when both share a device."""
        dst = Path(dst)
        FileProcessor.ensure_directory(dst.parent)
        shutil.move(str(src), str(dst))
        return dst


class ArchiveProcessor:
    """Archive Processor - Handles archive file operations"""

    @staticmethod
    def extract_zip_safe(zip_path: Union[str, Path], extract_dir: Union[str, Path],
                         skip_hidden: bool = True) -> ArchiveExtractionResult:
        """
        Extract a ZIP file, refusing members that would land outside extract_dir.

        Args:
            zip_path: Path to ZIP file
            extract_dir: Target extraction directory
            skip_hidden: Whether to skip macOS metadata entries

        Returns:
            ArchiveExtractionResult: Extraction result object

        Raises:
            zipfile.BadZipFile: the archive is unreadable
            OSError: the target directory cannot be written
        """
        extract_dir = FileProcessor.ensure_directory(extract_dir).resolve()
        result = ArchiveExtractionResult(success=True)

        with zipfile.ZipFile(zip_path, "r") as zip_ref:
            for member in zip_ref.infolist():
                if skip_hidden and (member.filename.startswith("__MACOSX/") or
                                    Path(member.filename).name.startswith("._")):
                    continue

                target_path = (extract_dir / member.filename).resolve()
                if target_path != extract_dir and extract_dir not in target_path.parents:
                    result.errors.append(f"Refusing to extract {member.filename} outside {extract_dir}")
                    continue

                if member.is_dir():
                    FileProcessor.ensure_directory(target_path)
                    continue

                FileProcessor.ensure_directory(target_path.parent)
                with zip_ref.open(member) as source, open(target_path, "wb") as target:
                    shutil.copyfileobj(source, target)

                result.extracted_files.append(target_path)
                result.total_size += member.file_size

        result.success = not result.errors
        return result


def get_extension(filename: str) -> str:
    """File extension including the dot, case preserved ("" when absent)."""
    return os.path.splitext(filename or "")[1]


def safe_remove(path: Union[str, Path]) -> bool:
    """Safely delete file or directory (compatibility wrapper)"""
    return FileProcessor.safe_remove(path)


def resolve_under(base: Union[str, Path], relative: str) -> Optional[Path]:
    """Join relative onto base; None when the result escapes base."""
    base_path = Path(base).resolve()
    candidate = (base_path / relative.lstrip("/\\")).resolve()
    if candidate != base_path and base_path not in candidate.parents:
        return None
    return candidate


def is_valid_filename(filename: str) -> bool:
    """Check if filename is valid (no path separators or reserved characters)"""
    if not filename or filename.startswith('.'):
        return False

    invalid_chars = ['/', '\\', ':', '*', '?', '"', '<', '>', '|']
    return not any(char in filename for char in invalid_chars)
