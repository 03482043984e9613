"""Utility modules - provide common utility functions and classes."""
from multipart_storage.utils.duration import format_duration, parse_duration
from multipart_storage.utils.file_utils import (
    get_extension,
    is_valid_filename,
    resolve_under,
    safe_remove,
)
from multipart_storage.utils.logger import get_logger, setup_logger
from multipart_storage.utils.upload_path import UploadPathInfo, build_upload_path, parse_upload_path

__all__ = [
    "parse_duration",
    "format_duration",
    "get_extension",
    "is_valid_filename",
    "resolve_under",
    "safe_remove",
    "get_logger",
    "setup_logger",
    "UploadPathInfo",
    "parse_upload_path",
    "build_upload_path",
]
