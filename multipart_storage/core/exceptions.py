"""Centralized exception definitions and error taxonomy."""
from enum import Enum
from typing import Any, Dict, Optional

INTERNAL_SERVER_ERROR_MESSAGE = "internal server error"


class ErrorSeverity(Enum):
    """Describes severity for surfaced errors."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """Categorization used for error routing and status code mapping."""
    VALIDATION = "validation"
    BUSINESS_LOGIC = "business_logic"
    STORAGE = "storage"
    FILE_SYSTEM = "file_system"
    SYSTEM = "system"


class StorageServiceException(Exception):
    """Base exception type for the application."""

    def __init__(
        self,
        message: str,
        error_code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        details: Optional[Dict[str, Any]] = None,
        original_error: Optional[Exception] = None
    ):
        self.message = message
        self.error_code = error_code
        self.category = category
        self.severity = severity
        self.details = details or {}
        self.original_error = original_error
        super().__init__(self.message)

    @property
    def is_client_error(self) -> bool:
        """Whether the caller is responsible for the failure."""
        return self.category in (ErrorCategory.VALIDATION, ErrorCategory.BUSINESS_LOGIC)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize exception metadata into a dict."""
        return {
            "error_code": self.error_code,
            "message": self.message,
            "category": self.category.value,
            "severity": self.severity.value,
            "details": self.details,
            "type": self.__class__.__name__
        }


# Client errors
class InvalidRequestException(StorageServiceException):
    """Raised when a request cannot be served because of caller input or missing state."""

    def __init__(
        self,
        message: str,
        error_code: str = "INVALID_REQUEST",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            error_code=error_code,
            category=ErrorCategory.BUSINESS_LOGIC,
            severity=ErrorSeverity.LOW,
            details=details
        )


class UploadNotFoundException(InvalidRequestException):
    """Raised when an upload session is absent or expired."""

    def __init__(self, upload_id: str):
        super().__init__(
            message=f"upload '{upload_id}' not found",
            error_code="UPLOAD_NOT_FOUND",
            details={"upload_id": upload_id}
        )


class ChunkNotFoundException(InvalidRequestException):
    """Raised when one chunk, or every chunk, of an upload is missing."""

    def __init__(self, upload_id: str, chunk: Optional[int] = None):
        if chunk is None:
            message = f"upload '{upload_id}' chunks not found"
        else:
            message = f"upload '{upload_id}' chunk {chunk} not found"
        super().__init__(
            message=message,
            error_code="CHUNK_NOT_FOUND",
            details={"upload_id": upload_id, "chunk": chunk}
        )


class ChunksNotEnoughException(InvalidRequestException):
    """Raised when Done is requested before every declared chunk arrived."""

    def __init__(self, upload_id: str, current: int, want: int):
        super().__init__(
            message=f"upload '{upload_id}' chunks not enough, current {current}, want {want}",
            error_code="CHUNKS_NOT_ENOUGH",
            details={"upload_id": upload_id, "current": current, "want": want}
        )


class ChunkTooLargeException(InvalidRequestException):
    """Raised when an uploaded file exceeds the configured limit."""

    def __init__(self, message: str, size: int, max_size: int):
        super().__init__(
            message=message,
            error_code="FILE_TOO_LARGE",
            details={"size": size, "max_size": max_size}
        )


class SizeMismatchException(InvalidRequestException):
    """Raised when the declared size does not match the received bytes."""

    def __init__(self, declared: int, actual: int):
        super().__init__(
            message=f"upload file size not equal input {declared}, want {actual}",
            error_code="SIZE_MISMATCH",
            details={"declared": declared, "actual": actual}
        )


class ContentMismatchException(InvalidRequestException):
    """Raised when a declared checksum does not match the computed one."""

    def __init__(self, declared: str, actual: str):
        super().__init__(
            message=f"upload file content_md5 not equal input '{declared}', want '{actual}'",
            error_code="CONTENT_MD5_MISMATCH",
            details={"declared": declared, "actual": actual}
        )


class UnsupportedSuffixException(InvalidRequestException):
    """Raised when a filename extension is not accepted for a resource type."""

    def __init__(self, suffix: str, resource_type: int, supported: list):
        super().__init__(
            message=f"unsupport file suffix '{suffix}' on resource_type '{resource_type}', support {supported}",
            error_code="UNSUPPORTED_FILE_TYPE",
            details={"suffix": suffix, "resource_type": resource_type, "supported": supported}
        )


class InvalidResourceTypeException(InvalidRequestException):
    """Raised for unknown resource types."""

    def __init__(self, resource_type: Any):
        super().__init__(
            message=f"invalid resource_type '{resource_type}'",
            error_code="INVALID_RESOURCE_TYPE",
            details={"resource_type": resource_type}
        )


# Internal errors
class InternalServerException(StorageServiceException):
    """Raised for server-side failures; the message never carries internal detail."""

    def __init__(
        self,
        category: ErrorCategory = ErrorCategory.SYSTEM,
        details: Optional[Dict[str, Any]] = None,
        original_error: Optional[Exception] = None
    ):
        super().__init__(
            message=INTERNAL_SERVER_ERROR_MESSAGE,
            error_code="INTERNAL_SERVER_ERROR",
            category=category,
            severity=ErrorSeverity.HIGH,
            details=details,
            original_error=original_error
        )


class StorageException(InternalServerException):
    """Raised when the key-value store rejects or fails an operation."""

    def __init__(self, operation: str, key: str, original_error: Optional[Exception] = None):
        super().__init__(
            category=ErrorCategory.STORAGE,
            details={"operation": operation, "key": key},
            original_error=original_error
        )


class FileSystemException(InternalServerException):
    """Raised when creating, reading or writing a staged file fails."""

    def __init__(self, operation: str, path: str, original_error: Optional[Exception] = None):
        super().__init__(
            category=ErrorCategory.FILE_SYSTEM,
            details={"operation": operation, "path": path},
            original_error=original_error
        )


class SerializationException(InternalServerException):
    """Raised when stored metadata cannot be encoded or decoded."""

    def __init__(self, key: str, original_error: Optional[Exception] = None):
        super().__init__(
            category=ErrorCategory.SYSTEM,
            details={"key": key},
            original_error=original_error
        )


class ConfigurationException(StorageServiceException):
    """Raised for configuration/initialization failures."""

    def __init__(self, message: str, config_key: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        config_details = details or {}
        if config_key:
            config_details["config_key"] = config_key
        super().__init__(
            message=message,
            error_code="CONFIG_ERROR",
            category=ErrorCategory.SYSTEM,
            severity=ErrorSeverity.CRITICAL,
            details=config_details
        )
