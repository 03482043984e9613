"""Decorators for cross-cutting concerns of the storage services: error normalization and timing."""
import logging
import time
from functools import wraps
from typing import Any, Awaitable, Callable, Optional, TypeVar

from multipart_storage.core.exceptions import (
    InternalServerException,
    StorageServiceException,
)
from multipart_storage.utils.logger import get_logger

logger: logging.Logger = get_logger(__name__)

AsyncF = TypeVar('AsyncF', bound=Callable[..., Awaitable[Any]])


def _truncate(value: Any, limit: int = 200) -> str:
    text = str(value)
    return text[:limit] + "..." if len(text) > limit else text


def async_exception_handler(default_message: str = "Async operation failed", log_error: bool = True):
    """
    Normalize unexpected exceptions of a coroutine into InternalServerException.

    StorageServiceException subclasses propagate unchanged; anything else is
    logged with its traceback and re-raised wrapped, so the HTTP layer never
    sees a bare library error.

    Args:
        default_message: Message logged for wrapped errors.
        log_error: Whether to log wrapped errors.
    """

    def decorator(func: AsyncF) -> AsyncF:
        @wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except StorageServiceException:
                raise
            except Exception as e:
                if log_error:
                    logger.error(f"{default_message}: {func.__name__}: {e}", exc_info=True)
                raise InternalServerException(
                    details={"operation": func.__name__},
                    original_error=e
                ) from e

        return wrapper  # type: ignore

    return decorator


def async_performance_monitor(
    operation_name: Optional[str] = None,
    log_slow_operations: bool = True,
    slow_threshold: float = 1.0,
    include_args: bool = False
):
    """Log the execution time of a coroutine; slow calls are logged as warnings."""

    def decorator(func: AsyncF) -> AsyncF:
        @wraps(func)
        async def wrapper(*args, **kwargs):
            op_name = operation_name or f"{func.__module__}.{func.__name__}"
            start_time = time.time()

            try:
                result = await func(*args, **kwargs)
            except StorageServiceException as e:
                execution_time = time.time() - start_time
                if e.is_client_error:
                    logger.info(f"Async operation rejected: {op_name} in {execution_time:.2f}s: {e.message}")
                else:
                    logger.error(f"Async operation failed: {op_name} in {execution_time:.2f}s: {e.message}")
                raise
            except Exception as e:
                execution_time = time.time() - start_time
                logger.error(
                    f"Async operation failed: {op_name} in {execution_time:.2f}s",
                    extra={"error": str(e), "execution_time": execution_time},
                    exc_info=True
                )
                raise

            execution_time = time.time() - start_time
            log_info = {
                "operation": op_name,
                "execution_time": execution_time,
                "status": "success"
            }
            if include_args:
                # args[0] is the bound instance
                log_info["args"] = _truncate(args[1:])
                log_info["kwargs"] = _truncate(kwargs)

            if log_slow_operations and execution_time > slow_threshold:
                logger.warning(f"Slow async operation detected: {log_info}")
            else:
                logger.debug(f"Async operation completed: {log_info}")

            return result

        return wrapper  # type: ignore

    return decorator
