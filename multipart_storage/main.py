"""Main FastAPI application."""
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Dict

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from multipart_storage.api import multipart, upload
from multipart_storage.config import settings
from multipart_storage.core.exceptions import (
    INTERNAL_SERVER_ERROR_MESSAGE,
    ErrorCategory,
    StorageServiceException,
)
from multipart_storage.services.delay_job import delay_job
from multipart_storage.services.redis_service import redis_manager
from multipart_storage.utils.logger import get_logger

logger: logging.Logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> Any:
    """Application lifecycle management

    Connects Redis and starts the delay job on startup; on shutdown the
    delay job is stopped before the Redis connection is closed.
    """
    logger.info("Starting %s...", settings.app_name)

    # Sessions, chunks and the delay job all live in Redis, so there is no degraded mode
    await redis_manager.connect()
    delay_job.start()

    yield  # Application runtime

    logger.info("Shutting down %s...", settings.app_name)

    await delay_job.stop()
    try:
        await redis_manager.disconnect()
    except Exception as e:
        logger.error(f"Error closing Redis connection: {e}")


def create_application() -> FastAPI:
    """Create and configure FastAPI application instance"""
    application = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Multipart upload assembly with deferred cleanup of staged files",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )

    _register_exception_handlers(application)
    _register_routes(application)

    logger.info(f"Application '{settings.app_name}' v{settings.app_version} created successfully")
    return application


def _error_body(request: Request, code: str, message: str, **extra: Any) -> Dict[str, Any]:
    error = {
        "code": code,
        "message": message,
        "timestamp": datetime.utcnow().isoformat(),
        "path": str(request.url.path)
    }
    error.update(extra)
    return {"error": error}


def _register_exception_handlers(app: FastAPI) -> None:
    """Register global exception handlers for consistent error responses"""

    @app.exception_handler(StorageServiceException)
    async def storage_exception_handler(request: Request, exc: StorageServiceException) -> JSONResponse:
        """Client errors carry their message and details; server errors stay opaque."""
        status_code = _map_error_category_to_status_code(exc.category)
        log_extra = {
            "error_code": exc.error_code,
            "category": exc.category.value,
            "details": exc.details,
            "request_path": request.url.path,
            "request_method": request.method
        }

        if status_code < 500:
            logger.warning(f"Request rejected: {exc.message}", extra=log_extra)
            return JSONResponse(
                status_code=status_code,
                content=_error_body(request, exc.error_code, exc.message, details=exc.details)
            )

        logger.error(
            f"Request failed: {exc.error_code} {exc.details}: {exc.original_error}",
            extra=log_extra
        )
        return JSONResponse(
            status_code=status_code,
            content=_error_body(request, exc.error_code, INTERNAL_SERVER_ERROR_MESSAGE)
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        """Handle request shape validation failures"""
        logger.warning(f"Validation error: {exc}")
        return JSONResponse(
            status_code=422,
            content=_error_body(request, "VALIDATION_ERROR", "Request validation failed", details=exc.errors())
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        logger.warning(f"HTTP exception: {exc.status_code} - {exc.detail}")
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(request, f"HTTP_{exc.status_code}", str(exc.detail))
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Global exception handler for uncaught exceptions"""
        logger.error(
            f"Unhandled exception: {type(exc).__name__}: {exc}",
            exc_info=True,
            extra={
                "request_path": request.url.path,
                "request_method": request.method,
                "exception_type": type(exc).__name__
            }
        )
        return JSONResponse(
            status_code=500,
            content=_error_body(request, "INTERNAL_SERVER_ERROR", INTERNAL_SERVER_ERROR_MESSAGE)
        )


def _register_routes(app: FastAPI) -> None:
    """Register API routes with the FastAPI application"""
    app.include_router(upload.router, prefix="/api/v1", tags=["upload"])
    app.include_router(multipart.router, prefix="/api/v1", tags=["multipart"])

    @app.get("/health", tags=["health"])
    async def health() -> JSONResponse:
        redis_ok = await redis_manager.ping()
        return JSONResponse(
            status_code=200 if redis_ok else 503,
            content={
                "status": "healthy" if redis_ok else "unhealthy",
                "redis": redis_ok,
                "delay_job": delay_job.running,
                "version": settings.app_version
            }
        )


def _map_error_category_to_status_code(category: ErrorCategory) -> int:
    """Map error categories to HTTP status codes"""
    status_code_mapping: Dict[ErrorCategory, int] = {
        ErrorCategory.VALIDATION: 400,
        ErrorCategory.BUSINESS_LOGIC: 400,
        ErrorCategory.STORAGE: 500,
        ErrorCategory.FILE_SYSTEM: 500,
        ErrorCategory.SYSTEM: 500
    }
    return status_code_mapping.get(category, 500)


app: FastAPI = create_application()

if __name__ == "__main__":
    import uvicorn

    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Environment: {settings.environment.value}")

    uvicorn.run(
        "multipart_storage.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.value.lower(),
        access_log=True
    )
