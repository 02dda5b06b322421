"""Entry point for the upload server."""

import time
import uuid

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from common.logging_config import setup_logging
from uploadserver.cleanup_task import OrphanedChunkCleaner
from uploadserver.config import SERVER_HOST, SERVER_PORT
from uploadserver.exceptions import (
    UploadServiceError,
    InvalidRequestError,
    UnsupportedMediaTypeError,
    FileTooLargeError,
    UploadConflictError,
    UploadNotFoundError,
    ChunkNotFoundError,
    ChunkFetchError,
    ChecksumMismatchError,
    StorageWriteError,
    StorageUnavailableError
)
from uploadserver.routes.storage_routes import router as storage_router
from uploadserver.routes.upload_routes import router as upload_router
from uploadserver.service_locator import get_object_store

logger = setup_logging('uploadserver')

app = FastAPI(
    title="ReelPress Upload Server",
    description="Chunked video upload and reassembly service",
    version="1.0.0"
)

cleanup_task = OrphanedChunkCleaner()

ERROR_STATUS_CODES = [
    (InvalidRequestError, status.HTTP_400_BAD_REQUEST, "INVALID_REQUEST"),
    (ChunkNotFoundError, status.HTTP_404_NOT_FOUND, "CHUNK_NOT_FOUND"),
    (UploadNotFoundError, status.HTTP_404_NOT_FOUND, "UPLOAD_NOT_FOUND"),
    (UploadConflictError, status.HTTP_409_CONFLICT, "UPLOAD_CONFLICT"),
    (FileTooLargeError, status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, "FILE_TOO_LARGE"),
    (UnsupportedMediaTypeError, status.HTTP_415_UNSUPPORTED_MEDIA_TYPE, "UNSUPPORTED_MEDIA_TYPE"),
    (ChecksumMismatchError, status.HTTP_422_UNPROCESSABLE_ENTITY, "CHECKSUM_MISMATCH"),
    (StorageWriteError, status.HTTP_500_INTERNAL_SERVER_ERROR, "STORAGE_ERROR"),
    (ChunkFetchError, status.HTTP_502_BAD_GATEWAY, "CHUNK_FETCH_FAILED"),
    (StorageUnavailableError, status.HTTP_503_SERVICE_UNAVAILABLE, "STORAGE_UNAVAILABLE"),
]


def _error_response(status_code: int, error: str, details: str, code: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": error, "details": details, "code": code}
    )


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """
    Middleware to log all HTTP requests and responses.
    """
    request_id = str(uuid.uuid4())
    request.state.request_id = request_id

    start_time = time.time()

    logger.info(
        f"Request started: {request.method} {request.url.path} [request_id={request_id}]"
    )

    response = await call_next(request)

    duration = time.time() - start_time

    logger.info(
        f"Request completed: {request.method} {request.url.path} "
        f"status={response.status_code} duration={duration:.3f}s [request_id={request_id}]"
    )

    response.headers["X-Request-ID"] = request_id

    return response


@app.on_event("startup")
async def startup_event():
    """
    Resolve the object store and start background tasks on application startup.
    """
    logger.info("Upload server starting up...")

    store = get_object_store()
    logger.info(f"Object store ready: backend={store.backend_name} bucket={store.bucket}")

    await cleanup_task.start()
    logger.info("Background cleanup task started")


@app.on_event("shutdown")
async def shutdown_event():
    """
    Cleanup resources on application shutdown.
    """
    logger.info("Upload server shutting down...")

    await cleanup_task.stop()
    logger.info("Cleanup task stopped")

    await get_object_store().close()
    logger.info("Object store closed")


@app.exception_handler(UploadServiceError)
async def upload_service_error_handler(request: Request, exc: UploadServiceError):
    request_id = getattr(request.state, 'request_id', 'unknown')

    for exc_class, status_code, code in ERROR_STATUS_CODES:
        if isinstance(exc, exc_class):
            break
    else:
        status_code, code = status.HTTP_500_INTERNAL_SERVER_ERROR, "INTERNAL_ERROR"

    if status_code >= 500:
        logger.error(
            f"{exc.error}: {exc} [request_id={request_id}] path={request.url.path}",
            exc_info=True
        )
    else:
        logger.warning(
            f"{exc.error}: {exc} [request_id={request_id}] path={request.url.path}"
        )

    return _error_response(status_code, exc.error, exc.details, code)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    request_id = getattr(request.state, 'request_id', 'unknown')
    problems = "; ".join(
        f"{'.'.join(str(part) for part in err.get('loc', ()))}: {err.get('msg')}"
        for err in exc.errors()
    )
    logger.warning(
        f"Request validation error: {problems} [request_id={request_id}] path={request.url.path}"
    )
    return _error_response(
        status.HTTP_400_BAD_REQUEST, InvalidRequestError.error, problems, "INVALID_REQUEST"
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    request_id = getattr(request.state, 'request_id', 'unknown')
    logger.error(
        f"Unhandled exception: {exc} [request_id={request_id}] path={request.url.path}",
        exc_info=True
    )
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error", str(exc), "INTERNAL_ERROR"
    )


app.include_router(upload_router)
app.include_router(storage_router)


@app.get("/")
async def root():
    """
    Root endpoint for health check.
    """
    return {"message": "ReelPress Upload Server API", "status": "running"}


@app.get("/health")
async def health_check():
    """
    Health check endpoint for Docker healthcheck.
    Returns 200 if service is alive.
    """
    return {"status": "healthy", "service": "uploadserver"}


def main() -> None:
    """
    Start the FastAPI server with uvicorn.
    """
    uvicorn.run(
        "uploadserver.main:app",
        host=SERVER_HOST,
        port=SERVER_PORT
    )


if __name__ == "__main__":
    main()
