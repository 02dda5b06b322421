"""Pydantic schemas for API requests and responses."""

from uploadserver.schemas.uploads import (
    ChunkUploadResponse,
    CompleteUploadRequest,
    CleanupError,
    CompleteUploadResponse,
    DirectUploadResponse,
    UploadStatusResponse,
    StorageHealthResponse
)
from uploadserver.schemas.common import CamelModel, ErrorResponse

__all__ = [
    "ChunkUploadResponse",
    "CompleteUploadRequest",
    "CleanupError",
    "CompleteUploadResponse",
    "DirectUploadResponse",
    "UploadStatusResponse",
    "StorageHealthResponse",
    "CamelModel",
    "ErrorResponse"
]
