"""Pydantic schemas for upload endpoints."""

from typing import List, Optional

from pydantic import Field

from uploadserver.schemas.common import CamelModel


class ChunkUploadResponse(CamelModel):
    """Response model for a stored chunk."""
    success: bool = True
    chunk_index: int
    total_chunks: int
    chunk_file_name: str
    size: int
    checksum: str


class CompleteUploadRequest(CamelModel):
    """Request model for chunk reassembly."""
    file_name: str = Field(..., min_length=1)
    total_chunks: int = Field(..., ge=1)
    checksum: Optional[str] = Field(None, pattern=r"^[0-9a-fA-F]{64}$")


class CleanupError(CamelModel):
    """An object that could not be deleted after reassembly."""
    key: str
    error: str


class CompleteUploadResponse(CamelModel):
    """Response model for a reassembled upload."""
    success: bool = True
    file_name: str
    url: str
    size: int
    checksum: str
    cleanup_errors: List[CleanupError] = []


class DirectUploadResponse(CamelModel):
    """Response model for a single-request upload."""
    success: bool = True
    file_name: str
    url: str
    size: int
    type: str


class UploadStatusResponse(CamelModel):
    """Response model for upload progress as seen by the server."""
    file_name: str
    total_chunks: int
    received_chunks: List[int]
    missing_chunks: List[int]
    complete: bool


class StorageHealthResponse(CamelModel):
    """Response model for the storage backend probe."""
    success: bool
    backend: str
    bucket: str
    details: dict = {}
