"""Shared data type definitions (UploadDescriptor, ChunkRecord, StoredObject)."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class UploadDescriptor:
    """
    Client-held description of one chunked upload.

    Never persisted server-side; its fields travel as request parameters.
    """
    file_name: str
    total_chunks: int
    chunk_size: int
    file_size: int
    checksum: Optional[str] = None

    def chunk_length(self, chunk_index: int) -> int:
        """Byte length of the chunk at chunk_index (the last one may be short)."""
        if not 0 <= chunk_index < self.total_chunks:
            raise IndexError(f"chunk index {chunk_index} out of range [0, {self.total_chunks})")
        start = chunk_index * self.chunk_size
        return min(self.chunk_size, self.file_size - start)


@dataclass(frozen=True)
class ChunkRecord:
    """
    Confirmed chunk entry kept in an upload manifest.
    """
    chunk_index: int
    size: int
    checksum: str


@dataclass(frozen=True)
class StoredObject:
    """
    Listing entry returned by an object store backend.
    """
    key: str
    size: int
    updated_at: Optional[datetime] = None
