"""Upload manifests: the server's record of confirmed chunks for one upload name."""

import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError

from common.keys import manifest_key
from common.types import ChunkRecord
from objectstore.base import ObjectNotFoundError, ObjectStore, StorageError
from uploadserver.exceptions import StorageWriteError, UploadConflictError

logger = logging.getLogger(__name__)


class UploadManifest(BaseModel):
    file_name: str
    total_chunks: int
    chunks: Dict[int, ChunkRecord] = Field(default_factory=dict)
    created_at: datetime
    updated_at: datetime

    def received_indices(self) -> List[int]:
        return sorted(i for i in self.chunks if 0 <= i < self.total_chunks)

    def missing_indices(self) -> List[int]:
        return [i for i in range(self.total_chunks) if i not in self.chunks]


class ManifestService:
    """
    Reads and updates manifests stored next to the chunks.

    Updates are read-modify-write with no locking: the uploader sends one
    chunk at a time per upload name.
    """

    def __init__(self, store: ObjectStore):
        self.store = store

    async def load(self, file_name: str) -> Optional[UploadManifest]:
        try:
            raw = await self.store.download(manifest_key(file_name))
        except ObjectNotFoundError:
            return None

        try:
            return UploadManifest.model_validate_json(raw)
        except ValidationError as e:
            logger.warning(f"Ignoring unreadable manifest for {file_name}: {e}")
            return None

    @staticmethod
    def ensure_compatible(manifest: Optional[UploadManifest], file_name: str, total_chunks: int) -> None:
        """
        Raises:
            UploadConflictError: If the manifest was started with a different totalChunks
        """
        if manifest is not None and manifest.total_chunks != total_chunks:
            raise UploadConflictError(
                f"{file_name} was started with totalChunks={manifest.total_chunks}, "
                f"got totalChunks={total_chunks}; restart the upload under a new fileName"
            )

    async def record_chunk(
        self,
        file_name: str,
        total_chunks: int,
        chunk: ChunkRecord,
        manifest: Optional[UploadManifest] = None,
    ) -> UploadManifest:
        """
        Add or replace a chunk entry and write the manifest back.

        Args:
            manifest: Manifest already loaded by the caller, if any

        Raises:
            StorageWriteError: If the manifest cannot be written
        """
        now = datetime.now(timezone.utc)
        if manifest is None:
            manifest = UploadManifest(
                file_name=file_name,
                total_chunks=total_chunks,
                created_at=now,
                updated_at=now,
            )

        manifest.chunks[chunk.chunk_index] = chunk
        manifest.updated_at = now

        try:
            await self.store.upload(
                manifest_key(file_name),
                manifest.model_dump_json().encode("utf-8"),
                content_type="application/json",
            )
        except StorageError as e:
            raise StorageWriteError(f"Failed to update manifest for {file_name}: {e}")

        return manifest
