"""Upload service: chunk persistence, reassembly, status and direct uploads."""

import asyncio
import logging
import mimetypes
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from common.checksum import checksum_of_parts, compute_checksum, verify_checksum
from common.constants import CHUNK_SIZE_BYTES, CLEANUP_DELETE_ATTEMPTS
from common.keys import chunk_key, make_upload_name, manifest_key, validate_file_name
from common.types import ChunkRecord
from objectstore.base import ObjectNotFoundError, ObjectStore, StorageError
from uploadserver import config
from uploadserver.exceptions import (
    ChecksumMismatchError,
    ChunkFetchError,
    ChunkNotFoundError,
    FileTooLargeError,
    InvalidRequestError,
    StorageUnavailableError,
    StorageWriteError,
    UnsupportedMediaTypeError,
    UploadNotFoundError,
)
from uploadserver.orphan_log import OrphanLog
from uploadserver.services.manifest_service import ManifestService, UploadManifest

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoredChunk:
    key: str
    record: ChunkRecord
    total_chunks: int


@dataclass(frozen=True)
class AssembledUpload:
    file_name: str
    url: str
    size: int
    checksum: str
    cleanup_errors: List[Dict[str, str]] = field(default_factory=list)


@dataclass(frozen=True)
class UploadStatus:
    file_name: str
    total_chunks: int
    received_chunks: List[int]
    missing_chunks: List[int]

    @property
    def complete(self) -> bool:
        return not self.missing_chunks


@dataclass(frozen=True)
class DirectUpload:
    file_name: str
    url: str
    size: int
    content_type: str


def validate_total_chunks(total_chunks: int) -> None:
    """
    Raises:
        InvalidRequestError: If total_chunks is below 1 or above MAX_TOTAL_CHUNKS
    """
    if total_chunks < 1:
        raise InvalidRequestError(f"totalChunks must be at least 1, got {total_chunks}")
    if total_chunks > config.MAX_TOTAL_CHUNKS:
        raise InvalidRequestError(
            f"totalChunks={total_chunks} exceeds the limit of {config.MAX_TOTAL_CHUNKS} chunks"
        )


def validate_chunk_fields(file_name: str, chunk_index: int, total_chunks: int) -> None:
    """
    Check client-supplied chunk coordinates before any store access.

    Raises:
        InvalidRequestError: If any coordinate is out of range
    """
    try:
        validate_file_name(file_name)
    except ValueError as e:
        raise InvalidRequestError(str(e))

    validate_total_chunks(total_chunks)
    if chunk_index < 0:
        raise InvalidRequestError(f"chunkIndex must be non-negative, got {chunk_index}")
    if chunk_index >= total_chunks:
        raise InvalidRequestError(
            f"chunkIndex {chunk_index} is out of range for totalChunks={total_chunks}"
        )


class UploadService:
    def __init__(
        self,
        store: ObjectStore,
        orphan_log: Optional[OrphanLog] = None,
        delete_attempts: int = CLEANUP_DELETE_ATTEMPTS,
        retry_base_delay: Optional[float] = None,
    ):
        self.store = store
        self.orphan_log = orphan_log
        self.manifests = ManifestService(store)
        self.delete_attempts = delete_attempts
        self.retry_base_delay = config.CLEANUP_RETRY_BASE_DELAY if retry_base_delay is None else retry_base_delay

    async def store_chunk(
        self,
        file_name: str,
        chunk_index: int,
        total_chunks: int,
        data: bytes,
    ) -> StoredChunk:
        """
        Persist one chunk under "{file_name}.chunk.{chunk_index}", replacing any earlier upload of that index.

        Raises:
            InvalidRequestError: Bad coordinates or empty chunk
            FileTooLargeError: Chunk larger than CHUNK_SIZE_BYTES
            UploadConflictError: totalChunks disagrees with the manifest
            StorageWriteError: The store rejected the write
        """
        validate_chunk_fields(file_name, chunk_index, total_chunks)
        if not data:
            raise InvalidRequestError(f"Chunk {chunk_index} is empty")
        if len(data) > CHUNK_SIZE_BYTES:
            raise FileTooLargeError(
                f"Chunk {chunk_index} is {len(data)} bytes; the limit is {CHUNK_SIZE_BYTES} bytes",
                error="Chunk too large",
            )

        manifest = await self._load_manifest(file_name)
        self.manifests.ensure_compatible(manifest, file_name, total_chunks)

        key = chunk_key(file_name, chunk_index)
        logger.info(f"Uploading chunk {chunk_index + 1}/{total_chunks} for {file_name} ({len(data)} bytes)")

        try:
            stored_path = await self.store.upload(key, data, content_type="application/octet-stream")
        except StorageError as e:
            logger.error(f"Chunk upload error for {key}: {e}")
            raise StorageWriteError(str(e), error="Chunk upload failed")

        record = ChunkRecord(chunk_index=chunk_index, size=len(data), checksum=compute_checksum(data))
        await self.manifests.record_chunk(file_name, total_chunks, record, manifest=manifest)

        return StoredChunk(key=stored_path, record=record, total_chunks=total_chunks)

    async def complete_upload(
        self,
        file_name: str,
        total_chunks: int,
        expected_checksum: Optional[str] = None,
    ) -> AssembledUpload:
        """
        Reassemble all chunks of an upload into one object under file_name.

        Chunks are fetched sequentially in ascending index order; the first
        missing or unreadable chunk aborts before anything is written, leaving
        every chunk in place so reassembly can be retried.

        Args:
            file_name: Upload name used for every chunk
            total_chunks: Number of chunks, indices [0, total_chunks)
            expected_checksum: Optional SHA-256 hex of the original file

        Returns:
            AssembledUpload with the public URL, total size and digest

        Raises:
            InvalidRequestError: Bad file_name or total_chunks
            UploadConflictError: totalChunks disagrees with the manifest
            ChunkNotFoundError: A chunk index is absent from the store
            ChunkFetchError: The store failed while reading a chunk
            ChecksumMismatchError: A chunk or the assembled object failed verification
            StorageWriteError: The assembled object could not be written
        """
        validate_chunk_fields(file_name, 0, total_chunks)

        manifest = await self._load_manifest(file_name)
        self.manifests.ensure_compatible(manifest, file_name, total_chunks)

        logger.info(f"Reassembling {total_chunks} chunks for {file_name}")

        parts: List[bytes] = []
        for index in range(total_chunks):
            key = chunk_key(file_name, index)
            try:
                data = await self.store.download(key)
            except ObjectNotFoundError:
                logger.error(f"Failed to download chunk {index}: {key} not found")
                raise ChunkNotFoundError(
                    index, f"Chunk {index} of {total_chunks} is missing for {file_name}"
                )
            except StorageError as e:
                logger.error(f"Failed to download chunk {index}: {e}")
                raise ChunkFetchError(index, f"Chunk {index} of {total_chunks} could not be read: {e}")

            self._verify_against_manifest(manifest, index, data)
            parts.append(data)

        combined = b"".join(parts)
        total_size = len(combined)
        digest = checksum_of_parts(parts)

        if expected_checksum and digest != expected_checksum.lower():
            logger.error(f"Assembled checksum mismatch for {file_name}: expected {expected_checksum}, got {digest}")
            raise ChecksumMismatchError(
                f"Assembled object digest {digest} does not match expected {expected_checksum.lower()}"
            )

        content_type = mimetypes.guess_type(file_name)[0] or "application/octet-stream"
        try:
            stored_path = await self.store.upload(file_name, combined, content_type=content_type)
        except StorageError as e:
            logger.error(f"Combined file upload error for {file_name}: {e}")
            raise StorageWriteError(str(e), error="Combined file upload failed")

        logger.info(f"Assembled {file_name}: {total_size} bytes from {total_chunks} chunks")

        leftover_keys = [chunk_key(file_name, index) for index in range(total_chunks)]
        if manifest is not None:
            leftover_keys.append(manifest_key(file_name))
        cleanup_errors = await self._cleanup_objects(leftover_keys)

        return AssembledUpload(
            file_name=stored_path,
            url=self.store.get_public_url(file_name),
            size=total_size,
            checksum=digest,
            cleanup_errors=cleanup_errors,
        )

    async def upload_status(self, file_name: str, total_chunks: Optional[int] = None) -> UploadStatus:
        """
        Report which chunk indices the server holds for an upload.

        Uses the manifest when present, otherwise probes each chunk key.

        Raises:
            UploadNotFoundError: No manifest and no total_chunks to probe with
        """
        try:
            validate_file_name(file_name)
        except ValueError as e:
            raise InvalidRequestError(str(e))
        if total_chunks is not None:
            validate_total_chunks(total_chunks)

        manifest = await self._load_manifest(file_name)
        if manifest is not None:
            if total_chunks is not None:
                self.manifests.ensure_compatible(manifest, file_name, total_chunks)
            return UploadStatus(
                file_name=file_name,
                total_chunks=manifest.total_chunks,
                received_chunks=manifest.received_indices(),
                missing_chunks=manifest.missing_indices(),
            )

        if total_chunks is None:
            raise UploadNotFoundError(f"No upload manifest found for {file_name}; pass totalChunks to probe chunks")

        received = set()
        try:
            for index in range(total_chunks):
                if await self.store.exists(chunk_key(file_name, index)):
                    received.add(index)
        except StorageError as e:
            raise StorageUnavailableError(str(e))

        return UploadStatus(
            file_name=file_name,
            total_chunks=total_chunks,
            received_chunks=sorted(received),
            missing_chunks=[i for i in range(total_chunks) if i not in received],
        )

    async def direct_upload(self, original_name: str, content_type: Optional[str], data: bytes) -> DirectUpload:
        """
        Store a small video in a single request under "{timestamp}-{original_name}".

        Raises:
            InvalidRequestError: Empty file, or a name ending in a chunk or manifest suffix
            UnsupportedMediaTypeError: Content type is not video/*
            FileTooLargeError: Larger than MAX_DIRECT_UPLOAD_SIZE
            StorageWriteError: The store rejected the write
        """
        if not content_type or not content_type.startswith("video/"):
            raise UnsupportedMediaTypeError(f"Received content type {content_type!r}")
        if not data:
            raise InvalidRequestError("No file provided", error="No file provided")

        self.ensure_direct_upload_size(len(data))

        file_name = make_upload_name(original_name)
        try:
            validate_file_name(file_name)
        except ValueError as e:
            raise InvalidRequestError(str(e))
        logger.info(f"Uploading file {file_name} ({len(data)} bytes, {content_type})")

        try:
            stored_path = await self.store.upload(file_name, data, content_type=content_type)
        except StorageError as e:
            logger.error(f"Upload error for {file_name}: {e}")
            raise StorageWriteError(str(e), error="Upload failed")

        return DirectUpload(
            file_name=stored_path,
            url=self.store.get_public_url(file_name),
            size=len(data),
            content_type=content_type,
        )

    @staticmethod
    def ensure_direct_upload_size(size: int) -> None:
        limit = config.MAX_DIRECT_UPLOAD_SIZE
        if size > limit:
            raise FileTooLargeError(
                f"{size} bytes exceeds the {limit // (1024 * 1024)}MB single-request limit; use chunked upload",
                error=f"File too large (max {limit // (1024 * 1024)}MB)",
            )

    async def _load_manifest(self, file_name: str) -> Optional[UploadManifest]:
        try:
            return await self.manifests.load(file_name)
        except StorageError as e:
            logger.error(f"Failed to read manifest for {file_name}: {e}")
            raise StorageUnavailableError(str(e))

    @staticmethod
    def _verify_against_manifest(manifest: Optional[UploadManifest], index: int, data: bytes) -> None:
        if manifest is None or index not in manifest.chunks:
            return
        recorded = manifest.chunks[index]
        if not verify_checksum(data, recorded.checksum):
            raise ChecksumMismatchError(
                f"Chunk {index} does not match the checksum recorded at upload time"
            )

    async def _cleanup_objects(self, keys: List[str]) -> List[Dict[str, str]]:
        """
        Delete objects one by one with retry logic.

        Failures never propagate; they are recorded in the orphan log for the
        background cleaner and returned to the caller.

        Args:
            keys: Object keys to delete

        Returns:
            List of {"key", "error"} for objects that could not be deleted
        """
        failed_deletions = []

        for key in keys:
            last_error = None

            for attempt in range(self.delete_attempts):
                try:
                    await self.store.remove([key])
                    logger.debug(f"Deleted {key}")
                    last_error = None
                    break
                except StorageError as e:
                    last_error = e
                    if attempt < self.delete_attempts - 1:
                        delay = self.retry_base_delay * (2 ** attempt)
                        logger.warning(f"Failed to delete {key}, retrying in {delay}s: {e}")
                        await asyncio.sleep(delay)

            if last_error is not None:
                logger.error(f"Failed to delete {key} after {self.delete_attempts} attempts: {last_error}")
                failed_deletions.append({"key": key, "error": str(last_error)})

        if failed_deletions and self.orphan_log is not None:
            try:
                self.orphan_log.record(failed_deletions)
            except OSError as e:
                logger.error(f"Failed to record orphaned objects: {e}", exc_info=True)

        return failed_deletions
