"""Upload API routes."""

from typing import Optional

from fastapi import APIRouter, File, Form, Query, UploadFile

from uploadserver.exceptions import InvalidRequestError
from uploadserver.schemas.uploads import (
    ChunkUploadResponse,
    CompleteUploadRequest,
    CompleteUploadResponse,
    CleanupError,
    DirectUploadResponse,
    UploadStatusResponse
)
from uploadserver.service_locator import get_object_store, get_orphan_log
from uploadserver.services.upload_service import UploadService

router = APIRouter(prefix="/api", tags=["Uploads"])


def _upload_service() -> UploadService:
    return UploadService(store=get_object_store(), orphan_log=get_orphan_log())


def _parse_int_field(name: str, value: Optional[str]) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidRequestError(f"{name} must be an integer, got {value!r}")


@router.post("/upload-chunk", response_model=ChunkUploadResponse)
async def upload_chunk(
    chunk: Optional[UploadFile] = File(None),
    file_name: Optional[str] = Form(None, alias="fileName"),
    chunk_index: Optional[str] = Form(None, alias="chunkIndex"),
    total_chunks: Optional[str] = Form(None, alias="totalChunks")
):
    """
    Store one chunk of a chunked upload.

    Parameters:
        - chunk: Chunk bytes (multipart/form-data)
        - fileName: Upload name shared by every chunk
        - chunkIndex: Zero-based chunk position
        - totalChunks: Number of chunks in the upload

    Returns:
        - chunkFileName: Key the chunk was stored under
        - size, checksum: Byte length and SHA-256 of the stored chunk

    Raises:
        - 400: Missing or invalid fields, chunkIndex >= totalChunks
        - 409: totalChunks disagrees with the upload manifest
        - 413: Chunk larger than 4 MiB
        - 500: Storage write failed
    """
    missing = [
        name for name, value in (
            ("chunk", chunk),
            ("fileName", file_name),
            ("chunkIndex", chunk_index),
            ("totalChunks", total_chunks),
        )
        if value is None
    ]
    if missing:
        raise InvalidRequestError(f"Missing fields: {', '.join(missing)}")

    index = _parse_int_field("chunkIndex", chunk_index)
    total = _parse_int_field("totalChunks", total_chunks)
    data = await chunk.read()

    stored = await _upload_service().store_chunk(file_name, index, total, data)

    return ChunkUploadResponse(
        chunk_index=stored.record.chunk_index,
        total_chunks=stored.total_chunks,
        chunk_file_name=stored.key,
        size=stored.record.size,
        checksum=stored.record.checksum,
    )


@router.post("/upload-complete", response_model=CompleteUploadResponse)
async def upload_complete(request: CompleteUploadRequest):
    """
    Reassemble uploaded chunks into the final object.

    Parameters:
        - fileName: Upload name used for every chunk
        - totalChunks: Number of chunks to concatenate
        - checksum: Optional SHA-256 hex of the original file

    Returns:
        - url: Public locator of the assembled object
        - size: Exact sum of chunk lengths
        - cleanupErrors: Chunk or manifest keys that could not be deleted

    Raises:
        - 400: Missing or invalid fields
        - 404: A chunk is missing (the index is named in details)
        - 409: totalChunks disagrees with the upload manifest
        - 422: Checksum mismatch
        - 500: Storage write failed
        - 502: A chunk could not be read
    """
    assembled = await _upload_service().complete_upload(
        file_name=request.file_name,
        total_chunks=request.total_chunks,
        expected_checksum=request.checksum,
    )

    return CompleteUploadResponse(
        file_name=assembled.file_name,
        url=assembled.url,
        size=assembled.size,
        checksum=assembled.checksum,
        cleanup_errors=[CleanupError(**entry) for entry in assembled.cleanup_errors],
    )


@router.get("/upload-status", response_model=UploadStatusResponse)
async def upload_status(
    file_name: Optional[str] = Query(None, alias="fileName"),
    total_chunks: Optional[str] = Query(None, alias="totalChunks")
):
    """
    Report which chunks the server already holds for an upload.

    Raises:
        - 400: Missing fileName or non-integer totalChunks
        - 404: No manifest and no totalChunks to probe with
        - 409: totalChunks disagrees with the upload manifest
    """
    if not file_name:
        raise InvalidRequestError("Missing fields: fileName")
    total = _parse_int_field("totalChunks", total_chunks) if total_chunks is not None else None

    upload_state = await _upload_service().upload_status(file_name, total)

    return UploadStatusResponse(
        file_name=upload_state.file_name,
        total_chunks=upload_state.total_chunks,
        received_chunks=upload_state.received_chunks,
        missing_chunks=upload_state.missing_chunks,
        complete=upload_state.complete,
    )


@router.post("/upload", response_model=DirectUploadResponse)
async def upload_file(file: Optional[UploadFile] = File(None)):
    """
    Upload a small video in a single request.

    Parameters:
        - file: Video file (multipart/form-data)

    Raises:
        - 400: No file provided
        - 413: File larger than the single-request limit
        - 415: File is not a video
        - 500: Upload failed
    """
    if file is None:
        raise InvalidRequestError("No file provided", error="No file provided")

    data = await file.read()
    uploaded = await _upload_service().direct_upload(
        original_name=file.filename or "upload",
        content_type=file.content_type,
        data=data,
    )

    return DirectUploadResponse(
        file_name=uploaded.file_name,
        url=uploaded.url,
        size=uploaded.size,
        type=uploaded.content_type,
    )
