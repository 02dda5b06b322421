"""Custom exception classes for the upload server."""

from typing import Optional


class UploadServiceError(Exception):
    """
    Base exception class for all upload server errors.

    Carries a short human-readable summary (`error`) and the underlying
    detail (`details`), which end up in the JSON error body.
    """

    error = "Upload failed"

    def __init__(self, details: str, error: Optional[str] = None):
        super().__init__(details)
        self.details = details
        if error is not None:
            self.error = error


class InvalidRequestError(UploadServiceError):
    """
    Raised when a required field is missing or malformed.
    """
    error = "Missing or invalid fields"


class UnsupportedMediaTypeError(UploadServiceError):
    """
    Raised when a direct upload is not a video.
    """
    error = "File must be a video"


class FileTooLargeError(UploadServiceError):
    """
    Raised when a direct upload exceeds the configured size limit.
    """
    error = "File too large"


class UploadConflictError(UploadServiceError):
    """
    Raised when a chunk disagrees with the upload's recorded totalChunks.
    """
    error = "Upload conflict"


class UploadNotFoundError(UploadServiceError):
    """
    Raised when no manifest or chunk information exists for an upload.
    """
    error = "Upload not found"


class ChunkNotFoundError(UploadServiceError):
    """
    Raised when reassembly finds a chunk index absent from the store.
    """
    error = "Failed to download chunk"

    def __init__(self, chunk_index: int, details: str):
        super().__init__(details)
        self.chunk_index = chunk_index


class ChunkFetchError(UploadServiceError):
    """
    Raised when the store fails while reassembly fetches a chunk.
    """
    error = "Failed to download chunk"

    def __init__(self, chunk_index: int, details: str):
        super().__init__(details)
        self.chunk_index = chunk_index


class ChecksumMismatchError(UploadServiceError):
    """
    Raised when a chunk or the assembled object does not match its expected SHA-256.
    """
    error = "Checksum mismatch"


class StorageWriteError(UploadServiceError):
    """
    Raised when the object store rejects a write.
    """
    error = "Storage write failed"


class StorageUnavailableError(UploadServiceError):
    """
    Raised when the object store cannot be reached.
    """
    error = "Storage unavailable"
