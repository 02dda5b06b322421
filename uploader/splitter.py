"""Client-side chunk splitter: fixed-size slices of a local file."""

import math
import os
from typing import BinaryIO, Iterator, Optional, Tuple

from common.checksum import checksum_of_stream
from common.constants import CHUNK_SIZE_BYTES
from common.keys import make_upload_name, validate_file_name
from common.types import UploadDescriptor


class EmptyFileError(ValueError):
    """Raised when a file with no bytes is submitted for upload."""

    pass


def count_chunks(file_size: int, chunk_size: int = CHUNK_SIZE_BYTES) -> int:
    """
    Number of chunks needed for a file: ceil(file_size / chunk_size).

    Raises:
        EmptyFileError: If file_size is 0
    """
    if file_size <= 0:
        raise EmptyFileError("File is empty")
    return math.ceil(file_size / chunk_size)


def describe_file(
    path: str,
    file_name: Optional[str] = None,
    chunk_size: int = CHUNK_SIZE_BYTES,
) -> UploadDescriptor:
    """
    Build the upload descriptor for a local file.

    The whole-file SHA-256 is computed here, before any chunk is sent.

    Args:
        path: Local file path
        file_name: Upload name to reuse (resume); generated from the basename when None
        chunk_size: Slice size in bytes

    Returns:
        UploadDescriptor for the file

    Raises:
        EmptyFileError: If the file has no bytes
        ValueError: If the upload name is not a valid object key
    """
    upload_name = file_name or make_upload_name(os.path.basename(path))
    validate_file_name(upload_name)

    file_size = os.path.getsize(path)
    total_chunks = count_chunks(file_size, chunk_size)

    with open(path, 'rb') as f:
        checksum = checksum_of_stream(f)

    return UploadDescriptor(
        file_name=upload_name,
        total_chunks=total_chunks,
        chunk_size=chunk_size,
        file_size=file_size,
        checksum=checksum,
    )


def iter_chunks(stream: BinaryIO, chunk_size: int = CHUNK_SIZE_BYTES) -> Iterator[Tuple[int, bytes]]:
    """
    Yield (chunk_index, bytes) pairs in index order until EOF.

    Every chunk except possibly the last is exactly chunk_size bytes.
    """
    index = 0
    while True:
        data = stream.read(chunk_size)
        if not data:
            break
        yield index, data
        index += 1


def read_chunk(stream: BinaryIO, descriptor: UploadDescriptor, chunk_index: int) -> bytes:
    """Read the bytes of one chunk by seeking to its offset."""
    length = descriptor.chunk_length(chunk_index)
    stream.seek(chunk_index * descriptor.chunk_size)
    return stream.read(length)
