"""SHA-256 digests for chunks and assembled uploads."""

import hashlib
from typing import BinaryIO, Iterable


def compute_checksum(data: bytes) -> str:
    """
    Compute SHA-256 checksum for given data.

    Args:
        data: Bytes to compute checksum for

    Returns:
        Hexadecimal string representation of SHA-256 hash
    """
    return hashlib.sha256(data).hexdigest()


def verify_checksum(data: bytes, expected: str) -> bool:
    """
    Verify that data matches expected checksum.

    Comparison is case-insensitive so clients may send upper-case hex.
    """
    return compute_checksum(data) == expected.strip().lower()


def checksum_of_parts(parts: Iterable[bytes]) -> str:
    """Digest of the concatenation of parts, without building the joined buffer."""
    calculator = IncrementalChecksumCalculator()
    for part in parts:
        calculator.update(part)
    return calculator.finalize()


def checksum_of_stream(stream: BinaryIO, piece_size: int = 1024 * 1024) -> str:
    """
    Digest a binary file handle from its current position to EOF.

    The caller is responsible for rewinding the handle afterwards.
    """
    calculator = IncrementalChecksumCalculator()
    while True:
        piece = stream.read(piece_size)
        if not piece:
            break
        calculator.update(piece)
    return calculator.finalize()


class IncrementalChecksumCalculator:
    """
    Calculate SHA-256 checksum incrementally for streaming data.

    Usage:
        calculator = IncrementalChecksumCalculator()
        calculator.update(chunk1)
        calculator.update(chunk2)
        final_checksum = calculator.finalize()
    """

    def __init__(self):
        self._hasher = hashlib.sha256()
        self._finalized = False

    def update(self, data: bytes) -> None:
        if self._finalized:
            raise ValueError("Cannot update after finalization")
        self._hasher.update(data)

    def finalize(self) -> str:
        self._finalized = True
        return self._hasher.hexdigest()
