"""Object key layout shared by the uploader and the upload server."""

import re
import time
from pathlib import PurePath
from typing import Optional, Tuple

from common.constants import CHUNK_KEY_SEPARATOR, MANIFEST_SUFFIX

_CHUNK_KEY_PATTERN = re.compile(rf"^(?P<name>.+){re.escape(CHUNK_KEY_SEPARATOR)}(?P<index>\d+)$")


def chunk_key(file_name: str, chunk_index: int) -> str:
    """
    Build the transient object key for one chunk.

    Args:
        file_name: Upload name shared by every chunk of the file
        chunk_index: Zero-based chunk position

    Returns:
        Key of the form "{file_name}.chunk.{chunk_index}"
    """
    return f"{file_name}{CHUNK_KEY_SEPARATOR}{chunk_index}"


def manifest_key(file_name: str) -> str:
    """Key of the JSON manifest tracking confirmed chunks for an upload."""
    return f"{file_name}{MANIFEST_SUFFIX}"


def parse_chunk_key(key: str) -> Optional[Tuple[str, int]]:
    """
    Split a chunk key back into its upload name and index.

    Returns:
        (file_name, chunk_index), or None if key is not a chunk key
    """
    match = _CHUNK_KEY_PATTERN.match(key)
    if not match:
        return None
    return match.group("name"), int(match.group("index"))


def is_manifest_key(key: str) -> bool:
    return key.endswith(MANIFEST_SUFFIX) and len(key) > len(MANIFEST_SUFFIX)


def is_reserved_name(key: str) -> bool:
    """True if key has the shape of a chunk or manifest key."""
    return parse_chunk_key(key) is not None or is_manifest_key(key)


def make_upload_name(original_name: str, timestamp_ms: Optional[int] = None) -> str:
    """
    Generate the upload name once, at split time.

    Directory components of original_name are dropped so the result is a
    single flat key.

    Args:
        original_name: Name of the file on the user's machine
        timestamp_ms: Milliseconds since the epoch (defaults to now)

    Returns:
        "{timestamp_ms}-{basename}"
    """
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    base_name = PurePath(original_name.replace("\\", "/")).name or "upload"
    return f"{timestamp_ms}-{base_name}"


def validate_file_name(file_name: str) -> None:
    """
    Reject upload names that cannot be used as a flat object key.

    Raises:
        ValueError: If the name is empty, contains separators or NUL bytes,
            or ends like a chunk or manifest key
    """
    if not file_name or not file_name.strip():
        raise ValueError("fileName must be a non-empty string")
    if "/" in file_name or "\\" in file_name:
        raise ValueError("fileName must not contain path separators")
    if "\x00" in file_name:
        raise ValueError("fileName must not contain NUL bytes")
    if file_name in (".", ".."):
        raise ValueError("fileName must not be a relative path segment")
    if is_reserved_name(file_name):
        raise ValueError(
            f"fileName must not end with '{CHUNK_KEY_SEPARATOR}<n>' or '{MANIFEST_SUFFIX}'"
        )
