"""Object store contract consumed by the upload server."""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from common.types import StoredObject


class StorageError(Exception):
    """
    Raised when the backing store rejects or fails an operation.

    The message is the store's own error text; it is surfaced to callers as-is.
    """

    def __init__(self, message: str, key: Optional[str] = None):
        super().__init__(message)
        self.key = key


class ObjectNotFoundError(StorageError):
    """
    Raised when a requested key does not exist in the bucket.
    """
    pass


class ObjectStore(ABC):
    """
    Key-addressed binary storage with public locators.

    Writes are last-write-wins per key; no operation spans more than one key
    atomically.
    """

    backend_name = "abstract"

    def __init__(self, bucket: str):
        self.bucket = bucket

    @abstractmethod
    async def upload(self, key: str, data: bytes, content_type: Optional[str] = None) -> str:
        """Store data under key, replacing any existing object. Returns the stored path."""

    @abstractmethod
    async def download(self, key: str) -> bytes:
        """Return the object's bytes. Raises ObjectNotFoundError if absent."""

    @abstractmethod
    async def remove(self, keys: List[str]) -> None:
        """Delete keys. Absent keys are ignored."""

    @abstractmethod
    async def exists(self, key: str) -> bool:
        pass

    @abstractmethod
    async def list_objects(self, prefix: str = "") -> List[StoredObject]:
        pass

    @abstractmethod
    def get_public_url(self, key: str) -> str:
        pass

    @abstractmethod
    async def check(self) -> Dict[str, Any]:
        """Probe backend reachability. Raises StorageError if unreachable."""

    async def close(self) -> None:
        """Release network clients or file handles."""
        return None
