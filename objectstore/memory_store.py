"""In-memory object store backend.

Ephemeral storage for development and tests. Data is lost on restart.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from urllib.parse import quote

from common.types import StoredObject
from objectstore.base import ObjectNotFoundError, ObjectStore

logger = logging.getLogger(__name__)


@dataclass
class _MemoryObject:
    data: bytes
    content_type: Optional[str]
    updated_at: datetime


class InMemoryObjectStore(ObjectStore):
    """Dictionary-backed bucket."""

    backend_name = "memory"

    def __init__(self, bucket: str, public_base_url: str = "http://localhost:8000"):
        super().__init__(bucket)
        self.public_base_url = public_base_url.rstrip("/")
        self._objects: Dict[str, _MemoryObject] = {}
        self._lock = asyncio.Lock()

    async def upload(self, key: str, data: bytes, content_type: Optional[str] = None) -> str:
        async with self._lock:
            self._objects[key] = _MemoryObject(
                data=bytes(data),
                content_type=content_type,
                updated_at=datetime.now(timezone.utc),
            )
        logger.debug(f"Stored {len(data)} bytes under {key} [bucket={self.bucket}]")
        return key

    async def download(self, key: str) -> bytes:
        obj = self._objects.get(key)
        if obj is None:
            raise ObjectNotFoundError(f"Object not found: {key}", key=key)
        return obj.data

    async def remove(self, keys: List[str]) -> None:
        async with self._lock:
            for key in keys:
                self._objects.pop(key, None)

    async def exists(self, key: str) -> bool:
        return key in self._objects

    async def list_objects(self, prefix: str = "") -> List[StoredObject]:
        return [
            StoredObject(key=key, size=len(obj.data), updated_at=obj.updated_at)
            for key, obj in sorted(self._objects.items())
            if key.startswith(prefix)
        ]

    def get_public_url(self, key: str) -> str:
        return f"{self.public_base_url}/objects/{quote(key)}"

    async def check(self) -> Dict[str, Any]:
        return {"objects": len(self._objects)}
