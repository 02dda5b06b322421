"""Filesystem object store: one directory per bucket, one file per key."""

import asyncio
import logging
import os
import shutil
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional
from urllib.parse import quote

from common.keys import validate_file_name
from common.types import StoredObject
from objectstore.base import ObjectNotFoundError, ObjectStore, StorageError

logger = logging.getLogger(__name__)


class LocalObjectStore(ObjectStore):
    """
    Stores objects as files under {root}/{bucket}/.

    Keys are flat names; public locators point at the upload server's
    /objects/{key} route.
    """

    backend_name = "local"

    def __init__(self, root: str, bucket: str, public_base_url: str):
        super().__init__(bucket)
        self.bucket_dir = Path(root) / bucket
        self.public_base_url = public_base_url.rstrip("/")

    def ensure_bucket_directory(self) -> None:
        """Ensure the bucket directory exists."""
        self.bucket_dir.mkdir(parents=True, exist_ok=True)

    def get_object_path(self, key: str) -> Path:
        """
        Get file path for a key.

        Raises:
            StorageError: If key would escape the bucket directory
        """
        try:
            validate_file_name(key)
        except ValueError as e:
            raise StorageError(f"Invalid object key {key!r}: {e}", key=key)
        return self.bucket_dir / key

    def _write(self, key: str, data: bytes) -> str:
        self.ensure_bucket_directory()
        filepath = self.get_object_path(key)
        fd, tmp_name = tempfile.mkstemp(dir=self.bucket_dir, prefix=".upload-")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            os.replace(tmp_name, filepath)
        except OSError:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise
        return key

    def _read(self, key: str) -> bytes:
        filepath = self.get_object_path(key)
        try:
            return filepath.read_bytes()
        except FileNotFoundError:
            raise ObjectNotFoundError(f"Object not found: {key}", key=key)

    def _delete(self, keys: List[str]) -> None:
        for key in keys:
            filepath = self.get_object_path(key)
            if filepath.exists():
                filepath.unlink()

    def _list(self, prefix: str) -> List[StoredObject]:
        if not self.bucket_dir.exists():
            return []

        objects = []
        for filepath in sorted(self.bucket_dir.iterdir()):
            if not filepath.is_file() or filepath.name.startswith(".upload-"):
                continue
            if not filepath.name.startswith(prefix):
                continue
            stat = filepath.stat()
            objects.append(
                StoredObject(
                    key=filepath.name,
                    size=stat.st_size,
                    updated_at=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
                )
            )
        return objects

    async def upload(self, key: str, data: bytes, content_type: Optional[str] = None) -> str:
        try:
            path = await asyncio.to_thread(self._write, key, data)
        except OSError as e:
            raise StorageError(f"Failed to write {key}: {e.strerror or e}", key=key)
        logger.debug(f"Wrote {len(data)} bytes to {self.bucket_dir / key}")
        return path

    async def download(self, key: str) -> bytes:
        try:
            return await asyncio.to_thread(self._read, key)
        except ObjectNotFoundError:
            raise
        except OSError as e:
            raise StorageError(f"Failed to read {key}: {e.strerror or e}", key=key)

    async def remove(self, keys: List[str]) -> None:
        try:
            await asyncio.to_thread(self._delete, keys)
        except OSError as e:
            raise StorageError(f"Failed to remove objects: {e.strerror or e}")

    async def exists(self, key: str) -> bool:
        return self.get_object_path(key).exists()

    async def list_objects(self, prefix: str = "") -> List[StoredObject]:
        return await asyncio.to_thread(self._list, prefix)

    def get_public_url(self, key: str) -> str:
        return f"{self.public_base_url}/objects/{quote(key)}"

    async def check(self) -> Dict[str, Any]:
        try:
            self.ensure_bucket_directory()
        except OSError as e:
            raise StorageError(f"Bucket directory unavailable: {e.strerror or e}")
        if not os.access(self.bucket_dir, os.W_OK):
            raise StorageError(f"Bucket directory is not writable: {self.bucket_dir}")
        usage = shutil.disk_usage(self.bucket_dir)
        return {"path": str(self.bucket_dir), "free_bytes": usage.free}
