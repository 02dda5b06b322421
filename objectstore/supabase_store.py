"""Supabase Storage backend.

Talks to the Storage REST API directly with httpx:
- POST   /storage/v1/object/{bucket}/{key}   upload (x-upsert so chunk writes overwrite)
- GET    /storage/v1/object/{bucket}/{key}   download
- DELETE /storage/v1/object/{bucket}         remove by prefixes
- POST   /storage/v1/object/list/{bucket}    list
- GET    /storage/v1/bucket/{bucket}         bucket probe
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from common.types import StoredObject
from objectstore.base import ObjectNotFoundError, ObjectStore, StorageError

logger = logging.getLogger(__name__)

LIST_PAGE_SIZE = 1000


class SupabaseObjectStore(ObjectStore):
    """Object store backed by a Supabase Storage bucket."""

    backend_name = "supabase"

    def __init__(
        self,
        supabase_url: str,
        supabase_key: str,
        bucket: str,
        timeout: float = 60.0,
    ):
        """
        Args:
            supabase_url: Supabase project URL
            supabase_key: Supabase service role key
            bucket: Storage bucket name
            timeout: Per-request timeout in seconds
        """
        super().__init__(bucket)
        self.supabase_url = supabase_url.rstrip("/")
        self.timeout = timeout
        self._client: Optional[httpx.AsyncClient] = None
        self._headers = {
            "apikey": supabase_key,
            "Authorization": f"Bearer {supabase_key}",
        }

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create async HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout, headers=self._headers)
        return self._client

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    def _object_url(self, key: str) -> str:
        return f"{self.supabase_url}/storage/v1/object/{self.bucket}/{quote(key, safe='')}"

    @staticmethod
    def _error_message(resp: httpx.Response) -> str:
        try:
            body = resp.json()
        except ValueError:
            return resp.text or f"HTTP {resp.status_code}"
        if isinstance(body, dict):
            return body.get("message") or body.get("error") or resp.text
        return resp.text

    @staticmethod
    def _is_not_found(resp: httpx.Response) -> bool:
        if resp.status_code == 404:
            return True
        # Storage API reports missing objects as 400 with a "404" statusCode in the body
        try:
            body = resp.json()
        except ValueError:
            return False
        return isinstance(body, dict) and (
            str(body.get("statusCode")) == "404" or body.get("error") == "not_found"
        )

    async def _send(self, method: str, url: str, key: Optional[str] = None, **kwargs) -> httpx.Response:
        client = await self._get_client()
        try:
            return await client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise StorageError(f"Supabase request failed: {type(e).__name__}: {e}", key=key)

    async def upload(self, key: str, data: bytes, content_type: Optional[str] = None) -> str:
        resp = await self._send(
            "POST",
            self._object_url(key),
            key=key,
            content=data,
            headers={
                "Content-Type": content_type or "application/octet-stream",
                "x-upsert": "true",
            },
        )
        if resp.status_code not in (200, 201):
            raise StorageError(self._error_message(resp), key=key)

        stored = resp.json().get("Key", f"{self.bucket}/{key}")
        # Key is reported as "{bucket}/{path}"
        return stored.split("/", 1)[1] if stored.startswith(f"{self.bucket}/") else stored

    async def download(self, key: str) -> bytes:
        resp = await self._send("GET", self._object_url(key), key=key)
        if resp.status_code == 200:
            return resp.content
        if self._is_not_found(resp):
            raise ObjectNotFoundError(f"Object not found: {key}", key=key)
        raise StorageError(self._error_message(resp), key=key)

    async def remove(self, keys: List[str]) -> None:
        if not keys:
            return
        resp = await self._send(
            "DELETE",
            f"{self.supabase_url}/storage/v1/object/{self.bucket}",
            json={"prefixes": keys},
        )
        if resp.status_code != 200:
            raise StorageError(self._error_message(resp))

    async def exists(self, key: str) -> bool:
        resp = await self._send(
            "HEAD",
            f"{self.supabase_url}/storage/v1/object/info/{self.bucket}/{quote(key, safe='')}",
            key=key,
        )
        if resp.status_code == 200:
            return True
        if resp.status_code in (400, 404):
            return False
        raise StorageError(f"Failed to stat {key}: HTTP {resp.status_code}", key=key)

    async def list_objects(self, prefix: str = "") -> List[StoredObject]:
        objects: List[StoredObject] = []
        offset = 0
        while True:
            resp = await self._send(
                "POST",
                f"{self.supabase_url}/storage/v1/object/list/{self.bucket}",
                json={
                    "prefix": "",
                    "search": prefix,
                    "limit": LIST_PAGE_SIZE,
                    "offset": offset,
                    "sortBy": {"column": "name", "order": "asc"},
                },
            )
            if resp.status_code != 200:
                raise StorageError(self._error_message(resp))

            page = resp.json()
            for entry in page:
                name = entry.get("name", "")
                # Folder placeholders carry no id
                if not name.startswith(prefix) or entry.get("id") is None:
                    continue
                metadata = entry.get("metadata") or {}
                objects.append(
                    StoredObject(
                        key=name,
                        size=int(metadata.get("size", 0)),
                        updated_at=_parse_timestamp(entry.get("updated_at") or entry.get("created_at")),
                    )
                )

            if len(page) < LIST_PAGE_SIZE:
                break
            offset += LIST_PAGE_SIZE
        return objects

    def get_public_url(self, key: str) -> str:
        return f"{self.supabase_url}/storage/v1/object/public/{self.bucket}/{quote(key, safe='')}"

    async def check(self) -> Dict[str, Any]:
        resp = await self._send("GET", f"{self.supabase_url}/storage/v1/bucket/{self.bucket}")
        if resp.status_code != 200:
            raise StorageError(f"Bucket {self.bucket} unavailable: {self._error_message(resp)}")
        body = resp.json()
        return {"url": self.supabase_url, "public": bool(body.get("public", False))}


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
