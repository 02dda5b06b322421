"""Builds the configured object store backend."""

import logging
from typing import Optional

from objectstore.base import ObjectStore
from objectstore.local_store import LocalObjectStore
from objectstore.memory_store import InMemoryObjectStore
from objectstore.supabase_store import SupabaseObjectStore

logger = logging.getLogger(__name__)

BACKENDS = ("local", "memory", "supabase")


def create_object_store(
    backend: str,
    bucket: str,
    storage_path: str,
    public_base_url: str,
    supabase_url: Optional[str] = None,
    supabase_key: Optional[str] = None,
) -> ObjectStore:
    """
    Create an object store for the named backend.

    Raises:
        ValueError: If backend is unknown or Supabase credentials are missing
    """
    backend = backend.lower()

    if backend == "local":
        store: ObjectStore = LocalObjectStore(storage_path, bucket, public_base_url)
    elif backend == "memory":
        store = InMemoryObjectStore(bucket, public_base_url)
    elif backend == "supabase":
        if not supabase_url or not supabase_key:
            raise ValueError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set for the supabase backend")
        store = SupabaseObjectStore(supabase_url, supabase_key, bucket)
    else:
        raise ValueError(f"Unknown storage backend {backend!r}; expected one of {', '.join(BACKENDS)}")

    logger.info(f"Using {store.backend_name} object store [bucket={bucket}]")
    return store
