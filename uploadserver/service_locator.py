"""Service locator for the object store and orphan log shared by routes and background tasks."""

from typing import Optional

from objectstore.base import ObjectStore
from objectstore.factory import create_object_store
from uploadserver import config
from uploadserver.orphan_log import OrphanLog

_object_store: Optional[ObjectStore] = None
_orphan_log: Optional[OrphanLog] = None


def set_object_store(store: Optional[ObjectStore]) -> None:
    """Set global object store instance"""
    global _object_store
    _object_store = store


def get_object_store() -> ObjectStore:
    """Get global object store instance, building it from config on first use"""
    global _object_store
    if _object_store is None:
        _object_store = create_object_store(
            backend=config.STORAGE_BACKEND,
            bucket=config.STORAGE_BUCKET,
            storage_path=config.STORAGE_PATH,
            public_base_url=config.PUBLIC_BASE_URL,
            supabase_url=config.SUPABASE_URL,
            supabase_key=config.SUPABASE_SERVICE_ROLE_KEY,
        )
    return _object_store


def set_orphan_log(orphan_log: Optional[OrphanLog]) -> None:
    """Set global orphan log instance"""
    global _orphan_log
    _orphan_log = orphan_log


def get_orphan_log() -> OrphanLog:
    """Get global orphan log instance"""
    global _orphan_log
    if _orphan_log is None:
        _orphan_log = OrphanLog(config.ORPHAN_LOG_PATH)
    return _orphan_log
