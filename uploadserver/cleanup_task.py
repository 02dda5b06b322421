"""Background task for cleaning up orphaned chunk and manifest objects."""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from common.keys import is_reserved_name
from objectstore.base import ObjectStore, StorageError
from uploadserver import config
from uploadserver.orphan_log import OrphanLog

logger = logging.getLogger(__name__)


class OrphanedChunkCleaner:
    """
    Background task that periodically removes objects left behind by failed uploads.

    Each cycle retries the keys recorded in the orphan log, then sweeps chunk
    and manifest objects that have not been touched for longer than the TTL.
    """

    def __init__(
        self,
        store: Optional[ObjectStore] = None,
        orphan_log: Optional[OrphanLog] = None,
        interval_seconds: int = config.CLEANUP_INTERVAL,
        orphan_ttl_seconds: int = config.ORPHAN_TTL
    ):
        """
        Initialize cleaner task.

        Args:
            store: Object store to clean (defaults to the service locator's)
            orphan_log: Log of failed deletions (defaults to the service locator's)
            interval_seconds: Time between cleanup attempts (default 6 hours)
            orphan_ttl_seconds: Age after which chunk and manifest objects are swept
        """
        self._store = store
        self._orphan_log = orphan_log
        self.interval_seconds = interval_seconds
        self.orphan_ttl_seconds = orphan_ttl_seconds
        self._running = False
        self._task = None

    @property
    def store(self) -> ObjectStore:
        if self._store is None:
            from uploadserver.service_locator import get_object_store
            self._store = get_object_store()
        return self._store

    @property
    def orphan_log(self) -> OrphanLog:
        if self._orphan_log is None:
            from uploadserver.service_locator import get_orphan_log
            self._orphan_log = get_orphan_log()
        return self._orphan_log

    async def start(self) -> None:
        """Start the background cleanup task."""
        if self._running:
            logger.warning("Cleanup task already running")
            return

        self._running = True
        self._task = asyncio.create_task(self._run())
        logger.info(f"Started orphaned chunk cleanup task (interval: {self.interval_seconds}s)")

    async def stop(self) -> None:
        """Stop the background cleanup task."""
        if not self._running:
            return

        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass

        logger.info("Stopped orphaned chunk cleanup task")

    async def _run(self) -> None:
        """Main loop for cleanup task."""
        while self._running:
            try:
                await asyncio.sleep(self.interval_seconds)

                if not self._running:
                    break

                await self._cleanup_cycle()

            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Error in cleanup task: {e}", exc_info=True)

    async def _cleanup_cycle(self) -> None:
        """Execute one cleanup cycle."""
        await self._retry_logged_orphans()
        await self._sweep_stale_objects()

    async def _retry_logged_orphans(self) -> None:
        orphaned_data = self.orphan_log.load()

        if not orphaned_data:
            logger.debug("No orphaned objects to clean")
            return

        logger.info(f"Starting cleanup cycle for {len(orphaned_data)} orphaned objects")

        remaining_orphans = []
        cleaned_count = 0

        for entry in orphaned_data:
            key = entry.get("key")
            if not key:
                continue

            try:
                await self.store.remove([key])
                logger.info(f"Cleaned orphaned object {key}")
                cleaned_count += 1
            except StorageError as e:
                logger.warning(f"Error cleaning orphaned object {key}: {e}")
                remaining_orphans.append({**entry, "error": str(e)})

        try:
            self.orphan_log.replace(remaining_orphans)
        except OSError as e:
            logger.error(f"Failed to update orphaned objects log: {e}")
            return

        if remaining_orphans:
            logger.info(f"Cleanup cycle complete: {cleaned_count} cleaned, {len(remaining_orphans)} remaining")
        else:
            logger.info(f"Cleanup cycle complete: {cleaned_count} cleaned, all orphans removed")

    async def _sweep_stale_objects(self, now: Optional[datetime] = None) -> List[str]:
        """
        Delete chunk and manifest objects older than the TTL.

        Upload names cannot take either key shape, so assembled objects are never touched.

        Returns:
            Keys that were deleted
        """
        now = now or datetime.now(timezone.utc)
        cutoff = now - timedelta(seconds=self.orphan_ttl_seconds)

        try:
            objects = await self.store.list_objects()
        except StorageError as e:
            logger.warning(f"Failed to list objects for stale sweep: {e}")
            return []

        stale_keys = [
            obj.key for obj in objects
            if is_reserved_name(obj.key)
            and obj.updated_at is not None
            and obj.updated_at < cutoff
        ]

        if not stale_keys:
            logger.debug("No stale chunk objects found")
            return []

        try:
            await self.store.remove(stale_keys)
        except StorageError as e:
            logger.warning(f"Failed to sweep {len(stale_keys)} stale objects: {e}")
            return []

        logger.info(f"Swept {len(stale_keys)} stale chunk and manifest objects")
        return stale_keys
