"""JSON log of object keys whose deletion failed and must be retried."""

import json
import logging
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, List

logger = logging.getLogger(__name__)


class OrphanLog:
    """
    Persistent list of {"key", "error", "recorded_at"} entries.

    One entry per key; recording a key again refreshes its error.
    """

    def __init__(self, path: str):
        self.path = Path(path)
        self._lock = threading.Lock()

    def load(self) -> List[Dict[str, str]]:
        if not self.path.exists():
            return []
        try:
            with open(self.path, 'r') as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.error(f"Failed to read orphan log {self.path}: {e}")
            return []
        return data if isinstance(data, list) else []

    def record(self, failures: Iterable[Dict[str, str]]) -> None:
        """
        Add failed deletions to the log.

        Args:
            failures: Dicts with "key" and "error"
        """
        now = datetime.now(timezone.utc).isoformat()
        with self._lock:
            entries = {entry["key"]: entry for entry in self.load() if entry.get("key")}
            for failure in failures:
                entries[failure["key"]] = {
                    "key": failure["key"],
                    "error": failure.get("error", ""),
                    "recorded_at": now,
                }
            self._write(list(entries.values()))
        logger.info(f"Orphan log now tracks {len(entries)} objects")

    def replace(self, entries: List[Dict[str, str]]) -> None:
        """Overwrite the log with the entries still pending; removes the file when empty."""
        with self._lock:
            if entries:
                self._write(entries)
            elif self.path.exists():
                self.path.unlink()

    def _write(self, entries: List[Dict[str, str]]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, 'w') as f:
            json.dump(entries, f, indent=2)
