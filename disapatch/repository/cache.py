"""
Enumeration Caches

In-memory caches shared across enumeration runs of one service: resolved link
metadata keyed by download URL, and per-row file records keyed by row title
(or asset id). Entries are never evicted.
"""

import logging
import threading
from typing import Any, Callable, Dict, List, Optional

from .models import CatalogRow, FileRecord, LinkDetail

logger = logging.getLogger(__name__)


class LinkDetailCache:
    """Resolved filename/size per download URL, including skip sentinels"""

    def __init__(self):
        """Initialize link detail cache"""
        self._entries: Dict[str, LinkDetail] = {}
        self._lock = threading.Lock()

    def get(self, url: str) -> Optional[LinkDetail]:
        """
        Get cached link metadata

        Returns:
            The cached detail (possibly a skip sentinel) or None on a miss
        """
        with self._lock:
            return self._entries.get(url)

    def put(self, detail: LinkDetail) -> LinkDetail:
        """
        Store link metadata; an existing entry for the URL is kept

        Returns:
            The entry now cached for the URL
        """
        with self._lock:
            return self._entries.setdefault(detail.url, detail)

    def mark_skip(self, url: str) -> LinkDetail:
        """Record that the URL has no real attachment"""
        logger.debug(f"Marking link as skipped: {url}")
        return self.put(LinkDetail.skip_sentinel(url))

    def __contains__(self, url: str) -> bool:
        with self._lock:
            return url in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get_cache_stats(self) -> Dict[str, Any]:
        """
        Get cache statistics

        Returns:
            Dict with cache statistics
        """
        with self._lock:
            skipped = sum(1 for detail in self._entries.values() if detail.skip)
            return {
                'total_entries': len(self._entries),
                'skip_sentinels': skipped,
                'total_size_bytes': sum(d.size_bytes for d in self._entries.values()),
            }

    def clear_all(self) -> None:
        """Clear all cache entries"""
        with self._lock:
            self._entries.clear()


class RowResultCache:
    """
    File records per catalog row.

    Keyed by row title by default, so distinct assets that share a title
    share one cache entry. key_by='asset_id' keys by asset id instead.
    """

    KEY_CHOICES = ('title', 'asset_id')

    def __init__(self, key_by: str = 'title'):
        """
        Initialize row result cache

        Args:
            key_by: 'title' or 'asset_id'
        """
        if key_by not in self.KEY_CHOICES:
            raise ValueError(f"key_by must be one of {self.KEY_CHOICES}, got {key_by!r}")
        self.key_by = key_by
        self._entries: Dict[str, List[FileRecord]] = {}
        self._lock = threading.Lock()

    def key_for(self, row: CatalogRow) -> str:
        """Cache key for a catalog row"""
        return row.asset_id if self.key_by == 'asset_id' else row.title

    def get(self, row: CatalogRow) -> Optional[List[FileRecord]]:
        """Get the cached records for a row, or None on a miss"""
        with self._lock:
            records = self._entries.get(self.key_for(row))
        return list(records) if records is not None else None

    def get_or_compute(self, row: CatalogRow,
                       compute: Callable[[], List[FileRecord]]) -> List[FileRecord]:
        """
        Return the cached records for a row, computing them on a miss

        compute runs outside the lock; if two callers race, the first stored
        result wins. Exceptions from compute propagate and nothing is cached.
        """
        key = self.key_for(row)
        with self._lock:
            if key in self._entries:
                logger.debug(f"Row cache hit: {key}")
                return list(self._entries[key])

        records = list(compute())

        with self._lock:
            stored = self._entries.setdefault(key, records)
        return list(stored)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def clear_all(self) -> None:
        """Clear all cache entries"""
        with self._lock:
            self._entries.clear()
