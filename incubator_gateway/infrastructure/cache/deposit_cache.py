"""In-process memo of per-wallet deposit totals with passive expiry"""

import threading
from decimal import Decimal
from typing import Dict, Optional
from incubator_gateway.domain.models import CacheEntry


class DepositCache:
    """
    Keyed store of the last computed deposit total per wallet.

    Two horizons apply to every entry:
    - ttl_seconds: how long an entry is served as fresh
    - retention_seconds: how long an expired entry is kept for stale fallback

    Expiry is passive: entries past retention are purged at the start of each
    lookup, there is no background sweeper. Every operation holds one lock, so
    purge/get/put never interleave.
    """

    def __init__(
        self,
        ttl_seconds: float,
        retention_seconds: float | None = None,
        max_entries: int | None = None,
    ):
        if retention_seconds is None:
            retention_seconds = ttl_seconds
        if retention_seconds < ttl_seconds:
            raise ValueError("retention_seconds must not be shorter than ttl_seconds")

        self.ttl_seconds = ttl_seconds
        self.retention_seconds = retention_seconds
        self.max_entries = max_entries
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get(self, wallet: str) -> Optional[CacheEntry]:
        with self._lock:
            return self._entries.get(wallet)

    def put(self, wallet: str, amount: Decimal, now: float) -> None:
        """Overwrite the wallet's entry unconditionally"""
        with self._lock:
            self._entries[wallet] = CacheEntry(amount=amount, timestamp=now)

            if self.max_entries is not None and len(self._entries) > self.max_entries:
                oldest = min(self._entries, key=lambda k: self._entries[k].timestamp)
                del self._entries[oldest]

    def purge_expired(self, now: float, max_age: float) -> int:
        """Remove every entry older than max_age. Returns the number removed."""
        with self._lock:
            return self._purge(now, max_age)

    def get_stale(self, wallet: str) -> Optional[CacheEntry]:
        """Return the wallet's entry regardless of age (failure fallback only)"""
        with self._lock:
            return self._entries.get(wallet)

    def lookup_fresh(self, wallet: str, now: float) -> Optional[CacheEntry]:
        """Purge past-retention entries, then return the wallet's entry if still fresh"""
        with self._lock:
            self._purge(now, self.retention_seconds)
            entry = self._entries.get(wallet)
            if entry is not None and now - entry.timestamp < self.ttl_seconds:
                return entry
            return None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def _purge(self, now: float, max_age: float) -> int:
        expired = [k for k, e in self._entries.items() if now - e.timestamp > max_age]
        for key in expired:
            del self._entries[key]
        return len(expired)
