"""Insights cache — one fresh composed response per user, with hit/miss stats.

Reads never fail the caller: a store error or a stale-schema document is
logged and reported as a miss. Writes are best-effort. ``clear`` is the only
operation whose failures propagate.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any

from wellinsight.core.storage.models import CacheEntry
from wellinsight.domains.insights.connectors import InsightsCacheStore
from wellinsight.domains.insights.domain_logic.models import (
    AIInsightsResponse,
    CacheSchemaError,
)

logger = logging.getLogger(__name__)

# Log the running hit rate every this many lookups.
HIT_RATE_LOG_INTERVAL = 100


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CacheStats:
    """Thread-safe hit/miss counters owned by one service instance."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    def record_hit(self) -> None:
        self._record(hit=True)

    def record_miss(self) -> None:
        self._record(hit=False)

    def _record(self, *, hit: bool) -> None:
        with self._lock:
            if hit:
                self._hits += 1
            else:
                self._misses += 1
            total = self._hits + self._misses
            hits, misses = self._hits, self._misses
        if total % HIT_RATE_LOG_INTERVAL == 0:
            logger.info(
                "Insights cache hit rate: %.2f%% (hits=%d, misses=%d, total=%d)",
                hits / total * 100, hits, misses, total,
            )

    def snapshot(self) -> dict[str, Any]:
        """Return ``{hits, misses, hit_rate, total}``; hit_rate is a percentage."""
        with self._lock:
            hits, misses = self._hits, self._misses
        total = hits + misses
        hit_rate = round(hits / total * 100, 2) if total else 0.0
        return {"hits": hits, "misses": misses, "hit_rate": hit_rate, "total": total}

    def reset(self) -> None:
        with self._lock:
            self._hits = 0
            self._misses = 0
        logger.info("Insights cache stats reset")


class CacheManager:
    """Get / set / clear composed insights responses in an ``InsightsCacheStore``.

    Usage::

        cache = CacheManager(repository, ttl_seconds=3600)
        cached = cache.get("u1")        # None on miss
        cache.set("u1", response)
        cache.clear("u1")
    """

    def __init__(
        self,
        store: InsightsCacheStore,
        *,
        ttl_seconds: int = 3600,
        clock: Callable[[], datetime] = utc_now,
        stats: CacheStats | None = None,
    ) -> None:
        self._store = store
        self._ttl = timedelta(seconds=ttl_seconds)
        self._clock = clock
        self._stats = stats if stats is not None else CacheStats()

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    def expiry_for(self, generated_at: datetime) -> datetime:
        return generated_at + self._ttl

    def get(self, user_id: str) -> AIInsightsResponse | None:
        """Freshest unexpired response for ``user_id``, or None (counted as a miss)."""
        response: AIInsightsResponse | None = None
        try:
            entry = self._store.find_fresh_insights(user_id, self._clock())
            if entry is not None:
                response = AIInsightsResponse.from_dict(entry.insights_data)
        except CacheSchemaError as exc:
            logger.warning("Discarding cached insights with stale schema: %s", exc)
        except Exception:
            logger.exception("Insights cache read failed; treating as miss")

        if response is None:
            self._stats.record_miss()
        else:
            self._stats.record_hit()
        return response

    def set(self, user_id: str, response: AIInsightsResponse) -> bool:
        """Replace the user's cached response. Returns False if the write failed."""
        generated_at = response.metadata.generated_at
        expires_at = response.metadata.cache_expiry or self.expiry_for(generated_at)
        try:
            self._store.upsert_insights(CacheEntry(
                user_id=user_id,
                insights_data=response.to_dict(),
                generated_at=generated_at,
                expires_at=expires_at,
            ))
        except Exception:
            logger.exception("Insights cache write failed; response returned uncached")
            return False
        return True

    def clear(self, user_id: str) -> int:
        """Delete every cached response for ``user_id``. Errors propagate."""
        count = self._store.delete_insights(user_id)
        logger.info("Cleared %d cached insights rows", count)
        return count

    def stats(self) -> dict[str, Any]:
        return self._stats.snapshot()

    def reset_stats(self) -> None:
        self._stats.reset()
