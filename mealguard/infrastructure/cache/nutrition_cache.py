"""
Nutrition fact cache with TTL support.

Read-through cache in front of the nutrition lookup. Bounded: when full,
the oldest entry is evicted. Entries are frozen models shared read-only.
"""

import time
from collections import OrderedDict
from typing import Callable, Optional

import structlog
from pydantic import BaseModel, ConfigDict

from mealguard.domain.nutrition.models import NutritionFact

logger = structlog.get_logger(__name__)


class NutritionCacheEntry(BaseModel):
    """Cached nutrition fact with expiry."""

    model_config = ConfigDict(frozen=True)

    key: str
    fact: NutritionFact
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class NutritionFactCache:
    """In-memory nutrition fact cache with TTL and a size bound."""

    def __init__(
        self,
        max_entries: int = 512,
        default_ttl_seconds: float = 3600,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize cache.

        Args:
            max_entries: Maximum number of cached keys
            default_ttl_seconds: Cache TTL (default 1 hour)
            clock: Time source in seconds
        """
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.max_entries = max_entries
        self.default_ttl = default_ttl_seconds
        self._clock = clock
        self._cache: OrderedDict[str, NutritionCacheEntry] = OrderedDict()

    def _make_key(self, normalized_key: str, store_context: Optional[dict] = None) -> str:
        """Generate cache key.

        Args:
            normalized_key: Ingredient lookup key
            store_context: Caller context; its ``store`` value scopes the key

        Returns:
            Cache key string
        """
        store = (store_context or {}).get("store")
        return f"{store}:{normalized_key}" if store else normalized_key

    def get(self, normalized_key: str, store_context: Optional[dict] = None) -> Optional[NutritionFact]:
        """Get cached fact.

        Example:
            >>> cache = NutritionFactCache()
            >>> assert cache.get("chicken_breast") is None  # Cache is empty
        """
        key = self._make_key(normalized_key, store_context)
        entry = self._cache.get(key)

        if entry is None:
            logger.debug("Cache miss", key=key)
            return None

        if entry.is_expired(self._clock()):
            logger.debug("Cache expired", key=key)
            del self._cache[key]
            return None

        logger.debug("Cache hit", key=key)
        return entry.fact

    def set(
        self,
        normalized_key: str,
        fact: NutritionFact,
        store_context: Optional[dict] = None,
        ttl_seconds: Optional[float] = None,
    ) -> None:
        """Cache a fact, evicting the oldest entry when full."""
        key = self._make_key(normalized_key, store_context)
        ttl = self.default_ttl if ttl_seconds is None else ttl_seconds

        if key in self._cache:
            del self._cache[key]
        elif len(self._cache) >= self.max_entries:
            evicted, _ = self._cache.popitem(last=False)
            logger.debug("Cache evicted", key=evicted)

        self._cache[key] = NutritionCacheEntry(
            key=key, fact=fact, expires_at=self._clock() + ttl
        )
        logger.debug("Cached item", key=key, ttl=ttl)

    def clear(self) -> None:
        """Clear all cache entries."""
        self._cache.clear()
        logger.info("Cache cleared")

    def remove_expired(self) -> int:
        """Remove expired entries.

        Returns:
            Number of entries removed
        """
        now = self._clock()
        expired_keys = [key for key, entry in self._cache.items() if entry.is_expired(now)]

        for key in expired_keys:
            del self._cache[key]

        if expired_keys:
            logger.info("Removed expired entries", count=len(expired_keys))

        return len(expired_keys)

    def size(self) -> int:
        """Get number of cached entries."""
        return len(self._cache)
