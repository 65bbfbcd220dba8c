"""
Nutrition lookup service.

Fetches nutrition facts for every distinct key of a plan concurrently.

Flow per key:
1. Check cache
2. Query the lookup port (timeout, retried)
3. Record a failure for that key only
"""

import asyncio
import time
from typing import Any, Iterable, Optional

import structlog
from pydantic import BaseModel, ConfigDict, Field
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from mealguard.domain.nutrition.models import NutritionFact
from mealguard.domain.shared.errors import TimeoutError
from mealguard.domain.shared.ports import INutritionCache, INutritionLookup

logger = structlog.get_logger(__name__)


class LookupStats(BaseModel):
    model_config = ConfigDict(frozen=True)

    requested: int = 0
    found: int = 0
    missing: int = 0
    failed: int = 0
    cache_hits: int = 0
    fallbacks: int = 0
    duration_ms: int = 0


class LookupBatch(BaseModel):
    """Results of one concurrent lookup round.

    ``facts`` holds a fact (or None when the source has no data) for every
    key that did not fail; ``failures`` maps failed keys to the error.
    """

    model_config = ConfigDict(frozen=True)

    facts: dict[str, Optional[NutritionFact]] = Field(default_factory=dict)
    failures: dict[str, str] = Field(default_factory=dict)
    stats: LookupStats = Field(default_factory=LookupStats)

    def fact_for(self, key: str) -> Optional[NutritionFact]:
        return self.facts.get(key)

    def failed(self, key: str) -> bool:
        return key in self.failures


class NutritionLookupService:
    """Concurrent, cached nutrition fact fetching.

    Example:
        >>> service = NutritionLookupService(StaticNutritionLookup(FACTS))
        >>> batch = await service.fetch_all(["chicken_breast", "rice"])
        >>> batch.stats.found
        2
    """

    def __init__(
        self,
        lookup: INutritionLookup,
        cache: Optional[INutritionCache] = None,
        max_concurrency: int = 8,
        timeout_s: float = 5.0,
        retries: int = 1,
    ) -> None:
        """Initialize service.

        Args:
            lookup: Nutrition fact source
            cache: Optional read-through cache
            max_concurrency: Lookups in flight at once
            timeout_s: Per-attempt timeout
            retries: Extra attempts after a timeout
        """
        self.lookup = lookup
        self.cache = cache
        self.max_concurrency = max(1, max_concurrency)
        self.timeout_s = timeout_s
        self.retries = max(0, retries)

    async def _fetch_once(
        self, key: str, store_context: Optional[dict[str, Any]]
    ) -> Optional[NutritionFact]:
        try:
            return await asyncio.wait_for(
                self.lookup.lookup(key, store_context), timeout=self.timeout_s
            )
        except asyncio.TimeoutError as e:
            raise TimeoutError(
                f"Nutrition lookup timeout after {self.timeout_s:g}s for {key!r}"
            ) from e

    async def _fetch(
        self, key: str, store_context: Optional[dict[str, Any]]
    ) -> Optional[NutritionFact]:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.retries + 1),
            wait=wait_exponential(multiplier=0.1, max=1),
            retry=retry_if_exception_type(TimeoutError),
            reraise=True,
        ):
            with attempt:
                return await self._fetch_once(key, store_context)
        return None

    async def fetch_all(
        self,
        keys: Iterable[str],
        store_context: Optional[dict[str, Any]] = None,
    ) -> LookupBatch:
        """Fetch facts for all distinct keys.

        A failing key never cancels the others.

        Args:
            keys: Normalized ingredient keys (duplicates are ignored)
            store_context: Passed through to the lookup and cache

        Returns:
            LookupBatch with facts, per-key failures and stats
        """
        start = time.perf_counter()
        unique = list(dict.fromkeys(keys))
        facts: dict[str, Optional[NutritionFact]] = {}
        pending: list[str] = []
        cache_hits = 0

        for key in unique:
            cached = self.cache.get(key, store_context) if self.cache is not None else None
            if cached is not None:
                facts[key] = cached
                cache_hits += 1
            else:
                pending.append(key)

        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def guarded(key: str) -> Optional[NutritionFact]:
            async with semaphore:
                return await self._fetch(key, store_context)

        results = await asyncio.gather(*(guarded(k) for k in pending), return_exceptions=True)

        failures: dict[str, str] = {}
        for key, result in zip(pending, results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                logger.warning("Nutrition lookup failed", key=key, error=str(result))
                failures[key] = str(result) or result.__class__.__name__
                continue
            facts[key] = result
            if result is not None and self.cache is not None:
                self.cache.set(key, result, store_context)

        found = sum(1 for fact in facts.values() if fact is not None)
        stats = LookupStats(
            requested=len(unique),
            found=found,
            missing=len(facts) - found,
            failed=len(failures),
            cache_hits=cache_hits,
            fallbacks=sum(1 for fact in facts.values() if fact is not None and fact.is_fallback),
            duration_ms=int((time.perf_counter() - start) * 1000),
        )
        logger.info("Nutrition lookups complete", **stats.model_dump())
        return LookupBatch(facts=facts, failures=failures, stats=stats)
