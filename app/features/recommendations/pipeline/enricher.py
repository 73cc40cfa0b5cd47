"""
Enricher - fetches full profiles for the top of a ranking.

Detail calls are bounded by a semaphore to respect directory rate limits.
Each item fails on its own: a missing profile or a directory error marks
that item ``enriched=False`` and the rest carry on.
"""

from __future__ import annotations

import asyncio
import time

from app.config import settings
from app.features.recommendations.domain.models import (
    EnrichedNonprofit,
    EnrichmentResult,
    NonprofitRanked,
)
from app.infrastructure.observability.logging import get_logger, log_stage
from app.services.everyorg.client import DirectoryClient, DirectoryError

from .cache import CacheBackend, nonprofit_key

logger = get_logger(__name__)

NOT_FOUND_MESSAGE = "Nonprofit not found"


class Enricher:
    def __init__(
        self,
        client: DirectoryClient,
        cache: CacheBackend | None = None,
        concurrency: int | None = None,
        default_top_n: int | None = None,
    ):
        self.client = client
        self.cache = cache
        self.concurrency = max(1, concurrency or settings.ENRICHMENT_CONCURRENCY)
        self.default_top_n = default_top_n or settings.ENRICHMENT_TOP_N

    async def enrich(self, ranked: list[NonprofitRanked], top_n: int | None = None) -> EnrichmentResult:
        started = time.perf_counter()
        limit = self.default_top_n if top_n is None else max(0, top_n)
        selected = ranked[:limit]

        semaphore = asyncio.Semaphore(self.concurrency)

        async def enrich_one(item: NonprofitRanked) -> EnrichedNonprofit:
            async with semaphore:
                return await self._enrich_item(item)

        enriched = list(await asyncio.gather(*(enrich_one(item) for item in selected)))

        succeeded = sum(1 for item in enriched if item.enriched)
        failed = len(enriched) - succeeded

        log_stage(
            "enrichment",
            (time.perf_counter() - started) * 1000,
            requested=len(selected),
            enrichment_count=succeeded,
            failed_count=failed,
        )

        return EnrichmentResult(enriched=enriched, enrichment_count=succeeded, failed_count=failed)

    async def _enrich_item(self, item: NonprofitRanked) -> EnrichedNonprofit:
        key = nonprofit_key(item.slug)
        if self.cache is not None:
            cached = self.cache.get(key)
            if cached is not None:
                return EnrichedNonprofit(ranked=item, enriched=True, detail=cached)

        try:
            detail = await self.client.get_details(item.slug)
        except DirectoryError as e:
            logger.warning(
                "Enrichment failed",
                slug=item.slug,
                error=e.message,
                kind=e.kind.value,
                status_code=e.status_code,
            )
            return EnrichedNonprofit(ranked=item, enriched=False, enrichment_error=e.message)

        if detail is None:
            return EnrichedNonprofit(ranked=item, enriched=False, enrichment_error=NOT_FOUND_MESSAGE)

        if self.cache is not None:
            self.cache.set(key, detail)
        return EnrichedNonprofit(ranked=item, enriched=True, detail=detail)
