"""
Candidate generation - builds the pool of organizations to rank.

Two strategies run side by side against the directory: browse by cause and
search by keyword. Results are merged in discovery order (browse batches
first, then search batches), deduplicated by slug and capped.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable

from app.config import settings
from app.features.recommendations.domain.models import (
    ArticleContext,
    ArticleEntities,
    CandidatePool,
    NonprofitCandidate,
)
from app.features.recommendations.knowledge import causes as cause_kb
from app.features.recommendations.knowledge.inference import crisis_causes
from app.infrastructure.observability.logging import get_logger, log_stage
from app.services.everyorg.client import DirectoryClient, DirectoryError

from .cache import CacheBackend, browse_key, search_key

logger = get_logger(__name__)

MAX_CAUSES_TO_BROWSE = 3
MAX_SEARCH_TERMS = 5
FALLBACK_SEARCH_TERMS = ("disaster relief", "emergency response")


class CandidateGenerator:
    def __init__(
        self,
        client: DirectoryClient,
        cache: CacheBackend | None = None,
        max_candidates: int | None = None,
        results_per_query: int | None = None,
    ):
        self.client = client
        self.cache = cache
        self.max_candidates = max_candidates or settings.MAX_CANDIDATES
        self.results_per_query = results_per_query or settings.SEARCH_TAKE

    def select_causes(self, context: ArticleContext) -> list[str]:
        """Up to three browse slugs; caller-supplied causes come before inferred ones."""
        slugs: list[str] = []
        for cause in crisis_causes(context):
            slug = cause_kb.browse_slug(cause)
            if slug not in slugs:
                slugs.append(slug)
            if len(slugs) >= MAX_CAUSES_TO_BROWSE:
                break
        return slugs

    def build_search_terms(self, entities: ArticleEntities) -> list[str]:
        geography = entities.geography
        specific = [
            entities.disaster_type,
            geography.country,
            geography.region,
            geography.city,
            entities.affected_group,
        ]

        terms: list[str] = []
        seen: set[str] = set()

        def add(term: str | None) -> None:
            cleaned = (term or "").strip()
            if cleaned and cleaned.lower() not in seen and len(terms) < MAX_SEARCH_TERMS:
                seen.add(cleaned.lower())
                terms.append(cleaned)

        for term in specific:
            add(term)
        # Generic fallbacks only fill the remaining slots.
        for term in FALLBACK_SEARCH_TERMS:
            add(term)
        return terms

    async def generate(self, context: ArticleContext) -> CandidatePool:
        started = time.perf_counter()
        causes_used = self.select_causes(context)
        search_terms = self.build_search_terms(context.entities)

        browse_calls = [self._browse(cause) for cause in causes_used]
        search_calls = [self._search(term, causes_used) for term in search_terms]
        outcomes = await asyncio.gather(*browse_calls, *search_calls)

        labels = [f"browse '{cause}'" for cause in causes_used] + [
            f"search '{term}'" for term in search_terms
        ]

        merged: dict[str, NonprofitCandidate] = {}
        raw_count = 0
        failed = 0
        degradations: list[str] = []

        for label, (results, error) in zip(labels, outcomes):
            if error is not None:
                failed += 1
                degradations.append(f"{label} failed: {error}")
                continue
            for candidate in results:
                raw_count += 1
                if candidate.slug and candidate.slug not in merged:
                    merged[candidate.slug] = candidate

        candidates = list(merged.values())[: self.max_candidates]
        all_failed = bool(outcomes) and failed == len(outcomes)

        if all_failed:
            logger.error("All directory calls failed", calls=len(outcomes))
        elif failed:
            logger.warning("Some directory calls failed", failed_calls=failed, calls=len(outcomes))

        log_stage(
            "candidate_generation",
            (time.perf_counter() - started) * 1000,
            causes=causes_used,
            search_terms=search_terms,
            raw_candidate_count=raw_count,
            candidate_count=len(candidates),
            failed_calls=failed,
        )

        return CandidatePool(
            candidates=candidates,
            causes_used=causes_used,
            search_terms_used=search_terms,
            candidate_count=len(candidates),
            raw_candidate_count=raw_count,
            failed_calls=failed,
            all_calls_failed=all_failed,
            degradations=degradations,
        )

    async def _browse(self, cause: str) -> tuple[list[NonprofitCandidate], str | None]:
        take = self.results_per_query
        return await self._cached_call(
            browse_key(cause, page=1, take=take),
            lambda: self.client.browse(cause, take=take, page=1),
        )

    async def _search(
        self, term: str, causes: list[str]
    ) -> tuple[list[NonprofitCandidate], str | None]:
        take = self.results_per_query
        return await self._cached_call(
            search_key(term, causes, take=take),
            lambda: self.client.search(term, causes=causes or None, take=take),
        )

    async def _cached_call(
        self,
        key: str,
        call: Callable[[], Awaitable[list[NonprofitCandidate]]],
    ) -> tuple[list[NonprofitCandidate], str | None]:
        """Run one directory call through the cache. Failures are returned, not raised."""
        if self.cache is not None:
            cached = self.cache.get(key)
            if cached is not None:
                return list(cached), None

        try:
            results = await call()
        except DirectoryError as e:
            logger.warning(
                "Directory call failed",
                cache_key=key,
                error=e.message,
                kind=e.kind.value,
                status_code=e.status_code,
            )
            return [], e.message

        if self.cache is not None:
            self.cache.set(key, list(results))
        return list(results), None
