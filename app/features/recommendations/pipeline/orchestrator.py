"""
Recommendation orchestrator - one request/response cycle of the pipeline.

cache check -> candidate generation -> reranking -> enrichment -> cache store

Directory and provider failures degrade to a smaller result with debug
notes; empty results are a normal outcome and are never cached.
"""

from __future__ import annotations

import copy
import time

from app.features.recommendations.domain.models import (
    ArticleContext,
    CandidatePool,
    EnrichmentResult,
    RankingResult,
    RecommendationDebug,
    RecommendationResult,
    RecommendOptions,
)
from app.infrastructure.observability.logging import get_logger

from .cache import CacheBackend, recommendation_key
from .candidates import CandidateGenerator
from .enricher import Enricher
from .reranker import Reranker

logger = get_logger(__name__)


def _cache_variant(options: RecommendOptions) -> str:
    return (
        f"top_n={options.top_n};"
        f"trust={options.trust_provider is not None};"
        f"vetting={options.vetting_provider is not None};"
        f"providers={options.provider_key or ''}"
    )


class RecommendationOrchestrator:
    def __init__(
        self,
        generator: CandidateGenerator,
        reranker: Reranker,
        enricher: Enricher,
        cache: CacheBackend,
    ):
        self.generator = generator
        self.reranker = reranker
        self.enricher = enricher
        self.cache = cache

    async def recommend(
        self, context: ArticleContext, options: RecommendOptions | None = None
    ) -> RecommendationResult:
        options = options or RecommendOptions()
        started = time.perf_counter()
        cache_key = recommendation_key(context, _cache_variant(options)) if options.use_cache else None

        if cache_key:
            cached = self.cache.get(cache_key)
            if cached is not None:
                logger.info("Recommendation cache hit", cache_key=cache_key)
                return self._from_cache(cached, options, started)

        pool = await self.generator.generate(context)
        if not pool.candidates:
            logger.info(
                "No candidates found",
                all_calls_failed=pool.all_calls_failed,
                failed_calls=pool.failed_calls,
            )
            return self._finish(self._assemble(pool, None, None, started), options)

        ranking = await self.reranker.rerank(
            pool.candidates,
            context,
            trust_provider=options.trust_provider,
            vetting_provider=options.vetting_provider,
        )
        if not ranking.ranked:
            logger.info("No candidates survived ranking", excluded_counts=ranking.excluded_counts)
            return self._finish(self._assemble(pool, ranking, None, started), options)

        enrichment = await self.enricher.enrich(ranking.ranked, top_n=options.top_n)
        result = self._assemble(pool, ranking, enrichment, started)

        if cache_key and result.nonprofits:
            self.cache.set(cache_key, copy.deepcopy(result))
            result.debug.cache_stats = self.cache.stats()

        logger.info(
            "Recommendations generated",
            nonprofit_count=len(result.nonprofits),
            candidate_count=pool.candidate_count,
            processing_time_ms=result.debug.processing_time_ms,
        )
        return self._finish(result, options)

    def _assemble(
        self,
        pool: CandidatePool,
        ranking: RankingResult | None,
        enrichment: EnrichmentResult | None,
        started: float,
    ) -> RecommendationResult:
        debug = RecommendationDebug(
            causes_used=list(pool.causes_used),
            search_terms_used=list(pool.search_terms_used),
            candidate_count=pool.candidate_count,
            raw_candidate_count=pool.raw_candidate_count,
            cache_stats=self.cache.stats(),
            degradations=list(pool.degradations),
        )
        if pool.all_calls_failed:
            debug.degradations.append("All directory calls failed; returning no recommendations")

        if ranking is not None:
            debug.geo_tier_counts = dict(ranking.geo_tier_counts)
            debug.excluded_counts = dict(ranking.excluded_counts)
            debug.trust_coverage = ranking.trust_coverage
            debug.ranked_count = len(ranking.ranked)
            debug.degradations.extend(ranking.degradations)

        nonprofits = []
        if enrichment is not None:
            nonprofits = enrichment.enriched
            debug.enrichment_count = enrichment.enrichment_count
            debug.failed_enrichment_count = enrichment.failed_count
            if enrichment.failed_count:
                debug.degradations.append(f"{enrichment.failed_count} profile(s) could not be enriched")

        debug.processing_time_ms = round((time.perf_counter() - started) * 1000, 2)
        return RecommendationResult(nonprofits=nonprofits, debug=debug)

    def _from_cache(
        self, cached: RecommendationResult, options: RecommendOptions, started: float
    ) -> RecommendationResult:
        """Copy of a cached result; the stored payload is left untouched."""
        result = copy.deepcopy(cached)
        if result.debug is not None:
            result.debug.cache_hit = True
            result.debug.cache_stats = self.cache.stats()
            result.debug.processing_time_ms = round((time.perf_counter() - started) * 1000, 2)
        return self._finish(result, options)

    @staticmethod
    def _finish(result: RecommendationResult, options: RecommendOptions) -> RecommendationResult:
        if not options.debug:
            return RecommendationResult(nonprofits=result.nonprofits)
        return result
