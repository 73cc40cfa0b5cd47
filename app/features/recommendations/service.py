"""
Recommendation service wiring.

Builds the pipeline once at startup from settings. The resulting
``RecommendationService`` owns the shared cache and the directory client
and is torn down on shutdown.
"""

from __future__ import annotations

from dataclasses import dataclass

from app.config import Settings, settings as default_settings
from app.infrastructure.observability.logging import get_logger
from app.services.everyorg.client import DirectoryClient, EveryOrgClient

from .pipeline.cache import TTLCache
from .pipeline.candidates import CandidateGenerator
from .pipeline.enricher import Enricher
from .pipeline.orchestrator import RecommendationOrchestrator
from .pipeline.reranker import Reranker

logger = get_logger(__name__)


@dataclass(slots=True)
class RecommendationService:
    orchestrator: RecommendationOrchestrator
    cache: TTLCache
    client: DirectoryClient

    async def close(self) -> None:
        close = getattr(self.client, "close", None)
        if close is not None:
            await close()
        logger.info("Recommendation service closed", cache_size=len(self.cache))


def build_recommendation_service(
    config: Settings | None = None,
    client: DirectoryClient | None = None,
) -> RecommendationService:
    config = config or default_settings
    cache = TTLCache(
        max_size=config.CACHE_MAX_SIZE,
        default_ttl=config.CACHE_RECOMMENDATION_TTL,
        ttl_classes=config.get_cache_ttls(),
    )
    directory = client or EveryOrgClient(
        api_key=config.EVERY_ORG_API_KEY,
        base_url=config.EVERY_ORG_BASE_URL,
        timeout=config.EVERY_ORG_REQUEST_TIMEOUT,
        max_retries=config.EVERY_ORG_MAX_RETRIES,
        backoff_factor=config.EVERY_ORG_RETRY_BACKOFF,
    )

    orchestrator = RecommendationOrchestrator(
        generator=CandidateGenerator(
            directory,
            cache=cache,
            max_candidates=config.MAX_CANDIDATES,
            results_per_query=config.SEARCH_TAKE,
        ),
        reranker=Reranker(provider_timeout=config.PROVIDER_TIMEOUT),
        enricher=Enricher(
            directory,
            cache=cache,
            concurrency=config.ENRICHMENT_CONCURRENCY,
            default_top_n=config.ENRICHMENT_TOP_N,
        ),
        cache=cache,
    )

    logger.info(
        "Recommendation service initialized",
        cache_max_size=config.CACHE_MAX_SIZE,
        enrichment_concurrency=config.ENRICHMENT_CONCURRENCY,
        directory_configured=config.directory_configured(),
    )
    return RecommendationService(orchestrator=orchestrator, cache=cache, client=directory)
