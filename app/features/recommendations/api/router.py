"""
Recommendation routes.

HTTP surface of the recommendation pipeline. The service is built once in
the application lifespan and read from ``app.state`` through a dependency,
so tests can override it.
"""

from fastapi import APIRouter, Depends, HTTPException, Request, status

from app.features.recommendations.service import RecommendationService
from app.infrastructure.observability.logging import get_logger
from app.models.api.recommendation_request import RecommendationRequest
from app.models.api.recommendation_response import (
    CacheClearResponse,
    CacheStatsResponse,
    RecommendationResponse,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/api/v1/recommendations", tags=["recommendations"])


def get_recommendation_service(request: Request) -> RecommendationService:
    service = getattr(request.app.state, "recommendations", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Recommendation service not initialized",
        )
    return service


@router.post("", response_model=RecommendationResponse)
async def create_recommendations(
    body: RecommendationRequest,
    service: RecommendationService = Depends(get_recommendation_service),
):
    """Recommend nonprofits for a classified article."""
    context = body.classification.to_context()

    try:
        result = await service.orchestrator.recommend(context, body.options.to_options())
        return RecommendationResponse.from_domain(result)

    except HTTPException:
        raise
    except Exception as e:
        logger.error(
            "Error generating recommendations",
            title=context.title,
            error=str(e),
            exc_info=True,
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to generate recommendations",
        )


@router.get("/cache/stats", response_model=CacheStatsResponse)
async def get_cache_stats(service: RecommendationService = Depends(get_recommendation_service)):
    """Current cache statistics."""
    return CacheStatsResponse(**service.cache.stats())


@router.delete("/cache", response_model=CacheClearResponse)
async def clear_cache(service: RecommendationService = Depends(get_recommendation_service)):
    """Drop every cached result and reset the counters."""
    service.cache.clear()
    return CacheClearResponse()
