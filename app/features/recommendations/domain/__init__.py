"""
Domain subpackage for the recommendation feature.
"""

from .models import (
    ArticleContext,
    ArticleEntities,
    CandidatePool,
    EnrichedNonprofit,
    EnrichmentResult,
    GeoEntities,
    NonprofitCandidate,
    NonprofitDetail,
    NonprofitLocation,
    NonprofitRanked,
    RankingResult,
    RecommendationDebug,
    RecommendationResult,
    RecommendOptions,
    Score,
    SignalProvider,
    TrustVettingSignals,
    VettedStatus,
)

__all__ = [
    "ArticleContext",
    "ArticleEntities",
    "CandidatePool",
    "EnrichedNonprofit",
    "EnrichmentResult",
    "GeoEntities",
    "NonprofitCandidate",
    "NonprofitDetail",
    "NonprofitLocation",
    "NonprofitRanked",
    "RankingResult",
    "RecommendationDebug",
    "RecommendationResult",
    "RecommendOptions",
    "Score",
    "SignalProvider",
    "TrustVettingSignals",
    "VettedStatus",
]
