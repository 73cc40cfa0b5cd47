# app/models/api/recommendation_response.py
"""
Recommendation API response models.
Used by routes for output formatting.
"""

from typing import Any

from pydantic import BaseModel, Field

from app.features.recommendations.domain.models import (
    EnrichedNonprofit,
    RecommendationDebug,
    RecommendationResult,
)


class ScoreResponse(BaseModel):
    geo: float
    cause: float
    trust: float
    quality: float
    total: float


class LocationResponse(BaseModel):
    city: str | None = None
    state: str | None = None
    country: str | None = None


class NonprofitResponse(BaseModel):
    """One recommended organization with its ranking explanation."""

    slug: str = Field(..., description="Directory identifier")
    name: str = Field(..., description="Organization name")
    description: str = Field(default="", description="Mission description")
    website_url: str | None = Field(None, description="Organization website")
    logo_url: str | None = Field(None, description="Logo URL")
    ein: str | None = Field(None, description="US tax identifier")
    profile_url: str | None = Field(None, description="Canonical directory profile")
    location: LocationResponse | None = Field(None, description="Parsed location")
    categories: list[str] = Field(default_factory=list, description="Directory categories")
    is_disbursable: bool | None = Field(None, description="Can receive donations")
    geo_tier: int = Field(..., ge=1, le=4, description="Geographic tier (1 = in crisis country)")
    cause_match_level: int = Field(..., ge=1, le=3, description="Cause match (1 = exact with needs)")
    score: ScoreResponse
    reasons: list[str] = Field(default_factory=list, description="Why this organization ranks here")
    trust_score: float | None = Field(None, description="External trust score, when available")
    vetted_status: str = Field(..., description="verified, unverified or unknown")
    enriched: bool = Field(..., description="Whether full profile detail was fetched")
    enrichment_error: str | None = Field(None, description="Why enrichment failed")

    @classmethod
    def from_domain(cls, item: EnrichedNonprofit) -> "NonprofitResponse":
        candidate = item.ranked.candidate
        detail = item.detail
        score = item.ranked.score
        return cls(
            slug=candidate.slug,
            name=detail.name if detail and detail.name else candidate.name,
            description=detail.description if detail and detail.description else candidate.description,
            website_url=(detail.website_url if detail else None) or candidate.website_url,
            logo_url=(detail.logo_url if detail else None) or candidate.logo_url,
            ein=(detail.ein if detail else None) or candidate.ein,
            profile_url=detail.profile_url if detail else None,
            location=(
                LocationResponse(
                    city=detail.location.city,
                    state=detail.location.state,
                    country=detail.location.country,
                )
                if detail
                else None
            ),
            categories=list(detail.categories) if detail else [],
            is_disbursable=detail.is_disbursable if detail else None,
            geo_tier=item.ranked.geo_tier,
            cause_match_level=item.ranked.cause_match_level,
            score=ScoreResponse(
                geo=score.geo,
                cause=score.cause,
                trust=score.trust,
                quality=score.quality,
                total=score.total,
            ),
            reasons=list(item.ranked.reasons),
            trust_score=item.ranked.trust_score,
            vetted_status=item.ranked.vetted_status.value,
            enriched=item.enriched,
            enrichment_error=item.enrichment_error,
        )


class RecommendationDebugResponse(BaseModel):
    """Pipeline telemetry returned when debug is requested."""

    causes_used: list[str] = Field(default_factory=list)
    search_terms_used: list[str] = Field(default_factory=list)
    geo_tier_counts: dict[str, int] = Field(default_factory=dict)
    excluded_counts: dict[str, int] = Field(default_factory=dict)
    trust_coverage: float = 0.0
    candidate_count: int = 0
    raw_candidate_count: int = 0
    ranked_count: int = 0
    enrichment_count: int = 0
    failed_enrichment_count: int = 0
    cache_hit: bool = False
    cache_stats: dict[str, Any] = Field(default_factory=dict)
    processing_time_ms: float = 0.0
    degradations: list[str] = Field(default_factory=list)

    @classmethod
    def from_domain(cls, debug: RecommendationDebug) -> "RecommendationDebugResponse":
        return cls(
            causes_used=debug.causes_used,
            search_terms_used=debug.search_terms_used,
            geo_tier_counts=debug.geo_tier_counts,
            excluded_counts=debug.excluded_counts,
            trust_coverage=debug.trust_coverage,
            candidate_count=debug.candidate_count,
            raw_candidate_count=debug.raw_candidate_count,
            ranked_count=debug.ranked_count,
            enrichment_count=debug.enrichment_count,
            failed_enrichment_count=debug.failed_enrichment_count,
            cache_hit=debug.cache_hit,
            cache_stats=debug.cache_stats,
            processing_time_ms=debug.processing_time_ms,
            degradations=debug.degradations,
        )


class RecommendationResponse(BaseModel):
    """Response for a recommendation request."""

    success: bool = Field(default=True)
    nonprofits: list[NonprofitResponse] = Field(default_factory=list)
    debug: RecommendationDebugResponse | None = None

    @classmethod
    def from_domain(cls, result: RecommendationResult) -> "RecommendationResponse":
        return cls(
            success=True,
            nonprofits=[NonprofitResponse.from_domain(item) for item in result.nonprofits],
            debug=RecommendationDebugResponse.from_domain(result.debug) if result.debug else None,
        )


class CacheStatsResponse(BaseModel):
    """In-process cache statistics."""

    hits: int
    misses: int
    hit_rate: float = Field(..., description="Percentage of lookups served from cache")
    size: int
    max_size: int
    evictions: int
    expirations: int


class CacheClearResponse(BaseModel):
    success: bool = True
    message: str = "Cache cleared"
