"""
Domain models for the recommendation pipeline.

These dataclasses carry data between pipeline stages (candidate generation,
reranking, enrichment, orchestration). They hold no I/O so the stages can be
exercised in isolation and the API layer can convert them into response
models.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class VettedStatus(str, Enum):
    VERIFIED = "verified"
    UNVERIFIED = "unverified"
    UNKNOWN = "unknown"


@dataclass(slots=True)
class GeoEntities:
    country: str | None = None
    region: str | None = None
    city: str | None = None

    def is_empty(self) -> bool:
        return not (self.country or self.region or self.city)

    def as_dict(self) -> dict[str, str | None]:
        return {"country": self.country, "region": self.region, "city": self.city}


@dataclass(slots=True)
class ArticleEntities:
    geography: GeoEntities = field(default_factory=GeoEntities)
    disaster_type: str | None = None
    affected_group: str | None = None


@dataclass(slots=True)
class ArticleContext:
    """Classified article handed to the pipeline. Treated as read-only."""

    title: str
    description: str | None = None
    content: str | None = None
    url: str | None = None
    entities: ArticleEntities = field(default_factory=ArticleEntities)
    causes: list[str] = field(default_factory=list)
    keywords: list[str] = field(default_factory=list)
    identified_needs: list[str] = field(default_factory=list)

    def article_text(self) -> str:
        parts = [self.title, self.description or "", self.content or ""]
        return " ".join(part for part in parts if part)


@dataclass(slots=True)
class NonprofitCandidate:
    """Organization returned by a directory search or browse call."""

    slug: str
    name: str
    description: str = ""
    location_address: str | None = None
    website_url: str | None = None
    ein: str | None = None
    causes: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    logo_url: str | None = None
    ntee_code: str | None = None
    ntee_code_meaning: str | None = None
    primary_category: str | None = None
    # Declared operating footprint. None means "infer from the candidate's text".
    countries: list[str] | None = None
    is_global: bool | None = None
    geographic_flexibility: int | None = None
    addressed_needs: list[str] | None = None


@dataclass(slots=True)
class TrustVettingSignals:
    vetted_status: VettedStatus = VettedStatus.UNKNOWN
    trust_score: float | None = None
    source: str | None = None


# Caller-supplied async callback returning trust/vetting signals for one candidate.
SignalProvider = Callable[[NonprofitCandidate], Awaitable[TrustVettingSignals]]


@dataclass(slots=True)
class Score:
    geo: float
    cause: float
    trust: float
    quality: float
    total: float


@dataclass(slots=True)
class NonprofitRanked:
    candidate: NonprofitCandidate
    geo_tier: int
    cause_match_level: int
    score: Score
    reasons: list[str] = field(default_factory=list)
    trust_score: float | None = None
    vetted_status: VettedStatus = VettedStatus.UNKNOWN
    signal_source: str | None = None

    @property
    def slug(self) -> str:
        return self.candidate.slug


@dataclass(slots=True)
class NonprofitLocation:
    city: str | None = None
    state: str | None = None
    country: str | None = None


@dataclass(slots=True)
class NonprofitDetail:
    """Full profile returned by the directory's detail endpoint."""

    slug: str
    name: str
    profile_url: str
    description: str = ""
    location: NonprofitLocation = field(default_factory=NonprofitLocation)
    categories: list[str] = field(default_factory=list)
    is_disbursable: bool | None = None
    website_url: str | None = None
    logo_url: str | None = None
    ein: str | None = None


@dataclass(slots=True)
class EnrichedNonprofit:
    ranked: NonprofitRanked
    enriched: bool
    detail: NonprofitDetail | None = None
    enrichment_error: str | None = None

    @property
    def slug(self) -> str:
        return self.ranked.candidate.slug


@dataclass(slots=True)
class CandidatePool:
    candidates: list[NonprofitCandidate]
    causes_used: list[str]
    search_terms_used: list[str]
    candidate_count: int
    raw_candidate_count: int
    failed_calls: int = 0
    all_calls_failed: bool = False
    degradations: list[str] = field(default_factory=list)


@dataclass(slots=True)
class RankingResult:
    ranked: list[NonprofitRanked]
    geo_tier_counts: dict[str, int]
    excluded_counts: dict[str, int]
    trust_coverage: float
    total_evaluated: int
    degradations: list[str] = field(default_factory=list)


@dataclass(slots=True)
class EnrichmentResult:
    enriched: list[EnrichedNonprofit]
    enrichment_count: int
    failed_count: int


@dataclass(slots=True)
class RecommendOptions:
    debug: bool = False
    top_n: int = 10
    use_cache: bool = True
    trust_provider: SignalProvider | None = None
    vetting_provider: SignalProvider | None = None
    # Identifies the providers in the cache key; results from different providers
    # with the same key share cached rankings.
    provider_key: str | None = None


@dataclass(slots=True)
class RecommendationDebug:
    causes_used: list[str] = field(default_factory=list)
    search_terms_used: list[str] = field(default_factory=list)
    geo_tier_counts: dict[str, int] = field(default_factory=dict)
    excluded_counts: dict[str, int] = field(default_factory=dict)
    trust_coverage: float = 0.0
    candidate_count: int = 0
    raw_candidate_count: int = 0
    ranked_count: int = 0
    enrichment_count: int = 0
    failed_enrichment_count: int = 0
    cache_hit: bool = False
    cache_stats: dict[str, Any] = field(default_factory=dict)
    processing_time_ms: float = 0.0
    degradations: list[str] = field(default_factory=list)


@dataclass(slots=True)
class RecommendationResult:
    nonprofits: list[EnrichedNonprofit]
    debug: RecommendationDebug | None = None
