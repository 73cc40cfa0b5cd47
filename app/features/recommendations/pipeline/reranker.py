"""
Reranker - orders the candidate pool by policy.

Geography decides first (tier 1-4), cause alignment second (level 1-3),
trust breaks ties inside an equal (tier, level) pair and vetting is a hard
gate. Tier 5 and level 4 mean "excluded" and never reach the output.
Every surviving item carries deterministic reasons for explainability.
"""

from __future__ import annotations

import asyncio
import re
import time
from dataclasses import dataclass, field

from app.config import settings
from app.features.recommendations.domain.models import (
    ArticleContext,
    NonprofitCandidate,
    NonprofitRanked,
    RankingResult,
    Score,
    SignalProvider,
    VettedStatus,
)
from app.features.recommendations.knowledge import causes as cause_kb
from app.features.recommendations.knowledge import geography
from app.features.recommendations.knowledge.inference import (
    OperatingFootprint,
    candidate_causes,
    candidate_needs,
    crisis_causes,
    crisis_needs,
    infer_footprint,
)
from app.infrastructure.observability.logging import get_logger, log_stage

from .providers import ProviderOutcome, ProviderState, consult

logger = get_logger(__name__)

EXCLUDED_TIER = 5
EXCLUDED_LEVEL = 4
RAPID_DEPLOYMENT_THRESHOLD = 7
MAX_PER_CATEGORY = 2

GEO_TIER_SCORES = {1: 100, 2: 70, 3: 40, 4: 20}
CAUSE_LEVEL_SCORES = {1: 100, 2: 70, 3: 40}
SCORE_WEIGHTS = {"geo": 0.40, "cause": 0.35, "trust": 0.15, "quality": 0.10}

LEGAL_SUFFIXES = frozenset({"INC", "LLC", "CORP", "CORPORATION", "FOUNDATION", "TRUST", "LTD", "CO"})

# Words that describe a mission; a registry name containing one is not "legal name only".
MISSION_WORDS = frozenset(
    {
        "relief", "aid", "rescue", "food", "health", "healthcare", "medical", "refugee",
        "humanitarian", "disaster", "emergency", "hunger", "shelter", "water", "children",
        "care", "hope", "help", "mission", "charity", "charities", "community", "international",
        "global", "housing", "education", "justice", "rights", "climate", "environmental",
        "hospital", "clinic", "recovery", "response", "bank", "pantry", "ministries",
    }
)


@dataclass(slots=True)
class CrisisProfile:
    """Crisis-side facts resolved once per ranking run."""

    country: str | None
    country_label: str | None
    region_id: str | None
    place_tokens: set[str] = field(default_factory=set)
    primary_cause: str | None = None
    needs: list[str] = field(default_factory=list)

    @property
    def has_location(self) -> bool:
        return bool(self.country or self.region_id or self.place_tokens)


@dataclass(slots=True)
class _Assessment:
    index: int
    candidate: NonprofitCandidate
    geo_tier: int
    cause_level: int
    reasons: list[str]


def _readable(tag: str) -> str:
    return tag.replace("_", " ")


def build_crisis_profile(context: ArticleContext) -> CrisisProfile:
    geo = context.entities.geography
    country = geography.resolve_country(geo.country)
    region_id = geography.resolve_region(geo.region)

    place_tokens = {
        token.strip().lower() for token in (geo.city, geo.region) if token and token.strip()
    }
    # An unrecognised country name can still match an address or declared country.
    if not country and geo.country and geo.country.strip():
        place_tokens.add(geo.country.strip().lower())
    # A sub-national place name sometimes resolves to a territory code (e.g. Gaza).
    if not country:
        for token in (geo.city, geo.region):
            country = geography.resolve_country(token)
            if country:
                break

    causes = crisis_causes(context)
    return CrisisProfile(
        country=country,
        country_label=(geo.country or country),
        region_id=region_id,
        place_tokens=place_tokens,
        primary_cause=causes[0] if causes else None,
        needs=crisis_needs(context),
    )


def quality_score(candidate: NonprofitCandidate) -> float:
    """Data completeness, 0-100. A supporting signal, never a gate."""
    score = 0
    if candidate.description and len(candidate.description) > 50:
        score += 30
    if candidate.website_url:
        score += 30
    if candidate.logo_url:
        score += 10
    if candidate.ein:
        score += 10
    if candidate.location_address:
        score += 10
    if candidate.ntee_code:
        score += 10
    return float(min(100, score))


def _is_mission_word(word: str) -> bool:
    lowered = word.lower()
    return lowered in MISSION_WORDS or lowered.rstrip("s") in MISSION_WORDS


def is_legal_name_only(name: str) -> bool:
    """
    All-caps registry name made of a personal name plus generic legal
    suffixes, e.g. 'JOHN DOE FOUNDATION INC'. 'DIRECT RELIEF FOUNDATION'
    names a mission and does not count.
    """
    stripped = name.strip()
    if not stripped or stripped != stripped.upper() or not re.search(r"[A-Z]", stripped):
        return False

    words = re.findall(r"[A-Z0-9&']+", stripped)
    if not words or words[-1] not in LEGAL_SUFFIXES:
        return False
    while words and words[-1] in LEGAL_SUFFIXES:
        words.pop()
    return not any(_is_mission_word(word) for word in words)


def passes_vetting_gate(candidate: NonprofitCandidate, vetting: ProviderOutcome) -> bool:
    if vetting.state is ProviderState.PRESENT:
        return vetting.vetted_status is VettedStatus.VERIFIED

    # Provider absent or failed for this candidate: conservative heuristics.
    if not candidate.description.strip() or not (candidate.website_url or "").strip():
        return False
    return not is_legal_name_only(candidate.name)


def geo_tier(
    candidate: NonprofitCandidate, footprint: OperatingFootprint, profile: CrisisProfile
) -> tuple[int, str | None]:
    if profile.has_location:
        if profile.country and profile.country in footprint.countries:
            return 1, f"Operates directly in {profile.country_label}"

        declared = {token.strip().lower() for token in candidate.countries or [] if token}
        matched_place = profile.place_tokens & declared
        if not matched_place and candidate.location_address:
            address = candidate.location_address.lower()
            matched_place = {
                token for token in profile.place_tokens if re.search(rf"\b{re.escape(token)}\b", address)
            }
        if matched_place:
            return 1, f"Operates directly in {sorted(matched_place)[0].title()}"

        for code in footprint.countries:
            if profile.country and geography.are_neighbors(profile.country, code):
                return 2, f"Operates in neighboring country ({code})"
        for code in footprint.countries:
            if profile.country and geography.same_region(profile.country, code):
                shared = sorted(geography.regions_of(profile.country) & geography.regions_of(code))
                return 2, f"Operates in the same region ({_readable(shared[0])})"
            if profile.region_id and geography.in_region(code, profile.region_id):
                return 2, f"Operates in the same region ({_readable(profile.region_id)})"

    if footprint.is_global:
        if footprint.flexibility >= RAPID_DEPLOYMENT_THRESHOLD:
            return 3, "Global rapid-response organization"
        return 4, "Global organization working through partner networks"

    return EXCLUDED_TIER, None


def cause_match_level(
    org_causes: list[str], org_needs: list[str], profile: CrisisProfile
) -> tuple[int, list[str]]:
    primary = profile.primary_cause
    if primary is None:
        # No crisis cause known: any recognized relief cause is a loose match.
        related = [cause for cause in org_causes if cause in cause_kb.CAUSE_CATEGORIES]
        if related:
            return 3, [f"Related expertise in {_readable(related[0])}"]
        return EXCLUDED_LEVEL, []

    if primary in org_causes:
        overlap = [need for need in profile.needs if need in org_needs]
        if overlap:
            return 1, [
                f"Specializes in {_readable(primary)}",
                f"Addresses {', '.join(_readable(need) for need in overlap)} needs",
            ]
        return 2, [f"Specializes in {_readable(primary)}"]

    adjacent = cause_kb.adjacent_causes(primary)
    for cause in org_causes:
        if cause in adjacent:
            return 3, [f"Related expertise in {_readable(cause)}"]

    return EXCLUDED_LEVEL, []


def total_score(geo: float, cause: float, trust: float, quality: float) -> float:
    return round(
        geo * SCORE_WEIGHTS["geo"]
        + cause * SCORE_WEIGHTS["cause"]
        + trust * SCORE_WEIGHTS["trust"]
        + quality * SCORE_WEIGHTS["quality"],
        2,
    )


def _sort_key(item: tuple[int, NonprofitRanked]) -> tuple:
    index, ranked = item
    trust_known = ranked.trust_score is not None
    return (
        ranked.geo_tier,
        ranked.cause_match_level,
        0 if trust_known else 1,
        -(ranked.trust_score or 0.0),
        -ranked.score.total,
        index,
    )


class Reranker:
    def __init__(self, provider_timeout: float | None = None, max_per_category: int = MAX_PER_CATEGORY):
        self.provider_timeout = provider_timeout or settings.PROVIDER_TIMEOUT
        self.max_per_category = max_per_category

    async def rerank(
        self,
        candidates: list[NonprofitCandidate],
        context: ArticleContext,
        trust_provider: SignalProvider | None = None,
        vetting_provider: SignalProvider | None = None,
        limit: int | None = None,
    ) -> RankingResult:
        started = time.perf_counter()
        profile = build_crisis_profile(context)

        geo_tier_counts = {f"tier{tier}": 0 for tier in range(1, EXCLUDED_TIER + 1)}
        excluded_counts = {"vetting": 0, "cause": 0, "diversity": 0}

        assessed: list[_Assessment] = []
        for index, candidate in enumerate(candidates):
            footprint = infer_footprint(candidate)
            tier, geo_reason = geo_tier(candidate, footprint, profile)
            geo_tier_counts[f"tier{tier}"] += 1
            if tier == EXCLUDED_TIER:
                continue

            level, cause_reasons = cause_match_level(
                candidate_causes(candidate), candidate_needs(candidate), profile
            )
            if level == EXCLUDED_LEVEL:
                excluded_counts["cause"] += 1
                continue

            assessed.append(
                _Assessment(
                    index=index,
                    candidate=candidate,
                    geo_tier=tier,
                    cause_level=level,
                    reasons=[geo_reason, *cause_reasons] if geo_reason else cause_reasons,
                )
            )

        trust_outcomes, vetting_outcomes = await self._consult_providers(
            [item.candidate for item in assessed], trust_provider, vetting_provider
        )

        survivors: list[tuple[int, NonprofitRanked]] = []
        provider_errors = 0
        for item, trust, vetting in zip(assessed, trust_outcomes, vetting_outcomes):
            provider_errors += (trust.state is ProviderState.ERRORED) + (
                vetting.state is ProviderState.ERRORED
            )
            if not passes_vetting_gate(item.candidate, vetting):
                excluded_counts["vetting"] += 1
                continue
            survivors.append((item.index, self._build_ranked(item, trust, vetting)))

        survivors.sort(key=_sort_key)
        ranked = self._apply_diversity([ranked for _, ranked in survivors], excluded_counts)
        if limit is not None:
            ranked = ranked[: max(0, limit)]

        with_trust = sum(1 for item in ranked if item.trust_score is not None)
        trust_coverage = round(with_trust / len(ranked) * 100, 2) if ranked else 0.0

        degradations = []
        if provider_errors:
            degradations.append(f"{provider_errors} provider call(s) failed; treated as unknown")

        log_stage(
            "reranking",
            (time.perf_counter() - started) * 1000,
            evaluated=len(candidates),
            ranked_count=len(ranked),
            geo_tier_counts=geo_tier_counts,
            excluded_counts=excluded_counts,
            trust_coverage=trust_coverage,
        )

        return RankingResult(
            ranked=ranked,
            geo_tier_counts=geo_tier_counts,
            excluded_counts=excluded_counts,
            trust_coverage=trust_coverage,
            total_evaluated=len(candidates),
            degradations=degradations,
        )

    async def _consult_providers(
        self,
        candidates: list[NonprofitCandidate],
        trust_provider: SignalProvider | None,
        vetting_provider: SignalProvider | None,
    ) -> tuple[list[ProviderOutcome], list[ProviderOutcome]]:
        trust = asyncio.gather(
            *(consult(trust_provider, c, self.provider_timeout, "trust provider") for c in candidates)
        )
        vetting = asyncio.gather(
            *(consult(vetting_provider, c, self.provider_timeout, "vetting provider") for c in candidates)
        )
        trust_outcomes, vetting_outcomes = await asyncio.gather(trust, vetting)
        return list(trust_outcomes), list(vetting_outcomes)

    def _build_ranked(
        self, item: _Assessment, trust: ProviderOutcome, vetting: ProviderOutcome
    ) -> NonprofitRanked:
        trust_score = trust.trust_score
        geo = float(GEO_TIER_SCORES[item.geo_tier])
        cause = float(CAUSE_LEVEL_SCORES[item.cause_level])
        quality = quality_score(item.candidate)
        trust_value = trust_score if trust_score is not None else 0.0

        reasons = list(item.reasons)
        if trust_score is not None:
            source = f" ({trust.source})" if trust.source else ""
            reasons.append(f"Trust score {trust_score:g}/100{source}")
        if vetting.vetted_status is VettedStatus.VERIFIED:
            reasons.append(f"Verified by {vetting.source}" if vetting.source else "Verified organization")

        return NonprofitRanked(
            candidate=item.candidate,
            geo_tier=item.geo_tier,
            cause_match_level=item.cause_level,
            score=Score(
                geo=geo,
                cause=cause,
                trust=trust_value,
                quality=quality,
                total=total_score(geo, cause, trust_value, quality),
            ),
            reasons=reasons,
            trust_score=trust_score,
            vetted_status=vetting.vetted_status,
            signal_source=trust.source or vetting.source,
        )

    def _apply_diversity(
        self, ranked: list[NonprofitRanked], excluded_counts: dict[str, int]
    ) -> list[NonprofitRanked]:
        """At most ``max_per_category`` per primary category; uncategorized items are exempt."""
        per_category: dict[str, int] = {}
        kept: list[NonprofitRanked] = []
        for item in ranked:
            category = (item.candidate.primary_category or "").strip().lower()
            if category:
                seen = per_category.get(category, 0)
                if seen >= self.max_per_category:
                    excluded_counts["diversity"] += 1
                    continue
                per_category[category] = seen + 1
            kept.append(item)
        return kept
