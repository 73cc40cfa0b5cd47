"""
Heuristics that turn directory records and article context into the
structured signals the reranker works with: operating footprint, cause
tags and needs.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from app.features.recommendations.domain.models import ArticleContext, NonprofitCandidate

from . import causes as cause_kb
from . import geography

DEFAULT_HOME_COUNTRY = "US"

GLOBAL_KEYWORDS = (
    "global",
    "globally",
    "international",
    "internationally",
    "worldwide",
    "around the world",
    "multiple countries",
)

RAPID_RESPONSE_KEYWORDS = (
    "rapid response",
    "rapid deployment",
    "emergency response",
    "disaster response",
    "first responder",
    "deploy",
    "deployed",
    "emergency relief",
    "within hours",
    "on the ground",
)

PARTNER_KEYWORDS = (
    "partner organizations",
    "local partners",
    "grantmaking",
    "grants to",
    "funds local",
)


@dataclass(slots=True)
class OperatingFootprint:
    countries: list[str]
    is_global: bool
    flexibility: int


def _has_any(text: str, keywords) -> bool:
    return any(re.search(rf"\b{re.escape(keyword)}\b", text) for keyword in keywords)


def _count_any(text: str, keywords) -> int:
    return sum(1 for keyword in keywords if re.search(rf"\b{re.escape(keyword)}\b", text))


def _address_countries(address: str | None) -> list[str]:
    """
    Countries named by a directory address such as "Chicago, IL 60601".

    A US state in the last part means US. Otherwise the last part must be a
    country name or ISO3 code; two-letter tails are never read as ISO2.
    """
    if not address:
        return []
    parts = [part.strip() for part in address.split(",") if part.strip()]
    if not parts:
        return []

    tail = re.sub(r"\s*\d[\d\-]*$", "", parts[-1]).strip()
    if tail.upper() in geography.US_STATE_CODES or tail.lower() in geography.US_STATE_NAMES:
        return [DEFAULT_HOME_COUNTRY]

    code = geography.resolve_country(tail, allow_iso2=False)
    if code:
        return [code]
    return geography.countries_in_text(address)


def estimate_flexibility(text: str, is_global: bool) -> int:
    """
    0..10 estimate of how quickly an organization can deploy to a new place.
    Each rapid-response phrase adds 2, partner-network phrasing subtracts 2.
    """
    score = 5 if is_global else 3
    score += 2 * _count_any(text, RAPID_RESPONSE_KEYWORDS)
    score -= 2 * _count_any(text, PARTNER_KEYWORDS)
    return max(0, min(10, score))


def infer_footprint(candidate: NonprofitCandidate) -> OperatingFootprint:
    """Declared footprint fields win; anything missing is inferred from text."""
    text = f"{candidate.name} {candidate.description}".lower()

    if candidate.countries is not None:
        countries = [
            geography.resolve_country(country) or country.strip().upper()
            for country in candidate.countries
            if country and country.strip()
        ]
    else:
        countries = _address_countries(candidate.location_address)
        if candidate.location_address and not countries:
            countries = [DEFAULT_HOME_COUNTRY]
        for code in geography.countries_in_text(f"{candidate.name} {candidate.description}"):
            if code not in countries:
                countries.append(code)

    if candidate.is_global is not None:
        is_global = candidate.is_global
    else:
        no_location = not countries and not candidate.location_address
        is_global = no_location or _has_any(text, GLOBAL_KEYWORDS)

    if candidate.geographic_flexibility is not None:
        flexibility = max(0, min(10, candidate.geographic_flexibility))
    else:
        flexibility = estimate_flexibility(text, is_global)

    return OperatingFootprint(countries=countries, is_global=is_global, flexibility=flexibility)


def candidate_causes(candidate: NonprofitCandidate) -> list[str]:
    causes = cause_kb.normalize_causes([*candidate.causes, *candidate.tags])
    for cause in cause_kb.causes_for_ntee(candidate.ntee_code):
        if cause not in causes:
            causes.append(cause)
    if not causes:
        text = " ".join(
            part for part in (candidate.description, candidate.ntee_code_meaning) if part
        )
        causes = cause_kb.infer_causes(text)
    return causes


def candidate_needs(candidate: NonprofitCandidate) -> list[str]:
    if candidate.addressed_needs is not None:
        return [need.strip().lower() for need in candidate.addressed_needs if need]
    return cause_kb.infer_needs(f"{candidate.name} {candidate.description}")


def crisis_causes(context: ArticleContext) -> list[str]:
    """Caller-supplied causes first, then causes inferred from the article."""
    causes = cause_kb.normalize_causes(context.causes)
    text = " ".join([context.article_text(), context.entities.disaster_type or "", *context.keywords])
    for cause in cause_kb.infer_causes(text, min_matches=1):
        if cause not in causes:
            causes.append(cause)
    return causes


def crisis_needs(context: ArticleContext) -> list[str]:
    if context.identified_needs:
        return [need.strip().lower() for need in context.identified_needs if need]
    needs = cause_kb.infer_needs(" ".join([context.article_text(), *context.keywords]))
    for need in cause_kb.needs_for_disaster(context.entities.disaster_type):
        if need not in needs:
            needs.append(need)
    return needs
