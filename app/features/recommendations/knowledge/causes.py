"""
Cause knowledge base.

Canonical cause categories, their adjacency, the aliases that directory
tags and classifier output use for them, and the keyword tables used to
infer causes and needs from free text.
"""

from __future__ import annotations

import re

DISASTER_RELIEF = "disaster_relief"
HUMANITARIAN_CRISIS = "humanitarian_crisis"
HEALTH_CRISIS = "health_crisis"
CLIMATE_EVENTS = "climate_events"
SOCIAL_JUSTICE = "social_justice"

CAUSE_CATEGORIES = (
    DISASTER_RELIEF,
    HUMANITARIAN_CRISIS,
    HEALTH_CRISIS,
    CLIMATE_EVENTS,
    SOCIAL_JUSTICE,
)

# Fixed adjacency used for cause match level 3.
ADJACENT_CAUSES: dict[str, frozenset[str]] = {
    DISASTER_RELIEF: frozenset({HUMANITARIAN_CRISIS, CLIMATE_EVENTS}),
    HUMANITARIAN_CRISIS: frozenset({DISASTER_RELIEF, SOCIAL_JUSTICE}),
    HEALTH_CRISIS: frozenset({HUMANITARIAN_CRISIS}),
    CLIMATE_EVENTS: frozenset({DISASTER_RELIEF}),
    SOCIAL_JUSTICE: frozenset({HUMANITARIAN_CRISIS}),
}

# Directory tag / classifier label -> canonical category.
CAUSE_ALIASES: dict[str, str] = {
    "disaster": DISASTER_RELIEF,
    "disasters": DISASTER_RELIEF,
    "disaster_relief": DISASTER_RELIEF,
    "emergency_relief": DISASTER_RELIEF,
    "emergency_response": DISASTER_RELIEF,
    "relief": DISASTER_RELIEF,
    "humanitarian": HUMANITARIAN_CRISIS,
    "humanitarian_crisis": HUMANITARIAN_CRISIS,
    "humanitarian_aid": HUMANITARIAN_CRISIS,
    "refugees": HUMANITARIAN_CRISIS,
    "refugee": HUMANITARIAN_CRISIS,
    "poverty": HUMANITARIAN_CRISIS,
    "hunger": HUMANITARIAN_CRISIS,
    "food_security": HUMANITARIAN_CRISIS,
    "housing": HUMANITARIAN_CRISIS,
    "health": HEALTH_CRISIS,
    "health_crisis": HEALTH_CRISIS,
    "medical": HEALTH_CRISIS,
    "public_health": HEALTH_CRISIS,
    "mental_health": HEALTH_CRISIS,
    "climate": CLIMATE_EVENTS,
    "climate_events": CLIMATE_EVENTS,
    "climate_change": CLIMATE_EVENTS,
    "environment": CLIMATE_EVENTS,
    "conservation": CLIMATE_EVENTS,
    "justice": SOCIAL_JUSTICE,
    "social_justice": SOCIAL_JUSTICE,
    "civil_rights": SOCIAL_JUSTICE,
    "human_rights": SOCIAL_JUSTICE,
    "legal_aid": SOCIAL_JUSTICE,
}

# Canonical category -> Every.org browse slug.
BROWSE_SLUGS: dict[str, str] = {
    DISASTER_RELIEF: "disasters",
    HUMANITARIAN_CRISIS: "refugees",
    HEALTH_CRISIS: "health",
    CLIMATE_EVENTS: "climate",
    SOCIAL_JUSTICE: "justice",
}

# Exact NTEE code first, then the major group letter.
NTEE_TO_CAUSES: dict[str, tuple[str, ...]] = {
    "M": (DISASTER_RELIEF, HUMANITARIAN_CRISIS),
    "M20": (DISASTER_RELIEF,),
    "M23": (DISASTER_RELIEF,),
    "M24": (DISASTER_RELIEF,),
    "M99": (DISASTER_RELIEF,),
    "E": (HEALTH_CRISIS,),
    "F": (HEALTH_CRISIS,),
    "G": (HEALTH_CRISIS,),
    "H": (HEALTH_CRISIS,),
    "C": (CLIMATE_EVENTS,),
    "Q": (HUMANITARIAN_CRISIS,),
    "Q33": (HUMANITARIAN_CRISIS, DISASTER_RELIEF),
    "P": (HUMANITARIAN_CRISIS,),
    "K": (HUMANITARIAN_CRISIS,),
    "L": (HUMANITARIAN_CRISIS,),
    "I": (SOCIAL_JUSTICE,),
    "J": (HUMANITARIAN_CRISIS,),
    "R": (SOCIAL_JUSTICE,),
}

CAUSE_KEYWORDS: dict[str, tuple[str, ...]] = {
    DISASTER_RELIEF: (
        "disaster", "emergency", "relief", "rescue", "evacuation", "earthquake",
        "hurricane", "tornado", "flood", "wildfire", "tsunami", "cyclone",
        "typhoon", "storm", "natural disaster",
    ),
    CLIMATE_EVENTS: (
        "climate", "environmental", "conservation", "sustainability",
        "global warming", "carbon", "renewable", "ecosystem", "biodiversity",
        "pollution", "deforestation", "drought", "heatwave",
    ),
    HUMANITARIAN_CRISIS: (
        "humanitarian", "refugee", "displaced", "conflict", "war", "poverty",
        "hunger", "famine", "homeless", "shelter", "persecution", "asylum",
        "migration",
    ),
    HEALTH_CRISIS: (
        "health", "medical", "hospital", "clinic", "disease", "epidemic",
        "pandemic", "outbreak", "healthcare", "cholera", "vaccine", "patient",
    ),
    SOCIAL_JUSTICE: (
        "justice", "equality", "civil rights", "human rights", "advocacy",
        "discrimination", "equity", "inclusion", "marginalized",
    ),
}

NEED_KEYWORDS: dict[str, tuple[str, ...]] = {
    "food": ("food", "nutrition", "meal", "hunger", "feeding", "famine"),
    "shelter": ("shelter", "housing", "accommodation", "tents", "homeless"),
    "medical": ("medical", "healthcare", "treatment", "clinic", "hospital", "injured"),
    "water": ("clean water", "drinking water", "water supply", "wells"),
    "legal_aid": ("legal aid", "legal", "asylum", "counsel"),
    "rescue": ("rescue", "evacuation", "search and rescue", "first responder", "trapped"),
    "education": ("education", "school", "learning", "literacy"),
    "mental_health": ("mental health", "counseling", "psychological", "trauma"),
    "winterization": ("winter", "blanket", "heating", "winterization"),
    "sanitation": ("sanitation", "hygiene", "toilet", "sewage", "cholera"),
}

# Needs a disaster type implies even when the article text does not say so.
DISASTER_NEEDS: dict[str, tuple[str, ...]] = {
    "earthquake": ("rescue", "shelter", "medical"),
    "tsunami": ("rescue", "shelter", "water"),
    "flood": ("shelter", "water", "sanitation"),
    "hurricane": ("shelter", "food", "water"),
    "cyclone": ("shelter", "food", "water"),
    "typhoon": ("shelter", "food", "water"),
    "tornado": ("shelter", "rescue"),
    "wildfire": ("shelter", "rescue"),
    "drought": ("food", "water"),
    "famine": ("food", "medical"),
    "conflict": ("medical", "shelter", "food"),
    "war": ("medical", "shelter", "food"),
    "epidemic": ("medical", "sanitation"),
    "outbreak": ("medical", "sanitation"),
}


def _slugify(value: str) -> str:
    return re.sub(r"[\s\-]+", "_", value.strip().lower())


def normalize_cause(tag: str | None) -> str | None:
    """Map a raw tag onto its canonical category, or its slug when unknown."""
    if not tag or not tag.strip():
        return None
    slug = _slugify(tag)
    return CAUSE_ALIASES.get(slug, slug)


def normalize_causes(tags) -> list[str]:
    seen: list[str] = []
    for tag in tags or []:
        cause = normalize_cause(tag)
        if cause and cause not in seen:
            seen.append(cause)
    return seen


def adjacent_causes(cause: str | None) -> frozenset[str]:
    return ADJACENT_CAUSES.get(normalize_cause(cause) or "", frozenset())


def browse_slug(cause: str) -> str:
    """Directory browse slug for a cause; unknown causes browse by their own slug."""
    canonical = normalize_cause(cause) or cause
    return BROWSE_SLUGS.get(canonical, canonical)


def causes_for_ntee(code: str | None) -> list[str]:
    if not code:
        return []
    code = code.strip().upper()
    exact = NTEE_TO_CAUSES.get(code)
    if exact:
        return list(exact)
    return list(NTEE_TO_CAUSES.get(code[:1], ()))


def _contains(text: str, keyword: str) -> bool:
    return re.search(rf"\b{re.escape(keyword)}", text) is not None


def infer_causes(text: str | None, min_matches: int = 2) -> list[str]:
    """Causes whose keyword table matches the text at least ``min_matches`` times."""
    if not text:
        return []
    lowered = text.lower()
    scored: list[tuple[int, int, str]] = []
    for position, (cause, keywords) in enumerate(CAUSE_KEYWORDS.items()):
        hits = sum(1 for keyword in keywords if _contains(lowered, keyword))
        if hits >= min_matches:
            scored.append((-hits, position, cause))
    return [cause for _, _, cause in sorted(scored)]


def infer_needs(text: str | None) -> list[str]:
    """Needs mentioned in the text. No defaults are assumed when nothing matches."""
    if not text:
        return []
    lowered = text.lower()
    return [
        need
        for need, keywords in NEED_KEYWORDS.items()
        if any(_contains(lowered, keyword) for keyword in keywords)
    ]


def needs_for_disaster(disaster_type: str | None) -> list[str]:
    if not disaster_type:
        return []
    lowered = disaster_type.lower()
    for key, needs in DISASTER_NEEDS.items():
        if key in lowered:
            return list(needs)
    return []
