"""
Trust and vetting provider capability.

Providers are optional async callbacks supplied by the caller. Each
consultation resolves to exactly one of three outcomes so the reranker
handles every case explicitly: the provider was not supplied, it failed
for this candidate, or it returned signals.
"""

from __future__ import annotations

import asyncio
import math
from dataclasses import dataclass
from enum import Enum

from app.features.recommendations.domain.models import (
    NonprofitCandidate,
    SignalProvider,
    TrustVettingSignals,
    VettedStatus,
)
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class ProviderState(str, Enum):
    ABSENT = "absent"
    ERRORED = "errored"
    PRESENT = "present"


@dataclass(slots=True)
class ProviderOutcome:
    state: ProviderState
    signals: TrustVettingSignals | None = None
    error: str | None = None

    @property
    def trust_score(self) -> float | None:
        if self.state is ProviderState.PRESENT and self.signals:
            return self.signals.trust_score
        return None

    @property
    def vetted_status(self) -> VettedStatus:
        if self.state is ProviderState.PRESENT and self.signals:
            return self.signals.vetted_status
        return VettedStatus.UNKNOWN

    @property
    def source(self) -> str | None:
        return self.signals.source if self.signals else None


ABSENT = ProviderOutcome(state=ProviderState.ABSENT)


def _clean_trust_score(value: object) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if math.isnan(value):
        return None
    return float(min(100.0, max(0.0, value)))


def _clean_status(value: object) -> VettedStatus:
    if isinstance(value, VettedStatus):
        return value
    try:
        return VettedStatus(str(value).lower())
    except ValueError:
        return VettedStatus.UNKNOWN


async def consult(
    provider: SignalProvider | None,
    candidate: NonprofitCandidate,
    timeout: float,
    label: str = "provider",
) -> ProviderOutcome:
    """
    Ask one provider about one candidate.

    Exceptions and timeouts become an ``errored`` outcome for this
    candidate only; they never propagate.
    """
    if provider is None:
        return ABSENT

    try:
        signals = await asyncio.wait_for(provider(candidate), timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning(f"{label.capitalize()} timed out", slug=candidate.slug, timeout=timeout)
        return ProviderOutcome(state=ProviderState.ERRORED, error="timeout")
    except Exception as e:
        logger.warning(f"{label.capitalize()} failed", slug=candidate.slug, error=str(e))
        return ProviderOutcome(state=ProviderState.ERRORED, error=str(e))

    if signals is None:
        return ProviderOutcome(state=ProviderState.ERRORED, error="provider returned no signals")

    cleaned = TrustVettingSignals(
        vetted_status=_clean_status(getattr(signals, "vetted_status", None)),
        trust_score=_clean_trust_score(getattr(signals, "trust_score", None)),
        source=getattr(signals, "source", None),
    )
    return ProviderOutcome(state=ProviderState.PRESENT, signals=cleaned)
