import asyncio

import pytest

from app.features.recommendations.domain.models import (
    NonprofitCandidate,
    NonprofitDetail,
    TrustVettingSignals,
    VettedStatus,
)
from app.services.everyorg.client import DirectoryError


class FakeDirectoryClient:
    """In-memory stand-in for the Every.org client."""

    def __init__(self):
        self.browse_results: dict[str, list[NonprofitCandidate]] = {}
        self.search_results: dict[str, list[NonprofitCandidate]] = {}
        self.details: dict[str, NonprofitDetail | None] = {}
        self.failures: dict[str, DirectoryError] = {}
        self.calls: list[tuple[str, str]] = []
        self.detail_delay = 0.0
        self.in_flight = 0
        self.max_in_flight = 0

    async def browse(self, cause: str, take: int = 50, page: int = 1) -> list[NonprofitCandidate]:
        self.calls.append(("browse", cause))
        if f"browse:{cause}" in self.failures:
            raise self.failures[f"browse:{cause}"]
        return list(self.browse_results.get(cause, []))

    async def search(
        self, term: str, causes: list[str] | None = None, take: int = 50
    ) -> list[NonprofitCandidate]:
        self.calls.append(("search", term))
        if f"search:{term}" in self.failures:
            raise self.failures[f"search:{term}"]
        return list(self.search_results.get(term, []))

    async def get_details(self, slug: str) -> NonprofitDetail | None:
        self.calls.append(("details", slug))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.detail_delay)
            if f"details:{slug}" in self.failures:
                raise self.failures[f"details:{slug}"]
            if slug in self.details:
                return self.details[slug]
            return NonprofitDetail(
                slug=slug,
                name=slug.replace("-", " ").title(),
                profile_url=f"https://www.every.org/{slug}",
                categories=["disasters"],
                is_disbursable=True,
            )
        finally:
            self.in_flight -= 1

    def call_count(self, kind: str | None = None) -> int:
        return len([call for call in self.calls if kind is None or call[0] == kind])


class ManualClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def fake_directory():
    return FakeDirectoryClient()


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def make_candidate():
    """Factory for well-formed candidates that pass the fallback vetting checks."""

    def _make(slug: str, **overrides) -> NonprofitCandidate:
        values = {
            "slug": slug,
            "name": slug.replace("-", " ").title(),
            "description": "Provides emergency shelter, food and medical care to disaster survivors.",
            "website_url": f"https://{slug}.org",
            "location_address": None,
            "ein": "12-3456789",
            "causes": ["disaster_relief"],
            "countries": [],
            "is_global": True,
            "geographic_flexibility": 8,
        }
        values.update(overrides)
        return NonprofitCandidate(**values)

    return _make


@pytest.fixture
def trust_provider_for():
    """Build an async trust provider from a slug -> score mapping."""

    def _build(scores: dict[str, float], source: str = "test-ratings"):
        async def _provider(candidate: NonprofitCandidate) -> TrustVettingSignals:
            return TrustVettingSignals(
                vetted_status=VettedStatus.UNKNOWN,
                trust_score=scores.get(candidate.slug),
                source=source,
            )

        return _provider

    return _build
