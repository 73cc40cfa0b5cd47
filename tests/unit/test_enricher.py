import pytest

from app.features.recommendations.domain.models import NonprofitRanked, Score
from app.features.recommendations.pipeline.cache import TTLCache, nonprofit_key
from app.features.recommendations.pipeline.enricher import Enricher
from app.services.everyorg.client import DirectoryError


@pytest.fixture
def make_ranked(make_candidate):
    def _make(slug: str) -> NonprofitRanked:
        return NonprofitRanked(
            candidate=make_candidate(slug),
            geo_tier=3,
            cause_match_level=1,
            score=Score(geo=40, cause=100, trust=0, quality=70, total=58.0),
            reasons=["Global rapid-response organization"],
        )

    return _make


@pytest.mark.asyncio
async def test_only_top_n_are_enriched_in_rank_order(fake_directory, make_ranked):
    ranked = [make_ranked(f"org-{i}") for i in range(8)]
    enricher = Enricher(fake_directory, concurrency=5, default_top_n=20)

    result = await enricher.enrich(ranked, top_n=3)

    assert [item.slug for item in result.enriched] == ["org-0", "org-1", "org-2"]
    assert result.enrichment_count == 3
    assert result.failed_count == 0
    assert fake_directory.call_count("details") == 3
    assert result.enriched[0].detail.profile_url == "https://www.every.org/org-0"


@pytest.mark.asyncio
async def test_default_top_n_applies_when_not_given(fake_directory, make_ranked):
    ranked = [make_ranked(f"org-{i}") for i in range(6)]
    enricher = Enricher(fake_directory, default_top_n=4)

    result = await enricher.enrich(ranked)

    assert len(result.enriched) == 4


@pytest.mark.asyncio
async def test_concurrency_is_bounded(fake_directory, make_ranked):
    fake_directory.detail_delay = 0.01
    ranked = [make_ranked(f"org-{i}") for i in range(12)]
    enricher = Enricher(fake_directory, concurrency=5)

    result = await enricher.enrich(ranked, top_n=12)

    assert result.enrichment_count == 12
    assert 1 < fake_directory.max_in_flight <= 5


@pytest.mark.asyncio
async def test_missing_profile_is_marked_not_enriched(fake_directory, make_ranked):
    fake_directory.details["gone"] = None
    enricher = Enricher(fake_directory)

    result = await enricher.enrich([make_ranked("gone"), make_ranked("here")], top_n=2)

    gone, here = result.enriched
    assert gone.enriched is False
    assert gone.enrichment_error == "Nonprofit not found"
    assert gone.detail is None
    assert here.enriched is True
    assert result.failed_count == 1


@pytest.mark.asyncio
async def test_directory_error_is_isolated_to_one_item(fake_directory, make_ranked):
    fake_directory.failures["details:flaky"] = DirectoryError("Every.org request timed out")
    enricher = Enricher(fake_directory)

    result = await enricher.enrich([make_ranked("ok-1"), make_ranked("flaky"), make_ranked("ok-2")], top_n=3)

    assert [item.enriched for item in result.enriched] == [True, False, True]
    assert result.enriched[1].enrichment_error == "Every.org request timed out"
    assert result.enrichment_count == 2
    assert result.failed_count == 1


@pytest.mark.asyncio
async def test_profiles_are_cached(fake_directory, make_ranked):
    cache = TTLCache()
    enricher = Enricher(fake_directory, cache=cache)

    await enricher.enrich([make_ranked("org")], top_n=1)
    result = await enricher.enrich([make_ranked("org")], top_n=1)

    assert fake_directory.call_count("details") == 1
    assert result.enriched[0].enriched is True
    assert nonprofit_key("org") in cache


@pytest.mark.asyncio
async def test_not_found_is_not_cached(fake_directory, make_ranked):
    fake_directory.details["gone"] = None
    cache = TTLCache()
    enricher = Enricher(fake_directory, cache=cache)

    await enricher.enrich([make_ranked("gone")], top_n=1)

    assert nonprofit_key("gone") not in cache


@pytest.mark.asyncio
async def test_empty_ranking(fake_directory):
    result = await Enricher(fake_directory).enrich([], top_n=5)

    assert result.enriched == []
    assert result.enrichment_count == 0
