import pytest

from app.config import Settings
from app.features.recommendations.domain.models import (
    ArticleContext,
    ArticleEntities,
    GeoEntities,
    RecommendOptions,
)
from app.features.recommendations.service import build_recommendation_service
from app.services.everyorg.client import DirectoryError


def _context(**overrides) -> ArticleContext:
    values = {
        "title": "Earthquake strikes southern Turkey",
        "description": "Rescue teams search collapsed buildings in Gaziantep.",
        "entities": ArticleEntities(
            geography=GeoEntities(country="Turkey", city="Gaziantep"),
            disaster_type="earthquake",
        ),
        "causes": ["disaster_relief"],
    }
    values.update(overrides)
    return ArticleContext(**values)


@pytest.fixture
def service(fake_directory):
    return build_recommendation_service(Settings(EVERY_ORG_API_KEY="test-key"), client=fake_directory)


@pytest.fixture
def stocked_directory(fake_directory, make_candidate):
    fake_directory.browse_results["disasters"] = [
        make_candidate("global-rapid"),
        make_candidate("turkish-relief", countries=["TR"], is_global=False),
        make_candidate("brazil-food-bank", countries=["BR"], is_global=False),
    ]
    fake_directory.search_results["earthquake"] = [
        make_candidate("greek-relief", countries=["GR"], is_global=False),
        make_candidate("global-rapid"),
    ]
    return fake_directory


@pytest.mark.asyncio
async def test_full_pipeline_ranks_and_enriches(service, stocked_directory):
    result = await service.orchestrator.recommend(_context(), RecommendOptions(debug=True))

    assert [item.slug for item in result.nonprofits] == ["turkish-relief", "greek-relief", "global-rapid"]
    assert all(item.enriched for item in result.nonprofits)

    debug = result.debug
    assert debug.causes_used == ["disasters"]
    assert debug.search_terms_used[:3] == ["earthquake", "Turkey", "Gaziantep"]
    assert debug.candidate_count == 4
    assert debug.raw_candidate_count == 5
    assert debug.geo_tier_counts["tier5"] == 1
    assert debug.ranked_count == 3
    assert debug.enrichment_count == 3
    assert debug.cache_hit is False
    assert debug.processing_time_ms >= 0


@pytest.mark.asyncio
async def test_repeat_request_is_served_from_cache(service, stocked_directory):
    first = await service.orchestrator.recommend(_context(), RecommendOptions(debug=True))
    calls_after_first = stocked_directory.call_count()

    second = await service.orchestrator.recommend(_context(), RecommendOptions(debug=True))

    assert stocked_directory.call_count() == calls_after_first
    assert [item.slug for item in second.nonprofits] == [item.slug for item in first.nonprofits]
    assert second.debug.cache_hit is True
    assert second.debug.cache_stats["hits"] >= 1


@pytest.mark.asyncio
async def test_cache_hit_does_not_mutate_stored_result(service, stocked_directory):
    await service.orchestrator.recommend(_context(), RecommendOptions(debug=True))

    hit = await service.orchestrator.recommend(_context(), RecommendOptions(debug=True))
    hit.nonprofits.clear()
    again = await service.orchestrator.recommend(_context(), RecommendOptions(debug=True))

    assert len(again.nonprofits) == 3


@pytest.mark.asyncio
async def test_use_cache_false_always_runs_pipeline(service, stocked_directory):
    options = RecommendOptions(use_cache=False)

    await service.orchestrator.recommend(_context(), options)
    browse_calls = stocked_directory.call_count("browse")
    await service.orchestrator.recommend(_context(), options)

    assert service.cache.stats()["size"] > 0
    assert not any(key.startswith("recommendation:") for key in service.cache._entries)
    # Sub-results still come from the cache, so the directory is not hit again.
    assert stocked_directory.call_count("browse") == browse_calls


@pytest.mark.asyncio
async def test_debug_is_omitted_unless_requested(service, stocked_directory):
    result = await service.orchestrator.recommend(_context())

    assert result.debug is None
    assert result.nonprofits


@pytest.mark.asyncio
async def test_top_n_limits_output(service, stocked_directory):
    result = await service.orchestrator.recommend(_context(), RecommendOptions(top_n=2))

    assert [item.slug for item in result.nonprofits] == ["turkish-relief", "greek-relief"]


@pytest.mark.asyncio
async def test_zero_candidates_is_empty_and_not_cached(service, fake_directory):
    result = await service.orchestrator.recommend(_context(), RecommendOptions(debug=True))

    assert result.nonprofits == []
    assert result.debug.candidate_count == 0
    assert result.debug.cache_hit is False

    second = await service.orchestrator.recommend(_context(), RecommendOptions(debug=True))
    assert second.debug.cache_hit is False


@pytest.mark.asyncio
async def test_all_directory_calls_failing_degrades_to_empty(service, fake_directory):
    context = _context()
    generator = service.orchestrator.generator
    for cause in generator.select_causes(context):
        fake_directory.failures[f"browse:{cause}"] = DirectoryError("down")
    for term in generator.build_search_terms(context.entities):
        fake_directory.failures[f"search:{term}"] = DirectoryError("down")

    result = await service.orchestrator.recommend(context, RecommendOptions(debug=True))

    assert result.nonprofits == []
    assert any("All directory calls failed" in note for note in result.debug.degradations)


@pytest.mark.asyncio
async def test_enrichment_failure_keeps_ranked_item(service, stocked_directory):
    stocked_directory.failures["details:greek-relief"] = DirectoryError("Every.org returned HTTP 503")

    result = await service.orchestrator.recommend(_context(), RecommendOptions(debug=True))

    greek = next(item for item in result.nonprofits if item.slug == "greek-relief")
    assert greek.enriched is False
    assert greek.enrichment_error == "Every.org returned HTTP 503"
    assert result.debug.failed_enrichment_count == 1


@pytest.mark.asyncio
async def test_provider_presence_changes_cache_key(service, stocked_directory, trust_provider_for):
    await service.orchestrator.recommend(_context())

    result = await service.orchestrator.recommend(
        _context(),
        RecommendOptions(debug=True, trust_provider=trust_provider_for({"global-rapid": 90})),
    )

    assert result.debug.cache_hit is False
    global_rapid = next(item for item in result.nonprofits if item.slug == "global-rapid")
    assert global_rapid.ranked.trust_score == 90


@pytest.mark.asyncio
async def test_provider_key_separates_cached_rankings(service, stocked_directory, trust_provider_for):
    ratings = trust_provider_for({"global-rapid": 90})
    registry = trust_provider_for({"global-rapid": 40}, source="other-ratings")

    await service.orchestrator.recommend(_context(), RecommendOptions(trust_provider=ratings, provider_key="ratings"))
    other = await service.orchestrator.recommend(
        _context(), RecommendOptions(debug=True, trust_provider=registry, provider_key="registry")
    )
    same = await service.orchestrator.recommend(
        _context(), RecommendOptions(debug=True, trust_provider=ratings, provider_key="ratings")
    )

    assert other.debug.cache_hit is False
    global_rapid = next(item for item in other.nonprofits if item.slug == "global-rapid")
    assert global_rapid.ranked.trust_score == 40
    assert same.debug.cache_hit is True
