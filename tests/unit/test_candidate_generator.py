import pytest

from app.features.recommendations.domain.models import ArticleContext, ArticleEntities, GeoEntities
from app.features.recommendations.pipeline.cache import TTLCache
from app.features.recommendations.pipeline.candidates import CandidateGenerator
from app.services.everyorg.client import DirectoryError


def _context(**overrides) -> ArticleContext:
    values = {
        "title": "Earthquake strikes southern Turkey",
        "entities": ArticleEntities(
            geography=GeoEntities(country="Turkey", city="Gaziantep"),
            disaster_type="earthquake",
        ),
        "causes": ["disaster_relief"],
    }
    values.update(overrides)
    return ArticleContext(**values)


def test_search_terms_follow_priority_and_fill_with_fallbacks(fake_directory):
    generator = CandidateGenerator(fake_directory)

    terms = generator.build_search_terms(_context().entities)

    assert terms == ["earthquake", "Turkey", "Gaziantep", "disaster relief", "emergency response"]


def test_fallback_terms_skipped_when_five_specific_terms_exist(fake_directory):
    generator = CandidateGenerator(fake_directory)
    entities = ArticleEntities(
        geography=GeoEntities(country="Syria", region="Middle East", city="Aleppo"),
        disaster_type="earthquake",
        affected_group="refugees",
    )

    terms = generator.build_search_terms(entities)

    assert terms == ["earthquake", "Syria", "Middle East", "Aleppo", "refugees"]


def test_search_terms_are_deduplicated(fake_directory):
    generator = CandidateGenerator(fake_directory)
    entities = ArticleEntities(geography=GeoEntities(country="Haiti", city="haiti"))

    terms = generator.build_search_terms(entities)

    assert terms == ["Haiti", "disaster relief", "emergency response"]


def test_causes_prefer_caller_supplied_and_cap_at_three(fake_directory):
    generator = CandidateGenerator(fake_directory)
    context = _context(
        title="Cholera outbreak overwhelms hospitals after flood",
        causes=["refugees", "disaster_relief"],
    )

    causes = generator.select_causes(context)

    assert causes[:2] == ["refugees", "disasters"]
    assert len(causes) == 3
    assert causes[2] == "health"


@pytest.mark.asyncio
async def test_merge_keeps_browse_before_search_and_dedupes(fake_directory, make_candidate):
    fake_directory.browse_results["disasters"] = [make_candidate("a"), make_candidate("b")]
    fake_directory.search_results["earthquake"] = [make_candidate("b"), make_candidate("c")]
    fake_directory.search_results["Turkey"] = [make_candidate("d"), make_candidate("a")]
    generator = CandidateGenerator(fake_directory)

    pool = await generator.generate(_context())

    assert [candidate.slug for candidate in pool.candidates] == ["a", "b", "c", "d"]
    assert pool.candidate_count == 4
    assert pool.raw_candidate_count == 6
    assert pool.causes_used == ["disasters"]
    assert pool.search_terms_used[0] == "earthquake"
    assert pool.failed_calls == 0


@pytest.mark.asyncio
async def test_pool_is_capped_in_discovery_order(fake_directory, make_candidate):
    fake_directory.browse_results["disasters"] = [make_candidate(f"org-{i}") for i in range(5)]
    generator = CandidateGenerator(fake_directory, max_candidates=3)

    pool = await generator.generate(_context())

    assert [candidate.slug for candidate in pool.candidates] == ["org-0", "org-1", "org-2"]
    assert pool.candidate_count == 3


@pytest.mark.asyncio
async def test_failed_call_is_a_degradation(fake_directory, make_candidate):
    fake_directory.failures["browse:disasters"] = DirectoryError("Every.org returned HTTP 503", status_code=503)
    fake_directory.search_results["earthquake"] = [make_candidate("a")]
    generator = CandidateGenerator(fake_directory)

    pool = await generator.generate(_context())

    assert [candidate.slug for candidate in pool.candidates] == ["a"]
    assert pool.failed_calls == 1
    assert pool.all_calls_failed is False
    assert "browse 'disasters' failed" in pool.degradations[0]


@pytest.mark.asyncio
async def test_all_calls_failing_returns_empty_pool(fake_directory):
    generator = CandidateGenerator(fake_directory)
    context = _context()
    for cause in generator.select_causes(context):
        fake_directory.failures[f"browse:{cause}"] = DirectoryError("down")
    for term in generator.build_search_terms(context.entities):
        fake_directory.failures[f"search:{term}"] = DirectoryError("down")

    pool = await generator.generate(context)

    assert pool.candidates == []
    assert pool.candidate_count == 0
    assert pool.all_calls_failed is True


@pytest.mark.asyncio
async def test_sub_results_are_served_from_cache(fake_directory, make_candidate):
    fake_directory.browse_results["disasters"] = [make_candidate("a")]
    generator = CandidateGenerator(fake_directory, cache=TTLCache())

    await generator.generate(_context())
    first_calls = fake_directory.call_count()
    pool = await generator.generate(_context())

    assert fake_directory.call_count() == first_calls
    assert [candidate.slug for candidate in pool.candidates] == ["a"]
