"""
Tests for the recommendation HTTP routes.
"""

import pytest
from fastapi.testclient import TestClient

from app.config import Settings
from app.features.recommendations.api.router import get_recommendation_service
from app.features.recommendations.service import build_recommendation_service
from app.main import app


@pytest.fixture
def service(fake_directory, make_candidate):
    fake_directory.browse_results["disasters"] = [
        make_candidate("turkish-relief", countries=["TR"], is_global=False, addressed_needs=["shelter"]),
        make_candidate("global-rapid"),
    ]
    return build_recommendation_service(Settings(EVERY_ORG_API_KEY="test-key"), client=fake_directory)


@pytest.fixture
def client(service):
    app.dependency_overrides[get_recommendation_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()


def _payload(**options) -> dict:
    return {
        "classification": {
            "title": "Earthquake strikes southern Turkey",
            "geography": {"country": "Turkey"},
            "disaster_type": "earthquake",
            "causes": ["disaster_relief"],
        },
        "options": options,
    }


def test_recommendations_success(client):
    response = client.post("/api/v1/recommendations", json=_payload())

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["debug"] is None

    first = data["nonprofits"][0]
    assert first["slug"] == "turkish-relief"
    assert first["geo_tier"] == 1
    assert first["cause_match_level"] == 1
    assert first["reasons"][0] == "Operates directly in Turkey"
    assert first["enriched"] is True
    assert first["profile_url"] == "https://www.every.org/turkish-relief"
    assert first["vetted_status"] == "unknown"


def test_recommendations_with_debug(client):
    response = client.post("/api/v1/recommendations", json=_payload(debug=True, top_n=1))

    assert response.status_code == 200
    data = response.json()
    assert len(data["nonprofits"]) == 1
    debug = data["debug"]
    assert debug["causes_used"] == ["disasters"]
    assert debug["candidate_count"] == 2
    assert debug["cache_hit"] is False
    assert set(debug["cache_stats"]) >= {"hits", "misses", "hit_rate", "size"}


@pytest.mark.parametrize("top_n", [0, 51])
def test_top_n_out_of_range_is_rejected(client, top_n):
    response = client.post("/api/v1/recommendations", json=_payload(top_n=top_n))

    assert response.status_code == 422


def test_missing_title_is_rejected(client):
    response = client.post(
        "/api/v1/recommendations",
        json={"classification": {"geography": {"country": "Turkey"}}},
    )

    assert response.status_code == 422


def test_pipeline_error_returns_500(client, service, monkeypatch):
    async def boom(context, options=None):
        raise RuntimeError("unexpected")

    monkeypatch.setattr(service.orchestrator, "recommend", boom)

    response = client.post("/api/v1/recommendations", json=_payload())

    assert response.status_code == 500
    assert response.json()["detail"] == "Failed to generate recommendations"


def test_cache_stats_and_clear(client):
    client.post("/api/v1/recommendations", json=_payload())
    client.post("/api/v1/recommendations", json=_payload())

    stats = client.get("/api/v1/recommendations/cache/stats").json()
    assert stats["hits"] >= 1
    assert stats["size"] > 0

    cleared = client.delete("/api/v1/recommendations/cache")
    assert cleared.status_code == 200
    assert cleared.json()["success"] is True

    stats = client.get("/api/v1/recommendations/cache/stats").json()
    assert stats == {
        "hits": 0,
        "misses": 0,
        "hit_rate": 0.0,
        "size": 0,
        "max_size": 1000,
        "evictions": 0,
        "expirations": 0,
    }


def test_service_unavailable_without_pipeline():
    response = TestClient(app).get("/api/v1/recommendations/cache/stats")

    assert response.status_code == 503
