"""
Tests for health check endpoints.
"""

from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from app.config import Settings
from app.features.recommendations.service import build_recommendation_service
from app.main import app

client = TestClient(app)


@pytest.fixture
def initialized_service(fake_directory):
    """Attach a pipeline to app.state the way the lifespan does."""
    app.state.recommendations = build_recommendation_service(
        Settings(EVERY_ORG_API_KEY="test-key"), client=fake_directory
    )
    yield app.state.recommendations
    del app.state.recommendations


def test_healthz_endpoint():
    """Test the basic health check endpoint."""
    response = client.get("/healthz")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["service"] == "feelgive-recommendations"


def test_readyz_endpoint_all_checks_pass(initialized_service):
    """Test readiness endpoint when the pipeline is up and the API key is set."""
    with patch("app.routes.health.settings.EVERY_ORG_API_KEY", "test-key"):
        response = client.get("/readyz")

    assert response.status_code == 200
    data = response.json()
    assert data["overall_ok"] is True

    checks = data["checks"]
    assert checks["pipeline"]["ok"] is True
    assert checks["pipeline"]["cache_size"] == 0
    assert checks["pipeline"]["cache_max_size"] == 1000
    assert checks["configuration"]["ok"] is True
    assert checks["configuration"]["issues"] is None


def test_readyz_endpoint_missing_api_key(initialized_service):
    """Missing directory credentials make the service not ready."""
    with patch("app.routes.health.settings.EVERY_ORG_API_KEY", None):
        response = client.get("/readyz")

    # Should still return 200, but overall_ok should be False
    assert response.status_code == 200
    data = response.json()
    assert data["overall_ok"] is False
    assert data["checks"]["configuration"]["issues"] == ["EVERY_ORG_API_KEY not set"]


def test_readyz_endpoint_pipeline_not_initialized():
    """Without the lifespan having run there is no pipeline on app.state."""
    with patch("app.routes.health.settings.EVERY_ORG_API_KEY", "test-key"):
        response = client.get("/readyz")

    assert response.status_code == 200
    data = response.json()
    assert data["overall_ok"] is False
    assert data["checks"]["pipeline"]["ok"] is False


def test_readyz_response_structure():
    """Test that readyz response has the expected structure."""
    response = client.get("/readyz")

    assert response.status_code == 200
    data = response.json()
    assert "overall_ok" in data
    assert "checks" in data
    assert "timestamp" in data
    assert {"pipeline", "configuration"} <= set(data["checks"])
