"""Unit tests for health endpoints."""

from fastapi.testclient import TestClient

from fedisign.auth.dependencies import get_key_store
from fedisign.main import app


class TestHealthEndpoint:
    """Tests for /health endpoint version metadata."""

    def test_health_returns_expected_keys(self):
        """Health endpoint should return status, git_sha, build_date, and app_version."""
        client = TestClient(app)
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert "git_sha" in data
        assert "build_date" in data
        assert "app_version" in data

    def test_health_returns_git_sha_from_env(self, monkeypatch):
        """Health endpoint should return GIT_SHA from environment."""
        monkeypatch.setenv("GIT_SHA", "abc123def456")
        client = TestClient(app)
        response = client.get("/health")

        assert response.json()["git_sha"] == "abc123def456"

    def test_health_returns_unknown_when_no_env(self, monkeypatch):
        monkeypatch.delenv("GIT_SHA", raising=False)
        client = TestClient(app)
        response = client.get("/health")

        assert response.json()["git_sha"] == "unknown"

    def test_hello(self):
        client = TestClient(app)
        response = client.get("/")

        assert response.status_code == 200
        assert "<h1>Hello</h1>" in response.text


class TestReadyEndpoint:
    """Tests for /ready."""

    def test_ready_with_key_loaded(self, client):
        response = client.get("/ready")

        assert response.status_code == 200
        assert response.json() == {"status": "ready", "checks": {"signing_key": "ok"}}

    def test_degraded_without_key(self, app_with_keys, empty_key_store):
        app_with_keys.dependency_overrides[get_key_store] = lambda: empty_key_store
        client = TestClient(app_with_keys)

        response = client.get("/ready")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "degraded"
        assert data["checks"]["signing_key"] == "error: not loaded"
