"""
Tests for API authentication against the real application.
"""
import pytest
from fastapi.testclient import TestClient

from conftest import TEST_API_KEY, make_create_payload
from core import dependencies as deps


@pytest.fixture
def authenticated_client(temp_db, monkeypatch):
    """Test client for the production app, backed by a temporary database."""
    # get_patient_service builds its graph from the process-wide database
    monkeypatch.setattr(deps, "_database_instance", temp_db)
    from main import app
    return TestClient(app)


class TestAuthentication:
    """Test suite for API authentication."""

    def test_missing_api_key_returns_401(self, authenticated_client):
        """Test that requests without API key return 401."""
        response = authenticated_client.get("/api/v1/patients")
        assert response.status_code == 401
        assert "Missing API key" in response.json()["detail"]

    def test_invalid_api_key_returns_403(self, authenticated_client):
        """Test that requests with invalid API key return 403."""
        response = authenticated_client.get(
            "/api/v1/patients",
            headers={"X-API-Key": "invalid-key"}
        )
        assert response.status_code == 403
        assert "Invalid API key" in response.json()["detail"]

    def test_valid_api_key_allows_access(self, authenticated_client):
        """Test that requests with valid API key are allowed."""
        response = authenticated_client.get(
            "/api/v1/patients",
            headers={"X-API-Key": TEST_API_KEY}
        )
        assert response.status_code == 200
        assert response.json() == []

    def test_root_endpoint_no_auth_required(self, authenticated_client):
        """Test that the root endpoint doesn't require authentication."""
        response = authenticated_client.get("/")
        assert response.status_code == 200
        assert response.json()["service"] == "Patient Service API"

    def test_create_requires_auth(self, authenticated_client):
        """Test that creating patients requires authentication."""
        response = authenticated_client.post(
            "/api/v1/patients",
            json=make_create_payload()
        )
        assert response.status_code == 401

        response = authenticated_client.post(
            "/api/v1/patients",
            json=make_create_payload(),
            headers={"X-API-Key": TEST_API_KEY}
        )
        assert response.status_code == 201

    def test_delete_requires_auth(self, authenticated_client):
        created = authenticated_client.post(
            "/api/v1/patients",
            json=make_create_payload(),
            headers={"X-API-Key": TEST_API_KEY}
        ).json()

        response = authenticated_client.delete(f"/api/v1/patients/{created['id']}")
        assert response.status_code == 401

        response = authenticated_client.delete(
            f"/api/v1/patients/{created['id']}",
            headers={"X-API-Key": TEST_API_KEY}
        )
        assert response.status_code == 204

    def test_response_carries_request_id(self, authenticated_client):
        """LoggingMiddleware echoes an incoming X-Request-ID."""
        response = authenticated_client.get(
            "/api/v1/patients",
            headers={"X-API-Key": TEST_API_KEY, "X-Request-ID": "abc123"}
        )
        assert response.headers["X-Request-ID"] == "abc123"
