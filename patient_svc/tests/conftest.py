"""
Shared pytest fixtures for Patient Service tests.

Key patterns:

1. Database Isolation: Each test gets a fresh temporary SQLite database
2. DI Override: app.dependency_overrides injects test dependencies
3. Service Injection: Services are created with test repositories

Fixture Hierarchy:
    temp_db → patient_repo → patient_service → test_app → client
"""
import os
import tempfile
from datetime import date

import pytest
from fastapi.testclient import TestClient
from fastapi import FastAPI

# Settings are read on first import of core.config, so these must be set first
TEST_API_KEY = "test-api-key-for-testing-purposes-12345678"
os.environ["PATIENT_SVC_API_KEY"] = TEST_API_KEY
os.environ["PATIENT_SVC_EVENTS_ENABLED"] = "false"

from repositories.base import Database
from repositories import PatientRepository
from services.patient_service import PatientService
from schemas import PatientCreate
from core.exceptions import setup_exception_handlers
from core import dependencies as deps
from core.auth import verify_api_key

# Fixed reference day for validator tests that depend on "today"
REFERENCE_DAY = date(2025, 9, 13)


def make_create_payload(**overrides):
    """A valid create body keyed by external field names."""
    payload = {
        "name": "John Doe",
        "email": "john.doe@example.com",
        "address": "123 Main St",
        "dateOfBirth": "1990-05-15",
        "registeredDate": "2025-09-13",
    }
    payload.update(overrides)
    return payload


def make_update_payload(**overrides):
    """A valid update body keyed by external field names."""
    payload = {
        "name": "John Doe",
        "email": "john.doe@example.com",
        "address": "456 Oak Ave",
        "dateOfBirth": "1990-05-15",
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def temp_db():
    """
    Create a temporary database for testing.

    A fresh SQLite file per test keeps tests fully isolated.
    """
    fd, db_path = tempfile.mkstemp(suffix='.db')
    os.close(fd)

    db = Database(db_path=db_path)
    yield db

    for suffix in ("", "-wal", "-shm"):
        if os.path.exists(db_path + suffix):
            os.unlink(db_path + suffix)


@pytest.fixture
def patient_repo(temp_db):
    """Create a PatientRepository with the test database."""
    return PatientRepository(db=temp_db)


@pytest.fixture
def patient_service(patient_repo):
    """Create a PatientService with the test repository and no event publisher."""
    return PatientService(patient_repository=patient_repo)


@pytest.fixture
def create_request():
    """Factory for PatientCreate requests with overridable fields."""
    def _make(**overrides):
        return PatientCreate(**make_create_payload(**overrides))
    return _make


@pytest.fixture
def test_app(temp_db, patient_repo, patient_service):
    """
    Create a FastAPI test app with dependency overrides.

    Uses the real routers and exception handlers; only the database,
    repository, service and auth dependencies are replaced.
    """
    from api.routers import health_router, patients_router

    app = FastAPI(title="Patient Service API Test")

    setup_exception_handlers(app)

    app.dependency_overrides[deps.get_database] = lambda: temp_db
    app.dependency_overrides[deps.get_patient_repository] = lambda: patient_repo
    app.dependency_overrides[deps.get_patient_service] = lambda: patient_service

    # Skip API key verification; test_auth.py covers it against the real app
    async def skip_auth():
        return TEST_API_KEY
    app.dependency_overrides[verify_api_key] = skip_auth

    app.include_router(health_router)
    app.include_router(patients_router)

    yield app

    app.dependency_overrides.clear()


@pytest.fixture
def client(test_app):
    """Create a test client for the API."""
    return TestClient(test_app)
