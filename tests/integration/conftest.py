"""
Integration test fixtures for Household Calendar.

Runs the real application (lifespan, middleware, dependencies, service
singleton) against the in-memory test database, with one session per
request like production.
"""

from typing import Generator
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session, sessionmaker

from src.services.calendar_service import reset_calendar_service


# =============================================================================
# Pytest Markers Configuration
# =============================================================================


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: mark test as integration test"
    )


# =============================================================================
# API Test Client Fixtures
# =============================================================================


@pytest.fixture
def integration_api_client(db_session: Session) -> Generator[TestClient, None, None]:
    """
    FastAPI test client with the real calendar service.

    Each request opens its own session on the test engine so cached sources
    and committed writes are observed across requests the way they are in
    production.
    """
    from src.api.dependencies import get_db_session
    from src.api.main import app

    RequestSession = sessionmaker(autocommit=False, autoflush=False, bind=db_session.get_bind())

    def _request_session():
        session = RequestSession()
        try:
            yield session
        finally:
            session.close()

    reset_calendar_service()
    app.dependency_overrides[get_db_session] = _request_session

    with patch("src.api.main.init_db"), patch("src.api.main.check_connection", return_value=True):
        with TestClient(app) as client:
            yield client

    app.dependency_overrides.clear()
    reset_calendar_service()
