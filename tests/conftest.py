"""Pytest configuration and fixtures."""

import os
from collections.abc import Generator
from typing import Any
from unittest.mock import MagicMock, patch
from uuid import UUID

import pytest
from fastapi.testclient import TestClient

# Set test environment variables before importing application modules
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_SECRET_KEY", "test-secret-key")
os.environ.setdefault("SUPABASE_SIGNING_KEY_JWK", "test-signing-key-jwk")
os.environ.setdefault("BUSINESS_TIMEZONE", "America/Sao_Paulo")

COMPANY_ID = UUID("770e8400-e29b-41d4-a716-446655440000")
OWNER_ID = UUID("660e8400-e29b-41d4-a716-446655440001")
INVITEE_ID = UUID("660e8400-e29b-41d4-a716-446655440002")
OTHER_MEMBER_ID = UUID("660e8400-e29b-41d4-a716-446655440003")
OWNER_USER_ID = UUID("550e8400-e29b-41d4-a716-446655440001")

SERVICE_MODULES = (
    "src.services.appointment_service",
    "src.services.appointment_invite_service",
    "src.services.member_service",
)


@pytest.fixture(scope="session")
def test_settings() -> Generator[Any, None, None]:
    """Provide test settings with cleared cache.

    Yields:
        Settings: Test configuration settings.
    """
    from src.core.config import get_settings

    get_settings.cache_clear()
    settings = get_settings()
    yield settings
    get_settings.cache_clear()


@pytest.fixture
def mock_supabase_client() -> Generator[MagicMock, None, None]:
    """Provide a mocked Supabase client shared by every service.

    Yields:
        MagicMock: Mocked Supabase client for testing.
    """
    mock_client = MagicMock()

    mock_response = MagicMock()
    mock_response.data = []
    mock_client.table.return_value.select.return_value.limit.return_value.execute.return_value = (
        mock_response
    )

    patches = [patch("src.core.supabase.get_supabase_client", return_value=mock_client)]
    patches += [patch(f"{module}.get_supabase_client", return_value=mock_client) for module in SERVICE_MODULES]
    for p in patches:
        p.start()
    yield mock_client
    for p in reversed(patches):
        p.stop()


@pytest.fixture
def client(mock_supabase_client: MagicMock) -> Generator[TestClient, None, None]:
    """Provide a test client for the FastAPI application.

    Args:
        mock_supabase_client: Mocked Supabase client fixture.

    Yields:
        TestClient: FastAPI test client.
    """
    from src.main import app

    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def owner_context() -> Any:
    """The signed-in member used by route tests."""
    from src.schemas.auth import MemberContext

    return MemberContext(
        user_id=OWNER_USER_ID,
        member_id=OWNER_ID,
        company_id=COMPANY_ID,
        email="owner@example.com",
    )


@pytest.fixture
def member_client(
    mock_supabase_client: MagicMock,
    owner_context: Any,
) -> Generator[TestClient, None, None]:
    """Test client with authentication replaced by ``owner_context``.

    Yields:
        TestClient: FastAPI test client.
    """
    from src.api.deps import get_current_member
    from src.main import app

    app.dependency_overrides[get_current_member] = lambda: owner_context
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
