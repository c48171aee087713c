"""Shared test fixtures and configuration."""
import pytest
import os
from pathlib import Path
from unittest.mock import AsyncMock
from fastapi.testclient import TestClient

# Set test environment variables before importing app
os.environ.setdefault("CALL_CONTROL_API_URL", "https://api.test.local")
os.environ.setdefault("CALL_CONTROL_ACCOUNT_SID", "test-account")
os.environ.setdefault("CALL_CONTROL_API_KEY", "test-api-key")
os.environ.setdefault("BASE_URL", "https://agent.test.local")

from call_handoff.main import app
from call_handoff.core.dependencies import get_app_schema, get_call_control_client
from call_handoff.services.call_config.models import CallConfig
from call_handoff.services.call_config.schema import AppSchema
from call_handoff.services.call_session.models import CallRoutes, CallSession
from call_handoff.services.call_session.orchestrator import TransferOrchestrator

TEST_BASE_URL = "https://agent.test.local"
TEST_DIAL_MUSIC = "https://media.test.local/ringback.mp3"


@pytest.fixture
def test_schema_path():
    """Return path to test application schema."""
    return Path(__file__).parent / "fixtures" / "test_app_schema.yaml"


@pytest.fixture
def test_app_schema(test_schema_path):
    """Application schema whose defaults enable a warm dial transfer."""
    return AppSchema(str(test_schema_path))


@pytest.fixture
def mock_call_control():
    """Mock call-control client."""
    client = AsyncMock()
    client.redirect = AsyncMock(return_value=None)
    client.send_tool_output = AsyncMock(return_value=None)
    return client


@pytest.fixture
def orchestrator(mock_call_control):
    return TransferOrchestrator(mock_call_control, dial_music_url=TEST_DIAL_MUSIC)


@pytest.fixture
def make_session():
    """Factory for call sessions with the given config overrides."""

    def _make_session(call_sid: str = "test_call_sid", **overrides) -> CallSession:
        values = {
            "ULTRAVOX_APIKEY": "test-ultravox-key",
            "ULTRAVOX_PROMPT": "You are a helpful assistant.",
            "CALL_TRANSFER": "Warm",
            "TRANSFER_TYPE": "Dial",
            "TRANSFER_FROM": "+15550000001",
            "TRANSFER_TO": "+15550000002",
            "TRANSFER_CARRIER": "test-carrier",
        }
        values.update(overrides)
        config = CallConfig.model_validate(values)
        return CallSession(call_sid, config, CallRoutes.from_base_url(TEST_BASE_URL))

    return _make_session


@pytest.fixture(autouse=True)
def clean_call_sessions():
    """Clean up call sessions before and after tests."""
    from call_handoff.services.call_session import manager
    manager._sessions.clear()
    manager._locks.clear()
    yield
    manager._sessions.clear()
    manager._locks.clear()


@pytest.fixture
def test_client(test_app_schema, mock_call_control):
    """Create FastAPI test client with overrides."""
    app.dependency_overrides[get_app_schema] = lambda: test_app_schema
    app.dependency_overrides[get_call_control_client] = lambda: mock_call_control

    client = TestClient(app)

    yield client

    app.dependency_overrides.clear()


# Pytest configuration
def pytest_configure(config):
    """Configure pytest."""
    config.addinivalue_line(
        "markers", "asyncio: mark test as an asyncio test"
    )
