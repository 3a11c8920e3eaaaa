"""
Global test configuration and fixtures for Hello Server

Every test gets its own SQLite database file, its own rate limiter and a
freshly built application, so counters and sessions never leak between tests.
"""

from pathlib import Path

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from hello_server.core.config import Settings
from hello_server.core.limiter import RateLimiter, create_limiter
from hello_server.main import create_app

TEST_SECRET = "test-session-secret-for-testing-only-0123456789"


# ============================================================================
# Test Environment Setup
# ============================================================================

@pytest.fixture
def static_dir(tmp_path: Path) -> Path:
    """Static directory with a small and a compressible asset"""
    public = tmp_path / "public"
    public.mkdir()
    (public / "robots.txt").write_text("User-agent: *\nDisallow:\n")
    (public / "app.css").write_text("body { margin: 0; padding: 0; }\n" * 200)
    (public / ".env").write_text("SESSION_SECRET=leaked\n")
    (public / "assets").mkdir()
    return public


@pytest.fixture
def make_settings(tmp_path: Path, static_dir: Path):
    """Build test settings; keyword arguments override the defaults"""
    def _make(**overrides) -> Settings:
        values = {
            "database_url": f"sqlite:///{tmp_path / 'test.db'}",
            "session_secret": TEST_SECRET,
            "environment": "test",
            "static_dir": str(static_dir),
        }
        values.update(overrides)
        return Settings(_env_file=None, **values)
    return _make


@pytest.fixture
def test_settings(make_settings) -> Settings:
    return make_settings()


@pytest.fixture
def limiter(test_settings: Settings) -> RateLimiter:
    return create_limiter(test_settings)


# ============================================================================
# Application Client Fixtures
# ============================================================================

@pytest.fixture
def app(test_settings: Settings, limiter: RateLimiter) -> FastAPI:
    return create_app(test_settings, limiter=limiter)


@pytest.fixture
def client(app: FastAPI):
    """Test client with the lifespan (database connection) running"""
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client


@pytest.fixture
def client_for(make_settings):
    """Start a client for an application built with custom settings"""
    clients = []

    def _client(**overrides) -> TestClient:
        settings = make_settings(**overrides)
        test_client = TestClient(create_app(settings), raise_server_exceptions=False)
        test_client.__enter__()
        clients.append(test_client)
        return test_client

    yield _client

    for test_client in clients:
        test_client.__exit__(None, None, None)


# ============================================================================
# Test Markers and Configuration
# ============================================================================

def pytest_collection_modifyitems(config, items):
    """Add markers based on file location"""
    for item in items:
        path = str(item.fspath)
        if "security" in path:
            item.add_marker(pytest.mark.security)
        if "integration" in path:
            item.add_marker(pytest.mark.integration)
        if "unit" in path:
            item.add_marker(pytest.mark.unit)
