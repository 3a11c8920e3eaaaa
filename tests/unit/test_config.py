"""
Unit tests for configuration module
"""

import pytest

from hello_server.core.config import Settings

# Mark all tests in this module as unit tests
pytestmark = pytest.mark.unit

ENV_VARS = [
    "PORT", "HOST", "DATABASE_URL", "MONGODB_URI", "SESSION_SECRET",
    "NODE_ENV", "ENVIRONMENT", "RATE_LIMIT", "REDIS_URL",
]


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestSettings:
    """Test application settings configuration"""

    def test_default_settings(self):
        settings = Settings(_env_file=None)

        assert settings.port == 8080
        assert settings.host == "0.0.0.0"
        assert settings.environment == "production"
        assert settings.is_development is False
        assert settings.database_url is None
        assert settings.session_secret is None
        assert settings.session_max_age == 1209600
        assert settings.session_resave is True
        assert settings.session_save_uninitialized is True
        assert settings.rate_limit == "100/15minutes"
        assert settings.static_max_age == 31557600

    def test_port_from_environment(self, monkeypatch):
        monkeypatch.setenv("PORT", "9090")
        assert Settings(_env_file=None).port == 9090

    def test_mongodb_uri_is_database_url_alias(self, monkeypatch):
        monkeypatch.setenv("MONGODB_URI", "sqlite:///./legacy.db")
        assert Settings(_env_file=None).database_url == "sqlite:///./legacy.db"

    def test_database_url_takes_precedence(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "sqlite:///./primary.db")
        monkeypatch.setenv("MONGODB_URI", "sqlite:///./legacy.db")
        assert Settings(_env_file=None).database_url == "sqlite:///./primary.db"

    @pytest.mark.parametrize("variable", ["NODE_ENV", "ENVIRONMENT"])
    def test_environment_variables(self, monkeypatch, variable):
        monkeypatch.setenv(variable, "development")
        assert Settings(_env_file=None).is_development

    def test_session_secret_from_environment(self, monkeypatch):
        monkeypatch.setenv("SESSION_SECRET", "x" * 40)
        assert Settings(_env_file=None).session_secret == "x" * 40

    def test_env_file_is_read(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("PORT=7000\nNODE_ENV=development\n")

        settings = Settings(_env_file=str(env_file))

        assert settings.port == 7000
        assert settings.is_development

    def test_field_names_accepted_as_keywords(self):
        settings = Settings(_env_file=None, database_url="sqlite://", environment="Development")

        assert settings.database_url == "sqlite://"
        assert settings.is_development
