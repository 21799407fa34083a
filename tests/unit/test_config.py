"""
Tests for settings loading.
"""
import pydantic
import pytest

from msdata.config import Settings


class TestSettings:

    def test_defaults(self):
        settings = Settings(_env_file=None)
        assert settings.port == 8080
        assert settings.default_timezone == "Europe/Madrid"
        assert settings.default_locale == "es-ES"
        assert settings.jwt_authorities_claim == "groups"
        assert "/actuator/health" in settings.public_paths
        assert not settings.jwt_configured

    def test_query_url_falls_back_to_command_url(self):
        settings = Settings(_env_file=None, command_database_url="sqlite+aiosqlite:///./a.db")
        assert settings.effective_query_database_url == "sqlite+aiosqlite:///./a.db"

    def test_separate_query_url(self):
        settings = Settings(
            _env_file=None,
            command_database_url="sqlite+aiosqlite:///./a.db",
            query_database_url="sqlite+aiosqlite:///./b.db",
        )
        assert settings.effective_query_database_url == "sqlite+aiosqlite:///./b.db"

    def test_unknown_timezone_rejected(self):
        with pytest.raises(pydantic.ValidationError, match="Unknown timezone"):
            Settings(_env_file=None, default_timezone="Mars/Olympus")

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("JWT_SECRET", "from-env-0123456789abcdefghijklmn")
        monkeypatch.setenv("WRITE_ROLES", '["admins"]')
        monkeypatch.setenv("MAX_PAGE_SIZE", "50")

        settings = Settings(_env_file=None)

        assert settings.jwt_configured
        assert settings.write_roles == ["admins"]
        assert settings.max_page_size == 50
