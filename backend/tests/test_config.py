"""
Feedline Backend - Settings Tests
"""

import pytest
from pydantic import ValidationError as PydanticValidationError

from feedline.config import Settings


class TestSettings:
    def test_log_level_is_normalized(self):
        assert Settings(log_level="debug").log_level == "DEBUG"

    def test_invalid_log_level_rejected(self):
        with pytest.raises(PydanticValidationError):
            Settings(log_level="chatty")

    def test_cors_origins_split(self):
        app_settings = Settings(cors_origins=" https://a.example.com , ,https://b.example.com")
        assert app_settings.cors_origins_list == ["https://a.example.com", "https://b.example.com"]

    def test_upload_limit_bounds(self):
        with pytest.raises(PydanticValidationError):
            Settings(max_upload_size=10)

    def test_uses_sqlite(self):
        assert Settings(database_url="sqlite+aiosqlite:///:memory:").uses_sqlite is True
        assert Settings(database_url="postgresql+asyncpg://u:p@db/feedline").uses_sqlite is False

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("BACKEND_PORT", "4000")
        monkeypatch.setenv("GRAPHIQL_ENABLED", "false")
        app_settings = Settings()
        assert app_settings.backend_port == 4000
        assert app_settings.graphiql_enabled is False

    def test_missing_jwt_secret_fails_production_check(self):
        with pytest.raises(ValueError, match="JWT_SECRET"):
            Settings(jwt_secret="").validate_required_for_production()

    def test_configured_secret_passes_production_check(self):
        Settings(jwt_secret="x" * 32).validate_required_for_production()
