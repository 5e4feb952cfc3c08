"""
Unit tests for application settings
"""
from ticketflow.config import Settings, get_settings


class TestSettings:
    """Settings defaults and environment overrides"""

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("STORE_BACKEND", raising=False)
        monkeypatch.delenv("PIPELINE_MAX_ATTEMPTS", raising=False)
        monkeypatch.delenv("SMTP_PORT", raising=False)
        settings = Settings(_env_file=None)

        assert settings.store_backend == "memory"
        assert not settings.use_supabase
        assert settings.pipeline_max_attempts == 3
        assert settings.smtp_port == 587

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("STORE_BACKEND", "Supabase")
        monkeypatch.setenv("ANALYSIS_TIMEOUT_SECONDS", "12.5")

        settings = Settings(_env_file=None)

        assert settings.use_supabase
        assert settings.analysis_timeout_seconds == 12.5

    def test_get_settings_cached(self):
        assert get_settings() is get_settings()
