"""Tests for environment-driven settings."""

from decimal import Decimal

from livetax.config import AppSettings, get_settings, validate_all_settings


class TestSettings:

    def test_defaults(self):
        settings = AppSettings()
        assert settings.max_upload_size_bytes == 10 * 1024 * 1024
        assert settings.hra_deduction_limit == Decimal("360000")
        assert get_settings().gemini.model_name == "gemini-2.5-flash"

    def test_env_override(self, monkeypatch):
        """LIVETAX_ variables override app defaults."""
        monkeypatch.setenv("LIVETAX_MAX_UPLOAD_SIZE_MB", "20")
        monkeypatch.setenv("LIVETAX_HRA_DEDUCTION_LIMIT", "240000")
        settings = AppSettings()
        assert settings.max_upload_size_mb == 20
        assert settings.hra_deduction_limit == Decimal("240000")

    def test_all_valid(self):
        results = validate_all_settings()
        assert results == {"gemini": True, "storage": True, "app": True}

    def test_missing_api_key_reported(self, monkeypatch):
        """A missing key is reported, not raised."""
        monkeypatch.delenv("GEMINI_API_KEY")
        results = validate_all_settings()
        assert results["gemini"] is False
        assert "gemini_error" in results
        assert results["app"] is True
