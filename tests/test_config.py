"""
Tests for settings loading.
"""

import pytest

from family_finance.config import (
    AppSettings,
    ExportSettings,
    OpenAISettings,
    StorageSettings,
)


class TestOpenAISettings:
    """Tests for the completion service settings."""

    def test_packaged_file_has_placeholder(self, monkeypatch):
        """Test a fresh install reads the placeholder key and is not configured."""
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        settings = OpenAISettings(_env_file=None)
        assert settings.api_key.startswith("sk-your")
        assert settings.is_configured is False

    def test_environment_overrides_packaged_file(self, monkeypatch):
        """Test OPENAI_API_KEY wins over the packaged resource."""
        monkeypatch.setenv("OPENAI_API_KEY", "sk-live-123")
        monkeypatch.setenv("OPENAI_MODEL", "gpt-4o")
        settings = OpenAISettings(_env_file=None)
        assert settings.api_key == "sk-live-123"
        assert settings.model == "gpt-4o"
        assert settings.is_configured is True


class TestOtherSettings:
    """Tests for storage, export and app settings."""

    def test_database_url(self):
        """Test the SQLite URL is built from the file path."""
        settings = StorageSettings(database_path="/tmp/ff.db")
        assert settings.database_url == "sqlite+pysqlite:////tmp/ff.db"

    def test_export_defaults(self, monkeypatch):
        """Test export defaults."""
        monkeypatch.delenv("EXPORT_OUTPUT_DIR", raising=False)
        settings = ExportSettings(_env_file=None)
        assert settings.output_dir == "exports"
        assert settings.format_version == "1.0"

    def test_log_level_normalized(self):
        """Test log level is upper-cased."""
        assert AppSettings(log_level="debug").log_level == "DEBUG"

    def test_unknown_log_level_rejected(self):
        """Test an unknown log level fails validation."""
        with pytest.raises(ValueError, match="Unknown log level"):
            AppSettings(log_level="chatty")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
