"""
Configuration Management for Family Finance

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see what external dependencies exist and
ensures all required configuration is validated at startup.

The OpenAI section is additionally read from a JSON resource shipped inside
the package (resources/openai.json). Environment variables and .env values
win over the packaged file; the packaged file carries a placeholder key so
a fresh install reports "not configured" instead of failing.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    JsonConfigSettingsSource,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)


PACKAGED_OPENAI_SETTINGS = Path(__file__).resolve().parent.parent / "resources" / "openai.json"

# Keys copied from the documentation start with this prefix
PLACEHOLDER_KEY_PREFIX = "sk-your"


class OpenAISettings(BaseSettings):
    """OpenAI-compatible completion and transcription service configuration."""

    model_config = SettingsConfigDict(
        env_prefix="OPENAI_",
        env_file=".env",
        env_file_encoding="utf-8",
        json_file=PACKAGED_OPENAI_SETTINGS,
        json_file_encoding="utf-8",
        extra="ignore",
    )

    api_key: str = Field(
        default="",
        description="API key; blank or placeholder means not configured"
    )
    model: str = Field(
        default="gpt-4o-mini",
        description="Chat completion model"
    )
    whisper_model: str = Field(
        default="whisper-1",
        description="Audio transcription model"
    )
    base_url: str = Field(
        default="https://api.openai.com/v1",
        description="Base URL of the API, without trailing slash"
    )
    temperature: float = Field(
        default=0.3,
        ge=0.0,
        le=2.0,
        description="Sampling temperature for completions"
    )
    max_tokens: int = Field(
        default=1024,
        ge=16,
        le=8192,
        description="Maximum tokens in a completion"
    )

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            JsonConfigSettingsSource(settings_cls),
            file_secret_settings,
        )

    @property
    def is_configured(self) -> bool:
        """True when a real-looking API key is present."""
        key = self.api_key.strip()
        return bool(key) and not key.startswith(PLACEHOLDER_KEY_PREFIX)


class StorageSettings(BaseSettings):
    """Local database configuration."""

    model_config = SettingsConfigDict(
        env_prefix="STORAGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    database_path: str = Field(
        default="familyfinance.db",
        description="Path to the SQLite database file"
    )
    echo_sql: bool = Field(
        default=False,
        description="Log every SQL statement (debugging only)"
    )

    @property
    def database_url(self) -> str:
        return f"sqlite+pysqlite:///{self.database_path}"


class ExportSettings(BaseSettings):
    """Migration export configuration."""

    model_config = SettingsConfigDict(
        env_prefix="EXPORT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    output_dir: str = Field(
        default="exports",
        description="Directory the migration files are written to"
    )
    format_version: str = Field(
        default="1.0",
        description="Version string written into every snapshot"
    )


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        description="Minimum level for structured logs"
    )

    @field_validator("log_level")
    @classmethod
    def normalize_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Sub-settings are loaded lazily to allow partial configuration

    @property
    def openai(self) -> OpenAISettings:
        return OpenAISettings()

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

    @property
    def export(self) -> ExportSettings:
        return ExportSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    for name in ("openai", "storage", "export", "app"):
        try:
            section = getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)
            continue
        if name == "openai" and not section.is_configured:
            results["openai_configured"] = False

    return results
