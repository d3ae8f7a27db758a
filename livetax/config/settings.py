"""
Configuration Management for LiveTax

Every tunable lives here, read from environment variables (and .env)
through pydantic-settings.

DESIGN DECISION: One settings class per concern.
The Gemini key is only required by code that talks to Gemini, so a
session that never uploads or chats can run without one.
"""

from decimal import Decimal
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GeminiSettings(BaseSettings):
    """Gemini LLM configuration (document extraction and tax assistant)."""

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        extra="ignore"
    )

    api_key: str = Field(
        ...,
        description="Gemini API key"
    )
    model_name: str = Field(
        default="gemini-2.5-flash",
        description="Gemini model to use"
    )
    max_tokens: int = Field(
        default=8192,
        ge=100,
        le=65536,
        description="Maximum tokens in response"
    )
    temperature: float = Field(
        default=0.1,
        ge=0.0,
        le=1.0,
        description="Model temperature (lower = more deterministic)"
    )


class StorageSettings(BaseSettings):
    """Local persistence configuration."""

    model_config = SettingsConfigDict(
        env_prefix="LIVETAX_",
        extra="ignore"
    )

    state_file: str = Field(
        default="livetax_state.json",
        description="Path to the JSON file holding the persisted app state"
    )
    audit_log_file: str = Field(
        default="livetax_audit.jsonl",
        description="Path to the append-only JSON-lines audit log"
    )

    @field_validator('state_file', 'audit_log_file')
    @classmethod
    def validate_parent_dir(cls, v: str) -> str:
        """Warn if the parent directory doesn't exist (but don't fail - might be mounted later)."""
        parent = Path(v).expanduser().parent
        if not parent.exists():
            import warnings
            warnings.warn(
                f"Storage directory not found at {parent}. "
                "Make sure it exists before running the application."
            )
        return v


class AppSettings(BaseSettings):
    """
    Application behavior: upload limits and tax defaults.

    Read from LIVETAX_* variables and the .env file.
    """

    model_config = SettingsConfigDict(
        env_prefix="LIVETAX_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    # File upload limits
    max_upload_size_mb: int = Field(
        default=10,
        ge=1,
        le=50,
        description="Maximum upload file size in MB"
    )
    max_files_per_upload: int = Field(
        default=5,
        ge=1,
        le=20,
        description="Maximum number of files accepted in one upload"
    )

    # Tax defaults
    default_assessment_year: str = Field(
        default="2024-25",
        pattern=r"^\d{4}-\d{2}$",
        description="Assessment year sent to the extractor when the profile has none"
    )
    # Placeholder: the real HRA exemption depends on salary, rent and city.
    hra_deduction_limit: Decimal = Field(
        default=Decimal("360000"),
        gt=0,
        description="Static HRA limit used for utilization tracking"
    )

    @property
    def max_upload_size_bytes(self) -> int:
        """Upload limit in bytes."""
        return self.max_upload_size_mb * 1024 * 1024


class Settings(BaseSettings):
    """
    Root settings container. Sub-settings are built on access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Sub-settings are loaded lazily to allow partial configuration

    @property
    def gemini(self) -> GeminiSettings:
        return GeminiSettings()

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Process-wide settings, built once.

    Tests call get_settings.cache_clear() after changing the environment.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Startup check: try to build every sub-settings group.

    Returns {name: ok} plus a "{name}_error" message for each failure.
    """
    results = {}

    settings = get_settings()

    for name in ("gemini", "storage", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
