"""
Centralized settings for factspine.

Manifesto:
    One validated, cached settings object replaces ad-hoc ``os.getenv``
    calls spread across the collector and the parser. Values come from
    ``FACTSPINE_*`` environment variables or a ``.env`` file and are
    validated once at startup.

Examples:
    >>> settings = get_settings()
    >>> settings.rate_limit_ms
    1000

Tags:
    factspine, configuration, settings, pydantic, caching
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from factspine import __version__
from factspine.core.errors import ConfigError

SUPPORTED_RAW_STORES = ("fs",)


class FactSpineSettings(BaseSettings):
    """factspine runtime configuration.

    All fields can be set via ``FACTSPINE_*`` environment variables (e.g.
    ``FACTSPINE_DATABASE_URL=postgresql://...``) or a ``.env`` file.
    """

    model_config = SettingsConfigDict(
        env_prefix="FACTSPINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Database ─────────────────────────────────────────────────
    database_url: str = Field(default="sqlite:///data/factspine.db")
    database_echo: bool = Field(default=False)

    # ── Blob area ────────────────────────────────────────────────
    raw_store: str = Field(default="fs", description="Blob backend (only 'fs' is supported)")
    raw_fs_dir: Path = Field(default=Path("data/raw"))

    # ── Acquisition ──────────────────────────────────────────────
    rate_limit_ms: int = Field(default=1000, ge=0)
    http_timeout_seconds: float = Field(default=60.0, gt=0)
    user_agent: str = Field(
        default=f"factspine/{__version__} (civic transparency collector)",
    )

    # ── Logging ──────────────────────────────────────────────────
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="json")

    @field_validator("raw_store")
    @classmethod
    def _check_raw_store(cls, value: str) -> str:
        if value not in SUPPORTED_RAW_STORES:
            raise ValueError(
                f"unsupported raw store {value!r}; expected one of {SUPPORTED_RAW_STORES}"
            )
        return value

    @field_validator("log_format")
    @classmethod
    def _check_log_format(cls, value: str) -> str:
        if value not in ("json", "console"):
            raise ValueError("log_format must be 'json' or 'console'")
        return value

    @property
    def json_logs(self) -> bool:
        return self.log_format == "json"


_settings_cache: dict[str, FactSpineSettings] = {}


def get_settings(*, _force_reload: bool = False) -> FactSpineSettings:
    """Load, validate, and cache a :class:`FactSpineSettings` instance.

    Raises:
        ConfigError: If any environment value fails validation.
    """
    if not _force_reload and "default" in _settings_cache:
        return _settings_cache["default"]

    try:
        settings = FactSpineSettings()
    except ValidationError as e:
        raise ConfigError(f"Invalid factspine settings: {e}", cause=e) from e

    _settings_cache["default"] = settings
    return settings


def clear_settings_cache() -> None:
    """Clear the settings cache (primarily for testing)."""
    _settings_cache.clear()


__all__ = ["FactSpineSettings", "clear_settings_cache", "get_settings"]
