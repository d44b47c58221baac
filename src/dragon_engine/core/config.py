"""Configuration management for the dragon engine.

This module provides centralized configuration management using pydantic-settings,
supporting environment variables, .env files, and runtime configuration overrides.
API keys are held as SecretStr.

Example:
    >>> from dragon_engine.core.config import get_settings
    >>> settings = get_settings()
    >>> settings.game.flee_threshold
    10

Environment Variables:
    DRAGON_ENGINE_OPENROUTER_API_KEY: OpenRouter API key
    DRAGON_ENGINE_OPENAI_API_KEY: OpenAI API key
    DRAGON_ENGINE_DATABASE_PATH: Path to the SQLite database
    DRAGON_ENGINE_GAME_FLEE_THRESHOLD: Roll a flee attempt must beat
    DRAGON_ENGINE_LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from dragon_engine.core.exceptions import ConfigurationError


class AIProviderSettings(BaseSettings):
    """Configuration for the narrative model connection.

    Attributes:
        openrouter_api_key: OpenRouter API key (primary provider).
        openai_api_key: OpenAI API key for the alternative provider.
        default_provider: Which provider the oracle talks to. ``offline``
            never calls a model and serves canned events.
        base_url: OpenAI-compatible endpoint used for openrouter.
        model: Model identifier sent with each completion.
        temperature: Sampling temperature for event generation.
        max_output_tokens: Completion token cap.
        max_retries: Maximum API retry attempts.
        timeout_seconds: Per-request timeout; the engine falls back when exceeded.
    """

    model_config = SettingsConfigDict(
        env_prefix="DRAGON_ENGINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    openrouter_api_key: SecretStr | None = Field(
        default=None,
        description="OpenRouter API key (primary)",
    )
    openai_api_key: SecretStr | None = Field(
        default=None,
        description="OpenAI API key",
    )
    default_provider: Literal["openrouter", "openai", "offline"] = Field(
        default="openrouter",
        description="Narrative model provider",
    )
    base_url: str = Field(
        default="https://openrouter.ai/api/v1",
        description="OpenAI-compatible endpoint for openrouter",
    )
    model: str = Field(
        default="google/gemini-2.0-flash-001",
        description="Narrative model identifier",
    )
    temperature: float = Field(
        default=0.9,
        ge=0.0,
        le=2.0,
        description="Sampling temperature",
    )
    max_output_tokens: int = Field(
        default=400,
        ge=16,
        le=4096,
        description="Completion token cap",
    )
    max_retries: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Maximum API retry attempts",
    )
    timeout_seconds: float = Field(
        default=15.0,
        gt=0,
        le=120,
        description="API request timeout",
    )

    @model_validator(mode="after")
    def validate_api_key_for_provider(self) -> "AIProviderSettings":
        """Ensure an explicitly chosen OpenAI provider has its key.

        OpenRouter without a key is allowed; the oracle factory drops to
        the offline oracle in that case.

        Raises:
            ConfigurationError: If openai is the provider but no key is set.
        """
        if self.default_provider == "openai" and not self.openai_api_key:
            raise ConfigurationError(
                "OpenAI is set as default provider but OPENAI_API_KEY is not configured",
                config_key="openai_api_key",
            )
        return self


class StorageSettings(BaseSettings):
    """Configuration for the SQLite record store.

    Attributes:
        database_path: Path to the SQLite database file.
        busy_timeout_seconds: How long a connection waits on a locked database.
        seed_catalog: Load races, classes, items and enemies on first start.
    """

    model_config = SettingsConfigDict(
        env_prefix="DRAGON_ENGINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    database_path: Path = Field(
        default=Path("data/dragon_engine.db"),
        description="Path to SQLite database",
    )
    busy_timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        le=60,
        description="SQLite busy timeout",
    )
    seed_catalog: bool = Field(
        default=True,
        description="Seed catalog tables when empty",
    )


class GameSettings(BaseSettings):
    """Configuration for game engine behavior.

    The tier multipliers form the event policy table: a boon is a positive
    effect component, a bane a negative one.

    Attributes:
        critical_failure_max: Highest roll that counts as a critical failure.
        critical_success_min: Lowest roll that counts as a critical success.
        graded_scaling: Scale regular-tier boons by ``1 + (roll - 10) / 10``.
        flee_threshold: A flee roll must be strictly above this to succeed.
        descriptive_streak_cap: Consecutive Descriptive events allowed.
        regenerate_attempts: Oracle retries when the streak cap is hit.
        recent_events_limit: Log entries handed to the oracle as history.
        low_health_fraction: HP share at which combat prompts for a potion.
        lock_timeout_seconds: Wait for the per-campaign lock before rejecting.
        default_scenario: Scenario used for campaigns created without one.
    """

    model_config = SettingsConfigDict(
        env_prefix="DRAGON_ENGINE_GAME_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    critical_failure_max: int = Field(default=5, ge=1, le=20)
    critical_success_min: int = Field(default=18, ge=1, le=20)
    graded_scaling: bool = Field(
        default=False,
        description="Graded multiplier for regular rolls",
    )

    critical_failure_boon_multiplier: float = Field(default=-1.0)
    critical_failure_bane_multiplier: float = Field(default=1.0)
    regular_boon_multiplier: float = Field(default=1.0)
    regular_bane_multiplier: float = Field(default=1.0)
    critical_success_boon_multiplier: float = Field(default=2.0)
    critical_success_bane_multiplier: float = Field(default=0.0)

    flee_threshold: int = Field(default=10, ge=1, le=20)
    descriptive_streak_cap: int = Field(default=2, ge=1)
    regenerate_attempts: int = Field(default=3, ge=1, le=10)
    recent_events_limit: int = Field(default=10, ge=0, le=100)
    low_health_fraction: float = Field(default=0.3, ge=0.0, le=1.0)
    lock_timeout_seconds: float = Field(default=5.0, gt=0, le=120)
    default_scenario: str = Field(default="deep dungeon chamber")

    @model_validator(mode="after")
    def validate_tier_thresholds(self) -> "GameSettings":
        """Ensure the critical bands do not overlap.

        Raises:
            ConfigurationError: If critical_failure_max >= critical_success_min.
        """
        if self.critical_failure_max >= self.critical_success_min:
            raise ConfigurationError(
                f"critical_failure_max ({self.critical_failure_max}) must be less than "
                f"critical_success_min ({self.critical_success_min})",
                config_key="critical_failure_max",
            )
        return self


class Settings(BaseSettings):
    """Main application settings aggregating all configuration domains.

    Attributes:
        app_name: Application name.
        app_version: Application version string.
        debug: Enable debug mode.
        log_level: Application logging level.
        log_json: Emit JSON log lines instead of console output.
        ai: Narrative model settings.
        storage: Record store settings.
        game: Game engine settings.
    """

    model_config = SettingsConfigDict(
        env_prefix="DRAGON_ENGINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_nested_delimiter="__",
    )

    app_name: str = Field(default="Dragon Engine", description="Application name")
    app_version: str = Field(default="0.1.0", description="Application version")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    log_json: bool = Field(default=False, description="JSON log output")

    ai: AIProviderSettings = Field(default_factory=AIProviderSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    game: GameSettings = Field(default_factory=GameSettings)

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return not self.debug


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the application settings singleton.

    Returns:
        The application Settings instance.

    Raises:
        ConfigurationError: If required configuration is missing or invalid.
    """
    try:
        return Settings()
    except Exception as exc:
        raise ConfigurationError(
            f"Failed to load application settings: {exc}",
            details={"original_error": str(exc)},
        ) from exc


def clear_settings_cache() -> None:
    """Clear the settings cache, forcing a reload on next access.

    Example:
        >>> clear_settings_cache()
        >>> settings = get_settings()  # Reloads from environment
    """
    get_settings.cache_clear()


__all__ = [
    "AIProviderSettings",
    "StorageSettings",
    "GameSettings",
    "Settings",
    "get_settings",
    "clear_settings_cache",
]
