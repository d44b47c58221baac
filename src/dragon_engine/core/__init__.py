"""Core module providing configuration, logging, and base exceptions.

Exports:
    Exceptions:
        DragonEngineError: Base exception for all application errors.
        ValidationError: Request validation errors.
        RecordNotFoundError: Missing campaign/character/catalog rows.

    Configuration:
        Settings: Main application settings class.
        get_settings: Get the settings singleton.
        clear_settings_cache: Force settings reload.

    Logging:
        configure_logging: Set up application logging.
        get_logger: Get a configured logger instance.
        bind_context: Add context to log entries.
        clear_context: Clear logging context.
"""

from __future__ import annotations

from dragon_engine.core.config import (
    AIProviderSettings,
    GameSettings,
    Settings,
    StorageSettings,
    clear_settings_cache,
    get_settings,
)
from dragon_engine.core.exceptions import (
    AIConnectionError,
    AIControlError,
    AIRateLimitError,
    AIResponseError,
    CampaignBusyError,
    CombatError,
    ConfigurationError,
    DiceRollError,
    DragonEngineError,
    GameEngineError,
    InvalidActionError,
    InvalidGameStateError,
    PersistenceError,
    RecordNotFoundError,
    ValidationError,
)
from dragon_engine.core.logging import (
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
)


__all__ = [
    # Base exception
    "DragonEngineError",
    # Configuration exceptions
    "ConfigurationError",
    "ValidationError",
    # Game engine exceptions
    "GameEngineError",
    "InvalidGameStateError",
    "InvalidActionError",
    "CombatError",
    "DiceRollError",
    "CampaignBusyError",
    # Persistence exceptions
    "PersistenceError",
    "RecordNotFoundError",
    # AI control exceptions
    "AIControlError",
    "AIConnectionError",
    "AIResponseError",
    "AIRateLimitError",
    # Configuration
    "Settings",
    "AIProviderSettings",
    "StorageSettings",
    "GameSettings",
    "get_settings",
    "clear_settings_cache",
    # Logging
    "configure_logging",
    "get_logger",
    "bind_context",
    "clear_context",
]
