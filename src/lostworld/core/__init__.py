"""Core module providing configuration, logging, and base exceptions.

Exports:
    Exceptions:
        LostWorldError: Base exception for all engine errors.
        OracleTransportError: Decision could not be obtained.
        DecisionValidationError: Decision rejected before execution.

    Configuration:
        Settings: Main application settings class.
        get_settings: Get the settings singleton.
        clear_settings_cache: Force settings reload.

    Logging:
        configure_logging: Set up application logging.
        configure_from_settings: Set up logging from Settings.
        turn_context: Bind the turn number while a turn runs.
        get_logger: Get a configured logger instance.
        bind_context: Add context to log entries.
        clear_context: Clear logging context.
"""

from __future__ import annotations

from lostworld.core.config import (
    EngineSettings,
    OracleSettings,
    RetrySettings,
    Settings,
    clear_settings_cache,
    get_settings,
)
from lostworld.core.exceptions import (
    ConfigurationError,
    DecisionValidationError,
    DuplicateEntityError,
    EntityGenerationError,
    EntityNotFoundError,
    EntityStoreError,
    LostWorldError,
    OracleConnectionError,
    OracleError,
    OracleRateLimitError,
    OracleResponseError,
    OracleTimeoutError,
    OracleTransportError,
    PlayerStateError,
    SchemaLibraryError,
    TimelineError,
    TurnError,
    TurnExecutionError,
    TurnInProgressError,
)
from lostworld.core.logging import (
    bind_context,
    clear_context,
    configure_from_settings,
    configure_logging,
    get_logger,
    turn_context,
    unbind_context,
)


__all__ = [
    # Base exception
    "LostWorldError",
    "ConfigurationError",
    # World state exceptions
    "EntityStoreError",
    "DuplicateEntityError",
    "EntityNotFoundError",
    "PlayerStateError",
    "TimelineError",
    "SchemaLibraryError",
    # Oracle exceptions
    "OracleError",
    "OracleTransportError",
    "OracleConnectionError",
    "OracleTimeoutError",
    "OracleRateLimitError",
    "OracleResponseError",
    "EntityGenerationError",
    # Turn exceptions
    "TurnError",
    "DecisionValidationError",
    "TurnInProgressError",
    "TurnExecutionError",
    # Configuration
    "Settings",
    "OracleSettings",
    "EngineSettings",
    "RetrySettings",
    "get_settings",
    "clear_settings_cache",
    # Logging
    "configure_logging",
    "configure_from_settings",
    "get_logger",
    "bind_context",
    "unbind_context",
    "clear_context",
    "turn_context",
]
