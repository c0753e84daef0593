"""Configuration management for the LostWorld turn engine.

Configuration is loaded with pydantic-settings from environment variables
and ``.env`` files. API keys are held as SecretStr.

Example:
    >>> from lostworld.core.config import get_settings
    >>> settings = get_settings()
    >>> settings.engine.max_entity_generations
    10

Environment Variables:
    LOSTWORLD_ORACLE_OPENROUTER_API_KEY: OpenRouter API key
    LOSTWORLD_ORACLE_OPENAI_API_KEY: OpenAI API key
    LOSTWORLD_ORACLE_MODEL: Model used for turn decisions
    LOSTWORLD_ORACLE_TIMEOUT_SECONDS: Timeout for the single decision request
    LOSTWORLD_ENGINE_WORLD_CONTEXT_LOOKBACK: Past turns included as world context
    LOSTWORLD_RETRY_MAX_ATTEMPTS: Attempts the turn runner makes per turn
    LOSTWORLD_LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from lostworld.core.constants import (
    MAX_ENTITY_GENERATIONS_PER_TURN,
    MAX_HISTORY_PER_ENTITY,
    WORLD_CONTEXT_LOOKBACK_TURNS,
)
from lostworld.core.exceptions import ConfigurationError


OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"


class OracleSettings(BaseSettings):
    """Configuration for the decision oracle connection.

    Attributes:
        provider: Which OpenAI-compatible provider to talk to.
        openrouter_api_key: OpenRouter API key.
        openai_api_key: OpenAI API key.
        base_url: Override for the provider endpoint.
        model: Model identifier used for turn decisions.
        generation_model: Model identifier used for entity spawns.
        temperature: Sampling temperature for decisions.
        timeout_seconds: Timeout for the single decision request.
        max_tokens: Upper bound on response tokens.
    """

    model_config = SettingsConfigDict(
        env_prefix="LOSTWORLD_ORACLE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    provider: Literal["openrouter", "openai"] = Field(
        default="openrouter",
        description="OpenAI-compatible provider for the oracle",
    )
    openrouter_api_key: SecretStr | None = Field(
        default=None,
        description="OpenRouter API key",
    )
    openai_api_key: SecretStr | None = Field(
        default=None,
        description="OpenAI API key",
    )
    base_url: str | None = Field(
        default=None,
        description="Provider endpoint override",
    )
    model: str = Field(
        default="google/gemini-2.5-pro",
        description="Model used for turn decisions",
    )
    generation_model: str = Field(
        default="google/gemini-2.5-flash-lite",
        description="Model used for entity generation",
    )
    temperature: float = Field(
        default=0.7,
        ge=0.0,
        le=2.0,
        description="Sampling temperature",
    )
    timeout_seconds: float = Field(
        default=60.0,
        gt=0,
        le=300,
        description="Decision request timeout",
    )
    max_tokens: int = Field(
        default=4096,
        ge=256,
        le=32768,
        description="Maximum response tokens",
    )

    @model_validator(mode="after")
    def validate_api_key_for_provider(self) -> "OracleSettings":
        """Ensure an explicitly selected OpenAI provider has a key.

        OpenRouter is allowed to start without a key so tests and offline
        tooling can construct settings; the oracle raises at call time.

        Returns:
            Self if validation passes.

        Raises:
            ConfigurationError: If provider is 'openai' and no key is set.
        """
        if self.provider == "openai" and not self.openai_api_key:
            raise ConfigurationError(
                "OpenAI is set as oracle provider but OPENAI_API_KEY is not configured",
                config_key="openai_api_key",
            )
        return self

    @property
    def resolved_base_url(self) -> str | None:
        """Endpoint the client should use (None means the SDK default)."""
        if self.base_url:
            return self.base_url.rstrip("/")
        if self.provider == "openrouter":
            return OPENROUTER_BASE_URL
        return None

    @property
    def api_key(self) -> str | None:
        """Plain-text API key for the selected provider."""
        secret = self.openrouter_api_key if self.provider == "openrouter" else self.openai_api_key
        return secret.get_secret_value() if secret else None


class EngineSettings(BaseSettings):
    """Configuration for turn engine behaviour.

    Attributes:
        starting_turn: Turn number a new controller starts from.
        max_history_per_entity: History entries kept per entity.
        max_entity_generations: Spawns allowed in a single decision.
        world_context_lookback: Past turns of world context for the oracle.
        rules_document_path: Optional file holding the static rules document.
    """

    model_config = SettingsConfigDict(
        env_prefix="LOSTWORLD_ENGINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    starting_turn: int = Field(
        default=1,
        ge=0,
        description="Turn number a new controller starts from",
    )
    max_history_per_entity: int = Field(
        default=MAX_HISTORY_PER_ENTITY,
        ge=1,
        le=10_000,
        description="History entries kept per entity",
    )
    max_entity_generations: int = Field(
        default=MAX_ENTITY_GENERATIONS_PER_TURN,
        ge=0,
        le=MAX_ENTITY_GENERATIONS_PER_TURN,
        description="Spawns allowed per decision",
    )
    world_context_lookback: int | None = Field(
        default=WORLD_CONTEXT_LOOKBACK_TURNS,
        ge=1,
        description="Past turns of world context (None = unlimited)",
    )
    rules_document_path: Path | None = Field(
        default=None,
        description="File holding the static rules document",
    )

    def load_rules_document(self) -> str:
        """Read the rules document, or return an empty string if unset.

        Raises:
            ConfigurationError: If the configured file cannot be read.
        """
        if self.rules_document_path is None:
            return ""
        try:
            return self.rules_document_path.read_text(encoding="utf-8")
        except OSError as exc:
            raise ConfigurationError(
                f"Cannot read rules document: {exc}",
                config_key="rules_document_path",
            ) from exc


class RetrySettings(BaseSettings):
    """Caller-side retry policy for failed turns.

    Attributes:
        max_attempts: Attempts per turn, including the first one.
        wait_min_seconds: Lower bound of the exponential backoff.
        wait_max_seconds: Upper bound of the exponential backoff.
    """

    model_config = SettingsConfigDict(
        env_prefix="LOSTWORLD_RETRY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    max_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts per turn",
    )
    wait_min_seconds: float = Field(
        default=1.0,
        ge=0.0,
        description="Minimum backoff between attempts",
    )
    wait_max_seconds: float = Field(
        default=10.0,
        ge=0.0,
        description="Maximum backoff between attempts",
    )

    @model_validator(mode="after")
    def validate_wait_bounds(self) -> "RetrySettings":
        """Ensure the backoff bounds are ordered.

        Raises:
            ConfigurationError: If wait_min_seconds > wait_max_seconds.
        """
        if self.wait_min_seconds > self.wait_max_seconds:
            raise ConfigurationError(
                f"wait_min_seconds ({self.wait_min_seconds}) must not exceed "
                f"wait_max_seconds ({self.wait_max_seconds})",
                config_key="wait_min_seconds",
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
        oracle: Decision oracle settings.
        engine: Turn engine settings.
        retry: Caller-side retry settings.
    """

    model_config = SettingsConfigDict(
        env_prefix="LOSTWORLD_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_nested_delimiter="__",
    )

    app_name: str = Field(
        default="LostWorld",
        description="Application name",
    )
    app_version: str = Field(
        default="0.1.0",
        description="Application version",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    log_json: bool = Field(
        default=False,
        description="Emit JSON log lines",
    )

    oracle: OracleSettings = Field(default_factory=OracleSettings)
    engine: EngineSettings = Field(default_factory=EngineSettings)
    retry: RetrySettings = Field(default_factory=RetrySettings)

    @property
    def is_production(self) -> bool:
        """True if not in debug mode."""
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
    except ConfigurationError:
        raise
    except Exception as exc:
        raise ConfigurationError(
            f"Failed to load application settings: {exc}",
            details={"original_error": str(exc)},
        ) from exc


def clear_settings_cache() -> None:
    """Clear the settings cache, forcing a reload on next access."""
    get_settings.cache_clear()


__all__ = [
    "OPENROUTER_BASE_URL",
    "OracleSettings",
    "EngineSettings",
    "RetrySettings",
    "Settings",
    "get_settings",
    "clear_settings_cache",
]
