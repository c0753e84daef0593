"""Custom exception hierarchy for the LostWorld turn engine.

This module defines the exception hierarchy used across the engine. All
exceptions inherit from LostWorldError, enabling unified error handling
at the application boundary while preserving domain-specific context.

The turn engine distinguishes three failure classes:

- Transport failures (OracleTransportError and subclasses) are fatal to a
  turn. The turn counter is left untouched so the caller may retry.
- Validation failures (DecisionValidationError) are fatal to a turn and are
  raised before any store is touched.
- Per-effect failures (EntityNotFoundError, EntityGenerationError) are
  recovered locally by the turn controller: the single effect is skipped.

Example:
    >>> from lostworld.core.exceptions import DecisionValidationError
    >>> raise DecisionValidationError(
    ...     "Decision rejected", problems=["turnGoal.changeReason is required"]
    ... )
"""

from __future__ import annotations

from typing import Any


class LostWorldError(Exception):
    """Base exception for all LostWorld errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary containing additional error context.
    """

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        """Initialize the base exception.

        Args:
            message: Human-readable error description.
            details: Optional dictionary containing additional error context.
        """
        self.message = message
        self.details = details or {}
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the exception message with optional details.

        Returns:
            Formatted error message including any provided details.
        """
        if self.details:
            detail_str = ", ".join(f"{k}={v!r}" for k, v in self.details.items())
            return f"{self.message} [{detail_str}]"
        return self.message

    def __repr__(self) -> str:
        """Return a detailed string representation of the exception."""
        return f"{self.__class__.__name__}(message={self.message!r}, details={self.details!r})"


# =============================================================================
# Configuration Exceptions
# =============================================================================


class ConfigurationError(LostWorldError):
    """Raised when application configuration is invalid."""

    def __init__(
        self,
        message: str,
        *,
        config_key: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize configuration error with config key context.

        Args:
            message: Human-readable error description.
            config_key: The configuration key that caused the error.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if config_key:
            combined_details["config_key"] = config_key
        super().__init__(message, details=combined_details)


# =============================================================================
# World State Exceptions
# =============================================================================


class EntityStoreError(LostWorldError):
    """Base exception for entity memory store errors."""

    def __init__(
        self,
        message: str,
        *,
        entity_id: str | None = None,
        entity_kind: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize entity store error with entity context.

        Args:
            message: Human-readable error description.
            entity_id: Identifier of the entity involved.
            entity_kind: Kind of the entity (item, npc, location, region).
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if entity_id:
            combined_details["entity_id"] = entity_id
        if entity_kind:
            combined_details["entity_kind"] = entity_kind
        super().__init__(message, details=combined_details)


class DuplicateEntityError(EntityStoreError):
    """Raised when adding an entity whose id is already registered."""


class EntityNotFoundError(EntityStoreError):
    """Raised when an effect references an entity that does not exist.

    The turn controller treats this as a stale reference from the oracle
    and skips the single effect.
    """


class TimelineError(LostWorldError):
    """Raised when a timeline entry cannot be constructed."""


class PlayerStateError(LostWorldError):
    """Raised when an effect targets a player stat that does not exist."""

    def __init__(
        self,
        message: str,
        *,
        stat_name: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        combined_details = details or {}
        if stat_name:
            combined_details["stat_name"] = stat_name
        super().__init__(message, details=combined_details)


class SchemaLibraryError(LostWorldError):
    """Raised when an attribute definition is malformed."""

    def __init__(
        self,
        message: str,
        *,
        kind: str | None = None,
        category: str | None = None,
        attribute_name: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize schema library error with definition context.

        Args:
            message: Human-readable error description.
            kind: Entity kind the definition belongs to.
            category: Category name within the kind.
            attribute_name: Attribute being defined or resolved.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if kind:
            combined_details["kind"] = kind
        if category:
            combined_details["category"] = category
        if attribute_name:
            combined_details["attribute_name"] = attribute_name
        super().__init__(message, details=combined_details)


# =============================================================================
# Oracle Exceptions
# =============================================================================


class OracleError(LostWorldError):
    """Base exception for all decision oracle errors."""

    def __init__(
        self,
        message: str,
        *,
        model: str | None = None,
        provider: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize oracle error with model context.

        Args:
            message: Human-readable error description.
            model: Name of the model involved.
            provider: Name of the provider (e.g., 'openrouter', 'openai').
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if model:
            combined_details["model"] = model
        if provider:
            combined_details["provider"] = provider
        super().__init__(message, details=combined_details)


class OracleTransportError(OracleError):
    """Raised when a decision could not be obtained from the oracle.

    Covers unreachable services and malformed wire responses. Fatal to
    the turn; the turn counter is not advanced.
    """


class OracleConnectionError(OracleTransportError):
    """Raised when the oracle service cannot be reached."""


class OracleTimeoutError(OracleTransportError):
    """Raised when the oracle does not answer within the configured timeout."""


class OracleRateLimitError(OracleTransportError):
    """Raised when the oracle provider rejects the request for rate limiting."""

    def __init__(
        self,
        message: str,
        *,
        retry_after_seconds: float | None = None,
        model: str | None = None,
        provider: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize rate limit error with retry context.

        Args:
            message: Human-readable error description.
            retry_after_seconds: Seconds to wait before retrying.
            model: Name of the model involved.
            provider: Name of the provider.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if retry_after_seconds is not None:
            combined_details["retry_after_seconds"] = retry_after_seconds
        super().__init__(message, model=model, provider=provider, details=combined_details)


class OracleResponseError(OracleTransportError):
    """Raised when the oracle answer is not a parseable decision object."""


class EntityGenerationError(OracleError):
    """Raised when a single entity spawn cannot be generated."""


# =============================================================================
# Turn Exceptions
# =============================================================================


class TurnError(LostWorldError):
    """Base exception for turn processing errors."""

    def __init__(
        self,
        message: str,
        *,
        turn: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize turn error with turn context.

        Args:
            message: Human-readable error description.
            turn: Turn number being processed.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if turn is not None:
            combined_details["turn"] = turn
        super().__init__(message, details=combined_details)


class DecisionValidationError(TurnError):
    """Raised when a decision is structurally invalid.

    Validation collects every problem before raising, so a single
    exception describes the whole rejected decision.

    Attributes:
        problems: Human-readable description of each violated rule.
    """

    def __init__(
        self,
        message: str,
        *,
        problems: list[str] | None = None,
        turn: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize validation error with the list of problems.

        Args:
            message: Human-readable error description.
            problems: Every structural rule the decision violated.
            turn: Turn number being processed.
            details: Optional dictionary containing additional error context.
        """
        self.problems = list(problems or [])
        combined_details = details or {}
        if self.problems:
            combined_details["problems"] = self.problems
        super().__init__(message, turn=turn, details=combined_details)


class TurnInProgressError(TurnError):
    """Raised when a turn is requested while another is still in flight."""


class TurnExecutionError(TurnError):
    """Raised when applying a validated decision fails unexpectedly."""


__all__ = [
    "LostWorldError",
    "ConfigurationError",
    "EntityStoreError",
    "DuplicateEntityError",
    "EntityNotFoundError",
    "TimelineError",
    "PlayerStateError",
    "SchemaLibraryError",
    "OracleError",
    "OracleTransportError",
    "OracleConnectionError",
    "OracleTimeoutError",
    "OracleRateLimitError",
    "OracleResponseError",
    "EntityGenerationError",
    "TurnError",
    "DecisionValidationError",
    "TurnInProgressError",
    "TurnExecutionError",
]
