"""Custom exception hierarchy for the dragon engine.

Every error raised by the engine inherits from DragonEngineError so the
game service can turn failures into response payloads at a single
boundary while keeping the domain-specific context in ``details``.

Example:
    >>> from dragon_engine.core.exceptions import RecordNotFoundError
    >>> raise RecordNotFoundError("Campaign not found", record_type="campaign", record_id=7)
"""

from __future__ import annotations

from typing import Any


class DragonEngineError(Exception):
    """Base exception for all dragon engine errors.

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
# Game Engine Domain Exceptions
# =============================================================================


class GameEngineError(DragonEngineError):
    """Base exception for all game engine errors.

    Raised when there are issues with phase transitions, combat
    resolution, or event resolution.
    """


class InvalidGameStateError(GameEngineError):
    """Raised when a campaign is in a state that cannot accept the action.

    Typical causes are acting on a finished campaign or a combat phase
    with no active encounter.
    """

    def __init__(
        self,
        message: str,
        *,
        current_state: str | None = None,
        expected_states: list[str] | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize invalid game state error with state context.

        Args:
            message: Human-readable error description.
            current_state: The current state identifier.
            expected_states: List of states that would have been valid.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if current_state:
            combined_details["current_state"] = current_state
        if expected_states:
            combined_details["expected_states"] = expected_states
        super().__init__(message, details=combined_details)


class InvalidActionError(InvalidGameStateError):
    """Raised when an action type is not allowed in the current phase."""

    def __init__(
        self,
        message: str,
        *,
        action_type: str | None = None,
        current_state: str | None = None,
        expected_states: list[str] | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize invalid action error.

        Args:
            message: Human-readable error description.
            action_type: The rejected action type.
            current_state: The phase the campaign is in.
            expected_states: Actions that the phase accepts.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if action_type:
            combined_details["action_type"] = action_type
        super().__init__(
            message,
            current_state=current_state,
            expected_states=expected_states,
            details=combined_details,
        )


class CombatError(GameEngineError):
    """Raised when combat resolution encounters an error."""

    def __init__(
        self,
        message: str,
        *,
        combatant_id: int | str | None = None,
        round_number: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize combat error with combat context.

        Args:
            message: Human-readable error description.
            combatant_id: Identifier of the combatant involved.
            round_number: Current combat round when error occurred.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if combatant_id is not None:
            combined_details["combatant_id"] = combatant_id
        if round_number is not None:
            combined_details["round_number"] = round_number
        super().__init__(message, details=combined_details)


class DiceRollError(GameEngineError):
    """Raised when dice rolling operations fail.

    This typically occurs for an inverted range or an exhausted
    scripted roll sequence.
    """

    def __init__(
        self,
        message: str,
        *,
        expression: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize dice roll error with expression context.

        Args:
            message: Human-readable error description.
            expression: The dice expression that caused the error.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if expression:
            combined_details["expression"] = expression
        super().__init__(message, details=combined_details)


class CampaignBusyError(GameEngineError):
    """Raised when another action holds the campaign lock past the timeout."""

    def __init__(
        self,
        message: str,
        *,
        campaign_id: int | None = None,
        timeout_seconds: float | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize busy error with lock context.

        Args:
            message: Human-readable error description.
            campaign_id: The contended campaign.
            timeout_seconds: How long the caller waited.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if campaign_id is not None:
            combined_details["campaign_id"] = campaign_id
        if timeout_seconds is not None:
            combined_details["timeout_seconds"] = timeout_seconds
        super().__init__(message, details=combined_details)


# =============================================================================
# Persistence Domain Exceptions
# =============================================================================


class PersistenceError(DragonEngineError):
    """Raised when the record store cannot complete an operation."""

    def __init__(
        self,
        message: str,
        *,
        operation: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize persistence error with operation context.

        Args:
            message: Human-readable error description.
            operation: Name of the backend operation that failed.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if operation:
            combined_details["operation"] = operation
        super().__init__(message, details=combined_details)


class RecordNotFoundError(PersistenceError):
    """Raised when a campaign, character, item or enemy id does not exist."""

    def __init__(
        self,
        message: str,
        *,
        record_type: str | None = None,
        record_id: int | str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize not-found error with record context.

        Args:
            message: Human-readable error description.
            record_type: Kind of record that was looked up.
            record_id: The missing id.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if record_type:
            combined_details["record_type"] = record_type
        if record_id is not None:
            combined_details["record_id"] = record_id
        super().__init__(message, details=combined_details)


# =============================================================================
# AI Control Domain Exceptions
# =============================================================================


class AIControlError(DragonEngineError):
    """Base exception for all narrative model errors.

    Raised when there are issues with model interactions, including
    API calls, response parsing, or content generation.
    """

    def __init__(
        self,
        message: str,
        *,
        model: str | None = None,
        provider: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize AI control error with model context.

        Args:
            message: Human-readable error description.
            model: Name of the AI model involved.
            provider: Name of the AI provider (e.g., 'openrouter', 'openai').
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if model:
            combined_details["model"] = model
        if provider:
            combined_details["provider"] = provider
        super().__init__(message, details=combined_details)


class AIConnectionError(AIControlError):
    """Raised when connection to an AI service fails or times out."""


class AIResponseError(AIControlError):
    """Raised when an AI response cannot be parsed into an event."""


class AIRateLimitError(AIControlError):
    """Raised when AI API rate limits are exceeded.

    This exception includes retry timing information when available.
    """

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
            model: Name of the AI model involved.
            provider: Name of the AI provider.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if retry_after_seconds is not None:
            combined_details["retry_after_seconds"] = retry_after_seconds
        super().__init__(message, model=model, provider=provider, details=combined_details)


# =============================================================================
# Configuration & Validation Exceptions
# =============================================================================


class ConfigurationError(DragonEngineError):
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


class ValidationError(DragonEngineError):
    """Raised when request data fails validation.

    This includes unknown action types, missing ids, and malformed
    action data coming from the UI.
    """

    def __init__(
        self,
        message: str,
        *,
        field_name: str | None = None,
        invalid_value: Any | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize validation error with field context.

        Args:
            message: Human-readable error description.
            field_name: Name of the field that failed validation.
            invalid_value: The value that failed validation.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if field_name:
            combined_details["field_name"] = field_name
        if invalid_value is not None:
            combined_details["invalid_value"] = invalid_value
        super().__init__(message, details=combined_details)


__all__ = [
    # Base exception
    "DragonEngineError",
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
    # Configuration exceptions
    "ConfigurationError",
    "ValidationError",
]
