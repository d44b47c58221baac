"""Narrative oracle: the language-model boundary.

The oracle proposes events and narrates outcomes the engine has already
decided. It never touches game state. ``OpenRouterOracle`` talks to any
OpenAI-compatible endpoint; ``OfflineOracle`` serves canned events when
no model is configured.
"""

from __future__ import annotations

import json
import random
from typing import Any, Protocol, runtime_checkable

from openai import APIConnectionError, APIError, APIStatusError, OpenAI, RateLimitError
from pydantic import ValidationError as PydanticValidationError
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from dragon_engine.core.config import AIProviderSettings, get_settings
from dragon_engine.core.constants import FALLBACK_NARRATION
from dragon_engine.core.exceptions import (
    AIConnectionError,
    AIControlError,
    AIRateLimitError,
    AIResponseError,
)
from dragon_engine.core.logging import get_logger
from dragon_engine.dm.prompts import build_event_messages, build_narration_messages
from dragon_engine.models.enums import EventType
from dragon_engine.models.events import GeneratedEvent, OracleContext, StatEffects


logger = get_logger(__name__)


# =============================================================================
# Contract
# =============================================================================


@runtime_checkable
class NarrativeOracle(Protocol):
    """What the game service needs from a narrative model."""

    def generate_event(self, context: OracleContext) -> GeneratedEvent:
        """Propose the next event.

        Raises:
            AIControlError: On transport failure, timeout or malformed output.
        """
        ...

    def narrate(self, context: OracleContext) -> str:
        """Describe ``context.outcome`` in prose.

        Raises:
            AIControlError: On transport failure, timeout or empty output.
        """
        ...


# =============================================================================
# Fallback Events
# =============================================================================


NEUTRAL_EVENT = GeneratedEvent(
    description="You notice ancient runes glowing faintly on the walls, their meaning lost to time.",
    event_type=EventType.DESCRIPTIVE.value,
    effects=StatEffects(),
)

FALLBACK_EVENTS: list[GeneratedEvent] = [
    NEUTRAL_EVENT,
    GeneratedEvent(
        description="You find a small health potion tucked behind a loose stone.",
        event_type=EventType.ITEM_DROP.value,
        effects=StatEffects(health=5),
    ),
    GeneratedEvent(
        description="An old shield leans against the wall, still sturdy despite its age.",
        event_type=EventType.ITEM_DROP.value,
        effects=StatEffects(defense=3),
    ),
    GeneratedEvent(
        description="A sudden chill fills the air. You feel weakened by dark magic.",
        event_type=EventType.ENVIRONMENTAL.value,
        effects=StatEffects(health=-5, attack=-2),
    ),
    GeneratedEvent(
        description="You discover a blessed fountain. Its waters restore your vitality!",
        event_type=EventType.ENVIRONMENTAL.value,
        effects=StatEffects(health=10),
    ),
]


def fallback_event(*, allow_descriptive: bool = True, rng: random.Random | None = None) -> GeneratedEvent:
    """Pick a canned event, optionally excluding Descriptive ones."""
    pool = [
        event
        for event in FALLBACK_EVENTS
        if allow_descriptive or event.known_type != EventType.DESCRIPTIVE
    ]
    return (rng or random).choice(pool)


def _strip_code_fence(text: str) -> str:
    text = text.strip()
    if not text.startswith("```"):
        return text
    lines = []
    in_block = False
    for line in text.split("\n"):
        if line.startswith("```") and not in_block:
            in_block = True
            continue
        if line.startswith("```") and in_block:
            break
        if in_block:
            lines.append(line)
    return "\n".join(lines)


def parse_event_payload(text: str) -> GeneratedEvent:
    """Parse a model reply into a GeneratedEvent.

    Accepts a bare object, an array (first element wins), and replies
    wrapped in a markdown code fence.

    Raises:
        AIResponseError: If the reply is not JSON or lacks event, type or effects.
    """
    cleaned = _strip_code_fence(text)
    try:
        data: Any = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise AIResponseError(
            f"Failed to parse event JSON: {exc}",
            details={"response_preview": cleaned[:200]},
        ) from exc

    if isinstance(data, list):
        data = data[0] if data else None
    if not isinstance(data, dict) or not all(key in data for key in ("event", "type", "effects")):
        raise AIResponseError(
            "Invalid event structure",
            details={"response_preview": cleaned[:200]},
        )

    try:
        return GeneratedEvent.model_validate(data)
    except PydanticValidationError as exc:
        raise AIResponseError(
            f"Invalid event fields: {exc.error_count()} error(s)",
            details={"response_preview": cleaned[:200]},
        ) from exc


# =============================================================================
# Offline Oracle
# =============================================================================


class OfflineOracle:
    """Oracle that never calls a model.

    Events come from the canned list; narration echoes the decided outcome.
    """

    def __init__(self, *, seed: int | None = None) -> None:
        self._rng = random.Random(seed)

    def generate_event(self, context: OracleContext) -> GeneratedEvent:
        return fallback_event(rng=self._rng)

    def narrate(self, context: OracleContext) -> str:
        return context.outcome or FALLBACK_NARRATION


# =============================================================================
# OpenRouter Oracle
# =============================================================================


class OpenRouterOracle:
    """Oracle backed by an OpenAI-compatible chat completion API.

    Requests carry the configured timeout. Rate limits and connection
    failures are retried with exponential backoff; anything still failing
    surfaces as an AIControlError for the engine to fall back on.
    """

    def __init__(
        self,
        *,
        api_key: str | None = None,
        model: str | None = None,
        provider: str | None = None,
        base_url: str | None = None,
        temperature: float | None = None,
        max_output_tokens: int | None = None,
        timeout_seconds: float | None = None,
        max_retries: int | None = None,
        client: Any = None,
        retry_wait: Any = None,
        settings: AIProviderSettings | None = None,
    ) -> None:
        """Initialize the oracle.

        Args:
            api_key: API key. If None, read from settings for the provider.
            model: Model identifier.
            provider: ``openrouter`` or ``openai``.
            base_url: Endpoint override for openrouter.
            temperature: Sampling temperature.
            max_output_tokens: Completion token cap.
            timeout_seconds: Per-request timeout.
            max_retries: Attempts for retryable failures.
            client: Pre-built OpenAI client.
            retry_wait: tenacity wait strategy between attempts.
            settings: AI settings; loaded from the environment if None.
        """
        self._settings = settings or get_settings().ai
        self.provider = provider or self._settings.default_provider
        self.model = model or self._settings.model
        self.base_url = base_url or self._settings.base_url
        self.temperature = self._settings.temperature if temperature is None else temperature
        self.max_output_tokens = max_output_tokens or self._settings.max_output_tokens
        self.timeout_seconds = timeout_seconds or self._settings.timeout_seconds
        self.max_retries = max_retries or self._settings.max_retries
        self._api_key = api_key
        self._client: Any = client
        self._retry_wait = retry_wait or wait_exponential(multiplier=1, min=2, max=10)

    def _resolve_api_key(self) -> str | None:
        if self._api_key:
            return self._api_key
        key = (
            self._settings.openai_api_key
            if self.provider == "openai"
            else self._settings.openrouter_api_key
        )
        return key.get_secret_value() if key else None

    def _get_client(self) -> Any:
        """Get or create the OpenAI client for the configured provider."""
        if self._client is None:
            api_key = self._resolve_api_key()
            if not api_key:
                raise AIConnectionError(
                    "Narrative model API key not configured",
                    provider=self.provider,
                    details={"env_var": "DRAGON_ENGINE_OPENROUTER_API_KEY"},
                )

            if self.provider == "openai":
                self._client = OpenAI(
                    api_key=api_key,
                    timeout=self.timeout_seconds,
                    max_retries=0,
                )
            else:
                self._client = OpenAI(
                    api_key=api_key,
                    base_url=self.base_url,
                    timeout=self.timeout_seconds,
                    max_retries=0,
                    default_headers={"X-Title": "Dragon Engine"},
                )

        return self._client

    def _complete(self, messages: list[dict[str, str]], *, json_mode: bool) -> str:
        client = self._get_client()
        request: dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "temperature": self.temperature,
            "max_tokens": self.max_output_tokens,
        }
        if json_mode:
            request["response_format"] = {"type": "json_object"}

        @retry(
            retry=retry_if_exception_type((AIRateLimitError, AIConnectionError)),
            stop=stop_after_attempt(self.max_retries),
            wait=self._retry_wait,
            reraise=True,
        )
        def _call() -> str:
            try:
                response = client.chat.completions.create(**request)
            except RateLimitError as exc:
                logger.warning("Rate limited, retrying...", model=self.model)
                raise AIRateLimitError(
                    f"Rate limited by {self.provider}",
                    model=self.model,
                    provider=self.provider,
                ) from exc
            except APIConnectionError as exc:
                logger.warning("Model connection failed", model=self.model, error=str(exc))
                raise AIConnectionError(
                    f"Failed to connect to {self.provider}: {exc}",
                    model=self.model,
                    provider=self.provider,
                ) from exc
            except APIStatusError as exc:
                raise AIControlError(
                    f"{self.provider} API error: {exc}",
                    model=self.model,
                    provider=self.provider,
                    details={"status_code": exc.status_code},
                ) from exc
            except APIError as exc:
                raise AIResponseError(
                    f"{self.provider} returned an unusable response: {exc}",
                    model=self.model,
                    provider=self.provider,
                ) from exc

            if not response.choices:
                raise AIResponseError(
                    "Model returned no choices",
                    model=self.model,
                    provider=self.provider,
                )
            message = response.choices[0].message
            return (message.content if message is not None else None) or ""

        return _call()

    def generate_event(self, context: OracleContext) -> GeneratedEvent:
        text = self._complete(build_event_messages(context), json_mode=True)
        event = parse_event_payload(text)
        logger.info("Event generated", event_type=event.event_type, model=self.model)
        return event

    def narrate(self, context: OracleContext) -> str:
        text = self._complete(build_narration_messages(context), json_mode=False).strip()
        if not text:
            raise AIResponseError(
                "Model returned empty narration",
                model=self.model,
                provider=self.provider,
            )
        return text


def create_oracle(settings: AIProviderSettings | None = None) -> NarrativeOracle:
    """Build the oracle the settings ask for.

    Falls back to the offline oracle when the provider is ``offline`` or
    the provider's API key is missing.
    """
    settings = settings or get_settings().ai
    if settings.default_provider == "offline":
        return OfflineOracle()

    key = settings.openai_api_key if settings.default_provider == "openai" else settings.openrouter_api_key
    if key is None:
        logger.warning("No narrative model key configured, using offline oracle")
        return OfflineOracle()
    return OpenRouterOracle(settings=settings)


__all__ = [
    "NarrativeOracle",
    "OpenRouterOracle",
    "OfflineOracle",
    "NEUTRAL_EVENT",
    "FALLBACK_EVENTS",
    "fallback_event",
    "parse_event_payload",
    "create_oracle",
]
