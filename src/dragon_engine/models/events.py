"""Event models: oracle output, resolution outcomes, and the event log.

Models:
    StatEffects: Health/attack/defense deltas carried by an event.
    GeneratedEvent: A narrative event proposed by the oracle.
    FinalOutcome: What resolving (or declining) an event did.
    GameEvent: One append-only log entry.
    OracleContext: Everything the oracle is told about the current moment.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from dragon_engine.models.catalog import Enemy
from dragon_engine.models.character import CharacterState
from dragon_engine.models.enums import EventType, RollTier


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StatEffects(BaseModel):
    """Stat deltas of an event. Positive values help the character."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    health: int = 0
    attack: int = 0
    defense: int = 0

    @field_validator("health", "attack", "defense", mode="before")
    @classmethod
    def coerce_number(cls, value: Any) -> int:
        """Accept model output such as ``"5"``, ``4.6`` or ``null``."""
        if value is None or value == "":
            return 0
        try:
            return int(round(float(value)))
        except (TypeError, ValueError):
            return 0

    @property
    def is_zero(self) -> bool:
        return self.health == 0 and self.attack == 0 and self.defense == 0

    def describe(self) -> str:
        """Compact form used in prompts and log text, e.g. ``HP +5, DEF -2``."""
        parts = []
        for label, value in (("HP", self.health), ("ATK", self.attack), ("DEF", self.defense)):
            if value:
                parts.append(f"{label} {value:+d}")
        return ", ".join(parts)


class GeneratedEvent(BaseModel):
    """A narrative event waiting for the player's decision.

    ``event_type`` stays a plain string so an unrecognised type from the
    model survives parsing; the resolver treats it as narrative only.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    description: str = Field(
        min_length=1,
        validation_alias=AliasChoices("description", "event"),
    )
    event_type: str = Field(
        default=EventType.DESCRIPTIVE.value,
        validation_alias=AliasChoices("event_type", "type"),
    )
    effects: StatEffects = Field(default_factory=StatEffects)
    item_id: int | None = Field(
        default=None,
        validation_alias=AliasChoices("item_id", "itemId"),
    )

    @property
    def known_type(self) -> EventType | None:
        return EventType.parse(self.event_type)


class FinalOutcome(BaseModel):
    """Result of resolving an event. Same shape on every path.

    Attributes:
        accepted: Whether the player accepted the event.
        resulting_stats: Character after the outcome.
        applied: Deltas actually applied after tier scaling.
        dice_roll: The outcome roll, None when no roll was made.
        tier: Band of ``dice_roll``.
        item_equipped_id: Item equipped as part of the outcome.
        item_stowed_id: Non-equipable item that went to the inventory.
        notes: Player-facing summary.
    """

    accepted: bool
    resulting_stats: CharacterState
    applied: StatEffects = Field(default_factory=StatEffects)
    dice_roll: int | None = None
    tier: RollTier | None = None
    item_equipped_id: int | None = None
    item_stowed_id: int | None = None
    notes: str = ""


class GameEvent(BaseModel):
    """One entry of a campaign's append-only event log."""

    model_config = ConfigDict(extra="ignore")

    id: int | None = None
    campaign_id: int
    event_number: int = Field(default=0, ge=0)
    event_type: EventType
    message: str
    data: dict[str, Any] | None = None
    created_at: datetime = Field(default_factory=_utcnow)


class OracleContext(BaseModel):
    """Inputs for one oracle call.

    Attributes:
        character: Current character snapshot.
        enemy: Enemy in play, if any.
        recent_events: Latest log entries, oldest first.
        scenario: Where the party is.
        trigger: What they are doing when the event happens.
        purpose: ``event`` for a new event, otherwise a narration cue.
        outcome: Mechanical facts the narration must respect.
    """

    character: CharacterState
    enemy: Enemy | None = None
    recent_events: list[GameEvent] = Field(default_factory=list)
    scenario: str
    trigger: str | None = None
    purpose: str = "event"
    outcome: str | None = None


__all__ = [
    "StatEffects",
    "GeneratedEvent",
    "FinalOutcome",
    "GameEvent",
    "OracleContext",
]
