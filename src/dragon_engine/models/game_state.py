"""Game state models for the dragon engine.

This module defines the persisted campaign record, the incoming player
action, and the tagged response returned to the UI.

Models:
    Campaign: Persisted campaign with its phase and transient play state.
    PlayerAction: A validated player intent.
    CombatResult: Damage exchanged in one combat round.
    GameStateView: UI snapshot of a campaign.
    GameServiceResponse: The response union, tagged by ``response_type``.
    GameValidation: Consistency report for a campaign.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, computed_field
from pydantic.alias_generators import to_camel

from dragon_engine.core.constants import D20_MAX, D20_MIN
from dragon_engine.models.catalog import Item
from dragon_engine.models.character import CharacterState, EncounterState
from dragon_engine.models.enums import (
    ActionType,
    CampaignStatus,
    CombatOutcome,
    Phase,
    ResponseType,
)
from dragon_engine.models.events import FinalOutcome, GeneratedEvent


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _camelize(value: Any) -> Any:
    if isinstance(value, dict):
        return {to_camel(key): _camelize(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_camelize(item) for item in value]
    return value


def _optional_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


# =============================================================================
# Campaign
# =============================================================================


class Campaign(BaseModel):
    """A persisted campaign.

    The pending event, pending item and encounter live on this record so
    that play survives a restart. At most one of them is set, matching
    the phase: event_choice, item_choice and combat respectively.

    Attributes:
        id: Campaign id.
        name: Display name.
        description: Optional blurb.
        scenario: Setting used for encounter tables and prompts.
        status: Lifecycle status.
        phase: Active phase.
        pending_event: Event awaiting accept/reject.
        pending_item: Item awaiting pick up/leave/equip.
        encounter: Enemy currently fought.
        descriptive_streak: Consecutive Descriptive events resolved.
    """

    model_config = ConfigDict(extra="ignore")

    id: int
    name: str
    description: str = ""
    scenario: str
    status: CampaignStatus = CampaignStatus.ACTIVE
    phase: Phase = Phase.EXPLORATION
    pending_event: GeneratedEvent | None = None
    pending_item: Item | None = None
    encounter: EncounterState | None = None
    descriptive_streak: int = Field(default=0, ge=0)
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @property
    def is_finished(self) -> bool:
        return self.status != CampaignStatus.ACTIVE


# =============================================================================
# Requests
# =============================================================================


class PlayerAction(BaseModel):
    """A player intent as the engine sees it.

    Accepts both ``campaign_id``/``action_type`` and the UI's camelCase
    keys. ``action_data`` is free-form; ``itemId`` and ``diceRoll`` are
    the keys the engine reads.
    """

    model_config = ConfigDict(
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    campaign_id: int = Field(gt=0)
    action_type: ActionType
    action_data: dict[str, Any] = Field(default_factory=dict)

    @property
    def item_id(self) -> int | None:
        return _optional_int(self.action_data.get("itemId", self.action_data.get("item_id")))

    @property
    def dice_roll(self) -> int | None:
        """Player-supplied roll override, only when it is a legal d20 face."""
        roll = _optional_int(self.action_data.get("diceRoll", self.action_data.get("dice_roll")))
        if roll is None or not D20_MIN <= roll <= D20_MAX:
            return None
        return roll


# =============================================================================
# Responses
# =============================================================================


class CombatResult(BaseModel):
    """Damage exchanged in one combat round.

    Attributes:
        character_damage: Damage the character took this round.
        enemy_damage: Damage the enemy took this round.
        character_hp: Character HP after the round.
        enemy_hp: Enemy HP after the round.
        dice_roll: Flee roll, when one was made.
        outcome: Encounter state after the round.
    """

    character_damage: int = 0
    enemy_damage: int = 0
    character_hp: int = 0
    enemy_hp: int = 0
    dice_roll: int | None = None
    outcome: CombatOutcome = CombatOutcome.ONGOING

    @computed_field  # type: ignore[prop-decorator]
    @property
    def combat_ended(self) -> bool:
        return self.outcome != CombatOutcome.ONGOING


class GameStateView(BaseModel):
    """Snapshot of a campaign for the UI."""

    campaign_id: int
    status: CampaignStatus
    current_phase: Phase
    character: CharacterState | None = None
    enemy: EncounterState | None = None
    pending_event: GeneratedEvent | None = None
    pending_item: Item | None = None
    inventory: list[Item] = Field(default_factory=list)


class GameServiceResponse(BaseModel):
    """Response of ``process_player_action``.

    ``response_type`` is decided once by the state machine; the UI
    switches on it instead of probing optional fields.
    """

    success: bool
    response_type: ResponseType
    game_state: GameStateView | None = None
    message: str = ""
    choices: list[str] = Field(default_factory=list)
    combat_result: CombatResult | None = None
    event_outcome: FinalOutcome | None = None
    error: str | None = None
    degraded: bool = False

    @classmethod
    def failure(
        cls,
        error: str,
        *,
        game_state: GameStateView | None = None,
        choices: list[str] | None = None,
    ) -> GameServiceResponse:
        """Build a rejected-request response."""
        return cls(
            success=False,
            response_type=ResponseType.ERROR,
            game_state=game_state,
            message=error,
            choices=choices or [],
            error=error,
        )

    def to_payload(self) -> dict[str, Any]:
        """Serialize to the camelCase wire contract, dropping empty optionals."""
        return _camelize(self.model_dump(mode="json", exclude_none=True))


class GameValidation(BaseModel):
    """Consistency report for a campaign."""

    is_valid: bool
    is_game_over: bool = False
    is_victory: bool = False
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


__all__ = [
    "Campaign",
    "PlayerAction",
    "CombatResult",
    "GameStateView",
    "GameServiceResponse",
    "GameValidation",
]
