"""Pydantic models for the dragon engine.

Modules:
    enums: Phases, action types, event types and response tags.
    catalog: Static items, enemies, races and classes.
    character: The character and the active encounter.
    events: Oracle events, outcomes and the event log.
    game_state: Campaign record, player action and service response.
"""

from __future__ import annotations

from dragon_engine.models.catalog import CharacterClass, Enemy, Item, Race, StatBlock
from dragon_engine.models.character import CharacterState, EncounterState, Equipment
from dragon_engine.models.enums import (
    ActionType,
    CampaignStatus,
    CombatOutcome,
    EquipmentSlot,
    EventType,
    ItemType,
    Phase,
    ResponseType,
    RollTier,
)
from dragon_engine.models.events import (
    FinalOutcome,
    GameEvent,
    GeneratedEvent,
    OracleContext,
    StatEffects,
)
from dragon_engine.models.game_state import (
    Campaign,
    CombatResult,
    GameServiceResponse,
    GameStateView,
    GameValidation,
    PlayerAction,
)


__all__ = [
    # Enums
    "ActionType",
    "CampaignStatus",
    "CombatOutcome",
    "EquipmentSlot",
    "EventType",
    "ItemType",
    "Phase",
    "ResponseType",
    "RollTier",
    # Catalog
    "StatBlock",
    "Race",
    "CharacterClass",
    "Item",
    "Enemy",
    # Combatants
    "Equipment",
    "CharacterState",
    "EncounterState",
    # Events
    "StatEffects",
    "GeneratedEvent",
    "FinalOutcome",
    "GameEvent",
    "OracleContext",
    # Game state
    "Campaign",
    "PlayerAction",
    "CombatResult",
    "GameStateView",
    "GameServiceResponse",
    "GameValidation",
]
