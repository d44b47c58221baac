"""Enumeration types for the dragon engine.

These enums are the closed vocabularies of the game: phases, action
types, event types, item kinds, and the response tags the UI switches on.
"""

from __future__ import annotations

from enum import StrEnum


class Phase(StrEnum):
    """The single active phase of a campaign."""

    EXPLORATION = "exploration"
    EVENT_CHOICE = "event_choice"
    ITEM_CHOICE = "item_choice"
    COMBAT = "combat"


class ActionType(StrEnum):
    """Player intents accepted by the game service."""

    CONTINUE = "continue"
    SEARCH = "search"
    ATTACK = "attack"
    USE_ITEM = "use_item"
    PICKUP_ITEM = "pickup_item"
    REJECT_ITEM = "reject_item"
    EQUIP_ITEM = "equip_item"
    ACCEPT_EVENT = "accept_event"
    REJECT_EVENT = "reject_event"
    FLEE = "flee"


class EventType(StrEnum):
    """Kinds of narrative events, as spelled in the event log."""

    DESCRIPTIVE = "Descriptive"
    ENVIRONMENTAL = "Environmental"
    COMBAT = "Combat"
    ITEM_DROP = "Item_Drop"

    @classmethod
    def parse(cls, value: str | None) -> EventType | None:
        """Match a model-supplied type name, ignoring case and separators.

        Returns:
            The matching EventType, or None for anything unrecognised.
        """
        if not value:
            return None
        normalized = value.strip().lower().replace(" ", "_").replace("-", "_")
        for member in cls:
            if member.value.lower() == normalized:
                return member
        return None


class ItemType(StrEnum):
    """Catalog item kinds."""

    POTION = "potion"
    WEAPON = "weapon"
    ARMOR = "armor"
    SHIELD = "shield"


class EquipmentSlot(StrEnum):
    """Slots a character can fill with one item each."""

    WEAPON = "weapon"
    ARMOR = "armor"
    SHIELD = "shield"


class CampaignStatus(StrEnum):
    """Lifecycle of a campaign."""

    ACTIVE = "active"
    GAME_OVER = "game_over"
    COMPLETED = "completed"


class RollTier(StrEnum):
    """Outcome band of a d20 roll."""

    CRITICAL_FAILURE = "critical_failure"
    REGULAR = "regular"
    CRITICAL_SUCCESS = "critical_success"


class CombatOutcome(StrEnum):
    """State of an encounter after one round."""

    ONGOING = "ongoing"
    VICTORY = "victory"
    DEFEAT = "defeat"
    FLED = "fled"


class ResponseType(StrEnum):
    """Tag of the response union consumed by the UI."""

    COMBAT = "combat"
    ITEM = "item"
    EQUIPMENT = "equipment"
    STORY = "story"
    POTION_PROMPT = "potion_prompt"
    ERROR = "error"


__all__ = [
    "Phase",
    "ActionType",
    "EventType",
    "ItemType",
    "EquipmentSlot",
    "CampaignStatus",
    "RollTier",
    "CombatOutcome",
    "ResponseType",
]
