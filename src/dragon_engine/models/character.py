"""Combatant models: the player character and the active enemy.

Both carry ``current_hp``/``max_hp`` so the stat calculator can treat
them uniformly. Out-of-range hit points are clamped on validation
rather than rejected.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from dragon_engine.models.catalog import Enemy, Item
from dragon_engine.models.enums import EquipmentSlot


def _clamp_hit_points(data: Any) -> Any:
    if isinstance(data, dict) and "current_hp" in data and "max_hp" in data:
        max_hp = max(0, int(data["max_hp"]))
        current_hp = min(max(0, int(data["current_hp"])), max_hp)
        data = {**data, "max_hp": max_hp, "current_hp": current_hp}
    return data


class Equipment(BaseModel):
    """What a character is wearing and wielding. One item per slot."""

    model_config = ConfigDict(frozen=True)

    weapon: Item | None = None
    armor: Item | None = None
    shield: Item | None = None

    def in_slot(self, slot: EquipmentSlot) -> Item | None:
        return getattr(self, slot.value)

    def with_item(self, slot: EquipmentSlot, item: Item | None) -> Equipment:
        """Return a copy with ``slot`` holding ``item``."""
        return self.model_copy(update={slot.value: item})

    def equipped(self) -> list[Item]:
        return [item for item in (self.weapon, self.armor, self.shield) if item is not None]


class CharacterState(BaseModel):
    """The player character as the engine sees it.

    Invariant: ``0 <= current_hp <= max_hp``. Stats already include the
    bonuses of everything in ``equipment``.

    Attributes:
        id: Character id.
        campaign_id: Owning campaign.
        name: Display name.
        current_hp: Current hit points.
        max_hp: Maximum hit points.
        attack: Damage dealt before the target's defense.
        defense: Subtracted from incoming damage.
        race_id: Catalog race the base stats came from.
        class_id: Catalog class the base stats came from.
        equipment: Occupied equipment slots.
    """

    model_config = ConfigDict(extra="ignore")

    id: int
    campaign_id: int
    name: str = Field(min_length=1)
    current_hp: int = Field(ge=0)
    max_hp: int = Field(ge=0)
    attack: int = Field(ge=0)
    defense: int = Field(ge=0)
    race_id: int | None = None
    class_id: int | None = None
    equipment: Equipment = Field(default_factory=Equipment)

    @model_validator(mode="before")
    @classmethod
    def clamp_hit_points(cls, data: Any) -> Any:
        return _clamp_hit_points(data)

    @property
    def is_defeated(self) -> bool:
        return self.current_hp <= 0

    @property
    def hp_fraction(self) -> float:
        """Current HP as a share of max HP (0.0 when max is 0)."""
        if self.max_hp <= 0:
            return 0.0
        return self.current_hp / self.max_hp


class EncounterState(BaseModel):
    """The enemy currently fought, with its running health.

    Attributes:
        enemy: Catalog enemy.
        current_hp: Remaining health.
        max_hp: Health at the start of the encounter.
        round_number: Completed combat rounds.
    """

    model_config = ConfigDict(extra="ignore")

    enemy: Enemy
    current_hp: int = Field(ge=0)
    max_hp: int = Field(ge=0)
    round_number: int = Field(default=0, ge=0)

    @model_validator(mode="before")
    @classmethod
    def clamp_hit_points(cls, data: Any) -> Any:
        return _clamp_hit_points(data)

    @classmethod
    def start(cls, enemy: Enemy) -> EncounterState:
        """Open an encounter with the enemy at full health."""
        return cls(enemy=enemy, current_hp=enemy.health, max_hp=enemy.health)

    @property
    def is_defeated(self) -> bool:
        return self.current_hp <= 0


__all__ = [
    "Equipment",
    "CharacterState",
    "EncounterState",
]
