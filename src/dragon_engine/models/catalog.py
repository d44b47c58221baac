"""Catalog models: static reference data looked up by id.

Items, enemies, races and classes never change during play. They are
frozen so an encounter or an equipment slot can hold one safely.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from dragon_engine.models.enums import EquipmentSlot, ItemType


_ITEM_SLOTS: dict[ItemType, EquipmentSlot] = {
    ItemType.WEAPON: EquipmentSlot.WEAPON,
    ItemType.ARMOR: EquipmentSlot.ARMOR,
    ItemType.SHIELD: EquipmentSlot.SHIELD,
}


class StatBlock(BaseModel):
    """Base health, attack and defense shared by races and classes."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: int = Field(description="Catalog id")
    name: str = Field(description="Display name")
    health: int = Field(ge=0, description="Base health contribution")
    attack: int = Field(ge=0, description="Base attack contribution")
    defense: int = Field(ge=0, description="Base defense contribution")
    sprite_path: str | None = Field(default=None, description="UI sprite")


class Race(StatBlock):
    """A playable race."""


class CharacterClass(StatBlock):
    """A playable class."""


class Item(BaseModel):
    """A catalog item.

    Weapons carry attack, shields defense, armor an hp bonus; potions
    carry a heal amount and are consumed on use.

    Attributes:
        id: Catalog id.
        name: Display name.
        item_type: Which kind of item this is.
        attack: Attack granted while equipped.
        defense: Defense granted while equipped.
        hp_bonus: Max HP granted while equipped.
        heal_amount: HP restored when a potion is used.
        description: Flavor text.
        sprite_path: UI sprite.
        rarity: 0 common, higher is rarer.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: int = Field(description="Catalog id")
    name: str = Field(min_length=1, description="Display name")
    item_type: ItemType = Field(description="Item kind")
    attack: int = Field(default=0, ge=0)
    defense: int = Field(default=0, ge=0)
    hp_bonus: int = Field(default=0, ge=0)
    heal_amount: int = Field(default=0, ge=0)
    description: str = Field(default="")
    sprite_path: str | None = Field(default=None)
    rarity: int = Field(default=0, ge=0)

    @property
    def slot(self) -> EquipmentSlot | None:
        """Equipment slot this item occupies, None for potions."""
        return _ITEM_SLOTS.get(self.item_type)

    @property
    def is_equipable(self) -> bool:
        return self.slot is not None

    @property
    def is_potion(self) -> bool:
        return self.item_type == ItemType.POTION


class Enemy(BaseModel):
    """A catalog enemy.

    Attributes:
        id: Catalog id.
        name: Display name.
        health: Starting and maximum health.
        attack: Raw damage per hit before the target's defense.
        defense: Subtracted from incoming damage.
        sprite_path: UI sprite.
        is_boss: Boss-tier enemy.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: int = Field(description="Catalog id")
    name: str = Field(min_length=1, description="Display name")
    health: int = Field(ge=1, description="Starting health")
    attack: int = Field(ge=0)
    defense: int = Field(ge=0)
    sprite_path: str | None = Field(default=None)
    is_boss: bool = Field(default=False)


__all__ = [
    "StatBlock",
    "Race",
    "CharacterClass",
    "Item",
    "Enemy",
]
