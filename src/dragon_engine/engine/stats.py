"""Stat arithmetic shared by event and combat resolution.

Every function here is pure and total: it returns new model copies,
never raises on out-of-range numbers, and clamps results into
``[0, MAX_STAT]`` with ``current_hp <= max_hp``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TypeVar

from dragon_engine.core.constants import MAX_STAT
from dragon_engine.models.catalog import Item
from dragon_engine.models.character import CharacterState, EncounterState


Combatant = TypeVar("Combatant", CharacterState, EncounterState)


@dataclass(frozen=True)
class StatDelta:
    """Difference in equipment-driven stats.

    Attributes:
        attack: Attack change.
        defense: Defense change.
        hp_bonus: Max HP change.
    """

    attack: int = 0
    defense: int = 0
    hp_bonus: int = 0

    @property
    def is_zero(self) -> bool:
        return self.attack == 0 and self.defense == 0 and self.hp_bonus == 0


@dataclass(frozen=True)
class EquipResult:
    """Character after an equip plus the item that left the slot."""

    character: CharacterState
    delta: StatDelta
    replaced: Item | None


def clamp(value: int, minimum: int = 0, maximum: int = MAX_STAT) -> int:
    return max(minimum, min(maximum, value))


def compute_damage(raw_damage: int, defense: int) -> int:
    """Damage that gets through: ``max(0, raw - defense)`` on clamped inputs."""
    return max(0, clamp(raw_damage) - clamp(defense))


def apply_damage(target: Combatant, raw_damage: int, defense: int = 0) -> tuple[Combatant, int]:
    """Reduce ``target`` HP by the effective damage, never below 0.

    Returns:
        The damaged copy and the effective damage.
    """
    damage = compute_damage(raw_damage, defense)
    new_hp = clamp(target.current_hp - damage, 0, target.max_hp)
    return target.model_copy(update={"current_hp": new_hp}), damage


def apply_heal(target: Combatant, amount: int) -> tuple[Combatant, int]:
    """Restore up to ``amount`` HP without exceeding max HP.

    Returns:
        The healed copy and the HP actually restored.
    """
    new_hp = clamp(target.current_hp + clamp(amount), 0, target.max_hp)
    return target.model_copy(update={"current_hp": new_hp}), new_hp - target.current_hp


def apply_vitality(character: CharacterState, amount: int) -> CharacterState:
    """Apply an event's health effect.

    A positive amount raises max HP and current HP together; a negative
    amount is damage that ignores defense.
    """
    if amount >= 0:
        new_max = clamp(character.max_hp + amount)
        new_hp = clamp(character.current_hp + amount, 0, new_max)
        return character.model_copy(update={"max_hp": new_max, "current_hp": new_hp})
    damaged, _ = apply_damage(character, -amount, 0)
    return damaged


def item_stats(item: Item | None) -> StatDelta:
    if item is None:
        return StatDelta()
    return StatDelta(attack=item.attack, defense=item.defense, hp_bonus=item.hp_bonus)


def equip_delta(old: Item | None, new: Item | None) -> StatDelta:
    """Stat change of swapping ``old`` for ``new`` in one slot."""
    if old is not None and new is not None and old.id == new.id:
        return StatDelta()
    before = item_stats(old)
    after = item_stats(new)
    return StatDelta(
        attack=after.attack - before.attack,
        defense=after.defense - before.defense,
        hp_bonus=after.hp_bonus - before.hp_bonus,
    )


def apply_delta(character: CharacterState, delta: StatDelta) -> CharacterState:
    """Apply an equipment delta.

    A gained HP bonus is added to current HP too; a lost bonus only trims
    current HP down to the new maximum.
    """
    new_max = clamp(character.max_hp + delta.hp_bonus)
    if delta.hp_bonus > 0:
        new_hp = character.current_hp + delta.hp_bonus
    else:
        new_hp = character.current_hp
    return character.model_copy(
        update={
            "attack": clamp(character.attack + delta.attack),
            "defense": clamp(character.defense + delta.defense),
            "max_hp": new_max,
            "current_hp": clamp(new_hp, 0, new_max),
        }
    )


def equip(character: CharacterState, item: Item) -> EquipResult:
    """Put ``item`` in its slot, replacing and un-applying the prior occupant.

    Equipping the item that already occupies the slot changes nothing.
    Items without a slot (potions) leave the character untouched.
    """
    slot = item.slot
    if slot is None:
        return EquipResult(character=character, delta=StatDelta(), replaced=None)

    current = character.equipment.in_slot(slot)
    if current is not None and current.id == item.id:
        return EquipResult(character=character, delta=StatDelta(), replaced=None)

    delta = equip_delta(current, item)
    updated = apply_delta(character, delta).model_copy(
        update={"equipment": character.equipment.with_item(slot, item)}
    )
    return EquipResult(character=updated, delta=delta, replaced=current)


__all__ = [
    "StatDelta",
    "EquipResult",
    "clamp",
    "compute_damage",
    "apply_damage",
    "apply_heal",
    "apply_vitality",
    "item_stats",
    "equip_delta",
    "apply_delta",
    "equip",
]
