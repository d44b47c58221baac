"""Combat round resolution.

One call resolves one player action against the active encounter:
the player's move, then the enemy's counter-attack unless the enemy is
already down. Damage is deterministic (attack minus defense); only a
flee attempt rolls dice.
"""

from __future__ import annotations

from dataclasses import dataclass

from dragon_engine.core.config import GameSettings
from dragon_engine.core.exceptions import CombatError
from dragon_engine.core.logging import get_logger
from dragon_engine.engine import stats
from dragon_engine.engine.dice import DiceRoller
from dragon_engine.models.catalog import Item
from dragon_engine.models.character import CharacterState, EncounterState
from dragon_engine.models.enums import CombatOutcome
from dragon_engine.models.game_state import CombatResult


logger = get_logger(__name__)


@dataclass(frozen=True)
class CombatRound:
    """Everything one combat round changed.

    Attributes:
        character: Character after the round.
        encounter: Encounter after the round.
        result: Damage summary for the response.
        notes: Player-facing account of the round.
        consumed_item: Potion used up this round.
        equipped_item: Item equipped mid-combat.
        replaced_item: Item that left its slot for ``equipped_item``.
    """

    character: CharacterState
    encounter: EncounterState
    result: CombatResult
    notes: str
    consumed_item: Item | None = None
    equipped_item: Item | None = None
    replaced_item: Item | None = None


class CombatResolver:
    """Resolves attack, use-item and flee actions.

    Example:
        >>> resolver = CombatResolver(DiceRoller(), flee_threshold=10)
        >>> round_ = resolver.attack(hero, EncounterState.start(goblin))
        >>> round_.result.enemy_damage
        8
    """

    def __init__(self, roller: DiceRoller, *, flee_threshold: int = 10) -> None:
        self.roller = roller
        self.flee_threshold = flee_threshold

    @classmethod
    def from_settings(cls, roller: DiceRoller, settings: GameSettings) -> CombatResolver:
        return cls(roller, flee_threshold=settings.flee_threshold)

    def attack(self, character: CharacterState, encounter: EncounterState) -> CombatRound:
        """Strike the enemy; it counter-attacks if it survives."""
        self._ensure_can_fight(character, encounter)
        enemy = encounter.enemy
        encounter, enemy_damage = stats.apply_damage(encounter, character.attack, enemy.defense)
        notes = [f"You strike the {enemy.name} for {enemy_damage} damage."]
        return self._enemy_response(character, encounter, enemy_damage=enemy_damage, notes=notes)

    def use_item(
        self,
        character: CharacterState,
        encounter: EncounterState,
        item: Item,
    ) -> CombatRound:
        """Drink a potion or equip an item; the enemy still acts."""
        self._ensure_can_fight(character, encounter)
        consumed: Item | None = None
        equipped: Item | None = None
        replaced: Item | None = None

        if item.is_potion:
            character, healed = stats.apply_heal(character, item.heal_amount)
            consumed = item
            notes = [f"You drink the {item.name} and recover {healed} HP."]
        elif item.is_equipable:
            outcome = stats.equip(character, item)
            character = outcome.character
            equipped = item
            replaced = outcome.replaced
            notes = [f"You ready the {item.name}."]
        else:
            raise CombatError(
                f"{item.name} cannot be used in combat",
                combatant_id=character.id,
                round_number=encounter.round_number,
            )

        round_ = self._enemy_response(character, encounter, enemy_damage=0, notes=notes)
        return CombatRound(
            character=round_.character,
            encounter=round_.encounter,
            result=round_.result,
            notes=round_.notes,
            consumed_item=consumed,
            equipped_item=equipped,
            replaced_item=replaced,
        )

    def flee(
        self,
        character: CharacterState,
        encounter: EncounterState,
        *,
        dice_roll: int | None = None,
    ) -> CombatRound:
        """Try to escape: a roll above the threshold ends combat, otherwise
        the enemy gets one free attack."""
        self._ensure_can_fight(character, encounter)
        roll = dice_roll if dice_roll is not None else self.roller.roll_d20()

        if roll > self.flee_threshold:
            logger.info("Flee succeeded", dice_roll=roll, threshold=self.flee_threshold)
            return CombatRound(
                character=character,
                encounter=encounter,
                result=CombatResult(
                    character_hp=character.current_hp,
                    enemy_hp=encounter.current_hp,
                    dice_roll=roll,
                    outcome=CombatOutcome.FLED,
                ),
                notes=f"You rolled {roll} and slip away from the {encounter.enemy.name}.",
            )

        logger.info("Flee failed", dice_roll=roll, threshold=self.flee_threshold)
        notes = [f"You rolled {roll} and fail to escape."]
        round_ = self._enemy_response(character, encounter, enemy_damage=0, notes=notes)
        return CombatRound(
            character=round_.character,
            encounter=round_.encounter,
            result=round_.result.model_copy(update={"dice_roll": roll}),
            notes=round_.notes,
        )

    def _enemy_response(
        self,
        character: CharacterState,
        encounter: EncounterState,
        *,
        enemy_damage: int,
        notes: list[str],
    ) -> CombatRound:
        enemy = encounter.enemy
        encounter = encounter.model_copy(update={"round_number": encounter.round_number + 1})
        character_damage = 0

        if encounter.is_defeated:
            outcome = CombatOutcome.VICTORY
            notes.append(f"The {enemy.name} falls!")
        else:
            character, character_damage = stats.apply_damage(
                character, enemy.attack, character.defense
            )
            notes.append(f"The {enemy.name} hits you for {character_damage} damage.")
            if character.is_defeated:
                outcome = CombatOutcome.DEFEAT
            else:
                outcome = CombatOutcome.ONGOING

        logger.info(
            "Combat round resolved",
            enemy=enemy.name,
            round=encounter.round_number,
            enemy_damage=enemy_damage,
            character_damage=character_damage,
            outcome=outcome,
        )
        return CombatRound(
            character=character,
            encounter=encounter,
            result=CombatResult(
                character_damage=character_damage,
                enemy_damage=enemy_damage,
                character_hp=character.current_hp,
                enemy_hp=encounter.current_hp,
                outcome=outcome,
            ),
            notes=" ".join(notes),
        )

    @staticmethod
    def _ensure_can_fight(character: CharacterState, encounter: EncounterState) -> None:
        if character.is_defeated or encounter.is_defeated:
            raise CombatError(
                "Combat is already decided",
                combatant_id=character.id,
                round_number=encounter.round_number,
            )


__all__ = [
    "CombatRound",
    "CombatResolver",
]
