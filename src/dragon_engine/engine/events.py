"""Event resolution: turn an accepted or declined event into stat changes.

Accepted events roll a d20, band the roll into a tier, and scale the
event's effects through the tier policy table. Declined events roll
nothing and change nothing.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from dragon_engine.core.config import GameSettings
from dragon_engine.core.logging import get_logger
from dragon_engine.engine import stats
from dragon_engine.engine.dice import DiceRoller
from dragon_engine.models.catalog import Item
from dragon_engine.models.character import CharacterState
from dragon_engine.models.enums import EventType, RollTier
from dragon_engine.models.events import FinalOutcome, GeneratedEvent, StatEffects


logger = get_logger(__name__)


@dataclass(frozen=True)
class TierPolicy:
    """Multipliers for one roll tier.

    Attributes:
        boon_multiplier: Applied to positive effect components.
        bane_multiplier: Applied to negative effect components.
    """

    boon_multiplier: float
    bane_multiplier: float


DEFAULT_TIER_POLICIES: dict[RollTier, TierPolicy] = {
    RollTier.CRITICAL_FAILURE: TierPolicy(boon_multiplier=-1.0, bane_multiplier=1.0),
    RollTier.REGULAR: TierPolicy(boon_multiplier=1.0, bane_multiplier=1.0),
    RollTier.CRITICAL_SUCCESS: TierPolicy(boon_multiplier=2.0, bane_multiplier=0.0),
}

_TIER_LABELS = {
    RollTier.CRITICAL_FAILURE: "a critical failure",
    RollTier.REGULAR: "a steady result",
    RollTier.CRITICAL_SUCCESS: "a critical success",
}


def _round_half_away(value: float) -> int:
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def tier_policies_from_settings(settings: GameSettings) -> dict[RollTier, TierPolicy]:
    return {
        RollTier.CRITICAL_FAILURE: TierPolicy(
            boon_multiplier=settings.critical_failure_boon_multiplier,
            bane_multiplier=settings.critical_failure_bane_multiplier,
        ),
        RollTier.REGULAR: TierPolicy(
            boon_multiplier=settings.regular_boon_multiplier,
            bane_multiplier=settings.regular_bane_multiplier,
        ),
        RollTier.CRITICAL_SUCCESS: TierPolicy(
            boon_multiplier=settings.critical_success_boon_multiplier,
            bane_multiplier=settings.critical_success_bane_multiplier,
        ),
    }


class EventResolver:
    """Resolves generated events against a character.

    Example:
        >>> resolver = EventResolver(FixedSequenceRoller([12]))
        >>> outcome = resolver.resolve(hero, event, accepted=True)
        >>> outcome.dice_roll
        12
    """

    def __init__(
        self,
        roller: DiceRoller,
        *,
        policies: dict[RollTier, TierPolicy] | None = None,
        graded_scaling: bool = False,
    ) -> None:
        self.roller = roller
        self.policies = policies or dict(DEFAULT_TIER_POLICIES)
        self.graded_scaling = graded_scaling

    @classmethod
    def from_settings(cls, roller: DiceRoller, settings: GameSettings) -> EventResolver:
        return cls(
            roller,
            policies=tier_policies_from_settings(settings),
            graded_scaling=settings.graded_scaling,
        )

    def scale(self, effects: StatEffects, roll: int) -> tuple[StatEffects, RollTier]:
        """Scale ``effects`` for a d20 ``roll``.

        Returns:
            The scaled effects and the tier the roll fell in.
        """
        tier = self.roller.classify(roll)
        policy = self.policies[tier]
        boon = policy.boon_multiplier
        if tier == RollTier.REGULAR and self.graded_scaling:
            boon = 1 + (roll - 10) / 10

        def _scaled(value: int) -> int:
            if value > 0:
                return _round_half_away(value * boon)
            if value < 0:
                return _round_half_away(value * policy.bane_multiplier)
            return 0

        return (
            StatEffects(
                health=_scaled(effects.health),
                attack=_scaled(effects.attack),
                defense=_scaled(effects.defense),
            ),
            tier,
        )

    def resolve(
        self,
        character: CharacterState,
        event: GeneratedEvent,
        *,
        accepted: bool,
        item: Item | None = None,
        dice_roll: int | None = None,
    ) -> FinalOutcome:
        """Resolve ``event`` for ``character``.

        Args:
            character: Character before the event.
            event: The pending event.
            accepted: False skips the event with no roll and no change.
            item: Catalog item referenced by ``event.item_id``, if any.
            dice_roll: Player-supplied d20 result; rolled when None.

        Returns:
            The outcome, including the character after all changes.
        """
        if not accepted:
            logger.info("Event declined", event_type=event.event_type)
            return FinalOutcome(
                accepted=False,
                resulting_stats=character,
                notes="You decide to leave it be and move on.",
            )

        event_type = event.known_type
        if event_type is None or (event_type == EventType.DESCRIPTIVE and item is None):
            logger.info("Narrative-only event", event_type=event.event_type)
            return FinalOutcome(
                accepted=True,
                resulting_stats=character,
                notes="You take it in. Nothing about you changes.",
            )

        roll = dice_roll if dice_roll is not None else self.roller.roll_d20()
        applied, tier = self.scale(event.effects, roll)

        updated = stats.apply_vitality(character, applied.health)
        updated = stats.apply_delta(
            updated,
            stats.StatDelta(attack=applied.attack, defense=applied.defense),
        )

        notes = [f"You rolled {roll}, {_TIER_LABELS[tier]}."]
        if not applied.is_zero:
            notes.append(f"Effects: {applied.describe()}.")

        item_equipped_id: int | None = None
        item_stowed_id: int | None = None
        if item is not None:
            if item.is_equipable:
                result = stats.equip(updated, item)
                updated = result.character
                item_equipped_id = item.id
                notes.append(f"You equip the {item.name}.")
            else:
                item_stowed_id = item.id
                notes.append(f"You stow the {item.name}.")

        logger.info(
            "Event resolved",
            event_type=event_type,
            dice_roll=roll,
            tier=tier,
            health=applied.health,
            attack=applied.attack,
            defense=applied.defense,
        )
        return FinalOutcome(
            accepted=True,
            resulting_stats=updated,
            applied=applied,
            dice_roll=roll,
            tier=tier,
            item_equipped_id=item_equipped_id,
            item_stowed_id=item_stowed_id,
            notes=" ".join(notes),
        )


__all__ = [
    "TierPolicy",
    "DEFAULT_TIER_POLICIES",
    "EventResolver",
    "tier_policies_from_settings",
]
