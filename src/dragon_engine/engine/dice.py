"""Dice rolling for outcome checks.

Rolls go through the d20 library so every roll has a parseable
expression in the logs. ``FixedSequenceRoller`` replays scripted
faces for deterministic play-throughs.
"""

from __future__ import annotations

import random
from collections import deque
from collections.abc import Iterable

import d20

from dragon_engine.core.config import GameSettings
from dragon_engine.core.constants import D20_MAX, D20_MIN
from dragon_engine.core.exceptions import DiceRollError
from dragon_engine.core.logging import get_logger
from dragon_engine.models.enums import RollTier


logger = get_logger(__name__)


def range_expression(minimum: int, maximum: int) -> str:
    """Build the d20 expression for a uniform roll over ``[minimum, maximum]``.

    Example:
        >>> range_expression(1, 20)
        '1d20'
        >>> range_expression(5, 10)
        '1d6+4'
    """
    sides = maximum - minimum + 1
    offset = minimum - 1
    if offset > 0:
        return f"1d{sides}+{offset}"
    if offset < 0:
        return f"1d{sides}-{-offset}"
    return f"1d{sides}"


class DiceRoller:
    """Uniform integer rolls plus d20 tier classification.

    Example:
        >>> roller = DiceRoller(seed=7)
        >>> 1 <= roller.roll_d20() <= 20
        True
    """

    def __init__(
        self,
        *,
        seed: int | None = None,
        critical_failure_max: int = 5,
        critical_success_min: int = 18,
    ) -> None:
        """Initialize the dice roller.

        Args:
            seed: Optional random seed for reproducible rolls.
            critical_failure_max: Highest d20 face that is a critical failure.
            critical_success_min: Lowest d20 face that is a critical success.
        """
        if critical_failure_max >= critical_success_min:
            raise DiceRollError(
                "Critical failure band overlaps critical success band",
                details={
                    "critical_failure_max": critical_failure_max,
                    "critical_success_min": critical_success_min,
                },
            )
        self._seed = seed
        self.critical_failure_max = critical_failure_max
        self.critical_success_min = critical_success_min
        if seed is not None:
            random.seed(seed)
        logger.debug("DiceRoller initialized", seed=seed)

    @classmethod
    def from_settings(cls, settings: GameSettings, *, seed: int | None = None) -> DiceRoller:
        return cls(
            seed=seed,
            critical_failure_max=settings.critical_failure_max,
            critical_success_min=settings.critical_success_min,
        )

    def roll(self, minimum: int, maximum: int) -> int:
        """Roll a uniform integer in ``[minimum, maximum]`` inclusive.

        Raises:
            DiceRollError: If ``minimum > maximum``.
        """
        if minimum > maximum:
            raise DiceRollError(
                f"Invalid roll range: {minimum} > {maximum}",
                details={"minimum": minimum, "maximum": maximum},
            )
        if minimum == maximum:
            return minimum

        expression = range_expression(minimum, maximum)
        try:
            result = d20.roll(expression)
        except d20.RollError as exc:
            raise DiceRollError(f"Failed to roll: {exc}", expression=expression) from exc

        logger.debug("Dice rolled", expression=expression, total=result.total)
        return result.total

    def roll_d20(self) -> int:
        return self.roll(D20_MIN, D20_MAX)

    def classify(self, roll: int) -> RollTier:
        """Band a d20 result into critical failure, regular or critical success."""
        if roll <= self.critical_failure_max:
            return RollTier.CRITICAL_FAILURE
        if roll >= self.critical_success_min:
            return RollTier.CRITICAL_SUCCESS
        return RollTier.REGULAR


class FixedSequenceRoller(DiceRoller):
    """Roller that returns scripted results in order.

    Used for replays and tests. Each scripted value must fall inside the
    requested range.
    """

    def __init__(self, rolls: Iterable[int], **kwargs: int) -> None:
        super().__init__(**kwargs)
        self._rolls: deque[int] = deque(rolls)
        self.history: list[int] = []

    @property
    def remaining(self) -> int:
        return len(self._rolls)

    def push(self, *rolls: int) -> None:
        self._rolls.extend(rolls)

    def roll(self, minimum: int, maximum: int) -> int:
        if minimum > maximum:
            raise DiceRollError(
                f"Invalid roll range: {minimum} > {maximum}",
                details={"minimum": minimum, "maximum": maximum},
            )
        if not self._rolls:
            raise DiceRollError(
                "Scripted roll sequence exhausted",
                expression=range_expression(minimum, maximum),
            )
        value = self._rolls.popleft()
        if not minimum <= value <= maximum:
            raise DiceRollError(
                f"Scripted roll {value} outside [{minimum}, {maximum}]",
                expression=range_expression(minimum, maximum),
            )
        self.history.append(value)
        return value


__all__ = [
    "DiceRoller",
    "FixedSequenceRoller",
    "range_expression",
]
