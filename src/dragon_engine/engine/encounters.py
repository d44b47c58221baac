"""Encounter trigger policy for exploration.

When the player continues or searches, a d20 is looked up in the
scenario's table. The table splits the twenty faces into bands, in this
order: combat, item, event. Faces left over are quiet.

    default continue:  1-4 combat | 5-8 item | 9-18 event | 19-20 quiet
    default search:    1-2 combat | 3-10 item | 11-18 event | 19-20 quiet
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, model_validator

from dragon_engine.core.constants import D20_MAX
from dragon_engine.core.exceptions import ConfigurationError
from dragon_engine.core.logging import get_logger
from dragon_engine.engine.dice import DiceRoller
from dragon_engine.models.enums import ActionType


logger = get_logger(__name__)

DEFAULT_SCENARIO_KEY = "default"


class EncounterKind(StrEnum):
    """What exploring turned up."""

    COMBAT = "combat"
    ITEM = "item"
    EVENT = "event"
    QUIET = "quiet"


class EncounterTable(BaseModel):
    """Number of d20 faces given to each encounter kind."""

    model_config = ConfigDict(frozen=True)

    combat: int = Field(ge=0, le=D20_MAX)
    item: int = Field(ge=0, le=D20_MAX)
    event: int = Field(ge=0, le=D20_MAX)

    @model_validator(mode="after")
    def validate_faces(self) -> "EncounterTable":
        if self.combat + self.item + self.event > D20_MAX:
            raise ConfigurationError(
                "Encounter table assigns more than twenty faces",
                config_key="encounter_table",
                details={"combat": self.combat, "item": self.item, "event": self.event},
            )
        return self

    @property
    def quiet(self) -> int:
        return D20_MAX - self.combat - self.item - self.event

    def pick(self, roll: int) -> EncounterKind:
        if roll <= self.combat:
            return EncounterKind.COMBAT
        if roll <= self.combat + self.item:
            return EncounterKind.ITEM
        if roll <= self.combat + self.item + self.event:
            return EncounterKind.EVENT
        return EncounterKind.QUIET


class ScenarioTables(BaseModel):
    """Tables for the two exploring actions of one scenario."""

    model_config = ConfigDict(frozen=True)

    continue_table: EncounterTable
    search_table: EncounterTable


DEFAULT_ENCOUNTER_TABLES: dict[str, ScenarioTables] = {
    DEFAULT_SCENARIO_KEY: ScenarioTables(
        continue_table=EncounterTable(combat=4, item=4, event=10),
        search_table=EncounterTable(combat=2, item=8, event=8),
    ),
    "deep dungeon chamber": ScenarioTables(
        continue_table=EncounterTable(combat=6, item=3, event=9),
        search_table=EncounterTable(combat=3, item=7, event=8),
    ),
    "underground crypt": ScenarioTables(
        continue_table=EncounterTable(combat=6, item=2, event=10),
        search_table=EncounterTable(combat=4, item=6, event=8),
    ),
    "abandoned tower": ScenarioTables(
        continue_table=EncounterTable(combat=3, item=6, event=9),
        search_table=EncounterTable(combat=2, item=10, event=6),
    ),
}


@dataclass(frozen=True)
class EncounterDecision:
    kind: EncounterKind
    roll: int


class EncounterPolicy:
    """Decides what a continue or search action runs into."""

    def __init__(
        self,
        roller: DiceRoller,
        tables: dict[str, ScenarioTables] | None = None,
    ) -> None:
        self.roller = roller
        self.tables = tables if tables is not None else dict(DEFAULT_ENCOUNTER_TABLES)
        if DEFAULT_SCENARIO_KEY not in self.tables:
            raise ConfigurationError(
                "Encounter tables need a 'default' entry",
                config_key="encounter_tables",
            )

    def table_for(self, scenario: str, action_type: ActionType) -> EncounterTable:
        tables = self.tables.get(scenario.strip().lower(), self.tables[DEFAULT_SCENARIO_KEY])
        if action_type == ActionType.SEARCH:
            return tables.search_table
        return tables.continue_table

    def decide(
        self,
        scenario: str,
        action_type: ActionType,
        *,
        roll: int | None = None,
    ) -> EncounterDecision:
        """Roll (unless given) and look the result up for ``scenario``."""
        if roll is None:
            roll = self.roller.roll_d20()
        kind = self.table_for(scenario, action_type).pick(roll)
        logger.info("Encounter decided", scenario=scenario, action=action_type, roll=roll, kind=kind)
        return EncounterDecision(kind=kind, roll=roll)


__all__ = [
    "EncounterKind",
    "EncounterTable",
    "ScenarioTables",
    "EncounterDecision",
    "EncounterPolicy",
    "DEFAULT_ENCOUNTER_TABLES",
]
