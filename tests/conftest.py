"""Pytest configuration and shared fixtures.

This module provides common fixtures and configuration for all tests
in the dragon engine test suite.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

import pytest


if TYPE_CHECKING:
    from collections.abc import Callable, Generator
    from pathlib import Path

    from dragon_engine.engine.game_service import GameService
    from dragon_engine.models.catalog import Enemy, Item
    from dragon_engine.models.character import CharacterState
    from dragon_engine.models.events import GeneratedEvent, OracleContext
    from dragon_engine.models.game_state import Campaign
    from dragon_engine.storage.database import SQLiteBackend


# Seeded catalog ids, in catalog order.
SMALL_POTION_ID = 1
SHORT_SWORD_ID = 3
LONG_BOW_ID = 4
LEATHER_ARMOUR_ID = 6
HUMAN_ID = 1
WARRIOR_ID = 1


# =============================================================================
# Oracle Doubles
# =============================================================================


class ScriptedOracle:
    """NarrativeOracle that replays queued events and records its inputs.

    ``generate_event`` returns queued events in order, then repeats the
    last one. Set ``fail_events``/``fail_narration`` to raise the way a
    broken model connection would.
    """

    def __init__(
        self,
        events: Iterable[GeneratedEvent] = (),
        *,
        narration: str | None = None,
        fail_events: bool = False,
        fail_narration: bool = False,
    ) -> None:
        self.events: deque[GeneratedEvent] = deque(events)
        self.narration = narration
        self.fail_events = fail_events
        self.fail_narration = fail_narration
        self.event_contexts: list[OracleContext] = []
        self.narration_contexts: list[OracleContext] = []
        self._last: GeneratedEvent | None = None

    def generate_event(self, context: OracleContext) -> GeneratedEvent:
        from dragon_engine.core.exceptions import AIConnectionError
        from dragon_engine.dm.oracle import NEUTRAL_EVENT

        self.event_contexts.append(context)
        if self.fail_events:
            raise AIConnectionError("model unreachable", provider="test")
        if self.events:
            self._last = self.events.popleft()
        return self._last or NEUTRAL_EVENT

    def narrate(self, context: OracleContext) -> str:
        from dragon_engine.core.exceptions import AIResponseError

        self.narration_contexts.append(context)
        if self.fail_narration:
            raise AIResponseError("empty narration", provider="test")
        return self.narration or context.outcome or ""


def make_event(
    event_type: str = "Environmental",
    *,
    health: int = 0,
    attack: int = 0,
    defense: int = 0,
    item_id: int | None = None,
    description: str = "A cold wind sweeps through the hall.",
) -> GeneratedEvent:
    from dragon_engine.models.events import GeneratedEvent, StatEffects

    return GeneratedEvent(
        description=description,
        event_type=event_type,
        effects=StatEffects(health=health, attack=attack, defense=defense),
        item_id=item_id,
    )


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None, None, None]:
    """Reset the settings cache before and after each test."""
    from dragon_engine.core.config import clear_settings_cache

    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def mock_env_vars(monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Set up mock environment variables for testing.

    Returns:
        Dictionary of environment variables that were set.
    """
    env_vars = {
        "DRAGON_ENGINE_OPENROUTER_API_KEY": "test-openrouter-key",
        "DRAGON_ENGINE_DEBUG": "true",
        "DRAGON_ENGINE_LOG_LEVEL": "DEBUG",
        "DRAGON_ENGINE_GAME_FLEE_THRESHOLD": "12",
    }
    for key, value in env_vars.items():
        monkeypatch.setenv(key, value)
    return env_vars


@pytest.fixture
def game_settings() -> Any:
    """Default game settings, independent of the environment."""
    from dragon_engine.core.config import GameSettings

    return GameSettings()


# =============================================================================
# Model Fixtures
# =============================================================================


@pytest.fixture
def hero() -> CharacterState:
    """A 50/50 HP character with ATK 10 and DEF 3."""
    from dragon_engine.models.character import CharacterState

    return CharacterState(
        id=1,
        campaign_id=1,
        name="Aria",
        current_hp=50,
        max_hp=50,
        attack=10,
        defense=3,
    )


@pytest.fixture
def goblin() -> Enemy:
    from dragon_engine.models.catalog import Enemy

    return Enemy(id=1, name="Goblin", health=30, attack=5, defense=2)


@pytest.fixture
def short_sword() -> Item:
    from dragon_engine.models.catalog import Item
    from dragon_engine.models.enums import ItemType

    return Item(id=SHORT_SWORD_ID, name="Short Sword", item_type=ItemType.WEAPON, attack=10)


@pytest.fixture
def long_bow() -> Item:
    from dragon_engine.models.catalog import Item
    from dragon_engine.models.enums import ItemType

    return Item(id=LONG_BOW_ID, name="Long Bow", item_type=ItemType.WEAPON, attack=15)


@pytest.fixture
def leather_armour() -> Item:
    from dragon_engine.models.catalog import Item
    from dragon_engine.models.enums import ItemType

    return Item(id=LEATHER_ARMOUR_ID, name="Leather Armour", item_type=ItemType.ARMOR, hp_bonus=20)


@pytest.fixture
def small_potion() -> Item:
    from dragon_engine.models.catalog import Item
    from dragon_engine.models.enums import ItemType

    return Item(
        id=SMALL_POTION_ID,
        name="Small Health Potion",
        item_type=ItemType.POTION,
        heal_amount=50,
    )


# =============================================================================
# Engine Fixtures
# =============================================================================


@pytest.fixture
def dice_roller() -> Any:
    """Create a DiceRoller with a fixed seed for reproducible tests.

    Returns:
        DiceRoller instance with fixed seed.
    """
    from dragon_engine.engine.dice import DiceRoller

    return DiceRoller(seed=42)


@pytest.fixture
def encounter_tables() -> dict[str, Any]:
    """One table for every scenario and action.

    Faces 1-5 combat, 6-10 item, 11-15 event, 16-20 quiet.
    """
    from dragon_engine.engine.encounters import EncounterTable, ScenarioTables

    table = EncounterTable(combat=5, item=5, event=5)
    return {"default": ScenarioTables(continue_table=table, search_table=table)}


# =============================================================================
# Storage Fixtures
# =============================================================================


@pytest.fixture
def backend(tmp_path: Path) -> SQLiteBackend:
    """A seeded SQLite backend in a temporary directory."""
    from dragon_engine.storage.database import SQLiteBackend

    return SQLiteBackend(tmp_path / "dragon.db", seed=True)


@pytest.fixture
def campaign(backend: SQLiteBackend) -> Campaign:
    """A fresh campaign for a Human Warrior (220 HP, ATK 25, DEF 20)."""
    return backend.create_campaign(
        "The Sunken Keep",
        character_name="Aria",
        race_id=HUMAN_ID,
        class_id=WARRIOR_ID,
        scenario="test hall",
        description="A keep swallowed by the marsh.",
    )


@pytest.fixture
def oracle() -> ScriptedOracle:
    return ScriptedOracle()


@pytest.fixture
def make_service(
    backend: SQLiteBackend,
    oracle: ScriptedOracle,
    encounter_tables: dict[str, Any],
    game_settings: Any,
) -> Callable[..., GameService]:
    """Factory for a GameService whose dice replay ``rolls``."""
    from dragon_engine.engine.dice import FixedSequenceRoller
    from dragon_engine.engine.game_service import GameService

    def _make(rolls: Iterable[int] = (), **overrides: Any) -> GameService:
        options: dict[str, Any] = {
            "roller": FixedSequenceRoller(rolls),
            "settings": game_settings,
            "encounter_tables": encounter_tables,
        }
        options.update(overrides)
        service_backend = options.pop("backend", backend)
        service_oracle = options.pop("oracle", oracle)
        return GameService(service_backend, service_oracle, **options)

    return _make


@pytest.fixture
def event_factory() -> Callable[..., GeneratedEvent]:
    """Build oracle events: ``event_factory("Environmental", health=5)``."""
    return make_event


@pytest.fixture
def item_by_name(backend: SQLiteBackend) -> Callable[[str], Item]:
    """Look up a seeded catalog item by its display name."""

    def _find(name: str) -> Item:
        return next(item for item in backend.list_items() if item.name == name)

    return _find
