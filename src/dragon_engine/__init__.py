"""Dragon Engine - narrative RPG game-state engine.

Turns player actions into game-state transitions for a dungeon crawl.

DIVISION OF LABOUR:
- Python owns TRUTH (phases, stats, dice rolls via d20, persistence)
- The language model handles NARRATIVE (event proposals, prose)
- The model NEVER mutates state or decides a roll

Example:
    >>> from dragon_engine import GameService, SQLiteBackend, create_oracle
    >>>
    >>> backend = SQLiteBackend()
    >>> campaign = backend.create_campaign(
    ...     "Lost Mines", character_name="Thorin", race_id=3, class_id=1
    ... )
    >>> service = GameService(backend, create_oracle())
    >>> response = service.process_player_action(
    ...     {"campaignId": campaign.id, "actionType": "search"}
    ... )
    >>> print(response.message, response.choices)

Modules:
    core: Configuration, logging, constants and base exceptions.
    models: Pydantic V2 schemas.
    engine: Dice, stats, resolvers and the game service.
    dm: Narrative oracle over an OpenAI-compatible API.
    storage: BackendService contract and the SQLite implementation.
    adapters: UI choice labels to player actions.
"""

from __future__ import annotations

# Core
from dragon_engine.core.config import Settings, get_settings
from dragon_engine.core.exceptions import DragonEngineError
from dragon_engine.core.logging import configure_logging, get_logger

# Models
from dragon_engine.models import (
    ActionType,
    Campaign,
    CharacterState,
    EventType,
    GameServiceResponse,
    GeneratedEvent,
    Phase,
    PlayerAction,
    ResponseType,
)

# Engine
from dragon_engine.engine import DiceRoller, GameService

# Oracle & Storage
from dragon_engine.dm import NarrativeOracle, OfflineOracle, create_oracle
from dragon_engine.storage import BackendService, SQLiteBackend


__version__ = "0.1.0"

__all__ = [
    # Version
    "__version__",
    # Core
    "Settings",
    "get_settings",
    "DragonEngineError",
    "configure_logging",
    "get_logger",
    # Models
    "ActionType",
    "Campaign",
    "CharacterState",
    "EventType",
    "GameServiceResponse",
    "GeneratedEvent",
    "Phase",
    "PlayerAction",
    "ResponseType",
    # Engine
    "DiceRoller",
    "GameService",
    # Oracle & Storage
    "NarrativeOracle",
    "OfflineOracle",
    "create_oracle",
    "BackendService",
    "SQLiteBackend",
]
