"""Game engine for the dragon engine.

This module provides the rules side of play: dice, stat arithmetic,
event and combat resolution, encounter tables, per-campaign locking and
the phase state machine that ties them together.

Submodules:
    dice: d20 rolls and tier classification (d20 library)
    stats: Damage, healing, vitality and equipment arithmetic
    events: Tier-scaled event resolution
    combat: Attack, use-item and flee rounds
    encounters: What continue and search run into
    locks: One action at a time per campaign
    game_service: The state machine behind every player action

Example:
    >>> from dragon_engine.engine import GameService
    >>> from dragon_engine.dm import OfflineOracle
    >>> from dragon_engine.storage import SQLiteBackend
    >>>
    >>> service = GameService(SQLiteBackend("play.db"), OfflineOracle())
    >>> response = service.process_player_action(
    ...     {"campaignId": 1, "actionType": "continue"}
    ... )
    >>> response.response_type
    'story'
"""

from __future__ import annotations

# =============================================================================
# Dice & Stats
# =============================================================================
from dragon_engine.engine.dice import DiceRoller, FixedSequenceRoller, range_expression
from dragon_engine.engine.stats import (
    EquipResult,
    StatDelta,
    apply_damage,
    apply_delta,
    apply_heal,
    apply_vitality,
    compute_damage,
    equip,
    equip_delta,
)

# =============================================================================
# Resolvers
# =============================================================================
from dragon_engine.engine.combat import CombatResolver, CombatRound
from dragon_engine.engine.encounters import (
    DEFAULT_ENCOUNTER_TABLES,
    EncounterKind,
    EncounterPolicy,
    EncounterTable,
    ScenarioTables,
)
from dragon_engine.engine.events import DEFAULT_TIER_POLICIES, EventResolver, TierPolicy

# =============================================================================
# Service
# =============================================================================
from dragon_engine.engine.game_service import ALLOWED_ACTIONS, GameService
from dragon_engine.engine.locks import CampaignLockRegistry


__all__ = [
    # Dice & Stats
    "DiceRoller",
    "FixedSequenceRoller",
    "range_expression",
    "EquipResult",
    "StatDelta",
    "apply_damage",
    "apply_delta",
    "apply_heal",
    "apply_vitality",
    "compute_damage",
    "equip",
    "equip_delta",
    # Resolvers
    "CombatResolver",
    "CombatRound",
    "DEFAULT_ENCOUNTER_TABLES",
    "EncounterKind",
    "EncounterPolicy",
    "EncounterTable",
    "ScenarioTables",
    "DEFAULT_TIER_POLICIES",
    "EventResolver",
    "TierPolicy",
    # Service
    "ALLOWED_ACTIONS",
    "GameService",
    "CampaignLockRegistry",
]
