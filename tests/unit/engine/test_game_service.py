"""Tests for the game service state machine."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest

from dragon_engine.core.constants import (
    CHOICE_ACCEPT,
    CHOICE_ATTACK,
    CHOICE_CONTINUE,
    CHOICE_FLEE,
    CHOICE_LEAVE_IT,
    CHOICE_PICK_UP,
    CHOICE_REJECT,
    CHOICE_REPLACE_EQUIPMENT,
    CHOICE_SEARCH,
    CHOICE_USE_POTION,
    DEFEAT_MESSAGE,
    EVENT_PREVIEW_MESSAGES,
    EVENT_TRIGGERS,
    FALLBACK_NARRATION,
    QUIET_EXPLORATION_MESSAGE,
)
from dragon_engine.core.exceptions import PersistenceError, RecordNotFoundError, ValidationError
from dragon_engine.dm.oracle import NEUTRAL_EVENT
from dragon_engine.engine.game_service import GameService
from dragon_engine.engine.locks import CampaignLockRegistry
from dragon_engine.models.catalog import Enemy
from dragon_engine.models.character import EncounterState
from dragon_engine.models.enums import (
    CampaignStatus,
    CombatOutcome,
    EventType,
    Phase,
    ResponseType,
)
from dragon_engine.models.events import GameEvent, GeneratedEvent, OracleContext
from dragon_engine.models.game_state import Campaign, GameServiceResponse
from dragon_engine.storage.database import SQLiteBackend


ServiceFactory = Callable[..., GameService]
EventFactory = Callable[..., GeneratedEvent]

POTION_ID = 1
SHORT_SWORD_ID = 3
LONG_BOW_ID = 4

BRUTE = Enemy(id=2, name="Orc Brute", health=50, attack=30, defense=5)
TARRASQUE = Enemy(id=3, name="Tarrasque", health=900, attack=500, defense=0)


def act(service: GameService, campaign: Campaign, action_type: str, **data: Any) -> GameServiceResponse:
    return service.process_player_action(
        {"campaignId": campaign.id, "actionType": action_type, "actionData": data}
    )


def start_combat(backend: SQLiteBackend, campaign: Campaign, enemy: Enemy) -> None:
    backend.set_current_enemy(campaign.id, EncounterState.start(enemy))
    backend.update_campaign(campaign.id, phase=Phase.COMBAT)


def set_hp(backend: SQLiteBackend, campaign: Campaign, current_hp: int) -> None:
    character = backend.get_character_with_full_data(campaign.id)
    backend.update_character(character.model_copy(update={"current_hp": current_hp}))


class FailingLogBackend:
    """Backend whose event log is unavailable."""

    def __init__(self, inner: SQLiteBackend) -> None:
        self._inner = inner

    def __getattr__(self, name: str) -> Any:
        return getattr(self._inner, name)

    def save_event(self, event: GameEvent) -> GameEvent:
        raise PersistenceError("disk I/O error", operation="save_event")


class EmptyBestiaryBackend:
    """Backend whose enemy table has gone missing."""

    def __init__(self, inner: SQLiteBackend) -> None:
        self._inner = inner

    def __getattr__(self, name: str) -> Any:
        return getattr(self._inner, name)

    def get_random_enemy(self) -> Enemy:
        raise RecordNotFoundError("Enemy not found", record_type="enemy")


class BrokenOracle:
    """Oracle that fails with errors outside the AIControlError family."""

    def __init__(self, error: Exception) -> None:
        self.error = error

    def generate_event(self, context: OracleContext) -> GeneratedEvent:
        raise self.error

    def narrate(self, context: OracleContext) -> str:
        raise self.error


# =============================================================================
# Rejected Actions
# =============================================================================


class TestRejectedActions:
    """Tests for actions that must not change anything."""

    def test_action_not_allowed_in_phase(
        self,
        make_service: ServiceFactory,
        backend: SQLiteBackend,
        campaign: Campaign,
    ) -> None:
        """Test attacking during exploration is rejected without side effects."""
        response = act(make_service(), campaign, "attack")

        assert response.success is False
        assert response.response_type == ResponseType.ERROR
        assert "attack" in (response.error or "")
        assert response.game_state is not None
        assert response.game_state.current_phase == Phase.EXPLORATION
        assert backend.get_event_count(campaign.id) == 0

    def test_unknown_action_type(
        self,
        make_service: ServiceFactory,
        backend: SQLiteBackend,
        campaign: Campaign,
    ) -> None:
        """Test "teleport" is rejected and nothing is logged."""
        response = act(make_service(), campaign, "teleport")

        assert response.success is False
        assert response.response_type == ResponseType.ERROR
        assert backend.get_event_count(campaign.id) == 0

    @pytest.mark.parametrize("campaign_id", [0, -4, "abc"])
    def test_invalid_campaign_id(self, make_service: ServiceFactory, campaign_id: Any) -> None:
        """Test malformed campaign ids are rejected."""
        response = make_service().process_player_action(
            {"campaignId": campaign_id, "actionType": "continue"}
        )

        assert response.success is False
        assert response.error is not None

    def test_missing_campaign(self, make_service: ServiceFactory) -> None:
        """Test an unknown campaign gives an error response."""
        response = make_service().process_player_action(
            {"campaignId": 999, "actionType": "continue"}
        )

        assert response.success is False
        assert response.error == "Campaign not found"
        assert response.game_state is None

    def test_missing_record_keeps_state(
        self,
        make_service: ServiceFactory,
        backend: SQLiteBackend,
        campaign: Campaign,
    ) -> None:
        """Test a missing catalog record still reports the campaign's state."""
        service = make_service([2], backend=EmptyBestiaryBackend(backend))

        response = act(service, campaign, "continue")

        assert response.success is False
        assert response.error == "Enemy not found"
        assert response.game_state is not None
        assert response.game_state.current_phase == Phase.EXPLORATION
        assert backend.get_event_count(campaign.id) == 0

    def test_finished_campaign(
        self,
        make_service: ServiceFactory,
        backend: SQLiteBackend,
        campaign: Campaign,
    ) -> None:
        """Test a game-over campaign accepts no more actions."""
        backend.update_campaign(campaign.id, status=CampaignStatus.GAME_OVER)

        response = act(make_service([18]), campaign, "continue")

        assert response.success is False
        assert backend.get_event_count(campaign.id) == 0

    def test_busy_campaign(self, make_service: ServiceFactory, campaign: Campaign) -> None:
        """Test an action waiting on a held campaign lock times out."""
        locks = CampaignLockRegistry(timeout_seconds=0.01)
        service = make_service([18], locks=locks)

        with locks.hold(campaign.id):
            response = act(service, campaign, "continue")

        assert response.success is False
        assert "in progress" in (response.error or "")

    def test_potion_cannot_be_equipped(
        self,
        make_service: ServiceFactory,
        backend: SQLiteBackend,
        campaign: Campaign,
    ) -> None:
        """Test equipping a found potion is rejected and the potion stays pending."""
        backend.set_pending_item(campaign.id, POTION_ID)
        backend.update_campaign(campaign.id, phase=Phase.ITEM_CHOICE)

        response = act(make_service(), campaign, "equip_item")

        assert response.success is False
        stored = backend.get_campaign(campaign.id)
        assert stored.phase == Phase.ITEM_CHOICE
        assert stored.pending_item is not None
        assert stored.pending_item.id == POTION_ID


# =============================================================================
# Exploration
# =============================================================================


class TestExploration:
    """Tests for continue and search."""

    def test_quiet_exploration(
        self,
        make_service: ServiceFactory,
        backend: SQLiteBackend,
        campaign: Campaign,
        oracle: Any,
    ) -> None:
        """Test a quiet roll narrates and stays in exploration."""
        oracle.narration = "Dust settles in the silent corridor."

        response = act(make_service([18]), campaign, "continue")

        assert response.success is True
        assert response.response_type == ResponseType.STORY
        assert response.message == "Dust settles in the silent corridor."
        assert response.choices == [CHOICE_CONTINUE, CHOICE_SEARCH]
        assert response.game_state is not None
        assert response.game_state.current_phase == Phase.EXPLORATION
        assert backend.get_event_count(campaign.id) == 1

    def test_quiet_exploration_oracle_down(
        self,
        make_service: ServiceFactory,
        campaign: Campaign,
        oracle: Any,
    ) -> None:
        """Test narration failures fall back to canned text."""
        oracle.fail_narration = True

        response = act(make_service([18]), campaign, "search")

        assert response.success is True
        assert response.message == QUIET_EXPLORATION_MESSAGE

    def test_combat_encounter(
        self,
        make_service: ServiceFactory,
        backend: SQLiteBackend,
        campaign: Campaign,
    ) -> None:
        """Test a combat roll starts a fight with a non-boss enemy."""
        response = act(make_service([2]), campaign, "continue")

        assert response.response_type == ResponseType.COMBAT
        assert response.choices == [CHOICE_ATTACK, CHOICE_FLEE]
        assert response.game_state is not None
        assert response.game_state.current_phase == Phase.COMBAT
        assert response.game_state.enemy is not None
        assert response.game_state.enemy.enemy.is_boss is False
        assert backend.get_campaign(campaign.id).encounter is not None

    def test_item_encounter(
        self,
        make_service: ServiceFactory,
        backend: SQLiteBackend,
        campaign: Campaign,
    ) -> None:
        """Test an item roll offers a catalog item."""
        response = act(make_service([7]), campaign, "continue")

        assert response.response_type == ResponseType.ITEM
        assert response.choices[:2] == [CHOICE_PICK_UP, CHOICE_LEAVE_IT]
        stored = backend.get_campaign(campaign.id)
        assert stored.phase == Phase.ITEM_CHOICE
        assert stored.pending_item is not None

    def test_event_encounter(
        self,
        make_service: ServiceFactory,
        backend: SQLiteBackend,
        campaign: Campaign,
        oracle: Any,
        event_factory: EventFactory,
    ) -> None:
        """Test an event roll stores the oracle's event for a decision."""
        oracle.events.append(event_factory("Environmental", health=5))

        response = act(make_service([12]), campaign, "continue")

        assert response.response_type == ResponseType.STORY
        assert response.message == EVENT_PREVIEW_MESSAGES["Environmental"]
        assert response.choices == [CHOICE_ACCEPT, CHOICE_REJECT]
        stored = backend.get_campaign(campaign.id)
        assert stored.phase == Phase.EVENT_CHOICE
        assert stored.pending_event is not None
        assert stored.pending_event.effects.health == 5

        context = oracle.event_contexts[0]
        assert context.scenario == "test hall"
        assert context.trigger in EVENT_TRIGGERS

    def test_event_oracle_down(
        self,
        make_service: ServiceFactory,
        backend: SQLiteBackend,
        campaign: Campaign,
        oracle: Any,
    ) -> None:
        """Test a failing oracle yields the neutral fallback event."""
        oracle.fail_events = True

        response = act(make_service([12]), campaign, "continue")

        assert response.success is True
        assert backend.get_campaign(campaign.id).pending_event == NEUTRAL_EVENT

    def test_item_drop_gets_an_item(
        self,
        make_service: ServiceFactory,
        backend: SQLiteBackend,
        campaign: Campaign,
        oracle: Any,
        event_factory: EventFactory,
    ) -> None:
        """Test an item drop without an item id is given a catalog item."""
        oracle.events.append(event_factory("Item_Drop", attack=1))

        act(make_service([12]), campaign, "continue")

        pending = backend.get_campaign(campaign.id).pending_event
        assert pending is not None
        assert pending.item_id is not None

    def test_unknown_item_replaced(
        self,
        make_service: ServiceFactory,
        backend: SQLiteBackend,
        campaign: Campaign,
        oracle: Any,
        event_factory: EventFactory,
    ) -> None:
        """Test an item drop naming a non-catalog item gets a real one and can be accepted."""
        oracle.events.append(event_factory("Item_Drop", attack=2, item_id=999))
        service = make_service([12, 10])

        act(service, campaign, "continue")
        pending = backend.get_campaign(campaign.id).pending_event
        assert pending is not None
        assert pending.item_id is not None
        assert pending.item_id != 999
        assert backend.get_item(pending.item_id).id == pending.item_id

        response = act(service, campaign, "accept_event")

        assert response.success is True
        assert backend.get_campaign(campaign.id).phase == Phase.EXPLORATION

    def test_unknown_item_dropped(
        self,
        make_service: ServiceFactory,
        backend: SQLiteBackend,
        campaign: Campaign,
        oracle: Any,
        event_factory: EventFactory,
    ) -> None:
        """Test other events lose an item id the catalog does not know."""
        oracle.events.append(event_factory("Environmental", health=3, item_id=999))

        act(make_service([12]), campaign, "continue")

        pending = backend.get_campaign(campaign.id).pending_event
        assert pending is not None
        assert pending.item_id is None

    def test_descriptive_streak_counts(
        self,
        make_service: ServiceFactory,
        backend: SQLiteBackend,
        campaign: Campaign,
        oracle: Any,
        event_factory: EventFactory,
    ) -> None:
        """Test Descriptive events extend the streak."""
        oracle.events.append(event_factory("Descriptive"))

        act(make_service([12]), campaign, "continue")

        assert backend.get_campaign(campaign.id).descriptive_streak == 1

    def test_descriptive_streak_capped(
        self,
        make_service: ServiceFactory,
        backend: SQLiteBackend,
        campaign: Campaign,
        oracle: Any,
        event_factory: EventFactory,
    ) -> None:
        """Test a third Descriptive event in a row is never stored."""
        backend.update_campaign(campaign.id, descriptive_streak=2)
        oracle.events.append(event_factory("Descriptive"))

        act(make_service([12]), campaign, "continue")

        stored = backend.get_campaign(campaign.id)
        assert stored.pending_event is not None
        assert stored.pending_event.known_type != EventType.DESCRIPTIVE
        assert stored.descriptive_streak == 0
        assert len(oracle.event_contexts) == 3

    def test_regeneration_accepts_first_non_descriptive(
        self,
        make_service: ServiceFactory,
        backend: SQLiteBackend,
        campaign: Campaign,
        oracle: Any,
        event_factory: EventFactory,
    ) -> None:
        """Test regeneration stops at the first usable event."""
        backend.update_campaign(campaign.id, descriptive_streak=2)
        oracle.events.extend(
            [event_factory("Descriptive"), event_factory("Environmental", defense=2)]
        )

        act(make_service([12]), campaign, "continue")

        pending = backend.get_campaign(campaign.id).pending_event
        assert pending is not None
        assert pending.effects.defense == 2
        assert len(oracle.event_contexts) == 2


# =============================================================================
# Event Choice
# =============================================================================


class TestEventChoice:
    """Tests for accepting and rejecting events."""

    @pytest.fixture
    def pending(
        self,
        oracle: Any,
        event_factory: EventFactory,
    ) -> Callable[..., GeneratedEvent]:
        """Queue an event for the next exploration roll."""

        def _queue(*args: Any, **kwargs: Any) -> GeneratedEvent:
            event = event_factory(*args, **kwargs)
            oracle.events.append(event)
            return event

        return _queue

    def test_accept_health_boon(
        self,
        make_service: ServiceFactory,
        backend: SQLiteBackend,
        campaign: Campaign,
        pending: Callable[..., GeneratedEvent],
    ) -> None:
        """Test +5 health on a regular roll raises max and current HP."""
        pending("Environmental", health=5)
        service = make_service([12, 10])
        act(service, campaign, "continue")

        response = act(service, campaign, "accept_event")

        assert response.success is True
        assert response.event_outcome is not None
        assert response.event_outcome.dice_roll == 10
        character = backend.get_character_with_full_data(campaign.id)
        assert (character.current_hp, character.max_hp) == (225, 225)
        stored = backend.get_campaign(campaign.id)
        assert stored.phase == Phase.EXPLORATION
        assert stored.pending_event is None
        assert backend.get_event_count(campaign.id) == 2

    def test_reject_changes_nothing(
        self,
        make_service: ServiceFactory,
        backend: SQLiteBackend,
        campaign: Campaign,
        pending: Callable[..., GeneratedEvent],
    ) -> None:
        """Test rejecting rolls no dice and leaves stats untouched."""
        pending("Environmental", health=-50, attack=-5)
        service = make_service([12])
        act(service, campaign, "continue")
        before = backend.get_character_with_full_data(campaign.id)

        response = act(service, campaign, "reject_event")

        assert response.success is True
        assert response.response_type == ResponseType.STORY
        assert backend.get_character_with_full_data(campaign.id) == before
        assert backend.get_campaign(campaign.id).phase == Phase.EXPLORATION

    def test_supplied_roll(
        self,
        make_service: ServiceFactory,
        backend: SQLiteBackend,
        campaign: Campaign,
        pending: Callable[..., GeneratedEvent],
    ) -> None:
        """Test a player-supplied d20 decides the tier."""
        pending("Environmental", attack=2)
        service = make_service([12])
        act(service, campaign, "continue")

        response = act(service, campaign, "accept_event", diceRoll=19)

        assert response.event_outcome is not None
        assert response.event_outcome.dice_roll == 19
        assert backend.get_character_with_full_data(campaign.id).attack == 29

    def test_item_drop_equips_weapon(
        self,
        make_service: ServiceFactory,
        backend: SQLiteBackend,
        campaign: Campaign,
        pending: Callable[..., GeneratedEvent],
    ) -> None:
        """Test accepting a weapon drop equips it and persists the slot."""
        pending("Item_Drop", item_id=SHORT_SWORD_ID)
        service = make_service([12, 10])
        act(service, campaign, "continue")

        response = act(service, campaign, "accept_event")

        assert response.response_type == ResponseType.EQUIPMENT
        character = backend.get_character_with_full_data(campaign.id)
        assert character.attack == 35
        assert character.equipment.weapon is not None
        assert character.equipment.weapon.id == SHORT_SWORD_ID

    def test_lethal_event_ends_game(
        self,
        make_service: ServiceFactory,
        backend: SQLiteBackend,
        campaign: Campaign,
        pending: Callable[..., GeneratedEvent],
    ) -> None:
        """Test an event that drops HP to zero ends the campaign."""
        pending("Environmental", health=-500)
        service = make_service([12, 10])
        act(service, campaign, "continue")

        response = act(service, campaign, "accept_event")

        assert DEFEAT_MESSAGE in response.message
        assert response.choices == []
        assert backend.get_campaign(campaign.id).status == CampaignStatus.GAME_OVER


# =============================================================================
# Item Choice
# =============================================================================


class TestItemChoice:
    """Tests for pick up, leave and equip."""

    @pytest.fixture(autouse=True)
    def sword_on_floor(self, backend: SQLiteBackend, campaign: Campaign) -> None:
        backend.set_pending_item(campaign.id, SHORT_SWORD_ID)
        backend.update_campaign(campaign.id, phase=Phase.ITEM_CHOICE)

    def test_pick_up(
        self,
        make_service: ServiceFactory,
        backend: SQLiteBackend,
        campaign: Campaign,
    ) -> None:
        """Test picking up stores the item."""
        response = act(make_service(), campaign, "pickup_item")

        assert response.response_type == ResponseType.ITEM
        character = backend.get_character_with_full_data(campaign.id)
        assert [item.id for item in backend.get_inventory(character.id)] == [SHORT_SWORD_ID]
        assert backend.get_campaign(campaign.id).pending_item is None

    def test_choices_offer_equip(self, make_service: ServiceFactory, campaign: Campaign) -> None:
        """Test an equipable item offers Replace Equipment."""
        assert make_service().get_choices(campaign.id) == [
            CHOICE_PICK_UP,
            CHOICE_LEAVE_IT,
            CHOICE_REPLACE_EQUIPMENT,
        ]

    def test_leave_it(
        self,
        make_service: ServiceFactory,
        backend: SQLiteBackend,
        campaign: Campaign,
    ) -> None:
        """Test leaving the item discards it."""
        response = act(make_service(), campaign, "reject_item")

        assert response.response_type == ResponseType.STORY
        character = backend.get_character_with_full_data(campaign.id)
        assert backend.get_inventory(character.id) == []
        assert backend.get_campaign(campaign.id).phase == Phase.EXPLORATION

    def test_equip(
        self,
        make_service: ServiceFactory,
        backend: SQLiteBackend,
        campaign: Campaign,
    ) -> None:
        """Test equipping applies the bonus."""
        response = act(make_service(), campaign, "equip_item")

        assert response.response_type == ResponseType.EQUIPMENT
        character = backend.get_character_with_full_data(campaign.id)
        assert character.attack == 35
        assert character.equipment.weapon is not None

    def test_equip_replaces_and_stows_old_weapon(
        self,
        make_service: ServiceFactory,
        backend: SQLiteBackend,
        campaign: Campaign,
    ) -> None:
        """Test the replaced weapon's bonus is removed and it goes to the inventory."""
        character = backend.get_character_with_full_data(campaign.id)
        backend.update_character(character.model_copy(update={"attack": 40}))
        backend.equip_item(character.id, LONG_BOW_ID)

        act(make_service(), campaign, "equip_item")

        character = backend.get_character_with_full_data(campaign.id)
        assert character.attack == 35
        assert [item.id for item in backend.get_inventory(character.id)] == [LONG_BOW_ID]

    def test_equip_twice_is_idempotent(
        self,
        make_service: ServiceFactory,
        backend: SQLiteBackend,
        campaign: Campaign,
    ) -> None:
        """Test equipping the worn item again changes nothing."""
        service = make_service()
        act(service, campaign, "equip_item")
        backend.set_pending_item(campaign.id, SHORT_SWORD_ID)
        backend.update_campaign(campaign.id, phase=Phase.ITEM_CHOICE)

        act(service, campaign, "equip_item")

        character = backend.get_character_with_full_data(campaign.id)
        assert character.attack == 35
        assert backend.get_inventory(character.id) == []


# =============================================================================
# Combat
# =============================================================================


class TestCombat:
    """Tests for combat rounds through the service."""

    def test_attack_round(
        self,
        make_service: ServiceFactory,
        backend: SQLiteBackend,
        campaign: Campaign,
    ) -> None:
        """Test ATK 25 against the Orc Brute's DEF 5, then its counter."""
        start_combat(backend, campaign, BRUTE)

        response = act(make_service(), campaign, "attack")

        assert response.response_type == ResponseType.COMBAT
        assert response.combat_result is not None
        assert response.combat_result.enemy_damage == 20
        assert response.combat_result.character_damage == 10
        assert response.combat_result.outcome == CombatOutcome.ONGOING
        stored = backend.get_campaign(campaign.id)
        assert stored.encounter is not None
        assert stored.encounter.current_hp == 30
        assert backend.get_character_with_full_data(campaign.id).current_hp == 210

    def test_victory(
        self,
        make_service: ServiceFactory,
        backend: SQLiteBackend,
        campaign: Campaign,
    ) -> None:
        """Test defeating the enemy returns to exploration and fires the hook."""
        victories: list[tuple[int, str]] = []
        service = make_service(
            on_victory=lambda camp, character, enemy: victories.append((camp.id, enemy.name))
        )
        backend.update_campaign(campaign.id, descriptive_streak=1)
        start_combat(backend, campaign, BRUTE)

        act(service, campaign, "attack")
        act(service, campaign, "attack")
        response = act(service, campaign, "attack")

        assert response.combat_result is not None
        assert response.combat_result.outcome == CombatOutcome.VICTORY
        assert response.choices == [CHOICE_CONTINUE, CHOICE_SEARCH]
        assert victories == [(campaign.id, "Orc Brute")]
        stored = backend.get_campaign(campaign.id)
        assert stored.phase == Phase.EXPLORATION
        assert stored.encounter is None
        assert stored.descriptive_streak == 0

    def test_victory_hook_failure(
        self,
        make_service: ServiceFactory,
        backend: SQLiteBackend,
        campaign: Campaign,
    ) -> None:
        """Test a failing rewards hook leaves the victory in place."""

        def _broken_hook(*args: Any) -> None:
            raise RuntimeError("loot table unavailable")

        service = make_service(on_victory=_broken_hook)
        start_combat(backend, campaign, BRUTE)

        act(service, campaign, "attack")
        act(service, campaign, "attack")
        response = act(service, campaign, "attack")

        assert response.success is True
        assert response.combat_result is not None
        assert response.combat_result.outcome == CombatOutcome.VICTORY
        stored = backend.get_campaign(campaign.id)
        assert stored.phase == Phase.EXPLORATION
        assert stored.encounter is None
        assert backend.get_event_count(campaign.id) == 3

    def test_defeat(
        self,
        make_service: ServiceFactory,
        backend: SQLiteBackend,
        campaign: Campaign,
    ) -> None:
        """Test a lethal counter-attack ends the campaign."""
        start_combat(backend, campaign, TARRASQUE)
        service = make_service()

        response = act(service, campaign, "attack")

        assert response.success is True
        assert response.combat_result is not None
        assert response.combat_result.outcome == CombatOutcome.DEFEAT
        assert DEFEAT_MESSAGE in response.message
        assert response.choices == []
        stored = backend.get_campaign(campaign.id)
        assert stored.status == CampaignStatus.GAME_OVER
        assert stored.encounter is None
        assert act(service, campaign, "continue").success is False

    def test_failed_flee(
        self,
        make_service: ServiceFactory,
        backend: SQLiteBackend,
        campaign: Campaign,
    ) -> None:
        """Test a failed flee costs exactly one enemy attack."""
        start_combat(backend, campaign, BRUTE)

        response = act(make_service([4]), campaign, "flee")

        assert response.combat_result is not None
        assert response.combat_result.dice_roll == 4
        assert response.combat_result.character_damage == 10
        assert response.combat_result.enemy_damage == 0
        assert backend.get_character_with_full_data(campaign.id).current_hp == 210
        assert backend.get_campaign(campaign.id).phase == Phase.COMBAT

    def test_successful_flee(
        self,
        make_service: ServiceFactory,
        backend: SQLiteBackend,
        campaign: Campaign,
    ) -> None:
        """Test a successful flee leaves combat unharmed."""
        start_combat(backend, campaign, BRUTE)

        response = act(make_service([15]), campaign, "flee")

        assert response.combat_result is not None
        assert response.combat_result.outcome == CombatOutcome.FLED
        stored = backend.get_campaign(campaign.id)
        assert stored.phase == Phase.EXPLORATION
        assert stored.encounter is None
        assert backend.get_character_with_full_data(campaign.id).current_hp == 220

    def test_potion_prompt_at_low_health(
        self,
        make_service: ServiceFactory,
        backend: SQLiteBackend,
        campaign: Campaign,
    ) -> None:
        """Test low HP with a potion carried asks about the potion."""
        start_combat(backend, campaign, BRUTE)
        set_hp(backend, campaign, 60)
        character = backend.get_character_with_full_data(campaign.id)
        backend.add_item_to_inventory(character.id, POTION_ID)

        response = act(make_service(), campaign, "attack")

        assert response.response_type == ResponseType.POTION_PROMPT
        assert response.choices == [CHOICE_ATTACK, CHOICE_USE_POTION, CHOICE_FLEE]

    def test_no_prompt_without_potion(
        self,
        make_service: ServiceFactory,
        backend: SQLiteBackend,
        campaign: Campaign,
    ) -> None:
        """Test low HP without a potion stays a plain combat response."""
        start_combat(backend, campaign, BRUTE)
        set_hp(backend, campaign, 60)

        response = act(make_service(), campaign, "attack")

        assert response.response_type == ResponseType.COMBAT

    def test_use_potion_picks_first_potion(
        self,
        make_service: ServiceFactory,
        backend: SQLiteBackend,
        campaign: Campaign,
    ) -> None:
        """Test use_item without an itemId drinks a carried potion."""
        start_combat(backend, campaign, BRUTE)
        set_hp(backend, campaign, 60)
        character = backend.get_character_with_full_data(campaign.id)
        backend.add_item_to_inventory(character.id, POTION_ID)

        response = act(make_service(), campaign, "use_item")

        assert response.success is True
        assert backend.get_character_with_full_data(campaign.id).current_hp == 100
        assert backend.get_inventory(character.id) == []

    def test_use_item_not_carried(
        self,
        make_service: ServiceFactory,
        backend: SQLiteBackend,
        campaign: Campaign,
    ) -> None:
        """Test using an item that is not in the inventory is rejected."""
        start_combat(backend, campaign, BRUTE)

        response = act(make_service(), campaign, "use_item", itemId=SHORT_SWORD_ID)

        assert response.success is False
        assert backend.get_character_with_full_data(campaign.id).current_hp == 220


# =============================================================================
# Inventory Outside Combat
# =============================================================================


class TestInventoryActions:
    """Tests for use_item and equip_item during exploration."""

    def test_drink_potion(
        self,
        make_service: ServiceFactory,
        backend: SQLiteBackend,
        campaign: Campaign,
    ) -> None:
        """Test drinking a potion while exploring."""
        set_hp(backend, campaign, 100)
        character = backend.get_character_with_full_data(campaign.id)
        backend.add_item_to_inventory(character.id, POTION_ID)

        response = act(make_service(), campaign, "use_item", itemId=POTION_ID)

        assert response.response_type == ResponseType.ITEM
        assert backend.get_character_with_full_data(campaign.id).current_hp == 150

    def test_equip_from_inventory(
        self,
        make_service: ServiceFactory,
        backend: SQLiteBackend,
        campaign: Campaign,
    ) -> None:
        """Test equipping a carried weapon moves it out of the inventory."""
        character = backend.get_character_with_full_data(campaign.id)
        backend.add_item_to_inventory(character.id, SHORT_SWORD_ID)

        response = act(make_service(), campaign, "equip_item", itemId=SHORT_SWORD_ID)

        assert response.response_type == ResponseType.EQUIPMENT
        assert backend.get_inventory(character.id) == []
        assert backend.get_character_with_full_data(campaign.id).attack == 35

    def test_equip_requires_item_id(self, make_service: ServiceFactory, campaign: Campaign) -> None:
        """Test equip_item while exploring needs an itemId."""
        response = act(make_service(), campaign, "equip_item")

        assert response.success is False
        assert "itemId" in (response.error or "")


# =============================================================================
# Degraded Persistence
# =============================================================================


class TestUnexpectedOracleErrors:
    """Tests for oracle failures outside the AIControlError family."""

    def test_narration_timeout(
        self,
        make_service: ServiceFactory,
        backend: SQLiteBackend,
        campaign: Campaign,
    ) -> None:
        """Test a raw timeout during narration falls back to canned text."""
        service = make_service([20], oracle=BrokenOracle(TimeoutError("read timed out")))

        response = act(service, campaign, "continue")

        assert response.success is True
        assert response.message == QUIET_EXPLORATION_MESSAGE
        assert backend.get_event_count(campaign.id) == 1

    def test_event_generation_error(
        self,
        make_service: ServiceFactory,
        backend: SQLiteBackend,
        campaign: Campaign,
    ) -> None:
        """Test an unexpected generation error yields the neutral event."""
        service = make_service([12], oracle=BrokenOracle(AttributeError("content")))

        response = act(service, campaign, "continue")

        assert response.success is True
        assert backend.get_campaign(campaign.id).pending_event == NEUTRAL_EVENT

    def test_victory_narration_error(
        self,
        make_service: ServiceFactory,
        backend: SQLiteBackend,
        campaign: Campaign,
    ) -> None:
        """Test a broken oracle cannot undo a won fight."""
        service = make_service(oracle=BrokenOracle(RuntimeError("socket closed")))
        start_combat(backend, campaign, BRUTE)

        act(service, campaign, "attack")
        act(service, campaign, "attack")
        response = act(service, campaign, "attack")

        assert response.success is True
        assert response.combat_result is not None
        assert response.combat_result.outcome == CombatOutcome.VICTORY
        assert backend.get_campaign(campaign.id).encounter is None


class TestDegradedPersistence:
    """Tests for storage failures mid-action."""

    def test_log_failure_returns_fallback(
        self,
        make_service: ServiceFactory,
        backend: SQLiteBackend,
        campaign: Campaign,
    ) -> None:
        """Test a failed write still answers, and rolls the action back."""
        service = make_service([2], backend=FailingLogBackend(backend))

        response = act(service, campaign, "continue")

        assert response.success is True
        assert response.degraded is True
        assert response.message == FALLBACK_NARRATION
        stored = backend.get_campaign(campaign.id)
        assert stored.phase == Phase.EXPLORATION
        assert stored.encounter is None


# =============================================================================
# Queries & Lifecycle
# =============================================================================


class TestQueries:
    """Tests for state queries, validation, reset and export."""

    def test_get_game_state(self, make_service: ServiceFactory, campaign: Campaign) -> None:
        """Test the state snapshot of a new campaign."""
        state = make_service().get_game_state(campaign.id)

        assert state.current_phase == Phase.EXPLORATION
        assert state.character is not None
        assert state.character.name == "Aria"
        assert state.inventory == []

    def test_validate_consistent(self, make_service: ServiceFactory, campaign: Campaign) -> None:
        """Test a new campaign is valid."""
        validation = make_service().validate_game_state(campaign.id)

        assert validation.is_valid is True
        assert validation.is_game_over is False

    def test_validate_combat_without_enemy(
        self,
        make_service: ServiceFactory,
        backend: SQLiteBackend,
        campaign: Campaign,
    ) -> None:
        """Test a combat phase with no enemy is reported."""
        backend.update_campaign(campaign.id, phase=Phase.COMBAT)

        validation = make_service().validate_game_state(campaign.id)

        assert validation.is_valid is False
        assert "Combat phase without an active enemy" in validation.errors

    def test_event_numbers_are_sequential(
        self,
        make_service: ServiceFactory,
        backend: SQLiteBackend,
        campaign: Campaign,
    ) -> None:
        """Test each successful action appends exactly one numbered entry."""
        service = make_service([18, 19, 20])
        for action in ("continue", "search", "continue"):
            act(service, campaign, action)
        act(service, campaign, "attack")

        events = backend.get_all_events(campaign.id)
        assert [event.event_number for event in events] == [1, 2, 3]

    def test_reset(
        self,
        make_service: ServiceFactory,
        backend: SQLiteBackend,
        campaign: Campaign,
    ) -> None:
        """Test resetting restores the starting state."""
        service = make_service([18])
        act(service, campaign, "continue")
        set_hp(backend, campaign, 10)

        state = service.reset_campaign(campaign.id)

        assert state.character is not None
        assert state.character.current_hp == 220
        assert backend.get_event_count(campaign.id) == 0

    def test_export_markdown(self, make_service: ServiceFactory, campaign: Campaign) -> None:
        """Test the story exports with headers per event."""
        service = make_service([18])
        act(service, campaign, "continue")

        story = service.export_story(campaign.id, "markdown")

        assert story.startswith("# The Sunken Keep")
        assert "## Character: Aria" in story
        assert "### Event 1: Descriptive" in story

    def test_export_unknown_format(self, make_service: ServiceFactory, campaign: Campaign) -> None:
        """Test an unknown export format is rejected."""
        with pytest.raises(ValidationError):
            make_service().export_story(campaign.id, "pdf")

    def test_payload_is_camel_case(self, make_service: ServiceFactory, campaign: Campaign) -> None:
        """Test the wire payload uses camelCase keys."""
        payload = act(make_service([18]), campaign, "continue").to_payload()

        assert payload["responseType"] == "story"
        assert payload["gameState"]["currentPhase"] == "exploration"
        assert "combatResult" not in payload
