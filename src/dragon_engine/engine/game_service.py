"""Game service: the phase state machine behind every player action.

``process_player_action`` validates the action against the campaign's
phase, dispatches to exploration, event, item or combat handling, persists
the result through the BackendService, appends exactly one log entry,
and returns a response tagged with its ``response_type``.

    exploration  --continue/search-->  exploration | event_choice | item_choice | combat
    event_choice --accept/reject---->  exploration
    item_choice  --pickup/leave/equip> exploration
    combat       --attack/use/flee-->  combat | exploration

Rejected actions mutate nothing and log nothing. Oracle failures fall
back to canned narrative and the action still succeeds.

Each handler reads and consults the oracle under the campaign lock alone,
then applies its writes in one short backend transaction. A slow model
call never holds the database write lock.
"""

from __future__ import annotations

import random
from collections.abc import Callable, Mapping
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from dragon_engine.core.config import GameSettings, get_settings
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
from dragon_engine.core.exceptions import (
    AIControlError,
    DragonEngineError,
    GameEngineError,
    InvalidActionError,
    InvalidGameStateError,
    PersistenceError,
    RecordNotFoundError,
    ValidationError,
)
from dragon_engine.core.logging import bind_context, clear_context, get_logger
from dragon_engine.dm.oracle import NEUTRAL_EVENT, NarrativeOracle, fallback_event
from dragon_engine.engine import stats
from dragon_engine.engine.combat import CombatResolver, CombatRound
from dragon_engine.engine.dice import DiceRoller
from dragon_engine.engine.encounters import EncounterKind, EncounterPolicy, ScenarioTables
from dragon_engine.engine.events import EventResolver
from dragon_engine.engine.locks import CampaignLockRegistry
from dragon_engine.models.catalog import Enemy, Item
from dragon_engine.models.character import CharacterState, EncounterState
from dragon_engine.models.enums import (
    ActionType,
    CampaignStatus,
    CombatOutcome,
    EventType,
    Phase,
    ResponseType,
)
from dragon_engine.models.events import GameEvent, GeneratedEvent, OracleContext
from dragon_engine.models.game_state import (
    Campaign,
    GameServiceResponse,
    GameStateView,
    GameValidation,
    PlayerAction,
)
from dragon_engine.storage.backend import BackendService
from dragon_engine.storage.export import ExportFormat, export_story


logger = get_logger(__name__)

VictoryHook = Callable[[Campaign, CharacterState, Enemy], None]
"""Called after an enemy is defeated, before the response is built."""


ALLOWED_ACTIONS: dict[Phase, frozenset[ActionType]] = {
    Phase.EXPLORATION: frozenset(
        {ActionType.CONTINUE, ActionType.SEARCH, ActionType.USE_ITEM, ActionType.EQUIP_ITEM}
    ),
    Phase.EVENT_CHOICE: frozenset({ActionType.ACCEPT_EVENT, ActionType.REJECT_EVENT}),
    Phase.ITEM_CHOICE: frozenset(
        {ActionType.PICKUP_ITEM, ActionType.REJECT_ITEM, ActionType.EQUIP_ITEM}
    ),
    Phase.COMBAT: frozenset({ActionType.ATTACK, ActionType.USE_ITEM, ActionType.FLEE}),
}


def _first_error(exc: PydanticValidationError) -> str:
    error = exc.errors()[0]
    location = ".".join(str(part) for part in error.get("loc", ())) or "action"
    return f"{location}: {error.get('msg', 'invalid value')}"


class GameService:
    """Orchestrates player actions for all campaigns.

    Attributes:
        backend: Record store.
        oracle: Narrative model.
        settings: Game settings (thresholds, timeouts, caps).
        roller: Dice shared by all resolvers.
        locks: Per-campaign lock registry.
        on_victory: Optional rewards hook fired on combat victory.
    """

    def __init__(
        self,
        backend: BackendService,
        oracle: NarrativeOracle,
        *,
        roller: DiceRoller | None = None,
        settings: GameSettings | None = None,
        encounter_tables: dict[str, ScenarioTables] | None = None,
        locks: CampaignLockRegistry | None = None,
        on_victory: VictoryHook | None = None,
    ) -> None:
        self.backend = backend
        self.oracle = oracle
        self.settings = settings or get_settings().game
        self.roller = roller or DiceRoller.from_settings(self.settings)
        self.event_resolver = EventResolver.from_settings(self.roller, self.settings)
        self.combat_resolver = CombatResolver.from_settings(self.roller, self.settings)
        self.encounters = EncounterPolicy(self.roller, encounter_tables)
        self.locks = locks or CampaignLockRegistry(
            timeout_seconds=self.settings.lock_timeout_seconds
        )
        self.on_victory = on_victory

    # =========================================================================
    # Public API
    # =========================================================================

    def process_player_action(
        self,
        action: PlayerAction | Mapping[str, Any],
    ) -> GameServiceResponse:
        """Apply one player action and describe the result.

        Args:
            action: A PlayerAction, or a raw mapping in the UI's shape
                (``campaignId``, ``actionType``, ``actionData``).

        Returns:
            ``success=False`` with ``response_type=error`` for rejected
            actions; otherwise the tagged outcome of the transition.
        """
        if not isinstance(action, PlayerAction):
            try:
                action = PlayerAction.model_validate(action)
            except PydanticValidationError as exc:
                logger.info("Malformed action rejected", errors=exc.error_count())
                return GameServiceResponse.failure(f"Invalid action ({_first_error(exc)})")

        bind_context(campaign_id=action.campaign_id, action_type=action.action_type.value)
        try:
            with self.locks.hold(action.campaign_id):
                response = self._dispatch(action)
            logger.info(
                "Action processed",
                response_type=response.response_type,
                phase=response.game_state.current_phase if response.game_state else None,
            )
            return response
        except (ValidationError, GameEngineError) as exc:
            logger.info("Action rejected", reason=exc.message)
            return GameServiceResponse.failure(
                exc.message,
                game_state=self._safe_state(action.campaign_id),
            )
        except RecordNotFoundError as exc:
            logger.info("Action rejected", reason=exc.message, details=exc.details)
            return GameServiceResponse.failure(
                exc.message,
                game_state=self._safe_state(action.campaign_id),
            )
        except PersistenceError as exc:
            logger.error("Persistence unavailable, returning fallback narrative", error=str(exc))
            return GameServiceResponse(
                success=True,
                response_type=ResponseType.STORY,
                message=FALLBACK_NARRATION,
                degraded=True,
            )
        finally:
            clear_context()

    def get_game_state(self, campaign_id: int) -> GameStateView:
        """Snapshot of a campaign for the UI.

        Raises:
            RecordNotFoundError: If the campaign does not exist.
        """
        campaign = self.backend.get_campaign(campaign_id)
        character = self.backend.get_character_with_full_data(campaign_id)
        return GameStateView(
            campaign_id=campaign.id,
            status=campaign.status,
            current_phase=campaign.phase,
            character=character,
            enemy=campaign.encounter,
            pending_event=campaign.pending_event,
            pending_item=campaign.pending_item,
            inventory=self.backend.get_inventory(character.id),
        )

    def get_choices(self, campaign_id: int) -> list[str]:
        """Choice labels the UI should offer right now."""
        campaign = self.backend.get_campaign(campaign_id)
        character = self.backend.get_character_with_full_data(campaign_id)
        return self._choices_for(campaign.phase, campaign, character)

    def validate_game_state(self, campaign_id: int) -> GameValidation:
        """Check a campaign for end conditions and inconsistent phase data."""
        campaign = self.backend.get_campaign(campaign_id)
        character = self.backend.get_character_with_full_data(campaign_id)
        errors: list[str] = []
        warnings: list[str] = []

        if campaign.phase == Phase.COMBAT and campaign.encounter is None:
            errors.append("Combat phase without an active enemy")
        if campaign.phase != Phase.COMBAT and campaign.encounter is not None:
            errors.append("Active enemy outside the combat phase")
        if campaign.phase == Phase.EVENT_CHOICE and campaign.pending_event is None:
            errors.append("Event choice phase without a pending event")
        if campaign.phase == Phase.ITEM_CHOICE and campaign.pending_item is None:
            errors.append("Item choice phase without a pending item")
        if campaign.status == CampaignStatus.ACTIVE and character.is_defeated:
            errors.append("Character has no health but the campaign is still active")

        if not character.is_defeated and character.hp_fraction < self.settings.low_health_fraction:
            warnings.append("Character health is low")

        return GameValidation(
            is_valid=not errors,
            is_game_over=campaign.status == CampaignStatus.GAME_OVER or character.is_defeated,
            is_victory=campaign.status == CampaignStatus.COMPLETED,
            errors=errors,
            warnings=warnings,
        )

    def reset_campaign(self, campaign_id: int) -> GameStateView:
        """Return a campaign to its starting state under its lock."""
        with self.locks.hold(campaign_id):
            self.backend.reset_campaign(campaign_id)
        logger.info("Campaign reset", campaign_id=campaign_id)
        return self.get_game_state(campaign_id)

    def export_story(self, campaign_id: int, fmt: ExportFormat | str = ExportFormat.TEXT) -> str:
        """Render the whole event log as json, plain text or markdown."""
        campaign = self.backend.get_campaign(campaign_id)
        character = self.backend.get_character_with_full_data(campaign_id)
        events = self.backend.get_all_events(campaign_id)
        return export_story(campaign, character, events, fmt)

    # =========================================================================
    # Dispatch
    # =========================================================================

    def _dispatch(self, action: PlayerAction) -> GameServiceResponse:
        campaign = self.backend.get_campaign(action.campaign_id)
        if campaign.is_finished:
            raise InvalidGameStateError(
                "This campaign has ended",
                current_state=campaign.status.value,
                expected_states=[CampaignStatus.ACTIVE.value],
            )

        allowed = ALLOWED_ACTIONS[campaign.phase]
        if action.action_type not in allowed:
            raise InvalidActionError(
                f"Cannot {action.action_type.value} during {campaign.phase.value}",
                action_type=action.action_type.value,
                current_state=campaign.phase.value,
                expected_states=sorted(a.value for a in allowed),
            )

        character = self.backend.get_character_with_full_data(campaign.id)

        if campaign.phase == Phase.EXPLORATION:
            if action.action_type in (ActionType.CONTINUE, ActionType.SEARCH):
                return self._explore(campaign, character, action)
            return self._manage_inventory(campaign, character, action)
        if campaign.phase == Phase.EVENT_CHOICE:
            return self._resolve_event(campaign, character, action)
        if campaign.phase == Phase.ITEM_CHOICE:
            return self._resolve_item_choice(campaign, character, action)
        return self._combat_round(campaign, character, action)

    # =========================================================================
    # Exploration
    # =========================================================================

    def _explore(
        self,
        campaign: Campaign,
        character: CharacterState,
        action: PlayerAction,
    ) -> GameServiceResponse:
        decision = self.encounters.decide(campaign.scenario, action.action_type)
        log_data: dict[str, Any] = {"action": action.action_type.value, "encounter_roll": decision.roll}

        if decision.kind == EncounterKind.COMBAT:
            enemy = self.backend.get_random_enemy()
            message = self._narrate(
                campaign,
                character,
                purpose="combat_start",
                outcome=f"A {enemy.name} blocks the way and attacks.",
                enemy=enemy,
            )
            with self.backend.transaction():
                self.backend.set_current_enemy(campaign.id, EncounterState.start(enemy))
                self.backend.update_campaign(campaign.id, phase=Phase.COMBAT)
                self._log(
                    campaign.id, EventType.COMBAT, message, {**log_data, "enemy_id": enemy.id}
                )
            return self._respond(campaign.id, ResponseType.COMBAT, message)

        if decision.kind == EncounterKind.ITEM:
            item = self.backend.get_random_item()
            message = f"Something glints nearby: {item.name}. {item.description}".strip()
            with self.backend.transaction():
                self.backend.set_pending_item(campaign.id, item.id)
                self.backend.update_campaign(campaign.id, phase=Phase.ITEM_CHOICE)
                self._log(
                    campaign.id, EventType.ITEM_DROP, message, {**log_data, "item_id": item.id}
                )
            return self._respond(campaign.id, ResponseType.ITEM, message)

        if decision.kind == EncounterKind.EVENT:
            event = self._generate_event(campaign, character)
            event_type = event.known_type
            streak = campaign.descriptive_streak + 1 if event_type == EventType.DESCRIPTIVE else 0
            message = EVENT_PREVIEW_MESSAGES.get(
                event.event_type, f"A {event.event_type} event is about to occur..."
            )
            with self.backend.transaction():
                self.backend.set_pending_event(campaign.id, event)
                self.backend.update_campaign(
                    campaign.id, phase=Phase.EVENT_CHOICE, descriptive_streak=streak
                )
                self._log(
                    campaign.id,
                    event_type or EventType.DESCRIPTIVE,
                    message,
                    {**log_data, "pending_event_type": event.event_type},
                )
            return self._respond(campaign.id, ResponseType.STORY, message)

        message = self._narrate(
            campaign,
            character,
            purpose="quiet_exploration",
            outcome="Nothing happens; the way ahead stays clear.",
            fallback=QUIET_EXPLORATION_MESSAGE,
        )
        with self.backend.transaction():
            self._log(campaign.id, EventType.DESCRIPTIVE, message, log_data)
        return self._respond(campaign.id, ResponseType.STORY, message)

    def _generate_event(self, campaign: Campaign, character: CharacterState) -> GeneratedEvent:
        """Ask the oracle for an event, holding Descriptive streaks to the cap."""
        capped = campaign.descriptive_streak >= self.settings.descriptive_streak_cap
        context = OracleContext(
            character=character,
            recent_events=self.backend.get_recent_events(
                campaign.id, self.settings.recent_events_limit
            ),
            scenario=campaign.scenario,
            trigger=random.choice(EVENT_TRIGGERS),
        )

        event: GeneratedEvent | None = None
        for attempt in range(1, self.settings.regenerate_attempts + 1):
            try:
                candidate = self.oracle.generate_event(context)
            except AIControlError as exc:
                logger.warning("Oracle failed, using fallback event", error=str(exc))
                event = NEUTRAL_EVENT if not capped else fallback_event(allow_descriptive=False)
                break
            except Exception:
                logger.exception("Oracle raised unexpectedly, using fallback event")
                event = NEUTRAL_EVENT if not capped else fallback_event(allow_descriptive=False)
                break
            if capped and candidate.known_type == EventType.DESCRIPTIVE:
                logger.info("Descriptive streak capped, regenerating", attempt=attempt)
                continue
            event = candidate
            break

        if event is None:
            event = fallback_event(allow_descriptive=False)

        if event.item_id is not None and self._catalog_item(event.item_id) is None:
            event = event.model_copy(update={"item_id": None})
        if event.known_type == EventType.ITEM_DROP and event.item_id is None:
            event = event.model_copy(update={"item_id": self.backend.get_random_item().id})
        return event

    def _catalog_item(self, item_id: int) -> Item | None:
        """Look up an item an event names; unknown ids are dropped."""
        try:
            return self.backend.get_item(item_id)
        except RecordNotFoundError:
            logger.warning("Event names an unknown item, ignoring it", item_id=item_id)
            return None

    def _manage_inventory(
        self,
        campaign: Campaign,
        character: CharacterState,
        action: PlayerAction,
    ) -> GameServiceResponse:
        """Drink a potion or equip an inventory item outside combat."""
        item = self._inventory_item(character, action)

        if item.is_potion:
            if action.action_type == ActionType.EQUIP_ITEM:
                raise ValidationError(
                    f"{item.name} cannot be equipped",
                    field_name="itemId",
                    invalid_value=item.id,
                )
            healed_character, healed = stats.apply_heal(character, item.heal_amount)
            message = f"You drink the {item.name} and recover {healed} HP."
            with self.backend.transaction():
                self.backend.remove_item_from_inventory(character.id, item.id)
                self.backend.update_character(healed_character)
                self._log(
                    campaign.id,
                    EventType.ITEM_DROP,
                    message,
                    {"action": action.action_type.value, "item_id": item.id, "healed": healed},
                )
            return self._respond(campaign.id, ResponseType.ITEM, message)

        with self.backend.transaction():
            message = self._equip(character, item, from_inventory=True)
            self._log(
                campaign.id,
                EventType.ITEM_DROP,
                message,
                {"action": action.action_type.value, "item_id": item.id},
            )
        return self._respond(campaign.id, ResponseType.EQUIPMENT, message)

    # =========================================================================
    # Event Choice
    # =========================================================================

    def _resolve_event(
        self,
        campaign: Campaign,
        character: CharacterState,
        action: PlayerAction,
    ) -> GameServiceResponse:
        event = campaign.pending_event
        if event is None:
            raise InvalidGameStateError(
                "No event is waiting for a decision",
                current_state=campaign.phase.value,
            )

        accepted = action.action_type == ActionType.ACCEPT_EVENT
        item = (
            self._catalog_item(event.item_id)
            if accepted and event.item_id is not None
            else None
        )
        outcome = self.event_resolver.resolve(
            character,
            event,
            accepted=accepted,
            item=item,
            dice_roll=action.dice_roll,
        )

        updated = outcome.resulting_stats
        defeated = updated.is_defeated
        message = f"{event.description} {outcome.notes}" if accepted else outcome.notes
        if defeated:
            message = f"{message} {DEFEAT_MESSAGE}"

        with self.backend.transaction():
            if accepted:
                if item is not None and outcome.item_equipped_id is not None:
                    self._record_equip(character, item)
                if outcome.item_stowed_id is not None:
                    self.backend.add_item_to_inventory(character.id, outcome.item_stowed_id)
                self.backend.update_character(updated)

            self.backend.clear_pending_event(campaign.id)
            self.backend.update_campaign(
                campaign.id,
                phase=Phase.EXPLORATION,
                status=CampaignStatus.GAME_OVER if defeated else None,
            )
            self._log(
                campaign.id,
                event.known_type or EventType.DESCRIPTIVE,
                message,
                {
                    "action": action.action_type.value,
                    "accepted": accepted,
                    "dice_roll": outcome.dice_roll,
                    "tier": outcome.tier.value if outcome.tier else None,
                    "effects": outcome.applied.model_dump(),
                    "item_id": outcome.item_equipped_id or outcome.item_stowed_id,
                },
            )

        response_type = (
            ResponseType.EQUIPMENT if outcome.item_equipped_id is not None else ResponseType.STORY
        )
        return self._respond(campaign.id, response_type, message, event_outcome=outcome)

    # =========================================================================
    # Item Choice
    # =========================================================================

    def _resolve_item_choice(
        self,
        campaign: Campaign,
        character: CharacterState,
        action: PlayerAction,
    ) -> GameServiceResponse:
        item = campaign.pending_item
        if item is None:
            raise InvalidGameStateError(
                "No item is waiting for a decision",
                current_state=campaign.phase.value,
            )

        if action.action_type == ActionType.EQUIP_ITEM and not item.is_equipable:
            raise ValidationError(
                f"{item.name} cannot be equipped",
                field_name="itemId",
                invalid_value=item.id,
            )

        with self.backend.transaction():
            if action.action_type == ActionType.EQUIP_ITEM:
                message = self._equip(character, item, from_inventory=False)
                response_type = ResponseType.EQUIPMENT
            elif action.action_type == ActionType.PICKUP_ITEM:
                self.backend.add_item_to_inventory(character.id, item.id)
                message = f"You pick up the {item.name}."
                response_type = ResponseType.ITEM
            else:
                message = f"You leave the {item.name} behind."
                response_type = ResponseType.STORY

            self.backend.clear_pending_item(campaign.id)
            self.backend.update_campaign(campaign.id, phase=Phase.EXPLORATION)
            self._log(
                campaign.id,
                EventType.ITEM_DROP,
                message,
                {"action": action.action_type.value, "item_id": item.id},
            )
        return self._respond(campaign.id, response_type, message)

    # =========================================================================
    # Combat
    # =========================================================================

    def _combat_round(
        self,
        campaign: Campaign,
        character: CharacterState,
        action: PlayerAction,
    ) -> GameServiceResponse:
        encounter = campaign.encounter
        if encounter is None:
            raise InvalidGameStateError(
                "There is no enemy to fight",
                current_state=campaign.phase.value,
            )

        if action.action_type == ActionType.ATTACK:
            round_ = self.combat_resolver.attack(character, encounter)
        elif action.action_type == ActionType.FLEE:
            round_ = self.combat_resolver.flee(character, encounter, dice_roll=action.dice_roll)
        else:
            item = self._inventory_item(character, action)
            round_ = self.combat_resolver.use_item(character, encounter, item)

        outcome = round_.result.outcome
        enemy = encounter.enemy
        message = round_.notes
        if outcome == CombatOutcome.VICTORY:
            message = self._narrate(
                campaign,
                round_.character,
                purpose="combat_victory",
                outcome=f"The {enemy.name} is defeated.",
                enemy=enemy,
                fallback=message,
            )
            message = f"{round_.notes} {message}" if message != round_.notes else message
        elif outcome == CombatOutcome.DEFEAT:
            message = f"{round_.notes} {DEFEAT_MESSAGE}"

        with self.backend.transaction():
            self._apply_item_changes(character, round_)
            self.backend.update_character(round_.character)
            if outcome == CombatOutcome.ONGOING:
                self.backend.set_current_enemy(campaign.id, round_.encounter)
            else:
                self.backend.set_current_enemy(campaign.id, None)
                self.backend.update_campaign(
                    campaign.id,
                    phase=Phase.EXPLORATION,
                    status=CampaignStatus.GAME_OVER if outcome == CombatOutcome.DEFEAT else None,
                    descriptive_streak=0 if outcome == CombatOutcome.VICTORY else None,
                )
            self._log(
                campaign.id,
                EventType.COMBAT,
                message,
                {
                    "action": action.action_type.value,
                    "enemy_id": enemy.id,
                    "round": round_.encounter.round_number,
                    **round_.result.model_dump(mode="json"),
                },
            )

        if outcome == CombatOutcome.VICTORY:
            self._fire_victory_hook(campaign, round_.character, enemy)

        response_type = ResponseType.COMBAT
        if outcome == CombatOutcome.ONGOING and self._needs_potion_prompt(round_.character):
            response_type = ResponseType.POTION_PROMPT
        return self._respond(
            campaign.id,
            response_type,
            message,
            combat_result=round_.result,
        )

    def _apply_item_changes(self, character: CharacterState, round_: CombatRound) -> None:
        if round_.consumed_item is not None:
            self.backend.remove_item_from_inventory(character.id, round_.consumed_item.id)
        if round_.equipped_item is not None:
            self.backend.remove_item_from_inventory(character.id, round_.equipped_item.id)
            self.backend.equip_item(character.id, round_.equipped_item.id)
            if round_.replaced_item is not None:
                self.backend.add_item_to_inventory(character.id, round_.replaced_item.id)

    def _fire_victory_hook(
        self,
        campaign: Campaign,
        character: CharacterState,
        enemy: Enemy,
    ) -> None:
        """Run the rewards hook once the round is committed.

        A failing hook is logged; the victory stands.
        """
        if self.on_victory is None:
            return
        try:
            self.on_victory(campaign, character, enemy)
        except Exception:
            logger.exception("Victory hook failed", enemy_id=enemy.id)

    def _needs_potion_prompt(self, character: CharacterState) -> bool:
        if character.hp_fraction > self.settings.low_health_fraction:
            return False
        return any(item.is_potion for item in self.backend.get_inventory(character.id))

    # =========================================================================
    # Helpers
    # =========================================================================

    def _inventory_item(self, character: CharacterState, action: PlayerAction) -> Item:
        """Find the action's item in the inventory.

        ``use_item`` without an ``itemId`` drinks the first potion carried.
        """
        inventory = self.backend.get_inventory(character.id)
        item_id = action.item_id
        if item_id is None:
            if action.action_type == ActionType.USE_ITEM:
                for item in inventory:
                    if item.is_potion:
                        return item
                raise ValidationError("You have no potion to use", field_name="itemId")
            raise ValidationError("itemId is required", field_name="itemId")

        for item in inventory:
            if item.id == item_id:
                return item
        raise ValidationError(
            "That item is not in your inventory",
            field_name="itemId",
            invalid_value=item_id,
        )

    def _equip(self, character: CharacterState, item: Item, *, from_inventory: bool) -> str:
        result = stats.equip(character, item)
        if from_inventory:
            self.backend.remove_item_from_inventory(character.id, item.id)
        self._record_equip(character, item)
        self.backend.update_character(result.character)
        if result.replaced is not None:
            return f"You equip the {item.name}, stowing the {result.replaced.name}."
        return f"You equip the {item.name}."

    def _record_equip(self, character: CharacterState, item: Item) -> None:
        """Persist the slot change; the replaced item goes to the inventory."""
        if item.slot is None:
            return
        replaced = character.equipment.in_slot(item.slot)
        if replaced is not None and replaced.id == item.id:
            return
        self.backend.equip_item(character.id, item.id)
        if replaced is not None:
            self.backend.add_item_to_inventory(character.id, replaced.id)

    def _narrate(
        self,
        campaign: Campaign,
        character: CharacterState,
        *,
        purpose: str,
        outcome: str,
        enemy: Enemy | None = None,
        fallback: str | None = None,
    ) -> str:
        context = OracleContext(
            character=character,
            enemy=enemy,
            recent_events=self.backend.get_recent_events(
                campaign.id, self.settings.recent_events_limit
            ),
            scenario=campaign.scenario,
            purpose=purpose,
            outcome=outcome,
        )
        try:
            text = self.oracle.narrate(context).strip()
        except AIControlError as exc:
            logger.warning("Oracle narration failed, using fallback", purpose=purpose, error=str(exc))
            return fallback or outcome
        except Exception:
            logger.exception("Oracle narration raised unexpectedly, using fallback", purpose=purpose)
            return fallback or outcome
        return text or fallback or outcome

    def _log(
        self,
        campaign_id: int,
        event_type: EventType,
        message: str,
        data: dict[str, Any] | None = None,
    ) -> GameEvent:
        return self.backend.save_event(
            GameEvent(campaign_id=campaign_id, event_type=event_type, message=message, data=data)
        )

    def _choices_for(
        self,
        phase: Phase,
        campaign: Campaign,
        character: CharacterState,
    ) -> list[str]:
        if campaign.is_finished:
            return []
        has_potion = any(item.is_potion for item in self.backend.get_inventory(character.id))
        if phase == Phase.COMBAT:
            choices = [CHOICE_ATTACK]
            if has_potion:
                choices.append(CHOICE_USE_POTION)
            return [*choices, CHOICE_FLEE]
        if phase == Phase.EVENT_CHOICE:
            return [CHOICE_ACCEPT, CHOICE_REJECT]
        if phase == Phase.ITEM_CHOICE:
            choices = [CHOICE_PICK_UP, CHOICE_LEAVE_IT]
            if campaign.pending_item is not None and campaign.pending_item.is_equipable:
                choices.append(CHOICE_REPLACE_EQUIPMENT)
            return choices
        choices = [CHOICE_CONTINUE, CHOICE_SEARCH]
        if has_potion and character.current_hp < character.max_hp:
            choices.append(CHOICE_USE_POTION)
        return choices

    def _respond(
        self,
        campaign_id: int,
        response_type: ResponseType,
        message: str,
        **extra: Any,
    ) -> GameServiceResponse:
        campaign = self.backend.get_campaign(campaign_id)
        character = self.backend.get_character_with_full_data(campaign_id)
        state = GameStateView(
            campaign_id=campaign.id,
            status=campaign.status,
            current_phase=campaign.phase,
            character=character,
            enemy=campaign.encounter,
            pending_event=campaign.pending_event,
            pending_item=campaign.pending_item,
            inventory=self.backend.get_inventory(character.id),
        )
        return GameServiceResponse(
            success=True,
            response_type=response_type,
            game_state=state,
            message=message,
            choices=self._choices_for(campaign.phase, campaign, character),
            **extra,
        )

    def _safe_state(self, campaign_id: int) -> GameStateView | None:
        try:
            return self.get_game_state(campaign_id)
        except DragonEngineError as exc:
            logger.debug("No state for rejected action", error=str(exc))
            return None


__all__ = [
    "ALLOWED_ACTIONS",
    "GameService",
    "VictoryHook",
]
