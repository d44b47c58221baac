"""Translate UI choice labels into player actions."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

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
)
from dragon_engine.core.logging import get_logger
from dragon_engine.models.enums import ActionType
from dragon_engine.models.game_state import PlayerAction

if TYPE_CHECKING:
    from dragon_engine.engine.game_service import GameService
    from dragon_engine.models.game_state import GameServiceResponse


logger = get_logger(__name__)


CHOICE_ACTIONS: dict[str, ActionType] = {
    CHOICE_CONTINUE: ActionType.CONTINUE,
    CHOICE_SEARCH: ActionType.SEARCH,
    CHOICE_ATTACK: ActionType.ATTACK,
    CHOICE_FLEE: ActionType.FLEE,
    CHOICE_USE_POTION: ActionType.USE_ITEM,
    CHOICE_PICK_UP: ActionType.PICKUP_ITEM,
    CHOICE_LEAVE_IT: ActionType.REJECT_ITEM,
    CHOICE_REPLACE_EQUIPMENT: ActionType.EQUIP_ITEM,
    CHOICE_ACCEPT: ActionType.ACCEPT_EVENT,
    CHOICE_REJECT: ActionType.REJECT_EVENT,
}


def action_from_choice(choice: str) -> ActionType:
    """Map a choice label to its action; unknown labels mean continue."""
    action_type = CHOICE_ACTIONS.get(choice.strip())
    if action_type is None:
        logger.debug("Unmapped choice, continuing", choice=choice)
        return ActionType.CONTINUE
    return action_type


def build_player_action(
    campaign_id: int,
    choice: str,
    *,
    item_id: int | None = None,
    dice_roll: int | None = None,
) -> PlayerAction:
    """Build the PlayerAction a UI button press stands for."""
    action_data: dict[str, Any] = {}
    if item_id is not None:
        action_data["itemId"] = item_id
    if dice_roll is not None:
        action_data["diceRoll"] = dice_roll
    return PlayerAction(
        campaign_id=campaign_id,
        action_type=action_from_choice(choice),
        action_data=action_data,
    )


def submit_choice(
    service: GameService,
    campaign_id: int,
    choice: str,
    *,
    item_id: int | None = None,
    dice_roll: int | None = None,
) -> GameServiceResponse:
    """Send a choice label through the game service."""
    action = build_player_action(campaign_id, choice, item_id=item_id, dice_roll=dice_roll)
    return service.process_player_action(action)


__all__ = [
    "CHOICE_ACTIONS",
    "action_from_choice",
    "build_player_action",
    "submit_choice",
]
