"""UI adapters."""

from __future__ import annotations

from dragon_engine.adapters.choices import (
    CHOICE_ACTIONS,
    action_from_choice,
    build_player_action,
    submit_choice,
)


__all__ = [
    "CHOICE_ACTIONS",
    "action_from_choice",
    "build_player_action",
    "submit_choice",
]
