"""Application-wide constants for the dragon engine.

This module defines the fixed game tables: dice bounds, stat clamps,
the choice labels the UI shows per phase, and canned narrative text.
"""

from __future__ import annotations

# =============================================================================
# Dice
# =============================================================================

D20_MIN = 1
"""Lowest face of the outcome die."""

D20_MAX = 20
"""Highest face of the outcome die."""

# =============================================================================
# Stat Limits
# =============================================================================

MAX_STAT = 999_999
"""Upper clamp for any stat after arithmetic."""

# =============================================================================
# Choice Labels
# =============================================================================

CHOICE_CONTINUE = "Continue Forward"
CHOICE_SEARCH = "Search Area"
CHOICE_ATTACK = "Attack"
CHOICE_FLEE = "Flee"
CHOICE_USE_POTION = "Use Potion"
CHOICE_PICK_UP = "Pick Up"
CHOICE_LEAVE_IT = "Leave It"
CHOICE_REPLACE_EQUIPMENT = "Replace Equipment"
CHOICE_ACCEPT = "Accept"
CHOICE_REJECT = "Reject"

EXPLORATION_CHOICES = [CHOICE_CONTINUE, CHOICE_SEARCH]
EVENT_CHOICES = [CHOICE_ACCEPT, CHOICE_REJECT]
COMBAT_CHOICES = [CHOICE_ATTACK, CHOICE_FLEE]

# =============================================================================
# Narrative
# =============================================================================

SCENARIOS = [
    "deep dungeon chamber",
    "ancient temple ruins",
    "dark forest path",
    "cave entrance",
    "abandoned tower",
    "underground crypt",
    "mountain pass",
    "swampy marshland",
]
"""Settings the oracle is asked to narrate in."""

EVENT_TRIGGERS = [
    "as you explore",
    "while searching for clues",
    "during your investigation",
    "as you prepare to rest",
    "while checking for traps",
    "during a moment of quiet",
    "as you approach a door",
    "while examining the area",
]
"""Situations appended to the scenario in event prompts."""

EVENT_PREVIEW_MESSAGES = {
    "Descriptive": "You notice something interesting in your surroundings...",
    "Environmental": "The environment around you begins to shift...",
    "Combat": "You sense danger approaching...",
    "Item_Drop": "Something catches your eye nearby...",
}
"""Teaser shown while an event waits for accept/reject."""

QUIET_EXPLORATION_MESSAGE = "The path ahead is quiet. You press on, senses alert."
DEFEAT_MESSAGE = "Your vision fades as you collapse. Your adventure ends here."
FALLBACK_NARRATION = "The world holds its breath for a moment before moving on."
