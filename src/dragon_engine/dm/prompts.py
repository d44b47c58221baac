"""Narrator prompts - instructions for the narrative model."""

from __future__ import annotations

from dragon_engine.models.events import GameEvent, OracleContext


# =============================================================================
# Event Generation
# =============================================================================


EVENT_SYSTEM_PROMPT = """You are the game master of a dungeon crawl. Stay in character and answer with JSON only.

GAME MECHANICS:
- Characters have Health, Attack and Defense stats
- Characters can equip items that modify these stats
- Players face bosses as main encounters
- Before bosses, random events occur that can:
  * Apply stat modifiers
  * Drop or reveal items
  * Create environmental challenges

EVENT TYPES:
- Descriptive: Story or flavor events (effects must be 0, 0, 0)
- Combat: Skirmishes and ambushes (may have negative effects)
- Environmental: Hazards or blessings of the surroundings (can affect any stat)
- Item_Drop: Items found or lost (usually positive effects)

STAT EFFECT RULES:
- health: -10 to +10
- attack: -5 to +5
- defense: -5 to +5
- Use 0 for stats that do not change

Keep descriptions vivid but short (1-2 sentences). Never mention dice, numbers or game mechanics in the description.
"""

EVENT_USER_PROMPT = """CURRENT GAME STATE:
- Character: {character_line}
{enemy_line}
RECENT EVENTS (oldest first):
{history}

CONTEXT: You are in a {scenario} {trigger}.

Generate the NEXT event. Build on what just happened and avoid repeating it.

Respond with exactly one JSON object:
{{"event": "description", "type": "Descriptive|Combat|Environmental|Item_Drop", "effects": {{"health": 0, "attack": 0, "defense": 0}}}}"""


# =============================================================================
# Narration
# =============================================================================


NARRATION_SYSTEM_PROMPT = """You are the narrator of a dungeon crawl. Write one or two vivid sentences in second person.

RULES:
- The outcome you are given has already happened. Describe it; never change it.
- Do not invent damage numbers, items or enemies beyond those named.
- No meta-commentary, no lists, no markdown.
"""

NARRATION_USER_PROMPT = """Setting: {scenario}
Character: {character_line}
{enemy_line}
Moment: {purpose}
Outcome: {outcome}

Narrate this moment."""


def format_character(context: OracleContext) -> str:
    character = context.character
    return (
        f"{character.name} (HP: {character.current_hp}/{character.max_hp}, "
        f"ATK: {character.attack}, DEF: {character.defense})"
    )


def format_enemy(context: OracleContext) -> str:
    if context.enemy is None:
        return ""
    enemy = context.enemy
    return f"- Enemy: {enemy.name} (HP: {enemy.health}, ATK: {enemy.attack}, DEF: {enemy.defense})\n"


def format_history(events: list[GameEvent]) -> str:
    """Render the log for the prompt, with stat changes where recorded."""
    if not events:
        return "(No previous events - this is the beginning of the adventure)"

    lines = []
    for index, event in enumerate(events, start=1):
        effects = (event.data or {}).get("effects") or {}
        changes = ", ".join(
            f"{label} {value:+d}"
            for label, key in (("HP", "health"), ("ATK", "attack"), ("DEF", "defense"))
            if (value := int(effects.get(key, 0) or 0))
        )
        suffix = f", {changes}" if changes else ""
        lines.append(f"{index}. {event.message} [{event.event_type}{suffix}]")
    return "\n".join(lines)


def build_event_messages(context: OracleContext) -> list[dict[str, str]]:
    """Chat messages asking for the next event."""
    user_prompt = EVENT_USER_PROMPT.format(
        character_line=format_character(context),
        enemy_line=format_enemy(context),
        history=format_history(context.recent_events),
        scenario=context.scenario,
        trigger=context.trigger or "as you explore",
    )
    return [
        {"role": "system", "content": EVENT_SYSTEM_PROMPT},
        {"role": "user", "content": user_prompt},
    ]


def build_narration_messages(context: OracleContext) -> list[dict[str, str]]:
    """Chat messages asking for a short narration of a decided outcome."""
    user_prompt = NARRATION_USER_PROMPT.format(
        scenario=context.scenario,
        character_line=format_character(context),
        enemy_line=format_enemy(context).strip(),
        purpose=context.purpose.replace("_", " "),
        outcome=context.outcome or "nothing of note",
    )
    return [
        {"role": "system", "content": NARRATION_SYSTEM_PROMPT},
        {"role": "user", "content": user_prompt},
    ]


__all__ = [
    "EVENT_SYSTEM_PROMPT",
    "NARRATION_SYSTEM_PROMPT",
    "build_event_messages",
    "build_narration_messages",
    "format_history",
]
