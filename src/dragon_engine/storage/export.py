"""Campaign story export.

Renders a campaign's full event log for download as JSON, plain text or
markdown.
"""

from __future__ import annotations

import json
from enum import StrEnum

from dragon_engine.core.exceptions import ValidationError
from dragon_engine.models.character import CharacterState
from dragon_engine.models.events import GameEvent
from dragon_engine.models.game_state import Campaign


class ExportFormat(StrEnum):
    JSON = "json"
    TEXT = "text"
    MARKDOWN = "markdown"


CONTENT_TYPES = {
    ExportFormat.JSON: "application/json",
    ExportFormat.TEXT: "text/plain",
    ExportFormat.MARKDOWN: "text/markdown",
}

FILE_EXTENSIONS = {
    ExportFormat.JSON: "json",
    ExportFormat.TEXT: "txt",
    ExportFormat.MARKDOWN: "md",
}


def parse_format(value: ExportFormat | str) -> ExportFormat:
    """Resolve a format name.

    Raises:
        ValidationError: If ``value`` is not json, text or markdown.
    """
    try:
        return ExportFormat(str(value).strip().lower())
    except ValueError as exc:
        raise ValidationError(
            "Invalid format. Use: json, text, or markdown",
            field_name="format",
            invalid_value=value,
        ) from exc


def export_filename(campaign: Campaign, fmt: ExportFormat | str) -> str:
    return f"campaign-{campaign.id}.{FILE_EXTENSIONS[parse_format(fmt)]}"


def _as_json(campaign: Campaign, character: CharacterState, events: list[GameEvent]) -> str:
    payload = {
        "success": True,
        "campaign": campaign.model_dump(
            mode="json",
            include={"id", "name", "description", "scenario", "status", "created_at"},
        ),
        "character": character.model_dump(
            mode="json",
            include={"id", "name", "current_hp", "max_hp", "attack", "defense"},
        ),
        "events": [event.model_dump(mode="json") for event in events],
    }
    return json.dumps(payload, indent=2)


def _as_text(campaign: Campaign, character: CharacterState, events: list[GameEvent]) -> str:
    lines = [f"Campaign: {campaign.name}", f"Character: {character.name}", ""]
    for event in events:
        timestamp = event.created_at.strftime("%Y-%m-%d %H:%M")
        lines.append(f"Event {event.event_number} ({event.event_type}) - {timestamp}:")
        lines.append(event.message)
        lines.append("")
    return "\n".join(lines)


def _as_markdown(campaign: Campaign, character: CharacterState, events: list[GameEvent]) -> str:
    lines = [f"# {campaign.name}", ""]
    if campaign.description:
        lines.extend([f"_{campaign.description}_", ""])
    lines.extend([f"## Character: {character.name}", ""])
    for event in events:
        lines.append(f"### Event {event.event_number}: {event.event_type}")
        lines.append(event.message)
        lines.append("")
    return "\n".join(lines)


_RENDERERS = {
    ExportFormat.JSON: _as_json,
    ExportFormat.TEXT: _as_text,
    ExportFormat.MARKDOWN: _as_markdown,
}


def export_story(
    campaign: Campaign,
    character: CharacterState,
    events: list[GameEvent],
    fmt: ExportFormat | str = ExportFormat.TEXT,
) -> str:
    """Render a campaign story.

    Args:
        campaign: The campaign.
        character: Its character.
        events: The full log, in event_number order.
        fmt: ``json``, ``text`` or ``markdown``.

    Returns:
        The rendered document.

    Raises:
        ValidationError: If ``fmt`` is unknown.
    """
    return _RENDERERS[parse_format(fmt)](campaign, character, events)


__all__ = [
    "ExportFormat",
    "CONTENT_TYPES",
    "export_filename",
    "export_story",
    "parse_format",
]
