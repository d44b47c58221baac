"""Narrative oracle: event generation and narration by a language model.

The model proposes events and describes outcomes; it never decides them.
"""

from __future__ import annotations

from dragon_engine.dm.oracle import (
    FALLBACK_EVENTS,
    NEUTRAL_EVENT,
    NarrativeOracle,
    OfflineOracle,
    OpenRouterOracle,
    create_oracle,
    fallback_event,
    parse_event_payload,
)


__all__ = [
    "FALLBACK_EVENTS",
    "NEUTRAL_EVENT",
    "NarrativeOracle",
    "OfflineOracle",
    "OpenRouterOracle",
    "create_oracle",
    "fallback_event",
    "parse_event_payload",
]
