"""Record-store contract consumed by the game service.

Any object with these methods can back the engine; ``SQLiteBackend`` is
the bundled implementation. Lookups of missing ids raise
``RecordNotFoundError``; other storage failures raise ``PersistenceError``.
"""

from __future__ import annotations

from contextlib import AbstractContextManager
from typing import Protocol, runtime_checkable

from dragon_engine.models.catalog import Enemy, Item
from dragon_engine.models.character import CharacterState, EncounterState
from dragon_engine.models.enums import CampaignStatus, Phase
from dragon_engine.models.events import GameEvent, GeneratedEvent
from dragon_engine.models.game_state import Campaign


@runtime_checkable
class BackendService(Protocol):
    """Persistence operations the engine relies on."""

    def transaction(self) -> AbstractContextManager[None]:
        """Group the calls made inside the block into one atomic unit."""
        ...

    # Campaigns
    def get_campaign(self, campaign_id: int) -> Campaign: ...

    def update_campaign(
        self,
        campaign_id: int,
        *,
        phase: Phase | None = None,
        status: CampaignStatus | None = None,
        descriptive_streak: int | None = None,
    ) -> None: ...

    def reset_campaign(self, campaign_id: int) -> None: ...

    # Characters and inventory
    def get_character_with_full_data(self, campaign_id: int) -> CharacterState: ...

    def update_character(self, character: CharacterState) -> None:
        """Persist HP, max HP, attack and defense."""
        ...

    def get_inventory(self, character_id: int) -> list[Item]: ...

    def add_item_to_inventory(self, character_id: int, item_id: int) -> None: ...

    def remove_item_from_inventory(self, character_id: int, item_id: int) -> bool: ...

    def equip_item(self, character_id: int, item_id: int) -> None:
        """Record ``item_id`` as the occupant of its slot. Stats are not touched."""
        ...

    # Catalog
    def get_item(self, item_id: int) -> Item: ...

    def get_random_item(self) -> Item: ...

    def get_random_enemy(self, *, include_bosses: bool = False) -> Enemy: ...

    # Event log
    def save_event(self, event: GameEvent) -> GameEvent:
        """Append ``event`` with the next event number for its campaign."""
        ...

    def get_recent_events(self, campaign_id: int, limit: int = 10) -> list[GameEvent]:
        """Latest ``limit`` events, oldest first."""
        ...

    def get_all_events(self, campaign_id: int) -> list[GameEvent]: ...

    # Transient play state
    def set_pending_event(self, campaign_id: int, event: GeneratedEvent) -> None: ...

    def get_pending_event(self, campaign_id: int) -> GeneratedEvent | None: ...

    def clear_pending_event(self, campaign_id: int) -> None: ...

    def set_pending_item(self, campaign_id: int, item_id: int) -> None: ...

    def get_pending_item(self, campaign_id: int) -> Item | None: ...

    def clear_pending_item(self, campaign_id: int) -> None: ...

    def set_current_enemy(self, campaign_id: int, encounter: EncounterState | None) -> None: ...

    def get_current_enemy(self, campaign_id: int) -> EncounterState | None: ...


__all__ = ["BackendService"]
