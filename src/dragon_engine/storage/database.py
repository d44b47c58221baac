"""SQLite persistence layer for the dragon engine.

Provides persistent storage for:
- Catalog data (races, classes, items, enemies)
- Campaigns, including the pending event, pending item and active encounter
- Characters, their equipment slots and inventories
- The append-only event log

Implements the BackendService contract.
"""

from __future__ import annotations

import json
import sqlite3
import threading
from collections.abc import Generator
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from dragon_engine.core.config import StorageSettings, get_settings
from dragon_engine.core.exceptions import PersistenceError, RecordNotFoundError
from dragon_engine.core.logging import get_logger
from dragon_engine.models.catalog import CharacterClass, Enemy, Item, Race
from dragon_engine.models.character import CharacterState, EncounterState, Equipment
from dragon_engine.models.enums import CampaignStatus, EventType, Phase
from dragon_engine.models.events import GameEvent, GeneratedEvent
from dragon_engine.models.game_state import Campaign
from dragon_engine.storage import catalog


logger = get_logger(__name__)

_ITEM_COLUMNS = (
    "id, name, item_type, attack, defense, hp_bonus, heal_amount, description, sprite_path, rarity"
)
_CAMPAIGN_COLUMNS = (
    "id, name, description, scenario, status, phase, pending_event_json, pending_item_id, "
    "encounter_json, descriptive_streak, created_at, updated_at"
)
_CHARACTER_COLUMNS = (
    "id, campaign_id, name, race_id, class_id, current_hp, max_hp, attack, defense, "
    "weapon_id, armor_id, shield_id"
)
_EVENT_COLUMNS = "id, campaign_id, event_number, event_type, message, data_json, created_at"
_STAT_BLOCK_RECORDS = {"races": "race", "classes": "class"}


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


# =============================================================================
# Row Mapping
# =============================================================================


def _item_from_row(row: sqlite3.Row) -> Item:
    return Item(
        id=row["id"],
        name=row["name"],
        item_type=row["item_type"],
        attack=row["attack"],
        defense=row["defense"],
        hp_bonus=row["hp_bonus"],
        heal_amount=row["heal_amount"],
        description=row["description"] or "",
        sprite_path=row["sprite_path"],
        rarity=row["rarity"],
    )


def _enemy_from_row(row: sqlite3.Row) -> Enemy:
    return Enemy(
        id=row["id"],
        name=row["name"],
        health=row["health"],
        attack=row["attack"],
        defense=row["defense"],
        sprite_path=row["sprite_path"],
        is_boss=bool(row["is_boss"]),
    )


def _event_from_row(row: sqlite3.Row) -> GameEvent:
    return GameEvent(
        id=row["id"],
        campaign_id=row["campaign_id"],
        event_number=row["event_number"],
        event_type=EventType(row["event_type"]),
        message=row["message"],
        data=json.loads(row["data_json"]) if row["data_json"] else None,
        created_at=datetime.fromisoformat(row["created_at"]),
    )


# =============================================================================
# Database Class
# =============================================================================


class SQLiteBackend:
    """SQLite database implementing the BackendService contract.

    Each public method runs in its own transaction unless called inside
    ``transaction()``, in which case all calls on the current thread share
    one connection and commit together.
    """

    SCHEMA_VERSION = 1

    def __init__(
        self,
        db_path: str | Path | None = None,
        *,
        busy_timeout_seconds: float | None = None,
        seed: bool | None = None,
        settings: StorageSettings | None = None,
    ) -> None:
        """Initialize database.

        Args:
            db_path: Path to database file. If None, uses the configured path.
            busy_timeout_seconds: Wait on a locked database before failing.
            seed: Seed the catalog when empty. Defaults to the setting.
            settings: Storage settings; loaded from the environment if None.
        """
        settings = settings or get_settings().storage
        self.db_path = Path(db_path) if db_path is not None else settings.database_path
        self.busy_timeout_seconds = (
            busy_timeout_seconds if busy_timeout_seconds is not None else settings.busy_timeout_seconds
        )
        self._local = threading.local()

        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()
        if settings.seed_catalog if seed is None else seed:
            self.seed_catalog()

        logger.info("Database initialized", path=str(self.db_path))

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self.db_path), timeout=self.busy_timeout_seconds)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    @contextmanager
    def _get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Get a database connection with proper cleanup."""
        shared = getattr(self._local, "connection", None)
        if shared is not None:
            try:
                yield shared
            except sqlite3.Error as exc:
                raise PersistenceError(f"Database operation failed: {exc}") from exc
            return

        conn = self._connect()
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as exc:
            conn.rollback()
            raise PersistenceError(f"Database operation failed: {exc}") from exc
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    @contextmanager
    def transaction(self) -> Generator[None, None, None]:
        """Run every call made inside the block in one transaction.

        The database write lock is held for the whole block, so callers
        keep slow work (model calls) outside it. Nested use joins the outer
        transaction.

        Raises:
            PersistenceError: If the database is locked past the busy
                timeout or the commit fails.
        """
        if getattr(self._local, "connection", None) is not None:
            yield
            return

        try:
            conn = self._connect()
        except sqlite3.Error as exc:
            raise PersistenceError(f"Could not open database: {exc}") from exc
        try:
            # Take the write lock up front; a deferred read-then-write can deadlock.
            conn.execute("BEGIN IMMEDIATE")
        except sqlite3.Error as exc:
            conn.close()
            raise PersistenceError(f"Could not start transaction: {exc}") from exc

        self._local.connection = conn
        try:
            yield
            conn.commit()
        except sqlite3.Error as exc:
            conn.rollback()
            raise PersistenceError(f"Transaction failed: {exc}") from exc
        except Exception:
            conn.rollback()
            raise
        finally:
            self._local.connection = None
            conn.close()

    def _init_schema(self) -> None:
        """Initialize database schema."""
        with self._get_connection() as conn:
            cursor = conn.cursor()

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS schema_version (
                    version INTEGER PRIMARY KEY
                )
            """)

            for table in ("races", "classes"):
                cursor.execute(f"""
                    CREATE TABLE IF NOT EXISTS {table} (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        name TEXT NOT NULL UNIQUE,
                        health INTEGER NOT NULL,
                        attack INTEGER NOT NULL,
                        defense INTEGER NOT NULL,
                        sprite_path TEXT
                    )
                """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS items (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL UNIQUE,
                    item_type TEXT NOT NULL,
                    attack INTEGER NOT NULL DEFAULT 0,
                    defense INTEGER NOT NULL DEFAULT 0,
                    hp_bonus INTEGER NOT NULL DEFAULT 0,
                    heal_amount INTEGER NOT NULL DEFAULT 0,
                    description TEXT DEFAULT '',
                    sprite_path TEXT,
                    rarity INTEGER NOT NULL DEFAULT 0
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS enemies (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL UNIQUE,
                    health INTEGER NOT NULL,
                    attack INTEGER NOT NULL,
                    defense INTEGER NOT NULL,
                    sprite_path TEXT,
                    is_boss INTEGER NOT NULL DEFAULT 0
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS campaigns (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    description TEXT DEFAULT '',
                    scenario TEXT NOT NULL,
                    status TEXT NOT NULL,
                    phase TEXT NOT NULL,
                    pending_event_json TEXT,
                    pending_item_id INTEGER REFERENCES items(id),
                    encounter_json TEXT,
                    descriptive_streak INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS characters (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    campaign_id INTEGER NOT NULL UNIQUE
                        REFERENCES campaigns(id) ON DELETE CASCADE,
                    name TEXT NOT NULL,
                    race_id INTEGER REFERENCES races(id),
                    class_id INTEGER REFERENCES classes(id),
                    current_hp INTEGER NOT NULL,
                    max_hp INTEGER NOT NULL,
                    attack INTEGER NOT NULL,
                    defense INTEGER NOT NULL,
                    weapon_id INTEGER REFERENCES items(id),
                    armor_id INTEGER REFERENCES items(id),
                    shield_id INTEGER REFERENCES items(id)
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS inventory (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    character_id INTEGER NOT NULL
                        REFERENCES characters(id) ON DELETE CASCADE,
                    item_id INTEGER NOT NULL REFERENCES items(id)
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS events (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    campaign_id INTEGER NOT NULL
                        REFERENCES campaigns(id) ON DELETE CASCADE,
                    event_number INTEGER NOT NULL,
                    event_type TEXT NOT NULL,
                    message TEXT NOT NULL,
                    data_json TEXT,
                    created_at TEXT NOT NULL,
                    UNIQUE (campaign_id, event_number)
                )
            """)

            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_inventory_character
                ON inventory(character_id)
            """)

            cursor.execute("""
                INSERT OR REPLACE INTO schema_version (version) VALUES (?)
            """, (self.SCHEMA_VERSION,))

    # =========================================================================
    # Catalog Operations
    # =========================================================================

    def seed_catalog(self) -> bool:
        """Load the seed catalog if the item table is empty.

        Returns:
            True if rows were inserted.
        """
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT COUNT(*) FROM items")
            if cursor.fetchone()[0] > 0:
                return False

            for table, rows in (("races", catalog.RACES), ("classes", catalog.CLASSES)):
                cursor.executemany(
                    f"INSERT INTO {table} (name, health, attack, defense, sprite_path) "
                    "VALUES (:name, :health, :attack, :defense, :sprite_path)",
                    rows,
                )
            cursor.executemany(
                "INSERT INTO enemies (name, health, attack, defense, sprite_path, is_boss) "
                "VALUES (:name, :health, :attack, :defense, :sprite_path, :is_boss)",
                catalog.ENEMIES,
            )
            cursor.executemany(
                """
                INSERT INTO items (name, item_type, attack, defense, hp_bonus, heal_amount,
                                   description, sprite_path, rarity)
                VALUES (:name, :item_type, :attack, :defense, :hp_bonus, :heal_amount,
                        :description, :sprite_path, :rarity)
                """,
                [
                    {
                        "attack": 0,
                        "defense": 0,
                        "hp_bonus": 0,
                        "heal_amount": 0,
                        **row,
                        "item_type": str(row["item_type"]),
                    }
                    for row in catalog.ITEMS
                ],
            )

        logger.info(
            "Catalog seeded",
            races=len(catalog.RACES),
            classes=len(catalog.CLASSES),
            items=len(catalog.ITEMS),
            enemies=len(catalog.ENEMIES),
        )
        return True

    def list_races(self) -> list[Race]:
        with self._get_connection() as conn:
            rows = conn.execute("SELECT * FROM races ORDER BY id").fetchall()
            return [Race(**dict(row)) for row in rows]

    def list_classes(self) -> list[CharacterClass]:
        with self._get_connection() as conn:
            rows = conn.execute("SELECT * FROM classes ORDER BY id").fetchall()
            return [CharacterClass(**dict(row)) for row in rows]

    def list_items(self) -> list[Item]:
        with self._get_connection() as conn:
            rows = conn.execute(f"SELECT {_ITEM_COLUMNS} FROM items ORDER BY id").fetchall()
            return [_item_from_row(row) for row in rows]

    def list_enemies(self) -> list[Enemy]:
        with self._get_connection() as conn:
            rows = conn.execute("SELECT * FROM enemies ORDER BY id").fetchall()
            return [_enemy_from_row(row) for row in rows]

    def get_item(self, item_id: int) -> Item:
        with self._get_connection() as conn:
            row = conn.execute(
                f"SELECT {_ITEM_COLUMNS} FROM items WHERE id = ?", (item_id,)
            ).fetchone()
        if row is None:
            raise RecordNotFoundError("Item not found", record_type="item", record_id=item_id)
        return _item_from_row(row)

    def get_random_item(self) -> Item:
        with self._get_connection() as conn:
            row = conn.execute(
                f"SELECT {_ITEM_COLUMNS} FROM items ORDER BY RANDOM() LIMIT 1"
            ).fetchone()
        if row is None:
            raise RecordNotFoundError("Item catalog is empty", record_type="item")
        return _item_from_row(row)

    def get_enemy(self, enemy_id: int) -> Enemy:
        with self._get_connection() as conn:
            row = conn.execute("SELECT * FROM enemies WHERE id = ?", (enemy_id,)).fetchone()
        if row is None:
            raise RecordNotFoundError("Enemy not found", record_type="enemy", record_id=enemy_id)
        return _enemy_from_row(row)

    def get_random_enemy(self, *, include_bosses: bool = False) -> Enemy:
        query = "SELECT * FROM enemies"
        if not include_bosses:
            query += " WHERE is_boss = 0"
        with self._get_connection() as conn:
            row = conn.execute(f"{query} ORDER BY RANDOM() LIMIT 1").fetchone()
        if row is None:
            raise RecordNotFoundError("Enemy catalog is empty", record_type="enemy")
        return _enemy_from_row(row)

    def _get_stat_block(self, table: str, record_id: int) -> dict[str, Any]:
        with self._get_connection() as conn:
            row = conn.execute(f"SELECT * FROM {table} WHERE id = ?", (record_id,)).fetchone()
        if row is None:
            record_type = _STAT_BLOCK_RECORDS[table]
            raise RecordNotFoundError(
                f"{record_type.capitalize()} not found",
                record_type=record_type,
                record_id=record_id,
            )
        return dict(row)

    # =========================================================================
    # Campaign Operations
    # =========================================================================

    def create_campaign(
        self,
        name: str,
        *,
        character_name: str,
        race_id: int,
        class_id: int,
        scenario: str | None = None,
        description: str = "",
    ) -> Campaign:
        """Create a campaign and its character.

        The character starts with race + class health, attack and defense.

        Raises:
            RecordNotFoundError: If the race or class does not exist.
        """
        scenario = scenario or get_settings().game.default_scenario
        with self.transaction():
            race = Race(**self._get_stat_block("races", race_id))
            character_class = CharacterClass(**self._get_stat_block("classes", class_id))
            health = race.health + character_class.health
            now = _now()
            with self._get_connection() as conn:
                cursor = conn.cursor()
                cursor.execute("""
                    INSERT INTO campaigns (name, description, scenario, status, phase,
                                           descriptive_streak, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, 0, ?, ?)
                """, (
                    name,
                    description,
                    scenario,
                    CampaignStatus.ACTIVE.value,
                    Phase.EXPLORATION.value,
                    now,
                    now,
                ))
                campaign_id = cursor.lastrowid
                cursor.execute("""
                    INSERT INTO characters (campaign_id, name, race_id, class_id,
                                            current_hp, max_hp, attack, defense)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """, (
                    campaign_id,
                    character_name,
                    race_id,
                    class_id,
                    health,
                    health,
                    race.attack + character_class.attack,
                    race.defense + character_class.defense,
                ))
            campaign = self.get_campaign(campaign_id)

        logger.info("Campaign created", campaign_id=campaign.id, name=name, scenario=scenario)
        return campaign

    def get_campaign(self, campaign_id: int) -> Campaign:
        with self._get_connection() as conn:
            row = conn.execute(
                f"SELECT {_CAMPAIGN_COLUMNS} FROM campaigns WHERE id = ?", (campaign_id,)
            ).fetchone()
        if row is None:
            raise RecordNotFoundError(
                "Campaign not found", record_type="campaign", record_id=campaign_id
            )

        pending_item = self.get_item(row["pending_item_id"]) if row["pending_item_id"] else None
        return Campaign(
            id=row["id"],
            name=row["name"],
            description=row["description"] or "",
            scenario=row["scenario"],
            status=CampaignStatus(row["status"]),
            phase=Phase(row["phase"]),
            pending_event=(
                GeneratedEvent.model_validate_json(row["pending_event_json"])
                if row["pending_event_json"]
                else None
            ),
            pending_item=pending_item,
            encounter=(
                EncounterState.model_validate_json(row["encounter_json"])
                if row["encounter_json"]
                else None
            ),
            descriptive_streak=row["descriptive_streak"],
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )

    def list_campaigns(self) -> list[Campaign]:
        with self._get_connection() as conn:
            ids = [row["id"] for row in conn.execute("SELECT id FROM campaigns ORDER BY id")]
        return [self.get_campaign(campaign_id) for campaign_id in ids]

    def _update_campaign_columns(self, campaign_id: int, **columns: Any) -> None:
        assignments = ", ".join(f"{name} = ?" for name in columns)
        with self._get_connection() as conn:
            cursor = conn.execute(
                f"UPDATE campaigns SET {assignments}, updated_at = ? WHERE id = ?",
                (*columns.values(), _now(), campaign_id),
            )
            if cursor.rowcount == 0:
                raise RecordNotFoundError(
                    "Campaign not found", record_type="campaign", record_id=campaign_id
                )

    def update_campaign(
        self,
        campaign_id: int,
        *,
        phase: Phase | None = None,
        status: CampaignStatus | None = None,
        descriptive_streak: int | None = None,
    ) -> None:
        columns: dict[str, Any] = {}
        if phase is not None:
            columns["phase"] = phase.value
        if status is not None:
            columns["status"] = status.value
        if descriptive_streak is not None:
            columns["descriptive_streak"] = descriptive_streak
        if columns:
            self._update_campaign_columns(campaign_id, **columns)

    def reset_campaign(self, campaign_id: int) -> None:
        """Return a campaign to its starting state.

        Deletes the event log, restores the character's race + class
        stats, empties inventory and equipment, clears pending state and
        the encounter, and marks the campaign active.
        """
        with self.transaction():
            character = self.get_character_with_full_data(campaign_id)
            health, attack, defense = character.max_hp, character.attack, character.defense
            if character.race_id is not None and character.class_id is not None:
                race = self._get_stat_block("races", character.race_id)
                character_class = self._get_stat_block("classes", character.class_id)
                health = race["health"] + character_class["health"]
                attack = race["attack"] + character_class["attack"]
                defense = race["defense"] + character_class["defense"]

            with self._get_connection() as conn:
                conn.execute("DELETE FROM events WHERE campaign_id = ?", (campaign_id,))
                conn.execute("DELETE FROM inventory WHERE character_id = ?", (character.id,))
                conn.execute("""
                    UPDATE characters
                    SET current_hp = ?, max_hp = ?, attack = ?, defense = ?,
                        weapon_id = NULL, armor_id = NULL, shield_id = NULL
                    WHERE id = ?
                """, (health, health, attack, defense, character.id))
            self._update_campaign_columns(
                campaign_id,
                status=CampaignStatus.ACTIVE.value,
                phase=Phase.EXPLORATION.value,
                pending_event_json=None,
                pending_item_id=None,
                encounter_json=None,
                descriptive_streak=0,
            )

        logger.info("Campaign reset", campaign_id=campaign_id)

    def delete_campaign(self, campaign_id: int) -> bool:
        """Delete a campaign, its character, inventory and log.

        Returns:
            True if deleted, False if not found.
        """
        with self._get_connection() as conn:
            cursor = conn.execute("DELETE FROM campaigns WHERE id = ?", (campaign_id,))
            deleted = cursor.rowcount > 0

        if deleted:
            logger.info("Campaign deleted", campaign_id=campaign_id)
        return deleted

    # =========================================================================
    # Character & Inventory Operations
    # =========================================================================

    def get_character_with_full_data(self, campaign_id: int) -> CharacterState:
        """Load the campaign's character with equipped items resolved."""
        with self._get_connection() as conn:
            row = conn.execute(
                f"SELECT {_CHARACTER_COLUMNS} FROM characters WHERE campaign_id = ?",
                (campaign_id,),
            ).fetchone()
        if row is None:
            raise RecordNotFoundError(
                "Character not found",
                record_type="character",
                details={"campaign_id": campaign_id},
            )

        equipment = Equipment(
            weapon=self.get_item(row["weapon_id"]) if row["weapon_id"] else None,
            armor=self.get_item(row["armor_id"]) if row["armor_id"] else None,
            shield=self.get_item(row["shield_id"]) if row["shield_id"] else None,
        )
        return CharacterState(
            id=row["id"],
            campaign_id=row["campaign_id"],
            name=row["name"],
            race_id=row["race_id"],
            class_id=row["class_id"],
            current_hp=row["current_hp"],
            max_hp=row["max_hp"],
            attack=row["attack"],
            defense=row["defense"],
            equipment=equipment,
        )

    def update_character(self, character: CharacterState) -> None:
        with self._get_connection() as conn:
            cursor = conn.execute("""
                UPDATE characters
                SET current_hp = ?, max_hp = ?, attack = ?, defense = ?
                WHERE id = ?
            """, (
                character.current_hp,
                character.max_hp,
                character.attack,
                character.defense,
                character.id,
            ))
            if cursor.rowcount == 0:
                raise RecordNotFoundError(
                    "Character not found", record_type="character", record_id=character.id
                )

    def get_inventory(self, character_id: int) -> list[Item]:
        with self._get_connection() as conn:
            rows = conn.execute("""
                SELECT items.id, items.name, items.item_type, items.attack, items.defense,
                       items.hp_bonus, items.heal_amount, items.description,
                       items.sprite_path, items.rarity
                FROM inventory JOIN items ON items.id = inventory.item_id
                WHERE inventory.character_id = ?
                ORDER BY inventory.id
            """, (character_id,)).fetchall()
        return [_item_from_row(row) for row in rows]

    def add_item_to_inventory(self, character_id: int, item_id: int) -> None:
        self.get_item(item_id)
        with self._get_connection() as conn:
            conn.execute(
                "INSERT INTO inventory (character_id, item_id) VALUES (?, ?)",
                (character_id, item_id),
            )
        logger.debug("Item added to inventory", character_id=character_id, item_id=item_id)

    def remove_item_from_inventory(self, character_id: int, item_id: int) -> bool:
        """Remove one copy of ``item_id``.

        Returns:
            True if a copy was removed.
        """
        with self._get_connection() as conn:
            cursor = conn.execute("""
                DELETE FROM inventory WHERE id = (
                    SELECT id FROM inventory
                    WHERE character_id = ? AND item_id = ?
                    ORDER BY id LIMIT 1
                )
            """, (character_id, item_id))
            return cursor.rowcount > 0

    def equip_item(self, character_id: int, item_id: int) -> None:
        item = self.get_item(item_id)
        if item.slot is None:
            raise PersistenceError(
                f"{item.name} has no equipment slot",
                operation="equip_item",
                details={"item_id": item_id},
            )
        with self._get_connection() as conn:
            cursor = conn.execute(
                f"UPDATE characters SET {item.slot.value}_id = ? WHERE id = ?",
                (item_id, character_id),
            )
            if cursor.rowcount == 0:
                raise RecordNotFoundError(
                    "Character not found", record_type="character", record_id=character_id
                )

    # =========================================================================
    # Event Log Operations
    # =========================================================================

    def save_event(self, event: GameEvent) -> GameEvent:
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT COALESCE(MAX(event_number), 0) + 1 FROM events WHERE campaign_id = ?",
                (event.campaign_id,),
            )
            event_number = cursor.fetchone()[0]
            cursor.execute("""
                INSERT INTO events (campaign_id, event_number, event_type, message,
                                    data_json, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
            """, (
                event.campaign_id,
                event_number,
                event.event_type.value,
                event.message,
                json.dumps(event.data) if event.data is not None else None,
                event.created_at.isoformat(),
            ))
            event_id = cursor.lastrowid

        return event.model_copy(update={"id": event_id, "event_number": event_number})

    def get_recent_events(self, campaign_id: int, limit: int = 10) -> list[GameEvent]:
        with self._get_connection() as conn:
            rows = conn.execute(f"""
                SELECT {_EVENT_COLUMNS} FROM events
                WHERE campaign_id = ?
                ORDER BY event_number DESC LIMIT ?
            """, (campaign_id, limit)).fetchall()
        return [_event_from_row(row) for row in reversed(rows)]

    def get_all_events(self, campaign_id: int) -> list[GameEvent]:
        with self._get_connection() as conn:
            rows = conn.execute(f"""
                SELECT {_EVENT_COLUMNS} FROM events
                WHERE campaign_id = ?
                ORDER BY event_number
            """, (campaign_id,)).fetchall()
        return [_event_from_row(row) for row in rows]

    def get_event_count(self, campaign_id: int) -> int:
        with self._get_connection() as conn:
            return conn.execute(
                "SELECT COUNT(*) FROM events WHERE campaign_id = ?", (campaign_id,)
            ).fetchone()[0]

    # =========================================================================
    # Transient Play State
    # =========================================================================

    def set_pending_event(self, campaign_id: int, event: GeneratedEvent) -> None:
        self._update_campaign_columns(campaign_id, pending_event_json=event.model_dump_json())

    def get_pending_event(self, campaign_id: int) -> GeneratedEvent | None:
        return self.get_campaign(campaign_id).pending_event

    def clear_pending_event(self, campaign_id: int) -> None:
        self._update_campaign_columns(campaign_id, pending_event_json=None)

    def set_pending_item(self, campaign_id: int, item_id: int) -> None:
        self.get_item(item_id)
        self._update_campaign_columns(campaign_id, pending_item_id=item_id)

    def get_pending_item(self, campaign_id: int) -> Item | None:
        return self.get_campaign(campaign_id).pending_item

    def clear_pending_item(self, campaign_id: int) -> None:
        self._update_campaign_columns(campaign_id, pending_item_id=None)

    def set_current_enemy(self, campaign_id: int, encounter: EncounterState | None) -> None:
        payload = encounter.model_dump_json() if encounter is not None else None
        self._update_campaign_columns(campaign_id, encounter_json=payload)

    def get_current_enemy(self, campaign_id: int) -> EncounterState | None:
        return self.get_campaign(campaign_id).encounter


# =============================================================================
# Singleton Instance
# =============================================================================


_database_instance: SQLiteBackend | None = None


def get_database() -> SQLiteBackend:
    """Get the global database instance.

    Returns:
        SQLiteBackend singleton at the configured path.
    """
    global _database_instance

    if _database_instance is None:
        _database_instance = SQLiteBackend()

    return _database_instance


__all__ = [
    "SQLiteBackend",
    "get_database",
]
