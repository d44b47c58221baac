"""Persistence: the BackendService contract, its SQLite implementation,
seed catalog data and story export."""

from __future__ import annotations

from dragon_engine.storage.backend import BackendService
from dragon_engine.storage.database import SQLiteBackend, get_database
from dragon_engine.storage.export import ExportFormat, export_story


__all__ = [
    "BackendService",
    "SQLiteBackend",
    "get_database",
    "ExportFormat",
    "export_story",
]
