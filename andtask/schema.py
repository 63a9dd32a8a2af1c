from __future__ import annotations

import sqlite3

from . import db
from .entity_kinds import DEFAULT_NOTE_TITLE
from .migrations import Migration
from .store import search as store_search


def _add_note_title(conn: sqlite3.Connection) -> None:
    # SQLite has no ADD COLUMN IF NOT EXISTS; check first so a retry is harmless.
    db.ensure_column(conn, "notes", "title", f"TEXT NOT NULL DEFAULT '{DEFAULT_NOTE_TITLE}'")
    store_search.backfill_note_index(conn)


# Versions and descriptions are persisted in the ledger of every existing
# store. Append new migrations; never renumber or edit applied ones.
MIGRATIONS: tuple[Migration, ...] = (
    Migration(
        version=1,
        description="create_todos_table",
        statements=(
            """
            CREATE TABLE IF NOT EXISTS todos (
                id TEXT PRIMARY KEY,
                text TEXT NOT NULL,
                done BOOLEAN NOT NULL DEFAULT 0,
                created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
            )
            """,
        ),
    ),
    Migration(
        version=2,
        description="create_notes_table",
        statements=(
            """
            CREATE TABLE IF NOT EXISTS notes (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                content TEXT NOT NULL DEFAULT '',
                created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
            )
            """,
        ),
    ),
    Migration(
        version=3,
        description="create_concerns_table",
        statements=(
            """
            CREATE TABLE IF NOT EXISTS concerns (
                id TEXT PRIMARY KEY,
                text TEXT NOT NULL,
                severity TEXT NOT NULL CHECK (severity IN ('low', 'medium', 'high')),
                status TEXT NOT NULL CHECK (status IN ('open', 'in_progress', 'resolved')),
                created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
            )
            """,
        ),
    ),
    Migration(
        version=4,
        description="create_fts_virtual_table",
        statements=(
            """
            CREATE VIRTUAL TABLE IF NOT EXISTS search_fts USING fts5(
                item_type,
                item_id,
                title,
                content,
                tokenize = 'porter'
            )
            """,
        ),
    ),
    Migration(
        version=5,
        description="add_title_to_notes",
        action=_add_note_title,
    ),
)

LATEST_VERSION = MIGRATIONS[-1].version
