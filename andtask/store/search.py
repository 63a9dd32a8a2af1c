from __future__ import annotations

import logging
import re
import sqlite3
from collections import Counter
from typing import TYPE_CHECKING, Any

from ..entity_kinds import ConcernStatus, ItemType, Severity, validate_item_type
from ..errors import IndexSyncFailure
from .types import SearchHit

if TYPE_CHECKING:
    from ._store import TaskStore

logger = logging.getLogger(__name__)

INDEX_TABLE = "search_fts"

# Same layout as concern_content(); used by the set-based rebuild passes.
_CONCERN_CONTENT_SQL = "'severity:' || severity || ' status:' || status"

_OWNER_UPDATED_AT_SQL = """
    CASE
        WHEN search_fts.item_type IN ('task', 'todo')
            THEN (SELECT updated_at FROM todos WHERE todos.id = search_fts.item_id)
        WHEN search_fts.item_type = 'note'
            THEN (SELECT updated_at FROM notes
                  WHERE notes.id = CAST(search_fts.item_id AS INTEGER))
        WHEN search_fts.item_type = 'concern'
            THEN (SELECT updated_at FROM concerns WHERE concerns.id = search_fts.item_id)
    END
"""

_QUERY_KEYWORDS = {"or", "and", "not", "near"}

# Entries written under these item_type values belong to the same owner.
_STORED_TYPES = {ItemType.TASK.value: ("task", "todo")}


def task_projection(text: str) -> tuple[str, str]:
    return text, text


def note_projection(title: str, content: str) -> tuple[str, str]:
    return title, content


def concern_content(severity: Severity | str, status: ConcernStatus | str) -> str:
    return f"severity:{Severity(severity).value} status:{ConcernStatus(status).value}"


def concern_projection(
    text: str, severity: Severity | str, status: ConcernStatus | str
) -> tuple[str, str]:
    return text, concern_content(severity, status)


def _delete_entries(conn: sqlite3.Connection, kind: str, key: str) -> None:
    stored = _STORED_TYPES.get(kind, (kind,))
    marks = ", ".join("?" for _ in stored)
    conn.execute(
        f"DELETE FROM {INDEX_TABLE} WHERE item_type IN ({marks}) AND item_id = ?",
        (*stored, key),
    )


def index_upsert(
    conn: sqlite3.Connection,
    item_type: ItemType | str,
    item_id: str | int,
    title: str,
    content: str,
) -> None:
    """Insert or replace the entry for ``(item_type, item_id)``.

    Must run inside the transaction of the primary write it mirrors.
    """
    kind = ItemType(item_type).value
    key = str(item_id)
    try:
        _delete_entries(conn, kind, key)
        conn.execute(
            f"INSERT INTO {INDEX_TABLE}(item_type, item_id, title, content) VALUES (?, ?, ?, ?)",
            (kind, key, title, content),
        )
    except sqlite3.Error as exc:
        raise IndexSyncFailure(kind, key, str(exc)) from exc


def index_delete(conn: sqlite3.Connection, item_type: ItemType | str, item_id: str | int) -> None:
    kind = ItemType(item_type).value
    key = str(item_id)
    try:
        _delete_entries(conn, kind, key)
    except sqlite3.Error as exc:
        raise IndexSyncFailure(kind, key, str(exc)) from exc


def _reindex_tasks(conn: sqlite3.Connection) -> int:
    cur = conn.execute(
        f"""
        INSERT INTO {INDEX_TABLE}(item_type, item_id, title, content)
        SELECT 'task', id, text, text FROM todos
        """
    )
    return cur.rowcount


def _reindex_notes(conn: sqlite3.Connection) -> int:
    cur = conn.execute(
        f"""
        INSERT INTO {INDEX_TABLE}(item_type, item_id, title, content)
        SELECT 'note', CAST(id AS TEXT), title, content FROM notes
        """
    )
    return cur.rowcount


def _reindex_concerns(conn: sqlite3.Connection) -> int:
    cur = conn.execute(
        f"""
        INSERT INTO {INDEX_TABLE}(item_type, item_id, title, content)
        SELECT 'concern', id, text, {_CONCERN_CONTENT_SQL} FROM concerns
        """
    )
    return cur.rowcount


def backfill_note_index(conn: sqlite3.Connection) -> int:
    """Re-derive every note entry from the current ``notes`` rows.

    A pure projection of the primary rows, so running it again after an
    interruption produces the same index.
    """
    conn.execute(f"DELETE FROM {INDEX_TABLE} WHERE item_type = 'note'")
    count = _reindex_notes(conn)
    logger.debug("backfilled %d note index entries", count)
    return count


def rebuild_index(conn: sqlite3.Connection) -> dict[str, int]:
    conn.execute(f"DELETE FROM {INDEX_TABLE}")
    counts = {
        ItemType.TASK.value: _reindex_tasks(conn),
        ItemType.NOTE.value: _reindex_notes(conn),
        ItemType.CONCERN.value: _reindex_concerns(conn),
    }
    logger.info(
        "rebuilt search index: %d tasks, %d notes, %d concerns",
        counts["task"],
        counts["note"],
        counts["concern"],
    )
    return counts


def index_drift(conn: sqlite3.Connection) -> dict[str, dict[str, list[str]]]:
    """Compare the index against the primary tables.

    For each item type, reports ids missing from the index, index entries
    without a live owner, and owners indexed more than once.
    """
    owners = {
        ItemType.TASK.value: "SELECT id FROM todos",
        ItemType.NOTE.value: "SELECT CAST(id AS TEXT) FROM notes",
        ItemType.CONCERN.value: "SELECT id FROM concerns",
    }
    report: dict[str, dict[str, list[str]]] = {}
    known: list[str] = []
    for kind, owner_sql in owners.items():
        stored = _STORED_TYPES.get(kind, (kind,))
        known.extend(stored)
        marks = ", ".join("?" for _ in stored)
        live = {str(row[0]) for row in conn.execute(owner_sql).fetchall()}
        indexed = Counter(
            str(row[0])
            for row in conn.execute(
                f"SELECT item_id FROM {INDEX_TABLE} WHERE item_type IN ({marks})", stored
            ).fetchall()
        )
        report[kind] = {
            "missing": sorted(live - set(indexed)),
            "orphaned": sorted(set(indexed) - live),
            "duplicated": sorted(key for key, n in indexed.items() if n > 1 and key in live),
        }
    marks = ", ".join("?" for _ in known)
    stray = conn.execute(
        f"SELECT item_type, item_id FROM {INDEX_TABLE} WHERE item_type NOT IN ({marks})",
        known,
    ).fetchall()
    if stray:
        report["unknown"] = {
            "missing": [],
            "orphaned": sorted(f"{row[0]}:{row[1]}" for row in stray),
            "duplicated": [],
        }
    return report


def expand_query(query: str) -> str:
    """Turn free text into an FTS5 expression over the title and content columns.

    Each word becomes a quoted term so FTS5 operators typed by the user are
    matched literally; every term must match, as with a bare FTS5 query.
    """
    tokens = re.findall(r"\w+", query)
    tokens = [token for token in tokens if token.lower() not in _QUERY_KEYWORDS]
    if not tokens:
        return ""
    terms = " ".join(f'"{token}"' for token in tokens)
    return f"{{title content}} : ({terms})"


def search(store: TaskStore, query: str, limit: int | None = None) -> list[SearchHit]:
    expanded = expand_query(query)
    if not expanded:
        return []
    sql = f"""
        SELECT search_fts.item_type AS item_type,
               search_fts.item_id AS item_id,
               search_fts.title AS title,
               search_fts.content AS content,
               bm25({INDEX_TABLE}) AS rank,
               {_OWNER_UPDATED_AT_SQL} AS owner_updated_at
        FROM {INDEX_TABLE}
        WHERE {INDEX_TABLE} MATCH ?
        ORDER BY rank ASC, owner_updated_at DESC, item_type ASC, item_id ASC
        LIMIT ?
    """
    params: list[Any] = [expanded, -1 if limit is None else max(int(limit), 0)]
    rows = store.fetchall(sql, params)
    hits: list[SearchHit] = []
    for row in rows:
        hits.append(
            SearchHit(
                item_type=validate_item_type(row["item_type"]),
                item_id=str(row["item_id"]),
                title=row["title"] or "",
                content=row["content"] or "",
                rank=float(row["rank"]),
                updated_at=row["owner_updated_at"],
            )
        )
    return hits
