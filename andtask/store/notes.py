from __future__ import annotations

import sqlite3
from typing import TYPE_CHECKING

from ..entity_kinds import DEFAULT_NOTE_TITLE, ItemType
from ..errors import ConstraintViolation, EntityNotFound
from ..utils import next_updated_at, now_iso
from . import search as store_search
from .types import Note

if TYPE_CHECKING:
    from ._store import TaskStore


def _validate_title(title: str) -> None:
    if not title.strip():
        raise ConstraintViolation({"title": "must not be empty"})


def _insert(conn: sqlite3.Connection, title: str, content: str) -> Note:
    now = now_iso()
    cur = conn.execute(
        "INSERT INTO notes(title, content, created_at, updated_at) VALUES (?, ?, ?, ?)",
        (title, content, now, now),
    )
    lastrowid = cur.lastrowid
    if lastrowid is None:
        raise RuntimeError("Failed to create note")
    note_id = int(lastrowid)
    index_title, index_content = store_search.note_projection(title, content)
    store_search.index_upsert(conn, ItemType.NOTE, note_id, index_title, index_content)
    return Note(id=note_id, title=title, content=content, created_at=now, updated_at=now)


def _update(
    conn: sqlite3.Connection,
    current: Note,
    *,
    title: str | None,
    content: str | None,
) -> Note:
    new_title = current.title if title is None else title
    new_content = current.content if content is None else content
    updated_at = next_updated_at(current.updated_at)
    conn.execute(
        "UPDATE notes SET title = ?, content = ?, updated_at = ? WHERE id = ?",
        (new_title, new_content, updated_at, current.id),
    )
    index_title, index_content = store_search.note_projection(new_title, new_content)
    store_search.index_upsert(conn, ItemType.NOTE, current.id, index_title, index_content)
    return Note(
        id=current.id,
        title=new_title,
        content=new_content,
        created_at=current.created_at,
        updated_at=updated_at,
    )


def create_note(store: TaskStore, title: str | None = None, content: str | None = "") -> Note:
    title = DEFAULT_NOTE_TITLE if title is None else title
    _validate_title(title)
    with store.transaction() as conn:
        return _insert(conn, title, content or "")


def update_note(
    store: TaskStore,
    note_id: int,
    *,
    title: str | None = None,
    content: str | None = None,
) -> Note:
    if title is not None:
        _validate_title(title)
    with store.transaction() as conn:
        row = conn.execute("SELECT * FROM notes WHERE id = ?", (int(note_id),)).fetchone()
        if row is None:
            raise EntityNotFound(ItemType.NOTE, note_id)
        return _update(conn, Note.from_row(row), title=title, content=content)


def save_note(store: TaskStore, content: str) -> Note:
    """Write ``content`` into the most recent note, creating one if none exists."""
    with store.transaction() as conn:
        row = conn.execute("SELECT * FROM notes ORDER BY id DESC LIMIT 1").fetchone()
        if row is None:
            return _insert(conn, DEFAULT_NOTE_TITLE, content or "")
        return _update(conn, Note.from_row(row), title=None, content=content or "")


def delete_note(store: TaskStore, note_id: int) -> None:
    with store.transaction() as conn:
        cur = conn.execute("DELETE FROM notes WHERE id = ?", (int(note_id),))
        if cur.rowcount == 0:
            raise EntityNotFound(ItemType.NOTE, note_id)
        store_search.index_delete(conn, ItemType.NOTE, int(note_id))


def get_note(store: TaskStore, note_id: int) -> Note | None:
    rows = store.fetchall("SELECT * FROM notes WHERE id = ?", (int(note_id),))
    if not rows:
        return None
    return Note.from_row(rows[0])


def latest_note(store: TaskStore) -> Note | None:
    rows = store.fetchall("SELECT * FROM notes ORDER BY id DESC LIMIT 1")
    if not rows:
        return None
    return Note.from_row(rows[0])


def list_notes(store: TaskStore) -> list[Note]:
    rows = store.fetchall("SELECT * FROM notes ORDER BY updated_at DESC, id DESC")
    return [Note.from_row(row) for row in rows]
