from __future__ import annotations

import sqlite3
from typing import TYPE_CHECKING

from ..entity_kinds import ItemType
from ..errors import ConstraintViolation, EntityNotFound
from ..utils import next_updated_at, now_iso
from . import search as store_search
from .types import Task

if TYPE_CHECKING:
    from ._store import TaskStore


def _validate(task_id: str | None = None, text: str | None = None) -> None:
    errors: dict[str, str] = {}
    if task_id is not None and not task_id.strip():
        errors["id"] = "must not be empty"
    if text is not None and not text.strip():
        errors["text"] = "must not be empty"
    if errors:
        raise ConstraintViolation(errors)


def create_task(store: TaskStore, task_id: str, text: str, done: bool = False) -> Task:
    _validate(task_id=task_id or "", text=text or "")
    now = now_iso()
    with store.transaction() as conn:
        try:
            conn.execute(
                """
                INSERT INTO todos(id, text, done, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (task_id, text, int(bool(done)), now, now),
            )
        except sqlite3.IntegrityError as exc:
            raise ConstraintViolation({"id": f"task '{task_id}' already exists"}) from exc
        title, content = store_search.task_projection(text)
        store_search.index_upsert(conn, ItemType.TASK, task_id, title, content)
    return Task(id=task_id, text=text, done=bool(done), created_at=now, updated_at=now)


def update_task(
    store: TaskStore,
    task_id: str,
    *,
    text: str | None = None,
    done: bool | None = None,
) -> Task:
    if text is not None:
        _validate(text=text)
    with store.transaction() as conn:
        row = conn.execute("SELECT * FROM todos WHERE id = ?", (task_id,)).fetchone()
        if row is None:
            raise EntityNotFound(ItemType.TASK, task_id)
        current = Task.from_row(row)
        new_text = current.text if text is None else text
        new_done = current.done if done is None else bool(done)
        updated_at = next_updated_at(current.updated_at)
        conn.execute(
            "UPDATE todos SET text = ?, done = ?, updated_at = ? WHERE id = ?",
            (new_text, int(new_done), updated_at, task_id),
        )
        title, content = store_search.task_projection(new_text)
        store_search.index_upsert(conn, ItemType.TASK, task_id, title, content)
    return Task(
        id=current.id,
        text=new_text,
        done=new_done,
        created_at=current.created_at,
        updated_at=updated_at,
    )


def delete_task(store: TaskStore, task_id: str) -> None:
    with store.transaction() as conn:
        cur = conn.execute("DELETE FROM todos WHERE id = ?", (task_id,))
        if cur.rowcount == 0:
            raise EntityNotFound(ItemType.TASK, task_id)
        store_search.index_delete(conn, ItemType.TASK, task_id)


def get_task(store: TaskStore, task_id: str) -> Task | None:
    rows = store.fetchall("SELECT * FROM todos WHERE id = ?", (task_id,))
    if not rows:
        return None
    return Task.from_row(rows[0])


def list_tasks(store: TaskStore) -> list[Task]:
    rows = store.fetchall("SELECT * FROM todos ORDER BY created_at DESC, id ASC")
    return [Task.from_row(row) for row in rows]
