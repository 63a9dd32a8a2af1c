from __future__ import annotations

import sqlite3
from typing import TYPE_CHECKING, cast

from ..entity_kinds import (
    ConcernStatus,
    ItemType,
    Severity,
    validate_severity,
    validate_status,
)
from ..errors import ConstraintViolation, EntityNotFound
from ..utils import next_updated_at, now_iso
from . import search as store_search
from .types import Concern

if TYPE_CHECKING:
    from ._store import TaskStore


def _validate(
    *,
    concern_id: str | None = None,
    text: str | None = None,
    severity: object = None,
    status: object = None,
) -> tuple[Severity | None, ConcernStatus | None]:
    errors: dict[str, str] = {}
    parsed_severity: Severity | None = None
    parsed_status: ConcernStatus | None = None
    if concern_id is not None and not concern_id.strip():
        errors["id"] = "must not be empty"
    if text is not None and not text.strip():
        errors["text"] = "must not be empty"
    if severity is not None:
        try:
            parsed_severity = validate_severity(severity)
        except ValueError as exc:
            errors["severity"] = str(exc)
    if status is not None:
        try:
            parsed_status = validate_status(status)
        except ValueError as exc:
            errors["status"] = str(exc)
    if errors:
        raise ConstraintViolation(errors)
    return parsed_severity, parsed_status


def create_concern(
    store: TaskStore,
    concern_id: str,
    text: str,
    severity: Severity | str,
    status: ConcernStatus | str = ConcernStatus.OPEN,
) -> Concern:
    parsed = _validate(
        concern_id=concern_id or "", text=text or "", severity=severity or "", status=status or ""
    )
    parsed_severity = cast(Severity, parsed[0])
    parsed_status = cast(ConcernStatus, parsed[1])
    now = now_iso()
    with store.transaction() as conn:
        try:
            conn.execute(
                """
                INSERT INTO concerns(id, text, severity, status, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (concern_id, text, parsed_severity.value, parsed_status.value, now, now),
            )
        except sqlite3.IntegrityError as exc:
            if "UNIQUE" in str(exc):
                raise ConstraintViolation(
                    {"id": f"concern '{concern_id}' already exists"}
                ) from exc
            raise ConstraintViolation({"concern": str(exc)}) from exc
        title, content = store_search.concern_projection(text, parsed_severity, parsed_status)
        store_search.index_upsert(conn, ItemType.CONCERN, concern_id, title, content)
    return Concern(
        id=concern_id,
        text=text,
        severity=parsed_severity,
        status=parsed_status,
        created_at=now,
        updated_at=now,
    )


def update_concern(
    store: TaskStore,
    concern_id: str,
    *,
    text: str | None = None,
    severity: Severity | str | None = None,
    status: ConcernStatus | str | None = None,
) -> Concern:
    parsed_severity, parsed_status = _validate(text=text, severity=severity, status=status)
    with store.transaction() as conn:
        row = conn.execute("SELECT * FROM concerns WHERE id = ?", (concern_id,)).fetchone()
        if row is None:
            raise EntityNotFound(ItemType.CONCERN, concern_id)
        current = Concern.from_row(row)
        new_text = current.text if text is None else text
        new_severity = parsed_severity or current.severity
        new_status = parsed_status or current.status
        updated_at = next_updated_at(current.updated_at)
        conn.execute(
            """
            UPDATE concerns
            SET text = ?, severity = ?, status = ?, updated_at = ?
            WHERE id = ?
            """,
            (new_text, new_severity.value, new_status.value, updated_at, concern_id),
        )
        title, content = store_search.concern_projection(new_text, new_severity, new_status)
        store_search.index_upsert(conn, ItemType.CONCERN, concern_id, title, content)
    return Concern(
        id=current.id,
        text=new_text,
        severity=new_severity,
        status=new_status,
        created_at=current.created_at,
        updated_at=updated_at,
    )


def delete_concern(store: TaskStore, concern_id: str) -> None:
    with store.transaction() as conn:
        cur = conn.execute("DELETE FROM concerns WHERE id = ?", (concern_id,))
        if cur.rowcount == 0:
            raise EntityNotFound(ItemType.CONCERN, concern_id)
        store_search.index_delete(conn, ItemType.CONCERN, concern_id)


def get_concern(store: TaskStore, concern_id: str) -> Concern | None:
    rows = store.fetchall("SELECT * FROM concerns WHERE id = ?", (concern_id,))
    if not rows:
        return None
    return Concern.from_row(rows[0])


def list_concerns(
    store: TaskStore, *, status: ConcernStatus | str | None = None
) -> list[Concern]:
    if status is None:
        rows = store.fetchall("SELECT * FROM concerns ORDER BY created_at DESC, id ASC")
    else:
        parsed_status = cast(ConcernStatus, _validate(status=status)[1])
        rows = store.fetchall(
            "SELECT * FROM concerns WHERE status = ? ORDER BY created_at DESC, id ASC",
            (parsed_status.value,),
        )
    return [Concern.from_row(row) for row in rows]
