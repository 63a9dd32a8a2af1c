from __future__ import annotations

import logging
import sqlite3
import threading
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from .. import db, schema
from .. import migrations as store_migrations
from ..entity_kinds import ConcernStatus, Severity
from . import concerns as store_concerns
from . import notes as store_notes
from . import search as store_search
from . import tasks as store_tasks
from .types import Concern, Note, SearchHit, Task

logger = logging.getLogger(__name__)


class TaskStore:
    """Process-wide handle on the andtask database.

    Opening the store brings the schema to the latest version before the
    handle is returned. Every entity mutation runs in one transaction together
    with its search-index mutation.
    """

    def __init__(
        self,
        db_path: Path | str = db.DEFAULT_DB_PATH,
        *,
        check_same_thread: bool = True,
        busy_timeout_ms: int = db.DEFAULT_BUSY_TIMEOUT_MS,
        migrations: Sequence[store_migrations.Migration] | None = None,
    ):
        self.db_path = Path(db_path).expanduser()
        self.migrations = tuple(schema.MIGRATIONS if migrations is None else migrations)
        self.conn = db.connect(
            self.db_path, check_same_thread=check_same_thread, busy_timeout_ms=busy_timeout_ms
        )
        self._lock = threading.RLock()
        try:
            with self._lock:
                self.applied_migrations = store_migrations.apply_all(self.conn, self.migrations)
        except Exception:
            self.conn.close()
            raise
        if self.applied_migrations:
            logger.info(
                "migrated %s to version %d",
                self.db_path,
                self.applied_migrations[-1].version,
            )

    def __enter__(self) -> TaskStore:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Yield the connection inside ``BEGIN IMMEDIATE``.

        Commits on normal exit and rolls back on any exception, including
        ``KeyboardInterrupt``.
        """
        with self._lock:
            if self.conn.in_transaction:
                raise RuntimeError("a transaction is already open on this store")
            self.conn.execute("BEGIN IMMEDIATE")
            try:
                yield self.conn
            except BaseException:
                if self.conn.in_transaction:
                    self.conn.execute("ROLLBACK")
                raise
            try:
                self.conn.execute("COMMIT")
            except sqlite3.Error:
                if self.conn.in_transaction:
                    self.conn.execute("ROLLBACK")
                raise

    def fetchall(self, sql: str, params: Sequence[Any] = ()) -> list[sqlite3.Row]:
        with self._lock:
            return self.conn.execute(sql, params).fetchall()

    # tasks

    def create_task(self, task_id: str, text: str, done: bool = False) -> Task:
        return store_tasks.create_task(self, task_id, text, done=done)

    def update_task(
        self, task_id: str, *, text: str | None = None, done: bool | None = None
    ) -> Task:
        return store_tasks.update_task(self, task_id, text=text, done=done)

    def delete_task(self, task_id: str) -> None:
        store_tasks.delete_task(self, task_id)

    def get_task(self, task_id: str) -> Task | None:
        return store_tasks.get_task(self, task_id)

    def list_tasks(self) -> list[Task]:
        return store_tasks.list_tasks(self)

    # notes

    def create_note(self, title: str | None = None, content: str | None = "") -> Note:
        return store_notes.create_note(self, title, content)

    def update_note(
        self, note_id: int, *, title: str | None = None, content: str | None = None
    ) -> Note:
        return store_notes.update_note(self, note_id, title=title, content=content)

    def save_note(self, content: str) -> Note:
        return store_notes.save_note(self, content)

    def delete_note(self, note_id: int) -> None:
        store_notes.delete_note(self, note_id)

    def get_note(self, note_id: int) -> Note | None:
        return store_notes.get_note(self, note_id)

    def latest_note(self) -> Note | None:
        return store_notes.latest_note(self)

    def list_notes(self) -> list[Note]:
        return store_notes.list_notes(self)

    # concerns

    def create_concern(
        self,
        concern_id: str,
        text: str,
        severity: Severity | str,
        status: ConcernStatus | str = ConcernStatus.OPEN,
    ) -> Concern:
        return store_concerns.create_concern(self, concern_id, text, severity, status)

    def update_concern(
        self,
        concern_id: str,
        *,
        text: str | None = None,
        severity: Severity | str | None = None,
        status: ConcernStatus | str | None = None,
    ) -> Concern:
        return store_concerns.update_concern(
            self, concern_id, text=text, severity=severity, status=status
        )

    def delete_concern(self, concern_id: str) -> None:
        store_concerns.delete_concern(self, concern_id)

    def get_concern(self, concern_id: str) -> Concern | None:
        return store_concerns.get_concern(self, concern_id)

    def list_concerns(self, *, status: ConcernStatus | str | None = None) -> list[Concern]:
        return store_concerns.list_concerns(self, status=status)

    # search

    def search(self, query: str, limit: int | None = None) -> list[SearchHit]:
        return store_search.search(self, query, limit=limit)

    def rebuild_search_index(self) -> dict[str, int]:
        with self.transaction() as conn:
            return store_search.rebuild_index(conn)

    def search_index_drift(self) -> dict[str, dict[str, list[str]]]:
        with self._lock:
            return store_search.index_drift(self.conn)

    # maintenance

    def migration_status(self) -> dict[str, Any]:
        with self._lock:
            return store_migrations.MigrationRunner(self.conn).status(self.migrations)

    def stats(self) -> dict[str, Any]:
        counts: dict[str, int] = {}
        for label, table in (
            ("tasks", "todos"),
            ("notes", "notes"),
            ("concerns", "concerns"),
            ("search_entries", store_search.INDEX_TABLE),
        ):
            rows = self.fetchall(f"SELECT COUNT(*) AS n FROM {table}")
            counts[label] = int(rows[0]["n"])
        size_bytes = self.db_path.stat().st_size if self.db_path.exists() else 0
        return {"path": str(self.db_path), "size_bytes": size_bytes, **counts}

    def close(self) -> None:
        self.conn.close()
