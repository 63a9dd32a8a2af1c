"""Versioned, forward-only schema migrations.

Every migration runs in its own ``BEGIN IMMEDIATE`` transaction together with
the insert of its ledger row, so a version is either fully applied and
recorded or not applied at all. The ledger is read fresh from the database on
every run.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from .errors import DuplicateMigrationVersion, OutOfOrderMigration, SchemaApplicationError
from .utils import now_iso

logger = logging.getLogger(__name__)

LEDGER_TABLE = "schema_migrations"


@dataclass(frozen=True)
class MigrationRecord:
    version: int
    description: str
    applied_at: str


@dataclass(frozen=True)
class Migration:
    version: int
    description: str
    statements: tuple[str, ...] = ()
    # Runs after the statements, inside the same transaction. Must be safe to re-run.
    action: Callable[[sqlite3.Connection], None] | None = None


def validate_migrations(migrations: Sequence[Migration]) -> None:
    seen: set[int] = set()
    for migration in migrations:
        if migration.version in seen:
            raise DuplicateMigrationVersion(migration.version)
        seen.add(migration.version)
    previous: int | None = None
    for migration in migrations:
        if previous is not None and migration.version < previous:
            raise OutOfOrderMigration(migration.version, previous)
        previous = migration.version


def ensure_ledger(conn: sqlite3.Connection) -> None:
    conn.execute(
        f"""
        CREATE TABLE IF NOT EXISTS {LEDGER_TABLE} (
            version INTEGER PRIMARY KEY,
            description TEXT NOT NULL,
            applied_at TEXT NOT NULL
        )
        """
    )


def applied_migrations(conn: sqlite3.Connection) -> list[MigrationRecord]:
    ensure_ledger(conn)
    rows = conn.execute(
        f"SELECT version, description, applied_at FROM {LEDGER_TABLE} ORDER BY version"
    ).fetchall()
    return [
        MigrationRecord(
            version=int(row["version"]),
            description=str(row["description"]),
            applied_at=str(row["applied_at"]),
        )
        for row in rows
    ]


def current_version(conn: sqlite3.Connection) -> int:
    records = applied_migrations(conn)
    if not records:
        return 0
    return records[-1].version


def pending_migrations(
    conn: sqlite3.Connection, migrations: Sequence[Migration]
) -> list[Migration]:
    applied = {record.version for record in applied_migrations(conn)}
    return [m for m in migrations if m.version not in applied]


def _check_no_skipped_gap(pending: Sequence[Migration], applied: set[int]) -> None:
    if not pending or not applied:
        return
    highest = max(applied)
    first = pending[0]
    if first.version < highest:
        raise OutOfOrderMigration(
            first.version,
            highest,
            reason=(
                f"migration {first.version} ({first.description}) is unapplied but "
                f"version {highest} is already recorded"
            ),
        )


def _apply_one(conn: sqlite3.Connection, migration: Migration) -> MigrationRecord:
    applied_at = now_iso()
    conn.execute("BEGIN IMMEDIATE")
    try:
        for statement in migration.statements:
            conn.execute(statement)
        if migration.action is not None:
            migration.action(conn)
        conn.execute(
            f"INSERT INTO {LEDGER_TABLE}(version, description, applied_at) VALUES (?, ?, ?)",
            (migration.version, migration.description, applied_at),
        )
        conn.execute("COMMIT")
    except Exception as exc:
        if conn.in_transaction:
            conn.execute("ROLLBACK")
        logger.exception(
            "migration %d (%s) failed, rolled back", migration.version, migration.description
        )
        raise SchemaApplicationError(migration.version, migration.description, str(exc)) from exc
    return MigrationRecord(
        version=migration.version, description=migration.description, applied_at=applied_at
    )


def apply_all(
    conn: sqlite3.Connection, migrations: Sequence[Migration]
) -> list[MigrationRecord]:
    """Apply every unapplied migration in ascending version order.

    Returns the records written by this run. Stops at the first failure by
    raising :class:`SchemaApplicationError`; nothing after it is attempted.
    """
    validate_migrations(migrations)
    if conn.in_transaction:
        raise RuntimeError("apply_all must not run inside an open transaction")
    ensure_ledger(conn)

    applied = {record.version for record in applied_migrations(conn)}
    known = {m.version for m in migrations}
    unknown = sorted(applied - known)
    if unknown:
        logger.warning(
            "ledger records versions unknown to this build: %s",
            ", ".join(str(v) for v in unknown),
        )
    pending = [m for m in migrations if m.version not in applied]
    _check_no_skipped_gap(pending, applied & known)

    records: list[MigrationRecord] = []
    for migration in pending:
        logger.info("applying migration %d: %s", migration.version, migration.description)
        records.append(_apply_one(conn, migration))
    if not records:
        logger.debug("schema up to date at version %d", max(applied, default=0))
    return records


class MigrationRunner:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def apply_all(self, migrations: Sequence[Migration]) -> list[MigrationRecord]:
        return apply_all(self.conn, migrations)

    def status(self, migrations: Sequence[Migration]) -> dict[str, object]:
        pending = pending_migrations(self.conn, migrations)
        return {
            "current_version": current_version(self.conn),
            "latest_version": migrations[-1].version if migrations else 0,
            "applied": applied_migrations(self.conn),
            "pending": pending,
        }
