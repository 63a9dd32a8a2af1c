from __future__ import annotations

import logging
import sqlite3
from pathlib import Path

import pytest

from andtask import db, schema
from andtask.errors import (
    DuplicateMigrationVersion,
    OutOfOrderMigration,
    SchemaApplicationError,
)
from andtask.migrations import (
    LEDGER_TABLE,
    Migration,
    MigrationRunner,
    applied_migrations,
    apply_all,
    current_version,
    pending_migrations,
)


def _create(version: int, table: str) -> Migration:
    return Migration(
        version=version,
        description=f"create_{table}",
        statements=(f"CREATE TABLE IF NOT EXISTS {table} (id INTEGER PRIMARY KEY)",),
    )


def _ledger(conn: sqlite3.Connection) -> list[tuple[int, str]]:
    return [(r.version, r.description) for r in applied_migrations(conn)]


def _schema_snapshot(conn: sqlite3.Connection) -> list[tuple[str, str, str]]:
    rows = conn.execute(
        """
        SELECT type, name, sql FROM sqlite_master
        WHERE name NOT LIKE 'sqlite_%'
        ORDER BY type, name
        """
    ).fetchall()
    return [(row[0], row[1], row[2]) for row in rows]


def test_apply_all_runs_in_version_order_and_records_ledger(tmp_path: Path) -> None:
    conn = db.connect(tmp_path / "mig.sqlite")
    try:
        records = apply_all(conn, [_create(1, "alpha"), _create(3, "gamma"), _create(10, "delta")])

        assert [r.version for r in records] == [1, 3, 10]
        assert _ledger(conn) == [(1, "create_alpha"), (3, "create_gamma"), (10, "create_delta")]
        assert db.table_exists(conn, "gamma")
        assert current_version(conn) == 10
        assert all(r.applied_at for r in applied_migrations(conn))
    finally:
        conn.close()


def test_apply_all_twice_is_a_noop(tmp_path: Path) -> None:
    calls: list[int] = []

    def _count(conn: sqlite3.Connection) -> None:
        calls.append(1)
        conn.execute("INSERT INTO alpha DEFAULT VALUES")

    migrations = [
        _create(1, "alpha"),
        Migration(version=2, description="seed_alpha", action=_count),
    ]
    conn = db.connect(tmp_path / "mig.sqlite")
    try:
        first = apply_all(conn, migrations)
        second = apply_all(conn, migrations)

        assert [r.version for r in first] == [1, 2]
        assert second == []
        assert calls == [1]
        assert conn.execute(f"SELECT COUNT(*) FROM {LEDGER_TABLE}").fetchone()[0] == 2
        assert conn.execute("SELECT COUNT(*) FROM alpha").fetchone()[0] == 1
    finally:
        conn.close()


def test_duplicate_versions_rejected_before_anything_runs(tmp_path: Path) -> None:
    conn = db.connect(tmp_path / "mig.sqlite")
    try:
        with pytest.raises(DuplicateMigrationVersion) as excinfo:
            apply_all(conn, [_create(1, "alpha"), _create(2, "beta"), _create(2, "gamma")])

        assert excinfo.value.version == 2
        assert not db.table_exists(conn, LEDGER_TABLE)
        assert not db.table_exists(conn, "alpha")
    finally:
        conn.close()


def test_descending_versions_rejected_before_anything_runs(tmp_path: Path) -> None:
    conn = db.connect(tmp_path / "mig.sqlite")
    try:
        with pytest.raises(OutOfOrderMigration):
            apply_all(conn, [_create(2, "beta"), _create(1, "alpha")])

        assert not db.table_exists(conn, LEDGER_TABLE)
        assert not db.table_exists(conn, "beta")
    finally:
        conn.close()


def test_failed_statement_rolls_back_and_stops(tmp_path: Path) -> None:
    broken = Migration(
        version=2,
        description="create_beta",
        statements=(
            "CREATE TABLE IF NOT EXISTS beta (id INTEGER PRIMARY KEY)",
            "CREATE TABLE broken (",
        ),
    )
    conn = db.connect(tmp_path / "mig.sqlite")
    try:
        with pytest.raises(SchemaApplicationError) as excinfo:
            apply_all(conn, [_create(1, "alpha"), broken, _create(3, "gamma")])

        assert excinfo.value.version == 2
        assert excinfo.value.description == "create_beta"
        assert "create_beta" in str(excinfo.value)
        assert _ledger(conn) == [(1, "create_alpha")]
        assert not db.table_exists(conn, "beta")
        assert not db.table_exists(conn, "gamma")
        assert not conn.in_transaction
    finally:
        conn.close()


def test_failed_migration_is_retried_on_next_run(tmp_path: Path) -> None:
    path = tmp_path / "mig.sqlite"
    broken = Migration(version=2, description="create_beta", statements=("CREATE TABLE beta (",))

    conn = db.connect(path)
    try:
        with pytest.raises(SchemaApplicationError):
            apply_all(conn, [_create(1, "alpha"), broken])
    finally:
        conn.close()

    conn = db.connect(path)
    try:
        records = apply_all(conn, [_create(1, "alpha"), _create(2, "beta")])
        assert [r.version for r in records] == [2]
        assert _ledger(conn) == [(1, "create_alpha"), (2, "create_beta")]
    finally:
        conn.close()


def test_failed_action_rolls_back_its_statements(tmp_path: Path) -> None:
    def _boom(conn: sqlite3.Connection) -> None:
        conn.execute("INSERT INTO beta DEFAULT VALUES")
        raise RuntimeError("backfill exploded")

    migration = Migration(
        version=1,
        description="create_beta_with_backfill",
        statements=("CREATE TABLE IF NOT EXISTS beta (id INTEGER PRIMARY KEY)",),
        action=_boom,
    )
    conn = db.connect(tmp_path / "mig.sqlite")
    try:
        with pytest.raises(SchemaApplicationError, match="backfill exploded"):
            apply_all(conn, [migration])

        assert _ledger(conn) == []
        assert not db.table_exists(conn, "beta")
    finally:
        conn.close()


def test_pending_version_below_applied_one_is_rejected(tmp_path: Path) -> None:
    conn = db.connect(tmp_path / "mig.sqlite")
    try:
        apply_all(conn, [_create(1, "alpha"), _create(3, "gamma")])

        with pytest.raises(OutOfOrderMigration):
            apply_all(conn, [_create(1, "alpha"), _create(2, "beta"), _create(3, "gamma")])

        assert _ledger(conn) == [(1, "create_alpha"), (3, "create_gamma")]
        assert not db.table_exists(conn, "beta")
    finally:
        conn.close()


def test_unknown_ledger_versions_are_logged_and_ignored(
    tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    conn = db.connect(tmp_path / "mig.sqlite")
    try:
        apply_all(conn, [_create(1, "alpha"), _create(2, "beta")])
        with caplog.at_level(logging.WARNING, logger="andtask.migrations"):
            records = apply_all(conn, [_create(1, "alpha")])

        assert records == []
        assert "unknown to this build" in caplog.text
    finally:
        conn.close()


def test_restarts_between_migrations_reach_the_same_schema(tmp_path: Path) -> None:
    straight = db.connect(tmp_path / "straight.sqlite")
    try:
        apply_all(straight, schema.MIGRATIONS)
        expected_schema = _schema_snapshot(straight)
        expected_ledger = _ledger(straight)
    finally:
        straight.close()

    path = tmp_path / "stepwise.sqlite"
    for upto in (1, 2, 4, 5):
        conn = db.connect(path)
        try:
            apply_all(conn, schema.MIGRATIONS[:upto])
        finally:
            conn.close()

    conn = db.connect(path)
    try:
        assert apply_all(conn, schema.MIGRATIONS) == []
        assert _schema_snapshot(conn) == expected_schema
        assert _ledger(conn) == expected_ledger
    finally:
        conn.close()


def test_app_migrations_are_strictly_ascending() -> None:
    versions = [m.version for m in schema.MIGRATIONS]
    assert versions == sorted(set(versions))
    assert versions == [1, 2, 3, 4, 5]
    assert schema.LATEST_VERSION == 5


def test_runner_status_lists_applied_and_pending(tmp_path: Path) -> None:
    conn = db.connect(tmp_path / "mig.sqlite")
    try:
        runner = MigrationRunner(conn)
        runner.apply_all(schema.MIGRATIONS[:3])
        status = runner.status(schema.MIGRATIONS)

        assert status["current_version"] == 3 == current_version(conn)
        assert [r.version for r in status["applied"]] == [1, 2, 3]
        assert status["latest_version"] == 5
        assert [m.version for m in pending_migrations(conn, schema.MIGRATIONS)] == [4, 5]
        assert [m.version for m in status["pending"]] == [4, 5]
    finally:
        conn.close()


def test_apply_all_refuses_to_run_inside_open_transaction(tmp_path: Path) -> None:
    conn = db.connect(tmp_path / "mig.sqlite")
    try:
        conn.execute("BEGIN")
        with pytest.raises(RuntimeError):
            apply_all(conn, [_create(1, "alpha")])
        conn.execute("ROLLBACK")
    finally:
        conn.close()


def test_failed_commit_rolls_back_and_names_the_migration(tmp_path: Path) -> None:
    dangling = Migration(
        version=1,
        description="create_parent_child",
        statements=(
            "CREATE TABLE parent (id INTEGER PRIMARY KEY)",
            """
            CREATE TABLE child (
                id INTEGER PRIMARY KEY,
                parent_id INTEGER REFERENCES parent(id) DEFERRABLE INITIALLY DEFERRED
            )
            """,
            "INSERT INTO child(parent_id) VALUES (99)",
        ),
    )
    conn = db.connect(tmp_path / "mig.sqlite")
    try:
        with pytest.raises(SchemaApplicationError) as excinfo:
            apply_all(conn, [dangling])

        assert excinfo.value.version == 1
        assert "create_parent_child" in str(excinfo.value)
        assert not conn.in_transaction
        assert _ledger(conn) == []
        assert not db.table_exists(conn, "child")
    finally:
        conn.close()
