from __future__ import annotations

import typer
from rich import print

from andtask.commands.common import open_store


def _format_bytes(size: int) -> str:
    if size < 1024:
        return f"{size} B"
    if size < 1024 * 1024:
        return f"{size / 1024:.1f} KB"
    return f"{size / 1024 / 1024:.1f} MB"


def migrate_cmd(*, store_from_path, db_path: str | None) -> None:
    """Bring the database schema to the latest version."""

    with open_store(store_from_path, db_path) as store:
        applied = store.applied_migrations
        status = store.migration_status()
    if not applied:
        print(f"Schema already at version {status['current_version']}")
        return
    for record in applied:
        print(f"- Applied [cyan]{record.version}[/cyan] {record.description}")
    print(f"Schema now at version {status['current_version']}")


def status_cmd(*, store_from_path, db_path: str | None) -> None:
    """Show applied migrations and table counts."""

    with open_store(store_from_path, db_path) as store:
        status = store.migration_status()
        stats = store.stats()

    print("[bold]Database[/bold]")
    print(f"- Path: {stats['path']}")
    print(f"- Size: {_format_bytes(int(stats['size_bytes']))}")
    print(f"- Tasks: {stats['tasks']}")
    print(f"- Notes: {stats['notes']}")
    print(f"- Concerns: {stats['concerns']}")
    print(f"- Search entries: {stats['search_entries']}")

    print("\n[bold]Migrations[/bold]")
    print(f"- Version: {status['current_version']} (latest {status['latest_version']})")
    for record in status["applied"]:
        print(f"  - {record.version} {record.description} [dim]{record.applied_at}[/dim]")
    for migration in status["pending"]:
        print(f"  - {migration.version} {migration.description} [yellow]pending[/yellow]")


def reindex_cmd(*, store_from_path, db_path: str | None) -> None:
    """Re-derive the search index from tasks, notes and concerns."""

    with open_store(store_from_path, db_path) as store:
        counts = store.rebuild_search_index()
    print(
        f"Reindexed {counts['task']} tasks, {counts['note']} notes, "
        f"{counts['concern']} concerns"
    )


def check_cmd(*, store_from_path, db_path: str | None) -> None:
    """Compare the search index against the primary tables."""

    with open_store(store_from_path, db_path) as store:
        report = store.search_index_drift()
    problems = 0
    for item_type, drift in report.items():
        for label in ("missing", "orphaned", "duplicated"):
            ids = drift[label]
            if not ids:
                continue
            problems += len(ids)
            print(f"- {item_type} {label}: {', '.join(ids)}")
    if problems:
        print(f"[red]{problems} index problems found[/red]; run `andtask db reindex`")
        raise typer.Exit(code=1)
    print("[green]Search index matches primary tables[/green]")
