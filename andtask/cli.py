from __future__ import annotations

import logging

import typer
from rich import print

from . import __version__
from .commands.common import store_from_path
from .commands.db_cmds import check_cmd, migrate_cmd, reindex_cmd, status_cmd
from .commands.entity_cmds import (
    concern_add_cmd,
    concern_list_cmd,
    concern_remove_cmd,
    concern_update_cmd,
    note_add_cmd,
    note_list_cmd,
    note_remove_cmd,
    note_save_cmd,
    note_show_cmd,
    note_update_cmd,
    search_cmd,
    task_add_cmd,
    task_list_cmd,
    task_remove_cmd,
    task_update_cmd,
)
from .store import TaskStore

app = typer.Typer(help="andtask: tasks, notes and concerns with full-text search")
db_app = typer.Typer(help="Database maintenance")
task_app = typer.Typer(help="Manage tasks")
note_app = typer.Typer(help="Manage notes")
concern_app = typer.Typer(help="Manage concerns")
app.add_typer(db_app, name="db")
app.add_typer(task_app, name="task")
app.add_typer(note_app, name="note")
app.add_typer(concern_app, name="concern")

DB_PATH_HELP = "Path to SQLite database"


def _store(db_path: str | None) -> TaskStore:
    return store_from_path(db_path)


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s %(levelname)s %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING)


@db_app.command("migrate")
def db_migrate(db_path: str = typer.Option(None, help=DB_PATH_HELP)) -> None:
    """Apply pending schema migrations."""

    migrate_cmd(store_from_path=_store, db_path=db_path)


@db_app.command("status")
def db_status(db_path: str = typer.Option(None, help=DB_PATH_HELP)) -> None:
    """Show schema version and row counts."""

    status_cmd(store_from_path=_store, db_path=db_path)


@db_app.command("reindex")
def db_reindex(db_path: str = typer.Option(None, help=DB_PATH_HELP)) -> None:
    """Rebuild the search index from the primary tables."""

    reindex_cmd(store_from_path=_store, db_path=db_path)


@db_app.command("check")
def db_check(db_path: str = typer.Option(None, help=DB_PATH_HELP)) -> None:
    """Report search entries that are missing, orphaned or duplicated."""

    check_cmd(store_from_path=_store, db_path=db_path)


@task_app.command("add")
def task_add(
    task_id: str = typer.Argument(..., help="Task id"),
    text: str = typer.Argument(..., help="Task text"),
    db_path: str = typer.Option(None, help=DB_PATH_HELP),
) -> None:
    """Create a task."""

    task_add_cmd(store_from_path=_store, db_path=db_path, task_id=task_id, text=text)


@task_app.command("list")
def task_list(
    pending: bool = typer.Option(False, "--pending", help="Only show tasks not done"),
    db_path: str = typer.Option(None, help=DB_PATH_HELP),
) -> None:
    """List tasks, newest first."""

    task_list_cmd(store_from_path=_store, db_path=db_path, pending_only=pending)


@task_app.command("edit")
def task_edit(
    task_id: str = typer.Argument(..., help="Task id"),
    text: str = typer.Argument(..., help="New task text"),
    db_path: str = typer.Option(None, help=DB_PATH_HELP),
) -> None:
    """Change a task's text."""

    task_update_cmd(store_from_path=_store, db_path=db_path, task_id=task_id, text=text)


@task_app.command("done")
def task_done(
    task_id: str = typer.Argument(..., help="Task id"),
    db_path: str = typer.Option(None, help=DB_PATH_HELP),
) -> None:
    """Mark a task done."""

    task_update_cmd(store_from_path=_store, db_path=db_path, task_id=task_id, done=True)


@task_app.command("undone")
def task_undone(
    task_id: str = typer.Argument(..., help="Task id"),
    db_path: str = typer.Option(None, help=DB_PATH_HELP),
) -> None:
    """Mark a task not done."""

    task_update_cmd(store_from_path=_store, db_path=db_path, task_id=task_id, done=False)


@task_app.command("rm")
def task_rm(
    task_id: str = typer.Argument(..., help="Task id"),
    db_path: str = typer.Option(None, help=DB_PATH_HELP),
) -> None:
    """Delete a task."""

    task_remove_cmd(store_from_path=_store, db_path=db_path, task_id=task_id)


@note_app.command("add")
def note_add(
    content: str = typer.Argument("", help="Note content"),
    title: str = typer.Option(None, "--title", "-t", help="Note title"),
    db_path: str = typer.Option(None, help=DB_PATH_HELP),
) -> None:
    """Create a note."""

    note_add_cmd(store_from_path=_store, db_path=db_path, title=title, content=content)


@note_app.command("list")
def note_list(db_path: str = typer.Option(None, help=DB_PATH_HELP)) -> None:
    """List notes, most recently updated first."""

    note_list_cmd(store_from_path=_store, db_path=db_path)


@note_app.command("show")
def note_show(
    note_id: int = typer.Argument(None, help="Note id (defaults to the latest note)"),
    db_path: str = typer.Option(None, help=DB_PATH_HELP),
) -> None:
    """Print a note."""

    note_show_cmd(store_from_path=_store, db_path=db_path, note_id=note_id)


@note_app.command("edit")
def note_edit(
    note_id: int = typer.Argument(..., help="Note id"),
    title: str = typer.Option(None, "--title", "-t", help="New title"),
    content: str = typer.Option(None, "--content", "-c", help="New content"),
    db_path: str = typer.Option(None, help=DB_PATH_HELP),
) -> None:
    """Change a note's title and/or content."""

    note_update_cmd(
        store_from_path=_store, db_path=db_path, note_id=note_id, title=title, content=content
    )


@note_app.command("save")
def note_save(
    content: str = typer.Argument(..., help="Note content"),
    db_path: str = typer.Option(None, help=DB_PATH_HELP),
) -> None:
    """Save content into the latest note."""

    note_save_cmd(store_from_path=_store, db_path=db_path, content=content)


@note_app.command("rm")
def note_rm(
    note_id: int = typer.Argument(..., help="Note id"),
    db_path: str = typer.Option(None, help=DB_PATH_HELP),
) -> None:
    """Delete a note."""

    note_remove_cmd(store_from_path=_store, db_path=db_path, note_id=note_id)


@concern_app.command("add")
def concern_add(
    concern_id: str = typer.Argument(..., help="Concern id"),
    text: str = typer.Argument(..., help="Concern text"),
    severity: str = typer.Option("medium", "--severity", "-s", help="low, medium or high"),
    status: str = typer.Option("open", "--status", help="open, in_progress or resolved"),
    db_path: str = typer.Option(None, help=DB_PATH_HELP),
) -> None:
    """Create a concern."""

    concern_add_cmd(
        store_from_path=_store,
        db_path=db_path,
        concern_id=concern_id,
        text=text,
        severity=severity,
        status=status,
    )


@concern_app.command("list")
def concern_list(
    status: str = typer.Option(None, "--status", help="Only show concerns in this status"),
    db_path: str = typer.Option(None, help=DB_PATH_HELP),
) -> None:
    """List concerns, newest first."""

    concern_list_cmd(store_from_path=_store, db_path=db_path, status=status)


@concern_app.command("edit")
def concern_edit(
    concern_id: str = typer.Argument(..., help="Concern id"),
    text: str = typer.Option(None, "--text", help="New text"),
    severity: str = typer.Option(None, "--severity", "-s", help="low, medium or high"),
    status: str = typer.Option(None, "--status", help="open, in_progress or resolved"),
    db_path: str = typer.Option(None, help=DB_PATH_HELP),
) -> None:
    """Change a concern's text, severity or status."""

    concern_update_cmd(
        store_from_path=_store,
        db_path=db_path,
        concern_id=concern_id,
        text=text,
        severity=severity,
        status=status,
    )


@concern_app.command("rm")
def concern_rm(
    concern_id: str = typer.Argument(..., help="Concern id"),
    db_path: str = typer.Option(None, help=DB_PATH_HELP),
) -> None:
    """Delete a concern."""

    concern_remove_cmd(store_from_path=_store, db_path=db_path, concern_id=concern_id)


@app.command()
def search(
    query: str = typer.Argument(..., help="Words to search for"),
    limit: int = typer.Option(None, help="Maximum number of results"),
    db_path: str = typer.Option(None, help=DB_PATH_HELP),
) -> None:
    """Full-text search across tasks, notes and concerns."""

    search_cmd(store_from_path=_store, db_path=db_path, query=query, limit=limit)


@app.command("version")
def version() -> None:
    """Print version."""

    print(__version__)


def main() -> None:
    app()
