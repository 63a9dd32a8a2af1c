from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import contextmanager

import typer
from rich import print
from rich.markup import escape

from andtask.config import load_config
from andtask.errors import ConstraintViolation, EntityNotFound, MigrationError
from andtask.store import TaskStore


def store_from_path(db_path: str | None) -> TaskStore:
    cfg = load_config()
    try:
        return TaskStore(db_path or cfg.db_path, busy_timeout_ms=cfg.busy_timeout_ms)
    except MigrationError as exc:
        print(f"[red]Store unavailable:[/red] {escape(str(exc))}")
        raise typer.Exit(code=1) from exc


@contextmanager
def open_store(
    store_from_path: Callable[[str | None], TaskStore], db_path: str | None
) -> Iterator[TaskStore]:
    """Open a store and turn validation and lookup failures into CLI exits."""

    store = store_from_path(db_path)
    try:
        yield store
    except ConstraintViolation as exc:
        for field, message in sorted(exc.errors.items()):
            print(f"[red]Invalid {escape(field)}:[/red] {escape(message)}")
        raise typer.Exit(code=2) from exc
    except EntityNotFound as exc:
        print(f"[red]Not found:[/red] {escape(str(exc))}")
        raise typer.Exit(code=1) from exc
    finally:
        store.close()
