from __future__ import annotations

from rich import print
from rich.markup import escape

from andtask.commands.common import open_store
from andtask.config import load_config
from andtask.utils import truncate


def task_add_cmd(*, store_from_path, db_path: str | None, task_id: str, text: str) -> None:
    with open_store(store_from_path, db_path) as store:
        task = store.create_task(task_id, text)
    print(f"Added task [cyan]{escape(task.id)}[/cyan]")


def task_list_cmd(*, store_from_path, db_path: str | None, pending_only: bool) -> None:
    with open_store(store_from_path, db_path) as store:
        tasks = store.list_tasks()
    if pending_only:
        tasks = [task for task in tasks if not task.done]
    if not tasks:
        print("No tasks")
        return
    for task in tasks:
        box = escape("[x]" if task.done else "[ ]")
        print(f"{box} [cyan]{escape(task.id)}[/cyan] {escape(task.text)}")


def task_update_cmd(
    *,
    store_from_path,
    db_path: str | None,
    task_id: str,
    text: str | None = None,
    done: bool | None = None,
) -> None:
    with open_store(store_from_path, db_path) as store:
        task = store.update_task(task_id, text=text, done=done)
    state = "done" if task.done else "open"
    print(f"Updated task [cyan]{escape(task.id)}[/cyan] ({state})")


def task_remove_cmd(*, store_from_path, db_path: str | None, task_id: str) -> None:
    with open_store(store_from_path, db_path) as store:
        store.delete_task(task_id)
    print(f"Removed task [cyan]{escape(task_id)}[/cyan]")


def note_add_cmd(
    *, store_from_path, db_path: str | None, title: str | None, content: str
) -> None:
    with open_store(store_from_path, db_path) as store:
        note = store.create_note(title, content)
    print(f"Added note [cyan]{note.id}[/cyan] {escape(note.title)}")


def note_list_cmd(*, store_from_path, db_path: str | None) -> None:
    with open_store(store_from_path, db_path) as store:
        notes = store.list_notes()
    if not notes:
        print("No notes")
        return
    for note in notes:
        print(
            f"[cyan]{note.id}[/cyan] [bold]{escape(note.title)}[/bold] "
            f"{escape(truncate(note.content))} [dim]{note.updated_at}[/dim]"
        )


def note_show_cmd(*, store_from_path, db_path: str | None, note_id: int | None) -> None:
    with open_store(store_from_path, db_path) as store:
        note = store.latest_note() if note_id is None else store.get_note(note_id)
    if note is None:
        print("No note found")
        return
    print(f"[bold]{escape(note.title)}[/bold] [dim](#{note.id}, updated {note.updated_at})[/dim]")
    print(escape(note.content))


def note_update_cmd(
    *,
    store_from_path,
    db_path: str | None,
    note_id: int,
    title: str | None,
    content: str | None,
) -> None:
    with open_store(store_from_path, db_path) as store:
        note = store.update_note(note_id, title=title, content=content)
    print(f"Updated note [cyan]{note.id}[/cyan] {escape(note.title)}")


def note_save_cmd(*, store_from_path, db_path: str | None, content: str) -> None:
    """Overwrite the latest note's content, creating a note when there is none."""

    with open_store(store_from_path, db_path) as store:
        note = store.save_note(content)
    print(f"Saved note [cyan]{note.id}[/cyan] {escape(note.title)}")


def note_remove_cmd(*, store_from_path, db_path: str | None, note_id: int) -> None:
    with open_store(store_from_path, db_path) as store:
        store.delete_note(note_id)
    print(f"Removed note [cyan]{note_id}[/cyan]")


def concern_add_cmd(
    *,
    store_from_path,
    db_path: str | None,
    concern_id: str,
    text: str,
    severity: str,
    status: str,
) -> None:
    with open_store(store_from_path, db_path) as store:
        concern = store.create_concern(concern_id, text, severity, status)
    print(
        f"Added concern [cyan]{escape(concern.id)}[/cyan] "
        f"({concern.severity.value}, {concern.status.value})"
    )


def concern_list_cmd(*, store_from_path, db_path: str | None, status: str | None) -> None:
    with open_store(store_from_path, db_path) as store:
        concerns = store.list_concerns(status=status)
    if not concerns:
        print("No concerns")
        return
    colors = {"low": "green", "medium": "yellow", "high": "red"}
    for concern in concerns:
        color = colors[concern.severity.value]
        print(
            f"[cyan]{escape(concern.id)}[/cyan] [{color}]{concern.severity.value}[/{color}] "
            f"{concern.status.value} {escape(concern.text)}"
        )


def concern_update_cmd(
    *,
    store_from_path,
    db_path: str | None,
    concern_id: str,
    text: str | None,
    severity: str | None,
    status: str | None,
) -> None:
    with open_store(store_from_path, db_path) as store:
        concern = store.update_concern(concern_id, text=text, severity=severity, status=status)
    print(
        f"Updated concern [cyan]{escape(concern.id)}[/cyan] "
        f"({concern.severity.value}, {concern.status.value})"
    )


def concern_remove_cmd(*, store_from_path, db_path: str | None, concern_id: str) -> None:
    with open_store(store_from_path, db_path) as store:
        store.delete_concern(concern_id)
    print(f"Removed concern [cyan]{escape(concern_id)}[/cyan]")


def search_cmd(*, store_from_path, db_path: str | None, query: str, limit: int | None) -> None:
    if limit is None:
        limit = load_config().search_limit
    with open_store(store_from_path, db_path) as store:
        hits = store.search(query, limit=limit)
    if not hits:
        print("No results")
        return
    for hit in hits:
        print(
            f"[magenta]{hit.item_type.value}[/magenta] [cyan]{escape(hit.item_id)}[/cyan] "
            f"{escape(hit.snippet())}"
        )
