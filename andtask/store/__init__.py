from __future__ import annotations

from ._store import TaskStore
from .types import Concern, Note, SearchHit, Task

__all__ = [
    "Concern",
    "Note",
    "SearchHit",
    "Task",
    "TaskStore",
]
