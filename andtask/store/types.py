from __future__ import annotations

import sqlite3
from dataclasses import dataclass

from ..entity_kinds import ConcernStatus, ItemType, Severity
from ..utils import truncate


@dataclass(frozen=True)
class Task:
    id: str
    text: str
    done: bool
    created_at: str
    updated_at: str

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> Task:
        return cls(
            id=str(row["id"]),
            text=row["text"],
            done=bool(row["done"]),
            created_at=str(row["created_at"]),
            updated_at=str(row["updated_at"]),
        )


@dataclass(frozen=True)
class Note:
    id: int
    title: str
    content: str
    created_at: str
    updated_at: str

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> Note:
        return cls(
            id=int(row["id"]),
            title=row["title"],
            content=row["content"],
            created_at=str(row["created_at"]),
            updated_at=str(row["updated_at"]),
        )


@dataclass(frozen=True)
class Concern:
    id: str
    text: str
    severity: Severity
    status: ConcernStatus
    created_at: str
    updated_at: str

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> Concern:
        return cls(
            id=str(row["id"]),
            text=row["text"],
            severity=Severity(row["severity"]),
            status=ConcernStatus(row["status"]),
            created_at=str(row["created_at"]),
            updated_at=str(row["updated_at"]),
        )


@dataclass(frozen=True)
class SearchHit:
    item_type: ItemType
    item_id: str
    title: str
    content: str
    rank: float
    updated_at: str | None

    def snippet(self, width: int = 50) -> str:
        return truncate(self.title or self.content, width)
