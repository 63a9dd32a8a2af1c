from __future__ import annotations

from enum import StrEnum
from typing import Final


class ItemType(StrEnum):
    TASK = "task"
    NOTE = "note"
    CONCERN = "concern"


class Severity(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ConcernStatus(StrEnum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"


ALLOWED_SEVERITIES: Final[tuple[str, ...]] = tuple(s.value for s in Severity)
ALLOWED_STATUSES: Final[tuple[str, ...]] = tuple(s.value for s in ConcernStatus)

DEFAULT_NOTE_TITLE: Final[str] = "Untitled Note"


def normalize_token(value: object) -> str:
    if isinstance(value, StrEnum):
        return value.value
    return str(value or "").strip().lower().replace("-", "_").replace(" ", "_")


def validate_severity(value: object) -> Severity:
    normalized = normalize_token(value)
    if normalized in ALLOWED_SEVERITIES:
        return Severity(normalized)
    raise ValueError(
        f"Invalid severity '{value}'. Allowed: {', '.join(ALLOWED_SEVERITIES)}"
    )


def validate_status(value: object) -> ConcernStatus:
    normalized = normalize_token(value)
    if normalized in ALLOWED_STATUSES:
        return ConcernStatus(normalized)
    raise ValueError(f"Invalid status '{value}'. Allowed: {', '.join(ALLOWED_STATUSES)}")


def validate_item_type(value: object) -> ItemType:
    normalized = normalize_token(value)
    # "todo" is what older front ends called tasks.
    if normalized == "todo":
        return ItemType.TASK
    try:
        return ItemType(normalized)
    except ValueError:
        allowed = ", ".join(t.value for t in ItemType)
        raise ValueError(f"Invalid item type '{value}'. Allowed: {allowed}") from None
