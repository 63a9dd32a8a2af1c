from __future__ import annotations

import pytest

from andtask.entity_kinds import (
    ConcernStatus,
    ItemType,
    Severity,
    validate_item_type,
    validate_severity,
    validate_status,
)


def test_validate_severity_normalizes_case() -> None:
    assert validate_severity(" HIGH ") is Severity.HIGH
    assert validate_severity(Severity.LOW) is Severity.LOW


def test_validate_severity_lists_allowed_values() -> None:
    with pytest.raises(ValueError, match="Allowed: low, medium, high"):
        validate_severity("urgent")


def test_validate_status_accepts_dashes() -> None:
    assert validate_status("in-progress") is ConcernStatus.IN_PROGRESS
    with pytest.raises(ValueError):
        validate_status("closed")


def test_validate_item_type_maps_legacy_todo() -> None:
    assert validate_item_type("todo") is ItemType.TASK
    assert validate_item_type("note") is ItemType.NOTE
    with pytest.raises(ValueError, match="Invalid item type"):
        validate_item_type("memo")
