from __future__ import annotations

from pathlib import Path

import pytest


@pytest.fixture(autouse=True)
def _isolate_config(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("ANDTASK_CONFIG", str(tmp_path / "config.json"))
    monkeypatch.setenv("ANDTASK_DB_PATH", str(tmp_path / "andtask.sqlite"))
    for name in ("ANDTASK_SEARCH_LIMIT", "ANDTASK_BUSY_TIMEOUT_MS"):
        monkeypatch.delenv(name, raising=False)
