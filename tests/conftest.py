"""Pytest configuration for test isolation.

The review state file defaults to ``./.bank_bill_parser/state.json`` and run
options are read from ``BBP_*`` environment variables (possibly loaded from a
developer's ``.env``). To keep tests hermetic, an autouse fixture points the
state file at the test's temporary directory and clears the option variables.
"""

from __future__ import annotations

import os
from pathlib import Path

import pytest


_OPTION_ENV_VARS = (
    "BBP_EXPENSE_SIGN",
    "BBP_MIN_COUNT",
    "BBP_MAX_GROUPS",
    "BBP_PARSE_CONCURRENCY",
)


@pytest.fixture(autouse=True)
def _isolate_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("BBP_STATE_FILE", os.fspath(tmp_path / "state" / "state.json"))
    for name in _OPTION_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def data_dir() -> Path:
    return Path(__file__).resolve().parent / "data"
