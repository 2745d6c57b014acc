"""Load/save the caller's review decisions and budget categories.

The detector never reads this state; callers load it once at the start of a
session, derive updated copies while the user reviews groups, and save it once
at the end.

Location (default ``./.bank_bill_parser/state.json``) can be overridden with
the ``BBP_STATE_FILE`` environment variable. Writes target ``.tmp`` first and
are then moved into place with ``os.replace``.
"""

from __future__ import annotations

import contextlib
import os
from os import PathLike
from pathlib import Path

from pydantic import ValidationError

from .logging_setup import get_logger
from .models import BudgetState, Category, Decision

STATE_FILE_ENV = "BBP_STATE_FILE"

_logger = get_logger("bank_bill_parser.state")


def default_state_path() -> Path:
    """Return the state file path honoring ``BBP_STATE_FILE``."""

    env = os.getenv(STATE_FILE_ENV)
    if env and env.strip():
        return Path(env).expanduser().resolve()
    return (Path.cwd() / ".bank_bill_parser" / "state.json").resolve()


def load_state(path: str | PathLike[str] | None = None) -> BudgetState:
    """Read saved state; a missing or unreadable file yields an empty state."""

    p = Path(path) if path is not None else default_state_path()
    if not p.exists():
        return BudgetState()
    try:
        return BudgetState.model_validate_json(p.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, ValidationError):
        _logger.debug("state:read_failed; starting empty path=%s", os.fspath(p), exc_info=True)
        return BudgetState()


def save_state(state: BudgetState, path: str | PathLike[str] | None = None) -> Path:
    """Atomically write ``state`` and return the path written."""

    p = Path(path) if path is not None else default_state_path()
    p.parent.mkdir(parents=True, exist_ok=True)
    tmp = p.with_suffix(p.suffix + ".tmp")
    try:
        tmp.write_text(state.model_dump_json(indent=2), encoding="utf-8")
        os.replace(tmp, p)
    except Exception:
        with contextlib.suppress(FileNotFoundError):
            tmp.unlink()
        raise
    return p


def with_decision(state: BudgetState, merchant_key: str, decision: Decision) -> BudgetState:
    """Return a copy of ``state`` with ``decision`` recorded for ``merchant_key``.

    ``"unset"`` removes any stored decision.
    """

    decisions = dict(state.decisions)
    if decision == "unset":
        decisions.pop(merchant_key, None)
    else:
        decisions[merchant_key] = decision
    return BudgetState(decisions=decisions, categories=dict(state.categories))


def with_category(state: BudgetState, merchant_key: str, category: Category) -> BudgetState:
    categories = dict(state.categories)
    categories[merchant_key] = category
    return BudgetState(decisions=dict(state.decisions), categories=categories)


__all__ = [
    "STATE_FILE_ENV",
    "default_state_path",
    "load_state",
    "save_state",
    "with_category",
    "with_decision",
]
