"""Run options for a parse + detect pass.

Values come from (highest first) explicit CLI options, environment variables
(typically loaded from ``.env`` by the CLI), then defaults:

- ``BBP_EXPENSE_SIGN``: ``auto`` | ``negative`` | ``positive``
- ``BBP_MIN_COUNT``: minimum transactions per recurring group
- ``BBP_MAX_GROUPS``: cap on groups produced per run
- ``BBP_PARSE_CONCURRENCY``: files parsed in parallel
"""

from __future__ import annotations

import os
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .models import ExpenseSign
from .parsing import DEFAULT_CONCURRENCY
from .recurring import DEFAULT_MAX_GROUPS, DEFAULT_MIN_COUNT


def _env_int(name: str) -> int | None:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    try:
        return int(raw.strip())
    except ValueError:
        return None


class RunOptions(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    expense_sign: ExpenseSign = "auto"
    min_count: int = DEFAULT_MIN_COUNT
    max_groups: int = DEFAULT_MAX_GROUPS
    concurrency: int = Field(default=DEFAULT_CONCURRENCY, ge=1, le=32)

    @classmethod
    def from_env(cls, **overrides: Any) -> RunOptions:
        """Build options from the environment; non-``None`` overrides win.

        Unparseable numeric env values fall back to defaults. An invalid
        ``BBP_EXPENSE_SIGN`` or override raises ``pydantic.ValidationError``.
        """

        values: dict[str, Any] = {}
        sign = os.getenv("BBP_EXPENSE_SIGN")
        if sign and sign.strip():
            values["expense_sign"] = sign.strip().lower()
        for field, env in (
            ("min_count", "BBP_MIN_COUNT"),
            ("max_groups", "BBP_MAX_GROUPS"),
            ("concurrency", "BBP_PARSE_CONCURRENCY"),
        ):
            v = _env_int(env)
            if v is not None:
                values[field] = v
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


__all__ = ["RunOptions"]
