"""Data models and type aliases for ``bank_bill_parser``.

Records produced by the pipeline (:class:`Transaction`,
:class:`RecurringGroup`) are frozen dataclasses: a detection run always builds
a fresh set and nothing is updated in place. Caller-owned, persisted state
(:class:`BudgetState`) is a Pydantic model so the on-disk JSON is validated
when it is read back.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, date, datetime
from decimal import Decimal
from typing import Any, Literal, TypeAlias

from pydantic import BaseModel, ConfigDict, Field, field_validator

# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

ExpenseSign = Literal["auto", "negative", "positive"]
"""Sign convention of the source amounts.

``negative``: expenses are exported as negative numbers. ``positive``:
expenses are exported as positive numbers. ``auto``: infer from the batch.
"""

Cadence = Literal["monthly", "weekly", "biweekly", "annual", "unknown"]

Decision = Literal["bill", "subscription", "no", "unset"]

Kind = Literal["bill", "subscription"]

# Budget categories offered for accepted recurring groups, in display order.
DEFAULT_CATEGORIES: tuple[str, ...] = (
    "Housing",
    "Utilities",
    "Food",
    "Transportation",
    "Insurance",
    "Debt",
    "Savings",
    "Giving",
    "Subscriptions",
    "Other",
)

Category = Literal[
    "Housing",
    "Utilities",
    "Food",
    "Transportation",
    "Insurance",
    "Debt",
    "Savings",
    "Giving",
    "Subscriptions",
    "Other",
]

# A single raw row as delivered by a tabular source: header text -> cell value.
RawRow: TypeAlias = Mapping[str, Any]


# ---------------------------------------------------------------------------
# Pipeline records
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ColumnMap:
    """Header names (original casing) holding each semantic role."""

    date: str
    description: str
    amount: str


@dataclass(frozen=True, slots=True)
class Transaction:
    """A normalized transaction row.

    ``amount`` follows the expense-positive convention after the parser's
    sign pass. ``raw`` keeps the source row for traceability and export; the
    detector never reads it.
    """

    date: date
    description: str
    amount: Decimal
    raw: RawRow


@dataclass(frozen=True, slots=True)
class RecurringGroup:
    """Statistics for one merchant key that looks like a recurring charge.

    Attributes
    ----------
    merchant_key:
        Normalized grouping key, unique within a detection run.
    merchant:
        Display form of ``merchant_key`` (each word capitalized).
    count:
        Number of transactions whose key equals ``merchant_key``.
    cadence:
        Classified repetition interval.
    typical_amount, amount_mad:
        Median amount and median absolute deviation around it.
    usual_day_of_month:
        Rounded median day-of-month; only set for ``monthly`` cadence.
    samples:
        Up to eight most recent member transactions, newest first.
    """

    merchant_key: str
    merchant: str
    count: int
    cadence: Cadence
    typical_amount: Decimal
    amount_mad: Decimal
    usual_day_of_month: int | None
    samples: tuple[Transaction, ...]


@dataclass(frozen=True, slots=True)
class AnnotatedGroup:
    """A :class:`RecurringGroup` overlaid with the caller's decision/category."""

    group: RecurringGroup
    decision: Decision
    kind: Kind | None
    category: Category | None


# ---------------------------------------------------------------------------
# Caller-owned persisted state
# ---------------------------------------------------------------------------


def _utcnow() -> datetime:
    return datetime.now(UTC)


class BudgetState(BaseModel):
    """Per-merchant review decisions and budget categories.

    Keys are merchant keys. The model is frozen; use
    :func:`bank_bill_parser.state.with_decision` /
    :func:`bank_bill_parser.state.with_category` to derive updated copies.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    decisions: dict[str, Decision] = Field(default_factory=dict)
    categories: dict[str, Category] = Field(default_factory=dict)
    updated_at: datetime = Field(default_factory=_utcnow)

    @field_validator("decisions")
    @classmethod
    def _drop_unset(cls, v: dict[str, Decision]) -> dict[str, Decision]:
        # "unset" is the implicit default and is never stored.
        return {k: d for k, d in v.items() if d != "unset"}


__all__ = [
    "AnnotatedGroup",
    "BudgetState",
    "Cadence",
    "Category",
    "ColumnMap",
    "DEFAULT_CATEGORIES",
    "Decision",
    "ExpenseSign",
    "Kind",
    "RawRow",
    "RecurringGroup",
    "Transaction",
]
