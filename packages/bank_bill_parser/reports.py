"""Caller-side projections over detected groups.

Nothing here feeds back into detection. These helpers overlay saved review
decisions onto groups and derive the views a budgeting front end shows:
filtered lists, expected amount bands, upcoming charges by day of month,
per-category plan totals, and a CSV export.
"""

from __future__ import annotations

import csv
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import IO, Any

from .models import (
    DEFAULT_CATEGORIES,
    AnnotatedGroup,
    Category,
    Decision,
    Kind,
    RecurringGroup,
)

EXPORT_FIELDS: tuple[str, ...] = (
    "merchant",
    "cadence",
    "typicalAmount",
    "amountMad",
    "count",
    "usualDayOfMonth",
)

# Half-width of the expected amount band: the larger of these two.
RANGE_MAD_MULTIPLIER = Decimal(2)
RANGE_MIN_FRACTION = Decimal("0.06")

UPCOMING_LIMIT = 8


def fmt_amount(d: Decimal) -> str:
    """Two decimals, half-up, ASCII dot."""

    q = d.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    return f"{q:.2f}"


def ordinal(n: int) -> str:
    """``1 -> "1st"``, ``12 -> "12th"``, ``22 -> "22nd"``."""

    if 10 <= n % 100 <= 20:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(n % 10, "th")
    return f"{n}{suffix}"


# ---------------------------------------------------------------------------
# Decision overlay
# ---------------------------------------------------------------------------


def annotate_group(
    group: RecurringGroup,
    decisions: Mapping[str, Decision],
    categories: Mapping[str, Category],
) -> AnnotatedGroup:
    """Pure projection of a group plus the caller's saved choices."""

    decision: Decision = decisions.get(group.merchant_key, "unset")
    kind: Kind | None = decision if decision in ("bill", "subscription") else None  # type: ignore[assignment]
    return AnnotatedGroup(
        group=group,
        decision=decision,
        kind=kind,
        category=categories.get(group.merchant_key),
    )


def annotate_groups(
    groups: Iterable[RecurringGroup],
    decisions: Mapping[str, Decision],
    categories: Mapping[str, Category],
) -> list[AnnotatedGroup]:
    return [annotate_group(g, decisions, categories) for g in groups]


def filter_groups(groups: Iterable[RecurringGroup], query: str) -> list[RecurringGroup]:
    """Keep groups whose display name or key contains ``query``."""

    q = query.strip().lower()
    if not q:
        return list(groups)
    return [g for g in groups if q in g.merchant.lower() or q in g.merchant_key]


# ---------------------------------------------------------------------------
# Derived views
# ---------------------------------------------------------------------------


def amount_range(group: RecurringGroup) -> tuple[Decimal, Decimal]:
    """Expected ``(low, high)`` amount for the next charge."""

    band = max(group.amount_mad * RANGE_MAD_MULTIPLIER, group.typical_amount * RANGE_MIN_FRACTION)
    low = max(Decimal(0), group.typical_amount - band)
    return low, group.typical_amount + band


def upcoming(
    annotated: Iterable[AnnotatedGroup], kind: Kind, *, limit: int = UPCOMING_LIMIT
) -> list[AnnotatedGroup]:
    """Accepted groups of ``kind`` with a usual day, earliest day first."""

    items = [a for a in annotated if a.kind == kind and a.group.usual_day_of_month]
    items.sort(key=lambda a: a.group.usual_day_of_month or 0)
    return items[:limit]


@dataclass(frozen=True, slots=True)
class PlanRow:
    category: Category
    amount: Decimal


@dataclass(frozen=True, slots=True)
class MonthlySummary:
    bill_total: Decimal
    bill_count: int
    subscription_total: Decimal
    subscription_count: int

    @property
    def grand_total(self) -> Decimal:
        return self.bill_total + self.subscription_total


def plan_totals(annotated: Iterable[AnnotatedGroup]) -> tuple[list[PlanRow], Decimal]:
    """Sum typical amounts of accepted groups per budget category.

    Uncategorized subscriptions count toward ``Subscriptions``; other
    uncategorized groups toward ``Other``. Rows follow
    :data:`DEFAULT_CATEGORIES` order and include empty categories.
    """

    totals: dict[str, Decimal] = {}
    for a in annotated:
        if a.kind is None:
            continue
        cat = a.category or ("Subscriptions" if a.kind == "subscription" else "Other")
        totals[cat] = totals.get(cat, Decimal(0)) + a.group.typical_amount
    rows = [PlanRow(category=c, amount=totals.get(c, Decimal(0))) for c in DEFAULT_CATEGORIES]  # type: ignore[arg-type]
    return rows, sum((r.amount for r in rows), Decimal(0))


def monthly_summary(annotated: Iterable[AnnotatedGroup]) -> MonthlySummary:
    items = list(annotated)
    bills = [a.group.typical_amount for a in items if a.kind == "bill"]
    subs = [a.group.typical_amount for a in items if a.kind == "subscription"]
    return MonthlySummary(
        bill_total=sum(bills, Decimal(0)),
        bill_count=len(bills),
        subscription_total=sum(subs, Decimal(0)),
        subscription_count=len(subs),
    )


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------


def group_to_dict(group: RecurringGroup) -> dict[str, Any]:
    """JSON-friendly view; amounts as 2-decimal strings, dates as ISO."""

    return {
        "merchantKey": group.merchant_key,
        "merchant": group.merchant,
        "count": group.count,
        "cadence": group.cadence,
        "typicalAmount": fmt_amount(group.typical_amount),
        "amountMad": fmt_amount(group.amount_mad),
        "usualDayOfMonth": group.usual_day_of_month,
        "samples": [
            {
                "date": t.date.isoformat(),
                "amount": fmt_amount(t.amount),
                "description": t.description,
            }
            for t in group.samples
        ],
    }


def export_groups_csv(groups: Sequence[RecurringGroup], stream: IO[str]) -> int:
    """Write one CSV row per group; returns the number of rows written."""

    writer = csv.writer(stream, lineterminator="\n")
    writer.writerow(EXPORT_FIELDS)
    for g in groups:
        writer.writerow(
            [
                g.merchant,
                g.cadence,
                fmt_amount(g.typical_amount),
                fmt_amount(g.amount_mad),
                g.count,
                "" if g.usual_day_of_month is None else g.usual_day_of_month,
            ]
        )
    return len(groups)


__all__ = [
    "EXPORT_FIELDS",
    "MonthlySummary",
    "PlanRow",
    "amount_range",
    "annotate_group",
    "annotate_groups",
    "export_groups_csv",
    "filter_groups",
    "fmt_amount",
    "group_to_dict",
    "monthly_summary",
    "ordinal",
    "plan_totals",
    "upcoming",
]
