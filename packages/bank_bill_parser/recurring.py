"""Recurring-charge detection over normalized transactions.

Transactions are grouped by merchant key; each group large enough gets robust
statistics (median inter-arrival gap, median amount and its median absolute
deviation) and a cadence label. Groups are then ranked so that classified,
well-observed and amount-stable series come first.

The detector is a pure function of its input: no state survives between runs,
and it never raises for odd data. Groups that cannot be characterized simply
come out with cadence ``"unknown"`` or are not produced at all.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from decimal import Decimal
from itertools import pairwise
from typing import Any

from .logging_setup import get_logger
from .merchants import merchant_display_name, normalize_merchant
from .models import Cadence, RecurringGroup, Transaction

_logger = get_logger("bank_bill_parser.recurring")


# ---- Tunables ----------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class CadenceWindow:
    """Median gap within ``tolerance_days`` of ``target_days`` -> ``cadence``."""

    cadence: Cadence
    target_days: int
    tolerance_days: int

    def matches(self, median_gap: float) -> bool:
        return abs(median_gap - self.target_days) <= self.tolerance_days


@dataclass(frozen=True, slots=True)
class ScoreWeights:
    """Constants of the ranking score.

    ``score = (cadence_bonus if cadence != "unknown" else 0)
    + min(observation_cap, count * per_observation)
    - min(spread_cap, amount_mad)``
    """

    cadence_bonus: int = 100
    per_observation: int = 5
    observation_cap: int = 30
    spread_cap: int = 30


# Checked in order; the first match wins.
DEFAULT_CADENCE_WINDOWS: tuple[CadenceWindow, ...] = (
    CadenceWindow("monthly", 30, 5),
    CadenceWindow("weekly", 7, 1),
    CadenceWindow("biweekly", 14, 2),
    CadenceWindow("annual", 365, 20),
)

DEFAULT_SCORE_WEIGHTS = ScoreWeights()

DEFAULT_MIN_COUNT: int = 3
DEFAULT_MAX_GROUPS: int = 200
MAX_SAMPLES: int = 8


# ---- Statistics --------------------------------------------------------------


def median(values: Sequence[Any]) -> Any:
    """Standard median; even lengths average the two middle values.

    Returns ``None`` for an empty sequence.
    """

    if not values:
        return None
    ordered = sorted(values)
    mid = len(ordered) // 2
    if len(ordered) % 2:
        return ordered[mid]
    return (ordered[mid - 1] + ordered[mid]) / 2


def median_absolute_deviation(values: Sequence[Decimal], center: Decimal) -> Decimal:
    mad = median([abs(v - center) for v in values])
    return Decimal(0) if mad is None else Decimal(mad)


def classify_cadence(
    median_gap: float | None,
    windows: Sequence[CadenceWindow] = DEFAULT_CADENCE_WINDOWS,
) -> Cadence:
    if median_gap is None:
        return "unknown"
    for window in windows:
        if window.matches(median_gap):
            return window.cadence
    return "unknown"


def _round_half_up(x: float) -> int:
    return math.floor(x + 0.5)


def score_group(group: RecurringGroup, weights: ScoreWeights = DEFAULT_SCORE_WEIGHTS) -> Decimal:
    """Ranking score; higher is a stronger recurring candidate."""

    bonus = weights.cadence_bonus if group.cadence != "unknown" else 0
    observations = min(weights.observation_cap, group.count * weights.per_observation)
    spread = min(Decimal(weights.spread_cap), group.amount_mad)
    return Decimal(bonus + observations) - spread


# ---- Detection ---------------------------------------------------------------


def _build_group(
    key: str,
    members: list[Transaction],
    windows: Sequence[CadenceWindow],
) -> RecurringGroup:
    members = sorted(members, key=lambda t: t.date)

    gaps = [(b.date - a.date).days for a, b in pairwise(members)]
    cadence = classify_cadence(median(gaps), windows)

    amounts = [t.amount for t in members]
    typical = Decimal(median(amounts))
    mad = median_absolute_deviation(amounts, typical)

    usual_day: int | None = None
    if cadence == "monthly":
        usual_day = _round_half_up(float(median([t.date.day for t in members])))

    return RecurringGroup(
        merchant_key=key,
        merchant=merchant_display_name(key),
        count=len(members),
        cadence=cadence,
        typical_amount=typical,
        amount_mad=mad,
        usual_day_of_month=usual_day,
        samples=tuple(reversed(members[-MAX_SAMPLES:])),
    )


def detect_recurring(
    txs: Iterable[Transaction],
    *,
    min_count: int = DEFAULT_MIN_COUNT,
    max_groups: int = DEFAULT_MAX_GROUPS,
    cadence_windows: Sequence[CadenceWindow] = DEFAULT_CADENCE_WINDOWS,
    weights: ScoreWeights = DEFAULT_SCORE_WEIGHTS,
) -> list[RecurringGroup]:
    """Group ``txs`` by merchant key and return ranked recurring candidates.

    Parameters
    ----------
    txs:
        Normalized transactions. The input is materialized once, so callers
        should pass a stable snapshot.
    min_count:
        Groups with fewer members are discarded.
    max_groups:
        Hard cap on groups produced, applied in first-seen merchant order
        before ranking (a truncation, not a "best N").
    cadence_windows, weights:
        Overrides for the cadence windows and ranking constants.

    Returns
    -------
    list[RecurringGroup]
        Sorted by descending :func:`score_group`; ties keep first-seen order.
    """

    by_key: dict[str, list[Transaction]] = {}
    for t in list(txs):
        key = normalize_merchant(t.description)
        if not key:
            continue
        by_key.setdefault(key, []).append(t)

    out: list[RecurringGroup] = []
    truncated = False
    for key, members in by_key.items():
        if len(members) < min_count:
            continue
        if len(out) >= max_groups:
            truncated = True
            break
        out.append(_build_group(key, members, cadence_windows))

    _logger.debug(
        "detect_recurring keys=%d groups=%d truncated=%s", len(by_key), len(out), truncated
    )

    # sorted() is stable with reverse=True, so equal scores keep their order.
    return sorted(out, key=lambda g: score_group(g, weights), reverse=True)


__all__ = [
    "CadenceWindow",
    "DEFAULT_CADENCE_WINDOWS",
    "DEFAULT_MAX_GROUPS",
    "DEFAULT_MIN_COUNT",
    "DEFAULT_SCORE_WEIGHTS",
    "MAX_SAMPLES",
    "ScoreWeights",
    "classify_cadence",
    "detect_recurring",
    "median",
    "median_absolute_deviation",
    "score_group",
]
