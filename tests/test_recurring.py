from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal

import pytest

from bank_bill_parser import CadenceWindow, ScoreWeights, detect_recurring, score_group
from bank_bill_parser.recurring import (
    MAX_SAMPLES,
    classify_cadence,
    median,
    median_absolute_deviation,
)
from tests.helpers.factories import group, tx


def _series(description: str, start: str, gaps: list[int], amount: str = "10.00"):
    d = date.fromisoformat(start)
    out = [tx(d.isoformat(), description, amount)]
    for g in gaps:
        d += timedelta(days=g)
        out.append(tx(d.isoformat(), description, amount))
    return out


# ---- Statistics --------------------------------------------------------------


def test_median_odd_even_and_empty():
    assert median([3, 1, 2]) == 2
    assert median([4, 1, 3, 2]) == 2.5
    assert median([]) is None


def test_median_absolute_deviation_example():
    values = [Decimal(v) for v in ("10", "10", "12", "30")]
    center = median(values)
    assert center == Decimal("11")
    assert median_absolute_deviation(values, center) == Decimal("1")


@pytest.mark.parametrize(
    ("median_gap", "cadence"),
    [
        (30, "monthly"),
        (25, "monthly"),
        (35, "monthly"),
        (36, "unknown"),
        (7, "weekly"),
        (7.5, "weekly"),
        (9.5, "unknown"),
        (14, "biweekly"),
        (16, "biweekly"),
        (365, "annual"),
        (345, "annual"),
        (300, "unknown"),
        (None, "unknown"),
    ],
)
def test_classify_cadence(median_gap, cadence):
    assert classify_cadence(median_gap) == cadence


def test_custom_cadence_windows():
    windows = (CadenceWindow("monthly", 28, 0),)
    assert classify_cadence(28, windows) == "monthly"
    assert classify_cadence(30, windows) == "unknown"


# ---- Detection ---------------------------------------------------------------


def test_netflix_monthly_scenario():
    txs = [
        tx("2024-01-05", "NETFLIX.COM", "15.49"),
        tx("2024-02-05", "NETFLIX.COM", "15.49"),
        tx("2024-03-05", "NETFLIX.COM", "15.49"),
    ]
    [g] = detect_recurring(txs)
    assert g.merchant_key == "netflix com"
    assert g.merchant == "Netflix Com"
    assert g.cadence == "monthly"
    assert g.typical_amount == Decimal("15.49")
    assert g.amount_mad == Decimal("0")
    assert g.usual_day_of_month == 5
    assert g.count == 3
    assert [t.date for t in g.samples] == [
        date(2024, 3, 5),
        date(2024, 2, 5),
        date(2024, 1, 5),
    ]


@pytest.mark.parametrize(
    ("gaps", "cadence"),
    [
        ([29, 31], "monthly"),
        ([7, 8], "weekly"),
        ([9, 10], "unknown"),
        ([14, 14, 15], "biweekly"),
        ([366, 365], "annual"),
    ],
)
def test_cadence_from_gaps(gaps: list[int], cadence: str):
    [g] = detect_recurring(_series("GYM CLUB", "2023-01-10", gaps))
    assert g.cadence == cadence
    if cadence != "monthly":
        assert g.usual_day_of_month is None


def test_median_gap_is_used_not_mean():
    # Gaps 30, 30, 200: the outlier does not move the median.
    [g] = detect_recurring(_series("WATER UTIL", "2023-01-01", [30, 30, 200]))
    assert g.cadence == "monthly"


def test_groups_below_min_count_are_skipped():
    txs = _series("HULU", "2024-01-01", [30]) + _series("SPOTIFY", "2024-01-02", [30, 30])
    assert [g.merchant_key for g in detect_recurring(txs)] == ["spotify"]
    assert {g.merchant_key for g in detect_recurring(txs, min_count=2)} == {"hulu", "spotify"}


def test_min_count_of_zero_behaves_like_one():
    [g] = detect_recurring([tx("2024-01-01", "ONE OFF", "5")], min_count=0)
    assert g.count == 1
    assert g.cadence == "unknown"


def test_transactions_with_empty_key_are_ignored():
    txs = [tx(f"2024-0{m}-01", "POS DEBIT 1234", "9.99") for m in range(1, 6)]
    assert detect_recurring(txs) == []


def test_samples_are_capped_and_newest_first():
    txs = _series("GYM", "2024-01-01", [7] * 11)
    [g] = detect_recurring(txs)
    assert g.count == 12
    assert len(g.samples) == MAX_SAMPLES
    assert g.samples[0].date == txs[-1].date
    assert g.samples[-1].date == txs[4].date
    assert all(a.date > b.date for a, b in zip(g.samples, g.samples[1:], strict=False))


def test_unsorted_input_is_handled():
    txs = list(reversed(_series("NETFLIX", "2024-01-05", [31, 29])))
    [g] = detect_recurring(txs)
    assert g.cadence == "monthly"
    assert g.samples[0].date == date(2024, 3, 5)


def test_usual_day_rounds_half_up():
    txs = [
        tx("2024-01-05", "RENT", "100"),
        tx("2024-02-05", "RENT", "100"),
        tx("2024-03-06", "RENT", "100"),
        tx("2024-04-06", "RENT", "100"),
    ]
    [g] = detect_recurring(txs)
    assert g.cadence == "monthly"
    assert g.usual_day_of_month == 6


def test_amount_statistics():
    txs = [
        tx("2024-01-01", "ELECTRIC CO", "10"),
        tx("2024-02-01", "ELECTRIC CO", "12"),
        tx("2024-03-01", "ELECTRIC CO", "10"),
        tx("2024-04-01", "ELECTRIC CO", "30"),
    ]
    [g] = detect_recurring(txs)
    assert g.typical_amount == Decimal("11")
    assert g.amount_mad == Decimal("1")


def test_max_groups_truncates_in_first_seen_order():
    txs = (
        _series("ALPHA", "2024-01-01", [3, 90])
        + _series("BRAVO", "2024-01-02", [30, 30])
        + _series("CHARLIE", "2024-01-03", [30, 30])
    )
    got = detect_recurring(txs, max_groups=2)
    # CHARLIE would outrank ALPHA but is never built.
    assert [g.merchant_key for g in got] == ["bravo", "alpha"]
    assert detect_recurring(txs, max_groups=0) == []


def test_ranking_prefers_classified_then_count_then_stable_amounts():
    txs = (
        _series("IRREGULAR", "2024-01-01", [3, 50, 11])
        + _series("NETFLIX", "2024-01-05", [31, 29])
        + _series("GYM", "2024-01-02", [7, 7, 7, 7, 7, 7])
        + [
            tx("2024-01-10", "ELECTRIC", "40"),
            tx("2024-02-10", "ELECTRIC", "90"),
            tx("2024-03-10", "ELECTRIC", "140"),
        ]
    )
    got = detect_recurring(txs)
    assert [g.merchant_key for g in got] == ["gym", "netflix", "electric", "irregular"]
    assert [score_group(g) for g in got] == [
        Decimal(130),
        Decimal(115),
        Decimal(85),
        Decimal(20),
    ]


def test_equal_scores_keep_first_seen_order():
    txs = _series("ZETA", "2024-01-01", [30, 30]) + _series("ALPHA", "2024-01-02", [30, 30])
    assert [g.merchant_key for g in detect_recurring(txs)] == ["zeta", "alpha"]


def test_score_components():
    assert score_group(group("a", cadence="monthly", count=3, mad="0")) == Decimal(115)
    assert score_group(group("a", cadence="unknown", count=10, mad="0")) == Decimal(30)
    assert score_group(group("a", cadence="weekly", count=3, mad="50")) == Decimal(85)
    assert score_group(group("a", cadence="weekly", count=3, mad="2.5")) == Decimal("112.5")


def test_custom_score_weights():
    weights = ScoreWeights(cadence_bonus=10, per_observation=1, observation_cap=2, spread_cap=0)
    assert score_group(group("a", count=5, mad="3"), weights) == Decimal(12)


def test_detection_is_idempotent_and_does_not_mutate_input():
    txs = _series("NETFLIX", "2024-01-05", [31, 29]) + _series("GYM", "2024-01-02", [7, 7])
    snapshot = list(txs)
    first = detect_recurring(txs)
    second = detect_recurring(txs)
    assert first == second
    assert txs == snapshot


def test_detect_accepts_iterators():
    [g] = detect_recurring(iter(_series("NETFLIX", "2024-01-05", [31, 29])))
    assert g.count == 3


def test_empty_input():
    assert detect_recurring([]) == []
