from __future__ import annotations

import io
from dataclasses import replace
from decimal import Decimal

import pytest

from bank_bill_parser import annotate_group, filter_groups
from bank_bill_parser.reports import (
    amount_range,
    annotate_groups,
    export_groups_csv,
    fmt_amount,
    group_to_dict,
    monthly_summary,
    ordinal,
    plan_totals,
    upcoming,
)
from tests.helpers.factories import group, tx


def test_annotate_defaults_to_unset():
    a = annotate_group(group("netflix com"), {}, {})
    assert a.decision == "unset"
    assert a.kind is None
    assert a.category is None


@pytest.mark.parametrize(
    ("decision", "kind"),
    [("bill", "bill"), ("subscription", "subscription"), ("no", None)],
)
def test_annotate_kind_follows_decision(decision, kind):
    a = annotate_group(group("x"), {"x": decision}, {"x": "Utilities"})
    assert a.decision == decision
    assert a.kind == kind
    assert a.category == "Utilities"


def test_filter_groups_matches_name_or_key():
    groups = [group("netflix com"), group("oak apts rent"), group("planet fitness")]
    assert [g.merchant_key for g in filter_groups(groups, "  NET ")] == ["netflix com"]
    assert [g.merchant_key for g in filter_groups(groups, "apts")] == ["oak apts rent"]
    assert filter_groups(groups, "") == groups
    assert filter_groups(groups, "hulu") == []


def test_amount_range_uses_larger_band():
    # 6% of typical dominates when amounts are stable.
    low, high = amount_range(group("x", typical="100.00", mad="0"))
    assert (low, high) == (Decimal("94.0000"), Decimal("106.0000"))

    low, high = amount_range(group("x", typical="50.00", mad="10.00"))
    assert (low, high) == (Decimal("30.00"), Decimal("70.00"))


def test_amount_range_never_goes_negative():
    low, _ = amount_range(group("x", typical="5.00", mad="10.00"))
    assert low == 0


@pytest.mark.parametrize(
    ("n", "text"),
    [
        (1, "1st"),
        (2, "2nd"),
        (3, "3rd"),
        (4, "4th"),
        (11, "11th"),
        (12, "12th"),
        (13, "13th"),
        (21, "21st"),
        (22, "22nd"),
        (23, "23rd"),
        (31, "31st"),
    ],
)
def test_ordinal(n: int, text: str):
    assert ordinal(n) == text


def test_fmt_amount_rounds_half_up():
    assert fmt_amount(Decimal("15.485")) == "15.49"
    assert fmt_amount(Decimal("10")) == "10.00"
    assert fmt_amount(Decimal("30.455")) == "30.46"


def _annotated():
    groups = [
        group("oak apts rent", typical="1450.00", day=1),
        group("netflix com", typical="15.49", day=5),
        group("spotify", typical="11.99", day=20),
        group("electric", typical="80.00", day=12),
        group("gym", cadence="weekly", typical="10.00", day=None),
        group("kroger", cadence="unknown", typical="54.21", day=None),
    ]
    decisions = {
        "oak apts rent": "bill",
        "netflix com": "subscription",
        "spotify": "subscription",
        "electric": "bill",
        "gym": "subscription",
        "kroger": "no",
    }
    categories = {"oak apts rent": "Housing", "electric": "Utilities", "spotify": "Other"}
    return annotate_groups(groups, decisions, categories)


def test_upcoming_sorted_by_day_and_filtered_by_kind():
    annotated = _annotated()
    bills = upcoming(annotated, "bill")
    subs = upcoming(annotated, "subscription")
    assert [a.group.merchant_key for a in bills] == ["oak apts rent", "electric"]
    # The weekly gym has no usual day and is left out.
    assert [a.group.merchant_key for a in subs] == ["netflix com", "spotify"]
    assert upcoming(annotated, "bill", limit=1)[0].group.merchant_key == "oak apts rent"


def test_monthly_summary():
    summary = monthly_summary(_annotated())
    assert summary.bill_total == Decimal("1530.00")
    assert summary.bill_count == 2
    assert summary.subscription_total == Decimal("37.48")
    assert summary.subscription_count == 3
    assert summary.grand_total == Decimal("1567.48")


def test_plan_totals_by_category():
    rows, total = plan_totals(_annotated())
    by_cat = {r.category: r.amount for r in rows}

    assert [r.category for r in rows][0] == "Housing"
    assert by_cat["Housing"] == Decimal("1450.00")
    assert by_cat["Utilities"] == Decimal("80.00")
    # Uncategorized subscriptions fall back to Subscriptions.
    assert by_cat["Subscriptions"] == Decimal("25.49")
    assert by_cat["Other"] == Decimal("11.99")
    assert by_cat["Food"] == Decimal("0")
    assert total == Decimal("1567.48")


def test_group_to_dict_shape():
    g = replace(
        group("netflix com", typical="15.49"),
        samples=(tx("2024-03-05", "NETFLIX.COM", "15.49"),),
    )
    d = group_to_dict(g)
    assert d["merchant"] == "Netflix Com"
    assert d["typicalAmount"] == "15.49"
    assert d["amountMad"] == "0.00"
    assert d["usualDayOfMonth"] == 5
    assert d["samples"] == [{"date": "2024-03-05", "amount": "15.49", "description": "NETFLIX.COM"}]


def test_export_groups_csv():
    buf = io.StringIO()
    n = export_groups_csv(
        [group("netflix com", typical="15.49"), group("gym club", cadence="weekly", day=None)],
        buf,
    )
    assert n == 2
    assert buf.getvalue().splitlines() == [
        "merchant,cadence,typicalAmount,amountMad,count,usualDayOfMonth",
        "Netflix Com,monthly,15.49,0.00,3,5",
        "Gym Club,weekly,10.00,0.00,3,",
    ]
