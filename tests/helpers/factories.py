"""Small builders for test transactions and groups."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from bank_bill_parser import RecurringGroup, Transaction


def tx(day: str, description: str, amount: str) -> Transaction:
    """Build a normalized transaction from an ISO date and amount string."""

    return Transaction(
        date=date.fromisoformat(day),
        description=description,
        amount=Decimal(amount),
        raw={},
    )


def group(
    key: str,
    *,
    cadence: str = "monthly",
    count: int = 3,
    typical: str = "10.00",
    mad: str = "0",
    day: int | None = 5,
) -> RecurringGroup:
    return RecurringGroup(
        merchant_key=key,
        merchant=" ".join(w.capitalize() for w in key.split()),
        count=count,
        cadence=cadence,  # type: ignore[arg-type]
        typical_amount=Decimal(typical),
        amount_mad=Decimal(mad),
        usual_day_of_month=day,
        samples=(),
    )
