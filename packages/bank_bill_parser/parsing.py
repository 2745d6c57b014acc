"""Tabular rows -> normalized, expense-positive, date-ordered transactions.

Each source (one bank export) is parsed independently: rows whose date,
description or amount cannot be read are dropped silently, since bank exports
routinely carry header, footer and summary lines that are not transactions. A
source that cannot be read at all fails as a whole with
:class:`SourceParseError`, without affecting its siblings.

After all sources finish, a single sign pass is applied across the combined
batch and the result is sorted by date (stable: source order, then row order).
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, replace
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Protocol, get_args

from .logging_setup import get_logger
from .models import ColumnMap, ExpenseSign, RawRow, Transaction
from .pmap import p_map_settled

_logger = get_logger("bank_bill_parser.parsing")

# Month/day/year layouts tried after ISO 8601, in priority order. strptime's
# %m and %d accept both zero-padded and unpadded values, so these two cover
# M/d/yyyy, M/d/yy, MM/dd/yyyy and MM/dd/yy.
US_DATE_FORMATS: tuple[str, ...] = ("%m/%d/%Y", "%m/%d/%y")

DEFAULT_CONCURRENCY: int = 4

# Rows whose amount magnitude reaches 10**15 are dropped like unparseable ones;
# detection arithmetic assumes amounts below this bound.
MAX_AMOUNT_EXPONENT: int = 15


# ---------------------------------------------------------------------------
# Sources and errors
# ---------------------------------------------------------------------------


class TabularSource(Protocol):
    """Anything that yields header-keyed rows for one bank export."""

    @property
    def name(self) -> str: ...

    def iter_rows(self) -> Iterable[RawRow]: ...


@dataclass(frozen=True, slots=True)
class RowsSource:
    """In-memory rows that were already decoded by the caller."""

    name: str
    rows: Sequence[RawRow]

    def iter_rows(self) -> Iterable[RawRow]:
        return iter(self.rows)


class SourceParseError(ValueError):
    """A whole source could not be read as tabular data."""

    def __init__(self, source_name: str, cause: BaseException) -> None:
        super().__init__(f"failed to read {source_name!r}: {cause}")
        self.source_name = source_name


@dataclass(frozen=True, slots=True)
class ParseOutcome:
    """Partial-success result of :func:`parse_sources`.

    ``failures`` lists the sources that could not be read, in source order.
    """

    transactions: list[Transaction]
    failures: list[SourceParseError]


# ---------------------------------------------------------------------------
# Field helpers
# ---------------------------------------------------------------------------


def _parse_date(value: Any) -> date | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    s = str(value).strip()
    if not s:
        return None

    # ISO 8601 first: plain dates, then date-times (offsets and "Z" allowed).
    try:
        return date.fromisoformat(s)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(s).date()
    except ValueError:
        pass

    for fmt in US_DATE_FORMATS:
        try:
            return datetime.strptime(s, fmt).date()
        except ValueError:
            continue
    return None


def _usable_amount(d: Decimal) -> Decimal | None:
    if not d.is_finite() or (d and d.adjusted() >= MAX_AMOUNT_EXPONENT):
        return None
    return d


def _parse_amount(value: Any) -> Decimal | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal | int | float):
        return _usable_amount(Decimal(str(value)))

    # Strip currency symbols and thousands separators only; parentheses or
    # trailing minus signs are not amounts.
    s = str(value).replace("$", "").replace(",", "").strip()
    if not s or "_" in s:
        return None
    try:
        d = Decimal(s)
    except InvalidOperation:
        return None
    return _usable_amount(d)


def _parse_row(row: RawRow, column_map: ColumnMap) -> Transaction | None:
    d = _parse_date(row.get(column_map.date))
    if d is None:
        return None
    raw_desc = row.get(column_map.description)
    description = "" if raw_desc is None else str(raw_desc).strip()
    if not description:
        return None
    amount = _parse_amount(row.get(column_map.amount))
    if amount is None:
        return None
    return Transaction(date=d, description=description, amount=amount, raw=row)


def _parse_source(source: TabularSource, column_map: ColumnMap) -> list[Transaction]:
    kept: list[Transaction] = []
    dropped = 0
    try:
        for row in source.iter_rows():
            tx = _parse_row(row, column_map)
            if tx is None:
                dropped += 1
                continue
            kept.append(tx)
    except Exception as e:  # noqa: BLE001 - any read failure fails the whole source
        raise SourceParseError(source.name, e) from e

    _logger.debug("parsed source=%s kept=%d dropped=%d", source.name, len(kept), dropped)
    return kept


# ---------------------------------------------------------------------------
# Sign normalization
# ---------------------------------------------------------------------------


def normalize_signs(txs: Sequence[Transaction], expense_sign: ExpenseSign) -> list[Transaction]:
    """Return copies of ``txs`` with amounts in the expense-positive convention.

    Every mode ends with an absolute value, so the output is always a list of
    non-negative magnitudes. In ``auto`` mode the majority sign only decides
    which convention is logged as assumed; it does not change the amounts.
    """

    if expense_sign not in get_args(ExpenseSign):
        raise ValueError(f"unknown expense_sign: {expense_sign!r}")

    if expense_sign == "negative":
        return [replace(t, amount=abs(-t.amount)) for t in txs]
    if expense_sign == "positive":
        return [replace(t, amount=abs(t.amount)) for t in txs]

    negatives = sum(1 for t in txs if t.amount < 0)
    positives = sum(1 for t in txs if t.amount > 0)
    if positives > negatives:
        _logger.debug(
            "expense_sign=auto assuming expenses are positive (positives=%d negatives=%d)",
            positives,
            negatives,
        )
    else:
        _logger.debug(
            "expense_sign=auto assuming expenses are negative (positives=%d negatives=%d)",
            positives,
            negatives,
        )
    # TODO: decide whether "auto" should keep signed amounts when expenses are
    # exported as positive (refunds would then stay negative); changing it
    # alters detector output.
    return [replace(t, amount=abs(t.amount)) for t in txs]


# ---------------------------------------------------------------------------
# Public entry points
# ---------------------------------------------------------------------------


def parse_sources(
    sources: Iterable[TabularSource],
    column_map: ColumnMap,
    *,
    expense_sign: ExpenseSign = "auto",
    concurrency: int = DEFAULT_CONCURRENCY,
) -> ParseOutcome:
    """Parse every source concurrently and merge the readable ones.

    Failures are reported in :attr:`ParseOutcome.failures`; transactions from
    the remaining sources are sign-normalized as one batch and sorted by date.
    """

    if expense_sign not in get_args(ExpenseSign):
        raise ValueError(f"unknown expense_sign: {expense_sign!r}")

    settled = p_map_settled(
        sources,
        lambda src: _parse_source(src, column_map),
        concurrency=concurrency,
    )

    combined: list[Transaction] = []
    failures: list[SourceParseError] = []
    for outcome in settled:
        if outcome.ok:
            combined.extend(outcome.value or [])
            continue
        err = outcome.error
        if not isinstance(err, SourceParseError):
            # Failures outside row iteration are programming errors.
            raise err  # type: ignore[misc]
        _logger.warning("skipping unreadable source: %s", err)
        failures.append(err)

    normalized = normalize_signs(combined, expense_sign)
    normalized.sort(key=lambda t: t.date)
    return ParseOutcome(transactions=normalized, failures=failures)


def parse_transactions(
    sources: Iterable[TabularSource],
    column_map: ColumnMap,
    *,
    expense_sign: ExpenseSign = "auto",
    concurrency: int = DEFAULT_CONCURRENCY,
) -> list[Transaction]:
    """Strict form of :func:`parse_sources`.

    Every source is still parsed to completion; if any of them failed, an
    ``ExceptionGroup`` of :class:`SourceParseError` is raised afterwards.
    """

    outcome = parse_sources(
        sources, column_map, expense_sign=expense_sign, concurrency=concurrency
    )
    if outcome.failures:
        raise ExceptionGroup("one or more sources could not be parsed", outcome.failures)
    return outcome.transactions


__all__ = [
    "DEFAULT_CONCURRENCY",
    "MAX_AMOUNT_EXPONENT",
    "ParseOutcome",
    "RowsSource",
    "SourceParseError",
    "TabularSource",
    "US_DATE_FORMATS",
    "normalize_signs",
    "parse_sources",
    "parse_transactions",
]
