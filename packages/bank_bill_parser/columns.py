"""Guess which CSV columns hold the date, description and amount.

Matching is case-insensitive and whitespace-trimmed, but otherwise exact: no
fuzzy matching. Each role is resolved independently by scanning the headers in
their original order and returning the first one that equals any synonym.
"""

from __future__ import annotations

from collections.abc import Sequence

from .models import ColumnMap

DATE_SYNONYMS: tuple[str, ...] = ("date", "transaction date", "posted date", "posting date")
DESCRIPTION_SYNONYMS: tuple[str, ...] = ("description", "name", "merchant", "payee", "memo")
AMOUNT_SYNONYMS: tuple[str, ...] = (
    "amount",
    "transaction amount",
    "debit",
    "withdrawal",
    "charge",
)


def _norm(s: str) -> str:
    return s.strip().lower()


def _pick(headers: Sequence[str], synonyms: Sequence[str]) -> str | None:
    wanted = {_norm(s) for s in synonyms}
    for h in headers:
        if _norm(h) in wanted:
            return h
    return None


def guess_column_map(headers: Sequence[str]) -> ColumnMap | None:
    """Return a :class:`ColumnMap` when all three roles resolve, else ``None``.

    ``None`` is the expected "no confident guess" signal; callers fall back to
    asking the user for an explicit mapping. The returned names keep the
    header's original text so they can be used as row keys.
    """

    date = _pick(headers, DATE_SYNONYMS)
    description = _pick(headers, DESCRIPTION_SYNONYMS)
    amount = _pick(headers, AMOUNT_SYNONYMS)
    if date and description and amount:
        return ColumnMap(date=date, description=description, amount=amount)
    return None


__all__ = [
    "AMOUNT_SYNONYMS",
    "DATE_SYNONYMS",
    "DESCRIPTION_SYNONYMS",
    "guess_column_map",
]
