"""Merchant-name canonicalization.

``normalize_merchant`` turns a free-text bank description into the key used to
group transactions. An empty key means the description carries no stable
merchant signal (e.g. it was only digits and payment-rail boilerplate).
"""

from __future__ import annotations

import re

# Payment-rail boilerplate removed as whole words.
STOP_WORDS: tuple[str, ...] = ("pos", "ach", "debit", "purchase", "payment", "pymt", "online", "card")

# ASCII word boundaries so accented neighbours do not glue onto a stop word.
_STOP_WORDS_RE = re.compile(r"\b(?:" + "|".join(STOP_WORDS) + r")\b", re.ASCII)
_DIGITS_RE = re.compile(r"[0-9]")
_NON_LETTER_RE = re.compile(r"[^a-z\s]")
_WHITESPACE_RE = re.compile(r"\s+")


def normalize_merchant(description: str) -> str:
    """Return the grouping key for ``description``.

    Steps: lower-case, drop stop words, drop digits, drop anything that is not
    a lowercase ASCII letter or whitespace, collapse whitespace, trim.
    """

    # Upper first so case expansions (e.g. "ß" -> "SS") fold identically
    # whichever case the input arrives in.
    s = description.upper().lower()
    s = _STOP_WORDS_RE.sub(" ", s)
    s = _DIGITS_RE.sub(" ", s)
    s = _NON_LETTER_RE.sub(" ", s)
    s = _WHITESPACE_RE.sub(" ", s)
    return s.strip()


def merchant_display_name(key: str) -> str:
    """``"netflix com"`` -> ``"Netflix Com"``."""

    return " ".join(w[0].upper() + w[1:] for w in key.split(" ") if w)


__all__ = ["STOP_WORDS", "merchant_display_name", "normalize_merchant"]
