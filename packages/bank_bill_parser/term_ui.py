"""Tiny terminal UI helpers (prompt_toolkit-based).

Kept apart from the review loop so the prompts can be driven in tests through
a pipe input and a dummy output.
"""

from __future__ import annotations

from collections.abc import Sequence

from prompt_toolkit import PromptSession
from prompt_toolkit.completion import WordCompleter
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.validation import ValidationError, Validator

from .models import DEFAULT_CATEGORIES, Category, Decision

SKIP = "skip"
DECISION_CHOICES: tuple[str, ...] = ("bill", "subscription", "no", SKIP)


class _ChoiceValidator(Validator):
    def __init__(self, allowed: Sequence[str], hint: str) -> None:
        self._allowed = {a.lower() for a in allowed}
        self._hint = hint

    def validate(self, document) -> None:
        text = document.text.strip().lower()
        if text and text not in self._allowed:
            raise ValidationError(message=self._hint)


def _session(kb: KeyBindings, session: PromptSession | None) -> PromptSession:
    if session is None:
        return PromptSession(key_bindings=kb)
    return PromptSession(
        input=getattr(session, "input", None),
        output=getattr(session, "output", None),
        key_bindings=kb,
    )


def _escape_cancels() -> KeyBindings:
    kb = KeyBindings()

    @kb.add("escape", eager=True)
    def _(event) -> None:
        event.app.exit(result=None)

    return kb


def prompt_decision(
    *,
    session: PromptSession | None = None,
    message: str = "Recurring? [bill/subscription/no/skip] (Enter = skip, Esc = stop): ",
) -> Decision | None:
    """Ask whether a group is a bill, a subscription, or neither.

    Returns ``"unset"`` for skip (including an empty answer) and ``None`` when
    the user cancels with Esc to end the review.
    """

    kb = _escape_cancels()
    completer = WordCompleter(list(DECISION_CHOICES), ignore_case=True, sentence=True)
    value = _session(kb, session).prompt(
        message,
        completer=completer,
        validator=_ChoiceValidator(DECISION_CHOICES, "Type bill, subscription, no or skip."),
        validate_while_typing=False,
    )
    if value is None:
        return None
    choice = value.strip().lower()
    if not choice or choice == SKIP:
        return "unset"
    return choice  # type: ignore[return-value]


def prompt_category(
    *,
    default: Category | None = None,
    session: PromptSession | None = None,
    message: str = "Budget category (Tab for list, Enter to keep): ",
) -> Category | None:
    """Pick one of :data:`DEFAULT_CATEGORIES`.

    An empty answer keeps ``default``; Esc returns ``None``.
    """

    kb = _escape_cancels()
    canonical = {c.lower(): c for c in DEFAULT_CATEGORIES}
    completer = WordCompleter(list(DEFAULT_CATEGORIES), ignore_case=True, match_middle=True)
    value = _session(kb, session).prompt(
        message,
        completer=completer,
        validator=_ChoiceValidator(DEFAULT_CATEGORIES, "Choose a category from the list."),
        validate_while_typing=False,
    )
    if value is None:
        return None
    text = value.strip().lower()
    if not text:
        return default
    return canonical[text]  # type: ignore[return-value]


__all__ = ["DECISION_CHOICES", "SKIP", "prompt_category", "prompt_decision"]
