"""Interactive review of detected groups.

Walks the groups that have no saved decision yet, shows a short summary per
group, and records the user's choice (bill / subscription / no) plus an
optional budget category. State is threaded through as immutable copies; the
caller saves the returned state.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable

from prompt_toolkit import PromptSession

from .logging_setup import get_logger
from .models import BudgetState, RecurringGroup
from .reports import amount_range, fmt_amount, ordinal
from .state import with_category, with_decision
from .term_ui import prompt_category, prompt_decision

_logger = get_logger("bank_bill_parser.review")


def describe_group(group: RecurringGroup) -> list[str]:
    """Human-readable lines for one group (header, due, range, samples)."""

    low, high = amount_range(group)
    due = (
        f"Around the {ordinal(group.usual_day_of_month)}"
        if group.usual_day_of_month
        else "-"
    )
    lines = [
        f"{group.merchant}  ${fmt_amount(group.typical_amount)}",
        f"  {group.cadence} • {group.count} charges • due: {due}",
        f"  amount range: ${fmt_amount(low)} - ${fmt_amount(high)}",
    ]
    lines.extend(
        f"    {t.date.isoformat()}  ${fmt_amount(t.amount)}  {t.description}" for t in group.samples
    )
    return lines


def review_groups(
    groups: Iterable[RecurringGroup],
    state: BudgetState,
    *,
    session: PromptSession | None = None,
    echo: Callable[[str], None] = print,
) -> tuple[BudgetState, int]:
    """Prompt for every undecided group; return ``(new_state, reviewed)``.

    Stops early when the user presses Esc at the decision prompt. Skipped
    groups stay undecided and are offered again next session.
    """

    pending = [g for g in groups if g.merchant_key not in state.decisions]
    reviewed = 0
    for i, group in enumerate(pending, start=1):
        echo("")
        echo(f"[{i}/{len(pending)}]")
        for line in describe_group(group):
            echo(line)

        decision = prompt_decision(session=session)
        if decision is None:
            _logger.debug("review stopped by user after %d groups", reviewed)
            break
        if decision == "unset":
            continue

        state = with_decision(state, group.merchant_key, decision)
        reviewed += 1
        if decision in ("bill", "subscription"):
            category = prompt_category(
                default=state.categories.get(group.merchant_key), session=session
            )
            if category is not None:
                state = with_category(state, group.merchant_key, category)

    return state, reviewed


__all__ = ["describe_group", "review_groups"]
