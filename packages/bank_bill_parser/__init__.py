"""Public interface for the ``bank_bill_parser`` package.

Re-exports the pipeline entry points and record types as the stable import
surface. There is no runtime logic here, only symbol re-exports.

Pipeline: :func:`guess_column_map` -> :func:`parse_transactions` (or
:func:`parse_sources` for partial success) -> :func:`detect_recurring`.
"""

from .columns import guess_column_map
from .merchants import merchant_display_name, normalize_merchant
from .models import (
    DEFAULT_CATEGORIES,
    AnnotatedGroup,
    BudgetState,
    Cadence,
    Category,
    ColumnMap,
    Decision,
    ExpenseSign,
    RecurringGroup,
    Transaction,
)
from .parsing import (
    ParseOutcome,
    RowsSource,
    SourceParseError,
    TabularSource,
    parse_sources,
    parse_transactions,
)
from .recurring import CadenceWindow, ScoreWeights, detect_recurring, score_group
from .reports import annotate_group, filter_groups

__all__ = [
    # API
    "guess_column_map",
    "parse_sources",
    "parse_transactions",
    "normalize_merchant",
    "merchant_display_name",
    "detect_recurring",
    "score_group",
    "annotate_group",
    "filter_groups",
    # Models / types
    "AnnotatedGroup",
    "BudgetState",
    "Cadence",
    "CadenceWindow",
    "Category",
    "ColumnMap",
    "DEFAULT_CATEGORIES",
    "Decision",
    "ExpenseSign",
    "ParseOutcome",
    "RecurringGroup",
    "RowsSource",
    "ScoreWeights",
    "SourceParseError",
    "TabularSource",
    "Transaction",
]
