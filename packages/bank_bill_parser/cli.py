"""CLI for the ``bank_bill_parser`` package.

Command handlers (``cmd_*``) return a process exit code and write errors to
stderr; the Typer commands below are thin wrappers that exit with that code.
Environment variables (``BBP_*``) are loaded from a local ``.env`` using
``python-dotenv`` before any command runs. Business logic lives in
``parsing``, ``recurring`` and ``reports``.
"""

from __future__ import annotations

import csv
import json
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import Annotated

import typer
from dotenv import load_dotenv
from pydantic import ValidationError
from typer.models import OptionInfo

from .columns import guess_column_map
from .config import RunOptions
from .ingest import csv_sources, is_csv_path, read_headers
from .logging_setup import configure_logging, get_logger
from .models import ColumnMap, RecurringGroup
from .parsing import parse_sources
from .recurring import detect_recurring
from .reports import (
    annotate_groups,
    export_groups_csv,
    filter_groups,
    fmt_amount,
    group_to_dict,
    monthly_summary,
    ordinal,
    plan_totals,
    upcoming,
)

_logger = get_logger("bank_bill_parser.cli")


# ---- Small module-level helpers used by CLI commands -------------------------


def _err(msg: str) -> None:
    print(f"Error: {msg}", file=sys.stderr)


def _csv_only(paths: Sequence[Path]) -> list[Path]:
    kept = [p for p in paths if is_csv_path(p)]
    for p in paths:
        if p not in kept:
            print(f"Skipping non-CSV file: {p}", file=sys.stderr)
    return kept


def _resolve_column_map(
    first_csv: Path,
    *,
    date_col: str | None,
    description_col: str | None,
    amount_col: str | None,
) -> ColumnMap | None:
    """Explicit columns win; missing ones are guessed from the first file."""

    if date_col and description_col and amount_col:
        return ColumnMap(date=date_col, description=description_col, amount=amount_col)
    guess = guess_column_map(read_headers(first_csv))
    if guess is None:
        return None
    return ColumnMap(
        date=date_col or guess.date,
        description=description_col or guess.description,
        amount=amount_col or guess.amount,
    )


def _load_groups(
    csv_paths: Sequence[Path],
    *,
    date_col: str | None,
    description_col: str | None,
    amount_col: str | None,
    options: RunOptions,
    query: str = "",
) -> list[RecurringGroup] | None:
    """Parse + detect; prints errors and returns ``None`` on fatal failure.

    Unreadable files are reported and skipped; the others still count.
    """

    paths = _csv_only(csv_paths)
    if not paths:
        _err("no .csv files given")
        return None

    try:
        column_map = _resolve_column_map(
            paths[0],
            date_col=date_col,
            description_col=description_col,
            amount_col=amount_col,
        )
    except FileNotFoundError:
        _err(f"File not found: {paths[0]}")
        return None
    except PermissionError:
        _err(f"Permission denied: {paths[0]}")
        return None
    except (csv.Error, UnicodeDecodeError) as e:
        _err(f"Failed to read CSV header: {e}")
        return None

    if column_map is None:
        _err(
            "could not guess the date/description/amount columns; "
            "pass --date-col, --description-col and --amount-col"
        )
        return None

    outcome = parse_sources(
        csv_sources(list(paths)),
        column_map,
        expense_sign=options.expense_sign,
        concurrency=options.concurrency,
    )
    for failure in outcome.failures:
        _err(str(failure))
    if outcome.failures and len(outcome.failures) == len(paths):
        return None

    groups = detect_recurring(
        outcome.transactions,
        min_count=options.min_count,
        max_groups=options.max_groups,
    )
    _logger.info(
        "parsed %d transactions from %d file(s); %d recurring group(s)",
        len(outcome.transactions),
        len(paths) - len(outcome.failures),
        len(groups),
    )
    return filter_groups(groups, query)


def _options(**overrides: object) -> RunOptions | None:
    try:
        return RunOptions.from_env(**overrides)
    except ValidationError as e:
        _err(f"invalid options: {e}")
        return None


# ---- Command handlers --------------------------------------------------------


def cmd_guess_columns(csv_path: Path) -> int:
    """Print the guessed column mapping as ``role<TAB>header`` lines."""

    try:
        headers = read_headers(csv_path)
    except FileNotFoundError:
        _err(f"File not found: {csv_path}")
        return 1
    except (csv.Error, UnicodeDecodeError, PermissionError) as e:
        _err(f"Failed to read CSV header: {e}")
        return 1

    guess = guess_column_map(headers)
    if guess is None:
        _err("no confident guess; headers were: " + ", ".join(headers))
        return 1
    print(f"date\t{guess.date}")
    print(f"description\t{guess.description}")
    print(f"amount\t{guess.amount}")
    return 0


def cmd_detect(
    csv_paths: Sequence[Path],
    *,
    date_col: str | None = None,
    description_col: str | None = None,
    amount_col: str | None = None,
    expense_sign: str | None = None,
    min_count: int | None = None,
    max_groups: int | None = None,
    query: str = "",
    as_json: bool = False,
) -> int:
    """Print ranked recurring groups, one tab-separated line each (or JSON)."""

    options = _options(expense_sign=expense_sign, min_count=min_count, max_groups=max_groups)
    if options is None:
        return 1
    groups = _load_groups(
        csv_paths,
        date_col=date_col,
        description_col=description_col,
        amount_col=amount_col,
        options=options,
        query=query,
    )
    if groups is None:
        return 1

    if as_json:
        print(json.dumps([group_to_dict(g) for g in groups], indent=2))
        return 0
    for g in groups:
        day = "" if g.usual_day_of_month is None else str(g.usual_day_of_month)
        print(
            "\t".join(
                [
                    g.merchant,
                    g.cadence,
                    fmt_amount(g.typical_amount),
                    fmt_amount(g.amount_mad),
                    str(g.count),
                    day,
                ]
            )
        )
    return 0


def cmd_export(
    csv_paths: Sequence[Path],
    out_path: Path,
    *,
    date_col: str | None = None,
    description_col: str | None = None,
    amount_col: str | None = None,
    expense_sign: str | None = None,
    min_count: int | None = None,
    max_groups: int | None = None,
    query: str = "",
) -> int:
    """Write the groups CSV (``merchant,cadence,typicalAmount,...``)."""

    options = _options(expense_sign=expense_sign, min_count=min_count, max_groups=max_groups)
    if options is None:
        return 1
    groups = _load_groups(
        csv_paths,
        date_col=date_col,
        description_col=description_col,
        amount_col=amount_col,
        options=options,
        query=query,
    )
    if groups is None:
        return 1
    try:
        with out_path.open("w", encoding="utf-8", newline="") as f:
            n = export_groups_csv(groups, f)
    except OSError as e:
        _err(f"failed to write {out_path}: {e}")
        return 1
    print(f"Wrote {n} group(s) to {out_path}")
    return 0


def cmd_review(
    csv_paths: Sequence[Path],
    *,
    date_col: str | None = None,
    description_col: str | None = None,
    amount_col: str | None = None,
    expense_sign: str | None = None,
    min_count: int | None = None,
    max_groups: int | None = None,
    state_path: Path | None = None,
) -> int:
    """Review undecided groups interactively and save decisions."""

    from .review import review_groups
    from .state import load_state, save_state

    options = _options(expense_sign=expense_sign, min_count=min_count, max_groups=max_groups)
    if options is None:
        return 1
    groups = _load_groups(
        csv_paths,
        date_col=date_col,
        description_col=description_col,
        amount_col=amount_col,
        options=options,
    )
    if groups is None:
        return 1
    if not groups:
        print("Nothing to review.")
        return 0

    state = load_state(state_path)
    try:
        state, reviewed = review_groups(groups, state)
    except (EOFError, KeyboardInterrupt):
        print("\nReview aborted; nothing saved.", file=sys.stderr)
        return 1

    try:
        written = save_state(state, state_path)
    except OSError as e:
        _err(f"failed to save state: {e}")
        return 1
    print(f"Saved {reviewed} decision(s) to {written}")
    return 0


def cmd_plan(
    csv_paths: Sequence[Path],
    *,
    date_col: str | None = None,
    description_col: str | None = None,
    amount_col: str | None = None,
    expense_sign: str | None = None,
    min_count: int | None = None,
    max_groups: int | None = None,
    state_path: Path | None = None,
) -> int:
    """Print monthly totals, the per-category plan and upcoming charges."""

    from .state import load_state

    options = _options(expense_sign=expense_sign, min_count=min_count, max_groups=max_groups)
    if options is None:
        return 1
    groups = _load_groups(
        csv_paths,
        date_col=date_col,
        description_col=description_col,
        amount_col=amount_col,
        options=options,
    )
    if groups is None:
        return 1

    state = load_state(state_path)
    annotated = annotate_groups(groups, state.decisions, state.categories)

    summary = monthly_summary(annotated)
    print(f"Bills / month\t${fmt_amount(summary.bill_total)}\t{summary.bill_count} items")
    print(
        f"Subscriptions / month\t${fmt_amount(summary.subscription_total)}"
        f"\t{summary.subscription_count} items"
    )
    print(f"Grand total / month\t${fmt_amount(summary.grand_total)}")
    print()

    rows, total = plan_totals(annotated)
    for row in rows:
        print(f"{row.category}\t${fmt_amount(row.amount)}")
    print(f"Total planned (from recurring)\t${fmt_amount(total)}")

    for kind, title in (("bill", "Upcoming bills"), ("subscription", "Upcoming subscriptions")):
        print()
        print(title)
        items = upcoming(annotated, kind)  # type: ignore[arg-type]
        if not items:
            print("  (none yet; needs an accepted monthly pattern)")
        for a in items:
            day = a.group.usual_day_of_month or 0
            print(
                f"  {a.group.merchant}\tAround the {ordinal(day)}"
                f"\t${fmt_amount(a.group.typical_amount)}"
            )
    return 0


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Find recurring bills and subscriptions in bank CSV exports. "
        "Loads BBP_* settings from a local .env before running."
    ),
)

# Module-level option objects to satisfy ruff B008 (no calls in defaults).
CSV_PATHS_OPTION: OptionInfo = typer.Option(
    ...,
    "--csv-path",
    help="Bank export CSV (repeat for several files)",
    dir_okay=False,
    file_okay=True,
    exists=False,  # handlers report missing files themselves
)
DATE_COL_OPTION: OptionInfo = typer.Option("--date-col", help="Header of the date column")
DESCRIPTION_COL_OPTION: OptionInfo = typer.Option(
    "--description-col", help="Header of the description column"
)
AMOUNT_COL_OPTION: OptionInfo = typer.Option("--amount-col", help="Header of the amount column")
EXPENSE_SIGN_OPTION: OptionInfo = typer.Option(
    "--expense-sign",
    help="Sign of expenses in the export: auto, negative or positive (env BBP_EXPENSE_SIGN)",
)
MIN_COUNT_OPTION: OptionInfo = typer.Option(
    "--min-count", help="Minimum charges per merchant (env BBP_MIN_COUNT, default 3)"
)
MAX_GROUPS_OPTION: OptionInfo = typer.Option(
    "--max-groups", help="Cap on groups, first-seen merchants kept (env BBP_MAX_GROUPS)"
)
STATE_PATH_OPTION: OptionInfo = typer.Option(
    "--state-file", help="Decision state file (env BBP_STATE_FILE)"
)


@app.command("guess-columns")
def guess_columns_cmd(
    csv_path: Annotated[Path, typer.Option("--csv-path", help="Bank export CSV")],
) -> None:
    """Guess the date/description/amount columns of a CSV."""

    raise typer.Exit(cmd_guess_columns(csv_path))


@app.command("detect")
def detect_cmd(
    csv_paths: Annotated[list[Path], CSV_PATHS_OPTION],
    date_col: Annotated[str | None, DATE_COL_OPTION] = None,
    description_col: Annotated[str | None, DESCRIPTION_COL_OPTION] = None,
    amount_col: Annotated[str | None, AMOUNT_COL_OPTION] = None,
    expense_sign: Annotated[str | None, EXPENSE_SIGN_OPTION] = None,
    min_count: Annotated[int | None, MIN_COUNT_OPTION] = None,
    max_groups: Annotated[int | None, MAX_GROUPS_OPTION] = None,
    query: Annotated[str, typer.Option("--query", help="Filter by merchant text")] = "",
    as_json: Annotated[bool, typer.Option("--json", help="Emit JSON instead of TSV")] = False,
) -> None:
    """List ranked recurring merchants."""

    raise typer.Exit(
        cmd_detect(
            csv_paths,
            date_col=date_col,
            description_col=description_col,
            amount_col=amount_col,
            expense_sign=expense_sign,
            min_count=min_count,
            max_groups=max_groups,
            query=query,
            as_json=as_json,
        )
    )


@app.command("export")
def export_cmd(
    csv_paths: Annotated[list[Path], CSV_PATHS_OPTION],
    out_path: Annotated[
        Path, typer.Option("--out", help="Destination CSV", dir_okay=False)
    ] = Path("recurring-bills.csv"),
    date_col: Annotated[str | None, DATE_COL_OPTION] = None,
    description_col: Annotated[str | None, DESCRIPTION_COL_OPTION] = None,
    amount_col: Annotated[str | None, AMOUNT_COL_OPTION] = None,
    expense_sign: Annotated[str | None, EXPENSE_SIGN_OPTION] = None,
    min_count: Annotated[int | None, MIN_COUNT_OPTION] = None,
    max_groups: Annotated[int | None, MAX_GROUPS_OPTION] = None,
    query: Annotated[str, typer.Option("--query", help="Filter by merchant text")] = "",
) -> None:
    """Export recurring groups to CSV."""

    raise typer.Exit(
        cmd_export(
            csv_paths,
            out_path,
            date_col=date_col,
            description_col=description_col,
            amount_col=amount_col,
            expense_sign=expense_sign,
            min_count=min_count,
            max_groups=max_groups,
            query=query,
        )
    )


@app.command("review")
def review_cmd(
    csv_paths: Annotated[list[Path], CSV_PATHS_OPTION],
    date_col: Annotated[str | None, DATE_COL_OPTION] = None,
    description_col: Annotated[str | None, DESCRIPTION_COL_OPTION] = None,
    amount_col: Annotated[str | None, AMOUNT_COL_OPTION] = None,
    expense_sign: Annotated[str | None, EXPENSE_SIGN_OPTION] = None,
    min_count: Annotated[int | None, MIN_COUNT_OPTION] = None,
    max_groups: Annotated[int | None, MAX_GROUPS_OPTION] = None,
    state_path: Annotated[Path | None, STATE_PATH_OPTION] = None,
) -> None:
    """Mark each recurring merchant as bill, subscription or neither."""

    raise typer.Exit(
        cmd_review(
            csv_paths,
            date_col=date_col,
            description_col=description_col,
            amount_col=amount_col,
            expense_sign=expense_sign,
            min_count=min_count,
            max_groups=max_groups,
            state_path=state_path,
        )
    )


@app.command("plan")
def plan_cmd(
    csv_paths: Annotated[list[Path], CSV_PATHS_OPTION],
    date_col: Annotated[str | None, DATE_COL_OPTION] = None,
    description_col: Annotated[str | None, DESCRIPTION_COL_OPTION] = None,
    amount_col: Annotated[str | None, AMOUNT_COL_OPTION] = None,
    expense_sign: Annotated[str | None, EXPENSE_SIGN_OPTION] = None,
    min_count: Annotated[int | None, MIN_COUNT_OPTION] = None,
    max_groups: Annotated[int | None, MAX_GROUPS_OPTION] = None,
    state_path: Annotated[Path | None, STATE_PATH_OPTION] = None,
) -> None:
    """Show monthly totals and the budget plan from saved decisions."""

    raise typer.Exit(
        cmd_plan(
            csv_paths,
            date_col=date_col,
            description_col=description_col,
            amount_col=amount_col,
            expense_sign=expense_sign,
            min_count=min_count,
            max_groups=max_groups,
            state_path=state_path,
        )
    )


@app.callback()
def _root(
    log_level: Annotated[
        str | None,
        typer.Option("--log-level", help="Override BANK_BILL_PARSER_LOG_LEVEL"),
    ] = None,
) -> None:
    """Load ``.env`` (without overriding the environment) and set up logging."""

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    configure_logging(log_level)


if __name__ == "__main__":  # pragma: no cover
    app()
