"""Command‑line interface for the academy calculators.

This module uses the ``click`` library to implement a multi‑command
interface. Staff can look up lecture counts for a software list, work out the
expected end date of a batch, or build an EMI installment plan for an
enrollment balance, apply manual edits to it and export it to JSON/CSV.
"""

from __future__ import annotations

import csv
import json
import logging
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import click

from .batch_schedule import InvalidScheduleError, expected_end_date, parse_schedule
from .data_models import InstallmentPlan
from .engine import (
    DEFAULT_INSTALLMENT_COUNT,
    PlanInputError,
    add_installment,
    edit_installment_amount,
    edit_installment_date,
    generate_installments,
    plan_total,
    remove_installment,
    validate_plan,
)
from .enrollment import installments_to_json
from .formatter import print_end_date, print_lecture_breakdown, print_plan
from .lectures import lecture_breakdown, total_lectures
from .utils import decimal_from_str, parse_user_date


def parse_amount(value: str) -> Decimal:
    """Parse a numeric string with optional suffixes.

    Accepts plain numbers ("50000") and shorthand with ``k``/``l`` suffixes
    (e.g., "50k" meaning 50_000, "1.2l" meaning 120_000 rupees).
    """
    value = value.strip().lower().replace(",", "")
    factor = Decimal("1")
    if value.endswith("k"):
        factor = Decimal("1000")
        value = value[:-1]
    elif value.endswith("l"):
        factor = Decimal("100000")
        value = value[:-1]
    try:
        return decimal_from_str(value) * factor
    except ValueError:
        raise click.BadParameter(f"Invalid amount: {value}")


def parse_date_option(value: str):
    try:
        return parse_user_date(value)
    except ValueError as exc:
        raise click.BadParameter(str(exc))


def parse_day_strings(values: Tuple[str, ...]) -> Dict[str, Dict[str, str]]:
    """Turn ``DAY[=HH:MM-HH:MM]`` options into the batch schedule JSON shape."""
    schedule: Dict[str, Dict[str, str]] = {}
    for item in values:
        day, _, hours = item.partition("=")
        start, _, end = hours.partition("-")
        if not day.strip():
            raise click.BadParameter(f"Day must be in DAY=HH:MM-HH:MM format; got {item}")
        schedule[day.strip()] = {"startTime": start.strip(), "endTime": end.strip()}
    return schedule


def _row_index(item: str, row: str) -> int:
    try:
        return int(row) - 1
    except ValueError:
        raise click.BadParameter(f"Invalid row number in {item}")


def apply_edits(
    plan: InstallmentPlan,
    amounts: Tuple[str, ...],
    dates: Tuple[str, ...],
    removals: Tuple[int, ...],
    additions: int,
) -> InstallmentPlan:
    """Apply CLI edits in order: amounts, dates, removals, then new rows.

    Rows are numbered from 1 as printed in the table.
    """
    try:
        for item in amounts:
            row, sep, value = item.partition(":")
            if not sep:
                raise click.BadParameter(f"Amount edit must be in ROW:AMOUNT format; got {item}")
            plan = edit_installment_amount(plan, _row_index(item, row), parse_amount(value))
        for item in dates:
            parts = item.split(":")
            if len(parts) not in (2, 3) or (len(parts) == 3 and parts[2] != "custom"):
                raise click.BadParameter(f"Date edit must be in ROW:DATE[:custom] format; got {item}")
            plan = edit_installment_date(
                plan,
                _row_index(item, parts[0]),
                parse_date_option(parts[1]),
                custom=len(parts) == 3,
            )
        for row_number in removals:
            plan = remove_installment(plan, row_number - 1)
    except IndexError as exc:
        raise click.BadParameter(str(exc))
    for _ in range(additions):
        plan = add_installment(plan)
    return plan


def export_to_json(path: Path, plan: InstallmentPlan) -> None:
    """Export plan and totals to a JSON file."""
    data: Dict[str, Any] = {
        "summary": {
            "balanceAmount": float(plan.balance),
            "emiPlanDate": plan.start_date.isoformat() if plan.start_date else "",
            "totalEmiAmount": float(plan_total(plan)),
            "errors": validate_plan(plan),
        },
        "emiInstallments": installments_to_json(plan.installments),
    }
    with path.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)


def export_to_csv(path: Path, plan: InstallmentPlan) -> None:
    """Export installments to a CSV file."""
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(["Month", "Amount", "Due_Date"])
        for inst in plan.installments:
            writer.writerow(
                [
                    inst.month,
                    f"{inst.amount:.2f}",
                    inst.due_date.isoformat() if inst.due_date else "",
                ]
            )


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Log calculation details")
def cli(verbose: bool) -> None:
    """Calculators for batch planning and EMI enrollment plans."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@click.argument("software")
def lectures(software: str) -> None:
    """Show the lecture count for a comma separated SOFTWARE list."""
    print_lecture_breakdown(lecture_breakdown(software))


@cli.command("end-date")
@click.option("--start-date", "-s", "start_date", required=True, help="Batch start date (YYYY-MM-DD or DD/MM/YYYY)")
@click.option("--software", "software", required=True, help="Comma separated software list")
@click.option(
    "--day",
    "day",
    multiple=True,
    help="Class day in DAY=HH:MM-HH:MM format, e.g. Monday=10:00-12:00. Omit for daily classes.",
)
@click.option("--json", "as_json", is_flag=True, help="Print the result as JSON")
def end_date(start_date: str, software: str, day: Tuple[str, ...], as_json: bool) -> None:
    """Compute the expected end date of a batch."""
    start = parse_date_option(start_date)
    raw_schedule = parse_day_strings(day)
    try:
        end = expected_end_date(start, software, raw_schedule)
    except InvalidScheduleError as exc:
        raise click.ClickException(f"Invalid schedule: {exc}")
    count = total_lectures(software)
    if as_json:
        click.echo(
            json.dumps(
                {
                    "startDate": start.isoformat(),
                    "totalLectures": count,
                    "expectedEndDate": end.isoformat() if end else None,
                }
            )
        )
    else:
        print_end_date(start, count, end, parse_schedule(raw_schedule).days.keys())


@cli.command()
@click.option("--balance", "-b", "balance", help="Balance amount to split")
@click.option("--total-deal", "total_deal", help="Total deal (used with --booking-amount instead of --balance)")
@click.option("--booking-amount", "booking_amount", default="0", help="Booking amount already paid")
@click.option("--start-date", "-s", "start_date", required=True, help="EMI plan date (YYYY-MM-DD or DD/MM/YYYY)")
@click.option("--count", "-n", "count", type=int, default=DEFAULT_INSTALLMENT_COUNT, show_default=True, help="Number of installments")
@click.option("--edit", "edit", multiple=True, help="Set an amount by hand, ROW:AMOUNT")
@click.option("--date", "due_date", multiple=True, help="Set a due date, ROW:DATE or ROW:DATE:custom")
@click.option("--remove", "remove", multiple=True, type=int, help="Remove installment ROW")
@click.option("--add", "add", type=int, default=0, help="Append this many empty installments")
@click.option("--output", "output", type=str, help="Output file path (.json or .csv)")
def emi(
    balance: Optional[str],
    total_deal: Optional[str],
    booking_amount: str,
    start_date: str,
    count: int,
    edit: Tuple[str, ...],
    due_date: Tuple[str, ...],
    remove: Tuple[int, ...],
    add: int,
    output: Optional[str],
) -> None:
    """Build an EMI installment plan and print or export it."""
    if balance:
        balance_value = parse_amount(balance)
    elif total_deal:
        balance_value = max(Decimal("0"), parse_amount(total_deal) - parse_amount(booking_amount))
    else:
        raise click.UsageError("Provide --balance or --total-deal")
    try:
        plan = generate_installments(balance_value, parse_date_option(start_date), count)
    except PlanInputError as exc:
        raise click.BadParameter(str(exc))
    plan = apply_edits(plan, edit, due_date, remove, add)

    if output:
        path = Path(output)
        if path.suffix.lower() == ".json":
            export_to_json(path, plan)
        elif path.suffix.lower() == ".csv":
            export_to_csv(path, plan)
        else:
            raise click.BadParameter("Unsupported output format; use .json or .csv")
        click.echo(f"Plan exported to {path}")
    else:
        print_plan(plan, validate_plan(plan))


if __name__ == "__main__":
    cli()
