"""Output helpers for the academy calculators.

This module provides simple functions to render installment plans, lecture
breakdowns and batch end dates in a tabular text format. Dates are shown in
the academy's ``DD/MM/YYYY`` display format.
"""

from __future__ import annotations

from datetime import date
from typing import Dict, Iterable, Optional, Tuple

from .data_models import InstallmentPlan
from .engine import plan_total
from .utils import DAY_NAMES, format_ddmmyyyy


def print_plan(plan: InstallmentPlan, errors: Optional[Dict[str, str]] = None) -> None:
    """Print an installment plan as a simple table followed by its totals.

    Rows whose amount or date was set by hand are marked in the ``Custom``
    column with ``A`` (amount) and/or ``D`` (date).
    """
    print("EMI Installments (Month-wise)")
    print("-" * 72)
    print("\t".join(["Month", "Amount", "Due Date", "Custom"]))
    for index, inst in enumerate(plan.installments):
        custom = ""
        if index in plan.amount_customized:
            custom += "A"
        if index in plan.date_customized:
            custom += "D"
        row = [
            str(inst.month),
            f"{inst.amount:.2f}",
            format_ddmmyyyy(inst.due_date) or "-",
            custom,
        ]
        print("\t".join(row))
    print("-" * 72)
    total = plan_total(plan)
    print(f"Balance            : {plan.balance:.2f}")
    print(f"Total EMI amount   : {total:.2f}")
    if plan.start_date:
        print(f"EMI plan date      : {format_ddmmyyyy(plan.start_date)}")
    for message in (errors or {}).values():
        print(f"! {message}")


def print_lecture_breakdown(rows: Iterable[Tuple[str, Optional[str], int]]) -> None:
    """Print how each listed software contributes to the lecture total."""
    print("\t".join(["Software", "Matched", "Lectures"]))
    total = 0
    for name, key, count in rows:
        total += count
        print("\t".join([name, key or "(unknown)", str(count)]))
    print("-" * 72)
    print(f"Total lectures     : {total}")


def print_end_date(
    start_date: date,
    lectures: int,
    end_date: Optional[date],
    weekdays: Iterable[int] = (),
) -> None:
    """Print the outcome of an end-date calculation."""
    days = sorted(weekdays)
    print(f"Start date         : {format_ddmmyyyy(start_date)}")
    print(f"Total lectures     : {lectures}")
    if days:
        print(f"Class days         : {', '.join(DAY_NAMES[d] for d in days)}")
    else:
        print("Class days         : every day")
    print(f"Expected end date  : {format_ddmmyyyy(end_date) or 'N/A'}")
