"""Core calculation engine for EMI installment plans.

This module implements the installment logic of the enrollment form. A plan
splits the outstanding enrollment balance into monthly installments and keeps
the plan total equal to the balance while staff edit individual rows:

* editing an amount freezes that row and spreads what is left of the balance
  over the rows nobody has touched;
* editing a due date moves every later, non-custom due date along with it;
* removing a row re-splits the balance evenly over the rows that remain.

Every operation takes a plan and returns a new one; the input is not modified.
Problems such as a plan total above the balance are not errors here. They are
reported by :func:`validate_plan` so editing can continue.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Union

from .data_models import Installment, InstallmentPlan
from .utils import add_months, decimal_from_str, round_money

logger = logging.getLogger(__name__)

DEFAULT_INSTALLMENT_COUNT = 10

Amount = Union[Decimal, str, int, float]


class PlanInputError(ValueError):
    """Raised when a plan cannot be generated from the given inputs."""


def redistribute(total: Decimal, count: int) -> List[Decimal]:
    """Split ``total`` into ``count`` equal shares rounded to cents.

    Every share is ``total / count`` rounded half up to two places, except the
    last which takes whatever is left, so the shares always add up to
    ``total``.
    """
    if count <= 0:
        return []
    share = round_money(total / Decimal(count))
    shares = [share] * count
    shares[-1] = round_money(total - share * (count - 1))
    return shares


def _check_index(plan: InstallmentPlan, index: int) -> None:
    if not 0 <= index < len(plan.installments):
        raise IndexError(f"Installment index {index} out of range")


def _shift_flags(flags: Iterable[int], removed: int) -> set:
    shifted = set()
    for idx in flags:
        if idx < removed:
            shifted.add(idx)
        elif idx > removed:
            shifted.add(idx - 1)
    return shifted


def _cascade_dates(plan: InstallmentPlan, index: int, base: date) -> None:
    """Re-date every non-custom installment after ``index`` from ``base``."""
    for j in range(index + 1, len(plan.installments)):
        if j not in plan.date_customized:
            plan.installments[j].due_date = add_months(base, j - index)


def generate_installments(
    balance: Amount,
    plan_start_date: Optional[date],
    count: int = DEFAULT_INSTALLMENT_COUNT,
) -> InstallmentPlan:
    """Return a fresh plan of ``count`` equal monthly installments.

    Installment ``i`` (1-based) is due ``i - 1`` months after
    ``plan_start_date``. The last installment absorbs the rounding remainder
    so the plan total equals ``balance``, rounded to cents, exactly.

    Raises
    ------
    PlanInputError
        If the balance is not positive, the plan date is missing or
        ``count`` is less than one.
    """
    balance = round_money(decimal_from_str(balance))
    if balance <= 0:
        raise PlanInputError("Balance must be greater than zero to calculate installments")
    if plan_start_date is None:
        raise PlanInputError("EMI plan date is required to calculate installments")
    if count < 1:
        raise PlanInputError("Number of installments must be at least 1")

    installments = [
        Installment(month=i + 1, amount=amount, due_date=add_months(plan_start_date, i))
        for i, amount in enumerate(redistribute(balance, count))
    ]
    logger.debug("Generated %d installments for balance %s from %s", count, balance, plan_start_date)
    return InstallmentPlan(balance=balance, start_date=plan_start_date, installments=installments)


def edit_installment_amount(plan: InstallmentPlan, index: int, new_amount: Amount) -> InstallmentPlan:
    """Set an installment amount by hand and rebalance the rest of the plan.

    The amount is rounded to cents and the edited row joins the
    amount-customised rows. The balance left after all customised rows is
    spread evenly over the other rows. When the
    customised rows already exceed the balance the other rows keep their
    amounts and :func:`validate_plan` reports the overrun.
    """
    _check_index(plan, index)
    result = plan.copy()
    result.installments[index].amount = round_money(decimal_from_str(new_amount))
    result.amount_customized.add(index)

    if result.balance <= 0 or len(result.installments) < 2:
        return result

    customized_total = sum(
        (result.installments[i].amount for i in result.amount_customized),
        Decimal("0"),
    )
    free = [i for i in range(len(result.installments)) if i not in result.amount_customized]
    if not free:
        return result

    remaining = result.balance - customized_total
    if remaining < 0:
        logger.debug("Customised installments exceed balance by %s", -remaining)
        return result
    for idx, share in zip(free, redistribute(remaining, len(free))):
        result.installments[idx].amount = share
    return result


def edit_installment_date(
    plan: InstallmentPlan,
    index: int,
    new_date: Optional[date],
    custom: bool = False,
) -> InstallmentPlan:
    """Set an installment due date.

    With ``custom`` the row is marked date-customised and only its own date
    changes. Otherwise, unless it was already customised, every later row that
    is not date-customised is re-dated to keep one month between rows.
    """
    _check_index(plan, index)
    result = plan.copy()
    if custom:
        result.date_customized.add(index)
    result.installments[index].due_date = new_date
    if new_date is not None and index not in result.date_customized:
        _cascade_dates(result, index, new_date)
    return result


def set_custom_date(plan: InstallmentPlan, index: int, enabled: bool) -> InstallmentPlan:
    """Toggle the custom-date flag of an installment.

    Clearing the flag puts the row back in line: it becomes due one month
    after the previous installment, and later non-custom rows follow it.
    """
    _check_index(plan, index)
    result = plan.copy()
    if enabled:
        result.date_customized.add(index)
        return result

    result.date_customized.discard(index)
    if index > 0:
        previous = result.installments[index - 1].due_date
        if previous is not None:
            base = add_months(previous, 1)
            result.installments[index].due_date = base
            _cascade_dates(result, index, base)
    return result


def remove_installment(plan: InstallmentPlan, index: int) -> InstallmentPlan:
    """Drop an installment and re-split the balance over the remaining rows.

    Months are renumbered from 1. Customisation flags after the removed row
    move down by one. Amounts are split evenly again and, when the plan has a
    start date, due dates are recomputed from it.
    """
    _check_index(plan, index)
    result = plan.copy()
    del result.installments[index]
    result.amount_customized = _shift_flags(result.amount_customized, index)
    result.date_customized = _shift_flags(result.date_customized, index)

    for i, inst in enumerate(result.installments):
        inst.month = i + 1
        if result.start_date is not None:
            inst.due_date = add_months(result.start_date, i)
    if result.balance > 0:
        shares = redistribute(result.balance, len(result.installments))
        for inst, share in zip(result.installments, shares):
            inst.amount = share
    return result


def add_installment(plan: InstallmentPlan) -> InstallmentPlan:
    """Append an empty installment numbered after the highest month so far."""
    result = plan.copy()
    next_month = max((i.month for i in result.installments), default=0) + 1
    result.installments.append(Installment(month=next_month, amount=Decimal("0"), due_date=None))
    return result


def edit_installment_month(plan: InstallmentPlan, index: int, month: int) -> InstallmentPlan:
    """Set the month number of an installment; values below 1 become 1."""
    _check_index(plan, index)
    result = plan.copy()
    result.installments[index].month = month if month and month >= 1 else 1
    return result


def plan_total(plan: InstallmentPlan) -> Decimal:
    return sum((i.amount for i in plan.installments), Decimal("0"))


def validate_plan(plan: InstallmentPlan) -> Dict[str, str]:
    """Return field-level validation messages for a plan.

    Keys follow the submission payload (``emiInstallments[2].amount``). An
    empty dict means the plan can be submitted.
    """
    errors: Dict[str, str] = {}
    if plan_total(plan) > plan.balance:
        errors["emiInstallments"] = "Total EMI exceeds Balance"
    for i, inst in enumerate(plan.installments):
        if inst.amount < 0:
            errors[f"emiInstallments[{i}].amount"] = "Amount cannot be negative"
        if inst.due_date is None:
            errors[f"emiInstallments[{i}].dueDate"] = "Due date is required"
    return errors
