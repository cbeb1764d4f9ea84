"""Enrollment form state and its EMI plan lifecycle.

The enrollment form owns at most one installment plan. The plan is created
when EMI is switched on and both a balance and an EMI plan date are known,
regenerated whenever the balance or the plan date change, and
dropped when EMI is switched off. It only leaves the form as part of the
enrollment submission payload.
"""

from __future__ import annotations

import logging
from dataclasses import fields, replace
from datetime import date
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Tuple

from .data_models import EnrollmentFormState, Installment, InstallmentPlan
from .engine import DEFAULT_INSTALLMENT_COUNT, PlanInputError, generate_installments, validate_plan
from .utils import decimal_from_str, parse_flag, parse_iso_date, parse_user_date, round_money

logger = logging.getLogger(__name__)


class SubmissionBlockedError(ValueError):
    """The enrollment still has validation errors and cannot be submitted."""

    def __init__(self, errors: Dict[str, str]) -> None:
        super().__init__("Enrollment has validation errors: " + "; ".join(errors.values()))
        self.errors = errors


def balance_amount(state: EnrollmentFormState) -> Decimal:
    """Outstanding balance: total deal minus booking amount in cents, never negative."""
    return round_money(max(Decimal("0"), state.total_deal - state.booking_amount))


def _plan_inputs(state: EnrollmentFormState) -> Tuple[bool, Decimal, Optional[date]]:
    # The plan only follows these; other field changes leave it alone.
    return state.emi_plan, balance_amount(state), state.emi_plan_date


def _coerce(name: str, value: Any) -> Any:
    if name in ("total_deal", "booking_amount"):
        return decimal_from_str(value) if value not in (None, "") else Decimal("0")
    if name == "emi_plan_date" and isinstance(value, str):
        return parse_user_date(value) if value else None
    if name == "emi_plan":
        return parse_flag(value)
    return value


def update_form(
    state: EnrollmentFormState,
    count: int = DEFAULT_INSTALLMENT_COUNT,
    **changes: Any,
) -> EnrollmentFormState:
    """Apply field changes and keep the EMI plan in step with them.

    The plan is only touched when the EMI switch, the balance or the plan
    date actually end up different. Then, with EMI enabled, a positive
    balance and a plan date, ``count`` equal installments are generated and
    every customisation is cleared; switching EMI off drops the plan.
    Re-sending the same values, or moving the deal and booking amount by the
    same sum, keeps the edited plan. The plan itself is edited through
    :func:`apply_to_plan`, not here.
    """
    known = {f.name for f in fields(EnrollmentFormState)} - {"plan"}
    unknown = set(changes) - known
    if unknown:
        raise ValueError(f"Unknown enrollment fields: {', '.join(sorted(unknown))}")

    updated = replace(state, **{name: _coerce(name, value) for name, value in changes.items()})
    if _plan_inputs(updated) == _plan_inputs(state):
        return updated

    balance = balance_amount(updated)
    if updated.emi_plan and balance > 0 and updated.emi_plan_date:
        updated.plan = generate_installments(balance, updated.emi_plan_date, count)
    elif not updated.emi_plan and updated.plan is not None:
        logger.debug("EMI plan disabled; clearing %d installments", len(updated.plan.installments))
        updated.plan = None
    return updated


def auto_calculate(
    state: EnrollmentFormState,
    count: int = DEFAULT_INSTALLMENT_COUNT,
) -> Tuple[EnrollmentFormState, Dict[str, str]]:
    """Regenerate the plan on request ("Auto-Calculate").

    Returns the new state and an empty dict, or the unchanged state and the
    message explaining what is missing.
    """
    if not state.emi_plan:
        return state, {"emiPlan": "Enable EMI Plan first"}
    balance = balance_amount(state)
    if balance <= 0:
        return state, {"balanceAmount": "Please enter Total Deal and Booking Amount first to calculate balance"}
    if state.emi_plan_date is None:
        return state, {"emiPlanDate": "Please select EMI Plan Date first"}
    return replace(state, plan=generate_installments(balance, state.emi_plan_date, count)), {}


def apply_to_plan(
    state: EnrollmentFormState,
    operation: Callable[..., InstallmentPlan],
    *args: Any,
) -> EnrollmentFormState:
    """Run an engine operation on the form's plan and return the new state."""
    if not state.emi_plan or state.plan is None:
        raise PlanInputError("EMI plan is not enabled for this enrollment")
    return replace(state, plan=operation(state.plan, *args))


def form_errors(state: EnrollmentFormState) -> Dict[str, str]:
    """Validation messages that block submission, keyed by payload field."""
    errors: Dict[str, str] = {}
    if state.booking_amount < 0:
        errors["bookingAmount"] = "Booking amount cannot be negative"
    if state.emi_plan and state.plan is not None:
        errors.update(validate_plan(replace(state.plan, balance=balance_amount(state))))
    return errors


def installments_to_json(installments: List[Installment]) -> List[Dict[str, Any]]:
    return [
        {
            "month": inst.month,
            "amount": float(inst.amount),
            "dueDate": inst.due_date.isoformat() if inst.due_date else "",
        }
        for inst in installments
    ]


def installments_from_json(rows: Optional[List[Dict[str, Any]]]) -> List[Installment]:
    installments = []
    for row in rows or []:
        due = row.get("dueDate") or None
        installments.append(
            Installment(
                month=int(row.get("month") or 1),
                amount=decimal_from_str(row.get("amount") or 0),
                due_date=parse_iso_date(due) if due else None,
            )
        )
    return installments


def build_submission(state: EnrollmentFormState) -> Dict[str, Any]:
    """Return the JSON body sent when the enrollment is submitted.

    Raises
    ------
    SubmissionBlockedError
        While :func:`form_errors` reports anything.
    """
    errors = form_errors(state)
    if errors:
        raise SubmissionBlockedError(errors)
    payload: Dict[str, Any] = {
        "studentName": state.student_name,
        "softwaresIncluded": state.softwares_included,
        "totalDeal": float(state.total_deal),
        "bookingAmount": float(state.booking_amount),
        "balanceAmount": float(balance_amount(state)),
        "emiPlan": state.emi_plan,
    }
    if state.emi_plan_date:
        payload["emiPlanDate"] = state.emi_plan_date.isoformat()
    if state.emi_plan and state.plan is not None and state.plan.installments:
        payload["emiInstallments"] = installments_to_json(state.plan.installments)
    return payload


def state_to_dict(state: EnrollmentFormState) -> Dict[str, Any]:
    """Serialise the form state, customisation flags included."""
    plan = state.plan
    return {
        "studentName": state.student_name,
        "softwaresIncluded": state.softwares_included,
        "totalDeal": float(state.total_deal),
        "bookingAmount": float(state.booking_amount),
        "balanceAmount": float(balance_amount(state)),
        "emiPlan": state.emi_plan,
        "emiPlanDate": state.emi_plan_date.isoformat() if state.emi_plan_date else "",
        "emiInstallments": installments_to_json(plan.installments) if plan else [],
        "customizedIndices": sorted(plan.amount_customized) if plan else [],
        "customDateIndices": sorted(plan.date_customized) if plan else [],
    }


def state_from_dict(data: Dict[str, Any]) -> EnrollmentFormState:
    """Rebuild form state from :func:`state_to_dict` output.

    The plan's balance and start date are always taken from the form, so a
    client cannot send a plan that disagrees with its own deal figures.
    """
    plan_date_raw = data.get("emiPlanDate") or ""
    state = EnrollmentFormState(
        total_deal=_coerce("total_deal", data.get("totalDeal")),
        booking_amount=_coerce("booking_amount", data.get("bookingAmount")),
        emi_plan=parse_flag(data.get("emiPlan")),
        emi_plan_date=parse_user_date(plan_date_raw) if plan_date_raw else None,
        student_name=data.get("studentName") or "",
        softwares_included=data.get("softwaresIncluded") or "",
    )
    if state.emi_plan:
        installments = installments_from_json(data.get("emiInstallments"))
        size = len(installments)
        state.plan = InstallmentPlan(
            balance=balance_amount(state),
            start_date=state.emi_plan_date,
            installments=installments,
            amount_customized={int(i) for i in data.get("customizedIndices") or [] if 0 <= int(i) < size},
            date_customized={int(i) for i in data.get("customDateIndices") or [] if 0 <= int(i) < size},
        )
    return state
