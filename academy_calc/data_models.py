"""Data models for the academy calculators.

This module defines dataclasses representing the entities used by the
calculators: a single EMI installment, an installment plan together with its
session-local customisation flags, one day of a batch's weekly schedule, and
the enrollment form state that owns a plan. Using dataclasses makes it easy to
construct, inspect and serialize these structures.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional, Set


@dataclass
class Installment:
    """One scheduled partial payment against the enrollment balance.

    Attributes
    ----------
    month: int
        The 1-based month number. Sequential when generated, kept as entered
        when edited by hand.
    amount: Decimal
        The installment amount. Should be non-negative; negative values are
        reported by validation rather than rejected.
    due_date: Optional[date]
        The due date. ``None`` for a freshly added, not yet dated row.
    """

    month: int
    amount: Decimal
    due_date: Optional[date] = None


@dataclass
class InstallmentPlan:
    """An EMI plan for a single enrollment.

    ``amount_customized`` and ``date_customized`` hold the indices of
    installments whose amount or due date was overridden by hand. They are
    transient form state: they decide which rows take part in automatic
    redistribution and date cascades, and are never persisted.
    """

    balance: Decimal
    start_date: Optional[date]
    installments: List[Installment] = field(default_factory=list)
    amount_customized: Set[int] = field(default_factory=set)
    date_customized: Set[int] = field(default_factory=set)

    def copy(self) -> "InstallmentPlan":
        return InstallmentPlan(
            balance=self.balance,
            start_date=self.start_date,
            installments=[
                Installment(i.month, i.amount, i.due_date) for i in self.installments
            ],
            amount_customized=set(self.amount_customized),
            date_customized=set(self.date_customized),
        )


@dataclass(frozen=True)
class DaySchedule:
    """Class hours for one weekday of a batch, as ``HH:MM`` strings."""

    start_time: str
    end_time: str


@dataclass
class EnrollmentFormState:
    """Everything the enrollment form holds that the EMI calculator needs.

    The balance is derived from ``total_deal`` and ``booking_amount``; the
    plan exists only while ``emi_plan`` is enabled.
    """

    total_deal: Decimal = Decimal("0")
    booking_amount: Decimal = Decimal("0")
    emi_plan: bool = False
    emi_plan_date: Optional[date] = None
    plan: Optional[InstallmentPlan] = None
    student_name: str = ""
    softwares_included: str = ""


@dataclass
class WeeklySchedule:
    """A batch's weekly timetable keyed by Python weekday (Monday=0).

    ``unmatched_keys`` keeps the raw keys that did not name a weekday, so an
    empty timetable can be told apart from a malformed one.
    """

    days: Dict[int, DaySchedule] = field(default_factory=dict)
    unmatched_keys: List[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.days and not self.unmatched_keys
