from datetime import date
from decimal import Decimal

import pytest

from academy_calc.engine import (
    PlanInputError,
    add_installment,
    edit_installment_amount,
    edit_installment_date,
    edit_installment_month,
    generate_installments,
    plan_total,
    redistribute,
    remove_installment,
    set_custom_date,
    validate_plan,
)
from academy_calc.utils import add_months


def amounts(plan):
    return [inst.amount for inst in plan.installments]


def due_dates(plan):
    return [inst.due_date for inst in plan.installments]


def test_redistribute_last_share_takes_remainder():
    assert redistribute(Decimal("1000"), 3) == [Decimal("333.33"), Decimal("333.33"), Decimal("333.34")]
    assert redistribute(Decimal("0.25"), 2) == [Decimal("0.13"), Decimal("0.12")]
    assert redistribute(Decimal("100"), 0) == []


def test_generate_splits_balance_evenly(plan):
    assert len(plan.installments) == 10
    assert [inst.month for inst in plan.installments] == list(range(1, 11))
    assert amounts(plan) == [Decimal("1000.00")] * 10
    assert plan_total(plan) == Decimal("10000")
    assert due_dates(plan) == [add_months(date(2024, 1, 15), i) for i in range(10)]


@pytest.mark.parametrize("balance, count", [("100", 6), ("1000", 3), ("99999.99", 7), ("0.05", 3), ("1", 10)])
def test_generated_total_matches_balance(balance, count):
    plan = generate_installments(balance, date(2024, 1, 1), count)
    assert plan_total(plan) == Decimal(balance)
    assert validate_plan(plan) == {}


def test_generate_dates_step_from_plan_date():
    plan = generate_installments("4000", date(2024, 1, 31), 4)
    assert due_dates(plan) == [date(2024, 1, 31), date(2024, 2, 29), date(2024, 3, 31), date(2024, 4, 30)]


def test_generate_is_repeatable():
    assert generate_installments("12345.67", date(2024, 5, 1)) == generate_installments("12345.67", date(2024, 5, 1))


@pytest.mark.parametrize(
    "balance, start, count",
    [("0", date(2024, 1, 1), 10), ("-5", date(2024, 1, 1), 10), ("100", None, 10), ("100", date(2024, 1, 1), 0)],
)
def test_generate_rejects_bad_input(balance, start, count):
    with pytest.raises(PlanInputError):
        generate_installments(balance, start, count)


def test_amount_edit_rebalances_other_rows(plan):
    edited = edit_installment_amount(plan, 0, "2800")
    assert amounts(edited) == [Decimal("2800")] + [Decimal("800.00")] * 9
    assert plan_total(edited) == Decimal("10000")
    assert edited.amount_customized == {0}

    edited = edit_installment_amount(edited, 1, "1000")
    assert amounts(edited)[2:] == [Decimal("775.00")] * 8
    assert plan_total(edited) == Decimal("10000")
    assert edited.amount_customized == {0, 1}


def test_amount_edit_keeps_total_with_odd_cents(plan):
    edited = edit_installment_amount(plan, 4, "1000.01")
    assert plan_total(edited) == Decimal("10000")
    assert edited.installments[-1].amount == Decimal("999.99")


def test_amount_edit_rounds_to_cents(plan):
    edited = edit_installment_amount(plan, 0, "1000.005")
    assert edited.installments[0].amount == Decimal("1000.01")
    assert plan_total(edited) == Decimal("10000")
    assert validate_plan(edited) == {}


def test_generate_rounds_balance_to_cents():
    plan = generate_installments("100.005", date(2024, 1, 1), 3)
    assert plan.balance == Decimal("100.01")
    assert plan_total(plan) == plan.balance
    assert validate_plan(plan) == {}


def test_amount_edit_does_not_touch_input(plan):
    edit_installment_amount(plan, 0, "2800")
    assert amounts(plan) == [Decimal("1000.00")] * 10
    assert plan.amount_customized == set()


def test_amount_edit_over_balance_leaves_other_rows(plan):
    edited = edit_installment_amount(plan, 0, "12000")
    assert amounts(edited)[1:] == [Decimal("1000.00")] * 9
    assert validate_plan(edited) == {"emiInstallments": "Total EMI exceeds Balance"}


def test_negative_amount_is_reported():
    plan = generate_installments("1000", date(2024, 1, 1), 2)
    edited = edit_installment_amount(plan, 0, "-10")
    assert validate_plan(edited)["emiInstallments[0].amount"] == "Amount cannot be negative"


def test_date_edit_cascades_to_later_rows(plan):
    edited = edit_installment_date(plan, 2, date(2024, 4, 1))
    assert due_dates(edited)[:2] == [date(2024, 1, 15), date(2024, 2, 15)]
    assert due_dates(edited)[2:] == [add_months(date(2024, 4, 1), i) for i in range(8)]
    assert edited.date_customized == set()


def test_date_cascade_skips_custom_dates(plan):
    edited = edit_installment_date(plan, 5, date(2024, 12, 25), custom=True)
    edited = edit_installment_date(edited, 2, date(2024, 4, 1))
    assert edited.installments[5].due_date == date(2024, 12, 25)
    assert edited.installments[4].due_date == date(2024, 6, 1)
    assert edited.installments[6].due_date == date(2024, 8, 1)


def test_custom_date_edit_does_not_cascade(plan):
    edited = edit_installment_date(plan, 2, date(2024, 3, 20), custom=True)
    assert edited.installments[2].due_date == date(2024, 3, 20)
    assert edited.installments[3].due_date == date(2024, 4, 15)
    assert edited.date_customized == {2}


def test_clearing_custom_date_realigns_rows(plan):
    edited = edit_installment_date(plan, 2, date(2024, 3, 20), custom=True)
    edited = edit_installment_date(edited, 3, date(2024, 5, 2), custom=True)
    restored = set_custom_date(edited, 2, False)
    assert restored.installments[2].due_date == date(2024, 3, 15)
    assert restored.installments[3].due_date == date(2024, 5, 2)
    assert restored.installments[4].due_date == date(2024, 5, 15)
    assert restored.date_customized == {3}


def test_enabling_custom_date_only_sets_flag(plan):
    edited = set_custom_date(plan, 4, True)
    assert edited.date_customized == {4}
    assert due_dates(edited) == due_dates(plan)


def test_remove_resplits_balance_and_renumbers(plan):
    edited = edit_installment_amount(plan, 5, "3000")
    edited = edit_installment_date(edited, 5, date(2024, 12, 1), custom=True)
    edited = set_custom_date(edited, 1, True)

    removed = remove_installment(edited, 3)
    assert len(removed.installments) == 9
    assert [inst.month for inst in removed.installments] == list(range(1, 10))
    assert amounts(removed) == [Decimal("1111.11")] * 8 + [Decimal("1111.12")]
    assert plan_total(removed) == Decimal("10000")
    assert due_dates(removed) == [add_months(date(2024, 1, 15), i) for i in range(9)]
    assert removed.amount_customized == {4}
    assert removed.date_customized == {1, 4}


def test_remove_drops_flags_of_removed_row(plan):
    edited = edit_installment_amount(plan, 1, "500")
    removed = remove_installment(edited, 1)
    assert removed.amount_customized == set()


def test_remove_last_installment_leaves_empty_plan():
    plan = generate_installments("500", date(2024, 1, 1), 1)
    removed = remove_installment(plan, 0)
    assert removed.installments == []
    assert plan_total(removed) == Decimal("0")


def test_add_installment_appends_blank_row(plan):
    edited = add_installment(plan)
    assert len(edited.installments) == 11
    assert edited.installments[-1].month == 11
    assert edited.installments[-1].amount == Decimal("0")
    assert validate_plan(edited) == {"emiInstallments[10].dueDate": "Due date is required"}


def test_edit_month_keeps_value_as_entered(plan):
    assert edit_installment_month(plan, 2, 7).installments[2].month == 7
    assert edit_installment_month(plan, 2, 0).installments[2].month == 1


def test_out_of_range_index(plan):
    with pytest.raises(IndexError):
        edit_installment_amount(plan, 10, "5")
    with pytest.raises(IndexError):
        remove_installment(plan, -1)
