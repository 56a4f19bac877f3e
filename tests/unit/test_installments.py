"""Unit tests for amount allocation and installment plan generation"""

import pytest
from datetime import date
from installment_gateway.domain.installments import allocate, build_installment_plan
from installment_gateway.domain.exceptions import InvalidAllocationError


def test_allocate_distributes_remainder_to_first_installments():
    """100 / 3 -> remainder 1 goes to the first installment"""
    assert allocate(100, 0, 3) == [34, 33, 33]


def test_allocate_with_down_payment():
    """Down payment first, remaining 90 split into three"""
    amounts = allocate(100, 10, 3)

    assert amounts[0] == 10
    assert amounts[1:] == [30, 30, 30]
    assert sum(amounts) == 100


def test_allocate_even_split():
    assert allocate(1200, 0, 12) == [100] * 12


def test_allocate_remainder_spread_over_several():
    """1000 / 6 = 166 rem 4 -> four installments of 167"""
    assert allocate(1000, 0, 6) == [167, 167, 167, 167, 166, 166]


@pytest.mark.parametrize("count", [3, 6, 12])
@pytest.mark.parametrize("total", [1, 99, 100, 101, 4999, 123457])
@pytest.mark.parametrize("down_ratio", [0, 0.1, 0.5, 0.9])
def test_allocate_sums_exactly_and_stays_balanced(total, count, down_ratio):
    down = int(total * down_ratio)
    if down >= total:
        down = 0
    amounts = allocate(total, down, count)

    assert sum(amounts) == total
    assert all(isinstance(a, int) and a >= 0 for a in amounts)

    split = amounts[1:] if down > 0 else amounts
    assert len(split) == count
    assert max(split) - min(split) <= 1


@pytest.mark.parametrize(
    "total, down, count",
    [
        (100, 0, 0),
        (100, 0, -3),
        (0, 0, 3),
        (-50, 0, 3),
        (100, 100, 3),
        (100, 150, 3),
        (100, -1, 3),
    ],
)
def test_allocate_rejects_invalid_input(total, down, count):
    with pytest.raises(InvalidAllocationError):
        allocate(total, down, count)


def test_build_plan_without_down_payment_starts_next_month():
    plan = build_installment_plan(30000, 0, 3, anchor=date(2024, 1, 15))

    assert [i.sequence for i in plan] == [1, 2, 3]
    assert [i.amount_cents for i in plan] == [10000, 10000, 10000]
    assert [i.due_date for i in plan] == [date(2024, 2, 15), date(2024, 3, 15), date(2024, 4, 15)]


def test_build_plan_with_down_payment_due_today():
    plan = build_installment_plan(10000, 1000, 3, anchor=date(2024, 1, 15))

    assert len(plan) == 4
    assert plan[0].amount_cents == 1000
    assert plan[0].due_date == date(2024, 1, 15)
    assert [i.due_date for i in plan[1:]] == [date(2024, 2, 15), date(2024, 3, 15), date(2024, 4, 15)]
    assert sum(i.amount_cents for i in plan) == 10000
