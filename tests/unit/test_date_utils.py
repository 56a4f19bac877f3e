"""Unit tests for due-date scheduling"""

from datetime import date
from installment_gateway.utils.date_utils import add_months, due_date


ANCHOR = date(2024, 1, 15)


def test_down_payment_due_on_anchor():
    assert due_date(1, has_down_payment=True, anchor=ANCHOR) == date(2024, 1, 15)


def test_second_installment_after_down_payment_is_one_month_out():
    assert due_date(2, has_down_payment=True, anchor=ANCHOR) == date(2024, 2, 15)


def test_without_down_payment_index_is_months_out():
    assert due_date(1, has_down_payment=False, anchor=ANCHOR) == date(2024, 2, 15)
    assert due_date(3, has_down_payment=False, anchor=ANCHOR) == date(2024, 4, 15)


def test_add_months_clamps_to_month_end():
    assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)  # leap year
    assert add_months(date(2023, 1, 31), 1) == date(2023, 2, 28)
    assert add_months(date(2024, 3, 31), 1) == date(2024, 4, 30)


def test_add_months_rolls_over_year():
    assert add_months(date(2024, 11, 15), 2) == date(2025, 1, 15)
    assert add_months(date(2024, 1, 15), 12) == date(2025, 1, 15)


def test_due_date_defaults_to_today():
    assert due_date(1, has_down_payment=True) == due_date(1, has_down_payment=True, anchor=None)
