"""Unit tests for payment and installment status transitions"""

import pytest
from installment_gateway.domain.exceptions import InvalidTransitionError
from installment_gateway.domain.models import InstallmentStatus, PaymentStatus
from installment_gateway.domain.state_machine import (
    can_transition_installment,
    can_transition_payment,
    ensure_installment_reset,
    ensure_installment_transition,
    ensure_payment_transition,
    is_terminal_installment,
    is_terminal_payment,
)


@pytest.mark.parametrize(
    "target", [PaymentStatus.COMPLETED, PaymentStatus.FAILED, PaymentStatus.CANCELLED]
)
def test_pending_payment_can_settle(target):
    assert can_transition_payment(PaymentStatus.PENDING, target)
    ensure_payment_transition(PaymentStatus.PENDING, target)


@pytest.mark.parametrize(
    "terminal", [PaymentStatus.COMPLETED, PaymentStatus.FAILED, PaymentStatus.CANCELLED]
)
def test_terminal_payment_states_are_final(terminal):
    assert is_terminal_payment(terminal)
    with pytest.raises(InvalidTransitionError):
        ensure_payment_transition(terminal, PaymentStatus.PENDING)


def test_installment_happy_path():
    ensure_installment_transition(InstallmentStatus.PENDING, InstallmentStatus.PROCESSING)
    ensure_installment_transition(InstallmentStatus.PROCESSING, InstallmentStatus.PAID)


def test_installment_cannot_skip_processing():
    assert not can_transition_installment(InstallmentStatus.PENDING, InstallmentStatus.PAID)
    with pytest.raises(InvalidTransitionError):
        ensure_installment_transition(InstallmentStatus.PENDING, InstallmentStatus.PAID)


def test_installment_can_fail_from_pending_or_processing():
    assert can_transition_installment(InstallmentStatus.PENDING, InstallmentStatus.FAILED)
    assert can_transition_installment(InstallmentStatus.PROCESSING, InstallmentStatus.FAILED)


def test_paid_and_failed_are_terminal():
    assert is_terminal_installment(InstallmentStatus.PAID)
    assert is_terminal_installment(InstallmentStatus.FAILED)
    assert not is_terminal_installment(InstallmentStatus.PROCESSING)


def test_only_failed_installments_can_be_reset():
    ensure_installment_reset(InstallmentStatus.FAILED)
    for status in (InstallmentStatus.PENDING, InstallmentStatus.PROCESSING, InstallmentStatus.PAID):
        with pytest.raises(InvalidTransitionError):
            ensure_installment_reset(status)


def test_accepts_plain_string_statuses():
    assert can_transition_installment("processing", "paid")
    with pytest.raises(InvalidTransitionError, match="from paid to pending"):
        ensure_installment_transition("paid", "pending")
