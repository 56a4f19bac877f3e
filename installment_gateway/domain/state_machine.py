"""Legal status transitions for payments and installments"""

from typing import Dict, FrozenSet
from installment_gateway.domain.models import InstallmentStatus, PaymentStatus
from installment_gateway.domain.exceptions import InvalidTransitionError


PAYMENT_TRANSITIONS: Dict[PaymentStatus, FrozenSet[PaymentStatus]] = {
    PaymentStatus.PENDING: frozenset(
        {PaymentStatus.COMPLETED, PaymentStatus.FAILED, PaymentStatus.CANCELLED}
    ),
    PaymentStatus.COMPLETED: frozenset(),
    PaymentStatus.FAILED: frozenset(),
    PaymentStatus.CANCELLED: frozenset(),
}

# Charge path only. A failed installment leaves FAILED solely through
# an explicit administrative reset, see ensure_installment_reset.
INSTALLMENT_TRANSITIONS: Dict[InstallmentStatus, FrozenSet[InstallmentStatus]] = {
    InstallmentStatus.PENDING: frozenset({InstallmentStatus.PROCESSING, InstallmentStatus.FAILED}),
    InstallmentStatus.PROCESSING: frozenset({InstallmentStatus.PAID, InstallmentStatus.FAILED}),
    InstallmentStatus.PAID: frozenset(),
    InstallmentStatus.FAILED: frozenset(),
}


def can_transition_payment(current: PaymentStatus, target: PaymentStatus) -> bool:
    return PaymentStatus(target) in PAYMENT_TRANSITIONS[PaymentStatus(current)]


def can_transition_installment(current: InstallmentStatus, target: InstallmentStatus) -> bool:
    return InstallmentStatus(target) in INSTALLMENT_TRANSITIONS[InstallmentStatus(current)]


def ensure_payment_transition(current: PaymentStatus, target: PaymentStatus) -> None:
    if not can_transition_payment(current, target):
        raise InvalidTransitionError(
            f"Payment cannot move from {PaymentStatus(current).value} to {PaymentStatus(target).value}"
        )


def ensure_installment_transition(current: InstallmentStatus, target: InstallmentStatus) -> None:
    if not can_transition_installment(current, target):
        raise InvalidTransitionError(
            f"Installment cannot move from {InstallmentStatus(current).value} to {InstallmentStatus(target).value}"
        )


def ensure_installment_reset(current: InstallmentStatus) -> None:
    """Administrative failed -> pending reset"""
    if InstallmentStatus(current) is not InstallmentStatus.FAILED:
        raise InvalidTransitionError(
            f"Only failed installments can be reset, installment is {InstallmentStatus(current).value}"
        )


def is_terminal_payment(status: PaymentStatus) -> bool:
    return not PAYMENT_TRANSITIONS[PaymentStatus(status)]


def is_terminal_installment(status: InstallmentStatus) -> bool:
    return not INSTALLMENT_TRANSITIONS[InstallmentStatus(status)]
