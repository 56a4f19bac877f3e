"""Installment plan generation: amount allocation and due-date assignment"""

from datetime import date
from typing import List
from installment_gateway.domain.models import Installment
from installment_gateway.domain.exceptions import InvalidAllocationError
from installment_gateway.utils.date_utils import due_date


def allocate(total_cents: int, down_payment_cents: int, count: int) -> List[int]:
    """
    Split a total into near-equal integer installments.

    Requirements:
    - With a down payment, the first amount is the down payment and the
      remaining `count` amounts split total - down payment
    - Without one, exactly `count` amounts split the total
    - First `remainder` installments carry one extra cent, so the parts
      always sum back to the total

    Example:
        allocate(100, 0, 3)  -> [34, 33, 33]
        allocate(100, 10, 3) -> [10, 30, 30, 30]

    Raises:
        InvalidAllocationError: count <= 0, total <= 0, or down payment
            outside 0 <= down < total
    """
    if count <= 0:
        raise InvalidAllocationError(f"Installment count must be positive, got {count}")
    if total_cents <= 0:
        raise InvalidAllocationError(f"Total must be positive, got {total_cents}")
    if down_payment_cents < 0 or down_payment_cents >= total_cents:
        raise InvalidAllocationError(
            f"Down payment {down_payment_cents} must be >= 0 and less than total {total_cents}"
        )

    remaining = total_cents - down_payment_cents
    base_amount = remaining // count
    remainder = remaining % count

    amounts = [down_payment_cents] if down_payment_cents > 0 else []
    amounts.extend(base_amount + (1 if i < remainder else 0) for i in range(count))
    return amounts


def build_installment_plan(
    total_cents: int,
    down_payment_cents: int,
    count: int,
    anchor: date | None = None,
) -> List[Installment]:
    """Allocate amounts and assign sequence numbers and due dates"""
    has_down_payment = down_payment_cents > 0
    amounts = allocate(total_cents, down_payment_cents, count)

    return [
        Installment(
            sequence=index,
            amount_cents=amount,
            due_date=due_date(index, has_down_payment, anchor),
        )
        for index, amount in enumerate(amounts, start=1)
    ]
