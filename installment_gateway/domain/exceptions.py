"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class ValidationError(DomainException):
    """Payment request is malformed or out of range"""

    pass


class GatewayError(DomainException):
    """Payment gateway declined the charge, errored or timed out"""

    def __init__(self, message: str, payment_id: str | None = None):
        super().__init__(message)
        self.message = message
        self.payment_id = payment_id


class NotFoundError(DomainException):
    """Referenced payment or installment does not exist"""

    pass


class OrphanInstallmentError(DomainException):
    """Installment references a payment that is missing from the store"""

    def __init__(self, installment_id: str, payment_id: str):
        super().__init__(f"Payment {payment_id} not found for installment {installment_id}")
        self.installment_id = installment_id
        self.payment_id = payment_id


class InvalidAllocationError(DomainException):
    """Allocator preconditions violated"""

    pass


class InvalidTransitionError(DomainException):
    """Status change not allowed by the payment state machine"""

    pass


class ChargeNotRecordedError(DomainException):
    """Gateway collected the money but the store rejected the paid write"""

    def __init__(self, installment_id: str, transaction_id: str):
        super().__init__(
            f"Installment {installment_id} charged as {transaction_id} but not recorded as paid"
        )
        self.installment_id = installment_id
        self.transaction_id = transaction_id
