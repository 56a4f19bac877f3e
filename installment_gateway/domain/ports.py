"""Collaborator interfaces consumed by the payment orchestrator"""

from datetime import date, datetime
from typing import List, Optional, Protocol
from installment_gateway.domain.models import (
    ChargeResult,
    CustomerIdentity,
    Installment,
    InstallmentStatus,
    Payment,
    PaymentStatus,
)


class RecordStore(Protocol):
    """CRUD store for payments and installments, atomic per row"""

    def create_payment(self, payment: Payment, installments: List[Installment]) -> Payment: ...

    def get_payment_by_id(self, payment_id: str) -> Optional[Payment]: ...

    def get_installment_by_id(self, installment_id: str) -> Optional[Installment]: ...

    def get_installments_by_payment_id(self, payment_id: str) -> List[Installment]: ...

    def get_due_unpaid_installments(self, as_of: date) -> List[Installment]: ...

    def get_failed_installments_before(self, cutoff: datetime) -> List[Installment]: ...

    def update_payment_status(self, payment_id: str, status: PaymentStatus) -> None: ...

    def update_installment_status(
        self,
        installment_id: str,
        status: InstallmentStatus,
        transaction_id: Optional[str] = None,
    ) -> None: ...

    def claim_installment(self, installment_id: str) -> bool:
        """Atomically move pending -> processing; False when already claimed"""
        ...


class GatewayClient(Protocol):
    """External charge API"""

    async def charge(
        self, amount_cents: int, customer: CustomerIdentity, reference_id: str
    ) -> ChargeResult: ...
