"""Data access layer for payments and installments"""

from datetime import date, datetime
from typing import List, Optional
from sqlalchemy.orm import Session
from sqlalchemy.sql import func
from installment_gateway.infrastructure.database.models import PaymentRecord, InstallmentRecord
from installment_gateway.domain.exceptions import NotFoundError
from installment_gateway.domain.models import (
    CustomerIdentity,
    Installment,
    InstallmentStatus,
    Payment,
    PaymentStatus,
    PaymentType,
)


class PaymentRepository:
    """Record store for payments and installments; every write commits its own row"""

    def __init__(self, db: Session):
        self.db = db

    def create_payment(self, payment: Payment, installments: List[Installment]) -> Payment:
        """Persist a payment together with all of its installments in one transaction"""
        db_payment = PaymentRecord(
            id=payment.id,
            customer_name=payment.customer.name,
            customer_email=payment.customer.email,
            customer_phone=payment.customer.phone,
            total_cents=payment.total_cents,
            payment_type=PaymentType(payment.payment_type).value,
            down_payment_cents=payment.down_payment_cents,
            installment_count=payment.installment_count,
            status=PaymentStatus(payment.status).value,
        )
        self.db.add(db_payment)

        for inst in installments:
            self.db.add(
                InstallmentRecord(
                    id=inst.id,
                    payment_id=payment.id,
                    sequence=inst.sequence,
                    amount_cents=inst.amount_cents,
                    due_date=inst.due_date,
                    status=InstallmentStatus(inst.status).value,
                    transaction_id=inst.transaction_id,
                )
            )

        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        return _to_payment(db_payment)

    def get_payment_by_id(self, payment_id: str) -> Optional[Payment]:
        record = self.db.query(PaymentRecord).filter(PaymentRecord.id == payment_id).first()
        return _to_payment(record) if record else None

    def get_installment_by_id(self, installment_id: str) -> Optional[Installment]:
        record = (
            self.db.query(InstallmentRecord)
            .filter(InstallmentRecord.id == installment_id)
            .first()
        )
        return _to_installment(record) if record else None

    def get_installments_by_payment_id(self, payment_id: str) -> List[Installment]:
        """Fetch a plan's installments in sequence order"""
        records = (
            self.db.query(InstallmentRecord)
            .filter(InstallmentRecord.payment_id == payment_id)
            .order_by(InstallmentRecord.sequence)
            .all()
        )
        return [_to_installment(r) for r in records]

    def get_due_unpaid_installments(self, as_of: date) -> List[Installment]:
        """Pending installments due on or before as_of, earliest due first"""
        records = (
            self.db.query(InstallmentRecord)
            .filter(
                InstallmentRecord.status == InstallmentStatus.PENDING.value,
                InstallmentRecord.due_date <= as_of,
            )
            .order_by(InstallmentRecord.due_date.asc(), InstallmentRecord.sequence.asc())
            .all()
        )
        return [_to_installment(r) for r in records]

    def get_failed_installments_before(self, cutoff: datetime) -> List[Installment]:
        records = (
            self.db.query(InstallmentRecord)
            .filter(
                InstallmentRecord.status == InstallmentStatus.FAILED.value,
                InstallmentRecord.updated_at < cutoff,
            )
            .order_by(InstallmentRecord.updated_at.asc())
            .all()
        )
        return [_to_installment(r) for r in records]

    def update_payment_status(self, payment_id: str, status: PaymentStatus) -> None:
        updated = (
            self.db.query(PaymentRecord)
            .filter(PaymentRecord.id == payment_id)
            .update(
                {PaymentRecord.status: PaymentStatus(status).value, PaymentRecord.updated_at: func.now()},
                synchronize_session=False,
            )
        )
        self.db.commit()
        if not updated:
            raise NotFoundError(f"Payment {payment_id} not found")

    def update_installment_status(
        self,
        installment_id: str,
        status: InstallmentStatus,
        transaction_id: Optional[str] = None,
    ) -> None:
        values = {
            InstallmentRecord.status: InstallmentStatus(status).value,
            InstallmentRecord.updated_at: func.now(),
        }
        if transaction_id is not None:
            values[InstallmentRecord.transaction_id] = transaction_id

        updated = (
            self.db.query(InstallmentRecord)
            .filter(InstallmentRecord.id == installment_id)
            .update(values, synchronize_session=False)
        )
        self.db.commit()
        if not updated:
            raise NotFoundError(f"Installment {installment_id} not found")

    def claim_installment(self, installment_id: str) -> bool:
        """
        Compare-and-swap pending -> processing.

        Only one caller can win the claim for a given installment, so the
        gateway is charged at most once per pending row.
        """
        claimed = (
            self.db.query(InstallmentRecord)
            .filter(
                InstallmentRecord.id == installment_id,
                InstallmentRecord.status == InstallmentStatus.PENDING.value,
            )
            .update(
                {
                    InstallmentRecord.status: InstallmentStatus.PROCESSING.value,
                    InstallmentRecord.updated_at: func.now(),
                },
                synchronize_session=False,
            )
        )
        self.db.commit()
        return claimed == 1


def _to_payment(record: PaymentRecord) -> Payment:
    return Payment(
        id=record.id,
        customer=CustomerIdentity(
            name=record.customer_name,
            email=record.customer_email,
            phone=record.customer_phone,
        ),
        total_cents=record.total_cents,
        payment_type=PaymentType(record.payment_type),
        status=PaymentStatus(record.status),
        down_payment_cents=record.down_payment_cents or 0,
        installment_count=record.installment_count,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


def _to_installment(record: InstallmentRecord) -> Installment:
    return Installment(
        id=record.id,
        payment_id=record.payment_id,
        sequence=record.sequence,
        amount_cents=record.amount_cents,
        due_date=record.due_date,
        status=InstallmentStatus(record.status),
        transaction_id=record.transaction_id,
        updated_at=record.updated_at,
    )
