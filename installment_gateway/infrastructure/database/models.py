"""SQLAlchemy ORM models for payments and their installments"""

import uuid
from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()


def _new_id() -> str:
    return str(uuid.uuid4())


class PaymentRecord(Base):
    """Customer payment, paid in full or through an installment plan"""

    __tablename__ = "payment"
    __table_args__ = (
        CheckConstraint("payment_type IN ('full', 'installment')", name="ck_payment_type"),
        CheckConstraint(
            "status IN ('pending', 'completed', 'failed', 'cancelled')", name="ck_payment_status"
        ),
        CheckConstraint("total_cents > 0", name="ck_payment_total_positive"),
    )

    id = Column(Text, primary_key=True, default=_new_id)
    customer_name = Column(Text, nullable=False)
    customer_email = Column(Text, nullable=False, index=True)
    customer_phone = Column(Text, nullable=True)
    total_cents = Column(BigInteger, nullable=False)
    payment_type = Column(Text, nullable=False)
    down_payment_cents = Column(BigInteger, nullable=False, default=0)
    installment_count = Column(Integer, nullable=True)
    status = Column(Text, nullable=False, default="pending", index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )

    installments = relationship(
        "InstallmentRecord",
        back_populates="payment",
        cascade="all, delete-orphan",
        order_by="InstallmentRecord.sequence",
    )


class InstallmentRecord(Base):
    """Individual installment within a payment plan"""

    __tablename__ = "installment"
    __table_args__ = (
        UniqueConstraint("payment_id", "sequence", name="uq_installment_sequence"),
        CheckConstraint(
            "status IN ('pending', 'processing', 'paid', 'failed')", name="ck_installment_status"
        ),
        CheckConstraint("amount_cents > 0", name="ck_installment_amount_positive"),
    )

    id = Column(Text, primary_key=True, default=_new_id)
    payment_id = Column(Text, ForeignKey("payment.id", ondelete="CASCADE"), nullable=False, index=True)
    sequence = Column(Integer, nullable=False)
    amount_cents = Column(BigInteger, nullable=False)
    due_date = Column(Date, nullable=False, index=True)
    status = Column(Text, nullable=False, default="pending", index=True)
    transaction_id = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )

    payment = relationship("PaymentRecord", back_populates="installments")
