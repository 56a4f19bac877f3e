"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import List, Optional


class PaymentType(str, Enum):
    FULL = "full"
    INSTALLMENT = "installment"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class InstallmentStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    PAID = "paid"
    FAILED = "failed"


@dataclass
class CustomerIdentity:
    """Who is being charged"""

    name: str
    email: str
    phone: Optional[str] = None


@dataclass
class PaymentRequest:
    """Incoming request to pay in full or open an installment plan"""

    total_cents: int
    payment_type: PaymentType
    customer: CustomerIdentity
    down_payment_cents: int = 0
    installment_count: Optional[int] = None


@dataclass
class Payment:
    """Payment as stored in the record store"""

    id: str
    customer: CustomerIdentity
    total_cents: int
    payment_type: PaymentType
    status: PaymentStatus = PaymentStatus.PENDING
    down_payment_cents: int = 0
    installment_count: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class Installment:
    """Single payment in a repayment plan"""

    due_date: date
    amount_cents: int
    sequence: int = 1
    id: Optional[str] = None
    payment_id: Optional[str] = None
    status: InstallmentStatus = InstallmentStatus.PENDING
    transaction_id: Optional[str] = None
    updated_at: Optional[datetime] = None


@dataclass
class ChargeResult:
    """Gateway response for a single charge attempt"""

    success: bool
    transaction_id: str
    amount_cents: int
    status: str  # "success" | "failed" | "pending"
    message: Optional[str] = None


@dataclass
class ChargeOutcome:
    """Result of charging one installment; never raised, always reported"""

    installment_id: str
    payment_id: str
    status: str  # "paid" | "failed" | "skipped"
    transaction_id: Optional[str] = None
    message: Optional[str] = None
    payment_completed: bool = False

    @property
    def succeeded(self) -> bool:
        return self.status == InstallmentStatus.PAID.value


@dataclass
class PaymentOutcome:
    """Successful result of submitting a payment"""

    payment_id: str
    message: str
    amount_cents: int
    transaction_id: Optional[str] = None
    installment_count: Optional[int] = None
    next_payment_date: Optional[date] = None


@dataclass
class ReconciliationItem:
    """Per-installment line of a reconciliation report"""

    installment_id: str
    payment_id: str
    success: bool
    reason: Optional[str] = None
    transaction_id: Optional[str] = None


@dataclass
class ReconciliationReport:
    """Aggregate result of one reconciliation sweep"""

    as_of: date
    items: List[ReconciliationItem] = field(default_factory=list)
    stopped_early: bool = False

    @property
    def total(self) -> int:
        return len(self.items)

    @property
    def succeeded(self) -> int:
        return sum(1 for item in self.items if item.success)

    @property
    def failed(self) -> int:
        return self.total - self.succeeded

    @property
    def failures(self) -> List[ReconciliationItem]:
        return [item for item in self.items if not item.success]


@dataclass
class HousekeepingReport:
    """Stale failed installments found by the housekeeping job"""

    cutoff: datetime
    stale_failed: int = 0
    payment_ids: List[str] = field(default_factory=list)
