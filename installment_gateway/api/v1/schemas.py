"""Pydantic schemas for API request/response validation"""

from pydantic import BaseModel, Field
from datetime import date, datetime
from typing import List, Literal, Optional


class CustomerInfo(BaseModel):
    """Identity of the customer being charged"""

    name: str = Field(..., min_length=1, description="Customer full name")
    email: str = Field(..., min_length=3, description="Customer email")
    phone: Optional[str] = None


class PaymentCreateRequest(BaseModel):
    """Request body for POST /v1/payments"""

    amount_cents: int = Field(..., gt=0, description="Total amount in cents")
    payment_type: Literal["full", "installment"]
    down_payment_cents: int = Field(0, ge=0, description="Upfront portion in cents")
    installment_count: Optional[int] = Field(None, description="3, 6 or 12 for installment payments")
    customer_info: CustomerInfo


class TransactionDetails(BaseModel):
    amount_cents: int
    transaction_id: Optional[str] = None
    installment_count: Optional[int] = None
    next_payment_date: Optional[date] = None


class PaymentCreateResponse(BaseModel):
    """Response for POST /v1/payments"""

    success: bool
    payment_id: str
    message: str
    transaction_details: Optional[TransactionDetails] = None


class PaymentResponse(BaseModel):
    """Response for GET /v1/payments/{payment_id}"""

    payment_id: str
    customer_info: CustomerInfo
    amount_cents: int
    payment_type: str
    down_payment_cents: int
    installment_count: Optional[int] = None
    status: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class InstallmentSchema(BaseModel):
    """Single installment in a repayment plan"""

    installment_id: str
    sequence: int
    due_date: date
    amount_cents: int
    status: str = "pending"
    transaction_id: Optional[str] = None


class InstallmentListResponse(BaseModel):
    """Response for GET /v1/payments/{payment_id}/installments"""

    payment_id: str
    installments: List[InstallmentSchema]


class ReconciliationItemSchema(BaseModel):
    installment_id: str
    payment_id: str
    success: bool
    reason: Optional[str] = None
    transaction_id: Optional[str] = None


class ReconciliationReportResponse(BaseModel):
    """Response for POST /v1/jobs/process-installments/run"""

    as_of: date
    total: int
    succeeded: int
    failed: int
    stopped_early: bool
    items: List[ReconciliationItemSchema]


class JobStatus(BaseModel):
    name: str
    cron: str
    enabled: bool
    scheduled: bool
    running: bool
    next_run_at: Optional[datetime] = None
    last_run_at: Optional[datetime] = None
    last_error: Optional[str] = None


class JobStatusResponse(BaseModel):
    """Response for GET /v1/jobs"""

    jobs: List[JobStatus]
