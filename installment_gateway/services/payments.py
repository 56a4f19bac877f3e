"""Payment orchestration: submit payments and charge installments"""

import asyncio
import logging
import uuid
from contextlib import asynccontextmanager
from datetime import date
from typing import AsyncIterator, Dict, List, Sequence

from installment_gateway.config import settings
from installment_gateway.domain.exceptions import (
    ChargeNotRecordedError,
    GatewayError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from installment_gateway.domain.installments import build_installment_plan
from installment_gateway.domain.models import (
    ChargeOutcome,
    ChargeResult,
    CustomerIdentity,
    Installment,
    InstallmentStatus,
    Payment,
    PaymentOutcome,
    PaymentRequest,
    PaymentStatus,
    PaymentType,
)
from installment_gateway.domain.ports import GatewayClient, RecordStore
from installment_gateway.domain.state_machine import (
    ensure_installment_reset,
    ensure_installment_transition,
    ensure_payment_transition,
)
from installment_gateway.infrastructure.observability.metrics import (
    gateway_failures_counter,
    gateway_latency_histogram,
    payment_completed_counter,
    payment_submitted_counter,
    record_charge,
)

logger = logging.getLogger(__name__)


class KeyedLocks:
    """asyncio locks keyed by id, dropped once nobody holds or waits on them"""

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}
        self._holders: Dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._holders[key] = self._holders.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._holders[key] -= 1
            if self._holders[key] == 0:
                del self._holders[key]
                del self._locks[key]


# Shared by every PaymentService in the process so API requests and the
# reconciliation job serialize plan completion for the same payment.
payment_locks = KeyedLocks()


class PaymentService:
    """Creates payments and plans, and drives installments through their charge lifecycle"""

    def __init__(
        self,
        store: RecordStore,
        gateway: GatewayClient,
        timeout: float | None = None,
        allowed_installment_counts: Sequence[int] | None = None,
        locks: KeyedLocks | None = None,
    ):
        self.store = store
        self.gateway = gateway
        self.timeout = timeout or settings.gateway_timeout_seconds
        self.allowed_installment_counts = tuple(
            allowed_installment_counts or settings.allowed_installment_counts
        )
        self.locks = locks or payment_locks

    def validate_request(self, request: PaymentRequest) -> None:
        """
        Reject malformed requests before anything is written.

        Raises:
            ValidationError: Non-positive amount, unknown type, missing
                customer name/email, bad installment count or down payment
        """
        if isinstance(request.total_cents, bool) or not isinstance(request.total_cents, int):
            raise ValidationError("Amount must be an integer number of cents")
        if request.total_cents <= 0:
            raise ValidationError("Valid amount is required")

        try:
            payment_type = PaymentType(request.payment_type)
        except ValueError:
            raise ValidationError('Payment type must be either "full" or "installment"')

        customer = request.customer
        if customer is None or not (customer.name or "").strip() or not (customer.email or "").strip():
            raise ValidationError("Customer name and email are required")

        down_payment = request.down_payment_cents or 0

        if payment_type is PaymentType.FULL:
            if request.installment_count is not None:
                raise ValidationError("Installment count is only allowed for installment payments")
            if down_payment:
                raise ValidationError("Down payment is only allowed for installment payments")
            return

        allowed = ", ".join(str(count) for count in self.allowed_installment_counts)
        if request.installment_count not in self.allowed_installment_counts:
            raise ValidationError(f"Installment count must be one of {allowed}")
        if down_payment < 0:
            raise ValidationError("Down payment cannot be negative")
        if down_payment >= request.total_cents:
            raise ValidationError("Down payment must be less than total amount")
        if request.total_cents - down_payment < request.installment_count:
            raise ValidationError(
                f"Amount is too small to split into {request.installment_count} installments"
            )

    async def submit(self, request: PaymentRequest, anchor: date | None = None) -> PaymentOutcome:
        """
        Persist a new payment and immediately attempt its first charge.

        Flow:
        1. Validate (no writes on failure)
        2. Persist payment as pending (plus all installments for a plan)
        3. Charge the full amount, or installment #1 of the plan

        Raises:
            ValidationError: Request rejected before persistence
            GatewayError: First charge failed; the payment stays pending
        """
        self.validate_request(request)
        payment_type = PaymentType(request.payment_type)
        payment_id = str(uuid.uuid4())
        payment_submitted_counter.labels(payment_type=payment_type.value).inc()

        if payment_type is PaymentType.FULL:
            return await self._submit_full(payment_id, request)
        return await self._submit_installments(payment_id, request, anchor)

    async def _submit_full(self, payment_id: str, request: PaymentRequest) -> PaymentOutcome:
        payment = Payment(
            id=payment_id,
            customer=request.customer,
            total_cents=request.total_cents,
            payment_type=PaymentType.FULL,
        )
        self.store.create_payment(payment, [])

        result = await self._charge(request.total_cents, request.customer, payment_id)
        if not result.success:
            logger.warning(
                "Full payment charge failed",
                extra={"payment_id": payment_id, "step": "full_charge", "reason": result.message},
            )
            raise GatewayError(result.message or "Payment failed", payment_id=payment_id)

        ensure_payment_transition(payment.status, PaymentStatus.COMPLETED)
        self.store.update_payment_status(payment_id, PaymentStatus.COMPLETED)
        payment_completed_counter.inc()

        return PaymentOutcome(
            payment_id=payment_id,
            message="Payment processed successfully",
            amount_cents=request.total_cents,
            transaction_id=result.transaction_id,
        )

    async def _submit_installments(
        self, payment_id: str, request: PaymentRequest, anchor: date | None
    ) -> PaymentOutcome:
        down_payment = request.down_payment_cents or 0
        plan = build_installment_plan(request.total_cents, down_payment, request.installment_count, anchor)
        for installment in plan:
            installment.id = str(uuid.uuid4())
            installment.payment_id = payment_id

        payment = Payment(
            id=payment_id,
            customer=request.customer,
            total_cents=request.total_cents,
            payment_type=PaymentType.INSTALLMENT,
            down_payment_cents=down_payment,
            installment_count=request.installment_count,
        )
        self.store.create_payment(payment, plan)

        first = plan[0]
        outcome = await self.charge_installment(first, payment)
        if not outcome.succeeded:
            raise GatewayError(outcome.message or "First installment payment failed", payment_id=payment_id)

        return PaymentOutcome(
            payment_id=payment_id,
            message="Installment payment setup successful. First installment processed.",
            amount_cents=first.amount_cents,
            transaction_id=outcome.transaction_id,
            installment_count=request.installment_count,
            next_payment_date=plan[1].due_date if len(plan) > 1 else None,
        )

    async def charge_installment(self, installment: Installment, payment: Payment) -> ChargeOutcome:
        """
        Charge one installment and settle the plan if it was the last one.

        The pending -> processing claim is written before the gateway call,
        so a crash mid-charge leaves a visible in-flight row. A row that is
        no longer pending (claimed concurrently, already paid) or whose
        payment is no longer pending is skipped without calling the gateway.
        Gateway failures are reported in the outcome, never raised.

        Raises:
            ChargeNotRecordedError: The gateway charged but the paid write
                failed; the row stays processing
        """
        if payment.status is not PaymentStatus.PENDING:
            record_charge("skipped")
            logger.warning(
                f"Payment is {payment.status.value}, skipping charge",
                extra={"installment_id": installment.id, "payment_id": payment.id, "step": "claim"},
            )
            return ChargeOutcome(
                installment_id=installment.id,
                payment_id=payment.id,
                status="skipped",
                message=f"payment {payment.status.value}",
            )

        ensure_installment_transition(InstallmentStatus.PENDING, InstallmentStatus.PROCESSING)
        if not self.store.claim_installment(installment.id):
            record_charge("skipped")
            logger.info(
                "Installment not pending, skipping charge",
                extra={"installment_id": installment.id, "payment_id": payment.id, "step": "claim"},
            )
            return ChargeOutcome(
                installment_id=installment.id,
                payment_id=payment.id,
                status="skipped",
                message="Installment is not pending",
            )

        result = await self._charge(installment.amount_cents, payment.customer, installment.id)

        if not result.success:
            ensure_installment_transition(InstallmentStatus.PROCESSING, InstallmentStatus.FAILED)
            self.store.update_installment_status(installment.id, InstallmentStatus.FAILED)
            record_charge(InstallmentStatus.FAILED.value)
            logger.warning(
                f"Installment {installment.sequence} failed: {result.message}",
                extra={"installment_id": installment.id, "payment_id": payment.id, "step": "charge"},
            )
            return ChargeOutcome(
                installment_id=installment.id,
                payment_id=payment.id,
                status=InstallmentStatus.FAILED.value,
                message=result.message,
            )

        ensure_installment_transition(InstallmentStatus.PROCESSING, InstallmentStatus.PAID)
        try:
            self.store.update_installment_status(installment.id, InstallmentStatus.PAID, result.transaction_id)
        except Exception as e:
            logger.exception(
                "Charge succeeded but installment could not be marked paid",
                extra={
                    "installment_id": installment.id,
                    "payment_id": payment.id,
                    "transaction_id": result.transaction_id,
                    "step": "record_paid",
                },
            )
            raise ChargeNotRecordedError(installment.id, result.transaction_id) from e
        record_charge(InstallmentStatus.PAID.value)
        logger.info(
            f"Installment {installment.sequence} paid",
            extra={
                "installment_id": installment.id,
                "payment_id": payment.id,
                "transaction_id": result.transaction_id,
                "step": "charge",
            },
        )

        completed = await self._complete_if_settled(payment.id)
        return ChargeOutcome(
            installment_id=installment.id,
            payment_id=payment.id,
            status=InstallmentStatus.PAID.value,
            transaction_id=result.transaction_id,
            payment_completed=completed,
        )

    async def _complete_if_settled(self, payment_id: str) -> bool:
        """Move the payment to completed once every installment is paid"""
        async with self.locks.hold(payment_id):
            payment = self.store.get_payment_by_id(payment_id)
            if payment is None or payment.status is not PaymentStatus.PENDING:
                return False

            siblings = self.store.get_installments_by_payment_id(payment_id)
            if not siblings or any(s.status is not InstallmentStatus.PAID for s in siblings):
                return False

            ensure_payment_transition(payment.status, PaymentStatus.COMPLETED)
            self.store.update_payment_status(payment_id, PaymentStatus.COMPLETED)
            payment_completed_counter.inc()
            logger.info(
                "All installments paid, payment completed",
                extra={"payment_id": payment_id, "step": "payment_complete"},
            )
            return True

    async def _charge(self, amount_cents: int, customer: CustomerIdentity, reference_id: str) -> ChargeResult:
        """Call the gateway with a timeout; every error becomes a failed result"""
        try:
            with gateway_latency_histogram.time():
                result = await asyncio.wait_for(
                    self.gateway.charge(amount_cents, customer, reference_id),
                    timeout=self.timeout,
                )
        except asyncio.TimeoutError:
            result = _failed_charge(amount_cents, f"Gateway timeout after {self.timeout}s")
        except GatewayError as e:
            result = _failed_charge(amount_cents, e.message)
        except Exception as e:
            logger.exception(
                "Unexpected gateway error", extra={"reference_id": reference_id, "step": "gateway_call"}
            )
            result = _failed_charge(amount_cents, f"Gateway error: {e}")

        if not result.success:
            gateway_failures_counter.inc()
        return result

    def get_payment(self, payment_id: str) -> Payment:
        payment = self.store.get_payment_by_id(payment_id)
        if payment is None:
            raise NotFoundError(f"Payment {payment_id} not found")
        return payment

    def get_installments(self, payment_id: str) -> List[Installment]:
        """Installments of a payment ordered by sequence"""
        self.get_payment(payment_id)
        return self.store.get_installments_by_payment_id(payment_id)

    def reset_installment(self, installment_id: str) -> Installment:
        """
        Administrative failed -> pending reset so the next sweep retries it.

        Raises:
            NotFoundError: Unknown installment
            InvalidTransitionError: Installment not failed, or its payment
                is no longer pending
        """
        installment = self.store.get_installment_by_id(installment_id)
        if installment is None:
            raise NotFoundError(f"Installment {installment_id} not found")

        ensure_installment_reset(installment.status)
        payment = self.get_payment(installment.payment_id)
        if payment.status is not PaymentStatus.PENDING:
            raise InvalidTransitionError(f"Payment {payment.id} is {payment.status.value}, cannot retry")

        self.store.update_installment_status(installment_id, InstallmentStatus.PENDING)
        logger.info(
            "Failed installment reset to pending",
            extra={"installment_id": installment_id, "payment_id": payment.id, "step": "reset"},
        )
        installment.status = InstallmentStatus.PENDING
        return installment


def _failed_charge(amount_cents: int, message: str) -> ChargeResult:
    return ChargeResult(
        success=False,
        transaction_id="",
        amount_cents=amount_cents,
        status="failed",
        message=message,
    )
