"""POST /v1/payments and GET /v1/payments/{payment_id} - payment submission and lookup"""

import time
import logging
from fastapi import APIRouter, Depends, HTTPException, Request

from installment_gateway.api.v1.schemas import (
    CustomerInfo,
    InstallmentListResponse,
    InstallmentSchema,
    PaymentCreateRequest,
    PaymentCreateResponse,
    PaymentResponse,
    TransactionDetails,
)
from installment_gateway.api.dependencies import get_payment_service, get_request_id
from installment_gateway.domain.exceptions import GatewayError, NotFoundError, ValidationError
from installment_gateway.domain.models import CustomerIdentity, PaymentRequest, PaymentType
from installment_gateway.infrastructure.observability.logging import log_payment_outcome
from installment_gateway.services.payments import PaymentService

router = APIRouter()


@router.post("/payments", response_model=PaymentCreateResponse)
async def create_payment(
    request_body: PaymentCreateRequest,
    request: Request,
    service: PaymentService = Depends(get_payment_service),
):
    """
    Pay in full or open an installment plan.

    Flow:
    1. Validate request (no writes on rejection)
    2. Persist payment (and installments for a plan) as pending
    3. Charge the full amount or the first installment
    4. Return the charge outcome
    """
    start_time = time.time()
    request_id = get_request_id(request)
    payment_request = PaymentRequest(
        total_cents=request_body.amount_cents,
        payment_type=PaymentType(request_body.payment_type),
        down_payment_cents=request_body.down_payment_cents,
        installment_count=request_body.installment_count,
        customer=CustomerIdentity(
            name=request_body.customer_info.name,
            email=request_body.customer_info.email,
            phone=request_body.customer_info.phone,
        ),
    )

    try:
        outcome = await service.submit(payment_request)

    except ValidationError as e:
        logging.warning(f"Invalid payment request: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=400, detail=str(e))

    except GatewayError as e:
        log_payment_outcome(
            request_id,
            e.payment_id,
            request_body.payment_type,
            False,
            request_body.amount_cents,
            (time.time() - start_time) * 1000,
        )
        raise HTTPException(
            status_code=402,
            detail={"success": False, "payment_id": e.payment_id, "message": e.message},
        )

    except Exception as e:
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    log_payment_outcome(
        request_id,
        outcome.payment_id,
        request_body.payment_type,
        True,
        outcome.amount_cents,
        (time.time() - start_time) * 1000,
    )

    return PaymentCreateResponse(
        success=True,
        payment_id=outcome.payment_id,
        message=outcome.message,
        transaction_details=TransactionDetails(
            amount_cents=outcome.amount_cents,
            transaction_id=outcome.transaction_id,
            installment_count=outcome.installment_count,
            next_payment_date=outcome.next_payment_date,
        ),
    )


@router.get("/payments/{payment_id}", response_model=PaymentResponse)
def get_payment(payment_id: str, service: PaymentService = Depends(get_payment_service)):
    """Retrieve a payment and its current status"""
    try:
        payment = service.get_payment(payment_id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Payment not found")

    return PaymentResponse(
        payment_id=payment.id,
        customer_info=CustomerInfo(
            name=payment.customer.name,
            email=payment.customer.email,
            phone=payment.customer.phone,
        ),
        amount_cents=payment.total_cents,
        payment_type=payment.payment_type.value,
        down_payment_cents=payment.down_payment_cents,
        installment_count=payment.installment_count,
        status=payment.status.value,
        created_at=payment.created_at,
        updated_at=payment.updated_at,
    )


@router.get("/payments/{payment_id}/installments", response_model=InstallmentListResponse)
def get_installments(payment_id: str, service: PaymentService = Depends(get_payment_service)):
    """
    Retrieve the installment schedule of a payment.

    Returns:
        Installments in sequence order (empty for full payments)
    """
    try:
        installments = service.get_installments(payment_id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Payment not found")

    return InstallmentListResponse(
        payment_id=payment_id,
        installments=[
            InstallmentSchema(
                installment_id=inst.id,
                sequence=inst.sequence,
                due_date=inst.due_date,
                amount_cents=inst.amount_cents,
                status=inst.status.value,
                transaction_id=inst.transaction_id,
            )
            for inst in installments
        ],
    )
