"""POST /v1/installments/{installment_id}/reset - Administrative retry of a failed installment"""

import logging
from fastapi import APIRouter, Depends, HTTPException, Request

from installment_gateway.api.v1.schemas import InstallmentSchema
from installment_gateway.api.dependencies import get_payment_service, get_request_id
from installment_gateway.domain.exceptions import InvalidTransitionError, NotFoundError
from installment_gateway.services.payments import PaymentService

router = APIRouter()


@router.post("/installments/{installment_id}/reset", response_model=InstallmentSchema)
def reset_installment(
    installment_id: str,
    request: Request,
    service: PaymentService = Depends(get_payment_service),
):
    """Move a failed installment back to pending so the next sweep charges it again"""
    try:
        installment = service.reset_installment(installment_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidTransitionError as e:
        logging.warning(f"Reset rejected: {e}", extra={"request_id": get_request_id(request)})
        raise HTTPException(status_code=409, detail=str(e))

    return InstallmentSchema(
        installment_id=installment.id,
        sequence=installment.sequence,
        due_date=installment.due_date,
        amount_cents=installment.amount_cents,
        status=installment.status.value,
        transaction_id=installment.transaction_id,
    )
