"""GET /v1/jobs and POST /v1/jobs/process-installments/run - Scheduler status and manual sweep"""

from fastapi import APIRouter, Depends, HTTPException

from installment_gateway.api.v1.schemas import (
    JobStatus,
    JobStatusResponse,
    ReconciliationItemSchema,
    ReconciliationReportResponse,
)
from installment_gateway.api.dependencies import get_scheduler
from installment_gateway.infrastructure.jobs import PROCESS_INSTALLMENTS_JOB
from installment_gateway.infrastructure.scheduler import JobScheduler

router = APIRouter()


@router.get("/jobs", response_model=JobStatusResponse)
def get_job_status(scheduler: JobScheduler = Depends(get_scheduler)):
    return JobStatusResponse(jobs=[JobStatus(**status) for status in scheduler.status()])


@router.post("/jobs/process-installments/run", response_model=ReconciliationReportResponse)
async def run_reconciliation(scheduler: JobScheduler = Depends(get_scheduler)):
    """
    Trigger the reconciliation sweep immediately.

    Returns:
        Sweep report; 409 when a sweep is already in progress
    """
    report = await scheduler.run_now(PROCESS_INSTALLMENTS_JOB)
    if report is None:
        raise HTTPException(status_code=409, detail="Reconciliation already running")

    return ReconciliationReportResponse(
        as_of=report.as_of,
        total=report.total,
        succeeded=report.succeeded,
        failed=report.failed,
        stopped_early=report.stopped_early,
        items=[
            ReconciliationItemSchema(
                installment_id=item.installment_id,
                payment_id=item.payment_id,
                success=item.success,
                reason=item.reason,
                transaction_id=item.transaction_id,
            )
            for item in report.items
        ],
    )
