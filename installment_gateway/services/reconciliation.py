"""Reconciliation sweep: charge due installments with per-item failure isolation"""

import asyncio
import logging
import time
from datetime import date, datetime, timedelta, timezone

from installment_gateway.domain.exceptions import ChargeNotRecordedError, OrphanInstallmentError
from installment_gateway.domain.models import (
    HousekeepingReport,
    Installment,
    InstallmentStatus,
    ReconciliationItem,
    ReconciliationReport,
)
from installment_gateway.domain.ports import RecordStore
from installment_gateway.infrastructure.observability.logging import (
    log_housekeeping_report,
    log_reconciliation_report,
)
from installment_gateway.infrastructure.observability.metrics import (
    orphan_installments_counter,
    record_reconciliation,
    stale_failed_installments_counter,
)
from installment_gateway.services.payments import PaymentService
from installment_gateway.utils.date_utils import today_utc

logger = logging.getLogger(__name__)


async def reconcile_due_installments(
    service: PaymentService,
    as_of: date | None = None,
    stop_event: asyncio.Event | None = None,
) -> ReconciliationReport:
    """
    Charge every pending installment due on or before `as_of`.

    Requirements:
    - Earliest due date first, in store order for ties
    - Missing owning payment is reported as an orphan, not raised
    - Installments of payments that are no longer pending are skipped
    - One item's failure or exception never aborts the batch
    - A set stop_event halts new charges; started charges finish

    Returns:
        ReconciliationReport with per-item outcomes and totals
    """
    start_time = time.time()
    as_of = as_of or today_utc()
    report = ReconciliationReport(as_of=as_of)

    due = service.store.get_due_unpaid_installments(as_of)
    if not due:
        logger.info("No pending installments to process", extra={"as_of": as_of.isoformat()})
    else:
        logger.info(f"Found {len(due)} pending installments", extra={"as_of": as_of.isoformat()})

    for installment in due:
        if stop_event is not None and stop_event.is_set():
            report.stopped_early = True
            logger.info(
                "Stop requested, leaving remaining installments for the next sweep",
                extra={"processed": report.total, "remaining": len(due) - report.total},
            )
            break

        report.items.append(await _reconcile_one(service, installment))

    record_reconciliation(report)
    log_reconciliation_report(report, (time.time() - start_time) * 1000)
    return report


async def _reconcile_one(service: PaymentService, installment: Installment) -> ReconciliationItem:
    payment = service.store.get_payment_by_id(installment.payment_id)
    if payment is None:
        orphan = OrphanInstallmentError(installment.id, installment.payment_id)
        orphan_installments_counter.inc()
        logger.error(str(orphan), extra={"installment_id": installment.id, "step": "reconcile"})
        return ReconciliationItem(
            installment_id=installment.id,
            payment_id=installment.payment_id,
            success=False,
            reason=f"OrphanInstallment: {orphan}",
        )

    try:
        outcome = await service.charge_installment(installment, payment)
    except ChargeNotRecordedError as e:
        # Money was collected: leave the row processing for manual follow-up
        return ReconciliationItem(
            installment_id=installment.id,
            payment_id=payment.id,
            success=False,
            reason=f"ChargeNotRecorded: {e}",
            transaction_id=e.transaction_id,
        )
    except Exception as e:
        logger.exception(
            f"Error processing installment {installment.id}",
            extra={"installment_id": installment.id, "payment_id": payment.id, "step": "reconcile"},
        )
        _fail_in_flight(service.store, installment.id)
        return ReconciliationItem(
            installment_id=installment.id,
            payment_id=payment.id,
            success=False,
            reason=f"{type(e).__name__}: {e}",
        )

    return ReconciliationItem(
        installment_id=installment.id,
        payment_id=payment.id,
        success=outcome.succeeded,
        reason=None if outcome.succeeded else f"{outcome.status}: {outcome.message}",
        transaction_id=outcome.transaction_id,
    )


def _fail_in_flight(store: RecordStore, installment_id: str) -> None:
    """Mark an installment stuck in processing as failed after an error before or during the charge"""
    try:
        current = store.get_installment_by_id(installment_id)
        if current is not None and current.status is InstallmentStatus.PROCESSING:
            store.update_installment_status(installment_id, InstallmentStatus.FAILED)
    except Exception:
        logger.exception(
            "Failed to update installment status", extra={"installment_id": installment_id}
        )


def housekeep_failed_installments(
    store: RecordStore,
    retention_days: int,
    now: datetime | None = None,
) -> HousekeepingReport:
    """
    Report failed installments untouched for longer than the retention window.

    Read-only: active plans are never modified.
    """
    now = now or datetime.now(timezone.utc)
    cutoff = now - timedelta(days=retention_days)

    stale = store.get_failed_installments_before(cutoff)
    report = HousekeepingReport(
        cutoff=cutoff,
        stale_failed=len(stale),
        payment_ids=sorted({inst.payment_id for inst in stale}),
    )

    stale_failed_installments_counter.inc(report.stale_failed)
    log_housekeeping_report(report)
    return report
