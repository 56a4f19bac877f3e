"""Recurring jobs: installment reconciliation and failed-installment housekeeping"""

import asyncio
from typing import Callable
from sqlalchemy.orm import Session

from installment_gateway.config import settings
from installment_gateway.domain.models import HousekeepingReport, ReconciliationReport
from installment_gateway.domain.ports import GatewayClient
from installment_gateway.infrastructure.clients.gateway import HttpGatewayClient
from installment_gateway.infrastructure.database.repositories import PaymentRepository
from installment_gateway.infrastructure.database.session import SessionLocal
from installment_gateway.infrastructure.scheduler import JobScheduler, ScheduledJob
from installment_gateway.services.payments import PaymentService
from installment_gateway.services.reconciliation import (
    housekeep_failed_installments,
    reconcile_due_installments,
)

PROCESS_INSTALLMENTS_JOB = "process-installments"
CLEANUP_FAILED_JOB = "cleanup-failed-installments"


def build_scheduler(
    session_factory: Callable[[], Session] = SessionLocal,
    gateway: GatewayClient | None = None,
) -> JobScheduler:
    """Create the scheduler with both recurring jobs registered (not started)"""
    gateway = gateway or HttpGatewayClient()

    async def process_installments(stop_event: asyncio.Event) -> ReconciliationReport:
        db = session_factory()
        try:
            service = PaymentService(PaymentRepository(db), gateway)
            return await reconcile_due_installments(service, stop_event=stop_event)
        finally:
            db.close()

    async def cleanup_failed_installments(stop_event: asyncio.Event) -> HousekeepingReport:
        db = session_factory()
        try:
            return housekeep_failed_installments(
                PaymentRepository(db), settings.housekeeping_retention_days
            )
        finally:
            db.close()

    scheduler = JobScheduler()
    scheduler.register(
        ScheduledJob(
            name=PROCESS_INSTALLMENTS_JOB,
            cron=settings.reconciliation_cron,
            handler=process_installments,
        )
    )
    scheduler.register(
        ScheduledJob(
            name=CLEANUP_FAILED_JOB,
            cron=settings.housekeeping_cron,
            handler=cleanup_failed_installments,
        )
    )
    return scheduler
