"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict
from pythonjsonlogger import jsonlogger
from installment_gateway.config import settings
from installment_gateway.domain.models import HousekeepingReport, ReconciliationReport


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging"""
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    # JSON handler for stdout
    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_payment_outcome(
    request_id: str,
    payment_id: str | None,
    payment_type: str,
    success: bool,
    amount_cents: int,
    duration_ms: float,
) -> None:
    """Log structured submission outcome for analysis"""
    logging.info(
        "Payment submitted",
        extra={
            "request_id": request_id,
            "payment_id": payment_id,
            "step": "payment_submitted",
            "payment_type": payment_type,
            "outcome": "charged" if success else "charge_failed",
            "amount_cents": amount_cents,
            "duration_ms": duration_ms,
        },
    )


def log_reconciliation_report(report: ReconciliationReport, duration_ms: float) -> None:
    """Log sweep totals plus one reason per failure"""
    logging.info(
        "Reconciliation completed",
        extra={
            "step": "reconciliation_complete",
            "as_of": report.as_of.isoformat(),
            "total": report.total,
            "succeeded": report.succeeded,
            "failed": report.failed,
            "stopped_early": report.stopped_early,
            "failures": [
                {"installment_id": item.installment_id, "reason": item.reason}
                for item in report.failures
            ],
            "duration_ms": duration_ms,
        },
    )


def log_housekeeping_report(report: HousekeepingReport) -> None:
    logging.info(
        "Housekeeping completed",
        extra={
            "step": "housekeeping_complete",
            "cutoff": report.cutoff.isoformat(),
            "stale_failed": report.stale_failed,
            "payment_ids": report.payment_ids,
        },
    )
