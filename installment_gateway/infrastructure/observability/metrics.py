"""Prometheus metrics for monitoring charges, gateway health and reconciliation sweeps"""

from prometheus_client import Counter, Histogram
from installment_gateway.domain.models import ReconciliationReport

# Payment metrics
payment_submitted_counter = Counter(
    "installment_payment_submitted_total",
    "Payments submitted",
    ["payment_type"],  # full | installment
)

charge_counter = Counter(
    "installment_charge_total",
    "Installment charge attempts by outcome",
    ["outcome"],  # paid | failed | skipped
)

payment_completed_counter = Counter(
    "installment_payment_completed_total",
    "Payments moved to completed",
)

# Gateway metrics
gateway_latency_histogram = Histogram(
    "gateway_latency_seconds",
    "Payment gateway charge response time",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

gateway_failures_counter = Counter(
    "gateway_failures_total",
    "Declined, errored or timed out gateway charges",
)

# Reconciliation metrics
reconciliation_runs_counter = Counter(
    "reconciliation_runs_total",
    "Reconciliation sweeps executed",
)

reconciliation_items_counter = Counter(
    "reconciliation_items_total",
    "Installments handled by reconciliation",
    ["outcome"],  # succeeded | failed
)

orphan_installments_counter = Counter(
    "orphan_installments_total",
    "Due installments whose payment is missing",
)

stale_failed_installments_counter = Counter(
    "stale_failed_installments_total",
    "Failed installments past retention found by housekeeping",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_charge(outcome: str) -> None:
    """Record one charge attempt"""
    charge_counter.labels(outcome=outcome).inc()


def record_reconciliation(report: ReconciliationReport) -> None:
    """Record sweep totals for alerting on failure spikes"""
    reconciliation_runs_counter.inc()
    reconciliation_items_counter.labels(outcome="succeeded").inc(report.succeeded)
    reconciliation_items_counter.labels(outcome="failed").inc(report.failed)
