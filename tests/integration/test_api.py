"""Integration tests for API endpoints"""

import pytest
from datetime import date, timedelta
from fastapi.testclient import TestClient
from installment_gateway.domain.models import (
    CustomerIdentity,
    Installment,
    InstallmentStatus,
    Payment,
    PaymentType,
)


def _payment_body(**overrides) -> dict:
    body = {
        "amount_cents": 30000,
        "payment_type": "installment",
        "installment_count": 3,
        "customer_info": {"name": "Ada Lovelace", "email": "ada@example.com", "phone": "+15550100"},
    }
    body.update(overrides)
    return body


def test_health_endpoint(client: TestClient):
    """Test health check endpoint"""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_metrics_endpoint(client: TestClient):
    """Test Prometheus metrics endpoint"""
    client.post("/v1/payments", json=_payment_body(payment_type="full", installment_count=None, amount_cents=500))

    response = client.get("/metrics")
    assert response.status_code == 200
    assert "installment_payment_submitted_total" in response.text
    assert "gateway_latency_seconds" in response.text


def test_request_id_is_propagated(client: TestClient):
    response = client.get("/health", headers={"X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"


def test_full_payment(client: TestClient):
    response = client.post(
        "/v1/payments",
        json=_payment_body(payment_type="full", installment_count=None, amount_cents=500),
    )

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["payment_id"]
    assert data["transaction_details"]["amount_cents"] == 500

    payment = client.get(f"/v1/payments/{data['payment_id']}").json()
    assert payment["status"] == "completed"
    assert payment["payment_type"] == "full"


def test_installment_payment_and_schedule(client: TestClient):
    response = client.post("/v1/payments", json=_payment_body())

    assert response.status_code == 200
    data = response.json()
    details = data["transaction_details"]
    assert details["amount_cents"] == 10000
    assert details["installment_count"] == 3
    assert details["next_payment_date"] is not None

    schedule = client.get(f"/v1/payments/{data['payment_id']}/installments").json()
    installments = schedule["installments"]
    assert [i["sequence"] for i in installments] == [1, 2, 3]
    assert sum(i["amount_cents"] for i in installments) == 30000
    assert installments[0]["status"] == "paid"
    assert installments[0]["transaction_id"]
    assert installments[1]["status"] == "pending"

    payment = client.get(f"/v1/payments/{data['payment_id']}").json()
    assert payment["status"] == "pending"
    assert payment["installment_count"] == 3


def test_gateway_failure_returns_402_with_payment_id(client: TestClient, gateway):
    gateway.always_fail = True

    response = client.post("/v1/payments", json=_payment_body())

    assert response.status_code == 402
    detail = response.json()["detail"]
    assert detail["success"] is False
    assert detail["message"] == "Card declined"

    payment = client.get(f"/v1/payments/{detail['payment_id']}").json()
    assert payment["status"] == "pending"


@pytest.mark.parametrize(
    "overrides, status_code",
    [
        ({"amount_cents": 0}, 422),
        ({"payment_type": "layaway"}, 422),
        ({"customer_info": {"name": "", "email": "ada@example.com"}}, 422),
        ({"installment_count": 5}, 400),
        ({"installment_count": None}, 400),
        ({"down_payment_cents": 30000}, 400),
        ({"payment_type": "full", "installment_count": 3}, 400),
    ],
)
def test_invalid_payment_requests(client: TestClient, gateway, overrides, status_code):
    response = client.post("/v1/payments", json=_payment_body(**overrides))

    assert response.status_code == status_code
    assert gateway.calls == []


def test_unknown_payment_returns_404(client: TestClient):
    assert client.get("/v1/payments/does-not-exist").status_code == 404
    assert client.get("/v1/payments/does-not-exist/installments").status_code == 404


def test_reset_failed_installment(client: TestClient, gateway):
    gateway.always_fail = True
    payment_id = client.post("/v1/payments", json=_payment_body()).json()["detail"]["payment_id"]
    first = client.get(f"/v1/payments/{payment_id}/installments").json()["installments"][0]
    assert first["status"] == "failed"

    response = client.post(f"/v1/installments/{first['installment_id']}/reset")
    assert response.status_code == 200
    assert response.json()["status"] == "pending"

    again = client.post(f"/v1/installments/{first['installment_id']}/reset")
    assert again.status_code == 409
    assert client.post("/v1/installments/missing/reset").status_code == 404


def test_job_status(client: TestClient):
    response = client.get("/v1/jobs")

    assert response.status_code == 200
    names = {job["name"] for job in response.json()["jobs"]}
    assert names == {"process-installments", "cleanup-failed-installments"}
    crons = {job["name"]: job["cron"] for job in response.json()["jobs"]}
    assert crons == {"process-installments": "0 9 * * *", "cleanup-failed-installments": "0 2 * * 0"}


def test_manual_reconciliation_run(client: TestClient, store, gateway):
    yesterday = date.today() - timedelta(days=1)
    for n in range(3):
        store.create_payment(
            Payment(
                id=f"pay-{n}",
                customer=CustomerIdentity(name="Grace Hopper", email=f"grace{n}@example.com"),
                total_cents=1000,
                payment_type=PaymentType.INSTALLMENT,
                installment_count=3,
            ),
            [
                Installment(
                    id=f"pay-{n}-inst-1",
                    payment_id=f"pay-{n}",
                    sequence=1,
                    amount_cents=1000,
                    due_date=yesterday,
                    status=InstallmentStatus.PENDING,
                )
            ],
        )
    gateway.fail_emails.add("grace1@example.com")

    response = client.post("/v1/jobs/process-installments/run")

    assert response.status_code == 200
    report = response.json()
    assert report["total"] == 3
    assert report["succeeded"] == 2
    assert report["failed"] == 1
    failed = [item for item in report["items"] if not item["success"]]
    assert [item["installment_id"] for item in failed] == ["pay-1-inst-1"]

    statuses = [i["status"] for i in client.get("/v1/payments/pay-1/installments").json()["installments"]]
    assert statuses == ["failed"]


def test_request_handlers_and_scheduler_share_injected_gateway(client: TestClient, gateway):
    assert client.app.state.gateway is gateway

    response = client.post("/v1/payments", json=_payment_body())

    assert response.status_code == 200
    assert [call[1] for call in gateway.calls] == ["ada@example.com"]
