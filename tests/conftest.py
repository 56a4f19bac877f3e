"""Pytest fixtures for testing"""

import asyncio
import pytest
from typing import Callable, Generator, Optional, Set
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from installment_gateway.api.main import create_app
from installment_gateway.infrastructure.database.models import Base
from installment_gateway.infrastructure.database.repositories import PaymentRepository
from installment_gateway.infrastructure.database.session import get_db
from installment_gateway.domain.models import (
    ChargeResult,
    CustomerIdentity,
    PaymentRequest,
    PaymentType,
)
from installment_gateway.services.payments import PaymentService, KeyedLocks


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class StubGatewayClient:
    """
    Deterministic gateway double.

    Succeeds unless the reference id or customer email is configured to
    fail; can also raise or stall to exercise timeouts.
    """

    def __init__(
        self,
        always_fail: bool = False,
        fail_references: Optional[Set[str]] = None,
        fail_emails: Optional[Set[str]] = None,
        delay: float = 0.0,
        error: Optional[Exception] = None,
        should_fail: Optional[Callable[[str], bool]] = None,
    ):
        self.always_fail = always_fail
        self.fail_references = fail_references if fail_references is not None else set()
        self.fail_emails = fail_emails if fail_emails is not None else set()
        self.delay = delay
        self.error = error
        self.should_fail = should_fail
        self.calls: list[tuple[int, str, str]] = []

    async def charge(self, amount_cents: int, customer: CustomerIdentity, reference_id: str) -> ChargeResult:
        self.calls.append((amount_cents, customer.email, reference_id))
        # Yield to the loop so concurrent callers genuinely interleave
        await asyncio.sleep(self.delay)

        if self.error is not None:
            raise self.error

        failing = (
            self.always_fail
            or reference_id in self.fail_references
            or customer.email in self.fail_emails
            or (self.should_fail is not None and self.should_fail(reference_id))
        )
        if failing:
            return ChargeResult(
                success=False,
                transaction_id="",
                amount_cents=amount_cents,
                status="failed",
                message="Card declined",
            )

        return ChargeResult(
            success=True,
            transaction_id=f"txn_{len(self.calls):04d}",
            amount_cents=amount_cents,
            status="success",
            message="Payment processed successfully",
        )


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def store(db: Session) -> PaymentRepository:
    return PaymentRepository(db)


@pytest.fixture
def gateway() -> StubGatewayClient:
    return StubGatewayClient()


@pytest.fixture
def service(store: PaymentRepository, gateway: StubGatewayClient) -> PaymentService:
    """Payment orchestrator over the test database and stub gateway"""
    return PaymentService(store, gateway, timeout=1.0, locks=KeyedLocks())


@pytest.fixture
def customer() -> CustomerIdentity:
    return CustomerIdentity(name="Ada Lovelace", email="ada@example.com", phone="+15550100")


@pytest.fixture
def make_request(customer: CustomerIdentity) -> Callable[..., PaymentRequest]:
    """Build payment requests with sensible defaults"""

    def _make(
        total_cents: int = 30000,
        payment_type: PaymentType = PaymentType.INSTALLMENT,
        installment_count: Optional[int] = 3,
        down_payment_cents: int = 0,
    ) -> PaymentRequest:
        return PaymentRequest(
            total_cents=total_cents,
            payment_type=payment_type,
            installment_count=installment_count if payment_type is PaymentType.INSTALLMENT else None,
            down_payment_cents=down_payment_cents,
            customer=customer,
        )

    return _make


@pytest.fixture
def client(db: Session, gateway: StubGatewayClient) -> TestClient:
    """Create FastAPI test client with test database and stub gateway"""
    app = create_app(session_factory=TestingSessionLocal, gateway=gateway)

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    return TestClient(app)


@pytest.fixture
def make_service(store: PaymentRepository) -> Callable[..., PaymentService]:
    """Payment orchestrator over a stub gateway configured per test"""

    def _make(timeout: float = 1.0, **gateway_options) -> PaymentService:
        return PaymentService(store, StubGatewayClient(**gateway_options), timeout=timeout, locks=KeyedLocks())

    return _make
