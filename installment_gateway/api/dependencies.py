"""Dependency injection for FastAPI endpoints"""

from fastapi import Depends, Request
from sqlalchemy.orm import Session
from installment_gateway.domain.ports import GatewayClient
from installment_gateway.infrastructure.database.repositories import PaymentRepository
from installment_gateway.infrastructure.database.session import get_db
from installment_gateway.infrastructure.scheduler import JobScheduler
from installment_gateway.services.payments import PaymentService


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_gateway_client(request: Request) -> GatewayClient:
    """Gateway client shared by request handlers and the scheduler"""
    return request.app.state.gateway


def get_payment_service(
    db: Session = Depends(get_db),
    gateway: GatewayClient = Depends(get_gateway_client),
) -> PaymentService:
    """Provide payment orchestrator bound to the request session"""
    return PaymentService(PaymentRepository(db), gateway)


def get_scheduler(request: Request) -> JobScheduler:
    """Scheduler owned by the application"""
    return request.app.state.scheduler
