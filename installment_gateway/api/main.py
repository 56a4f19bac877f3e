"""FastAPI application factory"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Callable

from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from sqlalchemy.orm import Session
from starlette.responses import Response

from installment_gateway.api.middleware import RequestIDMiddleware, MetricsMiddleware
from installment_gateway.api.v1 import payments, installments, jobs
from installment_gateway.domain.ports import GatewayClient
from installment_gateway.infrastructure.clients.gateway import HttpGatewayClient
from installment_gateway.infrastructure.database.session import SessionLocal, init_db
from installment_gateway.infrastructure.jobs import build_scheduler
from installment_gateway.infrastructure.observability.logging import setup_logging
from installment_gateway.config import settings

# Setup structured logging
setup_logging(settings.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Create tables and run the recurring jobs for the lifetime of the app"""
    init_db()
    if settings.scheduler_enabled:
        await app.state.scheduler.start()
        logging.info("Background jobs started")

    yield

    await app.state.scheduler.stop()
    logging.info("Background jobs stopped")


def create_app(
    session_factory: Callable[[], Session] = SessionLocal,
    gateway: GatewayClient | None = None,
) -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Installment Gateway",
        description="Full and installment payments with scheduled reconciliation",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.gateway = gateway or HttpGatewayClient()
    app.state.scheduler = build_scheduler(session_factory, app.state.gateway)

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # Health check endpoint
    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(payments.router, prefix="/v1", tags=["payments"])
    app.include_router(installments.router, prefix="/v1", tags=["installments"])
    app.include_router(jobs.router, prefix="/v1", tags=["jobs"])

    return app


app = create_app()
