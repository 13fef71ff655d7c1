"""FastAPI application factory"""

from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from billing_gateway.api.errors import domain_exception_handler
from billing_gateway.api.middleware import RequestIDMiddleware, MetricsMiddleware
from billing_gateway.api.v1 import clients, contracts, payments, portfolio
from billing_gateway.config import settings
from billing_gateway.domain.exceptions import DomainException
from billing_gateway.infrastructure.observability.logging import setup_logging

setup_logging(settings.log_level)


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Billing Gateway",
        description="Installment ledger, delinquency classification and client scoring",
        version="0.1.0",
    )

    # Last added runs first: request ID is set before metrics are taken
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_exception_handler(DomainException, domain_exception_handler)

    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    for router, tag in (
        (contracts.router, "contracts"),
        (payments.router, "payments"),
        (portfolio.router, "portfolio"),
        (clients.router, "clients"),
    ):
        app.include_router(router, prefix="/v1", tags=[tag])

    return app


app = create_app()
