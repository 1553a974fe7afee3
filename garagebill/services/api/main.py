"""Billing service process entrypoint.

Wires settings, logging, tracing, the SQLAlchemy stores, the Mercado Pago
gateway and both services into the FastAPI app. Run with
`uvicorn garagebill.services.api.main:app`.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from garagebill.common.config import settings
from garagebill.common.db import SessionLocal, engine
from garagebill.common.logging import configure_logging, logger
from garagebill.common.startup import log_startup_config
from garagebill.common.tracing import instrument_app, setup_tracing
from garagebill.services.api.routes import create_app
from garagebill.services.estimates.repository import EstimateRepository
from garagebill.services.estimates.service import EstimateService
from garagebill.services.payments.gateway import build_gateway
from garagebill.services.payments.repository import PaymentRepository
from garagebill.services.payments.service import PaymentService

configure_logging()
setup_tracing(settings.service_name)
log_startup_config(
    settings.service_name,
    [
        "SERVICE_NAME",
        "POSTGRES_DSN",
        "PAYMENT_GATEWAY_MOCK",
        "MERCADOPAGO_MOCK",
        "MERCADOPAGO_ACCESS_TOKEN",
        "MERCADOPAGO_TEST_PAYER_EMAIL",
        "MERCADOPAGO_TEST_PAYER_USER_ID",
    ],
)

estimate_repository = EstimateRepository(SessionLocal)
estimate_service = EstimateService(estimate_repository, service_name=settings.service_name)
payment_service = PaymentService(
    PaymentRepository(SessionLocal),
    estimate_repository,
    build_gateway(settings),
    settings,
    service_name=settings.service_name,
)


@asynccontextmanager
async def lifespan(_: FastAPI):
    """Log the effective payment mode and release DB connections on shutdown."""

    logger.info("billing service started mock_mode=%s sandbox=%s", settings.mock_mode, settings.sandbox_credential)
    yield
    engine.dispose()


app = create_app(estimate_service, payment_service, settings, lifespan=lifespan)
instrument_app(app)
