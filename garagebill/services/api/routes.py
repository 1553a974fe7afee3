"""HTTP surface for estimates and billing payments.

Handlers stay thin: decode the request, call the estimate engine or the payment
orchestrator held on `app.state`, and serialize. `BillingError` subclasses are
turned into `{code, message}` bodies by one exception handler.
"""

from time import perf_counter
from uuid import uuid4

from fastapi import APIRouter, FastAPI, Header, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from garagebill.common.config import BillingSettings
from garagebill.common.errors import BillingError, InvalidOrderIDError
from garagebill.common.logging import estimate_id_ctx, logger, payment_id_ctx, trace_id_ctx
from garagebill.common.metrics import http_request_duration_seconds, http_requests_total, metrics_response
from garagebill.services.estimates.schemas import EstimateRequest, EstimateResponse, PriceUpdateRequest
from garagebill.services.estimates.service import EstimateService
from garagebill.services.payments.schemas import (
    BillingPaymentResponse,
    PaymentRequestError,
    extract_provider_payload,
)
from garagebill.services.payments.service import PaymentService


router = APIRouter(prefix="/v1")


def _error(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"code": code, "message": message})


def _estimates(request: Request) -> EstimateService:
    return request.app.state.estimate_service


def _payments(request: Request) -> PaymentService:
    return request.app.state.payment_service


def _bind_trace(x_trace_id: str | None) -> None:
    trace_id_ctx.set(x_trace_id or str(uuid4()))


@router.get("/ping")
def ping():
    return {"message": "pong"}


@router.post("/estimates", status_code=201, response_model=EstimateResponse)
async def create_estimate(req: EstimateRequest, request: Request, x_trace_id: str | None = Header(default=None)):
    """Calculate the estimate for a service order from its services and parts."""

    _bind_trace(x_trace_id)
    order_id = req.resolve_order_id()
    if not order_id:
        raise InvalidOrderIDError("Invalid request")
    price = req.resolve_price()
    if price <= 0:
        return _error(400, "INVALID_ESTIMATE_INPUT", "Invalid estimate payload")
    estimate = await _estimates(request).calculate_estimate(order_id, price)
    return EstimateResponse.from_estimate(estimate)


async def _transition(req: EstimateRequest, request: Request, action: str) -> EstimateResponse:
    order_id = req.resolve_order_id()
    if not order_id:
        raise InvalidOrderIDError("Invalid request")
    service = _estimates(request)
    updater = {
        "approve": service.approve_by_order_id,
        "reject": service.reject_by_order_id,
        "cancel": service.cancel_by_order_id,
    }[action]
    return EstimateResponse.from_estimate(await updater(order_id))


@router.patch("/estimates/approve", response_model=EstimateResponse)
async def approve_estimate(req: EstimateRequest, request: Request, x_trace_id: str | None = Header(default=None)):
    _bind_trace(x_trace_id)
    return await _transition(req, request, "approve")


@router.patch("/estimates/reject", response_model=EstimateResponse)
async def reject_estimate(req: EstimateRequest, request: Request, x_trace_id: str | None = Header(default=None)):
    _bind_trace(x_trace_id)
    return await _transition(req, request, "reject")


@router.patch("/estimates/cancel", response_model=EstimateResponse)
async def cancel_estimate(req: EstimateRequest, request: Request, x_trace_id: str | None = Header(default=None)):
    _bind_trace(x_trace_id)
    return await _transition(req, request, "cancel")


@router.get("/estimates/orders/{order_id}", response_model=EstimateResponse)
async def get_estimate_by_order(order_id: str, request: Request):
    return EstimateResponse.from_estimate(await _estimates(request).get_by_order_id(order_id))


@router.get("/estimates/{estimate_id}", response_model=EstimateResponse)
async def get_estimate(estimate_id: str, request: Request):
    return EstimateResponse.from_estimate(await _estimates(request).get_by_id(estimate_id))


@router.patch("/estimates/{estimate_id}/price", response_model=EstimateResponse)
async def update_estimate_price(
    estimate_id: str,
    req: PriceUpdateRequest,
    request: Request,
    x_trace_id: str | None = Header(default=None),
):
    """Recalculate the estimate total."""

    _bind_trace(x_trace_id)
    return EstimateResponse.from_estimate(await _estimates(request).update_price(estimate_id, req.price))


@router.post("/payments/{estimate_id}", response_model=BillingPaymentResponse)
async def create_payment(estimate_id: str, request: Request, x_trace_id: str | None = Header(default=None)):
    """Create and approve a payment for an approved estimate.

    The body is the Mercado Pago payment request, optionally wrapped as
    `{"mp_payload": {...}}`.
    """

    _bind_trace(x_trace_id)
    estimate_id_ctx.set(estimate_id)
    service = _payments(request)
    body = await request.body()
    try:
        provider_payload = extract_provider_payload(body)
    except PaymentRequestError as exc:
        if not service.settings.mock_mode:
            logger.info("invalid payment body estimate_id=%s error=%s", estimate_id, exc)
            return _error(400, "INVALID_REQUEST", "Invalid request")
        logger.info("invalid payment body in mock mode; using empty payload estimate_id=%s", estimate_id)
        provider_payload = b"{}"
    payment = await service.create_and_approve(estimate_id, provider_payload)
    return BillingPaymentResponse.from_payment(payment)


@router.get("/payments/id/{payment_id}", response_model=BillingPaymentResponse)
async def get_payment(payment_id: str, request: Request):
    payment_id_ctx.set(payment_id)
    return BillingPaymentResponse.from_payment(await _payments(request).get_by_id(payment_id))


@router.get("/payments/{estimate_id}", response_model=BillingPaymentResponse)
async def get_latest_payment(estimate_id: str, request: Request):
    """Most recent payment recorded for an estimate."""

    return BillingPaymentResponse.from_payment(await _payments(request).latest_by_estimate_id(estimate_id))


@router.get("/payments/{estimate_id}/history", response_model=list[BillingPaymentResponse])
async def list_payments(estimate_id: str, request: Request):
    payments = await _payments(request).list_by_estimate_id(estimate_id)
    return [BillingPaymentResponse.from_payment(p) for p in payments]


async def billing_error_handler(_: Request, exc: BillingError) -> JSONResponse:
    return _error(exc.http_status, exc.code, exc.message)


async def validation_error_handler(_: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info("request validation failed errors=%s", exc.errors())
    return _error(400, "INVALID_ESTIMATE_INPUT", "Invalid estimate payload")


async def unhandled_error_handler(_: Request, exc: Exception) -> JSONResponse:
    logger.error("unhandled error: %s", exc, exc_info=exc)
    return _error(500, "INTERNAL_ERROR", "An internal error occurred")


def create_app(
    estimate_service: EstimateService,
    payment_service: PaymentService,
    settings: BillingSettings,
    lifespan=None,
) -> FastAPI:
    """Assemble the billing API around already-built services."""

    app = FastAPI(title="Garage Billing Service", lifespan=lifespan)
    app.state.estimate_service = estimate_service
    app.state.payment_service = payment_service
    app.include_router(router)
    app.add_exception_handler(BillingError, billing_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    @app.middleware("http")
    async def metrics_middleware(request: Request, call_next):
        """Record request count and latency for every HTTP call."""

        start = perf_counter()
        route = request.url.path
        method = request.method
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            route_obj = request.scope.get("route")
            if route_obj is not None and getattr(route_obj, "path", None):
                route = route_obj.path
            return response
        finally:
            elapsed = max(0.0, perf_counter() - start)
            http_request_duration_seconds.labels(
                service=settings.service_name,
                route=route,
                method=method,
            ).observe(elapsed)
            http_requests_total.labels(
                service=settings.service_name,
                route=route,
                method=method,
                status_code=str(status_code),
            ).inc()

    @app.get("/metrics")
    def metrics():
        """Prometheus scrape endpoint."""

        return metrics_response()

    @app.get("/health")
    def health():
        """Container health probe endpoint."""

        return {"ok": True}

    return app
