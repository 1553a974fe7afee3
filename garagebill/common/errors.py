"""Billing domain exceptions.

Every error the estimate engine and payment orchestrator raise on purpose
derives from `BillingError`; the HTTP layer maps `code`/`http_status` straight
into the response. Anything else is an opaque internal failure.
"""


class BillingError(Exception):
    """Base exception for billing domain errors."""

    code = "INTERNAL_ERROR"
    http_status = 500
    default_message = "An internal error occurred"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidOrderIDError(BillingError):
    """Blank service-order identifier."""

    code = "INVALID_REQUEST"
    http_status = 400
    default_message = "invalid os_id"


class InvalidEstimateIDError(BillingError):
    code = "INVALID_REQUEST"
    http_status = 400
    default_message = "invalid estimate_id"


class InvalidEstimateValueError(BillingError):
    """Estimate price must be strictly positive."""

    code = "INVALID_REQUEST"
    http_status = 400
    default_message = "invalid estimate value"


class InvalidPaymentIDError(BillingError):
    code = "INVALID_REQUEST"
    http_status = 400
    default_message = "invalid payment id"


class InvalidPayloadError(BillingError):
    """Payment request body is empty, not JSON, or misses method/payer."""

    code = "INVALID_REQUEST"
    http_status = 400
    default_message = "invalid mercado pago payload"


class EstimateAlreadyExistsError(BillingError):
    code = "ESTIMATE_ALREADY_EXISTS"
    http_status = 409
    default_message = "estimate already exists"


class EstimateNotFoundError(BillingError):
    code = "ESTIMATE_NOT_FOUND"
    http_status = 404
    default_message = "estimate not found"


class EstimateNotApprovedError(BillingError):
    code = "ESTIMATE_NOT_APPROVED"
    http_status = 409
    default_message = "estimate not approved"


class PaymentNotFoundError(BillingError):
    code = "PAYMENT_NOT_FOUND"
    http_status = 404
    default_message = "billing payment not found"


class UnconfiguredError(BillingError):
    """A required collaborator (gateway or estimate store) is not wired."""

    code = "SERVICE_UNCONFIGURED"
    http_status = 503
    default_message = "service not configured"


class ConditionalWriteError(BillingError):
    """Insert-if-absent lost: a record with the same key already exists."""

    code = "CONFLICT"
    http_status = 409
    default_message = "conditional write failed"


class GatewayError(Exception):
    """Provider call failed; the message carries the provider response text."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class GatewayCustomerNotFoundError(BillingError):
    code = "PAYMENT_PROVIDER_CUSTOMER_NOT_FOUND"
    http_status = 400
    default_message = "Payer not found for this Mercado Pago test context"


class GatewayInvalidUsersError(BillingError):
    code = "PAYMENT_PROVIDER_INVALID_USERS"
    http_status = 400
    default_message = "Invalid users involved between seller token and payer test user"


class GatewayUnauthorizedError(BillingError):
    code = "PAYMENT_PROVIDER_UNAUTHORIZED"
    http_status = 401
    default_message = "Payment provider unauthorized"


class GatewayBadRequestError(BillingError):
    code = "INVALID_REQUEST"
    http_status = 400
    default_message = "payment gateway bad request"
