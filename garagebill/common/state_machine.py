"""Estimate and payment status vocabularies.

Estimate transitions are permissive: approve/reject/cancel may be applied from
any current status. Payment status is derived once from the provider status
and never changes afterwards.
"""

from enum import Enum


class EstimateStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    DENIED = "denied"


ESTIMATE_ACTIONS: dict[str, EstimateStatus] = {
    "approve": EstimateStatus.APPROVED,
    "reject": EstimateStatus.REJECTED,
    "cancel": EstimateStatus.CANCELLED,
}

PROVIDER_STATUS_MAP: dict[str, PaymentStatus] = {
    "approved": PaymentStatus.APPROVED,
    "rejected": PaymentStatus.DENIED,
}


def status_for_action(action: str) -> EstimateStatus:
    """Raise when an estimate action has no target status."""

    try:
        return ESTIMATE_ACTIONS[action]
    except KeyError:
        raise ValueError(f"Unknown estimate action: {action}") from None


def payment_status_from_provider(provider_status: str) -> PaymentStatus:
    """Map a provider status string; anything unknown (e.g. `in_process`) stays pending."""

    return PROVIDER_STATUS_MAP.get(provider_status, PaymentStatus.PENDING)
