"""API request/response schemas for estimate endpoints."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from garagebill.services.estimates.models import Estimate


class ServiceItem(BaseModel):
    id: str = ""
    name: str = ""
    description: str = ""
    price: Decimal = Decimal("0")


class PartsSupplyItem(BaseModel):
    id: str = ""
    name: str = ""
    description: str = ""
    price: Decimal = Decimal("0")
    quantity: int = 0


class EstimateRequest(BaseModel):
    """Payload sent by the service-order API for estimate create/transition calls."""

    additional_repair_id: str = ""
    service_order_id: str
    services: list[ServiceItem] = Field(default_factory=list)
    parts_supplies: list[PartsSupplyItem] = Field(default_factory=list)

    def resolve_order_id(self) -> str:
        return self.service_order_id.strip()

    def resolve_price(self) -> Decimal:
        """Sum services and parts, skipping non-positive prices and quantities."""

        total = sum((s.price for s in self.services if s.price > 0), Decimal("0"))
        total += sum(
            (p.price * p.quantity for p in self.parts_supplies if p.price > 0 and p.quantity > 0),
            Decimal("0"),
        )
        return total


class PriceUpdateRequest(BaseModel):
    price: Decimal


class EstimateResponse(BaseModel):
    """Estimate view; `id`/`os_id` mirror the canonical names for older clients."""

    estimate_id: str
    id: str
    service_order_id: str
    os_id: str
    price: float
    status: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_estimate(cls, estimate: Estimate) -> "EstimateResponse":
        return cls(
            estimate_id=estimate.estimate_id,
            id=estimate.estimate_id,
            service_order_id=estimate.order_id,
            os_id=estimate.order_id,
            price=float(estimate.price),
            status=estimate.status,
            created_at=estimate.created_at,
            updated_at=estimate.updated_at,
        )
