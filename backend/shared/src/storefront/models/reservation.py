"""Inventory reservation model."""

from datetime import datetime

from pydantic import BaseModel, Field

from .enums import ReservationStatus


class ReservedItem(BaseModel):
    """Quantity of one product held by a reservation."""

    product_id: str
    quantity: int = Field(..., ge=1)


class Reservation(BaseModel):
    """A tentative stock hold created at checkout.

    Settled exactly once: finalized when payment is captured, restored
    when payment fails.
    """

    reservation_id: str = Field(..., description="Reservation ID (RSV-...)")
    order_id: str
    items: list[ReservedItem]
    status: ReservationStatus = ReservationStatus.HELD
    created_at: datetime
    settled_at: datetime | None = None
