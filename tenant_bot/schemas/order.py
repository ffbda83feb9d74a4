from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel, Field, model_validator


class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (OrderStatus.COMPLETED, OrderStatus.CANCELLED)


class NewOrder(BaseModel):
    """Snapshot of a finalized booking draft before the ledger assigns an id."""

    tenant_id: str
    customer_id: str
    order_type: str = "booking"
    offering_id: Optional[str] = None
    offering_name: str
    party_size: int = Field(..., ge=1)
    unit_price: Decimal
    total_price: Decimal
    currency: str = "USD"
    date: str
    pickup: Optional[str] = None

    @model_validator(mode="after")
    def check_total(self) -> "NewOrder":
        if self.total_price != self.unit_price * self.party_size:
            raise ValueError("total_price must equal unit_price * party_size")
        return self


class Order(NewOrder):
    id: str
    status: OrderStatus = OrderStatus.PENDING
    created_at: datetime
    updated_at: datetime
    status_timestamps: Dict[OrderStatus, datetime] = Field(default_factory=dict)
    cancel_reason: Optional[str] = None

    @property
    def completed_at(self) -> Optional[datetime]:
        return self.status_timestamps.get(OrderStatus.COMPLETED)

    @property
    def cancelled_at(self) -> Optional[datetime]:
        return self.status_timestamps.get(OrderStatus.CANCELLED)


class StatusUpdate(BaseModel):
    status: OrderStatus
    reason: Optional[str] = None


class OrderStats(BaseModel):
    tenant_id: str
    total: int = 0
    by_status: Dict[OrderStatus, int] = Field(default_factory=lambda: {status: 0 for status in OrderStatus})
    today: int = 0
    this_week: int = 0
    this_month: int = 0
    revenue_total: Decimal = Decimal("0")
    revenue_this_month: Decimal = Decimal("0")
