from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional

from tenant_bot.orchestrator.states import BookingState, Route
from tenant_bot.schemas.knowledge import KnowledgeBase
from tenant_bot.schemas.order import Order
from tenant_bot.schemas.tenant import Tenant
from tenant_bot.services.sessions import Session


@dataclass
class RoutingState:
    tenant_id: str = ""
    customer_id: str = ""
    text: str = ""
    route: Route = Route.BOOKING
    tenant: Optional[Tenant] = None
    knowledge: Optional[KnowledgeBase] = None
    session: Optional[Session] = None
    reply: Optional[str] = None
    order: Optional[Order] = None
    source: str = "booking"
    booking_context: Optional[Dict[str, object]] = None


@dataclass
class RouterOutcome:
    state: BookingState
    reply: Optional[str] = None
    order: Optional[Order] = None
    rate_limited: bool = False
    source: str = "booking"
