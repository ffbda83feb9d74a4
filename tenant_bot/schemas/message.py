from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class InboundMessage(BaseModel):
    tenant_id: str = Field(..., description="Tenant whose bot received the message")
    customer_id: str = Field(..., description="Sender phone number or WhatsApp JID")
    text: str = Field(default="", description="Plain text body")
    timestamp: Optional[datetime] = None


class MessageReply(BaseModel):
    reply: Optional[str] = None
    state: str
    order_id: Optional[str] = None
    rate_limited: bool = False
    source: str = "booking"
