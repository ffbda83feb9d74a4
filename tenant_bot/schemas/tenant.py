from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class BusinessType(str, Enum):
    TOURISM = "tourism"
    HOTEL = "hotel"
    RESTAURANT = "restaurant"
    SALON = "salon"
    RETAIL = "retail"
    HEALTHCARE = "healthcare"
    FITNESS = "fitness"
    EDUCATION = "education"
    TRANSPORT = "transport"
    EVENTS = "events"
    SERVICES = "services"
    REAL_ESTATE = "real_estate"
    OTHER = "other"

    @classmethod
    def from_value(cls, value: object) -> "BusinessType":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.OTHER


class Tenant(BaseModel):
    id: str = Field(..., description="Immutable tenant identifier")
    company_name: str
    business_type: BusinessType = BusinessType.OTHER
    admin_contact: str = Field(..., description="Phone number that receives booking notifications")
    bot_name: str = ""
    language: str = "en"
    custom_instructions: str = ""
    is_active: bool = True
    created_at: datetime
    updated_at: datetime
    total_messages: int = 0
    total_bookings: int = 0

    @field_validator("business_type", mode="before")
    @classmethod
    def normalize_business_type(cls, value: object) -> BusinessType:
        return BusinessType.from_value(value)


class TenantCreate(BaseModel):
    company_name: str = Field(..., min_length=1)
    business_type: BusinessType = BusinessType.OTHER
    admin_contact: str = Field(..., min_length=3)
    bot_name: Optional[str] = None
    language: str = "en"
    custom_instructions: str = ""

    @field_validator("business_type", mode="before")
    @classmethod
    def normalize_business_type(cls, value: object) -> BusinessType:
        return BusinessType.from_value(value)


class TenantUpdate(BaseModel):
    company_name: Optional[str] = None
    business_type: Optional[BusinessType] = None
    admin_contact: Optional[str] = None
    bot_name: Optional[str] = None
    language: Optional[str] = None
    custom_instructions: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("business_type", mode="before")
    @classmethod
    def normalize_business_type(cls, value: object) -> Optional[BusinessType]:
        if value is None:
            return None
        return BusinessType.from_value(value)


class TenantStats(BaseModel):
    tenant_id: str
    company_name: str
    business_type: BusinessType
    is_active: bool
    total_messages: int
    total_bookings: int
    active_sessions: int = 0
