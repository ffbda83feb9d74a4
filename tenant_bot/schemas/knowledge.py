from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from tenant_bot.schemas.tenant import BusinessType

WEEKDAYS = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]


def _stringify_keys(value: Any) -> Any:
    if isinstance(value, dict):
        return {str(key): price for key, price in value.items()}
    return value


class LocalizedText(BaseModel):
    en: str
    sw: str = ""

    @model_validator(mode="before")
    @classmethod
    def accept_plain_string(cls, value: Any) -> Any:
        if isinstance(value, str):
            return {"en": value}
        return value

    def get(self, language: str) -> str:
        if language == "sw" and self.sw:
            return self.sw
        return self.en


class MenuKind(str, Enum):
    OFFERINGS = "offerings"
    PACKAGES = "packages"
    CHAT = "chat"


class MenuOption(BaseModel):
    label: LocalizedText
    kind: MenuKind = MenuKind.OFFERINGS
    section: Optional[str] = None
    icon: str = ""
    requires_pickup: bool = False

    @model_validator(mode="after")
    def check_section(self) -> "MenuOption":
        if self.kind != MenuKind.CHAT and not self.section:
            raise ValueError("Menu options that list items need a section")
        return self


class PickupOption(BaseModel):
    area: str = Field(..., description="Pricing variant key used by catalog items")
    label: LocalizedText
    area_label: Optional[LocalizedText] = None

    def display_area(self, language: str) -> str:
        return (self.area_label or self.label).get(language)


class CatalogItem(BaseModel):
    id: str = ""
    name: str
    description: str = ""
    emoji: str = ""
    price: Optional[Decimal] = None
    pricing: Dict[str, Decimal] = Field(default_factory=dict)
    pickup_pricing: Dict[str, Dict[str, Decimal]] = Field(default_factory=dict)
    duration: str = ""
    highlights: List[str] = Field(default_factory=list)
    available: bool = True

    @field_validator("pricing", mode="before")
    @classmethod
    def stringify_buckets(cls, value: Any) -> Any:
        return _stringify_keys(value)

    @field_validator("pickup_pricing", mode="before")
    @classmethod
    def stringify_variant_buckets(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return {area: _stringify_keys(table) for area, table in value.items()}
        return value

    def pricing_for(self, area: Optional[str]) -> Dict[str, Decimal]:
        if area and area in self.pickup_pricing:
            return self.pickup_pricing[area]
        return self.pricing

    def has_price(self) -> bool:
        return self.price is not None or bool(self.pricing) or bool(self.pickup_pricing)


class DayHours(BaseModel):
    open: str = "09:00"
    close: str = "18:00"
    closed: bool = False


def default_hours() -> Dict[str, DayHours]:
    hours = {day: DayHours() for day in WEEKDAYS[:5]}
    hours["saturday"] = DayHours(open="09:00", close="14:00")
    hours["sunday"] = DayHours(closed=True)
    return hours


class BusinessInfo(BaseModel):
    name: str = ""
    description: str = ""
    location: str = ""
    phone: str = ""
    email: str = ""
    website: str = ""
    currency: str = "USD"
    hours: Dict[str, DayHours] = Field(default_factory=default_hours)
    languages: List[str] = Field(default_factory=lambda: ["en", "sw"])


class FAQ(BaseModel):
    id: str = ""
    question: str
    answer: str


class AIPersona(BaseModel):
    bot_name: str = ""
    personality: str = "friendly and professional"
    greeting: str = ""
    farewell: str = ""
    custom_instructions: str = ""


class KnowledgeBase(BaseModel):
    tenant_id: str
    business_type: BusinessType = BusinessType.OTHER
    business_info: BusinessInfo = Field(default_factory=BusinessInfo)
    sections: Dict[str, List[CatalogItem]] = Field(default_factory=dict)
    pickup_options: List[PickupOption] = Field(default_factory=list)
    menu: List[MenuOption] = Field(default_factory=list)
    faqs: List[FAQ] = Field(default_factory=list)
    ai: AIPersona = Field(default_factory=AIPersona)
    updated_at: Optional[datetime] = None

    @field_validator("business_type", mode="before")
    @classmethod
    def normalize_business_type(cls, value: object) -> BusinessType:
        return BusinessType.from_value(value)

    def items(self, section: Optional[str]) -> List[CatalogItem]:
        if not section:
            return []
        return [item for item in self.sections.get(section, []) if item.available]


class CatalogItemUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    emoji: Optional[str] = None
    price: Optional[Decimal] = None
    pricing: Optional[Dict[str, Decimal]] = None
    pickup_pricing: Optional[Dict[str, Dict[str, Decimal]]] = None
    duration: Optional[str] = None
    highlights: Optional[List[str]] = None
    available: Optional[bool] = None

    @field_validator("pricing", mode="before")
    @classmethod
    def stringify_buckets(cls, value: Any) -> Any:
        return _stringify_keys(value)


class FAQCreate(BaseModel):
    question: str = Field(..., min_length=1)
    answer: str = Field(..., min_length=1)
