from __future__ import annotations

import logging
import re
import uuid
from datetime import UTC, datetime
from typing import Callable, List, Optional

from tenant_bot.schemas.knowledge import (
    FAQ,
    AIPersona,
    BusinessInfo,
    CatalogItem,
    CatalogItemUpdate,
    KnowledgeBase,
    MenuOption,
)
from tenant_bot.schemas.tenant import Tenant
from tenant_bot.services.catalog import get_category
from tenant_bot.services.pricing import format_price, price_range

logger = logging.getLogger(__name__)

_SLUG_PATTERN = re.compile(r"[^a-z0-9]+")


class KnowledgeBaseNotFoundError(LookupError):
    pass


class DuplicateItemError(ValueError):
    pass


class ItemNotFoundError(LookupError):
    pass


def resolve_menu(knowledge: KnowledgeBase) -> List[MenuOption]:
    """Explicit tenant menu, or the category default when none is configured."""
    if knowledge.menu:
        return list(knowledge.menu)
    return get_category(knowledge.business_type).default_menu()


def _slugify(name: str) -> str:
    slug = _SLUG_PATTERN.sub("-", name.lower()).strip("-")
    return slug or uuid.uuid4().hex[:8]


class KnowledgeBaseStore:
    """One knowledge base document per tenant, keyed by ``tenant_id``."""

    def __init__(self, collection, clock: Callable[[], datetime] = lambda: datetime.now(UTC)) -> None:
        self._collection = collection
        self._clock = clock

    def default_for(self, tenant: Tenant, business_info: Optional[BusinessInfo] = None) -> KnowledgeBase:
        category = get_category(tenant.business_type)
        info = business_info or BusinessInfo(name=tenant.company_name, phone=tenant.admin_contact)
        return KnowledgeBase(
            tenant_id=tenant.id,
            business_type=tenant.business_type,
            business_info=info,
            sections={section.key: [] for section in category.sections},
            ai=AIPersona(bot_name=tenant.bot_name or category.default_bot_name),
            updated_at=self._clock(),
        )

    def initialize(self, tenant: Tenant, business_info: Optional[BusinessInfo] = None) -> KnowledgeBase:
        knowledge = self.default_for(tenant, business_info)
        self.save(knowledge)
        logger.info("Initialized knowledge base for tenant %s", tenant.id)
        return knowledge

    def get(self, tenant_id: str) -> Optional[KnowledgeBase]:
        document = self._collection.find_one({"tenant_id": tenant_id})
        if not document:
            return None
        return KnowledgeBase.model_validate({key: value for key, value in document.items() if key != "_id"})

    def get_or_default(self, tenant: Tenant) -> KnowledgeBase:
        return self.get(tenant.id) or self.default_for(tenant)

    def require(self, tenant_id: str) -> KnowledgeBase:
        knowledge = self.get(tenant_id)
        if knowledge is None:
            raise KnowledgeBaseNotFoundError(f"No knowledge base for tenant {tenant_id}")
        return knowledge

    def save(self, knowledge: KnowledgeBase) -> KnowledgeBase:
        for section, items in knowledge.sections.items():
            ids = [item.id for item in items]
            if len(ids) != len(set(ids)):
                raise DuplicateItemError(f"Duplicate item ids in section {section}")
        stamped = knowledge.model_copy(update={"updated_at": self._clock()})
        self._collection.replace_one(
            {"tenant_id": knowledge.tenant_id},
            stamped.model_dump(mode="json"),
            upsert=True,
        )
        return stamped

    def update_business_info(self, tenant_id: str, info: BusinessInfo) -> KnowledgeBase:
        knowledge = self.require(tenant_id)
        return self.save(knowledge.model_copy(update={"business_info": info}))

    def add_item(self, tenant_id: str, section: str, item: CatalogItem) -> CatalogItem:
        knowledge = self.require(tenant_id)
        items = list(knowledge.sections.get(section, []))
        existing = {entry.id for entry in items}
        item_id = item.id or _slugify(item.name)
        if not item.id:
            base, counter = item_id, 2
            while item_id in existing:
                item_id = f"{base}-{counter}"
                counter += 1
        elif item_id in existing:
            raise DuplicateItemError(f"Item {item_id} already exists in {section}")
        created = item.model_copy(update={"id": item_id})
        items.append(created)
        sections = {**knowledge.sections, section: items}
        self.save(knowledge.model_copy(update={"sections": sections}))
        return created

    def update_item(self, tenant_id: str, section: str, item_id: str, changes: CatalogItemUpdate) -> CatalogItem:
        knowledge = self.require(tenant_id)
        items = list(knowledge.sections.get(section, []))
        for index, entry in enumerate(items):
            if entry.id == item_id:
                updated = entry.model_copy(update=changes.model_dump(exclude_unset=True, exclude_none=True))
                items[index] = CatalogItem.model_validate(updated.model_dump())
                sections = {**knowledge.sections, section: items}
                self.save(knowledge.model_copy(update={"sections": sections}))
                return items[index]
        raise ItemNotFoundError(f"Item {item_id} not found in {section}")

    def remove_item(self, tenant_id: str, section: str, item_id: str) -> None:
        knowledge = self.require(tenant_id)
        items = knowledge.sections.get(section, [])
        remaining = [entry for entry in items if entry.id != item_id]
        if len(remaining) == len(items):
            raise ItemNotFoundError(f"Item {item_id} not found in {section}")
        sections = {**knowledge.sections, section: remaining}
        self.save(knowledge.model_copy(update={"sections": sections}))

    def add_faq(self, tenant_id: str, question: str, answer: str) -> FAQ:
        knowledge = self.require(tenant_id)
        faq = FAQ(id=f"faq-{uuid.uuid4().hex[:8]}", question=question.strip(), answer=answer.strip())
        self.save(knowledge.model_copy(update={"faqs": [*knowledge.faqs, faq]}))
        return faq

    def delete(self, tenant_id: str) -> None:
        self._collection.delete_one({"tenant_id": tenant_id})


def describe_item_price(item: CatalogItem, currency: str, language: str = "en", area: Optional[str] = None) -> str:
    """Short price text for list rendering: fixed price, single tier or "from" the cheapest tier."""
    if item.price is not None:
        return format_price(item.price, currency)
    bounds = price_range(item.pricing_for(area))
    if bounds is None:
        return "?"
    low, high = bounds
    if low == high:
        return format_price(low, currency)
    prefix = "kuanzia" if language == "sw" else "from"
    return f"{prefix} {format_price(low, currency)}"
