from __future__ import annotations

import copy
import uuid
from datetime import UTC, datetime
from decimal import Decimal
from types import SimpleNamespace

import pytest
from pymongo.errors import PyMongoError

from tenant_bot.orchestrator.graph import MessageRouter
from tenant_bot.schemas.knowledge import (
    BusinessInfo,
    CatalogItem,
    KnowledgeBase,
    LocalizedText,
    MenuKind,
    MenuOption,
    PickupOption,
)
from tenant_bot.schemas.tenant import BusinessType, TenantCreate
from tenant_bot.services.assistant import ResponseSelector
from tenant_bot.services.booking import BookingStateMachine
from tenant_bot.services.knowledge import KnowledgeBaseStore
from tenant_bot.services.ledger import OrderLedger
from tenant_bot.services.rate_limit import RateLimiter
from tenant_bot.services.sessions import ConversationHistoryStore, SessionStore
from tenant_bot.services.tenants import TenantRegistry

FIXED_NOW = datetime(2026, 10, 19, 9, 30, tzinfo=UTC)


class InMemoryCollection:
    """Subset of the pymongo collection API backed by a list of dicts."""

    def __init__(self) -> None:
        self.documents = []

    @staticmethod
    def _matches(document, query) -> bool:
        return all(document.get(key) == value for key, value in (query or {}).items())

    def insert_one(self, payload):
        record = copy.deepcopy(payload)
        record.setdefault("_id", str(uuid.uuid4()))
        self.documents.append(record)
        return SimpleNamespace(inserted_id=record["_id"])

    def find_one(self, query=None):
        for document in self.documents:
            if self._matches(document, query):
                return copy.deepcopy(document)
        return None

    def find(self, query=None):
        return [copy.deepcopy(document) for document in self.documents if self._matches(document, query)]

    def update_one(self, query, update, upsert=False):
        for document in self.documents:
            if self._matches(document, query):
                for key, value in update.get("$set", {}).items():
                    document[key] = copy.deepcopy(value)
                for key, value in update.get("$inc", {}).items():
                    document[key] = document.get(key, 0) + value
                return SimpleNamespace(matched_count=1, modified_count=1)
        return SimpleNamespace(matched_count=0, modified_count=0)

    def replace_one(self, query, replacement, upsert=False):
        for index, document in enumerate(self.documents):
            if self._matches(document, query):
                record = copy.deepcopy(replacement)
                record["_id"] = document["_id"]
                self.documents[index] = record
                return SimpleNamespace(matched_count=1, modified_count=1)
        if upsert:
            self.insert_one(replacement)
        return SimpleNamespace(matched_count=0, modified_count=0)

    def delete_one(self, query):
        for index, document in enumerate(self.documents):
            if self._matches(document, query):
                del self.documents[index]
                return SimpleNamespace(deleted_count=1)
        return SimpleNamespace(deleted_count=0)


class BrokenCollection(InMemoryCollection):
    def insert_one(self, payload):
        raise PyMongoError("primary unavailable")


class ManualClock:
    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingNotifier:
    def __init__(self) -> None:
        self.sent = []

    def notify(self, tenant, order):
        self.sent.append((tenant.id, order.id))
        return True


def tour_knowledge(tenant_id: str) -> KnowledgeBase:
    return KnowledgeBase(
        tenant_id=tenant_id,
        business_type=BusinessType.TOURISM,
        business_info=BusinessInfo(
            name="Zanzibar Island Tours",
            location="Stone Town, Zanzibar",
            phone="255700000001",
            currency="USD",
        ),
        sections={
            "tours": [
                CatalogItem(
                    id="safari-blue",
                    name="Safari Blue",
                    emoji="🚤",
                    description="Full-day sailing trip with snorkelling and seafood lunch.",
                    pricing={1: 100, 2: 80, 3: 70, 4: 60, "5+": 55},
                    pickup_pricing={"north_south": {1: 154, 2: 110, 3: 90, 4: 70, "5+": 60}},
                ),
                CatalogItem(
                    id="stone-town",
                    name="Stone Town Tour",
                    emoji="🏛️",
                    pricing={1: 50, 2: 35, 3: 30, 4: 27, "5+": 23},
                ),
            ],
            "packages": [
                CatalogItem(id="spice-and-beach", name="Spice & Beach Package", price=Decimal("80")),
                CatalogItem(
                    id="honeymoon",
                    name="Honeymoon Package",
                    price=Decimal("150"),
                    pricing={1: 999},
                ),
            ],
            "safaris": [
                CatalogItem(
                    id="mikumi",
                    name="Mikumi Safari",
                    emoji="🦁",
                    duration="2 days",
                    pricing={1: 530, "2-3": 480, "4-5": 475, "6+": 470},
                ),
            ],
        },
        pickup_options=[
            PickupOption(
                area="stone_town",
                label=LocalizedText(en="Stone Town / Town Area", sw="Mji Mkongwe"),
            ),
            PickupOption(
                area="north_south",
                label=LocalizedText(en="North Zanzibar (Nungwi, Kendwa)", sw="Kaskazini"),
                area_label=LocalizedText(en="North/South Zanzibar"),
            ),
            PickupOption(
                area="north_south",
                label=LocalizedText(en="South Zanzibar (Paje, Jambiani)", sw="Kusini"),
                area_label=LocalizedText(en="North/South Zanzibar"),
            ),
        ],
        menu=[
            MenuOption(label="Day tours", kind=MenuKind.OFFERINGS, section="tours", icon="🚤", requires_pickup=True),
            MenuOption(label="Packages", kind=MenuKind.PACKAGES, section="packages", icon="🎁"),
            MenuOption(label="Safaris", kind=MenuKind.OFFERINGS, section="safaris", icon="🦁"),
            MenuOption(label="Chat with us", kind=MenuKind.CHAT, icon="💬"),
        ],
    )


@pytest.fixture()
def collections():
    return SimpleNamespace(
        tenants=InMemoryCollection(),
        knowledge=InMemoryCollection(),
        orders=InMemoryCollection(),
    )


@pytest.fixture()
def registry(collections):
    return TenantRegistry(collection=collections.tenants, clock=lambda: FIXED_NOW)


@pytest.fixture()
def knowledge_store(collections):
    return KnowledgeBaseStore(collection=collections.knowledge, clock=lambda: FIXED_NOW)


@pytest.fixture()
def ledger(collections):
    return OrderLedger(collection=collections.orders, clock=lambda: FIXED_NOW)


@pytest.fixture()
def tour_tenant(registry, knowledge_store):
    tenant = registry.register(
        TenantCreate(company_name="Zanzibar Island Tours", business_type="tourism", admin_contact="+255 700 000 001")
    )
    knowledge_store.save(tour_knowledge(tenant.id))
    return tenant


@pytest.fixture()
def second_tenant(registry, knowledge_store):
    tenant = registry.register(
        TenantCreate(company_name="Pemba Dive Centre", business_type="tourism", admin_contact="255700000002")
    )
    knowledge_store.save(tour_knowledge(tenant.id))
    return tenant


@pytest.fixture()
def state_machine(ledger):
    return BookingStateMachine(ledger, clock=lambda: FIXED_NOW)


async def _no_sleep(_: float) -> None:
    return None


def build_router(
    registry,
    knowledge_store,
    ledger,
    completion_client=None,
    notifier=None,
    rate_limit_seconds: float = 0.0,
    clock=None,
):
    history = ConversationHistoryStore(max_turn_pairs=10)
    selector = ResponseSelector(
        completion_client=completion_client,
        history=history,
        max_attempts=2,
        backoff_seconds=0,
        timeout_seconds=1.0,
        sleep=_no_sleep,
    )
    sessions = SessionStore(clock=clock) if clock else SessionStore()
    limiter = RateLimiter(min_interval_seconds=rate_limit_seconds, clock=clock) if clock else RateLimiter(rate_limit_seconds)
    return MessageRouter(
        registry=registry,
        knowledge_store=knowledge_store,
        sessions=sessions,
        state_machine=BookingStateMachine(ledger, clock=lambda: FIXED_NOW),
        selector=selector,
        history=history,
        rate_limiter=limiter,
        notifier=notifier,
    )
