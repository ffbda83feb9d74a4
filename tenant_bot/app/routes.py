from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from tenant_bot.app.config import Settings
from tenant_bot.app.dependencies import (
    get_knowledge_store,
    get_message_router,
    get_order_ledger,
    get_settings,
    get_tenant_registry,
)
from tenant_bot.orchestrator.graph import MessageRouter
from tenant_bot.schemas.knowledge import CatalogItem, CatalogItemUpdate, FAQ, FAQCreate, KnowledgeBase
from tenant_bot.schemas.message import InboundMessage, MessageReply
from tenant_bot.schemas.order import Order, OrderStats, OrderStatus, StatusUpdate
from tenant_bot.schemas.tenant import Tenant, TenantCreate, TenantStats, TenantUpdate
from tenant_bot.services.knowledge import (
    DuplicateItemError,
    ItemNotFoundError,
    KnowledgeBaseNotFoundError,
    KnowledgeBaseStore,
)
from tenant_bot.services.ledger import InvalidStatusTransition, OrderLedger, OrderNotFoundError
from tenant_bot.services.tenants import TenantNotFoundError, TenantRegistry

router = APIRouter()


def _require_tenant(registry: TenantRegistry, tenant_id: str) -> Tenant:
    try:
        return registry.require(tenant_id)
    except TenantNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc


@router.get("/health", status_code=status.HTTP_200_OK)
def health(settings: Settings = Depends(get_settings)) -> dict:
    return {"app": settings.app_name, "status": "ok"}


@router.post("/api/v1/messages", response_model=MessageReply)
async def receive_message(
    payload: InboundMessage,
    message_router: MessageRouter = Depends(get_message_router),
) -> MessageReply:
    outcome = await message_router.handle(payload)
    return MessageReply(
        reply=outcome.reply,
        state=outcome.state.value,
        order_id=outcome.order.id if outcome.order else None,
        rate_limited=outcome.rate_limited,
        source=outcome.source,
    )


@router.post("/api/v1/tenants", response_model=Tenant, status_code=status.HTTP_201_CREATED)
def register_tenant(
    payload: TenantCreate,
    registry: TenantRegistry = Depends(get_tenant_registry),
    knowledge_store: KnowledgeBaseStore = Depends(get_knowledge_store),
) -> Tenant:
    tenant = registry.register(payload)
    knowledge_store.initialize(tenant)
    return tenant


@router.get("/api/v1/tenants", response_model=List[Tenant])
def list_tenants(
    active_only: bool = False,
    registry: TenantRegistry = Depends(get_tenant_registry),
) -> List[Tenant]:
    return registry.list(active_only=active_only)


@router.get("/api/v1/tenants/{tenant_id}", response_model=Tenant)
def get_tenant(tenant_id: str, registry: TenantRegistry = Depends(get_tenant_registry)) -> Tenant:
    return _require_tenant(registry, tenant_id)


@router.patch("/api/v1/tenants/{tenant_id}", response_model=Tenant)
def update_tenant(
    tenant_id: str,
    payload: TenantUpdate,
    registry: TenantRegistry = Depends(get_tenant_registry),
) -> Tenant:
    _require_tenant(registry, tenant_id)
    return registry.update(tenant_id, payload)


@router.delete("/api/v1/tenants/{tenant_id}", response_model=Tenant)
def deactivate_tenant(
    tenant_id: str,
    registry: TenantRegistry = Depends(get_tenant_registry),
    message_router: MessageRouter = Depends(get_message_router),
) -> Tenant:
    _require_tenant(registry, tenant_id)
    tenant = registry.deactivate(tenant_id)
    message_router.reap_tenant(tenant_id)
    return tenant


@router.get("/api/v1/tenants/{tenant_id}/stats", response_model=TenantStats)
def tenant_stats(
    tenant_id: str,
    registry: TenantRegistry = Depends(get_tenant_registry),
    message_router: MessageRouter = Depends(get_message_router),
) -> TenantStats:
    _require_tenant(registry, tenant_id)
    return registry.stats(tenant_id, active_sessions=message_router.active_sessions(tenant_id))


@router.get("/api/v1/tenants/{tenant_id}/knowledge", response_model=KnowledgeBase)
def get_knowledge(
    tenant_id: str,
    registry: TenantRegistry = Depends(get_tenant_registry),
    knowledge_store: KnowledgeBaseStore = Depends(get_knowledge_store),
) -> KnowledgeBase:
    tenant = _require_tenant(registry, tenant_id)
    return knowledge_store.get_or_default(tenant)


@router.put("/api/v1/tenants/{tenant_id}/knowledge", response_model=KnowledgeBase)
def replace_knowledge(
    tenant_id: str,
    payload: KnowledgeBase,
    registry: TenantRegistry = Depends(get_tenant_registry),
    knowledge_store: KnowledgeBaseStore = Depends(get_knowledge_store),
) -> KnowledgeBase:
    tenant = _require_tenant(registry, tenant_id)
    knowledge = payload.model_copy(update={"tenant_id": tenant.id, "business_type": tenant.business_type})
    try:
        return knowledge_store.save(knowledge)
    except DuplicateItemError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc


@router.post(
    "/api/v1/tenants/{tenant_id}/knowledge/{section}/items",
    response_model=CatalogItem,
    status_code=status.HTTP_201_CREATED,
)
def add_catalog_item(
    tenant_id: str,
    section: str,
    payload: CatalogItem,
    knowledge_store: KnowledgeBaseStore = Depends(get_knowledge_store),
) -> CatalogItem:
    try:
        return knowledge_store.add_item(tenant_id, section, payload)
    except KnowledgeBaseNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except DuplicateItemError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc


@router.patch("/api/v1/tenants/{tenant_id}/knowledge/{section}/items/{item_id}", response_model=CatalogItem)
def update_catalog_item(
    tenant_id: str,
    section: str,
    item_id: str,
    payload: CatalogItemUpdate,
    knowledge_store: KnowledgeBaseStore = Depends(get_knowledge_store),
) -> CatalogItem:
    try:
        return knowledge_store.update_item(tenant_id, section, item_id, payload)
    except (KnowledgeBaseNotFoundError, ItemNotFoundError) as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc


@router.delete(
    "/api/v1/tenants/{tenant_id}/knowledge/{section}/items/{item_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
def remove_catalog_item(
    tenant_id: str,
    section: str,
    item_id: str,
    knowledge_store: KnowledgeBaseStore = Depends(get_knowledge_store),
) -> None:
    try:
        knowledge_store.remove_item(tenant_id, section, item_id)
    except (KnowledgeBaseNotFoundError, ItemNotFoundError) as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc


@router.post("/api/v1/tenants/{tenant_id}/knowledge/faqs", response_model=FAQ, status_code=status.HTTP_201_CREATED)
def add_faq(
    tenant_id: str,
    payload: FAQCreate,
    knowledge_store: KnowledgeBaseStore = Depends(get_knowledge_store),
) -> FAQ:
    try:
        return knowledge_store.add_faq(tenant_id, payload.question, payload.answer)
    except KnowledgeBaseNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc


@router.get("/api/v1/tenants/{tenant_id}/orders", response_model=List[Order])
def list_orders(
    tenant_id: str,
    status_filter: Optional[OrderStatus] = Query(default=None, alias="status"),
    customer_id: Optional[str] = None,
    limit: Optional[int] = None,
    registry: TenantRegistry = Depends(get_tenant_registry),
    ledger: OrderLedger = Depends(get_order_ledger),
) -> List[Order]:
    _require_tenant(registry, tenant_id)
    return ledger.list(tenant_id=tenant_id, customer_id=customer_id, status=status_filter, limit=limit)


@router.get("/api/v1/tenants/{tenant_id}/orders/stats", response_model=OrderStats)
def order_stats(
    tenant_id: str,
    registry: TenantRegistry = Depends(get_tenant_registry),
    ledger: OrderLedger = Depends(get_order_ledger),
) -> OrderStats:
    _require_tenant(registry, tenant_id)
    return ledger.stats(tenant_id)


@router.patch("/api/v1/orders/{order_id}/status", response_model=Order)
def update_order_status(
    order_id: str,
    payload: StatusUpdate,
    ledger: OrderLedger = Depends(get_order_ledger),
) -> Order:
    try:
        return ledger.update_status(order_id, payload.status, reason=payload.reason)
    except OrderNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except InvalidStatusTransition as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
