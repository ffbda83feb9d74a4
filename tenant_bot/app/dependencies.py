from __future__ import annotations

import logging
from functools import lru_cache
from typing import Optional

from fastapi import Depends

from tenant_bot.adapters.gemini_client import GeminiCompletionClient
from tenant_bot.adapters.messaging_client import MessagingClient
from tenant_bot.adapters.mongo_client import MongoClientFactory
from tenant_bot.app.config import Settings, get_settings
from tenant_bot.orchestrator.graph import MessageRouter
from tenant_bot.services.assistant import ResponseSelector
from tenant_bot.services.booking import BookingStateMachine
from tenant_bot.services.knowledge import KnowledgeBaseStore
from tenant_bot.services.ledger import OrderLedger
from tenant_bot.services.notifications import AdminNotifier
from tenant_bot.services.rate_limit import RateLimiter
from tenant_bot.services.sessions import ConversationHistoryStore, SessionStore
from tenant_bot.services.tenants import TenantRegistry

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_mongo_factory() -> MongoClientFactory:
    settings = get_settings()
    return MongoClientFactory(settings.mongo_uri, settings.mongo_database)


def get_tenant_registry(
    settings: Settings = Depends(get_settings),
    mongo_factory: MongoClientFactory = Depends(get_mongo_factory),
) -> TenantRegistry:
    return TenantRegistry(collection=mongo_factory.get_collection(settings.tenants_collection, unique_key="id"))


def get_knowledge_store(
    settings: Settings = Depends(get_settings),
    mongo_factory: MongoClientFactory = Depends(get_mongo_factory),
) -> KnowledgeBaseStore:
    return KnowledgeBaseStore(
        collection=mongo_factory.get_collection(settings.knowledge_collection, unique_key="tenant_id")
    )


@lru_cache(maxsize=1)
def get_order_ledger() -> OrderLedger:
    # Cached so every request shares the ledger's write lock.
    settings = get_settings()
    return OrderLedger(
        collection=get_mongo_factory().get_collection(settings.orders_collection, unique_key="id"),
        id_prefix=settings.order_id_prefix,
    )


@lru_cache(maxsize=1)
def get_completion_client() -> Optional[GeminiCompletionClient]:
    settings = get_settings()
    if not settings.gemini_enabled or not settings.gemini_api_key:
        logger.warning("Gemini disabled or not configured; replies will use the fallback responder")
        return None
    return GeminiCompletionClient(
        api_key=settings.gemini_api_key,
        model_name=settings.gemini_model,
        temperature=settings.gemini_temperature,
        max_output_tokens=settings.gemini_max_output_tokens,
    )


@lru_cache(maxsize=1)
def get_admin_notifier() -> Optional[AdminNotifier]:
    settings = get_settings()
    if not settings.messaging_api_url:
        logger.warning("Messaging gateway not configured; admin notifications are disabled")
        return None
    return AdminNotifier(MessagingClient(api_url=settings.messaging_api_url, api_token=settings.messaging_api_token))


@lru_cache(maxsize=1)
def get_session_store() -> SessionStore:
    return SessionStore(default_language=get_settings().default_language)


@lru_cache(maxsize=1)
def get_message_router() -> MessageRouter:
    settings = get_settings()
    mongo_factory = get_mongo_factory()
    registry = TenantRegistry(collection=mongo_factory.get_collection(settings.tenants_collection, unique_key="id"))
    knowledge_store = KnowledgeBaseStore(
        collection=mongo_factory.get_collection(settings.knowledge_collection, unique_key="tenant_id")
    )
    history = ConversationHistoryStore(max_turn_pairs=settings.max_history_turn_pairs)
    selector = ResponseSelector(
        completion_client=get_completion_client(),
        history=history,
        enabled=settings.gemini_enabled,
        max_attempts=settings.ai_max_attempts,
        backoff_seconds=settings.ai_retry_backoff_seconds,
        timeout_seconds=settings.ai_timeout_seconds,
        enable_fallback=settings.enable_fallback,
    )
    state_machine = BookingStateMachine(
        get_order_ledger(),
        max_party_size=settings.max_party_size,
        default_unit_price=settings.default_unit_price,
        timezone=settings.timezone,
    )
    return MessageRouter(
        registry=registry,
        knowledge_store=knowledge_store,
        sessions=get_session_store(),
        state_machine=state_machine,
        selector=selector,
        history=history,
        rate_limiter=RateLimiter(min_interval_seconds=settings.rate_limit_seconds),
        notifier=get_admin_notifier(),
        session_timeout_seconds=settings.session_timeout_seconds,
    )
