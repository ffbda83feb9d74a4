from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional, Set

from langgraph.graph import END, StateGraph

from tenant_bot.orchestrator.state import RouterOutcome, RoutingState
from tenant_bot.orchestrator.states import BookingState, Route
from tenant_bot.schemas.message import InboundMessage
from tenant_bot.schemas.order import Order
from tenant_bot.schemas.tenant import Tenant
from tenant_bot.services.assistant import ResponseSelector
from tenant_bot.services.booking import BookingStateMachine
from tenant_bot.services.knowledge import KnowledgeBaseStore
from tenant_bot.services.language import detect_language, is_restart_keyword
from tenant_bot.services.messages import get_message
from tenant_bot.services.notifications import AdminNotifier
from tenant_bot.services.rate_limit import RateLimiter
from tenant_bot.services.sessions import ConversationHistoryStore, KeyedLocks, SessionKey, SessionStore
from tenant_bot.services.tenants import TenantRegistry
from tenant_bot.utils.phone import is_group_chat, normalize_customer_id

logger = logging.getLogger(__name__)


class MessageRouter:
    """LangGraph pipeline that turns one inbound message into at most one reply."""

    def __init__(
        self,
        registry: TenantRegistry,
        knowledge_store: KnowledgeBaseStore,
        sessions: SessionStore,
        state_machine: BookingStateMachine,
        selector: ResponseSelector,
        history: ConversationHistoryStore,
        rate_limiter: RateLimiter,
        notifier: Optional[AdminNotifier] = None,
        session_timeout_seconds: float = 1800.0,
    ) -> None:
        self._registry = registry
        self._knowledge_store = knowledge_store
        self._sessions = sessions
        self._state_machine = state_machine
        self._selector = selector
        self._history = history
        self._rate_limiter = rate_limiter
        self._notifier = notifier
        self._session_timeout = session_timeout_seconds
        self._locks = KeyedLocks()
        self._pending: Set[asyncio.Task] = set()
        self._graph = self._build_graph().compile()

    def _build_graph(self) -> StateGraph[RoutingState]:
        graph: StateGraph[RoutingState] = StateGraph(RoutingState)

        graph.add_node("load", self._load_node)
        graph.add_node("restart", self._restart_node)
        graph.add_node("booking", self._booking_node)
        graph.add_node("assistant", self._assistant_node)
        graph.add_node("finalize", self._finalize_node)

        graph.set_entry_point("load")

        graph.add_conditional_edges(
            "load",
            self._router,
            {
                Route.RESTART: "restart",
                Route.BOOKING: "booking",
                Route.IGNORE: END,
            },
        )
        graph.add_conditional_edges(
            "booking",
            self._router,
            {
                Route.ASSISTANT: "assistant",
                Route.FINALIZE: "finalize",
                Route.DONE: END,
            },
        )
        graph.add_edge("restart", END)
        graph.add_edge("assistant", END)
        graph.add_edge("finalize", END)

        return graph

    def _router(self, state: RoutingState) -> Route:
        return state.route

    def _load_node(self, state: RoutingState) -> Dict[str, Any]:
        tenant = self._registry.get(state.tenant_id)
        if tenant is None or not tenant.is_active:
            logger.info("Ignoring message for unknown or inactive tenant %s", state.tenant_id)
            return {"route": Route.IGNORE}

        self._registry.record_message(tenant.id)
        knowledge = self._knowledge_store.get_or_default(tenant)
        session = self._sessions.get(tenant.id, state.customer_id, language=tenant.language)
        session.language = detect_language(state.text, default=session.language)

        route = Route.RESTART if is_restart_keyword(state.text) else Route.BOOKING
        return {"tenant": tenant, "knowledge": knowledge, "session": session, "route": route}

    def _restart_node(self, state: RoutingState) -> Dict[str, Any]:
        self._selector.clear_history(state.tenant.id, state.customer_id)
        result = self._state_machine.start(state.session, state.tenant, state.knowledge)
        return {"reply": result.reply, "source": "restart", "route": Route.DONE}

    def _booking_node(self, state: RoutingState) -> Dict[str, Any]:
        result = self._state_machine.advance(state.session, state.text, state.tenant, state.knowledge)
        if result.use_assistant:
            route = Route.ASSISTANT
        elif result.order is not None:
            route = Route.FINALIZE
        else:
            route = Route.DONE
        return {
            "reply": result.reply,
            "order": result.order,
            "booking_context": result.booking_context,
            "route": route,
        }

    async def _assistant_node(self, state: RoutingState) -> Dict[str, Any]:
        answer = await self._selector.respond(
            state.tenant,
            state.knowledge,
            state.customer_id,
            state.text,
            language=state.session.language,
            booking_context=state.booking_context,
        )
        return {"reply": answer.text, "source": answer.source, "route": Route.DONE}

    async def _finalize_node(self, state: RoutingState) -> Dict[str, Any]:
        try:
            self._registry.record_booking(state.tenant.id)
        except Exception:
            logger.exception("Could not update booking counter for tenant %s", state.tenant.id)
        self._schedule_notification(state.tenant, state.order)
        return {"route": Route.DONE}

    def _schedule_notification(self, tenant: Tenant, order: Order) -> None:
        if self._notifier is None:
            return
        task = asyncio.get_running_loop().create_task(asyncio.to_thread(self._notifier.notify, tenant, order))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def handle(self, message: InboundMessage) -> RouterOutcome:
        if is_group_chat(message.customer_id):
            return RouterOutcome(state=BookingState.IDLE, source="ignored")
        customer_id = normalize_customer_id(message.customer_id)
        text = (message.text or "").strip()
        tenant_id = message.tenant_id
        if not text:
            return RouterOutcome(state=self._current_state(tenant_id, customer_id), source="ignored")

        if not self._rate_limiter.allow(tenant_id, customer_id):
            logger.debug("Rate limited message from %s for tenant %s", customer_id, tenant_id)
            return RouterOutcome(
                state=self._current_state(tenant_id, customer_id), rate_limited=True, source="rate_limited"
            )

        async with self._locks.lock_for(tenant_id, customer_id):
            try:
                result = await self._graph.ainvoke(
                    {"tenant_id": tenant_id, "customer_id": customer_id, "text": text}
                )
            except Exception:
                logger.exception("Failed to handle message from %s for tenant %s", customer_id, tenant_id)
                session = self._sessions.peek(tenant_id, customer_id)
                language = session.language if session else detect_language(text)
                return RouterOutcome(
                    state=self._current_state(tenant_id, customer_id),
                    reply=get_message("error", language),
                    source="error",
                )
        if self._route_of(result) == Route.IGNORE and self._sessions.peek(tenant_id, customer_id) is None:
            self._forget([(tenant_id, customer_id)])
        return self._to_outcome(result, tenant_id, customer_id)

    @staticmethod
    def _route_of(result: Any) -> Optional[Route]:
        if isinstance(result, RoutingState):
            return result.route
        return result.get("route") if isinstance(result, dict) else None

    def _to_outcome(self, result: Any, tenant_id: str, customer_id: str) -> RouterOutcome:
        if isinstance(result, RoutingState):
            result = result.__dict__
        if not isinstance(result, dict):
            raise TypeError(f"Unsupported state result from graph: {type(result)!r}")
        if result.get("route") == Route.IGNORE:
            return RouterOutcome(state=self._current_state(tenant_id, customer_id), source="ignored")
        return RouterOutcome(
            state=self._current_state(tenant_id, customer_id),
            reply=result.get("reply"),
            order=result.get("order"),
            source=result.get("source", "booking"),
        )

    def _current_state(self, tenant_id: str, customer_id: str) -> BookingState:
        session = self._sessions.peek(tenant_id, customer_id)
        return session.state if session else BookingState.IDLE

    async def drain_notifications(self) -> None:
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def sweep(self, max_age_seconds: Optional[float] = None) -> List[SessionKey]:
        stale = self._sessions.sweep(max_age_seconds if max_age_seconds is not None else self._session_timeout)
        self._forget(stale)
        # Limiter and lock entries can outlive their session, e.g. for ignored tenants.
        self._rate_limiter.sweep()
        self._locks.retain(self._sessions.keys())
        if stale:
            logger.info("Swept %d inactive session(s)", len(stale))
        return stale

    def active_sessions(self, tenant_id: Optional[str] = None) -> int:
        return self._sessions.count(tenant_id)

    def reap_tenant(self, tenant_id: str) -> List[SessionKey]:
        keys = self._sessions.reap_tenant(tenant_id)
        self._forget(keys)
        return keys

    def _forget(self, keys: List[SessionKey]) -> None:
        for key in keys:
            self._history.discard(key)
            self._rate_limiter.forget(key)
            self._locks.discard(key)
