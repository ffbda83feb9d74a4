from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Dict, Optional, Protocol, Sequence

from tenant_bot.adapters.gemini_client import CompletionError
from tenant_bot.schemas.knowledge import KnowledgeBase
from tenant_bot.schemas.tenant import Tenant
from tenant_bot.services.fallback import FallbackResponder
from tenant_bot.services.language import detect_language, normalize_language
from tenant_bot.services.messages import get_message
from tenant_bot.services.prompts import build_system_prompt
from tenant_bot.services.sessions import ChatTurn, ConversationHistoryStore

logger = logging.getLogger(__name__)


class CompletionClient(Protocol):
    async def complete(
        self,
        system_prompt: str,
        history: Sequence[ChatTurn],
        user_text: str,
        timeout_seconds: float,
    ) -> str: ...


class CompletionStatus(str, Enum):
    SUCCESS = "success"
    RETRYABLE = "retryable"
    TERMINAL = "terminal"


@dataclass(frozen=True)
class CompletionResult:
    status: CompletionStatus
    text: str = ""
    error: Optional[str] = None

    @classmethod
    def success(cls, text: str) -> "CompletionResult":
        return cls(CompletionStatus.SUCCESS, text=text)

    @classmethod
    def retryable(cls, error: str) -> "CompletionResult":
        return cls(CompletionStatus.RETRYABLE, error=error)

    @classmethod
    def terminal(cls, error: str) -> "CompletionResult":
        return cls(CompletionStatus.TERMINAL, error=error)

    @property
    def ok(self) -> bool:
        return self.status == CompletionStatus.SUCCESS


@dataclass
class AssistantReply:
    text: str
    source: str
    attempts: int = 0


class ResponseSelector:
    """Answers free-text messages with the AI model, falling back to canned replies."""

    def __init__(
        self,
        completion_client: Optional[CompletionClient],
        history: ConversationHistoryStore,
        fallback: Optional[FallbackResponder] = None,
        *,
        enabled: bool = True,
        max_attempts: int = 2,
        backoff_seconds: float = 1.0,
        timeout_seconds: float = 30.0,
        enable_fallback: bool = True,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._client = completion_client
        self._history = history
        self._fallback = fallback or FallbackResponder()
        self._enabled = enabled
        self._max_attempts = max(1, max_attempts)
        self._backoff_seconds = backoff_seconds
        self._timeout_seconds = timeout_seconds
        self._enable_fallback = enable_fallback
        self._sleep = sleep

    @property
    def ai_available(self) -> bool:
        return self._enabled and self._client is not None

    async def respond(
        self,
        tenant: Tenant,
        knowledge: KnowledgeBase,
        customer_id: str,
        text: str,
        language: Optional[str] = None,
        booking_context: Optional[Dict[str, object]] = None,
    ) -> AssistantReply:
        language = normalize_language(language) if language else detect_language(text, default=tenant.language)
        reply: Optional[AssistantReply] = None

        if self.ai_available:
            system_prompt = build_system_prompt(tenant, knowledge, language, booking_context)
            history = self._history.get(tenant.id, customer_id)
            result, attempts = await self._complete_with_retries(system_prompt, history, text)
            if result.ok:
                reply = AssistantReply(text=result.text, source="ai", attempts=attempts)
            else:
                logger.warning(
                    "AI unavailable for tenant %s after %d attempt(s): %s", tenant.id, attempts, result.error
                )

        if reply is None:
            if self._enable_fallback:
                logger.info("Using fallback reply for tenant %s", tenant.id)
                reply = AssistantReply(text=self._fallback.respond(text, tenant, knowledge, language), source="fallback")
            else:
                reply = AssistantReply(text=get_message("no_answer", language), source="fallback")

        self._history.append_exchange(tenant.id, customer_id, text, reply.text)
        return reply

    def clear_history(self, tenant_id: str, customer_id: str) -> None:
        self._history.clear(tenant_id, customer_id)

    async def _complete_with_retries(
        self,
        system_prompt: str,
        history: Sequence[ChatTurn],
        text: str,
    ) -> tuple[CompletionResult, int]:
        result = CompletionResult.terminal("no attempt made")
        attempts = 0
        for attempt in range(1, self._max_attempts + 1):
            attempts = attempt
            result = await self._attempt(system_prompt, history, text)
            if result.status != CompletionStatus.RETRYABLE:
                break
            logger.warning("AI attempt %d/%d failed: %s", attempt, self._max_attempts, result.error)
            if attempt < self._max_attempts:
                await self._sleep(self._backoff_seconds)
        return result, attempts

    async def _attempt(self, system_prompt: str, history: Sequence[ChatTurn], text: str) -> CompletionResult:
        if self._client is None:
            raise RuntimeError("No completion client configured for AI replies")
        try:
            reply = await asyncio.wait_for(
                self._client.complete(system_prompt, history, text, self._timeout_seconds),
                timeout=self._timeout_seconds,
            )
        except asyncio.TimeoutError:
            return CompletionResult.retryable(f"timed out after {self._timeout_seconds}s")
        except CompletionError as exc:
            if exc.retryable:
                return CompletionResult.retryable(str(exc))
            return CompletionResult.terminal(str(exc))
        except Exception as exc:  # transport errors from the SDK count as recoverable
            return CompletionResult.retryable(f"{type(exc).__name__}: {exc}")
        if not reply or not reply.strip():
            return CompletionResult.retryable("empty completion")
        return CompletionResult.success(reply.strip())
