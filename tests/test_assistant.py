from __future__ import annotations

import asyncio

import pytest

from tenant_bot.adapters.gemini_client import CompletionError
from tenant_bot.services.assistant import ResponseSelector
from tenant_bot.services.sessions import ConversationHistoryStore


class ScriptedClient:
    """Replays a list of replies or exceptions, one per call."""

    def __init__(self, *outcomes) -> None:
        self.outcomes = list(outcomes)
        self.calls = []

    async def complete(self, system_prompt, history, user_text, timeout_seconds):
        self.calls.append({"system_prompt": system_prompt, "history": list(history), "user_text": user_text})
        outcome = self.outcomes.pop(0) if self.outcomes else ""
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


class SlowClient:
    def __init__(self) -> None:
        self.calls = 0

    async def complete(self, system_prompt, history, user_text, timeout_seconds):
        self.calls += 1
        await asyncio.sleep(5)
        return "too late"


async def _no_sleep(_: float) -> None:
    return None


def _selector(client, history=None, **kwargs):
    options = {"max_attempts": 2, "backoff_seconds": 0, "timeout_seconds": 1.0, "sleep": _no_sleep}
    options.update(kwargs)
    return ResponseSelector(client, history or ConversationHistoryStore(max_turn_pairs=10), **options)


@pytest.fixture()
def knowledge(tour_tenant, knowledge_store):
    return knowledge_store.get(tour_tenant.id)


def test_ai_reply_is_recorded_in_history(tour_tenant, knowledge):
    history = ConversationHistoryStore()
    client = ScriptedClient("Safari Blue leaves at 9am. 🚤")
    selector = _selector(client, history)

    reply = asyncio.run(selector.respond(tour_tenant, knowledge, "255700111222", "When does Safari Blue leave?"))

    assert reply.source == "ai"
    assert reply.text == "Safari Blue leaves at 9am. 🚤"
    assert reply.attempts == 1
    assert "Zanzibar Island Tours" in client.calls[0]["system_prompt"]
    turns = history.get(tour_tenant.id, "255700111222")
    assert [turn.role for turn in turns] == ["user", "model"]
    assert turns[1].text == reply.text


def test_prior_turns_are_sent_as_history(tour_tenant, knowledge):
    history = ConversationHistoryStore()
    client = ScriptedClient("First answer", "Second answer")
    selector = _selector(client, history)

    asyncio.run(selector.respond(tour_tenant, knowledge, "1", "What tours do you have?"))
    asyncio.run(selector.respond(tour_tenant, knowledge, "1", "Which one is best?"))

    assert client.calls[0]["history"] == []
    assert [turn.text for turn in client.calls[1]["history"]] == ["What tours do you have?", "First answer"]


def test_always_failing_model_falls_back_to_rules(tour_tenant, knowledge):
    client = ScriptedClient(RuntimeError("connection reset"), RuntimeError("connection reset"))
    selector = _selector(client)

    reply = asyncio.run(selector.respond(tour_tenant, knowledge, "1", "What is the price?"))

    assert reply.source == "fallback"
    assert reply.text.strip()
    assert "Safari Blue" in reply.text
    assert len(client.calls) == 2


def test_retryable_failure_then_success(tour_tenant, knowledge):
    client = ScriptedClient(CompletionError("rate limited", retryable=True), "Yes, lunch is included.")
    selector = _selector(client)

    reply = asyncio.run(selector.respond(tour_tenant, knowledge, "1", "Is lunch included?"))

    assert reply.source == "ai"
    assert reply.attempts == 2


def test_empty_completion_counts_as_failure(tour_tenant, knowledge):
    client = ScriptedClient("   ", "")
    selector = _selector(client)

    reply = asyncio.run(selector.respond(tour_tenant, knowledge, "1", "hello"))

    assert reply.source == "fallback"
    assert len(client.calls) == 2


def test_terminal_failure_is_not_retried(tour_tenant, knowledge):
    client = ScriptedClient(CompletionError("invalid api key", retryable=False), "never used")
    selector = _selector(client, max_attempts=3)

    reply = asyncio.run(selector.respond(tour_tenant, knowledge, "1", "Where are you?"))

    assert reply.source == "fallback"
    assert len(client.calls) == 1
    assert "Stone Town, Zanzibar" in reply.text


def test_timeout_is_retried_then_falls_back(tour_tenant, knowledge):
    client = SlowClient()
    selector = _selector(client, timeout_seconds=0.01)

    reply = asyncio.run(selector.respond(tour_tenant, knowledge, "1", "What time do you open?"))

    assert reply.source == "fallback"
    assert client.calls == 2
    assert "Opening hours" in reply.text


def test_disabled_model_goes_straight_to_fallback(tour_tenant, knowledge):
    client = ScriptedClient("unused")
    selector = _selector(client, enabled=False)

    assert not selector.ai_available
    reply = asyncio.run(selector.respond(tour_tenant, knowledge, "1", "asante"))

    assert reply.source == "fallback"
    assert client.calls == []
    assert "Asante" in reply.text


def test_missing_client_uses_fallback(tour_tenant, knowledge):
    history = ConversationHistoryStore()
    selector = _selector(None, history)

    reply = asyncio.run(selector.respond(tour_tenant, knowledge, "1", "hello"))

    assert reply.source == "fallback"
    assert len(history.get(tour_tenant.id, "1")) == 2


def test_no_fallback_returns_apology(tour_tenant, knowledge):
    selector = _selector(None, enable_fallback=False)

    reply = asyncio.run(selector.respond(tour_tenant, knowledge, "1", "hello", language="sw"))

    assert reply.source == "fallback"
    assert reply.text.startswith("🙏 Samahani")


def test_clear_history(tour_tenant, knowledge):
    history = ConversationHistoryStore()
    selector = _selector(ScriptedClient("hi there"), history)
    asyncio.run(selector.respond(tour_tenant, knowledge, "1", "hello"))

    selector.clear_history(tour_tenant.id, "1")

    assert history.get(tour_tenant.id, "1") == []


def test_attempt_without_client_raises():
    selector = _selector(None)

    with pytest.raises(RuntimeError):
        asyncio.run(selector._attempt("system", [], "hello"))
