from __future__ import annotations

import asyncio
import threading
import time
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from tenant_bot.orchestrator.states import BookingState

SessionKey = Tuple[str, str]


class DraftInvariantError(RuntimeError):
    """Raised when a booking draft field is written before its prerequisite."""


@dataclass
class BookingDraft:
    offering_id: Optional[str] = None
    offering_name: Optional[str] = None
    offering_emoji: str = ""
    section: Optional[str] = None
    fixed_price: Optional[Decimal] = None
    pricing: Dict[str, Decimal] = field(default_factory=dict)
    pickup_area: Optional[str] = None
    pickup_label: Optional[str] = None
    party_size: Optional[int] = None
    unit_price: Optional[Decimal] = None
    total_price: Optional[Decimal] = None

    @property
    def has_offering(self) -> bool:
        return self.offering_name is not None

    @property
    def is_empty(self) -> bool:
        return not self.has_offering

    def select_offering(
        self,
        *,
        offering_id: str,
        name: str,
        section: str,
        emoji: str = "",
        fixed_price: Optional[Decimal] = None,
        pricing: Optional[Dict[str, Decimal]] = None,
        pickup_area: Optional[str] = None,
        pickup_label: Optional[str] = None,
    ) -> None:
        self.offering_id = offering_id
        self.offering_name = name
        self.offering_emoji = emoji
        self.section = section
        self.fixed_price = fixed_price
        self.pricing = dict(pricing or {})
        self.pickup_area = pickup_area
        self.pickup_label = pickup_label
        # A new offering invalidates any previously quoted party size.
        self.party_size = None
        self.unit_price = None
        self.total_price = None

    def set_party_size(self, party_size: int, unit_price: Decimal) -> Decimal:
        if not self.has_offering:
            raise DraftInvariantError("Party size set before an offering was selected")
        if party_size < 1:
            raise DraftInvariantError(f"Party size must be positive, got {party_size}")
        self.party_size = party_size
        self.unit_price = unit_price
        self.total_price = unit_price * party_size
        return self.total_price

    def require_ready(self) -> None:
        if not self.has_offering or self.party_size is None or self.unit_price is None:
            raise DraftInvariantError("Booking draft is not ready for finalization")

    def snapshot(self) -> Dict[str, object]:
        return {
            key: value
            for key, value in {
                "offering": self.offering_name,
                "pickup": self.pickup_label,
                "party_size": self.party_size,
                "unit_price": self.unit_price,
                "total_price": self.total_price,
            }.items()
            if value is not None
        }


@dataclass
class Session:
    tenant_id: str
    customer_id: str
    state: BookingState = BookingState.IDLE
    language: str = "en"
    category: Optional[str] = None
    pickup_area: Optional[str] = None
    pickup_label: Optional[str] = None
    draft: BookingDraft = field(default_factory=BookingDraft)
    created_at: float = 0.0
    last_activity: float = 0.0

    @property
    def key(self) -> SessionKey:
        return (self.tenant_id, self.customer_id)

    def move_to(self, state: BookingState) -> None:
        if not isinstance(state, BookingState):
            raise ValueError(f"Unknown booking state: {state!r}")
        self.state = state

    def clear_booking(self) -> None:
        self.draft = BookingDraft()
        self.category = None
        self.pickup_area = None
        self.pickup_label = None


class SessionStore:
    """In-memory sessions keyed by (tenant_id, customer_id)."""

    def __init__(self, clock: Callable[[], float] = time.time, default_language: str = "en") -> None:
        self._clock = clock
        self._default_language = default_language
        self._sessions: Dict[SessionKey, Session] = {}
        self._lock = threading.RLock()

    def get(self, tenant_id: str, customer_id: str, language: Optional[str] = None) -> Session:
        now = self._clock()
        key = (tenant_id, customer_id)
        with self._lock:
            session = self._sessions.get(key)
            if session is None:
                session = Session(
                    tenant_id=tenant_id,
                    customer_id=customer_id,
                    language=language or self._default_language,
                    created_at=now,
                )
                self._sessions[key] = session
            session.last_activity = now
            return session

    def peek(self, tenant_id: str, customer_id: str) -> Optional[Session]:
        with self._lock:
            return self._sessions.get((tenant_id, customer_id))

    def reset(self, tenant_id: str, customer_id: str) -> Session:
        with self._lock:
            previous = self._sessions.pop((tenant_id, customer_id), None)
        language = previous.language if previous else None
        return self.get(tenant_id, customer_id, language=language)

    def discard(self, tenant_id: str, customer_id: str) -> bool:
        with self._lock:
            return self._sessions.pop((tenant_id, customer_id), None) is not None

    def sweep(self, max_age_seconds: float) -> List[SessionKey]:
        cutoff = self._clock() - max_age_seconds
        with self._lock:
            stale = [key for key, session in self._sessions.items() if session.last_activity < cutoff]
            for key in stale:
                del self._sessions[key]
        return stale

    def reap_tenant(self, tenant_id: str) -> List[SessionKey]:
        with self._lock:
            keys = [key for key in self._sessions if key[0] == tenant_id]
            for key in keys:
                del self._sessions[key]
        return keys

    def count(self, tenant_id: Optional[str] = None) -> int:
        with self._lock:
            if tenant_id is None:
                return len(self._sessions)
            return sum(1 for key in self._sessions if key[0] == tenant_id)

    def keys(self) -> List[SessionKey]:
        with self._lock:
            return list(self._sessions)


class KeyedLocks:
    """One asyncio lock per conversation so transitions never interleave."""

    def __init__(self) -> None:
        self._locks: Dict[SessionKey, asyncio.Lock] = {}

    def lock_for(self, tenant_id: str, customer_id: str) -> asyncio.Lock:
        key = (tenant_id, customer_id)
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    def discard(self, key: SessionKey) -> None:
        lock = self._locks.get(key)
        if lock is not None and not lock.locked():
            del self._locks[key]

    def retain(self, keys: Iterable[SessionKey]) -> None:
        keep = set(keys)
        for key in [key for key in self._locks if key not in keep]:
            self.discard(key)

    def __len__(self) -> int:
        return len(self._locks)


@dataclass(frozen=True)
class ChatTurn:
    role: str
    text: str


class ConversationHistoryStore:
    """Bounded AI chat history per conversation, stored as user/model pairs."""

    def __init__(self, max_turn_pairs: int = 10) -> None:
        if max_turn_pairs < 1:
            raise ValueError("max_turn_pairs must be at least 1")
        self._max_turn_pairs = max_turn_pairs
        self._histories: Dict[SessionKey, List[ChatTurn]] = {}

    def get(self, tenant_id: str, customer_id: str) -> List[ChatTurn]:
        return list(self._histories.get((tenant_id, customer_id), []))

    def append_exchange(self, tenant_id: str, customer_id: str, user_text: str, reply_text: str) -> None:
        history = self._histories.setdefault((tenant_id, customer_id), [])
        history.append(ChatTurn(role="user", text=user_text))
        history.append(ChatTurn(role="model", text=reply_text))
        overflow = len(history) - self._max_turn_pairs * 2
        if overflow > 0:
            del history[:overflow]

    def clear(self, tenant_id: str, customer_id: str) -> None:
        self._histories.pop((tenant_id, customer_id), None)

    def discard(self, key: SessionKey) -> None:
        self._histories.pop(key, None)
