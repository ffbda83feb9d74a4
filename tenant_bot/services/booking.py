from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Callable, Dict, List, Optional
from zoneinfo import ZoneInfo

from tenant_bot.orchestrator.states import BookingState
from tenant_bot.schemas.knowledge import CatalogItem, KnowledgeBase, MenuKind, MenuOption
from tenant_bot.schemas.order import NewOrder, Order
from tenant_bot.schemas.tenant import Tenant
from tenant_bot.services.catalog import get_category
from tenant_bot.services.knowledge import describe_item_price, resolve_menu
from tenant_bot.services.language import is_entry_keyword, should_use_ai
from tenant_bot.services.ledger import OrderLedger
from tenant_bot.services.messages import get_message
from tenant_bot.services.pricing import PricingError, format_price, quote
from tenant_bot.services.sessions import Session

logger = logging.getLogger(__name__)

DATE_PATTERN = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")
_LEADING_INTEGER = re.compile(r"^\s*([+-]?\d+)")
_KEYCAPS = ["1️⃣", "2️⃣", "3️⃣", "4️⃣", "5️⃣", "6️⃣", "7️⃣", "8️⃣", "9️⃣"]


def parse_selection(text: str) -> Optional[int]:
    """Leading integer of ``text`` (so "2 people" reads as 2), or None."""
    match = _LEADING_INTEGER.match(text)
    return int(match.group(1)) if match else None


@dataclass(frozen=True)
class DateCheck:
    valid: bool
    value: Optional[str] = None
    reason: Optional[str] = None
    parsed: Optional[date] = None


def validate_date(text: str, today: date) -> DateCheck:
    match = DATE_PATTERN.match(text.strip())
    if not match:
        return DateCheck(valid=False, reason="format")
    day, month, year = (int(group) for group in match.groups())
    try:
        parsed = date(year, month, day)
    except ValueError:
        return DateCheck(valid=False, reason="format")
    if parsed < today:
        return DateCheck(valid=False, reason="past")
    return DateCheck(valid=True, value=parsed.strftime("%d/%m/%Y"), parsed=parsed)


@dataclass
class TransitionResult:
    state: BookingState
    reply: Optional[str] = None
    order: Optional[Order] = None
    use_assistant: bool = False
    booking_context: Optional[Dict[str, object]] = None


Handler = Callable[[Session, str, Tenant, KnowledgeBase], TransitionResult]


class BookingStateMachine:
    """Menu-driven booking funnel. Transitions are synchronous and mutate only the session,
    except the final date step which writes the order to the ledger before confirming."""

    def __init__(
        self,
        ledger: OrderLedger,
        *,
        max_party_size: int = 50,
        default_unit_price: Decimal = Decimal("50"),
        timezone: str = "UTC",
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._ledger = ledger
        self._max_party_size = max_party_size
        self._default_unit_price = Decimal(default_unit_price)
        self._timezone = ZoneInfo(timezone)
        self._clock = clock or (lambda: datetime.now(self._timezone))
        self._handlers: Dict[BookingState, Handler] = {
            BookingState.IDLE: self._on_idle,
            BookingState.MAIN_MENU: self._on_main_menu,
            BookingState.SELECTING_PICKUP: self._on_pickup,
            BookingState.SELECTING_OFFERING: self._on_offering,
            BookingState.SELECTING_PACKAGE: self._on_offering,
            BookingState.ENTERING_PARTY_SIZE: self._on_party_size,
            BookingState.ENTERING_DATE: self._on_date,
            BookingState.AI_CHAT: self._on_ai_chat,
        }

    def today(self) -> date:
        return self._clock().date()

    def start(self, session: Session, tenant: Tenant, knowledge: KnowledgeBase) -> TransitionResult:
        """Show the main menu with an empty draft; also used for restarts."""
        session.clear_booking()
        session.move_to(BookingState.MAIN_MENU)
        return TransitionResult(state=session.state, reply=self._render_main_menu(session, tenant, knowledge))

    def advance(self, session: Session, text: str, tenant: Tenant, knowledge: KnowledgeBase) -> TransitionResult:
        handler = self._handlers[session.state]
        return handler(session, text.strip(), tenant, knowledge)

    def _stay(self, session: Session, reply: Optional[str]) -> TransitionResult:
        return TransitionResult(state=session.state, reply=reply)

    def _on_idle(self, session: Session, text: str, tenant: Tenant, knowledge: KnowledgeBase) -> TransitionResult:
        if is_entry_keyword(text):
            return self.start(session, tenant, knowledge)
        if should_use_ai(text):
            session.move_to(BookingState.AI_CHAT)
            return TransitionResult(state=session.state, use_assistant=True)
        return self._stay(session, None)

    def _on_main_menu(
        self, session: Session, text: str, tenant: Tenant, knowledge: KnowledgeBase
    ) -> TransitionResult:
        language = session.language
        options = resolve_menu(knowledge)
        choice = parse_selection(text)
        if choice is None or not 1 <= choice <= len(options):
            if is_entry_keyword(text):
                return self.start(session, tenant, knowledge)
            return self._stay(session, get_message("invalid_menu", language, count=len(options)))

        option = options[choice - 1]
        if option.kind == MenuKind.CHAT:
            session.move_to(BookingState.AI_CHAT)
            reply = get_message(
                "chat_intro",
                language,
                bot_name=self._bot_name(tenant, knowledge),
                company=self._company(tenant, knowledge),
            )
            return TransitionResult(state=session.state, reply=reply)

        if not knowledge.items(option.section):
            return self._stay(session, get_message("empty_section", language, label=option.label.get(language).lower()))

        session.category = option.section
        if option.kind == MenuKind.PACKAGES:
            session.move_to(BookingState.SELECTING_PACKAGE)
        elif option.requires_pickup and knowledge.pickup_options:
            session.move_to(BookingState.SELECTING_PICKUP)
            lines = [
                f"{self._bullet(index)} {pickup.label.get(language)}"
                for index, pickup in enumerate(knowledge.pickup_options, start=1)
            ]
            reply = get_message(
                "pickup_prompt", language, options="\n".join(lines), count=len(knowledge.pickup_options)
            )
            return TransitionResult(state=session.state, reply=reply)
        else:
            session.move_to(BookingState.SELECTING_OFFERING)
        return TransitionResult(state=session.state, reply=self._render_offerings(session, knowledge, option))

    def _on_pickup(self, session: Session, text: str, tenant: Tenant, knowledge: KnowledgeBase) -> TransitionResult:
        options = knowledge.pickup_options
        choice = parse_selection(text)
        if choice is None or not 1 <= choice <= len(options):
            return self._stay(session, get_message("invalid_pickup", session.language, count=len(options)))

        pickup = options[choice - 1]
        session.pickup_area = pickup.area
        session.pickup_label = pickup.display_area("en")
        session.move_to(BookingState.SELECTING_OFFERING)
        option = self._menu_option(knowledge, session.category)
        return TransitionResult(state=session.state, reply=self._render_offerings(session, knowledge, option))

    def _on_offering(self, session: Session, text: str, tenant: Tenant, knowledge: KnowledgeBase) -> TransitionResult:
        language = session.language
        items = knowledge.items(session.category)
        if not items:
            return self._stay(session, get_message("empty_section", language, label=session.category or ""))
        choice = parse_selection(text)
        if choice is None or not 1 <= choice <= len(items):
            return self._stay(session, get_message("invalid_selection", language, count=len(items)))

        item = items[choice - 1]
        session.draft.select_offering(
            offering_id=item.id or str(choice),
            name=item.name,
            section=session.category or "",
            emoji=item.emoji,
            fixed_price=item.price,
            pricing=item.pricing_for(session.pickup_area),
            pickup_area=session.pickup_area,
            pickup_label=session.pickup_label,
        )
        session.move_to(BookingState.ENTERING_PARTY_SIZE)
        details = self._render_offering_details(item, session, knowledge.business_info.currency)
        prompt = get_message("party_size_prompt", language, max_party_size=self._max_party_size)
        return TransitionResult(state=session.state, reply=f"{details}\n\n{prompt}")

    def _on_party_size(
        self, session: Session, text: str, tenant: Tenant, knowledge: KnowledgeBase
    ) -> TransitionResult:
        language = session.language
        party_size = parse_selection(text)
        if party_size is None or not 1 <= party_size <= self._max_party_size:
            return self._stay(
                session, get_message("invalid_party_size", language, max_party_size=self._max_party_size)
            )

        unit_price = self._unit_price(session, tenant, party_size)
        total = session.draft.set_party_size(party_size, unit_price)
        session.move_to(BookingState.ENTERING_DATE)
        currency = knowledge.business_info.currency
        reply = get_message(
            "party_size_summary",
            language,
            party_size=party_size,
            unit_price=format_price(unit_price, currency),
            total_price=format_price(total, currency),
            example=self._example_date(),
        )
        return TransitionResult(state=session.state, reply=reply)

    def _on_date(self, session: Session, text: str, tenant: Tenant, knowledge: KnowledgeBase) -> TransitionResult:
        language = session.language
        check = validate_date(text, self.today())
        if not check.valid:
            if check.reason == "past":
                return self._stay(session, get_message("past_date", language))
            return self._stay(session, get_message("invalid_date", language, example=self._example_date()))

        draft = session.draft
        draft.require_ready()
        category = get_category(tenant.business_type)
        currency = knowledge.business_info.currency
        order = self._ledger.create(
            NewOrder(
                tenant_id=tenant.id,
                customer_id=session.customer_id,
                order_type=category.order_type,
                offering_id=draft.offering_id,
                offering_name=draft.offering_name,
                party_size=draft.party_size,
                unit_price=draft.unit_price,
                total_price=draft.total_price,
                currency=currency,
                date=check.value,
                pickup=draft.pickup_label,
            )
        )
        pickup_line = get_message("pickup_line", language, pickup=order.pickup) if order.pickup else ""
        reply = get_message(
            "booking_confirmed",
            language,
            order_id=order.id,
            icon=draft.offering_emoji or category.icon,
            offering=order.offering_name,
            party_size=order.party_size,
            date=order.date,
            pickup_line=pickup_line,
            unit_price=format_price(order.unit_price, currency),
            total_price=format_price(order.total_price, currency),
        )
        session.clear_booking()
        session.move_to(BookingState.IDLE)
        return TransitionResult(state=session.state, reply=reply, order=order)

    def _on_ai_chat(self, session: Session, text: str, tenant: Tenant, knowledge: KnowledgeBase) -> TransitionResult:
        context = session.draft.snapshot() or None
        return TransitionResult(state=session.state, use_assistant=True, booking_context=context)

    def _unit_price(self, session: Session, tenant: Tenant, party_size: int) -> Decimal:
        draft = session.draft
        try:
            return quote(draft.fixed_price, draft.pricing, party_size)
        except PricingError as exc:
            logger.warning(
                "Pricing data problem for tenant %s offering %s: %s; using default unit price %s",
                tenant.id,
                draft.offering_id,
                exc,
                self._default_unit_price,
            )
            return self._default_unit_price

    def _example_date(self) -> str:
        return (self.today() + timedelta(days=30)).strftime("%d/%m/%Y")

    def _render_main_menu(self, session: Session, tenant: Tenant, knowledge: KnowledgeBase) -> str:
        language = session.language
        options = resolve_menu(knowledge)
        lines = [
            f"{self._bullet(index)} {option.icon + ' ' if option.icon else ''}{option.label.get(language)}"
            for index, option in enumerate(options, start=1)
        ]
        return get_message(
            "welcome",
            language,
            company=self._company(tenant, knowledge),
            bot_name=self._bot_name(tenant, knowledge),
            options="\n".join(lines),
            count=len(options),
        )

    def _render_offerings(self, session: Session, knowledge: KnowledgeBase, option: Optional[MenuOption]) -> str:
        language = session.language
        items = knowledge.items(session.category)
        currency = knowledge.business_info.currency
        lines: List[str] = [
            f"{self._bullet(index)} {item.emoji + ' ' if item.emoji else ''}*{item.name}* - "
            f"{describe_item_price(item, currency, language, session.pickup_area)}"
            for index, item in enumerate(items, start=1)
        ]
        subtitle = get_message("pickup_subtitle", language, pickup=session.pickup_label) if session.pickup_label else ""
        title = option.label.get(language) if option else (session.category or "").capitalize()
        return get_message(
            "offering_list",
            language,
            icon=(option.icon if option and option.icon else "📋"),
            title=title,
            subtitle=subtitle,
            items="\n".join(lines),
            count=len(items),
        )

    def _render_offering_details(self, item: CatalogItem, session: Session, currency: str) -> str:
        language = session.language
        lines = [f"{item.emoji + ' ' if item.emoji else ''}*{item.name}*"]
        if item.description:
            lines.append(item.description)
        if item.duration:
            lines.append(f"⏱️ {item.duration}")
        if item.highlights:
            lines.extend(f"✓ {highlight}" for highlight in item.highlights)
        if item.price is not None:
            label = "Bei kwa mtu" if language == "sw" else "Price per person"
            lines.append(f"💵 {label}: {format_price(item.price, currency)}")
        else:
            person, people = ("mtu", "watu") if language == "sw" else ("person", "people")
            for bucket, price in session.draft.pricing.items():
                noun = person if bucket == "1" else people
                lines.append(f"👥 {bucket} {noun}: {format_price(price, currency)}")
        if session.pickup_label:
            lines.append(get_message("pickup_line", language, pickup=session.pickup_label).rstrip())
        return "\n".join(lines)

    def _menu_option(self, knowledge: KnowledgeBase, section: Optional[str]) -> Optional[MenuOption]:
        for option in resolve_menu(knowledge):
            if option.section == section:
                return option
        return None

    def _company(self, tenant: Tenant, knowledge: KnowledgeBase) -> str:
        return knowledge.business_info.name or tenant.company_name

    def _bot_name(self, tenant: Tenant, knowledge: KnowledgeBase) -> str:
        return knowledge.ai.bot_name or tenant.bot_name or get_category(tenant.business_type).default_bot_name

    @staticmethod
    def _bullet(index: int) -> str:
        return _KEYCAPS[index - 1] if index <= len(_KEYCAPS) else f"*{index}.*"
