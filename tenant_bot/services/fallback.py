from __future__ import annotations

import logging
from typing import Callable, Dict, List

from tenant_bot.schemas.knowledge import WEEKDAYS, CatalogItem, KnowledgeBase
from tenant_bot.schemas.tenant import Tenant
from tenant_bot.services.catalog import CategoryTemplate, get_category
from tenant_bot.services.knowledge import describe_item_price
from tenant_bot.services.language import FallbackIntent, classify_intent, detect_language
from tenant_bot.services.messages import get_message

logger = logging.getLogger(__name__)

DAY_NAMES = {
    "en": dict(zip(WEEKDAYS, ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"])),
    "sw": dict(zip(WEEKDAYS, ["Jumatatu", "Jumanne", "Jumatano", "Alhamisi", "Ijumaa", "Jumamosi", "Jumapili"])),
}

MAX_SERVICE_LINES = 10
MAX_PRICE_LINES = 8


class FallbackResponder:
    """Rule-based replies used whenever the AI model is unavailable."""

    def __init__(self) -> None:
        self._renderers: Dict[FallbackIntent, Callable[[Tenant, KnowledgeBase, CategoryTemplate, str], str]] = {
            FallbackIntent.GREETING: self._greeting,
            FallbackIntent.PRICE: self._prices,
            FallbackIntent.BOOKING: self._booking,
            FallbackIntent.SERVICES: self._services,
            FallbackIntent.LOCATION: self._location,
            FallbackIntent.HOURS: self._hours,
            FallbackIntent.HELP: self._help,
            FallbackIntent.THANKS: self._thanks,
            FallbackIntent.FAREWELL: self._farewell,
            FallbackIntent.GENERAL: self._general,
        }

    def respond(self, text: str, tenant: Tenant, knowledge: KnowledgeBase, language: str | None = None) -> str:
        language = language or detect_language(text, default=tenant.language)
        intent = classify_intent(text)
        logger.debug("Fallback intent %s for tenant %s", intent.value, tenant.id)
        return self.render(intent, tenant, knowledge, language)

    def render(self, intent: FallbackIntent, tenant: Tenant, knowledge: KnowledgeBase, language: str) -> str:
        category = get_category(tenant.business_type)
        return self._renderers[intent](tenant, knowledge, category, language)

    def _company(self, tenant: Tenant, knowledge: KnowledgeBase) -> str:
        return knowledge.business_info.name or tenant.company_name

    def _contact(self, tenant: Tenant, knowledge: KnowledgeBase) -> str:
        return knowledge.business_info.phone or tenant.admin_contact or "admin"

    def _bot_name(self, tenant: Tenant, knowledge: KnowledgeBase, category: CategoryTemplate) -> str:
        return knowledge.ai.bot_name or tenant.bot_name or category.default_bot_name

    def _catalog_items(self, knowledge: KnowledgeBase, category: CategoryTemplate) -> List[CatalogItem]:
        ordered = [section.key for section in category.sections]
        ordered += [key for key in knowledge.sections if key not in ordered]
        items: List[CatalogItem] = []
        for key in ordered:
            items.extend(knowledge.items(key))
        return items

    def _greeting(self, tenant, knowledge, category, language) -> str:
        if knowledge.ai.greeting:
            return knowledge.ai.greeting
        company = self._company(tenant, knowledge)
        bot_name = self._bot_name(tenant, knowledge, category)
        services = category.service_label.get(language)
        if language == "sw":
            return (
                f"👋 Habari! Karibu *{company}* {category.icon}\n\n"
                f"Mimi ni {bot_name}. Niulize kuhusu {services}, bei, mahali au saa za kazi.\n\n"
                "Andika *menu* kuona chaguo."
            )
        return (
            f"👋 Hello! Welcome to *{company}* {category.icon}\n\n"
            f"I'm {bot_name}. Ask me about our {services}, prices, location or opening hours.\n\n"
            "Type *menu* to see options."
        )

    def _services(self, tenant, knowledge, category, language) -> str:
        label = category.service_label.get(language)
        items = self._catalog_items(knowledge, category)
        if not items:
            return self._no_list(label, language)
        currency = knowledge.business_info.currency
        lines = [
            f"• {item.emoji + ' ' if item.emoji else ''}{item.name} - {describe_item_price(item, currency, language)}"
            for item in items[:MAX_SERVICE_LINES]
        ]
        remaining = len(items) - MAX_SERVICE_LINES
        if remaining > 0:
            lines.append(f"...na {remaining} zaidi" if language == "sw" else f"...and {remaining} more")
        header = f"{category.icon} *{label.capitalize()}*"
        footer = "Andika *menu* kuweka oda." if language == "sw" else "Type *menu* to book."
        return "\n".join([header, "", *lines, "", footer])

    def _prices(self, tenant, knowledge, category, language) -> str:
        items = [item for item in self._catalog_items(knowledge, category) if item.has_price()]
        if not items:
            contact = self._contact(tenant, knowledge)
            if language == "sw":
                return f"💰 Tafadhali wasiliana nasi kwa bei. Namba: {contact}"
            return f"💰 Please contact us for pricing. Number: {contact}"
        currency = knowledge.business_info.currency
        lines = [f"• {item.name}: {describe_item_price(item, currency, language)}" for item in items[:MAX_PRICE_LINES]]
        header = "💰 *Bei zetu*" if language == "sw" else "💰 *Our prices*"
        return "\n".join([header, "", *lines])

    def _location(self, tenant, knowledge, category, language) -> str:
        location = knowledge.business_info.location
        if not location:
            contact = self._contact(tenant, knowledge)
            if language == "sw":
                return f"📍 Tafadhali wasiliana nasi kujua mahali tulipo. Namba: {contact}"
            return f"📍 Please contact us for our location. Number: {contact}"
        header = "📍 *Mahali tulipo*" if language == "sw" else "📍 *Our location*"
        return f"{header}\n\n{location}"

    def _hours(self, tenant, knowledge, category, language) -> str:
        hours = knowledge.business_info.hours
        if not hours:
            return self._no_list("saa za kazi" if language == "sw" else "opening hours", language)
        names = DAY_NAMES.get(language, DAY_NAMES["en"])
        closed = "Imefungwa" if language == "sw" else "Closed"
        lines = []
        for day in WEEKDAYS:
            slot = hours.get(day)
            if slot is None:
                continue
            value = closed if slot.closed else f"{slot.open} - {slot.close}"
            lines.append(f"• {names[day]}: {value}")
        header = "🕐 *Saa za kazi*" if language == "sw" else "🕐 *Opening hours*"
        return "\n".join([header, "", *lines])

    def _booking(self, tenant, knowledge, category, language) -> str:
        fields = ", ".join(label.lower() for _, label in category.collect_fields)
        action = category.booking_label.get(language)
        if language == "sw":
            return f"📅 *{action}*\n\nAndika *menu* na ufuate hatua, au tutumie taarifa hizi: {fields}."
        return f"📅 *{action}*\n\nType *menu* and follow the steps, or send us these details: {fields}."

    def _thanks(self, tenant, knowledge, category, language) -> str:
        company = self._company(tenant, knowledge)
        if language == "sw":
            return f"🙏 Karibu sana! Asante kwa kuchagua *{company}*."
        return f"🙏 You're welcome! Thank you for choosing *{company}*."

    def _farewell(self, tenant, knowledge, category, language) -> str:
        if knowledge.ai.farewell:
            return knowledge.ai.farewell
        company = self._company(tenant, knowledge)
        if language == "sw":
            return f"👋 Kwaheri! Asante kwa kuwasiliana na *{company}*."
        return f"👋 Goodbye! Thank you for contacting *{company}*."

    def _help(self, tenant, knowledge, category, language) -> str:
        services = category.service_label.get(language)
        if language == "sw":
            return (
                "ℹ️ *Naweza kukusaidia na:*\n"
                f"• {services.capitalize()} na bei\n• Kuweka oda\n• Mahali na saa za kazi\n\n"
                "Andika *menu* kuanza."
            )
        return (
            "ℹ️ *I can help you with:*\n"
            f"• Our {services} and prices\n• Making a booking\n• Location and opening hours\n\n"
            "Type *menu* to get started."
        )

    def _general(self, tenant, knowledge, category, language) -> str:
        contact = self._contact(tenant, knowledge)
        company = self._company(tenant, knowledge)
        if language == "sw":
            return (
                f"Asante kwa ujumbe wako kwa *{company}*. Andika *menu* kuona chaguo, "
                f"au piga {contact} kwa msaada zaidi."
            )
        return (
            f"Thanks for your message to *{company}*. Type *menu* to see options, "
            f"or call {contact} for more help."
        )

    def _no_list(self, label: str, language: str) -> str:
        return get_message("empty_section", language, label=label)
