from __future__ import annotations

from typing import Dict, List, Optional

from tenant_bot.schemas.knowledge import WEEKDAYS, KnowledgeBase
from tenant_bot.schemas.tenant import Tenant
from tenant_bot.services.catalog import get_category
from tenant_bot.services.knowledge import describe_item_price
from tenant_bot.services.pricing import format_price

LANGUAGE_RULES = {
    "sw": "Reply in Swahili. Keep answers short, friendly and suitable for WhatsApp.",
    "en": "Reply in English. Keep answers short, friendly and suitable for WhatsApp.",
}


def build_knowledge_context(knowledge: KnowledgeBase) -> str:
    info = knowledge.business_info
    currency = info.currency
    lines: List[str] = ["BUSINESS INFORMATION:"]
    for label, value in (
        ("Name", info.name),
        ("Description", info.description),
        ("Location", info.location),
        ("Phone", info.phone),
        ("Email", info.email),
        ("Website", info.website),
        ("Currency", currency),
    ):
        if value:
            lines.append(f"- {label}: {value}")

    if info.hours:
        lines.append("")
        lines.append("OPENING HOURS:")
        for day in WEEKDAYS:
            slot = info.hours.get(day)
            if slot is not None:
                lines.append(f"- {day.capitalize()}: {'Closed' if slot.closed else f'{slot.open}-{slot.close}'}")

    for section, items in knowledge.sections.items():
        available = [item for item in items if item.available]
        if not available:
            continue
        lines.append("")
        lines.append(f"{section.upper().replace('_', ' ')}:")
        for item in available:
            entry = f"- {item.name}: {describe_item_price(item, currency)}"
            if item.pricing:
                tiers = ", ".join(f"{bucket} pax {format_price(price, currency)}" for bucket, price in item.pricing.items())
                entry += f" ({tiers} per person)"
            if item.duration:
                entry += f", duration {item.duration}"
            if item.description:
                entry += f". {item.description}"
            lines.append(entry)

    if knowledge.pickup_options:
        lines.append("")
        lines.append("PICKUP OPTIONS:")
        for option in knowledge.pickup_options:
            lines.append(f"- {option.label.en}")

    if knowledge.faqs:
        lines.append("")
        lines.append("FREQUENTLY ASKED QUESTIONS:")
        for faq in knowledge.faqs:
            lines.append(f"Q: {faq.question}")
            lines.append(f"A: {faq.answer}")

    return "\n".join(lines)


def build_system_prompt(
    tenant: Tenant,
    knowledge: KnowledgeBase,
    language: str = "en",
    booking_context: Optional[Dict[str, object]] = None,
) -> str:
    category = get_category(tenant.business_type)
    persona = knowledge.ai
    bot_name = persona.bot_name or tenant.bot_name or category.default_bot_name
    company = knowledge.business_info.name or tenant.company_name

    sections = [
        f"You are {bot_name}, the WhatsApp assistant for {company}, a {category.name.en.lower()} business.",
        f"Personality: {persona.personality}.",
        "",
        "YOUR ROLE:",
        category.instructions,
        "",
        build_knowledge_context(knowledge),
        "",
        "WHEN A CUSTOMER WANTS TO BOOK, COLLECT:",
        *[f"- {label}" for _, label in category.collect_fields],
        'Tell customers they can type "menu" at any time to use the guided booking menu.',
    ]

    custom = [text for text in (tenant.custom_instructions, persona.custom_instructions) if text]
    if custom:
        sections += ["", "SPECIAL INSTRUCTIONS:", *custom]

    if booking_context:
        sections += ["", "CURRENT BOOKING IN PROGRESS:"]
        sections += [f"- {key.replace('_', ' ')}: {value}" for key, value in booking_context.items()]

    sections += [
        "",
        "RULES:",
        "- Only use the information above; if something is unknown, ask the customer to contact the business.",
        "- Never invent prices, availability or policies.",
        f"- {LANGUAGE_RULES.get(language, LANGUAGE_RULES['en'])}",
    ]
    return "\n".join(sections)
