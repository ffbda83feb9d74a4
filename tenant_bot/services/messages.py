from __future__ import annotations

from typing import Dict

from tenant_bot.services.language import ENGLISH

MESSAGES: Dict[str, Dict[str, str]] = {
    "welcome": {
        "en": (
            "👋 Welcome to *{company}*!\n\nI'm {bot_name}. How can I help you today?\n\n"
            "{options}\n\n_Reply with a number (1-{count})_"
        ),
        "sw": (
            "👋 Karibu *{company}*!\n\nMimi ni {bot_name}. Nikusaidie nini leo?\n\n"
            "{options}\n\n_Jibu kwa nambari (1-{count})_"
        ),
    },
    "invalid_menu": {
        "en": "❌ Please select 1-{count}.",
        "sw": "❌ Tafadhali chagua 1-{count}.",
    },
    "pickup_prompt": {
        "en": "📍 *Where should we pick you up?*\n\n{options}\n\n_Reply with a number (1-{count})_",
        "sw": "📍 *Tukuchukue wapi?*\n\n{options}\n\n_Jibu kwa nambari (1-{count})_",
    },
    "invalid_pickup": {
        "en": "❌ Select 1-{count}.",
        "sw": "❌ Chagua 1-{count}.",
    },
    "offering_list": {
        "en": "{icon} *{title}*{subtitle}\n\n{items}\n\n_Reply with a number (1-{count}) or type *menu* to go back_",
        "sw": "{icon} *{title}*{subtitle}\n\n{items}\n\n_Jibu kwa nambari (1-{count}) au andika *menu* kurudi_",
    },
    "pickup_subtitle": {
        "en": "\n📍 Pickup: {pickup}",
        "sw": "\n📍 Kuchukuliwa: {pickup}",
    },
    "invalid_selection": {
        "en": "❌ Invalid selection. Please choose 1-{count}.",
        "sw": "❌ Nambari si sahihi. Tafadhali chagua 1-{count}.",
    },
    "empty_section": {
        "en": "Sorry, we don't have a {label} list available right now. Please contact admin for more details.",
        "sw": "Samahani, orodha ya {label} haipatikani kwa sasa. Tafadhali wasiliana na msimamizi kwa maelezo zaidi.",
    },
    "party_size_prompt": {
        "en": "👥 *How many people?* (1-{max_party_size})",
        "sw": "👥 *Watu wangapi?* (1-{max_party_size})",
    },
    "invalid_party_size": {
        "en": "❌ Please enter a valid number of people (1-{max_party_size}).",
        "sw": "❌ Tafadhali weka idadi sahihi ya watu (1-{max_party_size}).",
    },
    "party_size_summary": {
        "en": (
            "👥 *{party_size} people*\n💵 Price per person: *{unit_price}*\n💰 Total: *{total_price}*\n\n"
            "📅 *Enter your preferred date* (DD/MM/YYYY)\n_Example: {example}_"
        ),
        "sw": (
            "👥 *Watu {party_size}*\n💵 Bei kwa mtu: *{unit_price}*\n💰 Jumla: *{total_price}*\n\n"
            "📅 *Weka tarehe unayopendelea* (DD/MM/YYYY)\n_Mfano: {example}_"
        ),
    },
    "invalid_date": {
        "en": "❌ Please enter a valid date in format DD/MM/YYYY\n\n_Example: {example}_",
        "sw": "❌ Tafadhali weka tarehe sahihi kwa muundo DD/MM/YYYY\n\n_Mfano: {example}_",
    },
    "past_date": {
        "en": "❌ Please enter a future date.",
        "sw": "❌ Tafadhali weka tarehe ya baadaye.",
    },
    "booking_confirmed": {
        "en": (
            "✅ *Booking received!*\n\n🆔 Booking ID: *{order_id}*\n{icon} {offering}\n"
            "👥 People: {party_size}\n📅 Date: {date}\n{pickup_line}"
            "💵 Price per person: {unit_price}\n💰 Total: *{total_price}*\n\n"
            "Our team will contact you shortly to confirm. Type *menu* to start again."
        ),
        "sw": (
            "✅ *Oda imepokelewa!*\n\n🆔 Namba ya oda: *{order_id}*\n{icon} {offering}\n"
            "👥 Watu: {party_size}\n📅 Tarehe: {date}\n{pickup_line}"
            "💵 Bei kwa mtu: {unit_price}\n💰 Jumla: *{total_price}*\n\n"
            "Timu yetu itawasiliana nawe hivi karibuni kuthibitisha. Andika *menu* kuanza upya."
        ),
    },
    "pickup_line": {
        "en": "📍 Pickup: {pickup}\n",
        "sw": "📍 Kuchukuliwa: {pickup}\n",
    },
    "chat_intro": {
        "en": "💬 *Chat with {bot_name}*\n\nAsk me anything about {company}. Type *menu* anytime to see the options again.",
        "sw": "💬 *Ongea na {bot_name}*\n\nNiulize chochote kuhusu {company}. Andika *menu* wakati wowote kuona chaguo tena.",
    },
    "error": {
        "en": '🙏 Sorry, something went wrong. Try again or type "menu".',
        "sw": '🙏 Samahani, kuna tatizo. Jaribu tena au andika "menu".',
    },
    "no_answer": {
        "en": '🙏 Sorry, I can\'t answer that right now. Type "menu" to see what I can help with.',
        "sw": '🙏 Samahani, siwezi kujibu hilo kwa sasa. Andika "menu" kuona ninachoweza kusaidia.',
    },
}


def get_message(key: str, language: str = ENGLISH, **values: object) -> str:
    templates = MESSAGES[key]
    template = templates.get(language) or templates[ENGLISH]
    return template.format(**values) if values else template
