from __future__ import annotations

import re

JID_SUFFIXES = ("@s.whatsapp.net", "@c.us", "@lid")
GROUP_SUFFIX = "@g.us"

_NON_DIGITS = re.compile(r"\D+")


def is_group_chat(raw: str) -> bool:
    return raw.strip().lower().endswith(GROUP_SUFFIX)


def normalize_customer_id(raw: str) -> str:
    """Reduce a WhatsApp JID or formatted phone number to bare digits."""
    value = raw.strip().lower()
    if value.startswith("whatsapp:"):
        value = value[len("whatsapp:"):]
    for suffix in JID_SUFFIXES:
        if value.endswith(suffix):
            value = value[: -len(suffix)]
            break
    # multi-device ids look like 255700000000:12
    value = value.split(":", 1)[0]
    digits = _NON_DIGITS.sub("", value)
    return digits or raw.strip()
