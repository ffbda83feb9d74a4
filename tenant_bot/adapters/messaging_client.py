from __future__ import annotations

from dataclasses import dataclass
from typing import Dict

try:  # pragma: no cover - import guard for optional dependency
    import requests
except ImportError:  # pragma: no cover - handled at runtime
    requests = None  # type: ignore


@dataclass
class MessagingClient:
    """Sends plain-text WhatsApp messages through a Cloud-API style HTTP gateway."""

    api_url: str
    api_token: str
    timeout_seconds: float = 10.0

    def send_text(self, recipient: str, body: str) -> Dict[str, object]:
        if not self.api_url:
            raise RuntimeError("Messaging client configured without gateway URL")
        if not self.api_token:
            raise RuntimeError("Messaging client configured without API token")
        if requests is None:
            raise RuntimeError("The 'requests' package is required for outbound messages")

        payload = {
            "messaging_product": "whatsapp",
            "recipient_type": "individual",
            "to": recipient,
            "type": "text",
            "text": {"preview_url": False, "body": body},
        }
        headers = {
            "Authorization": f"Bearer {self.api_token}",
            "Content-Type": "application/json",
        }

        response = requests.post(self.api_url, headers=headers, json=payload, timeout=self.timeout_seconds)
        if response.status_code not in (200, 201, 202):
            raise RuntimeError(
                f"Failed to send WhatsApp message (status {response.status_code}): {response.text}"
            )

        return {"status": response.status_code, "recipient": recipient}
