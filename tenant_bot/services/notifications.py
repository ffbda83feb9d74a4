from __future__ import annotations

import logging

from tenant_bot.adapters.messaging_client import MessagingClient
from tenant_bot.schemas.order import Order
from tenant_bot.schemas.tenant import Tenant
from tenant_bot.services.pricing import format_price
from tenant_bot.utils.phone import normalize_customer_id

logger = logging.getLogger(__name__)


def format_admin_notification(tenant: Tenant, order: Order) -> str:
    lines = [
        f"🔔 *NEW {order.order_type.upper()}* - {tenant.company_name}",
        "",
        f"🆔 ID: {order.id}",
        f"👤 Customer: +{order.customer_id}",
        f"📋 {order.offering_name}",
        f"👥 People: {order.party_size}",
        f"📅 Date: {order.date}",
    ]
    if order.pickup:
        lines.append(f"📍 Pickup: {order.pickup}")
    lines += [
        f"💵 Price per person: {format_price(order.unit_price, order.currency)}",
        f"💰 Total: {format_price(order.total_price, order.currency)}",
        f"🕐 Received: {order.created_at.strftime('%d/%m/%Y %H:%M')} UTC",
        "",
        f"Status: {order.status.value}",
    ]
    return "\n".join(lines)


class AdminNotifier:
    """Tells the tenant's admin about new bookings; delivery failures are only logged."""

    def __init__(self, messaging_client: MessagingClient) -> None:
        self._client = messaging_client

    def notify(self, tenant: Tenant, order: Order) -> bool:
        recipient = normalize_customer_id(tenant.admin_contact)
        try:
            self._client.send_text(recipient, format_admin_notification(tenant, order))
        except Exception:
            logger.exception("Admin notification for order %s to tenant %s failed", order.id, tenant.id)
            return False
        logger.info("Admin of tenant %s notified about order %s", tenant.id, order.id)
        return True
