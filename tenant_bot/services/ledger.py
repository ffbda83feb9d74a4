from __future__ import annotations

import logging
import secrets
import string
import threading
from datetime import UTC, date, datetime, timedelta
from typing import Callable, Dict, List, Optional

from pymongo.errors import PyMongoError

from tenant_bot.schemas.order import NewOrder, Order, OrderStats, OrderStatus

logger = logging.getLogger(__name__)

_BASE36 = string.digits + string.ascii_uppercase

# Forward rank; cancelled sits outside the chain.
STATUS_RANK = {
    OrderStatus.PENDING: 0,
    OrderStatus.CONFIRMED: 1,
    OrderStatus.IN_PROGRESS: 2,
    OrderStatus.COMPLETED: 3,
}


class LedgerError(RuntimeError):
    """Raised when the order collection cannot be read or written."""


class OrderNotFoundError(LookupError):
    pass


class InvalidStatusTransition(ValueError):
    pass


def _base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36[remainder])
    return "".join(reversed(digits))


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    if current.is_terminal:
        return False
    if target == OrderStatus.CANCELLED:
        return True
    return STATUS_RANK[target] > STATUS_RANK[current]


def _month_before(day: date) -> date:
    year, month = (day.year, day.month - 1) if day.month > 1 else (day.year - 1, 12)
    for candidate in range(day.day, 0, -1):
        try:
            return day.replace(year=year, month=month, day=candidate)
        except ValueError:
            continue
    raise ValueError(f"Cannot compute month before {day}")


class OrderLedger:
    """Append-mostly order store; every write happens under a single lock."""

    MAX_ID_ATTEMPTS = 5

    def __init__(
        self,
        collection,
        clock: Callable[[], datetime] = lambda: datetime.now(UTC),
        id_prefix: str = "ORD",
    ) -> None:
        self._collection = collection
        self._clock = clock
        self._id_prefix = id_prefix
        self._lock = threading.Lock()

    def create(self, new_order: NewOrder) -> Order:
        now = self._clock()
        with self._lock:
            try:
                order_id = self._unique_id(now)
                order = Order(
                    **new_order.model_dump(),
                    id=order_id,
                    status=OrderStatus.PENDING,
                    created_at=now,
                    updated_at=now,
                    status_timestamps={OrderStatus.PENDING: now},
                )
                self._collection.insert_one(order.model_dump(mode="json"))
            except PyMongoError as exc:
                raise LedgerError(f"Could not persist order for tenant {new_order.tenant_id}") from exc
        logger.info("Order %s created for tenant %s", order.id, order.tenant_id)
        return order

    def get(self, order_id: str) -> Optional[Order]:
        try:
            document = self._collection.find_one({"id": order_id})
        except PyMongoError as exc:
            raise LedgerError(f"Could not load order {order_id}") from exc
        return self._to_order(document) if document else None

    def require(self, order_id: str) -> Order:
        order = self.get(order_id)
        if order is None:
            raise OrderNotFoundError(f"Order {order_id} not found")
        return order

    def update_status(self, order_id: str, status: OrderStatus, reason: Optional[str] = None) -> Order:
        with self._lock:
            order = self.require(order_id)
            if not can_transition(order.status, status):
                raise InvalidStatusTransition(
                    f"Order {order_id} cannot move from {order.status.value} to {status.value}"
                )
            now = self._clock()
            timestamps = dict(order.status_timestamps)
            timestamps[status] = now
            updates = {"status": status, "updated_at": now, "status_timestamps": timestamps}
            if status == OrderStatus.CANCELLED:
                updates["cancel_reason"] = reason
            updated = order.model_copy(update=updates)
            payload = updated.model_dump(mode="json")
            try:
                self._collection.update_one(
                    {"id": order_id},
                    {
                        "$set": {
                            "status": payload["status"],
                            "updated_at": payload["updated_at"],
                            "status_timestamps": payload["status_timestamps"],
                            "cancel_reason": payload["cancel_reason"],
                        }
                    },
                )
            except PyMongoError as exc:
                raise LedgerError(f"Could not update order {order_id}") from exc
        logger.info("Order %s moved %s -> %s", order_id, order.status.value, status.value)
        return updated

    def list(
        self,
        tenant_id: Optional[str] = None,
        customer_id: Optional[str] = None,
        status: Optional[OrderStatus] = None,
        limit: Optional[int] = None,
    ) -> List[Order]:
        query: Dict[str, str] = {}
        if tenant_id:
            query["tenant_id"] = tenant_id
        if customer_id:
            query["customer_id"] = customer_id
        if status:
            query["status"] = status.value
        try:
            documents = list(self._collection.find(query))
        except PyMongoError as exc:
            raise LedgerError("Could not list orders") from exc
        orders = sorted((self._to_order(doc) for doc in documents), key=lambda order: order.created_at, reverse=True)
        return orders[:limit] if limit else orders

    def stats(self, tenant_id: str, now: Optional[datetime] = None) -> OrderStats:
        now = now or self._clock()
        midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
        week_start = midnight - timedelta(days=7)
        month_start = datetime.combine(_month_before(midnight.date()), midnight.timetz())

        stats = OrderStats(tenant_id=tenant_id)
        for order in self.list(tenant_id=tenant_id):
            stats.total += 1
            stats.by_status[order.status] = stats.by_status.get(order.status, 0) + 1
            created = order.created_at
            if created >= midnight:
                stats.today += 1
            if created >= week_start:
                stats.this_week += 1
            if created >= month_start:
                stats.this_month += 1
            if order.status == OrderStatus.COMPLETED:
                stats.revenue_total += order.total_price
                if created >= month_start:
                    stats.revenue_this_month += order.total_price
        return stats

    def _unique_id(self, now: datetime) -> str:
        stamp = _base36(int(now.timestamp() * 1000))
        for _ in range(self.MAX_ID_ATTEMPTS):
            suffix = "".join(secrets.choice(_BASE36) for _ in range(4))
            candidate = f"{self._id_prefix}-{stamp}-{suffix}"
            if self._collection.find_one({"id": candidate}) is None:
                return candidate
        raise LedgerError("Could not allocate a unique order id")

    @staticmethod
    def _to_order(document: dict) -> Order:
        payload = {key: value for key, value in document.items() if key != "_id"}
        return Order.model_validate(payload)
