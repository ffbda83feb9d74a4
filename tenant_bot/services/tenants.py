from __future__ import annotations

import logging
import secrets
import string
from datetime import UTC, datetime
from typing import Callable, List, Optional

from tenant_bot.schemas.tenant import Tenant, TenantCreate, TenantStats, TenantUpdate
from tenant_bot.services.catalog import get_category

logger = logging.getLogger(__name__)

_ID_ALPHABET = string.ascii_uppercase + string.digits


class TenantNotFoundError(LookupError):
    pass


class TenantStillActiveError(RuntimeError):
    pass


class TenantRegistry:
    """Tenant configuration backed by a MongoDB collection."""

    ID_LENGTH = 8
    MAX_ID_ATTEMPTS = 10

    def __init__(self, collection, clock: Callable[[], datetime] = lambda: datetime.now(UTC)) -> None:
        self._collection = collection
        self._clock = clock

    def register(self, payload: TenantCreate) -> Tenant:
        now = self._clock()
        category = get_category(payload.business_type)
        tenant = Tenant(
            id=self._new_id(),
            company_name=payload.company_name.strip(),
            business_type=payload.business_type,
            admin_contact=payload.admin_contact.strip(),
            bot_name=payload.bot_name or category.default_bot_name,
            language=payload.language,
            custom_instructions=payload.custom_instructions,
            created_at=now,
            updated_at=now,
        )
        self._collection.insert_one(tenant.model_dump(mode="json"))
        logger.info("Registered tenant %s (%s)", tenant.id, tenant.business_type.value)
        return tenant

    def get(self, tenant_id: str) -> Optional[Tenant]:
        document = self._collection.find_one({"id": tenant_id})
        if not document:
            return None
        return Tenant.model_validate({key: value for key, value in document.items() if key != "_id"})

    def require(self, tenant_id: str) -> Tenant:
        tenant = self.get(tenant_id)
        if tenant is None:
            raise TenantNotFoundError(f"Tenant {tenant_id} not found")
        return tenant

    def list(self, active_only: bool = False) -> List[Tenant]:
        query = {"is_active": True} if active_only else {}
        tenants = [
            Tenant.model_validate({key: value for key, value in document.items() if key != "_id"})
            for document in self._collection.find(query)
        ]
        return sorted(tenants, key=lambda tenant: tenant.created_at)

    def update(self, tenant_id: str, changes: TenantUpdate) -> Tenant:
        tenant = self.require(tenant_id)
        fields = changes.model_dump(exclude_unset=True, exclude_none=True)
        if not fields:
            return tenant
        updated = tenant.model_copy(update={**fields, "updated_at": self._clock()})
        payload = updated.model_dump(mode="json")
        payload.pop("id")
        self._collection.update_one({"id": tenant_id}, {"$set": payload})
        return updated

    def deactivate(self, tenant_id: str) -> Tenant:
        return self.update(tenant_id, TenantUpdate(is_active=False))

    def delete(self, tenant_id: str) -> None:
        tenant = self.require(tenant_id)
        if tenant.is_active:
            raise TenantStillActiveError(f"Tenant {tenant_id} must be deactivated before deletion")
        self._collection.delete_one({"id": tenant_id})
        logger.info("Deleted tenant %s", tenant_id)

    def record_message(self, tenant_id: str) -> None:
        self._collection.update_one({"id": tenant_id}, {"$inc": {"total_messages": 1}})

    def record_booking(self, tenant_id: str) -> None:
        self._collection.update_one({"id": tenant_id}, {"$inc": {"total_bookings": 1}})

    def stats(self, tenant_id: str, active_sessions: int = 0) -> TenantStats:
        tenant = self.require(tenant_id)
        return TenantStats(
            tenant_id=tenant.id,
            company_name=tenant.company_name,
            business_type=tenant.business_type,
            is_active=tenant.is_active,
            total_messages=tenant.total_messages,
            total_bookings=tenant.total_bookings,
            active_sessions=active_sessions,
        )

    def _new_id(self) -> str:
        for _ in range(self.MAX_ID_ATTEMPTS):
            candidate = "T-" + "".join(secrets.choice(_ID_ALPHABET) for _ in range(self.ID_LENGTH))
            if self._collection.find_one({"id": candidate}) is None:
                return candidate
        raise RuntimeError("Could not allocate a unique tenant id")
