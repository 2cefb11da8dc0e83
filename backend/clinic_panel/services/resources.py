"""
Resource hooks.

Each resource is fetched, created, updated and deleted through the backend
only when the user is an admin or holds the resource permission. Mutations
re-fetch the list so the store always mirrors the server.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Type

from pydantic import BaseModel

from clinic_panel.config import permissions
from clinic_panel.schemas.resources import Client, Item, Payment, Personnel, Service, Visit
from clinic_panel.schemas.user import CurrentUser
from clinic_panel.services.backend_client import BackendClient
from clinic_panel.services.store import DashboardStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResourceSpec:
    """How one resource is reached on the backend"""
    name: str
    path: str
    response_key: str
    permission: str
    id_param: str
    model: Type[BaseModel]


RESOURCE_SPECS: Dict[str, ResourceSpec] = {
    "clients": ResourceSpec("clients", "clients/", "clients", permissions.CLIENTS, "client_id", Client),
    "personnel": ResourceSpec("personnel", "personel/", "personel", permissions.PERSONNEL, "personel_id", Personnel),
    "services": ResourceSpec("services", "services/", "services", permissions.SERVICES, "service_id", Service),
    "items": ResourceSpec("items", "items/", "items", permissions.ITEMS, "item_id", Item),
    "payments": ResourceSpec("payments", "payments/", "payments", permissions.PAYMENTS, "payment_id", Payment),
    "visits": ResourceSpec("visits", "visit/", "visit", permissions.VISITS, "visit_id", Visit),
}


class ResourceService:
    """List / create / update / delete one backend resource for one user"""

    def __init__(self, spec: ResourceSpec, user: CurrentUser, client: BackendClient, store: DashboardStore):
        self.spec = spec
        self.user = user
        self.client = client
        self.store = store

    def allowed(self) -> bool:
        return self.user.can(self.spec.permission)

    def _parse(self, payload: Any) -> List[BaseModel]:
        if isinstance(payload, dict):
            payload = payload.get(self.spec.response_key, [])
        return [self.spec.model.model_validate(record) for record in payload or []]

    async def fetch_list(self) -> Optional[List[BaseModel]]:
        """Fetch the list and store it. Returns None when not permitted."""
        if not self.allowed():
            return None
        payload = await self.client.get(self.spec.path)
        records = self._parse(payload)
        self.store.set(self.spec.name, records)
        logger.debug("Fetched %d %s", len(records), self.spec.name)
        return records

    async def create(self, data: Dict[str, Any]) -> Optional[List[BaseModel]]:
        if not self.allowed():
            return None
        logger.info("Creating %s for user %s", self.spec.name, self.user.id)
        await self.client.post(self.spec.path, json=data)
        return await self.fetch_list()

    async def update(self, data: Dict[str, Any]) -> Optional[List[BaseModel]]:
        if not self.allowed():
            return None
        await self.client.put(self.spec.path, json=data)
        return await self.fetch_list()

    async def delete(self, record_id: int) -> Optional[List[BaseModel]]:
        if not self.allowed():
            return None
        await self.client.delete(self.spec.path, params={self.spec.id_param: record_id})
        return await self.fetch_list()


def resource_service(name: str, user: CurrentUser, client: BackendClient, store: DashboardStore) -> ResourceService:
    return ResourceService(RESOURCE_SPECS[name], user, client, store)


ANALYTICS_RESOURCES = ("personnel", "services", "visits", "payments", "items")


async def refresh_all(
    user: CurrentUser,
    client: BackendClient,
    store: DashboardStore,
    names: tuple = ANALYTICS_RESOURCES,
) -> DashboardStore:
    """
    Fetch several lists concurrently.

    A failing list is logged and left as it was; the others still load.
    """
    services = [resource_service(name, user, client, store) for name in names]
    results = await asyncio.gather(*(s.fetch_list() for s in services), return_exceptions=True)

    for service, result in zip(services, results):
        if isinstance(result, BaseException):
            logger.error("Error fetching %s: %s", service.spec.name, result)
        elif result is None:
            store.mark_skipped(service.spec.name)

    return store
