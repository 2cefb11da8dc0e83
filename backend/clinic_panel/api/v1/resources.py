"""
Resource API Endpoints

Clients, personnel, services, items, payments and visits share the same
list / create / update / delete shape, proxied to the clinic backend.
"""
from typing import Any, Dict
from fastapi import APIRouter, Body, Depends, status

from clinic_panel.dependencies import get_backend_client, get_store, require_permission
from clinic_panel.schemas.user import CurrentUser
from clinic_panel.services.backend_client import BackendClient
from clinic_panel.services.resources import RESOURCE_SPECS, ResourceService
from clinic_panel.services.store import DashboardStore


def build_resource_router(name: str) -> APIRouter:
    """Router for one resource, guarded by that resource's permission"""
    spec = RESOURCE_SPECS[name]
    router = APIRouter(tags=[name])

    def _service(user: CurrentUser, client: BackendClient, store: DashboardStore) -> ResourceService:
        return ResourceService(spec, user, client, store)

    @router.get("/")
    async def list_records(
        current_user: CurrentUser = Depends(require_permission(spec.permission)),
        client: BackendClient = Depends(get_backend_client),
        store: DashboardStore = Depends(get_store),
    ):
        """Fetch the list from the backend and remember it"""
        records = await _service(current_user, client, store).fetch_list()
        return {name: records, "total": len(records)}

    @router.post("/", status_code=status.HTTP_201_CREATED)
    async def create_record(
        data: Dict[str, Any] = Body(...),
        current_user: CurrentUser = Depends(require_permission(spec.permission)),
        client: BackendClient = Depends(get_backend_client),
        store: DashboardStore = Depends(get_store),
    ):
        """Create on the backend, then return the refreshed list"""
        records = await _service(current_user, client, store).create(data)
        return {name: records, "total": len(records)}

    @router.put("/")
    async def update_record(
        data: Dict[str, Any] = Body(...),
        current_user: CurrentUser = Depends(require_permission(spec.permission)),
        client: BackendClient = Depends(get_backend_client),
        store: DashboardStore = Depends(get_store),
    ):
        records = await _service(current_user, client, store).update(data)
        return {name: records, "total": len(records)}

    @router.delete("/{record_id}")
    async def delete_record(
        record_id: int,
        current_user: CurrentUser = Depends(require_permission(spec.permission)),
        client: BackendClient = Depends(get_backend_client),
        store: DashboardStore = Depends(get_store),
    ):
        records = await _service(current_user, client, store).delete(record_id)
        return {name: records, "total": len(records)}

    return router


clients_router = build_resource_router("clients")
personnel_router = build_resource_router("personnel")
services_router = build_resource_router("services")
items_router = build_resource_router("items")
payments_router = build_resource_router("payments")
