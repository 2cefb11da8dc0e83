"""
Visits API Endpoints

Visit list/create/update/delete, the visit read view, and visit drafts (the
visit-creation form kept server-side until submitted).
"""
from fastapi import Depends, HTTPException, Query, status

from clinic_panel.api.v1.resources import build_resource_router
from clinic_panel.config.permissions import VISITS
from clinic_panel.dependencies import get_backend_client, get_draft_registry, get_store, require_permission
from clinic_panel.schemas.analytics import VisitDetail
from clinic_panel.schemas.user import CurrentUser
from clinic_panel.schemas.visit_draft import (
    ClientSearchResponse,
    DraftClientUpdate,
    DraftDatetimeUpdate,
    DraftPaymentCreate,
    DraftQuantityChange,
    ItemSearchResponse,
    ServiceSearchResponse,
    VisitDraftResponse,
)
from clinic_panel.services import analytics_service
from clinic_panel.services.backend_client import BackendClient
from clinic_panel.services.resources import refresh_all, resource_service
from clinic_panel.services.store import DashboardStore
from clinic_panel.services.visit_draft_service import (
    DraftRegistry,
    DraftValidationError,
    VisitDraft,
    search_clients,
    search_items,
    search_services,
)

router = build_resource_router("visits")


def _load_draft(registry: DraftRegistry, user: CurrentUser, draft_id: str) -> VisitDraft:
    try:
        return registry.get(user.id, draft_id)
    except KeyError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Visit draft not found"
        )


def _missing_payment(payment_id: int) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Payment {payment_id} not found on draft"
    )


def _invalid(exc: DraftValidationError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        detail=str(exc)
    )


# ── Drafts ──────────────────────────────────────────────────────────────────

@router.post("/drafts", response_model=VisitDraftResponse, status_code=status.HTTP_201_CREATED)
async def create_draft(
    current_user: CurrentUser = Depends(require_permission(VISITS)),
    registry: DraftRegistry = Depends(get_draft_registry),
):
    """Start an empty visit draft"""
    return registry.create(current_user.id).to_response()


@router.get("/drafts/{draft_id}", response_model=VisitDraftResponse)
async def get_draft(
    draft_id: str,
    current_user: CurrentUser = Depends(require_permission(VISITS)),
    registry: DraftRegistry = Depends(get_draft_registry),
):
    return _load_draft(registry, current_user, draft_id).to_response()


@router.delete("/drafts/{draft_id}", status_code=status.HTTP_204_NO_CONTENT)
async def discard_draft(
    draft_id: str,
    current_user: CurrentUser = Depends(require_permission(VISITS)),
    registry: DraftRegistry = Depends(get_draft_registry),
):
    _load_draft(registry, current_user, draft_id)
    registry.discard(current_user.id, draft_id)
    return None


async def _clients(current_user: CurrentUser, client: BackendClient, store: DashboardStore, refresh: bool = False):
    """Clients the caller may pick from; fetched once unless `refresh` is set"""
    if refresh or "clients" not in store.loaded:
        await resource_service("clients", current_user, client, store).fetch_list()
    return store.clients


@router.get("/drafts/{draft_id}/clients/search", response_model=ClientSearchResponse)
async def search_draft_clients(
    draft_id: str,
    q: str = Query("", description="Case-insensitive name or national code filter"),
    current_user: CurrentUser = Depends(require_permission(VISITS)),
    registry: DraftRegistry = Depends(get_draft_registry),
    client: BackendClient = Depends(get_backend_client),
    store: DashboardStore = Depends(get_store),
):
    """Clients matching the search box of the draft's client picker"""
    _load_draft(registry, current_user, draft_id)
    clients = await _clients(current_user, client, store)
    return ClientSearchResponse(clients=search_clients(clients, q))


@router.put("/drafts/{draft_id}/client", response_model=VisitDraftResponse)
async def set_draft_client(
    draft_id: str,
    data: DraftClientUpdate,
    current_user: CurrentUser = Depends(require_permission(VISITS)),
    registry: DraftRegistry = Depends(get_draft_registry),
    client: BackendClient = Depends(get_backend_client),
    store: DashboardStore = Depends(get_store),
):
    """Pick the visit's client from the backend's clients list"""
    draft = _load_draft(registry, current_user, draft_id)
    clients = await _clients(current_user, client, store, refresh=True)
    picked = next((c for c in clients if c.id == data.client_id), None)
    if picked is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Client {data.client_id} not found"
        )
    draft.set_client(picked)
    return draft.to_response()


@router.put("/drafts/{draft_id}/datetime", response_model=VisitDraftResponse)
async def set_draft_datetime(
    draft_id: str,
    data: DraftDatetimeUpdate,
    current_user: CurrentUser = Depends(require_permission(VISITS)),
    registry: DraftRegistry = Depends(get_draft_registry),
):
    draft = _load_draft(registry, current_user, draft_id)
    draft.set_datetime(data.datetime)
    return draft.to_response()


@router.get("/drafts/{draft_id}/services/search", response_model=ServiceSearchResponse)
async def search_draft_services(
    draft_id: str,
    q: str = Query("", description="Case-insensitive name filter"),
    current_user: CurrentUser = Depends(require_permission(VISITS)),
    registry: DraftRegistry = Depends(get_draft_registry),
    client: BackendClient = Depends(get_backend_client),
    store: DashboardStore = Depends(get_store),
):
    """Services matching the search box of the draft's service picker"""
    _load_draft(registry, current_user, draft_id)
    if "services" not in store.loaded:
        await resource_service("services", current_user, client, store).fetch_list()
    return ServiceSearchResponse(services=search_services(store.services, q))


@router.post("/drafts/{draft_id}/services/{service_id}/toggle", response_model=VisitDraftResponse)
async def toggle_draft_service(
    draft_id: str,
    service_id: int,
    current_user: CurrentUser = Depends(require_permission(VISITS)),
    registry: DraftRegistry = Depends(get_draft_registry),
):
    draft = _load_draft(registry, current_user, draft_id)
    draft.toggle_service(service_id)
    return draft.to_response()


@router.delete("/drafts/{draft_id}/services/{service_id}", response_model=VisitDraftResponse)
async def remove_draft_service(
    draft_id: str,
    service_id: int,
    current_user: CurrentUser = Depends(require_permission(VISITS)),
    registry: DraftRegistry = Depends(get_draft_registry),
):
    draft = _load_draft(registry, current_user, draft_id)
    draft.remove_service(service_id)
    return draft.to_response()


@router.get("/drafts/{draft_id}/items/search", response_model=ItemSearchResponse)
async def search_draft_items(
    draft_id: str,
    q: str = Query("", description="Case-insensitive name filter"),
    current_user: CurrentUser = Depends(require_permission(VISITS)),
    registry: DraftRegistry = Depends(get_draft_registry),
    client: BackendClient = Depends(get_backend_client),
    store: DashboardStore = Depends(get_store),
):
    _load_draft(registry, current_user, draft_id)
    if "items" not in store.loaded:
        await resource_service("items", current_user, client, store).fetch_list()
    return ItemSearchResponse(items=search_items(store.items, q))


@router.post("/drafts/{draft_id}/items/{item_id}/toggle", response_model=VisitDraftResponse)
async def toggle_draft_item(
    draft_id: str,
    item_id: int,
    current_user: CurrentUser = Depends(require_permission(VISITS)),
    registry: DraftRegistry = Depends(get_draft_registry),
):
    draft = _load_draft(registry, current_user, draft_id)
    draft.toggle_item(item_id)
    return draft.to_response()


@router.patch("/drafts/{draft_id}/items/{item_id}", response_model=VisitDraftResponse)
async def change_draft_item_quantity(
    draft_id: str,
    item_id: int,
    data: DraftQuantityChange,
    current_user: CurrentUser = Depends(require_permission(VISITS)),
    registry: DraftRegistry = Depends(get_draft_registry),
):
    """Adjust quantity by a signed delta; quantity stays at least 1"""
    draft = _load_draft(registry, current_user, draft_id)
    draft.update_item_quantity(item_id, data.change)
    return draft.to_response()


@router.delete("/drafts/{draft_id}/items/{item_id}", response_model=VisitDraftResponse)
async def remove_draft_item(
    draft_id: str,
    item_id: int,
    current_user: CurrentUser = Depends(require_permission(VISITS)),
    registry: DraftRegistry = Depends(get_draft_registry),
):
    draft = _load_draft(registry, current_user, draft_id)
    draft.remove_item(item_id)
    return draft.to_response()


@router.post("/drafts/{draft_id}/payments", response_model=VisitDraftResponse)
async def add_draft_payment(
    draft_id: str,
    data: DraftPaymentCreate,
    current_user: CurrentUser = Depends(require_permission(VISITS)),
    registry: DraftRegistry = Depends(get_draft_registry),
):
    draft = _load_draft(registry, current_user, draft_id)
    try:
        draft.add_payment(data.description, data.price, paid=data.paid, on=data.date)
    except DraftValidationError as exc:
        raise _invalid(exc)
    return draft.to_response()


@router.put("/drafts/{draft_id}/payments/{payment_id}", response_model=VisitDraftResponse)
async def update_draft_payment(
    draft_id: str,
    payment_id: int,
    data: DraftPaymentCreate,
    current_user: CurrentUser = Depends(require_permission(VISITS)),
    registry: DraftRegistry = Depends(get_draft_registry),
):
    draft = _load_draft(registry, current_user, draft_id)
    try:
        draft.update_payment(payment_id, data.description, data.price, paid=data.paid, on=data.date)
    except KeyError:
        raise _missing_payment(payment_id)
    except DraftValidationError as exc:
        raise _invalid(exc)
    return draft.to_response()


@router.delete("/drafts/{draft_id}/payments/{payment_id}", response_model=VisitDraftResponse)
async def delete_draft_payment(
    draft_id: str,
    payment_id: int,
    current_user: CurrentUser = Depends(require_permission(VISITS)),
    registry: DraftRegistry = Depends(get_draft_registry),
):
    draft = _load_draft(registry, current_user, draft_id)
    try:
        draft.delete_payment(payment_id)
    except KeyError:
        raise _missing_payment(payment_id)
    return draft.to_response()


@router.post("/drafts/{draft_id}/payments/{payment_id}/toggle", response_model=VisitDraftResponse)
async def toggle_draft_payment(
    draft_id: str,
    payment_id: int,
    current_user: CurrentUser = Depends(require_permission(VISITS)),
    registry: DraftRegistry = Depends(get_draft_registry),
):
    draft = _load_draft(registry, current_user, draft_id)
    try:
        draft.toggle_payment_status(payment_id)
    except KeyError:
        raise _missing_payment(payment_id)
    return draft.to_response()


@router.post("/drafts/{draft_id}/submit", status_code=status.HTTP_201_CREATED)
async def submit_draft(
    draft_id: str,
    current_user: CurrentUser = Depends(require_permission(VISITS)),
    registry: DraftRegistry = Depends(get_draft_registry),
    client: BackendClient = Depends(get_backend_client),
    store: DashboardStore = Depends(get_store),
):
    """Send the draft to the backend as a new visit and drop it"""
    draft = _load_draft(registry, current_user, draft_id)
    try:
        body = draft.to_submission()
    except DraftValidationError as exc:
        raise _invalid(exc)

    visits = await resource_service("visits", current_user, client, store).create(body)
    registry.discard(current_user.id, draft_id)
    return {"visits": visits, "total": len(visits)}


# ── Read view ───────────────────────────────────────────────────────────────

@router.get("/{visit_id}", response_model=VisitDetail)
async def get_visit(
    visit_id: int,
    current_user: CurrentUser = Depends(require_permission(VISITS)),
    client: BackendClient = Depends(get_backend_client),
    store: DashboardStore = Depends(get_store),
):
    """Visit with client, service and item names resolved"""
    await resource_service("visits", current_user, client, store).fetch_list()
    await refresh_all(current_user, client, store, names=("services", "items"))

    visit = next((v for v in store.visits if v.id == visit_id), None)
    if visit is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Visit not found"
        )
    return analytics_service.visit_detail(visit, store.services, store.items)
