"""
Analytics API Endpoints

Each call re-fetches the lists the analytics page depends on for the caller,
then filters and aggregates them.
"""
import logging
from fastapi import APIRouter, Depends

from clinic_panel.config import settings
from clinic_panel.config.permissions import ANALYTICS
from clinic_panel.dependencies import get_backend_client, get_store, require_permission
from clinic_panel.schemas.analytics import (
    FilterDefaultsResponse,
    InventoryAnalyticsResponse,
    PersonnelAnalyticsResponse,
    SummaryCards,
    VisitAnalyticsResponse,
    VisitItemsResponse,
)
from clinic_panel.schemas.filters import AnalyticsTab, InventoryFilters, PersonnelFilters, VisitFilters
from clinic_panel.schemas.user import CurrentUser
from clinic_panel.services import analytics_service
from clinic_panel.services.backend_client import BackendClient
from clinic_panel.services.resources import refresh_all
from clinic_panel.services.store import DashboardStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["analytics"])


async def loaded_store(
    current_user: CurrentUser = Depends(require_permission(ANALYTICS)),
    client: BackendClient = Depends(get_backend_client),
    store: DashboardStore = Depends(get_store),
) -> DashboardStore:
    """The caller's store, refreshed from the backend"""
    return await refresh_all(current_user, client, store)


@router.get("/summary", response_model=SummaryCards)
async def get_summary(store: DashboardStore = Depends(loaded_store)):
    """Totals for the summary cards"""
    return analytics_service.summarize(store)


@router.get("/personnel", response_model=PersonnelAnalyticsResponse)
async def get_personnel_analytics(
    filters: PersonnelFilters = Depends(),
    store: DashboardStore = Depends(loaded_store),
):
    """Filtered personnel with services, visit counts and revenue"""
    filtered = analytics_service.filter_personnel(store.personnel, store.services, store.visits, filters)
    logger.debug("Personnel filter kept %d of %d", len(filtered), len(store.personnel))
    rows = analytics_service.personnel_with_metrics(filtered, store.services, store.visits, store.payments)

    return PersonnelAnalyticsResponse(
        filters=filters,
        active_filters=analytics_service.count_active_filters(AnalyticsTab.PERSONNEL, filters),
        personnel=rows,
        chart=analytics_service.personnel_chart(rows),
        is_loading=store.is_loading("personnel", "services", "visits", "payments"),
        updated_at=store.updated_at,
    )


@router.get("/inventory", response_model=InventoryAnalyticsResponse)
async def get_inventory_analytics(
    filters: InventoryFilters = Depends(),
    store: DashboardStore = Depends(loaded_store),
):
    """Filtered and sorted inventory"""
    threshold = settings.LOW_STOCK_THRESHOLD
    items = analytics_service.filter_inventory(store.items, filters, threshold)

    return InventoryAnalyticsResponse(
        filters=filters,
        active_filters=analytics_service.count_active_filters(AnalyticsTab.INVENTORY, filters),
        items=items,
        low_stock_count=sum(1 for item in store.items if item.count <= threshold),
        chart=analytics_service.inventory_chart(items, threshold),
        is_loading=store.is_loading("items"),
        updated_at=store.updated_at,
    )


@router.get("/visits", response_model=VisitAnalyticsResponse)
async def get_visit_analytics(
    filters: VisitFilters = Depends(),
    store: DashboardStore = Depends(loaded_store),
):
    """Filtered and sorted visits with per-day and per-service charts"""
    visits = analytics_service.filter_visits(store.visits, store.services, filters)

    return VisitAnalyticsResponse(
        filters=filters,
        active_filters=analytics_service.count_active_filters(AnalyticsTab.VISITS, filters),
        visits=analytics_service.visit_rows(visits, store.services),
        chart=analytics_service.visits_chart(visits, store.services),
        is_loading=store.is_loading("visits", "services"),
        updated_at=store.updated_at,
    )


@router.get("/visit-items", response_model=VisitItemsResponse)
async def get_visit_items(store: DashboardStore = Depends(loaded_store)):
    """All items used across visits"""
    visit_items = analytics_service.extract_visit_items(store.visits)
    return VisitItemsResponse(visit_items=visit_items, total=len(visit_items))


@router.get("/filters/{tab}", response_model=FilterDefaultsResponse)
async def get_filter_defaults(
    tab: AnalyticsTab,
    current_user: CurrentUser = Depends(require_permission(ANALYTICS)),
):
    """Reset state of a tab's filters"""
    filters = analytics_service.default_filters(tab)
    return FilterDefaultsResponse(
        tab=tab.value,
        filters=filters.model_dump(mode="json"),
        active_filters=analytics_service.count_active_filters(tab, filters),
    )
