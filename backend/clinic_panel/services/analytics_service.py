"""
Analytics computations.

Everything here is a pure function over the lists held in a DashboardStore:
filtering, summary totals and chart-ready aggregates for the personnel,
inventory and visits tabs.
"""
from collections import defaultdict
from typing import Dict, Iterable, List, Optional

from clinic_panel.schemas.analytics import (
    DailyVisitsPoint,
    InventoryChartPoint,
    PersonnelChartPoint,
    PersonnelWithMetrics,
    ServiceVisitsPoint,
    SummaryCards,
    VisitDetail,
    VisitItemLine,
    VisitRow,
    VisitsChart,
)
from clinic_panel.schemas.filters import (
    FILTERS_BY_TAB,
    AnalyticsTab,
    AnyFilters,
    InventoryFilters,
    PersonnelFilters,
    VisitFilters,
)
from clinic_panel.schemas.resources import Item, Payment, Personnel, Service, Visit, VisitItem
from clinic_panel.services.store import DashboardStore
from clinic_panel.utils.timezone_helpers import to_naive_utc, within_interval


# ── Filters ─────────────────────────────────────────────────────────────────

def default_filters(tab: AnalyticsTab) -> AnyFilters:
    """Reset state for a tab"""
    return FILTERS_BY_TAB[AnalyticsTab(tab)]()


def count_active_filters(tab: AnalyticsTab, filters: AnyFilters) -> int:
    """Number of filters that differ from the tab's reset state"""
    count = 0
    if filters.search_query:
        count += 1
    if filters.has_date_range:
        count += 1

    tab = AnalyticsTab(tab)
    if tab == AnalyticsTab.PERSONNEL:
        count += filters.selected_service != "all"
        count += filters.min_revenue is not None
        count += filters.max_revenue is not None
    elif tab == AnalyticsTab.INVENTORY:
        count += filters.min_stock is not None
        count += filters.max_stock is not None
        count += bool(filters.show_low_stock)
        count += filters.sort_by != "name"
    elif tab == AnalyticsTab.VISITS:
        count += filters.selected_service != "all"
        count += filters.selected_personnel != "all"
        count += filters.payment_type != "all"
        count += filters.min_revenue is not None
        count += filters.max_revenue is not None
    return int(count)


def _matches_search(text: Optional[str], query: str) -> bool:
    if not query:
        return True
    return query.lower() in (text or "").lower()


def _within_bounds(value: float, low: Optional[float], high: Optional[float]) -> bool:
    if low is not None and value < low:
        return False
    if high is not None and value > high:
        return False
    return True


# ── Summary ─────────────────────────────────────────────────────────────────

def extract_visit_items(visits: Iterable[Visit]) -> List[VisitItem]:
    """Flatten the items used across all visits"""
    return [item for visit in visits for item in visit.items]


def summarize(store: DashboardStore) -> SummaryCards:
    return SummaryCards(
        total_visits=len(store.visits),
        total_items=sum(item.used for item in store.items),
        total_revenue=sum(payment.price for payment in store.payments),
        total_personnel_payments=sum(person.doctor_expense or 0 for person in store.personnel),
    )


# ── Personnel ───────────────────────────────────────────────────────────────

def services_of(person: Personnel, services: Iterable[Service]) -> List[Service]:
    return [service for service in services if service.performed_by(person.id)]


def visits_of(person: Personnel, services: Iterable[Service], visits: Iterable[Visit]) -> List[Visit]:
    """Visits that include at least one service performed by the person"""
    service_ids = {service.id for service in services_of(person, services)}
    return [visit for visit in visits if service_ids.intersection(visit.services)]


def filter_personnel(
    personnel: List[Personnel],
    services: List[Service],
    visits: List[Visit],
    filters: PersonnelFilters,
) -> List[Personnel]:
    result = []
    for person in personnel:
        if not _matches_search(person.name, filters.search_query):
            continue

        if filters.selected_service != "all" and not any(
            str(service.id) == filters.selected_service and service.performed_by(person.id)
            for service in services
        ):
            continue

        if filters.has_date_range and not any(
            within_interval(visit.datetime, filters.date_from, filters.date_to)
            for visit in visits_of(person, services, visits)
        ):
            continue

        if not _within_bounds(person.doctor_expense, filters.min_revenue, filters.max_revenue):
            continue

        result.append(person)
    return result


def personnel_with_metrics(
    personnel: List[Personnel],
    services: List[Service],
    visits: List[Visit],
    payments: List[Payment],
) -> List[PersonnelWithMetrics]:
    """Attach services, visit count and attributed revenue; highest revenue first"""
    revenue_by_person: Dict[int, float] = defaultdict(float)
    for payment in payments:
        if payment.personnel_id is not None:
            revenue_by_person[payment.personnel_id] += payment.price

    rows = [
        PersonnelWithMetrics(
            **person.model_dump(),
            services=services_of(person, services),
            visit_count=len(visits_of(person, services, visits)),
            revenue=revenue_by_person.get(person.id, 0),
        )
        for person in personnel
    ]
    return sorted(rows, key=lambda row: row.revenue, reverse=True)


def personnel_chart(rows: List[PersonnelWithMetrics]) -> List[PersonnelChartPoint]:
    return [
        PersonnelChartPoint(name=row.name, revenue=row.revenue, visits=row.visit_count, expense=row.doctor_expense)
        for row in rows
    ]


# ── Inventory ───────────────────────────────────────────────────────────────

_INVENTORY_SORT_KEYS = {
    "name": lambda item: item.name.lower(),
    "count": lambda item: item.count,
    "price": lambda item: item.price,
    "used": lambda item: item.used,
}


def filter_inventory(items: List[Item], filters: InventoryFilters, low_stock_threshold: int) -> List[Item]:
    result = [
        item for item in items
        if _matches_search(item.name, filters.search_query)
        and _within_bounds(item.count, filters.min_stock, filters.max_stock)
        and (not filters.show_low_stock or item.count <= low_stock_threshold)
    ]
    return sorted(
        result,
        key=_INVENTORY_SORT_KEYS[filters.sort_by],
        reverse=filters.sort_order == "desc",
    )


def inventory_chart(items: List[Item], low_stock_threshold: int) -> List[InventoryChartPoint]:
    return [
        InventoryChartPoint(name=item.name, count=item.count, used=item.used, low_stock=item.count <= low_stock_threshold)
        for item in items
    ]


# ── Visits ──────────────────────────────────────────────────────────────────

def is_fully_paid(visit: Visit) -> bool:
    return bool(visit.payments) and all(payment.paid for payment in visit.payments)


def filter_visits(visits: List[Visit], services: List[Service], filters: VisitFilters) -> List[Visit]:
    performers: Dict[int, List[int]] = {service.id: service.personnel for service in services}

    result = []
    for visit in visits:
        if not _matches_search(visit.client_name, filters.search_query):
            continue

        if filters.selected_service != "all" and filters.selected_service not in {
            str(service_id) for service_id in visit.services
        }:
            continue

        if filters.selected_personnel != "all" and not any(
            filters.selected_personnel in {str(p) for p in performers.get(service_id, [])}
            for service_id in visit.services
        ):
            continue

        if filters.payment_type == "paid" and not is_fully_paid(visit):
            continue
        if filters.payment_type == "unpaid" and is_fully_paid(visit):
            continue

        if not _within_bounds(visit.revenue, filters.min_revenue, filters.max_revenue):
            continue

        if filters.has_date_range and not within_interval(visit.datetime, filters.date_from, filters.date_to):
            continue

        result.append(visit)

    if filters.sort_by == "date":
        # Undated visits sort as the oldest
        key = lambda v: (v.datetime is not None, to_naive_utc(v.datetime) if v.datetime else 0)
    elif filters.sort_by == "revenue":
        key = lambda v: v.revenue
    else:
        key = lambda v: v.client_name.lower()
    return sorted(result, key=key, reverse=filters.sort_order == "desc")


def visit_rows(visits: List[Visit], services: List[Service]) -> List[VisitRow]:
    names = {service.id: service.name for service in services}
    return [
        VisitRow(
            id=visit.id,
            client=visit.client,
            client_name=visit.client_name,
            datetime=visit.datetime,
            services=[names.get(service_id, f"#{service_id}") for service_id in visit.services],
            revenue=visit.revenue,
            paid=is_fully_paid(visit),
        )
        for visit in visits
    ]


def visits_chart(visits: List[Visit], services: List[Service]) -> VisitsChart:
    per_day: Dict = defaultdict(lambda: {"visits": 0, "revenue": 0.0})
    for visit in visits:
        if visit.datetime is None:
            continue
        bucket = per_day[to_naive_utc(visit.datetime).date()]
        bucket["visits"] += 1
        bucket["revenue"] += visit.revenue

    names = {service.id: service.name for service in services}
    per_service: Dict[int, int] = defaultdict(int)
    for visit in visits:
        for service_id in set(visit.services):
            per_service[service_id] += 1

    by_service = [
        ServiceVisitsPoint(service_id=sid, service=names.get(sid, f"#{sid}"), visits=count)
        for sid, count in per_service.items()
    ]
    by_service.sort(key=lambda p: (-p.visits, p.service))

    return VisitsChart(
        by_day=[DailyVisitsPoint(day=day, **per_day[day]) for day in sorted(per_day)],
        by_service=by_service,
    )


def visit_detail(visit: Visit, services: List[Service], items: List[Item]) -> VisitDetail:
    """Read view of a visit with names resolved"""
    service_names = {service.id: service.name for service in services}
    item_names = {item.id: item.name for item in items}
    return VisitDetail(
        id=visit.id,
        client_name=visit.client_name,
        services=[service_names.get(sid, f"#{sid}") for sid in visit.services],
        items=[
            VisitItemLine(item_id=vi.item, name=item_names.get(vi.item, f"#{vi.item}"), count=vi.count)
            for vi in visit.items
        ],
        datetime=visit.datetime,
        formatted_datetime=to_naive_utc(visit.datetime).strftime("%Y-%m-%d %H:%M") if visit.datetime else "",
        payments=visit.payments,
        total_payment=visit.revenue,
        total_paid=sum(p.price for p in visit.payments if p.paid),
    )
