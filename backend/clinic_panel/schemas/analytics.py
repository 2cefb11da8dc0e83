"""
Analytics Schemas
"""
from pydantic import BaseModel
from typing import Optional, List, Dict, Any
import datetime as dt

from clinic_panel.schemas.filters import PersonnelFilters, InventoryFilters, VisitFilters
from clinic_panel.schemas.resources import Client, Item, Payment, Personnel, Service, VisitItem


class SummaryCards(BaseModel):
    """Totals shown above the analytics tabs"""
    total_visits: int
    total_items: int
    total_revenue: float
    total_personnel_payments: float


class PersonnelWithMetrics(Personnel):
    """Personnel row with derived metrics"""
    services: List[Service] = []
    visit_count: int = 0
    revenue: float = 0


class PersonnelChartPoint(BaseModel):
    name: str
    revenue: float
    visits: int
    expense: float


class InventoryChartPoint(BaseModel):
    name: str
    count: int
    used: int
    low_stock: bool


class DailyVisitsPoint(BaseModel):
    day: dt.date
    visits: int
    revenue: float


class ServiceVisitsPoint(BaseModel):
    service_id: int
    service: str
    visits: int


class VisitsChart(BaseModel):
    by_day: List[DailyVisitsPoint]
    by_service: List[ServiceVisitsPoint]


class VisitRow(BaseModel):
    """Visit row in the visits table"""
    id: int
    client: Optional[Client] = None
    client_name: str
    datetime: Optional[dt.datetime] = None
    services: List[str]
    revenue: float
    paid: bool


class PersonnelAnalyticsResponse(BaseModel):
    filters: PersonnelFilters
    active_filters: int
    personnel: List[PersonnelWithMetrics]
    chart: List[PersonnelChartPoint]
    is_loading: bool = False
    updated_at: Optional[dt.datetime] = None


class InventoryAnalyticsResponse(BaseModel):
    filters: InventoryFilters
    active_filters: int
    items: List[Item]
    low_stock_count: int
    chart: List[InventoryChartPoint]
    is_loading: bool = False
    updated_at: Optional[dt.datetime] = None


class VisitAnalyticsResponse(BaseModel):
    filters: VisitFilters
    active_filters: int
    visits: List[VisitRow]
    chart: VisitsChart
    is_loading: bool = False
    updated_at: Optional[dt.datetime] = None


class FilterDefaultsResponse(BaseModel):
    tab: str
    filters: Dict[str, Any]
    active_filters: int


class VisitItemsResponse(BaseModel):
    visit_items: List[VisitItem]
    total: int


class VisitItemLine(BaseModel):
    item_id: int
    name: str
    count: int


class VisitDetail(BaseModel):
    """Read view of a single visit"""
    id: int
    client_name: str
    services: List[str]
    items: List[VisitItemLine]
    datetime: Optional[dt.datetime] = None
    formatted_datetime: str
    payments: List[Payment]
    total_payment: float
    total_paid: float
