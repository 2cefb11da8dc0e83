"""
Analytics filter schemas. Default values are the reset state of each tab.
"""
from pydantic import BaseModel
from typing import Optional, Literal, Union
from datetime import datetime
from enum import Enum


class AnalyticsTab(str, Enum):
    """Analytics tabs"""
    PERSONNEL = "personnel"
    INVENTORY = "inventory"
    VISITS = "visits"


SortOrder = Literal["asc", "desc"]


class BaseFilters(BaseModel):
    """Filters shared by every tab"""
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    search_query: str = ""

    @property
    def has_date_range(self) -> bool:
        return self.date_from is not None and self.date_to is not None


class PersonnelFilters(BaseFilters):
    """Personnel tab filters"""
    selected_service: str = "all"
    min_revenue: Optional[float] = None
    max_revenue: Optional[float] = None


class InventoryFilters(BaseFilters):
    """Inventory tab filters"""
    min_stock: Optional[int] = None
    max_stock: Optional[int] = None
    show_low_stock: bool = False
    sort_by: Literal["name", "count", "price", "used"] = "name"
    sort_order: SortOrder = "asc"


class VisitFilters(BaseFilters):
    """Visits tab filters"""
    selected_service: str = "all"
    selected_personnel: str = "all"
    payment_type: Literal["all", "paid", "unpaid"] = "all"
    min_revenue: Optional[float] = None
    max_revenue: Optional[float] = None
    sort_by: Literal["date", "revenue", "client"] = "date"
    sort_order: SortOrder = "desc"


AnyFilters = Union[PersonnelFilters, InventoryFilters, VisitFilters]

FILTERS_BY_TAB = {
    AnalyticsTab.PERSONNEL: PersonnelFilters,
    AnalyticsTab.INVENTORY: InventoryFilters,
    AnalyticsTab.VISITS: VisitFilters,
}
