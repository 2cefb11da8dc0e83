"""
Per-user store of the lists the backend last returned.
"""
from datetime import datetime, timezone
from typing import Dict, List, Optional, Set

RESOURCES = ("clients", "personnel", "services", "items", "payments", "visits")


class DashboardStore:
    """Holds the latest backend lists for one user"""

    def __init__(self):
        self.clients: List = []
        self.personnel: List = []
        self.services: List = []
        self.items: List = []
        self.payments: List = []
        self.visits: List = []
        self.loaded: Set[str] = set()
        self.updated_at: Optional[datetime] = None

    def set(self, resource: str, records: List) -> None:
        """Replace a list wholesale with the server's answer"""
        if resource not in RESOURCES:
            raise KeyError(resource)
        setattr(self, resource, list(records))
        self.loaded.add(resource)
        self.updated_at = datetime.now(timezone.utc)

    def mark_skipped(self, resource: str) -> None:
        """Record that a list will not be fetched (no permission); keeps current contents"""
        if resource not in RESOURCES:
            raise KeyError(resource)
        self.loaded.add(resource)

    def get(self, resource: str) -> List:
        if resource not in RESOURCES:
            raise KeyError(resource)
        return getattr(self, resource)

    def is_loading(self, *resources: str) -> bool:
        """True while any of the given (default: all) resources was never loaded"""
        wanted = resources or RESOURCES
        return any(r not in self.loaded for r in wanted)


class StoreRegistry:
    """One store per user id"""

    def __init__(self):
        self._stores: Dict[str, DashboardStore] = {}

    def for_user(self, user_id: str) -> DashboardStore:
        store = self._stores.get(user_id)
        if store is None:
            store = DashboardStore()
            self._stores[user_id] = store
        return store

    def clear(self) -> None:
        self._stores.clear()


store_registry = StoreRegistry()
