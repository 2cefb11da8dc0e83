"""
Visit drafts.

A draft holds the visit-creation form: the chosen client, toggled services,
items with quantities, the visit datetime and a local list of payments. It is
submitted to the backend in one POST once complete.
"""
import logging
import math
import uuid
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from clinic_panel.config import settings
from clinic_panel.schemas.resources import Client, Item, Service
from clinic_panel.schemas.visit_draft import DraftPayment, SelectedItem, VisitDraftResponse

logger = logging.getLogger(__name__)


class DraftValidationError(ValueError):
    """Draft is not in a state that allows the requested change"""


class VisitDraft:
    """Visit-creation form state"""

    def __init__(self, draft_id: Optional[str] = None):
        self.id = draft_id or str(uuid.uuid4())
        self.client: Optional[Client] = None
        self.selected_services: List[int] = []
        self.selected_items: List[SelectedItem] = []
        self.datetime: Optional[datetime] = None
        self.payments: List[DraftPayment] = []
        self.created_at = datetime.now(timezone.utc)

    def set_client(self, client: Client) -> None:
        self.client = client

    def set_datetime(self, value: datetime) -> None:
        self.datetime = value

    # Services

    def toggle_service(self, service_id: int) -> None:
        if service_id in self.selected_services:
            self.selected_services = [sid for sid in self.selected_services if sid != service_id]
        else:
            self.selected_services = [*self.selected_services, service_id]

    def remove_service(self, service_id: int) -> None:
        self.selected_services = [sid for sid in self.selected_services if sid != service_id]

    # Items

    def is_item_selected(self, item_id: int) -> bool:
        return any(item.id == item_id for item in self.selected_items)

    def toggle_item(self, item_id: int) -> None:
        """Select with quantity 1, or deselect when already selected"""
        if self.is_item_selected(item_id):
            self.remove_item(item_id)
        else:
            self.selected_items = [*self.selected_items, SelectedItem(id=item_id, quantity=1)]

    def update_item_quantity(self, item_id: int, change: int) -> None:
        """Quantity never drops below 1; unknown items are ignored"""
        self.selected_items = [
            item.model_copy(update={"quantity": max(1, item.quantity + change)}) if item.id == item_id else item
            for item in self.selected_items
        ]

    def remove_item(self, item_id: int) -> None:
        self.selected_items = [item for item in self.selected_items if item.id != item_id]

    # Payments

    def _next_payment_id(self) -> int:
        return max((payment.id for payment in self.payments), default=0) + 1

    def _get_payment(self, payment_id: int) -> DraftPayment:
        for payment in self.payments:
            if payment.id == payment_id:
                return payment
        raise KeyError(payment_id)

    @staticmethod
    def _validate_payment(description: str, price: float) -> None:
        if not description:
            raise DraftValidationError("Payment description is required")
        if price is None or not math.isfinite(price) or price <= 0:
            raise DraftValidationError("Payment price must be greater than zero")

    def add_payment(self, description: str, price: float, paid: bool = False, on: Optional[date] = None) -> DraftPayment:
        self._validate_payment(description, price)
        payment = DraftPayment(
            id=self._next_payment_id(),
            date=on or date.today(),
            description=description,
            price=price,
            paid=paid,
        )
        self.payments = [*self.payments, payment]
        return payment

    def update_payment(
        self, payment_id: int, description: str, price: float, paid: bool = False, on: Optional[date] = None,
    ) -> DraftPayment:
        current = self._get_payment(payment_id)
        self._validate_payment(description, price)
        updated = DraftPayment(
            id=payment_id,
            date=on or current.date,
            description=description,
            price=price,
            paid=paid,
        )
        self.payments = [updated if p.id == payment_id else p for p in self.payments]
        return updated

    def delete_payment(self, payment_id: int) -> None:
        self._get_payment(payment_id)
        self.payments = [p for p in self.payments if p.id != payment_id]

    def toggle_payment_status(self, payment_id: int) -> DraftPayment:
        current = self._get_payment(payment_id)
        toggled = current.model_copy(update={"paid": not current.paid})
        self.payments = [toggled if p.id == payment_id else p for p in self.payments]
        return toggled

    def total_payment(self) -> float:
        return sum(payment.price for payment in self.payments)

    # Output

    def to_response(self) -> VisitDraftResponse:
        return VisitDraftResponse(
            id=self.id,
            client=self.client,
            selected_services=self.selected_services,
            selected_items=self.selected_items,
            datetime=self.datetime,
            payments=self.payments,
            total_payment=self.total_payment(),
        )

    def to_submission(self) -> Dict[str, Any]:
        """Body for the backend's visit create endpoint"""
        if self.client is None:
            raise DraftValidationError("A client is required")
        if self.datetime is None:
            raise DraftValidationError("Visit date and time are required")
        return {
            "client": self.client.model_dump(mode="json", by_alias=True),
            "services": list(self.selected_services),
            "items": [item.model_dump() for item in self.selected_items],
            "datetime": self.datetime.isoformat(),
            "payments": [payment.model_dump(mode="json") for payment in self.payments],
        }


def search_services(catalog: List[Service], query: str) -> List[Service]:
    query = (query or "").lower()
    return [service for service in catalog if query in service.name.lower()]


def search_items(catalog: List[Item], query: str) -> List[Item]:
    query = (query or "").lower()
    return [item for item in catalog if query in item.name.lower()]


def search_clients(catalog: List[Client], query: str) -> List[Client]:
    """Match on name or national code"""
    query = (query or "").lower()
    return [
        client for client in catalog
        if query in client.name.lower() or query in (client.national_code or "").lower()
    ]


class DraftRegistry:
    """
    In-memory drafts, scoped per user.

    Drafts older than `ttl` are pruned whenever a user starts a new one, and a
    user never holds more than `max_per_user`; the oldest is evicted first.
    """

    def __init__(self, max_per_user: int = 20, ttl: Optional[timedelta] = timedelta(hours=2)):
        self.max_per_user = max_per_user
        self.ttl = ttl
        self._drafts: Dict[str, Dict[str, VisitDraft]] = {}

    def _prune(self, user_id: str) -> None:
        drafts = self._drafts.get(user_id, {})
        if self.ttl is not None:
            cutoff = datetime.now(timezone.utc) - self.ttl
            for draft_id in [d.id for d in drafts.values() if d.created_at < cutoff]:
                logger.info("Expired visit draft %s for user %s", draft_id, user_id)
                del drafts[draft_id]

        # dicts keep insertion order, so the first entries are the oldest
        while drafts and len(drafts) >= self.max_per_user:
            draft_id = next(iter(drafts))
            logger.info("Evicted visit draft %s for user %s", draft_id, user_id)
            del drafts[draft_id]

    def create(self, user_id: str) -> VisitDraft:
        self._prune(user_id)
        draft = VisitDraft()
        self._drafts.setdefault(user_id, {})[draft.id] = draft
        logger.debug("Created visit draft %s for user %s", draft.id, user_id)
        return draft

    def get(self, user_id: str, draft_id: str) -> VisitDraft:
        """Raises KeyError for unknown drafts or drafts of another user"""
        return self._drafts.get(user_id, {})[draft_id]

    def count(self, user_id: str) -> int:
        return len(self._drafts.get(user_id, {}))

    def discard(self, user_id: str, draft_id: str) -> None:
        drafts = self._drafts.get(user_id)
        if drafts is None:
            return
        drafts.pop(draft_id, None)
        if not drafts:
            del self._drafts[user_id]

    def clear(self) -> None:
        self._drafts.clear()


draft_registry = DraftRegistry(
    max_per_user=settings.MAX_DRAFTS_PER_USER,
    ttl=timedelta(minutes=settings.DRAFT_TTL_MINUTES),
)
