"""
Resource Schemas

Records as the clinic backend returns them. Backend field names are accepted
as aliases and kept when serializing.
"""
from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Any
import datetime as dt


class ClinicRecord(BaseModel):
    """Base for backend records"""

    class Config:
        populate_by_name = True
        extra = "ignore"


class Client(ClinicRecord):
    """Client (patient / customer)"""
    id: int
    name: str
    national_code: Optional[str] = Field(None, alias="nationalCo")
    birthdate: Optional[dt.date] = None
    gender: Optional[int] = None


class Personnel(ClinicRecord):
    """Staff member performing services"""
    id: int
    name: str
    description: Optional[str] = None
    doctor_expense: float = Field(0, alias="doctorExpense")

    @field_validator("doctor_expense", mode="before")
    @classmethod
    def _expense_default(cls, value: Any) -> Any:
        return 0 if value is None else value


class Service(ClinicRecord):
    """Service offered by the clinic"""
    id: int
    name: str
    price: float = 0
    description: Optional[str] = None
    personnel: List[int] = Field(default_factory=list, alias="personel")
    items: Optional[int] = None
    personnel_fixed_fee: float = Field(0, alias="personel_fixed_fee")
    personnel_percent_fee: float = Field(0, alias="personel_precent_fee")

    @field_validator("personnel", mode="before")
    @classmethod
    def _personnel_ids(cls, value: Any) -> Any:
        # Backend sends either ids or nested personnel objects
        if value is None:
            return []
        return [p.get("id") if isinstance(p, dict) else p for p in value]

    def performed_by(self, personnel_id: int) -> bool:
        return personnel_id in self.personnel


class Item(ClinicRecord):
    """Inventory item"""
    id: int
    name: str
    price: float = 0
    count: int = 0
    used: int = 0


class VisitItem(ClinicRecord):
    """Item used during a visit"""
    id: Optional[int] = None
    item: int
    count: int = 1


class Payment(ClinicRecord):
    """Payment entry"""
    id: int
    personnel_id: Optional[int] = Field(None, alias="personel_id")
    visit_id: Optional[int] = Field(None, alias="visit")
    description: Optional[str] = None
    price: float = 0
    date: Optional[dt.date] = None
    created_at: Optional[dt.datetime] = None
    paid: bool = False

    @field_validator("visit_id", mode="before")
    @classmethod
    def _visit_ref(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return value.get("id")
        return value


class Visit(ClinicRecord):
    """Client visit"""
    id: int
    client: Optional[Client] = None
    services: List[int] = Field(default_factory=list, alias="service")
    items: List[VisitItem] = Field(default_factory=list)
    datetime: Optional[dt.datetime] = None
    payments: List[Payment] = Field(default_factory=list)

    @field_validator("services", mode="before")
    @classmethod
    def _service_ids(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, int):
            return [value]
        return [s.get("id") if isinstance(s, dict) else s for s in value]

    @field_validator("items", "payments", mode="before")
    @classmethod
    def _list_or_empty(cls, value: Any) -> Any:
        # Older backend builds send a bare count instead of the list
        if value is None or isinstance(value, int):
            return []
        return value

    @property
    def revenue(self) -> float:
        return sum(p.price for p in self.payments)

    @property
    def client_name(self) -> str:
        return self.client.name if self.client else ""
