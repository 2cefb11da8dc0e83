"""
Visit Draft Schemas
"""
from pydantic import BaseModel, Field
from typing import Optional, List
import datetime as dt

from clinic_panel.schemas.resources import Client, Item, Service


class SelectedItem(BaseModel):
    """Item picked for the visit with its quantity"""
    id: int
    quantity: int = 1


class DraftPayment(BaseModel):
    """Payment entered on the draft"""
    id: int
    date: dt.date
    description: str
    price: float = Field(..., allow_inf_nan=False)
    paid: bool = False


class DraftPaymentCreate(BaseModel):
    """Payment form"""
    date: Optional[dt.date] = None
    description: str = ""
    price: float = Field(0, allow_inf_nan=False)
    paid: bool = False


class DraftClientUpdate(BaseModel):
    """Client picked from the clients list"""
    client_id: int


class DraftDatetimeUpdate(BaseModel):
    datetime: dt.datetime


class DraftQuantityChange(BaseModel):
    change: int = Field(..., description="Signed quantity delta")


class VisitDraftResponse(BaseModel):
    """Current state of a visit draft"""
    id: str
    client: Optional[Client] = None
    selected_services: List[int]
    selected_items: List[SelectedItem]
    datetime: Optional[dt.datetime] = None
    payments: List[DraftPayment]
    total_payment: float


class ServiceSearchResponse(BaseModel):
    services: List[Service]


class ItemSearchResponse(BaseModel):
    items: List[Item]


class ClientSearchResponse(BaseModel):
    clients: List[Client]
