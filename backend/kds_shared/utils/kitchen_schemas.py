"""
Pydantic schemas for station tickets, orders and the catalog.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from kds_shared.config.constants import Limits

StationType = Literal["KITCHEN", "BAR"]
OrderTypeType = Literal["DINE_IN", "DELIVERY", "TAKEAWAY"]


# =============================================================================
# Ticket outputs
# =============================================================================


class KitchenTicketItemOutput(BaseModel):
    """A single line of a station ticket."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    order_item_id: int | None = None
    menu_title: str
    quantity: int
    instructions: str | None = None
    prepare: str | None = None
    category: str | None = None
    status: str


class KitchenTicketOutput(BaseModel):
    """A station ticket with the order context the display needs."""
    id: int
    order_id: int
    station: StationType
    # Plain strings; unknown values fall back in ticket_display
    status: str
    priority: int
    created_at: datetime
    updated_at: datetime
    order_number: str
    order_status: str
    order_type: OrderTypeType
    table_number: int | None = None
    user_name: str | None = None
    note: str | None = None
    special_notes: str | None = None
    order_date: datetime | None = None
    items: list[KitchenTicketItemOutput]
    sibling_ticket_status: str | None = None


class KitchenTicketFeed(BaseModel):
    """Response of the station feed endpoint."""
    station: StationType
    tickets: list[KitchenTicketOutput]
    server_time: datetime


class TicketDotOutput(BaseModel):
    station: StationType
    status: str
    color: str
    title: str
    ring: bool


class TicketDotsResponse(BaseModel):
    order_id: int
    dots: list[TicketDotOutput]
    html: str


# =============================================================================
# Ticket requests
# =============================================================================


class TransitionTicketRequest(BaseModel):
    """Move a ticket to ``status`` if it is still in ``expected_status``."""
    # Plain strings: unknown values are rejected by the service with a 400
    status: str = Field(max_length=32)
    expected_status: str = Field(max_length=32)


class RecallTicketRequest(BaseModel):
    expected_status: str = Field(default="IN_PROGRESS", max_length=32)


class UpdateTicketPriorityRequest(BaseModel):
    priority: int = Field(ge=0, le=Limits.MAX_PRIORITY, description="0 = normal, >0 = rush")


class UpdateTicketItemStatusRequest(BaseModel):
    status: str = Field(max_length=32)


class FanoutResultOutput(BaseModel):
    """Result of fanning an order out to its stations."""
    order_id: int
    created: list[StationType]
    existing: list[StationType]
    order_status: str
    tickets: list[KitchenTicketOutput]


# =============================================================================
# Orders
# =============================================================================


class OrderItemInput(BaseModel):
    menu_item_id: int
    quantity: int = Field(default=1, ge=1, le=Limits.MAX_ITEM_QUANTITY)
    instructions: str | None = Field(default=None, max_length=500)
    prepare: str | None = Field(default=None, max_length=200)


class CreateOrderRequest(BaseModel):
    """Place an order. ``order_number`` makes the request idempotent."""
    order_number: str = Field(min_length=1, max_length=50)
    user_name: str | None = Field(default=None, max_length=200)
    user_email: str | None = Field(default=None, max_length=254)
    table_number: int | None = Field(default=None, ge=1)
    delivery_address: str | None = Field(default=None, max_length=500)
    note: str | None = Field(default=None, max_length=1000)
    special_notes: str | None = Field(default=None, max_length=1000)
    order_date: datetime | None = None
    items: list[OrderItemInput] = Field(min_length=1, max_length=Limits.MAX_ORDER_ITEMS)


class OrderItemOutput(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    menu_item_id: int | None = None
    menu_title: str
    category: str | None = None
    quantity: int
    instructions: str | None = None
    prepare: str | None = None
    unit_price_cents: int


class OrderOutput(BaseModel):
    id: int
    order_number: str
    status: str
    order_type: OrderTypeType
    user_name: str | None = None
    table_number: int | None = None
    delivery_address: str | None = None
    note: str | None = None
    special_notes: str | None = None
    order_date: datetime | None = None
    created_at: datetime
    items: list[OrderItemOutput]
    ticket_statuses: dict[str, str] = Field(default_factory=dict)


# =============================================================================
# Catalog
# =============================================================================


class CategoryCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    station: StationType = "KITCHEN"


class CategoryStationUpdate(BaseModel):
    station: StationType


class CategoryOutput(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str | None = None
    station: StationType


class MenuItemCreate(BaseModel):
    category_id: int
    title: str = Field(min_length=1, max_length=200)
    price_cents: int = Field(ge=0)
    is_available: bool = True


class MenuItemOutput(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    category_id: int
    title: str
    price_cents: int
    is_available: bool
