from __future__ import annotations
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional, Union

UNITS = ("KG", "L", "UN")
ORDER_STATUSES = ("PENDING", "PREPARED", "CANCELLED")


@dataclass(frozen=True)
class Product:
    id: int
    name: str
    unit: str
    category_id: Optional[int]
    producer_id: Optional[int]
    is_active: bool = True
    category_name: Optional[str] = None
    producer_name: Optional[str] = None


@dataclass(frozen=True)
class HistoryEntry:
    product_id: int
    week_start: date
    received_quantity: float = 0
    sold_quantity: float = 0
    unsold_quantity: float = 0
    price: Optional[float] = None
    description: str = ""
    id: Optional[int] = None


@dataclass(frozen=True)
class OrderItem:
    id: int
    order_id: int
    product_id: int
    quantity: float
    unit_price: float
    unit: str
    product_name: Optional[str] = None
    producer_name: Optional[str] = None


@dataclass(frozen=True)
class Order:
    id: int
    order_date: datetime
    status: str
    total_amount: float
    customer_id: Optional[int] = None
    client_id: Optional[int] = None
    items: tuple[OrderItem, ...] = ()


@dataclass(frozen=True)
class ExistingItem:
    id: int


@dataclass(frozen=True)
class NewItem:
    temp_key: str


OrderItemRef = Union[ExistingItem, NewItem]


@dataclass(frozen=True)
class OrderItemDraft:
    ref: OrderItemRef
    product_id: Optional[int]
    quantity: float
    unit_price: float
    unit: str


@dataclass(frozen=True)
class ReconciliationPlan:
    to_create: list[OrderItemDraft] = field(default_factory=list)
    to_update: list[OrderItemDraft] = field(default_factory=list)
    to_delete: list[int] = field(default_factory=list)
    total_amount: float = 0.0


@dataclass(frozen=True)
class IsoWeek:
    year: int
    week: int


@dataclass(frozen=True)
class RecapLine:
    product_name: str
    unit: str
    quantity: float


@dataclass(frozen=True)
class LowStockAlert:
    product: Product
    unsold_quantity: float
    week_start: date
