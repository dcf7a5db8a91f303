from .models import (
    Product,
    HistoryEntry,
    Order,
    OrderItem,
    ExistingItem,
    NewItem,
    OrderItemDraft,
    ReconciliationPlan,
    IsoWeek,
    RecapLine,
    LowStockAlert,
)
from .errors import ValidationError, NotFoundError, PartialBatchFailure

__all__ = [
    "Product",
    "HistoryEntry",
    "Order",
    "OrderItem",
    "ExistingItem",
    "NewItem",
    "OrderItemDraft",
    "ReconciliationPlan",
    "IsoWeek",
    "RecapLine",
    "LowStockAlert",
    "ValidationError",
    "NotFoundError",
    "PartialBatchFailure",
]
