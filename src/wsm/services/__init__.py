from .ledger_service import LedgerService, InventoryLedger
from .order_service import OrderService, OrderEditSession
from .recap_service import RecapService

__all__ = [
    "LedgerService",
    "InventoryLedger",
    "OrderService",
    "OrderEditSession",
    "RecapService",
]
