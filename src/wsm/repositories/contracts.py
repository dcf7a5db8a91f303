from __future__ import annotations

from datetime import date
from typing import Iterable, Optional, Protocol

from wsm.domain.models import HistoryEntry, Order, Product


class StoreRepository(Protocol):
    def list_products(self) -> list[Product]: ...
    def list_history_entries(self) -> list[HistoryEntry]: ...
    def upsert_history_entry(self, entry: HistoryEntry) -> HistoryEntry: ...
    def list_orders(self) -> list[Order]: ...
    def create_order(
        self,
        order_date: date,
        status: str,
        total_amount: float,
        items: Iterable[dict],
        customer_id: Optional[int] = None,
        client_id: Optional[int] = None,
    ) -> int: ...
    def update_order(self, order_id: int, patch: dict) -> None: ...
    def delete_order(self, order_id: int) -> None: ...
    def create_order_item(self, order_id: int, product_id: int, quantity: float, unit_price: float) -> int: ...
    def update_order_item(self, item_id: int, product_id: int, quantity: float, unit_price: float) -> None: ...
    def delete_order_item(self, item_id: int) -> None: ...
    def list_producers(self) -> list[tuple[int, str]]: ...
    def list_categories(self) -> list[tuple[int, str]]: ...
