import sys
import threading
from dataclasses import replace
from itertools import count
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from wsm.domain.errors import NotFoundError  # noqa: E402


class FakeStore:
    """In-memory stand-in for the remote store; records every mutation."""

    def __init__(self, products=(), history=(), orders=()):
        self.products = list(products)
        self.history = list(history)
        self.orders = list(orders)
        self.calls = []
        self.fail_products = set()
        self.fail_item_ids = set()
        self._ids = count(1000)
        self._lock = threading.Lock()

    def _record(self, *call):
        with self._lock:
            self.calls.append(call)

    def list_products(self):
        return list(self.products)

    def list_history_entries(self):
        return list(self.history)

    def upsert_history_entry(self, entry):
        if entry.product_id in self.fail_products:
            raise RuntimeError(f"store rejected product {entry.product_id}")
        if entry.id:
            self._record("update_history", entry.id)
            self.history = [entry if h.id == entry.id else h for h in self.history]
            return entry
        saved = replace(entry, id=next(self._ids))
        self._record("create_history", entry.product_id)
        with self._lock:
            self.history.append(saved)
        return saved

    def list_orders(self):
        return list(self.orders)

    def create_order(self, order_date, status, total_amount, items, customer_id=None, client_id=None):
        oid = next(self._ids)
        self._record("create_order", oid, total_amount, list(items), customer_id, client_id)
        return oid

    def update_order(self, order_id, patch):
        self._record("update_order", order_id, dict(patch))

    def delete_order(self, order_id):
        self._record("delete_order", order_id)

    def create_order_item(self, order_id, product_id, quantity, unit_price):
        self._record("create_item", order_id, product_id, quantity, unit_price)
        return next(self._ids)

    def update_order_item(self, item_id, product_id, quantity, unit_price):
        if item_id in self.fail_item_ids:
            raise NotFoundError(f"order item {item_id} is gone")
        self._record("update_item", item_id, product_id, quantity, unit_price)

    def delete_order_item(self, item_id):
        if item_id in self.fail_item_ids:
            raise NotFoundError(f"order item {item_id} is gone")
        self._record("delete_item", item_id)

    def list_producers(self):
        return []

    def list_categories(self):
        return []

    def mutations(self, kind):
        return [c for c in self.calls if c[0] == kind]
