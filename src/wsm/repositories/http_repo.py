from __future__ import annotations

import logging
from datetime import date
from typing import Iterable, Optional

import requests

from wsm.domain.errors import NotFoundError
from wsm.domain.models import HistoryEntry, Order, OrderItem, Product
from wsm.domain.weeks import parse_timestamp, to_date, to_wire_timestamp

log = logging.getLogger(__name__)


def _opt_int(value) -> Optional[int]:
    return int(value) if value is not None else None


def _nested_name(obj, key: str) -> Optional[str]:
    inner = obj.get(key) if isinstance(obj, dict) else None
    if isinstance(inner, dict) and inner.get("name"):
        return str(inner["name"])
    return None


class HttpRepository:
    """REST collaborator for the remote store (JSON bodies, camelCase keys)."""

    def __init__(self, base_url: str, token: str | None = None, timeout: float = 10):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout

    def _headers(self) -> dict:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _request(self, method: str, path: str, body: dict | None = None):
        url = f"{self.base_url}{path}"
        r = requests.request(method, url, json=body, headers=self._headers(), timeout=self.timeout)
        if r.status_code == 404:
            raise NotFoundError(f"{method} {path} -> 404 Not Found")
        if r.status_code >= 400:
            log.warning("store_request_failed method=%s path=%s status=%s", method, path, r.status_code)
        r.raise_for_status()
        if not r.content:
            return None
        return r.json()

    # ---------- Catalog ----------
    def list_products(self) -> list[Product]:
        rows = self._request("GET", "/products") or []
        return [self._to_product(r) for r in rows]

    def list_producers(self) -> list[tuple[int, str]]:
        rows = self._request("GET", "/producers") or []
        return [(int(r["id"]), str(r["name"])) for r in rows]

    def list_categories(self) -> list[tuple[int, str]]:
        rows = self._request("GET", "/categories") or []
        return [(int(r["id"]), str(r["name"])) for r in rows]

    @staticmethod
    def _to_product(r: dict) -> Product:
        category = r.get("category") if isinstance(r.get("category"), dict) else {}
        producer = r.get("producer") if isinstance(r.get("producer"), dict) else {}
        return Product(
            id=int(r["id"]),
            name=str(r.get("name") or ""),
            unit=str(r.get("unit") or ""),
            category_id=_opt_int(r.get("categoryId", category.get("id"))),
            producer_id=_opt_int(r.get("producerId", producer.get("id"))),
            is_active=bool(r.get("isActive", True)),
            category_name=_nested_name(r, "category"),
            producer_name=_nested_name(r, "producer"),
        )

    # ---------- Product history ----------
    def list_history_entries(self) -> list[HistoryEntry]:
        rows = self._request("GET", "/product-history") or []
        return [self._to_history(r) for r in rows]

    def upsert_history_entry(self, entry: HistoryEntry) -> HistoryEntry:
        payload = {
            "productId": int(entry.product_id),
            "weekStartDate": to_wire_timestamp(entry.week_start),
            "receivedQuantity": entry.received_quantity,
            "soldQuantity": entry.sold_quantity,
            "unsoldQuantity": entry.unsold_quantity,
            "description": entry.description or "",
        }
        if entry.price is not None:
            payload["price"] = float(entry.price)

        if entry.id:
            data = self._request("PATCH", f"/product-history/{int(entry.id)}", payload)
        else:
            data = self._request("POST", "/product-history", payload)
        if isinstance(data, dict) and "id" in data:
            return self._to_history(data)
        return entry

    @staticmethod
    def _to_history(r: dict) -> HistoryEntry:
        price = r.get("price")
        return HistoryEntry(
            id=_opt_int(r.get("id")),
            product_id=int(r["productId"]),
            week_start=to_date(r["weekStartDate"]),
            received_quantity=r.get("receivedQuantity") or 0,
            sold_quantity=r.get("soldQuantity") or 0,
            unsold_quantity=r.get("unsoldQuantity") or 0,
            price=float(price) if price is not None else None,
            description=str(r.get("description") or ""),
        )

    # ---------- Orders ----------
    def list_orders(self) -> list[Order]:
        rows = self._request("GET", "/orders") or []
        return [self._to_order(r) for r in rows]

    def create_order(
        self,
        order_date: date,
        status: str,
        total_amount: float,
        items: Iterable[dict],
        customer_id: Optional[int] = None,
        client_id: Optional[int] = None,
    ) -> int:
        payload = {
            "orderDate": to_date(order_date).isoformat(),
            "status": status,
            "totalAmount": float(total_amount),
            "orderItems": [
                {
                    "productId": int(it["product_id"]),
                    "quantity": it["quantity"],
                    "unitPrice": float(it["unit_price"]),
                }
                for it in items
            ],
        }
        if client_id is not None:
            payload["clientId"] = int(client_id)
        else:
            payload["customerId"] = int(customer_id)
        data = self._request("POST", "/orders", payload)
        return int(data["id"])

    def update_order(self, order_id: int, patch: dict) -> None:
        keys = {
            "status": "status",
            "customer_id": "customerId",
            "client_id": "clientId",
            "total_amount": "totalAmount",
        }
        body = {keys[k]: v for k, v in patch.items() if k in keys and v is not None}
        # an order has exactly one party: setting one side clears the other
        if patch.get("client_id") is not None:
            body["customerId"] = None
        elif patch.get("customer_id") is not None:
            body["clientId"] = None
        self._request("PATCH", f"/orders/{int(order_id)}", body)

    def delete_order(self, order_id: int) -> None:
        self._request("DELETE", f"/orders/{int(order_id)}")

    def create_order_item(self, order_id: int, product_id: int, quantity: float, unit_price: float) -> int:
        data = self._request(
            "POST",
            "/order-item",
            {"orderId": int(order_id), "productId": int(product_id), "quantity": quantity, "unitPrice": float(unit_price)},
        )
        return int(data["id"]) if isinstance(data, dict) and "id" in data else 0

    def update_order_item(self, item_id: int, product_id: int, quantity: float, unit_price: float) -> None:
        self._request(
            "PATCH",
            f"/order-item/{int(item_id)}",
            {"productId": int(product_id), "quantity": quantity, "unitPrice": float(unit_price)},
        )

    def delete_order_item(self, item_id: int) -> None:
        self._request("DELETE", f"/order-item/{int(item_id)}")

    @staticmethod
    def _to_order_item(r: dict) -> OrderItem:
        product = r.get("product") if isinstance(r.get("product"), dict) else {}
        unit = r.get("unit") or product.get("unit") or ""
        return OrderItem(
            id=int(r["id"]),
            order_id=int(r.get("orderId") or 0),
            product_id=int(r.get("productId") or product.get("id") or 0),
            quantity=r.get("quantity") or 0,
            unit_price=float(r.get("unitPrice") or 0),
            unit=str(unit),
            product_name=product.get("name"),
            producer_name=_nested_name(product, "producer"),
        )

    def _to_order(self, r: dict) -> Order:
        return Order(
            id=int(r["id"]),
            order_date=parse_timestamp(str(r["orderDate"])),
            status=str(r.get("status") or "PENDING"),
            total_amount=float(r.get("totalAmount") or 0),
            customer_id=_opt_int(r.get("customerId")),
            client_id=_opt_int(r.get("clientId")),
            items=tuple(self._to_order_item(it) for it in (r.get("orderItems") or [])),
        )
