from __future__ import annotations

import itertools
import logging
import uuid
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Collection, Iterable, Optional

from wsm.domain.errors import NotFoundError, ValidationError
from wsm.domain.models import (
    ORDER_STATUSES,
    ExistingItem,
    NewItem,
    Order,
    OrderItemDraft,
    OrderItemRef,
    ReconciliationPlan,
)
from wsm.repositories.batch import run_batch
from wsm.repositories.contracts import StoreRepository

log = logging.getLogger("wsm.orders")


def ref_from_id(item_id: Optional[int]) -> OrderItemRef:
    """Legacy payloads mark unsaved rows with a missing, zero or negative id."""
    if isinstance(item_id, int) and not isinstance(item_id, bool) and item_id > 0:
        return ExistingItem(item_id)
    return NewItem(f"legacy:{item_id}" if item_id is not None else f"new-{uuid.uuid4().hex}")


def order_total(items: Iterable[OrderItemDraft]) -> float:
    return sum(float(it.quantity) * float(it.unit_price) for it in items)


def _as_float(value) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def validate_items(items: list[OrderItemDraft], known_product_ids: Collection[int]) -> None:
    issues: list[tuple[object, str]] = []
    for idx, it in enumerate(items):
        if it.product_id is None or it.product_id not in known_product_ids:
            issues.append((idx, "unknown product"))
        qty = _as_float(it.quantity)
        if qty is None or qty <= 0:
            issues.append((idx, "quantity must be > 0"))
        price = _as_float(it.unit_price)
        if price is None or price < 0:
            issues.append((idx, "unit price must be >= 0"))
        if not (it.unit or "").strip():
            issues.append((idx, "unit is required"))
    if issues:
        rows = sorted({i for i, _ in issues})
        raise ValidationError(f"Invalid order items at index {', '.join(map(str, rows))}.", issues)


def plan(
    edited_items: Iterable[OrderItemDraft],
    deleted: Iterable[OrderItemRef | int],
    known_product_ids: Collection[int],
) -> ReconciliationPlan:
    items = list(edited_items)
    validate_items(items, known_product_ids)

    to_delete: list[int] = []
    for d in deleted:
        ref = d if isinstance(d, (ExistingItem, NewItem)) else ref_from_id(d)
        if isinstance(ref, ExistingItem) and ref.id not in to_delete:
            to_delete.append(ref.id)
    pending = set(to_delete)

    to_create = [it for it in items if isinstance(it.ref, NewItem)]
    to_update = [it for it in items if isinstance(it.ref, ExistingItem) and it.ref.id not in pending]
    return ReconciliationPlan(
        to_create=to_create,
        to_update=to_update,
        to_delete=to_delete,
        total_amount=order_total(items),
    )


def validate_header(status: str, customer_id: Optional[int], client_id: Optional[int]) -> None:
    issues: list[tuple[object, str]] = []
    if status not in ORDER_STATUSES:
        issues.append(("status", f"must be one of {', '.join(ORDER_STATUSES)}"))
    if (customer_id is None) == (client_id is None):
        issues.append(("customer_id/client_id", "exactly one of customer or client must be set"))
    if issues:
        raise ValidationError("Invalid order header.", issues)


@dataclass
class OrderEditSession:
    order_id: int
    status: str
    customer_id: Optional[int] = None
    client_id: Optional[int] = None
    items: list[OrderItemDraft] = field(default_factory=list)
    pending_deletes: set[int] = field(default_factory=set)
    _keys: itertools.count = field(default_factory=lambda: itertools.count(1), repr=False, compare=False)

    @classmethod
    def start(cls, order: Order) -> "OrderEditSession":
        return cls(
            order_id=order.id,
            status=order.status,
            customer_id=order.customer_id,
            client_id=order.client_id,
            items=[
                OrderItemDraft(
                    ref=ExistingItem(it.id),
                    product_id=it.product_id,
                    quantity=it.quantity,
                    unit_price=it.unit_price,
                    unit=it.unit,
                )
                for it in order.items
            ],
        )

    def _index(self, ref: OrderItemRef) -> int:
        for i, it in enumerate(self.items):
            if it.ref == ref:
                return i
        raise NotFoundError(f"Order item {ref} is not part of this edit.")

    def add_item(self, product_id: Optional[int], quantity: float, unit_price: float, unit: str) -> NewItem:
        ref = NewItem(f"new-{next(self._keys)}")
        self.items.append(OrderItemDraft(ref, product_id, quantity, unit_price, unit))
        return ref

    def update_item(self, ref: OrderItemRef, **changes) -> OrderItemDraft:
        i = self._index(ref)
        self.items[i] = replace(self.items[i], **changes)
        return self.items[i]

    def remove_item(self, ref: OrderItemRef) -> None:
        del self.items[self._index(ref)]
        # recorded now, so re-adding the same product later stays a create
        if isinstance(ref, ExistingItem):
            self.pending_deletes.add(ref.id)

    def set_customer(self, customer_id: int) -> None:
        self.customer_id, self.client_id = int(customer_id), None

    def set_client(self, client_id: int) -> None:
        self.client_id, self.customer_id = int(client_id), None

    @property
    def total_amount(self) -> float:
        return order_total(self.items)


class OrderService:
    def __init__(self, repo: StoreRepository, max_workers: int = 8):
        self.repo = repo
        self.max_workers = max_workers

    def list_orders(self) -> list[Order]:
        return self.repo.list_orders()

    def _known_product_ids(self) -> set[int]:
        return {p.id for p in self.repo.list_products()}

    def save_edit(self, session: OrderEditSession, known_product_ids: Collection[int] | None = None) -> ReconciliationPlan:
        validate_header(session.status, session.customer_id, session.client_id)
        known = known_product_ids if known_product_ids is not None else self._known_product_ids()
        p = plan(session.items, session.pending_deletes, known)

        self.repo.update_order(
            session.order_id,
            {
                "status": session.status,
                "customer_id": session.customer_id,
                "client_id": session.client_id,
                "total_amount": p.total_amount,
            },
        )

        oid = session.order_id
        calls = [
            (("update", it.ref.id), (lambda it=it: self.repo.update_order_item(it.ref.id, it.product_id, it.quantity, it.unit_price)))
            for it in p.to_update
        ] + [
            (("create", it.ref.temp_key), (lambda it=it: self.repo.create_order_item(oid, it.product_id, it.quantity, it.unit_price)))
            for it in p.to_create
        ]
        result = run_batch(calls, self.max_workers)
        result.extend(
            run_batch(
                [(("delete", item_id), (lambda item_id=item_id: self.repo.delete_order_item(item_id))) for item_id in p.to_delete],
                self.max_workers,
            )
        )

        if not result.ok:
            log.error("order_save_failed order_id=%s ok=%s failed=%s", oid, len(result.succeeded), len(result.failed))
            result.raise_for_failures(f"Saving order {oid} failed")

        session.pending_deletes.clear()
        log.info(
            "order_saved order_id=%s created=%s updated=%s deleted=%s total=%.2f",
            oid, len(p.to_create), len(p.to_update), len(p.to_delete), p.total_amount,
        )
        return p

    def create_order(
        self,
        items: Iterable[dict],
        customer_id: Optional[int] = None,
        client_id: Optional[int] = None,
        order_date: Optional[date] = None,
        status: str = "PENDING",
        known_product_ids: Collection[int] | None = None,
    ) -> int:
        """
        items: [{product_id, quantity, unit_price, unit}]
        """
        validate_header(status, customer_id, client_id)
        drafts = [
            OrderItemDraft(
                ref=NewItem(f"row-{idx}"),
                product_id=it.get("product_id"),
                quantity=it.get("quantity"),
                unit_price=it.get("unit_price"),
                unit=it.get("unit") or "",
            )
            for idx, it in enumerate(items)
        ]
        if not drafts:
            raise ValidationError("An order needs at least one item.", [("items", "empty")])
        known = known_product_ids if known_product_ids is not None else self._known_product_ids()
        validate_items(drafts, known)

        total = order_total(drafts)
        order_id = self.repo.create_order(
            order_date=order_date or date.today(),
            status=status,
            total_amount=total,
            items=[{"product_id": d.product_id, "quantity": d.quantity, "unit_price": d.unit_price} for d in drafts],
            customer_id=customer_id,
            client_id=client_id,
        )
        log.info("order_created order_id=%s items=%s total=%.2f", order_id, len(drafts), total)
        return order_id

    def delete_order(self, order_id: int) -> None:
        self.repo.delete_order(int(order_id))
        log.info("order_deleted order_id=%s", order_id)
