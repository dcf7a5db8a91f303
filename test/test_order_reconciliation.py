from dataclasses import replace
from datetime import datetime

import pytest

from conftest import FakeStore
from wsm.domain.errors import PartialBatchFailure, ValidationError
from wsm.domain.models import ExistingItem, NewItem, Order, OrderItem, OrderItemDraft, Product
from wsm.services.order_service import OrderEditSession, OrderService, plan, ref_from_id

KNOWN = {5, 6}


def _order():
    return Order(
        id=42,
        order_date=datetime(2025, 6, 10, 9, 0),
        status="PENDING",
        total_amount=6.0,
        customer_id=7,
        items=(OrderItem(id=1, order_id=42, product_id=5, quantity=2, unit_price=3.0, unit="KG"),),
    )


def _store():
    return FakeStore(
        products=[
            Product(id=5, name="Pomme", unit="KG", category_id=1, producer_id=1),
            Product(id=6, name="Miel", unit="UN", category_id=2, producer_id=2),
        ],
        orders=[_order()],
    )


def test_plan_splits_updates_creates_and_recomputes_total():
    edited = [
        OrderItemDraft(ref_from_id(1), 5, 4, 3.0, "KG"),
        OrderItemDraft(ref_from_id(-999), 6, 1, 10.0, "UN"),
    ]

    p = plan(edited, [], KNOWN)

    assert [(d.ref, d.quantity) for d in p.to_update] == [(ExistingItem(1), 4)]
    assert [d.product_id for d in p.to_create] == [6]
    assert p.to_delete == []
    assert p.total_amount == 22


def test_negative_placeholder_ids_are_never_deleted():
    p = plan([], [3, -5, NewItem("tmp"), ExistingItem(3)], KNOWN)

    assert p.to_delete == [3]
    assert p.total_amount == 0


def test_removed_item_stays_deleted_when_the_same_product_is_added_again():
    session = OrderEditSession.start(_order())
    session.remove_item(ExistingItem(1))
    new_ref = session.add_item(product_id=5, quantity=3, unit_price=3.0, unit="KG")

    p = plan(session.items, session.pending_deletes, KNOWN)

    assert p.to_delete == [1]
    assert [d.ref for d in p.to_create] == [new_ref]
    assert p.to_update == []
    assert p.total_amount == 9


def test_validation_enumerates_every_offending_index():
    edited = [
        OrderItemDraft(ExistingItem(1), 5, 1, 1.0, "KG"),
        OrderItemDraft(NewItem("a"), 99, 1, 1.0, "KG"),
        OrderItemDraft(NewItem("b"), 5, 0, -1.0, ""),
    ]

    with pytest.raises(ValidationError) as exc:
        plan(edited, [], KNOWN)

    assert {i for i, _ in exc.value.issues} == {1, 2}
    assert len([1 for i, _ in exc.value.issues if i == 2]) == 3


def test_save_edit_patches_order_then_dispatches_items():
    store = _store()
    svc = OrderService(store)
    session = OrderEditSession.start(_order())
    session.update_item(ExistingItem(1), quantity=4)
    session.add_item(product_id=6, quantity=1, unit_price=10.0, unit="UN")
    session.status = "PREPARED"

    p = svc.save_edit(session)

    assert p.total_amount == 22
    assert store.calls[0] == (
        "update_order",
        42,
        {"status": "PREPARED", "customer_id": 7, "client_id": None, "total_amount": 22.0},
    )
    assert store.mutations("update_item") == [("update_item", 1, 5, 4, 3.0)]
    assert store.mutations("create_item") == [("create_item", 42, 6, 1, 10.0)]
    assert store.mutations("delete_item") == []


def test_save_edit_rejects_order_without_exactly_one_party():
    store = _store()
    session = OrderEditSession.start(_order())
    session.client_id = 3

    with pytest.raises(ValidationError):
        OrderService(store).save_edit(session)
    assert store.calls == []

    session.set_client(3)
    assert session.customer_id is None
    OrderService(store).save_edit(session)
    assert store.calls[0][2]["client_id"] == 3


def test_save_edit_surfaces_failures_as_one_aggregate():
    store = _store()
    store.fail_item_ids = {1}
    session = OrderEditSession.start(_order())
    session.add_item(product_id=6, quantity=2, unit_price=1.5, unit="UN")

    with pytest.raises(PartialBatchFailure) as exc:
        OrderService(store).save_edit(session)

    assert [label for label, _ in exc.value.failed] == [("update", 1)]
    assert len(store.mutations("create_item")) == 1


def test_create_order_computes_total_and_validates_items():
    store = _store()
    svc = OrderService(store)

    oid = svc.create_order(
        items=[{"product_id": 5, "quantity": 2.5, "unit_price": 4.0, "unit": "KG"}],
        client_id=9,
    )

    call = store.mutations("create_order")[0]
    assert call[1] == oid
    assert call[2] == 10.0
    assert call[4:] == (None, 9)

    with pytest.raises(ValidationError):
        svc.create_order(items=[], customer_id=1)
    with pytest.raises(ValidationError):
        svc.create_order(items=[{"product_id": 5, "quantity": "x", "unit_price": 1, "unit": "KG"}], customer_id=1)


def test_delete_order_goes_straight_to_the_store():
    store = _store()

    OrderService(store).delete_order(42)

    assert store.calls == [("delete_order", 42)]


def test_invalid_item_stops_save_before_any_store_call():
    store = _store()
    session = OrderEditSession.start(_order())
    session.remove_item(ExistingItem(1))
    session.add_item(product_id=6, quantity=0, unit_price=10.0, unit="UN")

    with pytest.raises(ValidationError) as exc:
        OrderService(store).save_edit(session)

    assert [i for i, _ in exc.value.issues] == [0]
    assert store.calls == []
    assert session.pending_deletes == {1}


def test_deletes_are_sent_after_updates_and_creates_have_finished():
    order = replace(_order(), items=(
        OrderItem(id=1, order_id=42, product_id=5, quantity=2, unit_price=3.0, unit="KG"),
        OrderItem(id=2, order_id=42, product_id=6, quantity=1, unit_price=10.0, unit="UN"),
        OrderItem(id=3, order_id=42, product_id=6, quantity=1, unit_price=10.0, unit="UN"),
    ))
    store = _store()
    session = OrderEditSession.start(order)
    session.remove_item(ExistingItem(2))
    session.add_item(product_id=5, quantity=1, unit_price=3.0, unit="KG")
    session.add_item(product_id=6, quantity=2, unit_price=10.0, unit="UN")

    OrderService(store, max_workers=4).save_edit(session)

    kinds = [c[0] for c in store.calls]
    assert kinds[0] == "update_order"
    assert sorted(kinds[1:5]) == ["create_item", "create_item", "update_item", "update_item"]
    assert kinds[5:] == ["delete_item"]
    assert store.calls[-1] == ("delete_item", 2)


def test_new_row_keys_are_scoped_to_their_session():
    first = OrderEditSession.start(_order())
    second = OrderEditSession.start(_order())

    assert first.add_item(5, 1, 1.0, "KG") == second.add_item(5, 1, 1.0, "KG") == NewItem("new-1")
    assert first.add_item(5, 1, 1.0, "KG") == NewItem("new-2")
