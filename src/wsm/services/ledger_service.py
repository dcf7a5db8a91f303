from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Iterable, Optional

from wsm.domain.errors import NotFoundError, ValidationError
from wsm.domain.models import HistoryEntry, LowStockAlert, Product
from wsm.domain.weeks import monday_of_previous_week, monday_of_week
from wsm.repositories.batch import run_batch
from wsm.repositories.contracts import StoreRepository

log = logging.getLogger("wsm.ledger")

NUMERIC_FIELDS = ("received_quantity", "sold_quantity", "unsold_quantity", "price")
TEXT_FIELDS = ("description",)


@dataclass
class InventoryLedger:
    """One week of ledger entries, owned by a single editing session."""

    week_start: date
    entries: dict[int, HistoryEntry] = field(default_factory=dict)
    modified: set[int] = field(default_factory=set)


@dataclass(frozen=True)
class SavePlan:
    creates: list[HistoryEntry]
    updates: list[HistoryEntry]

    def __len__(self) -> int:
        return len(self.creates) + len(self.updates)


def _to_number(value) -> float | int:
    # lenient like a form field: "2,5" is accepted, garbage becomes 0
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        n = value
    else:
        try:
            n = float(str(value).strip().replace(",", "."))
        except ValueError:
            return 0
    if n != n or n in (float("inf"), float("-inf")):
        return 0
    if isinstance(n, float) and n.is_integer():
        return int(n)
    return n


def _index_by_week(history: Iterable[HistoryEntry]) -> dict[tuple[int, date], HistoryEntry]:
    out: dict[tuple[int, date], HistoryEntry] = {}
    for h in history:
        out.setdefault((int(h.product_id), monday_of_week(h.week_start)), h)
    return out


def build(
    products: Iterable[Product],
    history: Iterable[HistoryEntry],
    selected_week_monday: date,
    carry_forward_category_ids: Iterable[int] = (),
) -> InventoryLedger:
    week = monday_of_week(selected_week_monday)
    previous = monday_of_previous_week(week)
    carry = {int(c) for c in carry_forward_category_ids}
    by_week = _index_by_week(history)

    ledger = InventoryLedger(week_start=week)
    for p in products:
        if not p.is_active:
            continue
        existing = by_week.get((p.id, week))
        if existing is not None:
            ledger.entries[p.id] = replace(existing, week_start=week)
            continue

        received = 0
        if p.category_id is not None and p.category_id in carry:
            prev = by_week.get((p.id, previous))
            if prev is not None:
                received = prev.unsold_quantity
        ledger.entries[p.id] = HistoryEntry(product_id=p.id, week_start=week, received_quantity=received)
    return ledger


def edit(ledger: InventoryLedger, product_id: int, field_name: str, value) -> HistoryEntry:
    pid = int(product_id)
    entry = ledger.entries.get(pid)
    if entry is None:
        raise NotFoundError(f"No ledger entry for product {pid} in week {ledger.week_start}.")

    if field_name == "price":
        if value is None or (isinstance(value, str) and not value.strip()):
            new_value = None
        else:
            new_value = float(_to_number(value))
    elif field_name in NUMERIC_FIELDS:
        new_value = _to_number(value)
    elif field_name in TEXT_FIELDS:
        new_value = "" if value is None else str(value)
    else:
        raise ValidationError(f"Unknown ledger field: {field_name}", [(field_name, "unknown field")])

    updated = replace(entry, **{field_name: new_value})
    ledger.entries[pid] = updated
    ledger.modified.add(pid)
    return updated


def plan_save(ledger: InventoryLedger) -> SavePlan:
    creates: list[HistoryEntry] = []
    updates: list[HistoryEntry] = []
    for pid in sorted(ledger.modified):
        entry = ledger.entries.get(pid)
        # weeks with nothing received are never persisted, even when edited
        if entry is None or not entry.received_quantity:
            continue
        if entry.id:
            updates.append(entry)
        else:
            creates.append(entry)
    return SavePlan(creates=creates, updates=updates)


def product_history(history: Iterable[HistoryEntry], product_id: int) -> list[HistoryEntry]:
    rows = [h for h in history if int(h.product_id) == int(product_id)]
    return sorted(rows, key=lambda h: h.week_start, reverse=True)


def low_stock(
    products: Iterable[Product],
    history: Iterable[HistoryEntry],
    today: date,
    category_ids: Iterable[int],
    threshold: float = 5,
) -> list[LowStockAlert]:
    """Carry-forward products whose stock left over last week is at or below threshold."""
    cats = {int(c) for c in category_ids}
    previous = monday_of_previous_week(today)
    by_week = _index_by_week(history)
    alerts = []
    for p in products:
        if not p.is_active or p.category_id not in cats:
            continue
        prev = by_week.get((p.id, previous))
        if prev is not None and prev.unsold_quantity <= threshold:
            alerts.append(LowStockAlert(product=p, unsold_quantity=prev.unsold_quantity, week_start=previous))
    return sorted(alerts, key=lambda a: a.unsold_quantity)


class LedgerService:
    def __init__(self, repo: StoreRepository, carry_forward_category_ids: Iterable[int] = (), max_workers: int = 8):
        self.repo = repo
        self.carry_forward_category_ids = tuple(int(c) for c in carry_forward_category_ids)
        self.max_workers = max_workers

    def load_week(self, week: date) -> InventoryLedger:
        products = self.repo.list_products()
        history = self.repo.list_history_entries()
        return build(products, history, week, self.carry_forward_category_ids)

    def save(self, ledger: InventoryLedger) -> InventoryLedger:
        """Persist modified entries and return the ledger rebuilt from the store.

        Raises PartialBatchFailure when any upsert fails. Entries that went through
        stay applied on the store: they leave the modified set and pick up their
        new ids, so saving again only retries the failed ones.
        """
        plan = plan_save(ledger)
        calls = [
            (e.product_id, (lambda e=e: self.repo.upsert_history_entry(e)))
            for e in plan.creates + plan.updates
        ]
        result = run_batch(calls, self.max_workers)

        if not result.ok:
            for pid, saved in result.succeeded:
                if isinstance(saved, HistoryEntry) and saved.id:
                    ledger.entries[pid] = replace(ledger.entries[pid], id=saved.id)
                ledger.modified.discard(pid)
            log.error(
                "ledger_save_failed week=%s ok=%s failed=%s",
                ledger.week_start, len(result.succeeded), len(result.failed),
            )
            result.raise_for_failures(f"Saving week {ledger.week_start} failed")

        log.info(
            "ledger_saved week=%s created=%s updated=%s skipped=%s",
            ledger.week_start, len(plan.creates), len(plan.updates), len(ledger.modified) - len(plan),
        )
        ledger.modified.clear()
        return self.load_week(ledger.week_start)

    def product_history(self, product_id: int) -> list[HistoryEntry]:
        return product_history(self.repo.list_history_entries(), product_id)

    def low_stock(self, today: Optional[date] = None, threshold: float = 5) -> list[LowStockAlert]:
        return low_stock(
            self.repo.list_products(),
            self.repo.list_history_entries(),
            today or date.today(),
            self.carry_forward_category_ids,
            threshold,
        )
