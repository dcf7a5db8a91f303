from __future__ import annotations

import logging
import unicodedata
from datetime import date, datetime
from typing import Iterable, Optional

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.table import Table, TableStyleInfo

from wsm.domain.errors import ValidationError
from wsm.domain.models import Order, OrderItem, RecapLine
from wsm.domain.weeks import to_date, week_bounds, week_label

log = logging.getLogger(__name__)

UNKNOWN_PRODUCT = "Produit inconnu"
UNKNOWN_PRODUCER = "Inconnu"
PARTIES = (None, "customer", "client")


def name_sort_key(name: str) -> tuple[str, str]:
    # accents and case are ignored first, the raw name breaks ties
    folded = "".join(c for c in unicodedata.normalize("NFKD", name) if not unicodedata.combining(c))
    return folded.casefold(), name


def orders_in_window(
    orders: Iterable[Order],
    week_start: date | datetime,
    week_end: date | datetime,
    party: Optional[str] = None,
) -> list[Order]:
    if party not in PARTIES:
        raise ValidationError(f"Unknown party filter: {party}", [("party", "must be customer or client")])
    start, end = to_date(week_start), to_date(week_end)
    out = []
    for o in orders:
        if party == "customer" and o.customer_id is None:
            continue
        if party == "client" and o.client_id is None:
            continue
        if start <= to_date(o.order_date) <= end:
            out.append(o)
    return sorted(out, key=lambda o: (to_date(o.order_date), o.id))


def _sum_lines(items: Iterable[OrderItem]) -> list[RecapLine]:
    totals: dict[tuple[str, str], float] = {}
    for it in items:
        key = (it.product_name or UNKNOWN_PRODUCT, it.unit or "")
        totals[key] = totals.get(key, 0) + it.quantity
    lines = [RecapLine(product_name=n, unit=u, quantity=q) for (n, u), q in totals.items()]
    return sorted(lines, key=lambda r: (name_sort_key(r.product_name), r.unit))


def aggregate_by_product_unit(
    orders: Iterable[Order],
    week_start: date | datetime,
    week_end: date | datetime,
    party: Optional[str] = None,
) -> list[RecapLine]:
    window = orders_in_window(orders, week_start, week_end, party)
    return _sum_lines(it for o in window for it in o.items)


def aggregate_by_producer_then_product(
    orders: Iterable[Order],
    week_start: date | datetime,
    week_end: date | datetime,
    party: Optional[str] = None,
) -> dict[str, list[RecapLine]]:
    by_producer: dict[str, list[OrderItem]] = {}
    for o in orders_in_window(orders, week_start, week_end, party):
        for it in o.items:
            by_producer.setdefault(it.producer_name or UNKNOWN_PRODUCER, []).append(it)
    return {producer: _sum_lines(by_producer[producer]) for producer in sorted(by_producer)}


class RecapService:
    def __init__(self, repo):
        self.repo = repo

    def recap_for_week(self, week: date, party: Optional[str] = None) -> list[RecapLine]:
        start, end = week_bounds(week)
        return aggregate_by_product_unit(self.repo.list_orders(), start, end, party)

    def recap_by_producer_for_week(self, week: date, party: Optional[str] = None) -> dict[str, list[RecapLine]]:
        start, end = week_bounds(week)
        return aggregate_by_producer_then_product(self.repo.list_orders(), start, end, party)

    def export_recap_excel(self, path: str, week: date, orders: Iterable[Order] | None = None, party: Optional[str] = None) -> None:
        orders = list(orders) if orders is not None else self.repo.list_orders()
        start, end = week_bounds(week)
        by_product = aggregate_by_product_unit(orders, start, end, party)
        by_producer = aggregate_by_producer_then_product(orders, start, end, party)

        wb = Workbook()

        def qty(cell):
            cell.number_format = "#,##0.##"

        def bold_row(ws, r):
            for c in ws[r]:
                c.font = Font(bold=True)

        def set_widths(ws, widths: dict[str, int]):
            for col, w in widths.items():
                ws.column_dimensions[col].width = w

        def add_table(ws, name: str, start_row: int, end_row: int, end_col: int):
            ref = f"A{start_row}:{get_column_letter(end_col)}{end_row}"
            tab = Table(displayName=name, ref=ref)
            tab.tableStyleInfo = TableStyleInfo(
                name="TableStyleMedium9",
                showRowStripes=True,
                showColumnStripes=False,
            )
            ws.add_table(tab)

        # -------- 1) By product --------
        ws = wb.active
        ws.title = "By product"
        ws["A1"] = f"Recap {week_label(start)}"
        ws["A1"].font = Font(bold=True, size=14)
        ws["A2"] = f"{start.isoformat()}  ->  {end.isoformat()}"

        ws.append([])
        ws.append(["Product", "Unit", "Quantity"])
        bold_row(ws, 4)
        for line in by_product:
            ws.append([line.product_name, line.unit, line.quantity])
            qty(ws[f"C{ws.max_row}"])
        set_widths(ws, {"A": 34, "B": 8, "C": 12})
        ws.freeze_panes = "A5"
        if ws.max_row >= 5:
            add_table(ws, "RecapByProduct", 4, ws.max_row, 3)

        # -------- 2) By producer --------
        ws2 = wb.create_sheet("By producer")
        ws2.append(["Producer", "Product", "Unit", "Quantity"])
        bold_row(ws2, 1)
        for producer, lines in by_producer.items():
            for line in lines:
                ws2.append([producer, line.product_name, line.unit, line.quantity])
                qty(ws2[f"D{ws2.max_row}"])
        set_widths(ws2, {"A": 26, "B": 34, "C": 8, "D": 12})
        ws2.freeze_panes = "A2"
        if ws2.max_row >= 2:
            add_table(ws2, "RecapByProducer", 1, ws2.max_row, 4)

        wb.save(path)
        log.info("recap_exported week=%s path=%s lines=%s", week_label(start), path, len(by_product))
