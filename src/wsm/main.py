from __future__ import annotations

import argparse
import logging
import sys
from datetime import date
from pathlib import Path

from wsm.application.container import build_container
from wsm.config import AppPaths, get_api_settings, get_app_paths
from wsm.domain.errors import AppError
from wsm.domain.weeks import parse_week_label, week_label
from wsm.logging_config import setup_logging

log = logging.getLogger(__name__)


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="wsm", description="Weekly stock ledger and order recap")
    sub = parser.add_subparsers(dest="command", required=True)

    recap = sub.add_parser("recap", help="quantities ordered during a week")
    recap.add_argument("--week", default=None, help="YYYY-Wnn, defaults to the current week")
    recap.add_argument("--party", choices=("customer", "client"), default=None)
    recap.add_argument("--by-producer", action="store_true")
    recap.add_argument(
        "--out",
        nargs="?",
        const="",
        default=None,
        help="write an .xlsx workbook instead of printing; bare file names and no value go to the exports folder",
    )

    sub.add_parser("low-stock", help="carry-forward products with little stock left last week")

    history = sub.add_parser("history", help="ledger entries of one product, newest first")
    history.add_argument("--product", type=int, required=True)
    return parser


def _fmt(q) -> str:
    return f"{q:g}" if isinstance(q, float) else str(q)


def _recap_path(out: str, week: date, paths: AppPaths) -> Path:
    if not out:
        return paths.exports_dir / f"recap_{week_label(week)}.xlsx"
    target = Path(out)
    return target if target.parent != Path(".") else paths.exports_dir / target


def run(argv: list[str] | None = None, paths: AppPaths | None = None) -> int:
    args = _parser().parse_args(argv)
    settings = get_api_settings()
    c = build_container(settings)

    if args.command == "recap":
        week = parse_week_label(args.week) if args.week else date.today()
        if args.out is not None:
            target = _recap_path(args.out, week, paths or get_app_paths())
            c.recap.export_recap_excel(str(target), week, party=args.party)
            print(f"Recap {week_label(week)} written to {target}")
        elif args.by_producer:
            for producer, lines in c.recap.recap_by_producer_for_week(week, args.party).items():
                print(producer)
                for line in lines:
                    print(f"  {_fmt(line.quantity)} {line.product_name} {line.unit}")
        else:
            for line in c.recap.recap_for_week(week, args.party):
                print(f"{_fmt(line.quantity)} {line.product_name} {line.unit}")

    elif args.command == "low-stock":
        alerts = c.ledger.low_stock(threshold=settings.low_stock_threshold)
        for a in alerts:
            print(f"{a.product.name}: {_fmt(a.unsold_quantity)} {a.product.unit} left ({week_label(a.week_start)})")
        print(f"{len(alerts)} product(s) low on stock")

    elif args.command == "history":
        for h in c.ledger.product_history(args.product):
            print(
                f"{week_label(h.week_start)}  received={_fmt(h.received_quantity)} sold={_fmt(h.sold_quantity)} "
                f"unsold={_fmt(h.unsold_quantity)} price={'' if h.price is None else _fmt(h.price)} {h.description}"
            )
    return 0


def main() -> None:
    paths = get_app_paths()
    setup_logging(paths.logs_dir, level=logging.INFO)
    try:
        code = run(paths=paths)
    except AppError as e:
        log.error("command_failed error=%s", e)
        print(f"error: {e}", file=sys.stderr)
        code = 1
    sys.exit(code)


if __name__ == "__main__":
    main()
