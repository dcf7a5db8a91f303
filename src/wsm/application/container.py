from __future__ import annotations

from dataclasses import dataclass

from wsm.config import ApiSettings
from wsm.repositories.http_repo import HttpRepository
from wsm.services.ledger_service import LedgerService
from wsm.services.order_service import OrderService
from wsm.services.recap_service import RecapService


@dataclass(frozen=True)
class AppContainer:
    settings: ApiSettings
    repo: HttpRepository
    ledger: LedgerService
    orders: OrderService
    recap: RecapService


def build_container(settings: ApiSettings, repo=None) -> AppContainer:
    repo = repo or HttpRepository(settings.base_url, token=settings.token, timeout=settings.timeout)

    ledger = LedgerService(repo, settings.carry_forward_category_ids, max_workers=settings.max_workers)
    orders = OrderService(repo, max_workers=settings.max_workers)
    recap = RecapService(repo)

    return AppContainer(
        settings=settings,
        repo=repo,
        ledger=ledger,
        orders=orders,
        recap=recap,
    )
