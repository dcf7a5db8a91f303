from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable

from wsm.domain.errors import PartialBatchFailure

log = logging.getLogger(__name__)

# (label, zero-argument callable)
Call = tuple[Any, Callable[[], Any]]


@dataclass
class BatchResult:
    succeeded: list[tuple[Any, Any]] = field(default_factory=list)
    failed: list[tuple[Any, BaseException]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed

    def extend(self, other: "BatchResult") -> None:
        self.succeeded.extend(other.succeeded)
        self.failed.extend(other.failed)

    def raise_for_failures(self, message: str) -> None:
        if self.failed:
            raise PartialBatchFailure(
                f"{message}: {len(self.failed)} of {len(self.succeeded) + len(self.failed)} calls failed",
                succeeded=self.succeeded,
                failed=self.failed,
            )


def run_batch(calls: Iterable[Call], max_workers: int = 8) -> BatchResult:
    """Issue independent calls concurrently and wait for every one of them.

    A failing call never cancels the others; results come back in submission order.
    """
    calls = list(calls)
    result = BatchResult()
    if not calls:
        return result

    with ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(calls)))) as pool:
        futures = [(label, pool.submit(fn)) for label, fn in calls]
        for label, fut in futures:
            try:
                result.succeeded.append((label, fut.result()))
            except Exception as e:
                log.warning("batch_call_failed call=%s error=%s", label, e)
                result.failed.append((label, e))
    return result
