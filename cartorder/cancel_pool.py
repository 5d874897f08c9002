"""A worker pool that cancels orders left unpaid for too long."""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta
from typing import Callable, Iterable, Optional, Protocol

from cartorder.loms_models import OrderTimestamp

PAYMENT_WINDOW = timedelta(minutes=10)


class OrderCanceling(Protocol):
    def cancel_order(self, order_id: int) -> None: ...


class CancelWorkerPool:
    """Checks submitted orders and cancels those older than the payment window.

    Cancellation errors are collected rather than raised; the order will be
    tried again on a later pass.
    """

    def __init__(
        self,
        order_canceling: OrderCanceling,
        workers: int,
        *,
        expire_after: timedelta = PAYMENT_WINDOW,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        if workers < 1:
            raise ValueError("workers must be at least 1")
        self._canceling = order_canceling
        self._expire_after = expire_after
        self._clock = clock
        self._executor = ThreadPoolExecutor(max_workers=workers)
        self._errors: list[Exception] = []
        self._lock = threading.Lock()

    def _now(self, order: OrderTimestamp) -> datetime:
        if self._clock is not None:
            return self._clock()
        return datetime.now(order.create_at.tzinfo)

    def _check(self, order: OrderTimestamp) -> None:
        if self._now(order) - order.create_at <= self._expire_after:
            return
        try:
            self._canceling.cancel_order(order.id)
        except Exception as exc:  # collected, retried on the next pass
            with self._lock:
                self._errors.append(exc)

    def submit(self, orders: Iterable[OrderTimestamp]) -> None:
        """Queue orders for checking; raises RuntimeError once closed."""
        for order in orders:
            self._executor.submit(self._check, order)

    def close(self) -> list[Exception]:
        """Wait for queued work to finish and return the cancellation errors."""
        self._executor.shutdown(wait=True)
        with self._lock:
            return list(self._errors)

    def __enter__(self) -> "CancelWorkerPool":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()