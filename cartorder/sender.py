"""Publication of outbox records as messages to a broker."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Optional, Protocol, Sequence

from cartorder.loms_models import ErrOrder, OutboxOrder, SendStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProducerMessage:
    """A message addressed to a topic, keyed by order id."""

    topic: str
    key: str
    value: str
    partition: int = -1


class Producer(Protocol):
    def send_messages(self, messages: list[ProducerMessage]) -> None: ...


class Repository(Protocol):
    def get_outbox_orders(self) -> Sequence[OutboxOrder]: ...

    def update_outbox_orders(self, outbox_ids: Sequence[int], status: SendStatus) -> None: ...

    def save_failed_sends_orders(self, orders: Sequence[ErrOrder]) -> None: ...


class OrderSender:
    """Reads open outbox records and publishes them in batches."""

    def __init__(
        self, producer: Producer, topic: str, batch_size: int, repository: Repository
    ) -> None:
        self._producer = producer
        self._topic = topic
        self._batch_size = batch_size
        self._repository = repository
        self._batch: list[ProducerMessage] = []
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def pending(self) -> list[ProducerMessage]:
        """Messages queued but not yet sent."""
        return list(self._batch)

    def send_order_id(self, outbox_order: OutboxOrder) -> None:
        """Queue a record and send the batch once it is full; producer errors propagate."""
        self._batch.append(
            ProducerMessage(
                topic=self._topic,
                key=str(outbox_order.order_id),
                value=outbox_order.to_json(),
            )
        )
        if len(self._batch) >= self._batch_size:
            try:
                self._producer.send_messages(list(self._batch))
            except Exception as exc:
                logger.warning("Kafka SendMessages err: %s", exc)
                raise
            self._batch.clear()

    def run_once(self) -> tuple[list[int], list[ErrOrder]]:
        """Publish every open record once; return the sent ids and the failures."""
        try:
            outbox_orders = self._repository.get_outbox_orders()
        except Exception as exc:
            logger.warning("Err GetOutboxOrders: %s", exc)
            return [], []

        success: list[int] = []
        failed: list[ErrOrder] = []
        for order in outbox_orders:
            try:
                self.send_order_id(order)
            except Exception as exc:
                logger.warning("Err SendOrderID: %s", exc)
                failed.append(ErrOrder(order=order, error=exc))
            else:
                success.append(order.id)

        if failed:
            try:
                self._repository.save_failed_sends_orders(failed)
            except Exception as exc:
                logger.warning("SaveFailedSendsOrders: %s", exc)
        if success:
            try:
                self._repository.update_outbox_orders(success, SendStatus.CLOSED)
            except Exception as exc:
                logger.warning("UpdateOutboxOrders: %s", exc)
        return success, failed

    def run(self, interval: float = 1.0) -> None:
        """Publish in the background every ``interval`` seconds until stopped."""
        if self._thread is not None and self._thread.is_alive():
            raise RuntimeError("sender is already running")
        self._stop.clear()

        def loop() -> None:
            while not self._stop.wait(interval):
                self.run_once()

        self._thread = threading.Thread(target=loop, name="order-sender", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        """Stop the background loop and wait for it to end."""
        self._stop.set()
        thread, self._thread = self._thread, None
        if thread is not None and thread is not threading.current_thread():
            thread.join()