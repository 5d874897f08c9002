"""Consumption of order status messages and their notification."""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass
from typing import Iterable, Optional, Protocol, Union

from cartorder.loms_models import OrderStatus

logger = logging.getLogger(__name__)


class _Message(Protocol):
    value: bytes


class _Session(Protocol):
    done: threading.Event

    def mark_message(self, message: _Message, metadata: str) -> None: ...


def _as_int(payload: dict, key: str) -> int:
    value = payload.get(key)
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"field {key!r} must be an integer, got {value!r}")
    return value


@dataclass(frozen=True)
class Order:
    """A status change of one order as carried in a message."""

    order_id: int = 0
    status: int = OrderStatus.UNKNOWN

    @classmethod
    def from_json(cls, data: Union[bytes, str]) -> "Order":
        """Decode a message body; raises ValueError on malformed input."""
        try:
            payload = json.loads(data)
        except ValueError as exc:
            raise ValueError(f"invalid order message: {exc}") from exc
        if not isinstance(payload, dict):
            raise ValueError("order message must be a JSON object")
        return cls(order_id=_as_int(payload, "order_id"), status=_as_int(payload, "status"))

    @property
    def status_name(self) -> str:
        """Readable status, empty for values outside the known set."""
        try:
            return OrderStatus(self.status).display_name()
        except ValueError:
            return ""


class Consumer:
    """Handles a consumer-group session, logging every order status change."""

    def __init__(self) -> None:
        self.ready = threading.Event()

    def setup(self, session: _Session) -> None:
        """Signal that the consumer is up."""
        self.ready.set()

    def cleanup(self, session: _Session) -> None:
        """Withdraw the readiness signal once the session is over."""
        self.ready.clear()

    def handle_message(self, session: _Session, message: _Message) -> Optional[Order]:
        """Decode and log one message; mark it consumed when it decodes."""
        try:
            order = Order.from_json(message.value)
        except ValueError as exc:
            logger.warning("Unmarshall err: %s", exc)
            return None
        logger.info("Order: %d. New status: %s", order.order_id, order.status_name)
        session.mark_message(message, "")
        return order

    def consume_claim(self, session: _Session, messages: Iterable[_Message]) -> None:
        """Handle messages until they run out or the session ends."""
        for message in messages:
            if session.done.is_set():
                return
            self.handle_message(session, message)