"""Value types used by the order and stock service."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime
from enum import IntEnum


class OrderStatus(IntEnum):
    """Lifecycle state of an order."""

    UNKNOWN = 0
    NEW = 1
    AWAITING_PAYMENT = 2
    FAILED = 3
    PAYED = 4
    CANCELLED = 5

    def display_name(self) -> str:
        """Human-readable name of the status."""
        return _STATUS_NAMES[self]


_STATUS_NAMES = {
    OrderStatus.UNKNOWN: "Unknown order status id",
    OrderStatus.NEW: "New",
    OrderStatus.AWAITING_PAYMENT: "Awaiting payment",
    OrderStatus.FAILED: "Failed",
    OrderStatus.PAYED: "Payed",
    OrderStatus.CANCELLED: "Cancelled",
}


class SendStatus(IntEnum):
    """Delivery state of an outbox record."""

    UNKNOWN = 0
    OPEN = 1
    IN_PROGRESS = 2
    CLOSED = 3


@dataclass(frozen=True)
class Item:
    """An order line."""

    sku: int
    count: int


@dataclass(frozen=True)
class Stock:
    """Available units of a SKU in one warehouse."""

    warehouse_id: int
    count: int


@dataclass
class OrderData:
    """What is needed to create an order."""

    user: int = 0
    items: list[Item] = field(default_factory=list)


@dataclass
class OrderInfo:
    """A stored order as reported back to callers."""

    status: OrderStatus = OrderStatus.UNKNOWN
    user: int = 0
    items: list[Item] = field(default_factory=list)


@dataclass(frozen=True)
class OrderTimestamp:
    """An order identifier with its creation time."""

    id: int
    create_at: datetime


@dataclass(frozen=True)
class OutboxOrder:
    """A status change waiting to be published."""

    id: int
    order_id: int
    status: OrderStatus

    def to_json(self) -> str:
        """Compact JSON form used as the message body."""
        return json.dumps(
            {"id": self.id, "order_id": self.order_id, "status": int(self.status)},
            separators=(",", ":"),
        )


@dataclass(frozen=True)
class ErrOrder:
    """An outbox record that failed to be published, with its error."""

    order: OutboxOrder
    error: BaseException