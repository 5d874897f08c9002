"""Request handling of the order service."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional, Protocol, Sequence

from cartorder.loms_models import Item, OrderData, OrderInfo, OrderStatus, Stock

logger = logging.getLogger(__name__)


class RequestError(Exception):
    """Raised when a request lacks required data."""


class Service(Protocol):
    def create_order(self, order: OrderData) -> int: ...

    def list_order(self, order_id: int) -> OrderInfo: ...

    def order_payed(self, order_id: int) -> None: ...

    def cancel_order(self, order_id: int) -> None: ...

    def stocks(self, sku: int) -> Sequence[Stock]: ...


class StatusMessage(Enum):
    """Order status as sent to clients."""

    NIL = "nil"
    NEW = "new"
    AWAITING_PAYMENT = "awaiting_payment"
    FAILED = "failed"
    PAYED = "payed"
    CANCELLED = "cancelled"


_STATUS_MESSAGES = {
    OrderStatus.NEW: StatusMessage.NEW,
    OrderStatus.AWAITING_PAYMENT: StatusMessage.AWAITING_PAYMENT,
    OrderStatus.FAILED: StatusMessage.FAILED,
    OrderStatus.PAYED: StatusMessage.PAYED,
    OrderStatus.CANCELLED: StatusMessage.CANCELLED,
}


@dataclass(frozen=True)
class ItemMessage:
    """An order line as carried in requests and responses."""

    sku: int = 0
    count: int = 0


@dataclass(frozen=True)
class CreateOrderRequest:
    """A request to create an order for a user."""

    user: int = 0
    items: Optional[list[ItemMessage]] = None


@dataclass(frozen=True)
class ListOrderResponse:
    """An order as sent back to clients."""

    status: StatusMessage = StatusMessage.NIL
    user: int = 0
    items: list[ItemMessage] = field(default_factory=list)


@dataclass(frozen=True)
class StockMessage:
    """Units of a SKU in one warehouse as sent back to clients."""

    warehouse_id: int = 0
    count: int = 0


def to_status_message(status: int) -> StatusMessage:
    """Map an order status to its message form; unknown values map to NIL."""
    try:
        return _STATUS_MESSAGES.get(OrderStatus(status), StatusMessage.NIL)
    except ValueError:
        return StatusMessage.NIL


def to_stocks_message(stocks: Iterable[Stock]) -> list[StockMessage]:
    """Map stocks to their message form."""
    return [StockMessage(warehouse_id=s.warehouse_id, count=s.count) for s in stocks]


def _to_order_data(request: Optional[CreateOrderRequest]) -> OrderData:
    if request is None or not request.items:
        raise RequestError("no items")
    return OrderData(
        user=request.user,
        items=[Item(sku=item.sku, count=item.count) for item in request.items],
    )


def _to_list_order_response(info: OrderInfo) -> ListOrderResponse:
    return ListOrderResponse(
        status=to_status_message(info.status),
        user=info.user,
        items=[ItemMessage(sku=item.sku, count=item.count) for item in info.items],
    )


class LomsHandler:
    """Translates requests into service calls and results into responses."""

    def __init__(self, service: Service) -> None:
        self._service = service

    def create_order(self, request: Optional[CreateOrderRequest]) -> int:
        """Create an order and return its id."""
        try:
            order = _to_order_data(request)
            return self._service.create_order(order)
        except Exception as exc:
            logger.warning("%s", exc)
            raise

    def list_order(self, order_id: int) -> ListOrderResponse:
        """Return an order."""
        try:
            info = self._service.list_order(order_id)
        except Exception as exc:
            logger.warning("%s", exc)
            raise
        return _to_list_order_response(info)

    def order_payed(self, order_id: int) -> None:
        """Mark an order as paid."""
        try:
            self._service.order_payed(order_id)
        except Exception as exc:
            logger.warning("%s", exc)
            raise

    def cancel_order(self, order_id: int) -> None:
        """Cancel an order."""
        try:
            self._service.cancel_order(order_id)
        except Exception as exc:
            logger.warning("%s", exc)
            raise

    def stocks(self, sku: int) -> list[StockMessage]:
        """Return the stocks of a SKU."""
        try:
            stocks = self._service.stocks(sku)
        except Exception as exc:
            logger.warning("%s", exc)
            raise
        return to_stocks_message(stocks)