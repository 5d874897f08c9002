"""Order rules: creating, paying, cancelling and inspecting orders and stocks."""

from __future__ import annotations

from typing import Protocol, Sequence

from cartorder.loms_models import OrderData, OrderInfo, OrderStatus, Stock

_CANCELLABLE = frozenset({OrderStatus.NEW, OrderStatus.AWAITING_PAYMENT})


class LomsError(Exception):
    """Raised when an order operation fails."""


class WrongStatusError(LomsError):
    """Raised when an order is not in a state that allows the operation."""


class Repository(Protocol):
    def create_order(self, order: OrderData) -> int: ...

    def stocks(self, sku: int) -> Sequence[Stock]: ...

    def reserved_items(self, order_id: int) -> None: ...

    def list_order(self, order_id: int) -> OrderInfo: ...

    def order_payed(self, order_id: int) -> None: ...

    def cancel_order(self, order_id: int) -> None: ...

    def get_status(self, order_id: int) -> OrderStatus: ...


class LomsService:
    """Business rules of orders, built on a repository."""

    def __init__(self, repository: Repository) -> None:
        self._repository = repository

    def create_order(self, order: OrderData) -> int:
        """Store a new order, reserve its items and return its id."""
        order_id = self._repository.create_order(order)
        self._repository.reserved_items(order_id)
        return order_id

    def list_order(self, order_id: int) -> OrderInfo:
        """Return a stored order."""
        return self._repository.list_order(order_id)

    def order_payed(self, order_id: int) -> None:
        """Mark an order awaiting payment as paid."""
        status = self._repository.get_status(order_id)
        if status != OrderStatus.AWAITING_PAYMENT:
            raise WrongStatusError("wrong status for pay")
        self._repository.order_payed(order_id)

    def cancel_order(self, order_id: int) -> None:
        """Cancel an order that is new or awaiting payment."""
        try:
            status = self._repository.get_status(order_id)
        except Exception as exc:
            raise LomsError(f"service cancel order: {exc}") from exc
        if status not in _CANCELLABLE:
            raise WrongStatusError("wrong status for cancel")
        self._repository.cancel_order(order_id)

    def stocks(self, sku: int) -> Sequence[Stock]:
        """Return the warehouses that hold units of ``sku``."""
        return self._repository.stocks(sku)