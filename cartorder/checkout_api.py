"""Request handling of the cart service."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional, Protocol

from cartorder.checkout_models import CartInfo, Item
from cartorder.checkout_service import PurchaseError

logger = logging.getLogger(__name__)


class RequestError(Exception):
    """Raised when a request lacks required data."""


class Service(Protocol):
    def add_to_cart(self, user: int, sku: int, count: int) -> None: ...

    def delete_from_cart(self, user: int, sku: int, count: int) -> None: ...

    def list_cart(self, user: int) -> CartInfo: ...

    def purchase(self, user: int) -> int: ...


@dataclass(frozen=True)
class ProductInfo:
    """Who wants how many units of which product."""

    user: int = 0
    sku: int = 0
    count: int = 0


@dataclass(frozen=True)
class CartItemMessage:
    """A cart line as sent back to clients."""

    sku: int = 0
    count: int = 0
    name: str = ""
    price: int = 0


@dataclass(frozen=True)
class ListCartResponse:
    """The cart contents and total price as sent back to clients."""

    items: list[CartItemMessage] = field(default_factory=list)
    total_price: int = 0


@dataclass(frozen=True)
class PurchaseResponse:
    """The id of the order a purchase created."""

    order_id: int = 0


def _to_item_message(item: Item) -> CartItemMessage:
    return CartItemMessage(sku=item.sku, count=item.count, name=item.name, price=item.price)


class CheckoutHandler:
    """Translates requests into service calls and results into responses."""

    def __init__(self, service: Service) -> None:
        self._service = service

    def add_to_cart(self, product_info: Optional[ProductInfo]) -> None:
        """Add a product to a user's cart."""
        if product_info is None:
            raise RequestError("no info about order")
        try:
            self._service.add_to_cart(product_info.user, product_info.sku, product_info.count)
        except Exception as exc:
            logger.warning("%s", exc)
            raise

    def delete_from_cart(self, product_info: Optional[ProductInfo]) -> None:
        """Remove units of a product from a user's cart."""
        if product_info is None:
            raise RequestError("no info about order")
        self._service.delete_from_cart(product_info.user, product_info.sku, product_info.count)

    def list_cart(self, user: int) -> ListCartResponse:
        """Return a user's cart."""
        cart = self._service.list_cart(user)
        return ListCartResponse(
            items=[_to_item_message(item) for item in cart.items],
            total_price=cart.total_price,
        )

    def purchase(self, user: int) -> PurchaseResponse:
        """Buy a user's cart; an order that was created is reported even on failure."""
        try:
            order_id = self._service.purchase(user)
        except Exception as exc:
            logger.warning("%s", exc)
            if isinstance(exc, PurchaseError) and exc.order_id != 0:
                return PurchaseResponse(order_id=exc.order_id)
            raise
        return PurchaseResponse(order_id=order_id)