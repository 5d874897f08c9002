"""Cart operations: adding, removing, listing and buying what is in a cart."""

from __future__ import annotations

from typing import Protocol, Sequence

from cartorder.checkout_models import CartInfo, CreateOrderItem, Item, Stock

_UINT32_MASK = 0xFFFFFFFF


class CheckoutError(Exception):
    """Raised when a cart operation fails."""


class InsufficientStocksError(CheckoutError):
    """Raised when the warehouses cannot supply the requested amount."""

    def __init__(self, message: str = "insufficient stocks") -> None:
        super().__init__(message)


class PurchaseError(CheckoutError):
    """Raised when buying a cart fails; carries the order id if one was created."""

    def __init__(self, message: str, order_id: int = 0) -> None:
        super().__init__(message)
        self.order_id = order_id


class StocksChecker(Protocol):
    def stocks(self, sku: int) -> Sequence[Stock]: ...


class CreateOrderChecker(Protocol):
    def create_order(self, user: int, items: list[CreateOrderItem]) -> int: ...


class ProductInfoGetter(Protocol):
    def get_products_info(self, items: Sequence[Item]) -> list[Item]: ...


class Repository(Protocol):
    def add_to_cart(self, user: int, sku: int, count: int) -> None: ...

    def delete_from_cart(self, user: int, sku: int, count: int) -> None: ...

    def list_cart(self, user: int) -> list[Item]: ...

    def clear_cart(self, user: int) -> None: ...


class CheckoutService:
    """Business rules of the cart, built on its collaborators."""

    def __init__(
        self,
        stocks_checker: StocksChecker,
        create_order_checker: CreateOrderChecker,
        product_info_getter: ProductInfoGetter,
        repository: Repository,
    ) -> None:
        self._stocks_checker = stocks_checker
        self._create_order_checker = create_order_checker
        self._product_info_getter = product_info_getter
        self._repository = repository

    def add_to_cart(self, user: int, sku: int, count: int) -> None:
        """Put ``count`` units of ``sku`` in the cart if the warehouses hold enough."""
        try:
            stocks = self._stocks_checker.stocks(sku)
        except Exception as exc:
            raise CheckoutError(f"checking stocks: {exc}") from exc

        remaining = count
        for stock in stocks:
            remaining -= stock.count
            if remaining <= 0:
                try:
                    self._repository.add_to_cart(user, sku, count)
                except Exception as exc:
                    raise CheckoutError(f"service add to cart: {exc}") from exc
                return
        raise InsufficientStocksError()

    def delete_from_cart(self, user: int, sku: int, count: int) -> None:
        """Take up to ``count`` units of ``sku`` out of the cart."""
        try:
            self._repository.delete_from_cart(user, sku, count)
        except Exception as exc:
            raise CheckoutError(f"service delete from cart: {exc}") from exc

    def list_cart(self, user: int) -> CartInfo:
        """Return the cart with catalogue data and its total price."""
        try:
            items = self._repository.list_cart(user)
        except Exception as exc:
            raise CheckoutError(f"get products: {exc}") from exc
        try:
            filled = self._product_info_getter.get_products_info(items)
        except Exception as exc:
            raise CheckoutError(f"get products fill items: {exc}") from exc

        total = 0
        for item in filled:
            total = (total + item.price * item.count) & _UINT32_MASK
        return CartInfo(items=list(filled), total_price=total)

    def purchase(self, user: int) -> int:
        """Turn the cart into an order, empty the cart and return the order id."""
        try:
            items = self._repository.list_cart(user)
        except Exception as exc:
            raise PurchaseError(f"purchase: {exc}") from exc

        order_items = [CreateOrderItem(sku=item.sku, count=item.count) for item in items]
        try:
            order_id = self._create_order_checker.create_order(user, order_items)
        except Exception as exc:
            raise PurchaseError(f"purchase: {exc}") from exc

        try:
            self._repository.clear_cart(user)
        except Exception as exc:
            raise PurchaseError(f"purchase: {exc}", order_id=order_id) from exc
        return order_id