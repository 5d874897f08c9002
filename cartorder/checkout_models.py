"""Value types used by the cart service."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Item:
    """A cart line: a product and how many of it, with optional catalogue data."""

    sku: int
    count: int
    name: str = ""
    price: int = 0


@dataclass(frozen=True)
class CreateOrderItem:
    """A line of an order handed to the order service."""

    sku: int
    count: int


@dataclass(frozen=True)
class Product:
    """Catalogue data for one SKU."""

    name: str
    price: int


@dataclass(frozen=True)
class Stock:
    """How many units of a SKU a warehouse can supply."""

    warehouse_id: int
    count: int


@dataclass
class CartInfo:
    """The contents of a cart together with its total price."""

    items: list[Item] = field(default_factory=list)
    total_price: int = 0