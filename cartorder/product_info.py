"""Concurrent filling of cart items with catalogue data."""

from __future__ import annotations

import dataclasses
from concurrent.futures import ThreadPoolExecutor
from typing import Protocol, Sequence

from cartorder.checkout_models import Item, Product


class ProductsChecker(Protocol):
    def get_product(self, sku: int) -> Product: ...


class ProductInfoGetter:
    """Looks up name and price of every item using a bounded pool of workers."""

    def __init__(self, product_checker: ProductsChecker, workers: int = 5) -> None:
        if workers < 1:
            raise ValueError("workers must be at least 1")
        self._checker = product_checker
        self._workers = workers

    def _fill(self, item: Item) -> Item:
        product = self._checker.get_product(item.sku)
        return dataclasses.replace(item, name=product.name, price=product.price)

    def get_products_info(self, items: Sequence[Item]) -> list[Item]:
        """Return the items with catalogue data; the first lookup error is raised."""
        if not items:
            return []
        with ThreadPoolExecutor(max_workers=self._workers) as executor:
            futures = [executor.submit(self._fill, item) for item in items]
            try:
                return [future.result() for future in futures]
            except BaseException:
                for future in futures:
                    future.cancel()
                raise