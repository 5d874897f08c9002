import threading
import time

import pytest

from cartorder.checkout_models import Item, Product
from cartorder.product_info import ProductInfoGetter


class LookupFailed(Exception):
    pass


class FakeChecker:
    def __init__(self, products, delay=0.0):
        self.products = products
        self.delay = delay
        self.lock = threading.Lock()
        self.active = 0
        self.peak = 0
        self.calls = []

    def get_product(self, sku):
        with self.lock:
            self.active += 1
            self.peak = max(self.peak, self.active)
            self.calls.append(sku)
        try:
            time.sleep(self.delay)
            if sku not in self.products:
                raise LookupFailed(f"no product {sku}")
            return self.products[sku]
        finally:
            with self.lock:
                self.active -= 1


def test_fills_name_and_price():
    checker = FakeChecker({1: Product("Item1", 3000), 2: Product("Item2", 5000)})
    items = [Item(sku=1, count=5), Item(sku=2, count=3)]
    result = ProductInfoGetter(checker).get_products_info(items)
    assert result == [
        Item(sku=1, count=5, name="Item1", price=3000),
        Item(sku=2, count=3, name="Item2", price=5000),
    ]


def test_empty_input_makes_no_lookups():
    checker = FakeChecker({})
    assert ProductInfoGetter(checker).get_products_info([]) == []
    assert checker.calls == []


def test_lookup_error_is_raised():
    checker = FakeChecker({1: Product("Item1", 3000)})
    with pytest.raises(LookupFailed):
        ProductInfoGetter(checker).get_products_info([Item(1, 1), Item(2, 1)])


def test_concurrency_is_bounded_by_workers():
    products = {sku: Product(f"p{sku}", sku) for sku in range(20)}
    checker = FakeChecker(products, delay=0.01)
    items = [Item(sku, 1) for sku in products]
    result = ProductInfoGetter(checker, workers=3).get_products_info(items)
    assert [item.sku for item in result] == list(products)
    assert 1 <= checker.peak <= 3


def test_rejects_zero_workers():
    with pytest.raises(ValueError):
        ProductInfoGetter(FakeChecker({}), workers=0)