from dataclasses import dataclass, field

import pytest

from cartorder.loms_api import (
    CreateOrderRequest,
    ItemMessage,
    ListOrderResponse,
    LomsHandler,
    RequestError,
    StatusMessage,
    StockMessage,
    to_status_message,
    to_stocks_message,
)
from cartorder.loms_models import Item, OrderData, OrderInfo, OrderStatus, Stock


class ServiceFailure(Exception):
    pass


@dataclass
class FakeService:
    order_id: int = 0
    order_info: OrderInfo = field(default_factory=OrderInfo)
    stock_list: list = field(default_factory=list)
    fail: set = field(default_factory=set)
    calls: list = field(default_factory=list)

    def _call(self, name, *args):
        self.calls.append((name, *args))
        if name in self.fail:
            raise ServiceFailure(name)

    def create_order(self, order):
        self._call("create_order", order)
        return self.order_id

    def list_order(self, order_id):
        self._call("list_order", order_id)
        return self.order_info

    def order_payed(self, order_id):
        self._call("order_payed", order_id)

    def cancel_order(self, order_id):
        self._call("cancel_order", order_id)

    def stocks(self, sku):
        self._call("stocks", sku)
        return self.stock_list


@pytest.mark.parametrize(
    "status, expected",
    [
        (OrderStatus.UNKNOWN, StatusMessage.NIL),
        (OrderStatus.NEW, StatusMessage.NEW),
        (OrderStatus.AWAITING_PAYMENT, StatusMessage.AWAITING_PAYMENT),
        (OrderStatus.FAILED, StatusMessage.FAILED),
        (OrderStatus.PAYED, StatusMessage.PAYED),
        (OrderStatus.CANCELLED, StatusMessage.CANCELLED),
    ],
)
def test_to_status_message(status, expected):
    assert to_status_message(status) is expected


def test_to_status_message_out_of_range_is_nil():
    assert to_status_message(99) is StatusMessage.NIL


def test_to_stocks_message_preserves_order_and_values():
    stocks = [Stock(warehouse_id=3, count=7), Stock(warehouse_id=1, count=2)]
    got = to_stocks_message(stocks)
    assert [(m.warehouse_id, m.count) for m in got] == [(3, 7), (1, 2)]


def test_to_stocks_message_empty():
    assert to_stocks_message([]) == []


def test_create_order_converts_request():
    service = FakeService(order_id=11)
    request = CreateOrderRequest(user=5, items=[ItemMessage(sku=1, count=2), ItemMessage(sku=3, count=4)])
    got = LomsHandler(service).create_order(request)
    assert got == 11
    assert service.calls == [
        ("create_order", OrderData(user=5, items=[Item(sku=1, count=2), Item(sku=3, count=4)]))
    ]


@pytest.mark.parametrize(
    "request_obj", [None, CreateOrderRequest(user=5), CreateOrderRequest(user=5, items=[])]
)
def test_create_order_without_items_is_rejected(request_obj):
    service = FakeService()
    with pytest.raises(RequestError):
        LomsHandler(service).create_order(request_obj)
    assert service.calls == []


def test_create_order_service_error_propagates():
    service = FakeService(fail={"create_order"})
    with pytest.raises(ServiceFailure):
        LomsHandler(service).create_order(CreateOrderRequest(user=1, items=[ItemMessage(sku=1, count=1)]))


def test_list_order_converts_info():
    info = OrderInfo(status=OrderStatus.PAYED, user=2, items=[Item(sku=1, count=2)])
    service = FakeService(order_info=info)
    got = LomsHandler(service).list_order(9)
    assert got == ListOrderResponse(
        status=StatusMessage.PAYED, user=2, items=[ItemMessage(sku=1, count=2)]
    )
    assert service.calls == [("list_order", 9)]


def test_list_order_service_error_propagates():
    service = FakeService(fail={"list_order"})
    with pytest.raises(ServiceFailure):
        LomsHandler(service).list_order(9)


def test_order_payed_passes_order_id():
    service = FakeService()
    LomsHandler(service).order_payed(4)
    assert service.calls == [("order_payed", 4)]


def test_order_payed_service_error_propagates():
    service = FakeService(fail={"order_payed"})
    with pytest.raises(ServiceFailure):
        LomsHandler(service).order_payed(4)


def test_cancel_order_passes_order_id():
    service = FakeService()
    LomsHandler(service).cancel_order(6)
    assert service.calls == [("cancel_order", 6)]


def test_cancel_order_service_error_propagates():
    service = FakeService(fail={"cancel_order"})
    with pytest.raises(ServiceFailure):
        LomsHandler(service).cancel_order(6)


def test_stocks_converts_result():
    service = FakeService(stock_list=[Stock(warehouse_id=1, count=2), Stock(warehouse_id=2, count=5)])
    got = LomsHandler(service).stocks(1)
    assert got == [StockMessage(warehouse_id=1, count=2), StockMessage(warehouse_id=2, count=5)]
    assert service.calls == [("stocks", 1)]


def test_stocks_service_error_propagates():
    service = FakeService(fail={"stocks"})
    with pytest.raises(ServiceFailure):
        LomsHandler(service).stocks(1)