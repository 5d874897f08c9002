import json
import sqlite3
import threading

import pytest

from cartorder.loms_models import OrderStatus, OutboxOrder, SendStatus
from cartorder.loms_outbox import OutboxRepository, save_in_outbox
from cartorder.sender import OrderSender, ProducerMessage


class FakeProducer:
    def __init__(self, fail=False):
        self.sent = []
        self.fail = fail

    def send_messages(self, messages):
        if self.fail:
            raise RuntimeError("broker down")
        self.sent.append(messages)


class FakeRepository:
    def __init__(self, orders=(), fail_get=False):
        self.orders = list(orders)
        self.fail_get = fail_get
        self.updated = []
        self.failed = []
        self.calls = threading.Event()

    def get_outbox_orders(self):
        self.calls.set()
        if self.fail_get:
            raise RuntimeError("db down")
        orders, self.orders = self.orders, []
        return orders

    def update_outbox_orders(self, outbox_ids, status):
        self.updated.append((list(outbox_ids), status))

    def save_failed_sends_orders(self, orders):
        self.failed.extend(orders)


def _order(row_id, order_id, status=OrderStatus.NEW):
    return OutboxOrder(id=row_id, order_id=order_id, status=status)


def test_message_carries_topic_key_and_json():
    producer = FakeProducer()
    sender = OrderSender(producer, "orderss", 1, FakeRepository())
    sender.send_order_id(_order(1, 7))

    assert len(producer.sent) == 1
    (message,) = producer.sent[0]
    assert message.topic == "orderss"
    assert message.key == "7"
    assert message.partition == -1
    assert json.loads(message.value) == {"id": 1, "order_id": 7, "status": 1}


def test_batch_is_sent_when_full():
    producer = FakeProducer()
    sender = OrderSender(producer, "t", 2, FakeRepository())
    sender.send_order_id(_order(1, 10))
    assert producer.sent == []
    assert len(sender.pending) == 1

    sender.send_order_id(_order(2, 11))
    assert [[m.key for m in batch] for batch in producer.sent] == [["10", "11"]]
    assert sender.pending == []


def test_producer_error_propagates_and_keeps_batch():
    sender = OrderSender(FakeProducer(fail=True), "t", 1, FakeRepository())
    with pytest.raises(RuntimeError, match="broker down"):
        sender.send_order_id(_order(1, 10))
    assert [m.key for m in sender.pending] == ["10"]


def test_run_once_closes_sent_records():
    repo = FakeRepository([_order(1, 10), _order(2, 11)])
    producer = FakeProducer()
    sender = OrderSender(producer, "t", 1, repo)

    success, failed = sender.run_once()

    assert success == [1, 2]
    assert failed == []
    assert repo.updated == [([1, 2], SendStatus.CLOSED)]
    assert repo.failed == []
    assert len(producer.sent) == 2


def test_run_once_saves_failures():
    repo = FakeRepository([_order(1, 10), _order(2, 11)])
    sender = OrderSender(FakeProducer(fail=True), "t", 1, repo)

    success, failed = sender.run_once()

    assert success == []
    assert [f.order.id for f in failed] == [1, 2]
    assert all(str(f.error) == "broker down" for f in failed)
    assert repo.failed == failed
    assert repo.updated == []


def test_run_once_survives_repository_error():
    repo = FakeRepository(fail_get=True)
    sender = OrderSender(FakeProducer(), "t", 1, repo)
    assert sender.run_once() == ([], [])
    assert repo.updated == []


def test_run_and_stop_background_loop():
    repo = FakeRepository([_order(1, 10)])
    producer = FakeProducer()
    sender = OrderSender(producer, "t", 1, repo)

    sender.run(interval=0.01)
    with pytest.raises(RuntimeError):
        sender.run(interval=0.01)
    assert repo.calls.wait(2.0)
    sender.stop()

    assert repo.calls.is_set()


def test_with_sql_outbox():
    conn = sqlite3.connect(":memory:")
    outbox = OutboxRepository(conn)
    outbox.create_schema()
    save_in_outbox(conn, 42, OrderStatus.AWAITING_PAYMENT)
    conn.commit()
    producer = FakeProducer()
    sender = OrderSender(producer, "t", 1, outbox)

    success, failed = sender.run_once()

    assert failed == []
    assert conn.execute(
        "SELECT send_status FROM outbox_orders WHERE id = ?", (success[0],)
    ).fetchone()[0] == SendStatus.CLOSED
    assert producer.sent[0][0] == ProducerMessage(
        topic="t",
        key="42",
        value=OutboxOrder(id=success[0], order_id=42, status=OrderStatus.AWAITING_PAYMENT).to_json(),
    )
    conn.close()