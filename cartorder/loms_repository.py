"""SQL storage of orders, their items and warehouse stock."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Iterator, Optional

from cartorder.loms_models import Item, OrderData, OrderInfo, OrderStatus, OrderTimestamp, Stock
from cartorder.loms_outbox import OutboxError, OutboxRepository, save_in_outbox

_SCHEMA = """
CREATE TABLE IF NOT EXISTS orders (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    status INTEGER NOT NULL,
    create_at TEXT NOT NULL,
    user_id INTEGER NOT NULL
);
CREATE TABLE IF NOT EXISTS order_items (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    sku INTEGER NOT NULL,
    count INTEGER NOT NULL,
    order_id INTEGER NOT NULL REFERENCES orders (id)
);
CREATE TABLE IF NOT EXISTS warehouses_items (
    warehouse_id INTEGER NOT NULL,
    sku INTEGER NOT NULL,
    available INTEGER NOT NULL DEFAULT 0,
    reserved INTEGER NOT NULL DEFAULT 0,
    bought INTEGER NOT NULL DEFAULT 0,
    PRIMARY KEY (warehouse_id, sku)
);
CREATE TABLE IF NOT EXISTS order_items_count_in_warehouse (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    count INTEGER NOT NULL,
    warehouse_id INTEGER NOT NULL,
    order_items_id INTEGER NOT NULL REFERENCES order_items (id)
);
"""


class LomsRepositoryError(Exception):
    """Raised when an order storage operation fails."""


@dataclass(frozen=True)
class _Reservation:
    warehouse_id: int
    count: int
    sku: int
    order_item_id: int


@dataclass(frozen=True)
class _ReservedInWarehouse:
    sku: int
    warehouse_id: int
    count: int


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class LomsRepository:
    """Orders and warehouse stock in an SQL database reached through a DB-API connection."""

    def __init__(
        self,
        connection: sqlite3.Connection,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._conn = connection
        self._clock = clock or _utc_now

    @contextmanager
    def _transaction(self, what: str) -> Iterator[sqlite3.Connection]:
        try:
            self._conn.execute("BEGIN")
        except sqlite3.Error as exc:
            raise LomsRepositoryError(f"{what}: {exc}") from exc
        try:
            yield self._conn
        except (sqlite3.Error, OutboxError) as exc:
            self._conn.rollback()
            raise LomsRepositoryError(f"{what}: {exc}") from exc
        except BaseException:
            self._conn.rollback()
            raise
        try:
            self._conn.commit()
        except sqlite3.Error as exc:
            raise LomsRepositoryError(f"{what}: {exc}") from exc

    def create_schema(self) -> None:
        """Create the order, stock and outbox tables if they do not exist yet."""
        try:
            self._conn.executescript(_SCHEMA)
            OutboxRepository(self._conn).create_schema()
        except (sqlite3.Error, OutboxError) as exc:
            raise LomsRepositoryError(f"create schema: {exc}") from exc

    def add_warehouse_items(self, warehouse_id: int, sku: int, available: int) -> None:
        """Put units of a SKU on stock in a warehouse."""
        with self._transaction("add warehouse items") as conn:
            conn.execute(
                """
                INSERT INTO warehouses_items (warehouse_id, sku, available)
                VALUES (?, ?, ?)
                ON CONFLICT (warehouse_id, sku)
                DO UPDATE SET available = available + excluded.available
                """,
                (warehouse_id, sku, available),
            )

    def create_order(self, order: OrderData) -> int:
        """Store a new order with its items and return its id."""
        with self._transaction("create order") as conn:
            order_id = conn.execute(
                "INSERT INTO orders (status, create_at, user_id) VALUES (?, ?, ?)",
                (int(OrderStatus.NEW), self._clock().isoformat(), order.user),
            ).lastrowid
            conn.executemany(
                "INSERT INTO order_items (sku, count, order_id) VALUES (?, ?, ?)",
                [(item.sku, item.count, order_id) for item in order.items],
            )
            save_in_outbox(conn, order_id, OrderStatus.NEW)
        return order_id

    def reserved_items(self, order_id: int) -> None:
        """Reserve stock for every item of an order.

        The order then awaits payment; when the warehouses cannot supply an
        item the order is marked failed instead and nothing is reserved.
        """
        with self._transaction("reserved items") as conn:
            reservations = self._plan_reservations(conn, order_id)
            if reservations is None:
                self._update_status(conn, OrderStatus.FAILED, order_id)
                save_in_outbox(conn, order_id, OrderStatus.FAILED)
                return
            for reservation in reservations:
                conn.execute(
                    """
                    UPDATE warehouses_items
                    SET available = available - ?, reserved = reserved + ?
                    WHERE warehouse_id = ? AND sku = ?
                    """,
                    (
                        reservation.count,
                        reservation.count,
                        reservation.warehouse_id,
                        reservation.sku,
                    ),
                )
                conn.execute(
                    """
                    INSERT INTO order_items_count_in_warehouse
                        (count, warehouse_id, order_items_id)
                    VALUES (?, ?, ?)
                    """,
                    (reservation.count, reservation.warehouse_id, reservation.order_item_id),
                )
            self._update_status(conn, OrderStatus.AWAITING_PAYMENT, order_id)
            save_in_outbox(conn, order_id, OrderStatus.AWAITING_PAYMENT)

    @staticmethod
    def _plan_reservations(
        conn: sqlite3.Connection, order_id: int
    ) -> Optional[list[_Reservation]]:
        order_items = conn.execute(
            "SELECT sku, count, id FROM order_items WHERE order_id = ?", (order_id,)
        ).fetchall()
        reservations: list[_Reservation] = []
        for sku, count, order_item_id in order_items:
            remaining = count
            warehouses = conn.execute(
                """
                SELECT available, warehouse_id
                FROM warehouses_items
                WHERE sku = ? AND available > 0
                ORDER BY available DESC, warehouse_id
                """,
                (sku,),
            ).fetchall()
            for available, warehouse_id in warehouses:
                if available >= remaining:
                    reservations.append(_Reservation(warehouse_id, remaining, sku, order_item_id))
                    remaining = 0
                    break
                reservations.append(_Reservation(warehouse_id, available, sku, order_item_id))
                remaining -= available
            if remaining > 0:
                return None
        return reservations

    @staticmethod
    def _update_status(conn: sqlite3.Connection, status: OrderStatus, order_id: int) -> None:
        conn.execute("UPDATE orders SET status = ? WHERE id = ?", (int(status), order_id))

    @staticmethod
    def _reserved_in_warehouses(
        conn: sqlite3.Connection, order_id: int
    ) -> list[_ReservedInWarehouse]:
        rows = conn.execute(
            """
            SELECT wi.sku, wi.warehouse_id, oc.count
            FROM warehouses_items wi
            INNER JOIN order_items oi ON oi.order_id = ?
            INNER JOIN order_items_count_in_warehouse oc ON oi.id = oc.order_items_id
            WHERE wi.sku = oi.sku AND oc.warehouse_id = wi.warehouse_id
            """,
            (order_id,),
        ).fetchall()
        return [_ReservedInWarehouse(sku, warehouse_id, count) for sku, warehouse_id, count in rows]

    def list_order(self, order_id: int) -> OrderInfo:
        """Return an order with its items; an unknown order gives an empty result."""
        with self._transaction("list order") as conn:
            rows = conn.execute(
                """
                SELECT o.status, o.user_id, oi.sku, oi.count
                FROM orders o
                INNER JOIN order_items oi ON o.id = oi.order_id
                WHERE o.id = ?
                ORDER BY oi.id
                """,
                (order_id,),
            ).fetchall()
        info = OrderInfo()
        for status, user, sku, count in rows:
            info.status = OrderStatus(status)
            info.user = user
            info.items.append(Item(sku=sku, count=count))
        return info

    def order_payed(self, order_id: int) -> None:
        """Turn an order's reservations into purchases and mark it paid."""
        with self._transaction("order payed") as conn:
            for reserved in self._reserved_in_warehouses(conn, order_id):
                conn.execute(
                    """
                    UPDATE warehouses_items
                    SET reserved = reserved - ?, bought = bought + ?
                    WHERE warehouse_id = ? AND sku = ?
                    """,
                    (reserved.count, reserved.count, reserved.warehouse_id, reserved.sku),
                )
            self._update_status(conn, OrderStatus.PAYED, order_id)
            save_in_outbox(conn, order_id, OrderStatus.PAYED)

    def cancel_order(self, order_id: int) -> None:
        """Return an order's reservations to stock and mark it cancelled."""
        with self._transaction("cancel order") as conn:
            for reserved in self._reserved_in_warehouses(conn, order_id):
                conn.execute(
                    """
                    UPDATE warehouses_items
                    SET reserved = reserved - ?, available = available + ?
                    WHERE warehouse_id = ? AND sku = ?
                    """,
                    (reserved.count, reserved.count, reserved.warehouse_id, reserved.sku),
                )
            self._update_status(conn, OrderStatus.CANCELLED, order_id)
            save_in_outbox(conn, order_id, OrderStatus.CANCELLED)

    def get_status(self, order_id: int) -> OrderStatus:
        """Return the status of an order; raises if there is no such order."""
        with self._transaction("get status") as conn:
            row = conn.execute("SELECT status FROM orders WHERE id = ?", (order_id,)).fetchone()
        if row is None:
            raise LomsRepositoryError(f"get status: no order {order_id}")
        return OrderStatus(row[0])

    def stocks(self, sku: int) -> list[Stock]:
        """Return the warehouses that have units of ``sku`` available."""
        with self._transaction("stocks") as conn:
            rows = conn.execute(
                """
                SELECT warehouse_id, available
                FROM warehouses_items
                WHERE sku = ? AND available > 0
                ORDER BY warehouse_id
                """,
                (sku,),
            ).fetchall()
        return [Stock(warehouse_id=warehouse_id, count=count) for warehouse_id, count in rows]

    def get_awaiting_payment_orders(self) -> list[OrderTimestamp]:
        """Return the ids and creation times of orders awaiting payment."""
        with self._transaction("get awaiting payment orders") as conn:
            rows = conn.execute(
                "SELECT id, create_at FROM orders WHERE status = ? ORDER BY id",
                (int(OrderStatus.AWAITING_PAYMENT),),
            ).fetchall()
        return [
            OrderTimestamp(id=order_id, create_at=datetime.fromisoformat(created))
            for order_id, created in rows
        ]