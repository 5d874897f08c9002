"""SQL storage of order status changes waiting to be published."""

from __future__ import annotations

import sqlite3
from typing import Iterable, Sequence

from cartorder.loms_models import ErrOrder, OrderStatus, OutboxOrder, SendStatus

_SCHEMA = f"""
CREATE TABLE IF NOT EXISTS outbox_orders (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    order_id INTEGER NOT NULL,
    status INTEGER NOT NULL,
    send_status INTEGER NOT NULL DEFAULT {int(SendStatus.OPEN)},
    err_message TEXT
);
"""


class OutboxError(Exception):
    """Raised when an outbox storage operation fails."""


def save_in_outbox(connection: sqlite3.Connection, order_id: int, status: OrderStatus) -> None:
    """Record a status change of an order; runs within the caller's transaction."""
    try:
        connection.execute(
            "INSERT INTO outbox_orders (order_id, status) VALUES (?, ?)",
            (order_id, int(status)),
        )
    except sqlite3.Error as exc:
        raise OutboxError(f"save in outbox: {exc}") from exc


class OutboxRepository:
    """The outbox table reached through a DB-API connection."""

    def __init__(self, connection: sqlite3.Connection) -> None:
        self._conn = connection

    def create_schema(self) -> None:
        """Create the outbox table if it does not exist yet."""
        try:
            self._conn.executescript(_SCHEMA)
        except sqlite3.Error as exc:
            raise OutboxError(f"create schema: {exc}") from exc

    def get_outbox_orders(self) -> list[OutboxOrder]:
        """Return the open records in id order and mark them as in progress."""
        try:
            with self._conn:
                rows = self._conn.execute(
                    "SELECT id, order_id, status FROM outbox_orders "
                    "WHERE send_status = ? ORDER BY id",
                    (int(SendStatus.OPEN),),
                ).fetchall()
        except sqlite3.Error as exc:
            raise OutboxError(f"get outbox orders: {exc}") from exc
        orders = [
            OutboxOrder(id=row_id, order_id=order_id, status=OrderStatus(status))
            for row_id, order_id, status in rows
        ]
        self.update_outbox_orders([order.id for order in orders], SendStatus.IN_PROGRESS)
        return orders

    def update_outbox_orders(self, outbox_ids: Iterable[int], status: SendStatus) -> None:
        """Set the delivery state of the given records."""
        ids = list(outbox_ids)
        if not ids:
            return
        placeholders = ", ".join("?" for _ in ids)
        try:
            with self._conn:
                self._conn.execute(
                    f"UPDATE outbox_orders SET send_status = ? WHERE id IN ({placeholders})",
                    (int(status), *ids),
                )
        except sqlite3.Error as exc:
            raise OutboxError(f"update outbox orders: {exc}") from exc

    def save_failed_sends_orders(self, orders: Sequence[ErrOrder]) -> None:
        """Store the error message of every record that failed to be published."""
        try:
            with self._conn:
                self._conn.executemany(
                    "UPDATE outbox_orders SET err_message = ? WHERE id = ?",
                    [(str(failed.error), failed.order.id) for failed in orders],
                )
        except sqlite3.Error as exc:
            raise OutboxError(f"save failed sends orders: {exc}") from exc