"""SQL storage of carts and their items."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from typing import Iterator

from cartorder.checkout_models import Item

_SCHEMA = """
CREATE TABLE IF NOT EXISTS carts (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER NOT NULL
);
CREATE TABLE IF NOT EXISTS cart_items (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    sku INTEGER NOT NULL,
    count INTEGER NOT NULL,
    cart_id INTEGER NOT NULL REFERENCES carts (id)
);
"""


class RepositoryError(Exception):
    """Raised when a storage operation fails."""


class CheckoutRepository:
    """Carts stored in an SQL database reached through a DB-API connection."""

    def __init__(self, connection: sqlite3.Connection) -> None:
        self._conn = connection

    @contextmanager
    def _transaction(self, what: str) -> Iterator[sqlite3.Connection]:
        try:
            self._conn.execute("BEGIN")
        except sqlite3.Error as exc:
            raise RepositoryError(f"{what}: {exc}") from exc
        try:
            yield self._conn
        except sqlite3.Error as exc:
            self._conn.rollback()
            raise RepositoryError(f"{what}: {exc}") from exc
        except BaseException:
            self._conn.rollback()
            raise
        try:
            self._conn.commit()
        except sqlite3.Error as exc:
            raise RepositoryError(f"{what}: {exc}") from exc

    def create_schema(self) -> None:
        """Create the tables if they do not exist yet."""
        try:
            self._conn.executescript(_SCHEMA)
        except sqlite3.Error as exc:
            raise RepositoryError(f"create schema: {exc}") from exc

    def add_to_cart(self, user: int, sku: int, count: int) -> None:
        """Add units of a SKU to a user's cart, creating the cart if needed."""
        with self._transaction("add to cart") as conn:
            cart = conn.execute("SELECT id FROM carts WHERE user_id = ?", (user,)).fetchone()
            if cart is None:
                cart_id = conn.execute(
                    "INSERT INTO carts (user_id) VALUES (?)", (user,)
                ).lastrowid
                self._insert_item(conn, cart_id, sku, count)
                return
            cart_id = cart[0]
            row = conn.execute(
                "SELECT id FROM cart_items WHERE cart_id = ? AND sku = ?", (cart_id, sku)
            ).fetchone()
            if row is None:
                self._insert_item(conn, cart_id, sku, count)
            else:
                conn.execute(
                    "UPDATE cart_items SET count = count + ? WHERE id = ? AND sku = ?",
                    (count, row[0], sku),
                )

    @staticmethod
    def _insert_item(conn: sqlite3.Connection, cart_id: int, sku: int, count: int) -> None:
        conn.execute(
            "INSERT INTO cart_items (sku, count, cart_id) VALUES (?, ?, ?)",
            (sku, count, cart_id),
        )

    def delete_from_cart(self, user: int, sku: int, count: int) -> None:
        """Take units of a SKU out of a user's cart, never going below zero."""
        with self._transaction("delete from cart") as conn:
            conn.execute(
                """
                UPDATE cart_items
                SET count = CASE WHEN count - ? >= 0 THEN count - ? ELSE 0 END
                WHERE sku = ? AND cart_id IN (SELECT id FROM carts WHERE user_id = ?)
                """,
                (count, count, sku, user),
            )

    def list_cart(self, user: int) -> list[Item]:
        """Return the lines of a user's cart that hold at least one unit."""
        with self._transaction("list cart") as conn:
            rows = conn.execute(
                """
                SELECT ci.sku, ci.count
                FROM cart_items ci
                INNER JOIN carts c
                ON c.user_id = ? AND c.id = ci.cart_id AND ci.count > 0
                ORDER BY ci.id
                """,
                (user,),
            ).fetchall()
        return [Item(sku=sku, count=count) for sku, count in rows]

    def clear_cart(self, user: int) -> None:
        """Delete a user's cart and its lines; raises if the user has no cart."""
        with self._transaction("clear cart") as conn:
            cart = conn.execute("SELECT id FROM carts WHERE user_id = ?", (user,)).fetchone()
            if cart is None:
                raise RepositoryError(f"clear cart: no cart for user {user}")
            cart_id = cart[0]
            conn.execute("DELETE FROM carts WHERE id = ?", (cart_id,))
            conn.execute("DELETE FROM cart_items WHERE cart_id = ?", (cart_id,))