from __future__ import annotations

import os
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Callable, Iterator, List, Sequence, TypeVar
from uuid import UUID

from returns.result import Failure, Result, Success

from storefront_api.core.domain.model.cart import AccountId, CartContents, CartLine
from storefront_api.core.domain.model.catalog import ProductId
from storefront_api.core.domain.model.errors import (
    CartChangedError,
    OrderNotFound,
    PersistenceError,
    StorefrontError,
)
from storefront_api.core.domain.model.money import Money
from storefront_api.core.domain.model.order import Order, OrderId, OrderLine, OrderStatus
from storefront_api.core.ports.outbound.cart_store import MERGE_KEYS_KEPT, CartStore
from storefront_api.core.ports.outbound.orders import OrderRepository
from storefront_api.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

SCHEMA = """
CREATE TABLE IF NOT EXISTS carts (
    owner_id   TEXT PRIMARY KEY,
    version    INTEGER NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS cart_lines (
    owner_id   TEXT NOT NULL,
    product_id TEXT NOT NULL,
    quantity   INTEGER NOT NULL CHECK (quantity >= 1),
    UNIQUE (owner_id, product_id)
);

CREATE TABLE IF NOT EXISTS cart_merges (
    owner_id   TEXT NOT NULL,
    merge_key  TEXT NOT NULL,
    PRIMARY KEY (owner_id, merge_key)
);

CREATE TABLE IF NOT EXISTS orders (
    order_id   TEXT PRIMARY KEY,
    account_id TEXT NOT NULL,
    total      TEXT NOT NULL,
    currency   TEXT NOT NULL,
    contact    TEXT NOT NULL,
    status     TEXT NOT NULL,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS order_lines (
    order_id   TEXT NOT NULL,
    product_id TEXT NOT NULL,
    name       TEXT NOT NULL,
    quantity   INTEGER NOT NULL,
    unit_price TEXT NOT NULL,
    currency   TEXT NOT NULL,
    UNIQUE (order_id, product_id)
);
"""


@dataclass(frozen=True)
class SqliteDatabase:
    path: str

    def connect(self) -> sqlite3.Connection:
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        # autocommit mode; transactions are opened explicitly below
        conn = sqlite3.connect(self.path, isolation_level=None, timeout=10)
        conn.row_factory = sqlite3.Row
        return conn

    def init_schema(self) -> None:
        conn = self.connect()
        try:
            conn.executescript(SCHEMA)
        finally:
            conn.close()

    def run(
        self, work: Callable[[sqlite3.Connection], Result[T, StorefrontError]]
    ) -> Result[T, StorefrontError]:
        """Run ``work`` inside one write transaction; sqlite errors become Failures."""
        try:
            conn = self.connect()
        except sqlite3.Error as e:
            return Failure(PersistenceError(message=f"sqlite connect failed: {e}"))
        try:
            with _transaction(conn):
                return work(conn)
        except sqlite3.Error as e:
            logger.error("sqlite.transaction_failed", path=self.path, error=str(e))
            return Failure(PersistenceError(message=f"sqlite: {e}"))
        finally:
            conn.close()


@contextmanager
def _transaction(conn: sqlite3.Connection) -> Iterator[sqlite3.Connection]:
    # IMMEDIATE takes the write lock up front, so read-modify-write is atomic
    conn.execute("BEGIN IMMEDIATE")
    try:
        yield conn
    except BaseException:
        conn.execute("ROLLBACK")
        raise
    else:
        conn.execute("COMMIT")


def _bump_version(conn: sqlite3.Connection, owner: str) -> None:
    conn.execute(
        "INSERT INTO carts(owner_id, version) VALUES(?, 1) "
        "ON CONFLICT(owner_id) DO UPDATE SET version = version + 1",
        (owner,),
    )


def _version(conn: sqlite3.Connection, owner: str) -> int:
    row = conn.execute("SELECT version FROM carts WHERE owner_id = ?", (owner,)).fetchone()
    return int(row["version"]) if row else 0


def _quantity(conn: sqlite3.Connection, owner: str, product_id: str) -> int:
    row = conn.execute(
        "SELECT quantity FROM cart_lines WHERE owner_id = ? AND product_id = ?",
        (owner, product_id),
    ).fetchone()
    return int(row["quantity"]) if row else 0


@dataclass(frozen=True)
class SqliteCartStore(CartStore):
    """Durable account carts. One row per (owner_id, product_id)."""

    db: SqliteDatabase

    def read(self, owner: str) -> Result[CartContents, StorefrontError]:
        def work(conn: sqlite3.Connection) -> Result[CartContents, StorefrontError]:
            rows = conn.execute(
                "SELECT product_id, quantity FROM cart_lines WHERE owner_id = ? ORDER BY rowid",
                (owner,),
            ).fetchall()
            return Success(
                CartContents(
                    lines=tuple(
                        CartLine(ProductId(r["product_id"]), int(r["quantity"])) for r in rows
                    ),
                    version=_version(conn, owner),
                )
            )

        return self.db.run(work)

    def increment(
        self, owner: str, product_id: ProductId, delta: int
    ) -> Result[CartLine, StorefrontError]:
        def work(conn: sqlite3.Connection) -> Result[CartLine, StorefrontError]:
            conn.execute(
                "INSERT INTO cart_lines(owner_id, product_id, quantity) VALUES(?,?,?) "
                "ON CONFLICT(owner_id, product_id) "
                "DO UPDATE SET quantity = quantity + excluded.quantity",
                (owner, product_id.value, delta),
            )
            _bump_version(conn, owner)
            return Success(CartLine(product_id, _quantity(conn, owner, product_id.value)))

        return self.db.run(work)

    def set_quantity(
        self, owner: str, product_id: ProductId, quantity: int
    ) -> Result[CartLine, StorefrontError]:
        def work(conn: sqlite3.Connection) -> Result[CartLine, StorefrontError]:
            conn.execute(
                "INSERT INTO cart_lines(owner_id, product_id, quantity) VALUES(?,?,?) "
                "ON CONFLICT(owner_id, product_id) DO UPDATE SET quantity = excluded.quantity",
                (owner, product_id.value, quantity),
            )
            _bump_version(conn, owner)
            return Success(CartLine(product_id, quantity))

        return self.db.run(work)

    def delete_line(
        self, owner: str, product_id: ProductId
    ) -> Result[None, StorefrontError]:
        def work(conn: sqlite3.Connection) -> Result[None, StorefrontError]:
            cur = conn.execute(
                "DELETE FROM cart_lines WHERE owner_id = ? AND product_id = ?",
                (owner, product_id.value),
            )
            if cur.rowcount:
                _bump_version(conn, owner)
            return Success(None)

        return self.db.run(work)

    def replace(
        self,
        owner: str,
        lines: Sequence[CartLine],
        expected_version: int,
        merge_key: str | None = None,
    ) -> Result[bool, StorefrontError]:
        def work(conn: sqlite3.Connection) -> Result[bool, StorefrontError]:
            if merge_key is not None:
                seen = conn.execute(
                    "SELECT 1 FROM cart_merges WHERE owner_id = ? AND merge_key = ?",
                    (owner, merge_key),
                ).fetchone()
                if seen:
                    return Success(False)
            if _version(conn, owner) != expected_version:
                return Failure(CartChangedError(message="cart version moved", owner=owner))

            conn.execute("DELETE FROM cart_lines WHERE owner_id = ?", (owner,))
            conn.executemany(
                "INSERT INTO cart_lines(owner_id, product_id, quantity) VALUES(?,?,?)",
                [(owner, ln.product_id.value, ln.quantity) for ln in lines],
            )
            _bump_version(conn, owner)
            if merge_key is not None:
                conn.execute(
                    "INSERT INTO cart_merges(owner_id, merge_key) VALUES(?,?)",
                    (owner, merge_key),
                )
                conn.execute(
                    "DELETE FROM cart_merges WHERE owner_id = ? AND rowid NOT IN "
                    "(SELECT rowid FROM cart_merges WHERE owner_id = ? ORDER BY rowid DESC LIMIT ?)",
                    (owner, owner, MERGE_KEYS_KEPT),
                )
            return Success(True)

        return self.db.run(work)

    def clear(
        self, owner: str, expected_version: int | None = None
    ) -> Result[None, StorefrontError]:
        def work(conn: sqlite3.Connection) -> Result[None, StorefrontError]:
            if expected_version is not None and _version(conn, owner) != expected_version:
                return Failure(
                    CartChangedError(message="cart changed during checkout", owner=owner)
                )
            conn.execute("DELETE FROM cart_lines WHERE owner_id = ?", (owner,))
            _bump_version(conn, owner)
            return Success(None)

        return self.db.run(work)


@dataclass(frozen=True)
class SqliteOrderRepository(OrderRepository):
    db: SqliteDatabase

    def create(self, order: Order) -> Result[OrderId, StorefrontError]:
        def work(conn: sqlite3.Connection) -> Result[OrderId, StorefrontError]:
            conn.execute(
                "INSERT INTO orders(order_id, account_id, total, currency, contact, status, created_at) "
                "VALUES(?,?,?,?,?,?,?)",
                (
                    str(order.order_id.value),
                    order.account_id.value,
                    str(order.total.amount),
                    order.total.currency,
                    order.contact,
                    order.status.value,
                    order.created_at.isoformat(),
                ),
            )
            return Success(order.order_id)

        return self.db.run(work)

    def add_lines(
        self, order_id: OrderId, lines: Sequence[OrderLine]
    ) -> Result[None, StorefrontError]:
        key = str(order_id.value)

        def work(conn: sqlite3.Connection) -> Result[None, StorefrontError]:
            if conn.execute("SELECT 1 FROM orders WHERE order_id = ?", (key,)).fetchone() is None:
                return Failure(OrderNotFound(message="order not found", order_id=key))
            conn.executemany(
                "INSERT INTO order_lines(order_id, product_id, name, quantity, unit_price, currency) "
                "VALUES(?,?,?,?,?,?)",
                [
                    (
                        key,
                        ln.product_id.value,
                        ln.name,
                        ln.quantity,
                        str(ln.unit_price_at_purchase.amount),
                        ln.unit_price_at_purchase.currency,
                    )
                    for ln in lines
                ],
            )
            return Success(None)

        return self.db.run(work)

    def mark_status(
        self, order_id: OrderId, status: OrderStatus
    ) -> Result[Order, StorefrontError]:
        key = str(order_id.value)

        def work(conn: sqlite3.Connection) -> Result[Order, StorefrontError]:
            cur = conn.execute(
                "UPDATE orders SET status = ? WHERE order_id = ? AND status = ?",
                (status.value, key, OrderStatus.PENDING.value),
            )
            order = _load_order(conn, key)
            if order is None:
                return Failure(OrderNotFound(message="order not found", order_id=key))
            if not cur.rowcount:
                return Failure(PersistenceError(message="order is no longer pending"))
            return Success(order)

        return self.db.run(work)

    def delete(self, order_id: OrderId) -> Result[None, StorefrontError]:
        key = str(order_id.value)

        def work(conn: sqlite3.Connection) -> Result[None, StorefrontError]:
            conn.execute("DELETE FROM order_lines WHERE order_id = ?", (key,))
            conn.execute("DELETE FROM orders WHERE order_id = ?", (key,))
            return Success(None)

        return self.db.run(work)

    def get(self, order_id: OrderId) -> Result[Order, StorefrontError]:
        key = str(order_id.value)

        def work(conn: sqlite3.Connection) -> Result[Order, StorefrontError]:
            order = _load_order(conn, key)
            if order is None:
                return Failure(OrderNotFound(message="order not found", order_id=key))
            return Success(order)

        return self.db.run(work)

    def list(
        self,
        offset: int,
        limit: int,
        account_id: AccountId | None = None,
        status: OrderStatus | None = OrderStatus.PAID,
        sort_by: str = "created_at",
        sort_dir: str = "desc",
    ) -> Result[Sequence[Order], StorefrontError]:
        where: List[str] = []
        params: List[object] = []
        if account_id is not None:
            where.append("account_id = ?")
            params.append(account_id.value)
        if status is not None:
            where.append("status = ?")
            params.append(status.value)

        order_col = "CAST(total AS REAL)" if sort_by == "total" else "created_at"
        direction = "ASC" if sort_dir == "asc" else "DESC"
        sql = "SELECT order_id FROM orders"
        if where:
            sql += " WHERE " + " AND ".join(where)
        sql += f" ORDER BY {order_col} {direction} LIMIT ? OFFSET ?"
        params.extend([limit, offset])

        def work(conn: sqlite3.Connection) -> Result[Sequence[Order], StorefrontError]:
            keys = [r["order_id"] for r in conn.execute(sql, params).fetchall()]
            orders = [_load_order(conn, k) for k in keys]
            return Success(tuple(o for o in orders if o is not None))

        return self.db.run(work)


def _load_order(conn: sqlite3.Connection, key: str) -> Order | None:
    row = conn.execute("SELECT * FROM orders WHERE order_id = ?", (key,)).fetchone()
    if row is None:
        return None
    lines = tuple(
        OrderLine(
            product_id=ProductId(r["product_id"]),
            name=r["name"],
            quantity=int(r["quantity"]),
            unit_price_at_purchase=Money(Decimal(r["unit_price"]), r["currency"]),
        )
        for r in conn.execute(
            "SELECT * FROM order_lines WHERE order_id = ? ORDER BY rowid", (key,)
        ).fetchall()
    )
    return Order(
        order_id=OrderId(UUID(key)),
        account_id=AccountId(row["account_id"]),
        lines=lines,
        total=Money(Decimal(row["total"]), row["currency"]),
        contact=row["contact"],
        created_at=datetime.fromisoformat(row["created_at"]),
        status=OrderStatus(row["status"]),
    )
