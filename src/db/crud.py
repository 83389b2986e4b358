# src/db/crud.py
from __future__ import annotations

from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple, Type

from db import models
from db.database import connect
from domain.models import (
    Customer,
    CustomerStats,
    Order,
    OrderStatus,
    from_db_time,
    to_db_time,
)
from domain.status import transition

# endpoint -> (local table, model, tracks local changes)
TABLES: Dict[str, Tuple[str, Type, bool]] = {
    "orders": ("orders", Order, True),
    "customers": ("customers", Customer, True),
    "inmemorycustomerstats": ("customer_stats", CustomerStats, False),
}


def _table(endpoint: str) -> Tuple[str, Type, bool]:
    try:
        return TABLES[endpoint]
    except KeyError:
        raise ValueError(f"unknown endpoint {endpoint!r}") from None


# ---------------------------
# Worklist
# ---------------------------


async def list_worklist() -> List[models.WorklistEntry]:
    """Orders not deleted, oldest first, with customer name and monthly stats."""
    async with connect() as conn:
        cur = await conn.execute(
            """
            SELECT o.id, o.customer_id, o.created_at, o.status, o.assigned_user_id,
                   o.updated_at, o.version, o.deleted,
                   c.name AS customer_name,
                   s.orders_created_in_this_month,
                   s.worker_count_for_orders
            FROM orders o
            LEFT JOIN customers c ON c.id = o.customer_id AND c.deleted = 0
            LEFT JOIN customer_stats s ON s.customer_id = o.customer_id
            WHERE o.deleted = 0
            ORDER BY o.created_at, o.id;
            """
        )
        rows = await cur.fetchall()
        await cur.close()
    return [
        models.WorklistEntry(
            order=Order.from_row(row),
            customer_name=row["customer_name"],
            orders_created_in_this_month=row["orders_created_in_this_month"],
            worker_count_for_orders=row["worker_count_for_orders"],
        )
        for row in rows
    ]


async def transition_order(order_id: str, target: OrderStatus) -> bool:
    """
    Move an order to `target` if the status table allows it, and queue the
    change for the next push. Returns False (and changes nothing) otherwise.
    """
    async with connect() as conn:
        cur = await conn.execute(
            """
            SELECT id, customer_id, created_at, status, assigned_user_id,
                   updated_at, version, deleted
            FROM orders
            WHERE id = ?;
            """,
            (order_id,),
        )
        row = await cur.fetchone()
        await cur.close()
        if not row:
            raise LookupError(f"order {order_id} not found")

        updated = transition(Order.from_row(row), target)
        if updated is None:
            return False

        await conn.execute(
            "UPDATE orders SET status = ?, dirty = 1 WHERE id = ?;",
            (int(updated.status), order_id),
        )
        await conn.commit()
    return True


# ---------------------------
# Sync bookkeeping
# ---------------------------


async def pending_changes(endpoint: str) -> List:
    """Rows changed locally and not yet accepted by the server."""
    table, model, tracked = _table(endpoint)
    if not tracked:
        return []
    async with connect() as conn:
        cur = await conn.execute(f"SELECT * FROM {table} WHERE dirty = 1 ORDER BY id;")
        rows = await cur.fetchall()
        await cur.close()
    return [model.from_row(row) for row in rows]


async def _upsert(conn, table: str, entity, dirty: Optional[bool]) -> None:
    row = entity.as_row()
    if dirty is not None:
        row["dirty"] = int(dirty)
    cols = list(row)
    updates = ", ".join(f"{c} = excluded.{c}" for c in cols if c != "id")
    await conn.execute(
        f"INSERT INTO {table}({', '.join(cols)}) "
        f"VALUES ({', '.join('?' for _ in cols)}) "
        f"ON CONFLICT(id) DO UPDATE SET {updates};",
        [row[c] for c in cols],
    )


async def mark_pushed(endpoint: str, entity) -> None:
    """Store the server's copy of a pushed row and clear its pending flag."""
    table, _model, tracked = _table(endpoint)
    async with connect() as conn:
        await _upsert(conn, table, entity, False if tracked else None)
        await conn.commit()


async def discard_change(endpoint: str, entity_id: str) -> None:
    """Forget a local change the server will never accept."""
    table, _model, tracked = _table(endpoint)
    if not tracked:
        return
    async with connect() as conn:
        await conn.execute(f"UPDATE {table} SET dirty = 0 WHERE id = ?;", (entity_id,))
        await conn.commit()


async def apply_pulled(endpoint: str, entities: Iterable) -> int:
    """
    Upsert rows received from the server. Rows with unpushed local changes
    are left alone. Returns the number of rows written.
    """
    table, _model, tracked = _table(endpoint)
    written = 0
    async with connect() as conn:
        pending: set[str] = set()
        if tracked:
            cur = await conn.execute(f"SELECT id FROM {table} WHERE dirty = 1;")
            pending = {row[0] for row in await cur.fetchall()}
            await cur.close()
        for entity in entities:
            if entity.id in pending:
                continue
            await _upsert(conn, table, entity, False if tracked else None)
            written += 1
        await conn.commit()
    return written


async def get_delta_token(endpoint: str) -> Optional[datetime]:
    async with connect() as conn:
        cur = await conn.execute(
            "SELECT updated_at FROM delta_tokens WHERE endpoint = ?;", (endpoint,)
        )
        row = await cur.fetchone()
        await cur.close()
    return from_db_time(row[0]) if row else None


async def set_delta_token(endpoint: str, updated_at: datetime) -> None:
    async with connect() as conn:
        await conn.execute(
            """
            INSERT INTO delta_tokens(endpoint, updated_at) VALUES (?, ?)
            ON CONFLICT(endpoint) DO UPDATE SET updated_at = excluded.updated_at;
            """,
            (endpoint, to_db_time(updated_at)),
        )
        await conn.commit()
