# sql access to the server's synchronized tables
from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, List, Optional, Sequence, Tuple

import aiosqlite

from domain.models import Customer, Order, User, to_db_time

# (clause, params) appended to a WHERE
Filter = Tuple[str, Sequence[Any]]

ALL_ROWS: Filter = ("1 = 1", ())


class EntityTable:
    """
    Reads and writes one table whose rows map onto a model with
    `from_row` / `as_row` and the sync columns updated_at, version, deleted.
    """

    def __init__(
        self, name: str, columns: Sequence[str], from_row: Callable[[Any], Any]
    ):
        self.name = name
        self.columns = list(columns)
        self._from_row = from_row

    @property
    def _select(self) -> str:
        return f"SELECT {', '.join(self.columns)} FROM {self.name}"

    async def query(
        self,
        conn: aiosqlite.Connection,
        view: Filter = ALL_ROWS,
        updated_since: Optional[datetime] = None,
        include_deleted: bool = False,
    ) -> List[Any]:
        clause, params = view
        sql = f"{self._select} WHERE ({clause})"
        args: List[Any] = list(params)
        if not include_deleted:
            sql += " AND deleted = 0"
        if updated_since is not None:
            sql += " AND updated_at > ?"
            args.append(to_db_time(updated_since))
        sql += " ORDER BY updated_at, id;"
        cur = await conn.execute(sql, args)
        rows = await cur.fetchall()
        await cur.close()
        return [self._from_row(row) for row in rows]

    async def get(
        self, conn: aiosqlite.Connection, entity_id: str, view: Filter = ALL_ROWS
    ) -> Optional[Any]:
        """Row by id, whether deleted or not, if it lies inside `view`."""
        clause, params = view
        cur = await conn.execute(
            f"{self._select} WHERE id = ? AND ({clause});",
            (entity_id, *params),
        )
        row = await cur.fetchone()
        await cur.close()
        return self._from_row(row) if row else None

    async def insert(self, conn: aiosqlite.Connection, entity) -> None:
        row = entity.as_row()
        cols = [c for c in self.columns if c in row]
        await conn.execute(
            f"INSERT INTO {self.name}({', '.join(cols)}) "
            f"VALUES ({', '.join('?' for _ in cols)});",
            [row[c] for c in cols],
        )

    async def update(self, conn: aiosqlite.Connection, entity) -> None:
        row = entity.as_row()
        cols = [c for c in self.columns if c in row and c != "id"]
        await conn.execute(
            f"UPDATE {self.name} SET {', '.join(f'{c} = ?' for c in cols)} WHERE id = ?;",
            [row[c] for c in cols] + [entity.id],
        )


ORDERS = EntityTable(
    "orders",
    [
        "id",
        "customer_id",
        "created_at",
        "status",
        "assigned_user_id",
        "updated_at",
        "version",
        "deleted",
    ],
    Order.from_row,
)

CUSTOMERS = EntityTable(
    "customers",
    [
        "id",
        "name",
        "street_and_number",
        "postal_code",
        "city",
        "updated_at",
        "version",
        "deleted",
    ],
    Customer.from_row,
)


async def find_user_by_name(
    conn: aiosqlite.Connection, user_name: Optional[str]
) -> Optional[User]:
    cur = await conn.execute(
        "SELECT id, user_name FROM users WHERE user_name = ?;", (user_name,)
    )
    row = await cur.fetchone()
    await cur.close()
    return User(id=row["id"], user_name=row["user_name"]) if row else None


async def insert_user(conn: aiosqlite.Connection, user: User) -> None:
    await conn.execute(
        "INSERT INTO users(id, user_name) VALUES (?, ?);", (user.id, user.user_name)
    )


async def has_assigned_orders(conn: aiosqlite.Connection, user_id: str) -> bool:
    """True if any order, in any status, is assigned to the user."""
    cur = await conn.execute(
        "SELECT 1 FROM orders WHERE assigned_user_id = ? LIMIT 1;", (user_id,)
    )
    row = await cur.fetchone()
    await cur.close()
    return row is not None
