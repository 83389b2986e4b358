# table operations behind the /tables endpoints
from __future__ import annotations

import dataclasses
from datetime import datetime
from typing import Any, List, Optional

import aiosqlite

from domain.models import CustomerStats, new_id, utcnow
from domain.stats import compute_customer_stats
from server import repository
from server.access import AccessControlProvider, TableOperation
from server.errors import (
    BadRequestError,
    ConflictError,
    ForbiddenError,
    GoneError,
    NotFoundError,
    PreconditionFailedError,
    UnsupportedOperationError,
)
from server.repository import EntityTable
from utils.logger import get_logger

_logger = get_logger(__name__)


def parse_if_match(header: Optional[str]) -> Optional[str]:
    """`"abc"` -> `abc`; `*` and absent mean no precondition."""
    if header is None:
        return None
    value = header.strip()
    if value in ("", "*"):
        return None
    if value.startswith("W/"):
        value = value[2:]
    return value.strip('"')


class TableService:
    """List/read/create/replace/delete on one table, for one caller."""

    def __init__(self, table: EntityTable, access: AccessControlProvider):
        self.table = table
        self.access = access

    async def _authorize(
        self, conn: aiosqlite.Connection, operation: TableOperation, entity=None
    ) -> None:
        if not await self.access.is_authorized(conn, operation, entity):
            raise ForbiddenError(f"{operation.value} on {self.table.name} not allowed")

    async def _visible(self, conn: aiosqlite.Connection, entity_id: str):
        entity = await self.table.get(conn, entity_id, self.access.data_view())
        if entity is None:
            raise NotFoundError(f"{self.table.name}/{entity_id} not found")
        if entity.deleted:
            raise GoneError(f"{self.table.name}/{entity_id} was deleted", entity)
        return entity

    @staticmethod
    def _check_version(existing, if_match: Optional[str]) -> None:
        if if_match is not None and existing.version != if_match:
            raise PreconditionFailedError(
                f"version mismatch for {existing.id}", existing
            )

    async def _write(self, conn: aiosqlite.Connection, write, entity) -> None:
        try:
            await write(conn, entity)
        except aiosqlite.IntegrityError as e:
            # customer_id / assigned_user_id pointing at rows that don't exist
            await conn.rollback()
            raise BadRequestError(f"{self.table.name}/{entity.id}: {e}") from e

    async def list(
        self,
        conn: aiosqlite.Connection,
        updated_since: Optional[datetime] = None,
        include_deleted: bool = False,
    ) -> List[Any]:
        await self._authorize(conn, TableOperation.QUERY)
        return await self.table.query(
            conn, self.access.data_view(), updated_since, include_deleted
        )

    async def read(self, conn: aiosqlite.Connection, entity_id: str):
        entity = await self._visible(conn, entity_id)
        await self._authorize(conn, TableOperation.READ, entity)
        return entity

    async def create(self, conn: aiosqlite.Connection, entity):
        await self._authorize(conn, TableOperation.CREATE, entity)
        existing = await self.table.get(conn, entity.id)
        if existing is not None:
            raise ConflictError(f"{self.table.name}/{entity.id} already exists", existing)

        entity = dataclasses.replace(
            entity, updated_at=utcnow(), version=new_id(), deleted=False
        )
        entity = await self.access.pre_write_hook(conn, TableOperation.CREATE, entity)
        await self._write(conn, self.table.insert, entity)
        entity = await self.access.post_write_hook(conn, TableOperation.CREATE, entity)
        await conn.commit()
        return entity

    async def replace(
        self,
        conn: aiosqlite.Connection,
        entity_id: str,
        entity,
        if_match: Optional[str] = None,
    ):
        if entity.id != entity_id:
            raise BadRequestError(f"id {entity.id} does not match {entity_id}")
        existing = await self._visible(conn, entity_id)
        await self._authorize(conn, TableOperation.UPDATE, existing)
        self._check_version(existing, if_match)

        entity = dataclasses.replace(
            entity, updated_at=utcnow(), version=new_id(), deleted=False
        )
        entity = await self.access.pre_write_hook(
            conn, TableOperation.UPDATE, entity, existing
        )
        await self._write(conn, self.table.update, entity)
        await self.access.post_write_hook(conn, TableOperation.UPDATE, entity)
        await conn.commit()
        # read back without the view: the hooks may have moved it out of sight
        return await self.table.get(conn, entity_id)

    async def delete(
        self, conn: aiosqlite.Connection, entity_id: str, if_match: Optional[str] = None
    ) -> None:
        existing = await self._visible(conn, entity_id)
        await self._authorize(conn, TableOperation.DELETE, existing)
        self._check_version(existing, if_match)

        entity = dataclasses.replace(
            existing, updated_at=utcnow(), version=new_id(), deleted=True
        )
        entity = await self.access.pre_write_hook(
            conn, TableOperation.DELETE, entity, existing
        )
        await self.table.update(conn, entity)
        await self.access.post_write_hook(conn, TableOperation.DELETE, entity)
        await conn.commit()
        _logger.debug(f"Soft-deleted {self.table.name}/{entity_id}")


class CustomerStatsTable:
    """
    Read-only projection, rebuilt from customers and orders on every request.
    Writes are refused.
    """

    name = "inmemorycustomerstats"

    def __init__(self, stats: List[CustomerStats]):
        self._stats = {s.id: s for s in stats}

    @classmethod
    async def build(
        cls, conn: aiosqlite.Connection, now: datetime
    ) -> "CustomerStatsTable":
        customers = await repository.CUSTOMERS.query(conn)
        orders = await repository.ORDERS.query(conn, include_deleted=True)
        return cls(compute_customer_stats(customers, orders, now))

    async def list(
        self,
        conn: aiosqlite.Connection,
        updated_since: Optional[datetime] = None,
        include_deleted: bool = False,
    ) -> List[CustomerStats]:
        stats = list(self._stats.values())
        if updated_since is not None:
            stats = [s for s in stats if s.updated_at > updated_since]
        return stats

    async def read(self, conn: aiosqlite.Connection, entity_id: str) -> CustomerStats:
        try:
            return self._stats[entity_id]
        except KeyError:
            raise NotFoundError(f"{self.name}/{entity_id} not found") from None

    async def create(self, conn, entity):
        raise UnsupportedOperationError(f"{self.name} is read-only")

    async def replace(self, conn, entity_id, entity, if_match=None):
        raise UnsupportedOperationError(f"{self.name} is read-only")

    async def delete(self, conn, entity_id, if_match=None):
        raise UnsupportedOperationError(f"{self.name} is read-only")
