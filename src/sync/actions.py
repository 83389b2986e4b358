from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

import httpx

import db.crud as crud
from domain.models import OrderStatus
from domain.schemas import SCHEMAS, Page
from utils.logger import get_logger

_logger = get_logger(__name__)

PUSH_ENDPOINTS = ("orders", "customers")
PULL_ENDPOINTS = ("orders", "customers", "inmemorycustomerstats")


@dataclass
class PushResult:
    pushed: int = 0
    conflicts: List[str] = field(default_factory=list)  # server copy kept
    rejected: List[str] = field(default_factory=list)  # row left the caller's view

    @property
    def is_successful(self) -> bool:
        return not self.conflicts and not self.rejected


@dataclass
class PullResult:
    items: Dict[str, int] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return sum(self.items.values())


class SynchronisationAction:
    """
    Push local changes and pull server rows for a fixed set of endpoints.
    Any failure is logged and reported as None; nothing is retried.
    """

    def __init__(self, client_factory: Callable[[], httpx.AsyncClient]):
        self._client_factory = client_factory

    async def push_all(self) -> Optional[PushResult]:
        try:
            async with self._client_factory() as client:
                result = PushResult()
                for endpoint in PUSH_ENDPOINTS:
                    await self._push(client, endpoint, result)
                _logger.info(
                    f"Push done: {result.pushed} pushed, "
                    f"{len(result.conflicts)} conflicts, {len(result.rejected)} rejected"
                )
                return result
        except Exception as e:
            _logger.error(f"Push failed: {e!r}")
            return None

    async def pull_all(self) -> Optional[PullResult]:
        try:
            async with self._client_factory() as client:
                result = PullResult()
                for endpoint in PULL_ENDPOINTS:
                    result.items[endpoint] = await self._pull(client, endpoint)
                _logger.info(f"Pull done: {result.items}")
                return result
        except Exception as e:
            _logger.error(f"Pull failed: {e!r}")
            return None

    async def _push(
        self, client: httpx.AsyncClient, endpoint: str, result: PushResult
    ) -> None:
        schema = SCHEMAS[endpoint]
        for entity in await crud.pending_changes(endpoint):
            headers = {"If-Match": f'"{entity.version}"'} if entity.version else {}
            response = await client.put(
                f"/tables/{endpoint}/{entity.id}",
                json=schema.from_model(entity).to_wire(),
                headers=headers,
            )
            if response.status_code == 412:
                # server wins
                await crud.mark_pushed(endpoint, schema.model_validate(response.json()).to_model())
                result.conflicts.append(entity.id)
                continue
            if response.status_code in (404, 410):
                await crud.discard_change(endpoint, entity.id)
                result.rejected.append(entity.id)
                continue
            response.raise_for_status()
            await crud.mark_pushed(endpoint, schema.model_validate(response.json()).to_model())
            result.pushed += 1

    async def _pull(self, client: httpx.AsyncClient, endpoint: str) -> int:
        schema = SCHEMAS[endpoint]
        params = {"includeDeleted": "true"}
        since = await crud.get_delta_token(endpoint)
        if since is not None:
            params["updatedSince"] = since.isoformat()
        response = await client.get(f"/tables/{endpoint}", params=params)
        response.raise_for_status()

        page = Page[schema].model_validate(response.json())
        entities = [item.to_model() for item in page.items]
        written = await crud.apply_pulled(endpoint, entities)
        stamps = [e.updated_at for e in entities if e.updated_at is not None]
        if stamps:
            await crud.set_delta_token(endpoint, max(stamps))
        return written


class CompleteOrderAction:
    async def complete(self, order_id: str) -> bool:
        """Mark a Ready order Delivered. False if it is already finished."""
        return await crud.transition_order(order_id, OrderStatus.DELIVERED)


class CancelOrderAction:
    async def cancel(self, order_id: str) -> bool:
        """Mark a Ready order Cancelled. False if it is already finished."""
        return await crud.transition_order(order_id, OrderStatus.CANCELLED)
