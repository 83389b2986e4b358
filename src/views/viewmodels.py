from __future__ import annotations

from datetime import datetime
from typing import Any, Awaitable, Callable, List, Optional

import db.crud as crud
from db.models import WorklistEntry
from domain.models import OrderStatus
from domain.status import is_terminal
from sync.actions import (
    CancelOrderAction,
    CompleteOrderAction,
    PullResult,
    PushResult,
    SynchronisationAction,
)
from utils.logger import get_logger
from utils.state import UserNameStore

_logger = get_logger(__name__)

# (title, message) -> shown to the user, e.g. as a modal dialog
ErrorReporter = Callable[[str, str], Awaitable[None]]

SYNC_ERROR_TITLE = "Datasync error"


class Observable:
    """Minimal property-changed notification for the screens to bind to."""

    def __init__(self) -> None:
        self._listeners: List[Callable[[Observable, str], None]] = []

    def subscribe(self, listener: Callable[[Observable, str], None]) -> None:
        self._listeners.append(listener)

    def _notify(self, *names: str) -> None:
        for name in names:
            for listener in list(self._listeners):
                listener(self, name)


class AsyncCommand:
    """
    Wraps a coroutine function as a command.
    Only one execution may be in flight; calls made meanwhile, or while
    `can_execute` is false, return None without running.
    """

    def __init__(
        self,
        execute: Callable[[], Awaitable[Any]],
        can_execute: Optional[Callable[[], bool]] = None,
        on_state_changed: Optional[Callable[[], None]] = None,
    ):
        self._execute = execute
        self._can_execute = can_execute
        self._on_state_changed = on_state_changed
        self.is_running = False

    def can_execute(self) -> bool:
        if self.is_running:
            return False
        return self._can_execute() if self._can_execute else True

    def _set_running(self, value: bool) -> None:
        self.is_running = value
        if self._on_state_changed:
            self._on_state_changed()

    async def __call__(self) -> Any:
        if not self.can_execute():
            return None
        self._set_running(True)
        try:
            return await self._execute()
        finally:
            self._set_running(False)


class OrderViewModel(Observable):
    def __init__(
        self,
        entry: WorklistEntry,
        complete_action: CompleteOrderAction,
        cancel_action: CancelOrderAction,
    ):
        super().__init__()
        self._complete_action = complete_action
        self._cancel_action = cancel_action

        order = entry.order
        self.id: str = order.id
        self.customer_name: str = entry.customer_name or order.customer_id
        self.created_at: datetime = order.created_at
        self.orders_created_in_this_month = entry.orders_created_in_this_month
        self.worker_count_for_orders = entry.worker_count_for_orders
        self._status: OrderStatus = order.status

        self.complete = AsyncCommand(
            self._complete, lambda: self.can_complete, self._commands_changed
        )
        self.cancel = AsyncCommand(
            self._cancel, lambda: self.can_cancel, self._commands_changed
        )

    @property
    def is_completed(self) -> bool:
        return self._status == OrderStatus.DELIVERED

    @property
    def is_canceled(self) -> bool:
        return self._status == OrderStatus.CANCELLED

    @property
    def is_finished(self) -> bool:
        return is_terminal(self._status)

    @property
    def can_complete(self) -> bool:
        return not self.is_finished and bool(self.id)

    @property
    def can_cancel(self) -> bool:
        return not self.is_finished and bool(self.id)

    @property
    def status_text(self) -> str:
        if self.is_completed:
            return "Delivered"
        if self.is_canceled:
            return "Cancelled"
        return "Ready"

    def _set_status(self, status: OrderStatus, changed: str) -> None:
        self._status = status
        self._notify(changed, "can_complete", "can_cancel")

    def _commands_changed(self) -> None:
        self._notify("can_complete", "can_cancel")

    async def _complete(self) -> bool:
        ok = await self._complete_action.complete(self.id)
        if ok:
            self._set_status(OrderStatus.DELIVERED, "is_completed")
        return ok

    async def _cancel(self) -> bool:
        ok = await self._cancel_action.cancel(self.id)
        if ok:
            self._set_status(OrderStatus.CANCELLED, "is_canceled")
        return ok


class MainViewModel(Observable):
    def __init__(
        self,
        synchronisation_action: SynchronisationAction,
        user_name_store: UserNameStore,
        complete_action: CompleteOrderAction,
        cancel_action: CancelOrderAction,
        report_error: ErrorReporter,
    ):
        super().__init__()
        self._synchronisation_action = synchronisation_action
        self._user_name_store = user_name_store
        self._complete_action = complete_action
        self._cancel_action = cancel_action
        self._report_error = report_error

        self._user_name = user_name_store.user_name
        self._is_synchronising = False
        self.orders: List[OrderViewModel] = []
        # one line on what the last sync did, empty before the first one
        self.sync_summary = ""

        self.synchronise = AsyncCommand(
            self._synchronise,
            lambda: self.can_synchronise,
            lambda: self._notify("can_synchronise"),
        )

    @property
    def user_name(self) -> str:
        return self._user_name

    @user_name.setter
    def user_name(self, value: str) -> None:
        self._user_name = value
        self._notify("user_name")
        if not value:
            return
        self._user_name_store.user_name = value

    @property
    def is_synchronising(self) -> bool:
        return self._is_synchronising

    @is_synchronising.setter
    def is_synchronising(self, value: bool) -> None:
        self._is_synchronising = value
        self._notify("is_synchronising", "can_synchronise")

    @property
    def can_synchronise(self) -> bool:
        return not self._is_synchronising

    def find_order(self, order_id: str) -> Optional[OrderViewModel]:
        return next((o for o in self.orders if o.id == order_id), None)

    async def load_orders(self) -> None:
        entries = await crud.list_worklist()
        self.orders = [
            OrderViewModel(entry, self._complete_action, self._cancel_action)
            for entry in entries
        ]
        self._notify("orders")

    async def _synchronise(self) -> None:
        self.is_synchronising = True
        try:
            push_result = await self._synchronisation_action.push_all()
            if push_result is None:
                await self._report_error(SYNC_ERROR_TITLE, "Push: could not reach server")

            pull_result = await self._synchronisation_action.pull_all()
            if pull_result is None:
                await self._report_error(SYNC_ERROR_TITLE, "Pull: could not reach server")

            self.sync_summary = summarise_sync(push_result, pull_result)
            self._notify("sync_summary")
            await self.load_orders()
        finally:
            self.is_synchronising = False


def summarise_sync(
    push_result: Optional[PushResult], pull_result: Optional[PullResult]
) -> str:
    parts = []
    if push_result is not None:
        parts.append(f"{push_result.pushed} pushed")
        if not push_result.is_successful:
            parts.append(
                f"{len(push_result.conflicts)} overwritten by the server, "
                f"{len(push_result.rejected)} no longer yours"
            )
    if pull_result is not None:
        parts.append(f"{pull_result.total} pulled")
    return "; ".join(parts)
