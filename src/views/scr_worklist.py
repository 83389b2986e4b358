from typing import Optional

from textual import on, work
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.screen import Screen
from textual.widgets import Button, DataTable, Footer, Header, Input, Label, Markdown
from textual.worker import Worker

from utils.messages import ViewModelChangedMessage
from utils.pure import format_local_time, markdown_key_value_table
from views.modal_dialog import QuitDialogModal
from views.viewmodels import MainViewModel, Observable, OrderViewModel


class WorklistScreen(Screen):
    """
    The worker's order list.

    Layout:
    - user name and Sync button on top
    - orders table, one row per order in the local mirror
    - Complete / Cancel for the highlighted order, and its customer's stats
    """

    BINDINGS = [
        Binding("ctrl+s", "synchronise", "Sync", show=True, priority=True),
        Binding("ctrl+d", "complete", "Complete", show=True, priority=True),
        Binding("ctrl+x", "cancel_order", "Cancel Order", show=True, priority=True),
        Binding("ctrl+z", "quit", "Quit App", show=True),
    ]

    def __init__(self, view_model: MainViewModel) -> None:
        super().__init__()
        self.vm = view_model
        self._selected_id: Optional[str] = None
        self._sync_worker: Optional[Worker] = None

    def compose(self) -> ComposeResult:
        yield Header()
        with Horizontal(id="hort-user"):
            yield Label("User", id="label-user")
            yield Input(self.vm.user_name, placeholder="David", id="input-username")
            yield Button("Sync", id="btn-sync", variant="primary")
        with Vertical(id="vert-orders"):
            yield DataTable(id="table-orders")
            with Horizontal(id="hort-order-actions"):
                yield Button("Complete", id="btn-complete", variant="success")
                yield Button("Cancel", id="btn-cancel", variant="error")
            yield Markdown("", id="md-stats")
        yield Footer(show_command_palette=False)

    async def on_mount(self) -> None:
        self.app.title = "Order Worklist"
        self.sub_title = self.vm.user_name

        table = self.query_one(DataTable)
        table.cursor_type = "row"
        table.zebra_stripes = True
        table.add_column("Order", key="id")
        table.add_column("Customer", key="customer")
        table.add_column("Created", key="created")
        table.add_column("Status", key="status")

        self.vm.subscribe(self._forward_change)
        self._refresh_order_buttons()
        self.load_orders()

    def _forward_change(self, source: Observable, name: str) -> None:
        self.post_message(ViewModelChangedMessage(source, name))

    @work(exclusive=True, group="orders")
    async def load_orders(self) -> None:
        await self.vm.load_orders()

    # ---------------------------
    # View-model -> widgets
    # ---------------------------

    @on(ViewModelChangedMessage)
    async def handle_vm_changed(self, message: ViewModelChangedMessage) -> None:
        if message.source is self.vm:
            if message.name == "orders":
                await self._render_orders()
            elif message.name == "can_synchronise":
                self.query_one("#btn-sync", Button).disabled = not self.vm.can_synchronise
            elif message.name == "user_name":
                self.sub_title = self.vm.user_name
            elif message.name == "sync_summary" and self.vm.sync_summary:
                self.notify(self.vm.sync_summary, title="Sync")
            return

        order: OrderViewModel = message.source
        if message.name in ("is_completed", "is_canceled"):
            table = self.query_one(DataTable)
            if order.id in table.rows:
                table.update_cell(order.id, "status", order.status_text)
        if order.id == self._selected_id:
            self._refresh_order_buttons()

    async def _render_orders(self) -> None:
        table = self.query_one(DataTable)
        table.clear()
        for order in self.vm.orders:
            order.subscribe(self._forward_change)
            table.add_row(
                order.id,
                order.customer_name,
                format_local_time(order.created_at),
                order.status_text,
                key=order.id,
            )
        if self.vm.find_order(self._selected_id or "") is None:
            self._selected_id = self.vm.orders[0].id if self.vm.orders else None
        self._refresh_order_buttons()
        await self._render_stats()

    async def _render_stats(self) -> None:
        order = self._selected()
        if order is None:
            md = "### No order selected"
        else:
            md = f"### {order.customer_name}\n\n" + markdown_key_value_table(
                [
                    ("Orders created this month", order.orders_created_in_this_month),
                    ("Workers on this customer", order.worker_count_for_orders),
                ]
            )
        await self.query_one("#md-stats", Markdown).update(md)

    def _selected(self) -> Optional[OrderViewModel]:
        if self._selected_id is None:
            return None
        return self.vm.find_order(self._selected_id)

    def _refresh_order_buttons(self) -> None:
        order = self._selected()
        self.query_one("#btn-complete", Button).disabled = not (
            order and order.complete.can_execute()
        )
        self.query_one("#btn-cancel", Button).disabled = not (
            order and order.cancel.can_execute()
        )

    # ---------------------------
    # Widgets -> view-model
    # ---------------------------

    @on(DataTable.RowHighlighted, "#table-orders")
    async def handle_row_highlighted(self, event: DataTable.RowHighlighted) -> None:
        self._selected_id = event.row_key.value
        self._refresh_order_buttons()
        await self._render_stats()

    @on(Input.Changed, "#input-username")
    def handle_user_name(self, event: Input.Changed) -> None:
        self.vm.user_name = event.value.strip()

    @on(Button.Pressed, "#btn-sync")
    def handle_sync_pressed(self) -> None:
        self.action_synchronise()

    @on(Button.Pressed, "#btn-complete")
    def handle_complete_pressed(self) -> None:
        self.action_complete()

    @on(Button.Pressed, "#btn-cancel")
    def handle_cancel_pressed(self) -> None:
        self.action_cancel_order()

    def action_synchronise(self) -> None:
        # a second request is dropped, never allowed to cancel the running one
        if self._sync_worker is not None and not self._sync_worker.is_finished:
            return
        if not self.vm.synchronise.can_execute():
            return
        self.notify("Synchronising...")
        self._sync_worker = self.run_synchronise()

    @work(group="sync")
    async def run_synchronise(self) -> None:
        await self.vm.synchronise()

    @work(group="order-actions")
    async def action_complete(self) -> None:
        order = self._selected()
        if order is None:
            return
        ok = await order.complete()
        if ok is False:
            self.notify("Order is already finished.", severity="warning")

    @work(group="order-actions")
    async def action_cancel_order(self) -> None:
        order = self._selected()
        if order is None:
            return
        ok = await order.cancel()
        if ok is False:
            self.notify("Order is already finished.", severity="warning")

    def action_quit(self) -> None:
        self.app.push_screen(QuitDialogModal())
