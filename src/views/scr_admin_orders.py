from math import ceil
from typing import List, Optional

from textual import on, work
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.events import ScreenResume
from textual.reactive import reactive
from textual.widgets import Button, DataTable, Label, MarkdownViewer, Select

from db.models import Order, OrderStatus
from shop.errors import (
    InvalidTransitionError,
    NotAuthorizedError,
    NotFoundError,
    PersistenceFailure,
)
from utils.messages import ModeSwitchedMessage, NewOrderMessage, OrderStatusChangedMessage
from utils.pure import format_money, format_timestamp, generate_markdown_table
from views.base_screen import BaseScreen

PAGE_SIZE = 10


class AdminOrdersScreen(BaseScreen):
    """
    Administrators browse all orders, newest first, and change their status.

    Layout:
    - Markdown detail view at the top, showing the highlighted order.
    - Orders table below, paginated with Prev/Next.
    - Status picker and Update button for the highlighted order.
    """

    BINDINGS = [
        Binding("enter", "noop", "View Order Detail", show=True, key_display="⏎"),
    ]

    page_idx = reactive(1)
    page_cnt = reactive(1)

    def __init__(self) -> None:
        super().__init__()
        self._orders: List[Order] = []
        self._selected: Optional[Order] = None

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Vertical():
            yield MarkdownViewer(id="md-order-detail", show_table_of_contents=False)
            yield DataTable(id="table-orders")
        with Horizontal(id="hort-table-control"):
            yield Button("Refresh", id="btn-refresh")
            yield Button("<", id="btn-prev")
            yield Label(" 1 / 1 ", id="label-page")
            yield Button(">", id="btn-next")
            yield Select(
                [(s.value, s.value) for s in OrderStatus],
                allow_blank=False,
                id="select-status",
            )
            yield Button("Update Status", id="btn-set-status", variant="success")

    def on_mount(self) -> None:
        table = self.query_one(DataTable)
        table.cursor_type = "row"
        table.zebra_stripes = True
        table.add_columns("Order", "Date", "Customer", "Phone", "Status", "Total")

    @on(Button.Pressed, "#btn-refresh")
    @on(ModeSwitchedMessage)
    @on(ScreenResume)
    @on(NewOrderMessage)
    def handle_refresh(self) -> None:
        self._load_orders()

    @work(exclusive=True, group="orders")
    async def _load_orders(self) -> None:
        self._orders = await self.app.state.orders.list()
        self.page_cnt = max(ceil(len(self._orders) / PAGE_SIZE), 1)
        self.page_idx = min(self.page_idx, self.page_cnt)
        self._render_page()

    def _render_page(self) -> None:
        start = (self.page_idx - 1) * PAGE_SIZE
        table = self.query_one(DataTable)
        table.clear()
        for o in self._orders[start : start + PAGE_SIZE]:
            table.add_row(
                o.id,
                format_timestamp(o.created_at),
                o.customer.name,
                o.customer.phone,
                o.status.value,
                format_money(o.total),
                key=o.id,
            )
        self.query_one("#label-page", Label).update(f" {self.page_idx} / {self.page_cnt} ")
        self.query_one("#btn-prev", Button).disabled = self.page_idx <= 1
        self.query_one("#btn-next", Button).disabled = self.page_idx >= self.page_cnt
        if table.row_count:
            table.cursor_coordinate = (0, 0)
            self._update_detail_for_cursor()
        else:
            self._render_detail(None)

    @on(Button.Pressed, "#btn-prev")
    def handle_prev(self) -> None:
        if self.page_idx > 1:
            self.page_idx -= 1
            self._render_page()

    @on(Button.Pressed, "#btn-next")
    def handle_next(self) -> None:
        if self.page_idx < self.page_cnt:
            self.page_idx += 1
            self._render_page()

    @on(DataTable.RowHighlighted)
    def handle_row_highlight(self) -> None:
        self._update_detail_for_cursor()

    def _update_detail_for_cursor(self) -> None:
        table = self.query_one(DataTable)
        if table.row_count == 0 or table.cursor_row is None:
            self._render_detail(None)
            return
        order_id = table.get_row_at(table.cursor_row)[0]
        order = next((o for o in self._orders if o.id == order_id), None)
        self._render_detail(order)

    def _render_detail(self, order: Optional[Order]) -> None:
        self._selected = order
        self.query_one("#btn-set-status", Button).disabled = order is None
        viewer = self.query_one("#md-order-detail", MarkdownViewer)
        if not order:
            viewer.document.update("### Select an order to view its details.")
            return

        self.query_one("#select-status", Select).value = order.status.value
        c = order.customer
        header = (
            f"### Order {order.id} ({order.status.value})\n"
            f"Date: {format_timestamp(order.created_at)}  \n"
            f"Customer: {c.name}, {c.phone}"
            + (f", {c.email}" if c.email else "")
            + "  \n"
            + (f"Deliver to: {c.address}  \n" if c.address else "")
            + "\n"
        )
        rows = [
            [
                line.title,
                line.quantity,
                format_money(line.unit_price),
                format_money(line.line_total),
            ]
            for line in order.lines
        ]
        table = generate_markdown_table(
            ["Product", "Qty", "Unit Price", "Line Total"], rows, ["l", "r", "r", "r"]
        )
        footer = f"\n\n**Grand Total:** {format_money(order.total)}"
        viewer.document.update(header + table + footer)

    @on(Button.Pressed, "#btn-set-status")
    @work(exclusive=True, group="status")
    async def handle_set_status(self) -> None:
        order = self._selected
        if order is None:
            return
        new_status = self.query_one("#select-status", Select).value
        if new_status == order.status.value:
            self.notify("Status unchanged.", severity="warning")
            return

        try:
            updated = await self.app.state.orders.set_status(
                self.app.state.session, order.id, new_status
            )
        except (InvalidTransitionError, NotAuthorizedError) as exc:
            self.notify(str(exc), severity="error")
            return
        except NotFoundError:
            self.notify(f"Order {order.id} no longer exists.", severity="error")
            self._load_orders()
            return
        except PersistenceFailure:
            self.notify("Status could not be saved, try again.", severity="error")
            return

        self.notify(f"Order {updated.id} is now {updated.status.value}.")
        self.app.post_message(
            OrderStatusChangedMessage(updated.id, updated.status.value)
        )
        self._load_orders()
