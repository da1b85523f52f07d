from datetime import timedelta

from textual import on, work
from textual.app import ComposeResult
from textual.containers import Vertical
from textual.events import ScreenResume
from textual.widgets import MarkdownViewer

from shop.catalog import utcnow
from utils.messages import ModeSwitchedMessage, NewOrderMessage, OrderStatusChangedMessage
from utils.pure import format_money, format_timestamp, generate_markdown_table
from views.base_screen import BaseScreen

LOW_STOCK = 5


class AdminDashboardScreen(BaseScreen):
    """
    Back-office overview: weekly and all-time sales, open orders, low stock
    and unread messages.
    """

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Vertical():
            yield MarkdownViewer(id="md-dashboard", show_table_of_contents=False)

    def on_mount(self) -> None:
        self.handle_reload()

    @on(NewOrderMessage)
    @on(OrderStatusChangedMessage)
    @on(ScreenResume)
    @on(ModeSwitchedMessage)
    @work(exclusive=True)
    async def handle_reload(self) -> None:
        state = self.app.state
        week = await state.orders.summary(since=utcnow() - timedelta(days=7))
        overall = await state.orders.summary()
        unread = await state.inbox.unread_count()
        products = await state.catalog.list()
        recent = (await state.orders.list())[:5]

        low_stock = [p for p in products if p.stock <= LOW_STOCK]
        offers = [p for p in products if state.catalog.has_offer(p)]

        md = (
            "### Last 7 Days\n\n"
            f"- Orders: {week.order_count}\n"
            f"- Items Sold: {week.item_count}\n"
            f"- Revenue: {format_money(week.revenue)}\n\n"
            "### All Time\n\n"
            f"- Orders: {overall.order_count}\n"
            f"- Revenue: {format_money(overall.revenue)}\n"
            f"- Pending Orders: {overall.pending_count}\n"
            f"- Unread Messages: {unread}\n"
            f"- Products: {len(products)} ({len(offers)} on offer)\n\n"
        )

        md += "### Recent Orders\n\n"
        if recent:
            md += generate_markdown_table(
                ["Order", "Date", "Customer", "Status", "Total"],
                [
                    [
                        o.id,
                        format_timestamp(o.created_at),
                        o.customer.name,
                        o.status.value,
                        format_money(o.total),
                    ]
                    for o in recent
                ],
                ["l", "l", "l", "l", "r"],
            )
        else:
            md += "No orders yet."

        md += f"\n\n### Low Stock (≤ {LOW_STOCK})\n\n"
        if low_stock:
            md += generate_markdown_table(
                ["ID", "Product", "Stock"],
                [[p.id, p.title, p.stock] for p in low_stock],
                ["r", "l", "r"],
            )
        else:
            md += "All products are well stocked."

        await self.query_one("#md-dashboard", MarkdownViewer).document.update(md)
