from math import ceil
from typing import List

from textual import events, on, work
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal
from textual.events import ScreenResume
from textual.reactive import reactive
from textual.widgets import Button, DataTable, Input, Label

from db.models import Product
from utils.messages import ModeSwitchedMessage
from utils.pure import format_money
from views.base_screen import BaseScreen
from views.modal_prod_detail import ProdDetailModal

PAGE_SIZE = 8


class ShopScreen(BaseScreen):
    """
    Catalog browsing for customers: search, page through products, open a product to add it.
    """

    # only here to be displayed in footer
    BINDINGS = [
        Binding("enter", "noop", "View Product", show=True, key_display="⏎"),
    ]

    page_idx = reactive(1)
    page_cnt = reactive(1)

    def __init__(self):
        super().__init__()
        self._results: List[Product] = []

    def compose(self) -> ComposeResult:
        yield from super().compose()
        yield Input(
            id="input-search", placeholder="Search by name, category or product number..."
        )
        yield DataTable(id="table-products")
        with Horizontal(id="hort-table-control"):
            yield Button("<", id="btn-prev")
            yield Label(" 1 / 1 ", id="label-page")
            yield Button(">", id="btn-next")

    def on_mount(self):
        table = self.query_one(DataTable)
        table.cursor_type = "row"
        table.zebra_stripes = True
        table.add_columns("No", "Product", "Category", "Price", "In Stock")
        self.query_one("#input-search").focus()

    @on(ScreenResume)
    @on(ModeSwitchedMessage)
    def handle_resume(self) -> None:
        self.load_results(self.query_one("#input-search", Input).value)

    @on(Input.Changed, "#input-search")
    def handle_search_changed(self, message: Input.Changed) -> None:
        self.load_results(message.value)

    @work(exclusive=True, group="search")
    async def load_results(self, query: str) -> None:
        self._results = await self.app.state.catalog.search(query)
        self.page_cnt = max(ceil(len(self._results) / PAGE_SIZE), 1)
        self.page_idx = 1
        self.render_page()

    def render_page(self) -> None:
        catalog = self.app.state.catalog
        start = (self.page_idx - 1) * PAGE_SIZE
        table = self.query_one(DataTable)
        table.clear()
        for p in self._results[start : start + PAGE_SIZE]:
            price = format_money(catalog.price_of(p))
            if catalog.has_offer(p):
                price = f"{price} (was {format_money(p.price)})"
            table.add_row(
                p.id,
                p.title,
                p.category,
                price,
                p.stock if p.stock > 0 else "Out of stock",
                key=str(p.id),
            )
        self.query_one("#label-page", Label).update(f" {self.page_idx} / {self.page_cnt} ")
        self.query_one("#btn-prev", Button).disabled = self.page_idx <= 1
        self.query_one("#btn-next", Button).disabled = self.page_idx >= self.page_cnt

    @on(Button.Pressed, "#btn-prev")
    def handle_prev(self) -> None:
        if self.page_idx > 1:
            self.page_idx -= 1
            self.render_page()

    @on(Button.Pressed, "#btn-next")
    def handle_next(self) -> None:
        if self.page_idx < self.page_cnt:
            self.page_idx += 1
            self.render_page()

    async def on_key(self, event: events.Key) -> None:
        table = self.query_one(DataTable)
        if event.key == "enter" and self.focused == table and table.row_count:
            pid = int(table.get_row_at(table.cursor_row)[0])
            self.open_product(pid)

    @work()
    async def open_product(self, pid: int) -> None:
        await self.app.push_screen_wait(ProdDetailModal(pid))
