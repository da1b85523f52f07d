from textual import events, on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.reactive import reactive
from textual.screen import ModalScreen
from textual.validation import Number
from textual.widgets import Button, Input, Label, MarkdownViewer

from db.models import Product
from shop.errors import PersistenceFailure
from utils.pure import format_money, format_timestamp, generate_markdown_table


class ProdDetailModal(ModalScreen[bool]):
    """
    Product detail plus quantity picker.
    Will return True if the cart changed, False if not.
    """

    CSS = """
    #input-order-qty {
        width: 10;
    }
    #btn-sub-qty, #btn-add-qty {
        min-width: 4;
    }
    """

    order_qty = reactive(1)

    def __init__(self, pid: int) -> None:
        super().__init__()

        self._pid = pid
        self._prod: Product | None = None

    def compose(self) -> ComposeResult:
        with Horizontal(id="hort-prod-detail"):
            yield MarkdownViewer("", show_table_of_contents=False)
            with Vertical():
                yield Label("Quantity")
                with Horizontal():
                    yield Button("-", id="btn-sub-qty")
                    yield Input(value="1", id="input-order-qty", type="integer")
                    yield Button("+", id="btn-add-qty")
                yield Label("", id="label-in-cart")
                with Horizontal():
                    yield Button("Go Back", id="btn-quit")
                    yield Button("Add to Cart", id="btn-addcart", variant="primary")

    async def on_mount(self):
        state = self.app.state
        self._prod = await state.catalog.get(self._pid)
        if self._prod is None:
            self.notify("This product is no longer available.", severity="error")
            self.dismiss(False)
            return

        prod = self._prod
        table_rows = [
            ["Category", prod.category or "-"],
            ["Price", format_money(prod.price)],
            ["In stock", prod.stock],
        ]
        if state.catalog.has_offer(prod):
            table_rows.append(["Offer price", format_money(prod.offer_price)])
            table_rows.append(["Offer ends", format_timestamp(prod.offer_expires_at)])
        md_table_str = generate_markdown_table(
            ["Attribute", "Value"], table_rows, ["l", "l"]
        )
        header_md = f"### {prod.title}\n\n"
        await self.query_one(MarkdownViewer).document.update(header_md + md_table_str)

        if prod.stock < 1:
            order_btn = self.query_one("#btn-addcart", Button)
            order_btn.label = "Out of Stock"
            order_btn.disabled = True
            order_btn.variant = "warning"

        self.query_one("#input-order-qty").validators = [
            Number(minimum=1, maximum=max(prod.stock, 1))
        ]

        # the price of a line already in the cart stays what it was when first added
        line = state.cart.find(self._pid)
        if line:
            self.query_one("#label-in-cart", Label).update(
                f"Already in cart: {line.quantity} at {format_money(line.unit_price)}"
            )

        self.query_one("#input-order-qty").focus()
        self.watch_order_qty(self.order_qty)

    def on_key(self, event: events.Key) -> None:
        if event.key == "escape":
            self.dismiss(False)

    def on_input_changed(self, message: Input.Changed) -> None:
        if (
            message.input.id == "input-order-qty"
            and message.value
            and message.input.is_valid
            and self.focused == message.input
        ):
            self.order_qty = int(message.value)

    def watch_order_qty(self, qty: int):
        if self._prod is None:
            return
        self.query_one("#btn-sub-qty").disabled = qty <= 1
        self.query_one("#btn-add-qty").disabled = qty >= self._prod.stock

        input_order_qty = self.query_one("#input-order-qty", Input)
        if input_order_qty.value != str(qty):
            input_order_qty.value = str(qty)

    @on(Button.Pressed, "#btn-add-qty")
    def handle_add_qty(self):
        self.order_qty += 1

    @on(Button.Pressed, "#btn-sub-qty")
    def handle_sub_qty(self):
        self.order_qty -= 1

    @on(Button.Pressed, "#btn-quit")
    def handle_quit(self):
        self.dismiss(False)

    @on(Button.Pressed, "#btn-addcart")
    def handle_addcart(self, event: Button.Pressed) -> None:
        # disabled before the worker starts, so a second press never reaches it
        event.button.disabled = True
        self.add_to_cart()

    @work
    async def add_to_cart(self) -> None:
        button = self.query_one("#btn-addcart", Button)
        try:
            await self.app.state.cart.add_item(self._prod, self.order_qty)
        except PersistenceFailure:
            self.notify("Could not save your cart, please try again.", severity="error")
            button.disabled = False
            return

        self.app.notify(f"Added {self.order_qty} x {self._prod.title} to cart.")
        self.dismiss(True)
