from typing import Optional

from textual import events, on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, Input, Label, MarkdownViewer

from db.models import CustomerDetails, Order
from shop.errors import EmptyCartError, PersistenceFailure
from utils.pure import format_money, generate_markdown_table
from views.modal_dialog import ConfirmDialogModal


class CheckoutModal(ModalScreen[Optional[str]]):
    """
    A modal screen for check out: order summary plus the customer's contact details.
    Return the order id on success, None otherwise.
    """

    def compose(self) -> ComposeResult:
        with Vertical():
            yield MarkdownViewer("", show_table_of_contents=False)
            yield Label("Full Name")
            yield Input(placeholder="Jane Wanjiru", id="input-name")
            yield Label("Phone Number")
            yield Input(placeholder="0712 345 678", id="input-phone")
            yield Label("Email (optional)")
            yield Input(placeholder="user@example.com", id="input-email")
            yield Label("Delivery Address (optional)")
            yield Input(placeholder="Shop 12, Moi Avenue, Nairobi", id="input-address")
            with Horizontal():
                yield Button("Go Back", id="btn-quit")
                yield Button("Place Order", id="btn-submit", variant="primary")

    async def on_mount(self):
        cart = self.app.state.cart
        headers = ["Product", "Unit Price", "Quantity", "Line Total"]
        rows = [
            [
                line.title,
                format_money(line.unit_price),
                line.quantity,
                format_money(line.line_total),
            ]
            for line in cart.lines
        ]
        md = "### Order Summary\n\n" + generate_markdown_table(
            headers, rows, ["l", "r", "c", "r"]
        )
        md += f"\n\n**Total:** {format_money(cart.total())}"
        await self.query_one(MarkdownViewer).document.update(md)
        self.query_one("#input-name").focus()

    def on_key(self, event: events.Key) -> None:
        if event.key == "escape":
            self.dismiss(None)

    def _required(self, input_id: str, label: str) -> Optional[str]:
        widget = self.query_one(input_id, Input)
        value = widget.value.strip()
        if not value:
            widget.focus()
            widget.add_class("-invalid")
            self.notify(f"{label} is required.", severity="error")
            return None
        widget.remove_class("-invalid")
        return value

    @on(Button.Pressed, "#btn-submit")
    def handle_submit(self, event: Button.Pressed) -> None:
        # disabled before the worker starts, so a second press never reaches it
        event.button.disabled = True
        self.submit_order()

    @work
    async def submit_order(self) -> None:
        submit = self.query_one("#btn-submit", Button)
        order = await self._place_order()
        if order is None:
            submit.disabled = False
            return
        self.app.notify(
            f"Order placed. Your order number is {order.id}.", timeout=10
        )
        self.dismiss(order.id)

    async def _place_order(self) -> Optional[Order]:
        name = self._required("#input-name", "Name")
        if name is None:
            return None
        phone = self._required("#input-phone", "Phone number")
        if phone is None:
            return None

        customer = CustomerDetails(
            name=name,
            phone=phone,
            email=self.query_one("#input-email", Input).value.strip(),
            address=self.query_one("#input-address", Input).value.strip(),
        )

        if not await self.app.push_screen_wait(
            ConfirmDialogModal("Place order? This cannot be undone.", tone="positive")
        ):
            return None

        state = self.app.state
        try:
            return await state.orders.checkout(state.cart, customer)
        except EmptyCartError:
            self.notify("Your cart is empty.", severity="warning")
            self.dismiss(None)
        except PersistenceFailure:
            # nothing was placed, the cart is untouched
            self.notify("Could not place the order, please try again.", severity="error")
        return None

    @on(Button.Pressed, "#btn-quit")
    def handle_quit(self):
        self.dismiss(None)
