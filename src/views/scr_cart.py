from textual import on, work
from textual.app import ComposeResult
from textual.containers import Container, Horizontal, HorizontalGroup, VerticalScroll
from textual.events import ScreenResume
from textual.message import Message
from textual.widgets import Button, Input, Label, Rule

from db.models import CartLine
from shop.errors import PersistenceFailure
from utils.messages import CartChangedMessage, ModeSwitchedMessage, NewOrderMessage
from utils.pure import format_money
from views.base_screen import BaseScreen
from views.modal_checkout import CheckoutModal
from views.modal_dialog import ConfirmDialogModal


class CartLineQuantityMessage(Message):
    bubble = True

    def __init__(self, product_id: int, quantity: int) -> None:
        super().__init__()
        self.product_id = product_id
        self.quantity = quantity


class CartLineRemoveMessage(Message):
    bubble = True

    def __init__(self, product_id: int) -> None:
        super().__init__()
        self.product_id = product_id


class CartLineWidget(HorizontalGroup):
    def __init__(self, line: CartLine):
        super().__init__()
        self.line = line

    def compose(self):
        with Container(id="div-cart-item-group"):
            with Container(id="div-item"):
                yield Label(self.line.title, id="label-item-name")
                yield Label(format_money(self.line.unit_price), id="label-item-price")
                yield Label(format_money(self.line.line_total), id="label-item-total")
            with Horizontal(id="div-actions"):
                yield Input(str(self.line.quantity), id="input-item-qty", type="integer")
                yield Button("Update", id="btn-item-update")
                yield Button("Remove", id="btn-item-remove", variant="warning")

    @on(Button.Pressed, "#btn-item-update")
    @on(Input.Submitted, "#input-item-qty")
    def handle_update(self) -> None:
        value = self.query_one("#input-item-qty", Input).value.strip()
        if not value.lstrip("-").isdigit():
            self.notify("Quantity must be a whole number.", severity="error")
            return
        self.post_message(CartLineQuantityMessage(self.line.product_id, int(value)))

    @on(Button.Pressed, "#btn-item-remove")
    def handle_remove(self) -> None:
        self.post_message(CartLineRemoveMessage(self.line.product_id))


class CartScreen(BaseScreen):
    """
    Cart lines with their frozen prices, quantity editing and checkout.
    """

    def compose(self) -> ComposeResult:
        yield from super().compose()
        yield VerticalScroll(id="vertscroll-content")
        yield Label("Cart Total: KES 0.00", id="label-cart-total")
        yield Rule(line_style="dashed")
        with Horizontal(id="hort-buttons"):
            yield Button("Clear Cart", id="btn-clear-cart")
            yield Button("Checkout", id="btn-checkout", variant="primary")

    def on_mount(self):
        self.handle_cart_change()

    @on(CartChangedMessage)
    @on(ModeSwitchedMessage)
    @on(ScreenResume)
    @work(exclusive=True)  # exclusive, or two refreshes can interleave and mount duplicates
    async def handle_cart_change(self):
        cart = self.app.state.cart
        lines = cart.lines

        content = self.query_one("#vertscroll-content")
        await content.remove_children()
        await content.mount_all([CartLineWidget(line) for line in lines])

        if not lines:
            content.add_class("no-items")
        else:
            content.remove_class("no-items")

        self.query_one("#label-cart-total", Label).update(
            f"Cart Total: {format_money(cart.total())}"
        )
        self.query_one("#btn-checkout", Button).disabled = not lines

    # every step is kept; the cart engine applies them one at a time
    @on(CartLineQuantityMessage)
    @work(group="cart-quantity")
    async def handle_quantity(self, message: CartLineQuantityMessage) -> None:
        try:
            await self.app.state.cart.set_quantity(message.product_id, message.quantity)
        except PersistenceFailure:
            self.notify("Could not save your cart, please try again.", severity="error")
            return
        if message.quantity <= 0:
            self.notify("Item removed from cart.")

    @on(CartLineRemoveMessage)
    @work(exclusive=True, group="cart-edit")
    async def handle_remove_item(self, message: CartLineRemoveMessage) -> None:
        if not await self.app.push_screen_wait(
            ConfirmDialogModal("Do you really want to remove this item from cart?")
        ):
            return
        try:
            await self.app.state.cart.remove_item(message.product_id)
        except PersistenceFailure:
            self.notify("Could not save your cart, please try again.", severity="error")
            return
        self.notify("Item removed from cart.", severity="information")

    @on(Button.Pressed, "#btn-clear-cart")
    @work(exclusive=True, group="cart-edit")
    async def handle_clear_cart(self) -> None:
        cart = self.app.state.cart
        if cart.is_empty:
            self.app.notify("Cart is empty.", severity="warning")
            return

        if await self.app.push_screen_wait(
            ConfirmDialogModal(
                "Do you really want to remove all items from cart?", tone="error"
            )
        ):
            try:
                await cart.clear()
            except PersistenceFailure:
                self.notify("Could not clear your cart, please try again.", severity="error")

    @on(Button.Pressed, "#btn-checkout")
    @work(exclusive=True, group="checkout")
    async def handle_checkout(self) -> None:
        if self.app.state.cart.is_empty:
            self.app.notify("Cart is empty.", severity="warning")
            return

        order_id = await self.app.push_screen_wait(CheckoutModal())
        if order_id:
            self.app.post_message(NewOrderMessage(order_id))
