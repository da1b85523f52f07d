from textual import on, work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.widgets import LoadingIndicator

from shop.cart import CartEngine
from utils.config import load_settings
from utils.logger import get_logger
from utils.messages import (
    CartChangedMessage,
    ModeSwitchedMessage,
    NewOrderMessage,
    OrderStatusChangedMessage,
    QuitRequestedMessage,
    UserLoginMessage,
    UserLogoutMessage,
)
from utils.state import AppState
from views.modal_login import LoginModal
from views.scr_admin_accounts import AdminAccountsScreen
from views.scr_admin_dashboard import AdminDashboardScreen
from views.scr_admin_inbox import AdminInboxScreen
from views.scr_admin_orders import AdminOrdersScreen
from views.scr_admin_products import AdminProductsScreen
from views.scr_cart import CartScreen
from views.scr_contact import ContactScreen
from views.scr_shop import ShopScreen

_logger = get_logger(__name__)


class BiltoneApp(App):
    BINDINGS = [
        Binding("ctrl+t", "switch_light", "Toggle Theme", show=True),
    ]

    MODES = {
        "shop": ShopScreen,
        "cart": CartScreen,
        "contact": ContactScreen,
        "dashboard": AdminDashboardScreen,
        "orders": AdminOrdersScreen,
        "products": AdminProductsScreen,
        "inbox": AdminInboxScreen,
        "accounts": AdminAccountsScreen,
    }

    CUSTOMER_MODES = {"shop": "Shop", "cart": "Cart", "contact": "Contact Us"}
    ADMIN_MODES = {
        "dashboard": "Dashboard",
        "orders": "Orders",
        "products": "Products",
        "inbox": "Inbox & Content",
        "accounts": "Accounts",
    }

    CSS_PATH = "styles/biltone.tcss"

    state: AppState

    def __init__(self, state: AppState | None = None):
        super().__init__()
        self.state = state or AppState.from_settings(load_settings())
        self.state.warning_listener = self._show_warning
        self.state.cart.subscribe(self._on_cart_change)

    def compose(self) -> ComposeResult:
        yield LoadingIndicator()

    async def on_mount(self) -> None:
        self.main_flow()

    def _show_warning(self, text: str) -> None:
        self.notify(text, title="Data unavailable", severity="warning")

    def _on_cart_change(self, cart: CartEngine) -> None:
        # the current screen only; an app-level handler would receive its own post
        self.screen.post_message(CartChangedMessage(cart.count(), cart.total()))

    def action_switch_light(self):
        if self.theme == "textual-dark":
            self.theme = "solarized-light"
        else:
            self.theme = "textual-dark"
        self.notify(f"Theme changed to {self.theme}")

    async def go_to(self, mode: str) -> None:
        self.post_message(ModeSwitchedMessage(self.current_mode, mode))
        await self.switch_mode(mode)

    @work
    async def main_flow(self):
        await self.state.start()
        await self.go_to("shop")

    @work(exclusive=True, group="login")
    async def open_login(self):
        if await self.push_screen_wait(LoginModal()):
            await self.go_to("dashboard")

    @on(UserLoginMessage)
    def handle_user_login(self):
        user = self.state.session.user
        _logger.info(f"Session {self.state.session.id} bound to {user.email if user else '-'}.")

    @on(UserLogoutMessage)
    @work
    async def handle_user_logout(self):
        self.state.identity.logout(self.state.session)
        self.notify("Logout successful.")
        await self.go_to("shop")

    @on(NewOrderMessage)
    def handle_new_order(self, message: NewOrderMessage):
        _logger.info(f"New order {message.order_id}.")

    @on(OrderStatusChangedMessage)
    def handle_status_changed(self, message: OrderStatusChangedMessage):
        _logger.info(f"Order {message.order_id} moved to {message.status}.")

    @on(QuitRequestedMessage)
    @work
    async def handle_quit(self):
        self.state.identity.logout(self.state.session)
        await self.state.close()
        self.exit()


def run() -> None:
    BiltoneApp().run()


if __name__ == "__main__":
    run()
