from textual.message import Message


class QuitRequestedMessage(Message):
    """
    broadcasted when the app is about to quit
    """

    bubble = True


class UserLogoutMessage(Message):
    """
    broadcasted when the administrator logs out
    """

    bubble = True


class UserLoginMessage(Message):
    """
    Fired when an administrator logged in, so the app can switch to the admin modes
    """

    bubble = True


class CartChangedMessage(Message):
    """
    Fired by the cart engine observer after every cart change,
    refreshes the cart screen and the item count in the sidebar.

    Posted at App level, screens receive it through the app.
    """

    bubble = True

    def __init__(self, count: int = 0, total: int = 0) -> None:
        super().__init__()
        self.count = count
        self.total = total


class NewOrderMessage(Message):
    """
    Fired when a new order is placed.
    Listened to by the admin orders and dashboard screens
    """

    bubble = True

    def __init__(self, order_id: str) -> None:
        super().__init__()
        self.order_id = order_id


class OrderStatusChangedMessage(Message):
    bubble = True

    def __init__(self, order_id: str, status: str) -> None:
        super().__init__()
        self.order_id = order_id
        self.status = status


class ModeSwitchedMessage(Message):
    """
    fired whenever switch_mode is called
    must be fired from app level
    """

    bubble = True

    def __init__(self, old_mode: str, new_mode: str) -> None:
        super().__init__()
        self.old_mode = old_mode
        self.new_mode = new_mode
