"""Errors raised by the storefront core and its storage collaborators."""


class ShopError(Exception):
    """Base class for every storefront error."""


class NotFoundError(ShopError):
    """A product, order, user or profile update does not exist."""

    def __init__(self, kind: str, key) -> None:
        super().__init__(f"{kind} {key!r} not found.")
        self.kind = kind
        self.key = key


class InvalidCredentialsError(ShopError):
    def __init__(self) -> None:
        super().__init__("Invalid email or password.")


class PendingApprovalError(ShopError):
    """Credentials are valid but the account has not been approved yet."""

    def __init__(self, identifier: str) -> None:
        super().__init__("Account pending approval.")
        self.identifier = identifier


class NotAuthorizedError(ShopError):
    pass


class DuplicateAccountError(ShopError):
    def __init__(self, identifier: str) -> None:
        super().__init__("Email already registered.")
        self.identifier = identifier


class EmptyCartError(ShopError):
    def __init__(self) -> None:
        super().__init__("Cannot place an order from an empty cart.")


class InvalidTransitionError(ShopError):
    def __init__(self, current, requested) -> None:
        super().__init__(
            f"Order status cannot change from {current.value} to {requested.value}."
        )
        self.current = current
        self.requested = requested


class InvalidQuantityError(ShopError, ValueError):
    def __init__(self, quantity) -> None:
        super().__init__(f"Quantity must be at least 1, got {quantity!r}.")
        self.quantity = quantity


class PersistenceFailure(ShopError):
    """The backing store is unreachable or rejected an operation."""
