# Overview: Domain error taxonomy shared by services and routes.

"""
Kiosk error hierarchy.

Services raise these; routes translate them into JSON responses using
`status_code`. Insufficient balance is deliberately absent: a checkout that
exceeds the balance accrues debt instead of failing.
"""

from __future__ import annotations


class KioskError(Exception):
    """Base for expected, user-facing failures."""
    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"error": self.message, "details": self.details}


class ValidationError(KioskError):
    """400-level input problem."""


class InvalidAmountError(ValidationError):
    """Money amount missing, non-integer, or not positive."""

    def __init__(self, message: str = "amount_cents must be a positive integer", details: dict | None = None):
        super().__init__(message, details)


class AuthenticationError(KioskError):
    """Credentials or token rejected."""
    status_code = 401


class AuthorizationError(KioskError):
    """Authenticated, but not allowed to do this."""
    status_code = 403


class NotFoundError(KioskError):
    status_code = 404


class UserNotFoundError(NotFoundError):
    def __init__(self, user_id: int | None = None):
        super().__init__("User not found", {"user_id": user_id} if user_id is not None else None)


class ProductNotFoundError(NotFoundError):
    def __init__(self, product_id: int | None = None):
        super().__init__("Product not found", {"product_id": product_id} if product_id is not None else None)


class CartItemNotFoundError(NotFoundError):
    def __init__(self, cart_item_id: int | None = None):
        super().__init__("Cart item not found", {"cart_item_id": cart_item_id} if cart_item_id is not None else None)


class ConflictError(KioskError):
    """409-level business rule conflict (e.g., duplicate phone)."""
    status_code = 409


class InsufficientStockError(KioskError):
    """Requested quantity exceeds live stock. Details carry what is available."""

    def __init__(self, *, product_id: int, product_name: str, requested_quantity: int, available_quantity: int):
        super().__init__(
            f"Not enough stock for {product_name}. Only {available_quantity} available.",
            {
                "product_id": product_id,
                "product_name": product_name,
                "requested_quantity": requested_quantity,
                "available_quantity": available_quantity,
            },
        )
        self.product_id = product_id
        self.available_quantity = available_quantity


class EmptyCartError(KioskError):
    def __init__(self):
        super().__init__("Cart is empty")


class NoDebtError(KioskError):
    def __init__(self, user_id: int):
        super().__init__("User has no outstanding debt to settle", {"user_id": user_id})
