"""Domain errors for the cart / checkout pipeline.

Raised by repositories and services when a business rule is violated.
The API layer renders them through a single exception handler
(see ``storefront.main``), so services never deal with HTTP.
"""

from __future__ import annotations

import uuid
from typing import Any

from fastapi import status


class StorefrontError(Exception):
    """Base class for expected, structured business failures."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "storefront_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def detail(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message}


class ProductNotFound(StorefrontError):
    """The referenced product does not exist in the catalog."""

    status_code = status.HTTP_404_NOT_FOUND
    code = "product_not_found"

    def __init__(self, product_id: uuid.UUID) -> None:
        super().__init__(f"Product {product_id} not found")
        self.product_id = product_id

    def detail(self) -> dict[str, Any]:
        return {**super().detail(), "product_id": str(self.product_id)}


class InsufficientStock(StorefrontError):
    """Requested quantity exceeds the product's current stock."""

    status_code = status.HTTP_409_CONFLICT
    code = "insufficient_stock"

    def __init__(
        self,
        product_id: uuid.UUID,
        requested: int,
        available: int,
        product_name: str | None = None,
    ) -> None:
        label = product_name or str(product_id)
        super().__init__(
            f"Insufficient stock for {label} (have {available}, requested {requested})"
        )
        self.product_id = product_id
        self.product_name = product_name
        self.requested = requested
        self.available = available

    def detail(self) -> dict[str, Any]:
        return {
            **super().detail(),
            "product_id": str(self.product_id),
            "product_name": self.product_name,
            "requested": self.requested,
            "available": self.available,
        }


class EmptyCart(StorefrontError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "empty_cart"

    def __init__(self) -> None:
        super().__init__("Cart is empty")


class InvalidQuantity(StorefrontError):
    """Quantity is non-positive or above the per-line maximum."""

    status_code = 422
    code = "invalid_quantity"

    def __init__(self, quantity: int, maximum: int | None = None) -> None:
        if maximum is None:
            message = f"Quantity must be positive (got {quantity})"
        else:
            message = f"Quantity must be between 1 and {maximum} (got {quantity})"
        super().__init__(message)
        self.quantity = quantity
        self.maximum = maximum

    def detail(self) -> dict[str, Any]:
        return {**super().detail(), "quantity": self.quantity, "max": self.maximum}


class CartLineNotFound(StorefrontError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "cart_line_not_found"

    def __init__(self, line_id: uuid.UUID) -> None:
        super().__init__(f"Cart line {line_id} not found")
        self.line_id = line_id

    def detail(self) -> dict[str, Any]:
        return {**super().detail(), "line_id": str(self.line_id)}


class OrderNotFound(StorefrontError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "order_not_found"

    def __init__(self, order_id: uuid.UUID) -> None:
        super().__init__(f"Order {order_id} not found")
        self.order_id = order_id

    def detail(self) -> dict[str, Any]:
        return {**super().detail(), "order_id": str(self.order_id)}


class Unavailable(StorefrontError):
    """Storage failed mid-operation; nothing was committed, safe to retry."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "unavailable"

    def __init__(self, message: str = "Storage temporarily unavailable, please retry") -> None:
        super().__init__(message)

    def detail(self) -> dict[str, Any]:
        return {**super().detail(), "retryable": True}


class CheckoutConflict(Exception):
    """
    Internal signal: the cart changed underneath a running checkout.

    Never leaves the checkout service; the attempt is rolled back and retried.
    """
