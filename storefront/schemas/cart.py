# storefront/schemas/cart.py
import uuid
from datetime import datetime
from decimal import Decimal

from sqlmodel import SQLModel, Field

from storefront.core.config import get_settings

MAX_CART_QUANTITY = get_settings().MAX_CART_QUANTITY


class CartItemCreate(SQLModel):
    """
    Payload for adding to cart.
    """

    product_id: uuid.UUID
    quantity: int = Field(default=1, gt=0, le=MAX_CART_QUANTITY)


class CartItemUpdate(SQLModel):
    """
    Payload for updating quantity of a cart item.

    quantity <= 0 removes the line.
    """

    quantity: int = Field(le=MAX_CART_QUANTITY)


class CartItemRead(SQLModel):
    """
    Read model for a single cart item, priced at the product's current price.
    """

    id: uuid.UUID
    user_id: uuid.UUID
    product_id: uuid.UUID
    product_name: str | None = None
    quantity: int
    unit_price: Decimal
    line_total: Decimal
    available_stock: int
    created_at: datetime


class CartSummary(SQLModel):
    """
    Full cart response model with totals (live quote, not a committed price).
    """

    items: list[CartItemRead]
    total_quantity: int
    total_price: Decimal
