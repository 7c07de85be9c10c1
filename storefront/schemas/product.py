# storefront/schemas/product.py
import uuid
from datetime import datetime
from decimal import Decimal

from sqlmodel import SQLModel


class ProductRead(SQLModel):
    id: uuid.UUID
    name: str
    description: str | None = None
    category: str | None = None
    price: Decimal
    stock_on_hand: int
    created_at: datetime


class ProductStock(SQLModel):
    """
    Advisory stock figure; may be stale by the time the client acts on it.
    """

    product_id: uuid.UUID
    available: int
