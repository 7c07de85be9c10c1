# storefront/models/order.py
import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlmodel import SQLModel, Field

ORDER_STATUS_COMPLETED = "completed"


class Order(SQLModel, table=True):
    """
    Customer order, written once by checkout and never modified.
    """

    __tablename__ = "orders"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    user_id: uuid.UUID = Field(
        index=True,
    )

    # Checkout either completes or leaves nothing behind
    status: str = Field(
        default=ORDER_STATUS_COMPLETED,
        max_length=50,
        index=True,
    )

    total_amount: Decimal = Field(
        ge=0,
        max_digits=12,
        decimal_places=2,
        description="Sum of unit_price * quantity over the order items",
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        index=True,
        description="Creation timestamp (UTC)",
    )


class OrderItem(SQLModel, table=True):
    """
    Line item inside an order.

    unit_price / product_name are snapshots taken at checkout, so later
    catalog edits do not rewrite order history.
    """

    __tablename__ = "order_items"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    order_id: uuid.UUID = Field(
        foreign_key="orders.id",
        index=True,
    )

    product_id: uuid.UUID = Field(
        foreign_key="products.id",
        index=True,
    )

    product_name: str | None = None

    quantity: int = Field(
        gt=0,
        description="Quantity ordered (>=1)",
    )

    unit_price: Decimal = Field(
        ge=0,
        max_digits=10,
        decimal_places=2,
        description="Unit price at time of order",
    )
