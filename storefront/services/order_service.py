# storefront/services/order_service.py
import uuid
from collections.abc import Iterator

from sqlmodel import Session

from storefront.core.errors import OrderNotFound
from storefront.models.order import Order, OrderItem
from storefront.repositories.order_repo import OrderRepository
from storefront.schemas.order import OrderItemRead, OrderRead, OrderWithItemsRead


class OrderService:
    """
    Read side of the order journal.

    Responsibilities:
      - order history for a user (most recent first)
      - single order with items, scoped to its owner
      - DTO assembly with line totals
    """

    def __init__(self, order_repo: OrderRepository):
        self.order_repo = order_repo

    def iter_user_orders(
        self,
        session: Session,
        user_id: uuid.UUID,
    ) -> Iterator[Order]:
        """Lazy, restartable iteration over a user's orders (newest first)."""
        return self.order_repo.iter_for_user(session, user_id)

    def list_user_orders(
        self,
        session: Session,
        user_id: uuid.UUID,
        skip: int = 0,
        limit: int = 50,
    ) -> list[OrderRead]:
        """
        List orders for the given user (without items).
        """
        return [
            OrderRead.model_validate(order, from_attributes=True)
            for order in self.order_repo.iter_for_user(session, user_id, skip, limit)
        ]

    def list_user_orders_with_items(
        self,
        session: Session,
        user_id: uuid.UUID,
        skip: int = 0,
        limit: int = 50,
    ) -> list[OrderWithItemsRead]:
        """
        Order history page with each order's lines (two queries per page).
        """
        orders = list(self.order_repo.iter_for_user(session, user_id, skip, limit))
        items = self.order_repo.list_items_for_orders(session, [o.id for o in orders])
        return [self.build_order_with_items(o, items[o.id]) for o in orders]

    def get_user_order(
        self,
        session: Session,
        user_id: uuid.UUID,
        order_id: uuid.UUID,
    ) -> OrderWithItemsRead:
        """
        Get a single order for the user, including items.

        - OrderNotFound if order not found or does not belong to this user.
        """
        order = self.order_repo.get_by_id(session, order_id)
        if not order or order.user_id != user_id:
            raise OrderNotFound(order_id)

        items = self.order_repo.list_items_for_order(session, order.id)
        return self.build_order_with_items(order, items)

    def build_order_with_items(
        self,
        order: Order,
        items: list[OrderItem],
    ) -> OrderWithItemsRead:
        """
        Compose OrderWithItemsRead from ORM models.
        """
        item_dtos = [
            OrderItemRead(
                id=it.id,
                order_id=it.order_id,
                product_id=it.product_id,
                product_name=it.product_name,
                quantity=it.quantity,
                unit_price=it.unit_price,
                line_total=it.unit_price * it.quantity,
            )
            for it in items
        ]

        return OrderWithItemsRead(
            id=order.id,
            user_id=order.user_id,
            status=order.status,
            total_amount=order.total_amount,
            created_at=order.created_at,
            items=item_dtos,
        )
