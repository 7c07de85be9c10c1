# storefront/repositories/order_repo.py
import uuid
from collections.abc import Iterator

from sqlmodel import Session, select

from storefront.models.order import Order, OrderItem


class OrderRepository:
    """
    Append-only journal of finalized orders.

    NOTE:
      - No commits here; order creation is part of the checkout transaction.
        The checkout service is responsible for calling session.commit().
      - No update/delete API: orders are immutable.
    """

    # ---- Orders ----

    def iter_for_user(
        self,
        session: Session,
        user_id: uuid.UUID,
        skip: int = 0,
        limit: int | None = None,
    ) -> Iterator[Order]:
        """
        Lazily yield a user's orders, most recent first.

        Orders sharing a timestamp fall back to id order, so paging is stable.

        Each call runs a fresh query, so the sequence can be restarted.
        """
        stmt = (
            select(Order)
            .where(Order.user_id == user_id)
            .order_by(Order.created_at.desc(), Order.id.desc())
            .offset(skip)
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        yield from session.exec(stmt)

    def get_by_id(self, session: Session, order_id: uuid.UUID) -> Order | None:
        return session.get(Order, order_id)

    def append(
        self,
        session: Session,
        order: Order,
        items: list[OrderItem],
    ) -> Order:
        """
        Insert an Order and its items without committing, but ensure ids are populated.
        """
        session.add(order)
        session.flush()  # Assign PK
        for item in items:
            item.order_id = order.id
        session.add_all(items)
        session.flush()
        return order

    # ---- Order items ----

    def list_items_for_order(
        self,
        session: Session,
        order_id: uuid.UUID,
    ) -> list[OrderItem]:
        stmt = (
            select(OrderItem)
            .where(OrderItem.order_id == order_id)
            .order_by(OrderItem.product_name, OrderItem.id)
        )
        return session.exec(stmt).all()

    def list_items_for_orders(
        self,
        session: Session,
        order_ids: list[uuid.UUID],
    ) -> dict[uuid.UUID, list[OrderItem]]:
        """Items of several orders in one query, grouped by order id."""
        grouped: dict[uuid.UUID, list[OrderItem]] = {oid: [] for oid in order_ids}
        if not order_ids:
            return grouped
        stmt = (
            select(OrderItem)
            .where(OrderItem.order_id.in_(order_ids))
            .order_by(OrderItem.product_name, OrderItem.id)
        )
        for item in session.exec(stmt):
            grouped[item.order_id].append(item)
        return grouped
