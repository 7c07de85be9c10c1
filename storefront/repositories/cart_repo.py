# storefront/repositories/cart_repo.py
import uuid

from sqlalchemy import and_, delete, or_, update
from sqlmodel import Session, select

from storefront.models.cart import CartItem


class CartRepository:
    """
    Data access layer for cart lines.

    Single-line writes commit immediately (row-level atomicity).
    Methods suffixed `_no_commit` participate in a caller-owned transaction.
    """

    # Stable display order: insertion time, then id
    def list_for_user(
        self,
        session: Session,
        user_id: uuid.UUID,
        for_update: bool = False,
    ) -> list[CartItem]:
        stmt = (
            select(CartItem)
            .where(CartItem.user_id == user_id)
            .order_by(CartItem.created_at, CartItem.id)
        )
        if for_update:
            stmt = stmt.with_for_update()
        return session.exec(stmt).all()

    def get_item(
        self, session: Session, user_id: uuid.UUID, product_id: uuid.UUID
    ) -> CartItem | None:
        stmt = select(CartItem).where(
            CartItem.user_id == user_id, CartItem.product_id == product_id
        )
        return session.exec(stmt).first()

    def get_for_user(
        self, session: Session, user_id: uuid.UUID, item_id: uuid.UUID
    ) -> CartItem | None:
        item = session.get(CartItem, item_id)
        if item is None or item.user_id != user_id:
            return None
        return item

    # CRUD
    def create(self, session: Session, item: CartItem) -> CartItem:
        session.add(item)
        session.commit()
        session.refresh(item)
        return item

    def update(self, session: Session, item: CartItem) -> CartItem:
        session.add(item)
        session.commit()
        session.refresh(item)
        return item

    def increment(
        self, session: Session, item_id: uuid.UUID, amount: int
    ) -> CartItem | None:
        """
        Add `amount` to a line's quantity in one UPDATE statement.

        Concurrent merges on the same line serialize in the database instead of
        overwriting each other. Returns the refreshed line, or None if the line
        vanished in the meantime.
        """
        stmt = (
            update(CartItem)
            .where(CartItem.id == item_id)
            .values(quantity=CartItem.quantity + amount)
            .execution_options(synchronize_session=False)
        )
        result = session.execute(stmt)
        session.commit()
        if result.rowcount == 0:
            return None
        item = session.get(CartItem, item_id)
        if item is not None:
            session.refresh(item)
        return item

    def delete(self, session: Session, item: CartItem) -> None:
        session.delete(item)
        session.commit()

    def clear_user_cart(self, session: Session, user_id: uuid.UUID) -> int:
        result = session.execute(delete(CartItem).where(CartItem.user_id == user_id))
        session.commit()
        return result.rowcount

    def delete_lines_no_commit(
        self, session: Session, snapshot: list[tuple[uuid.UUID, int]]
    ) -> int:
        """
        Delete snapshotted lines inside the caller's transaction.

        `snapshot` holds (line id, quantity) pairs as they were read. A line whose
        quantity changed since then is left in place, so a row count below
        len(snapshot) means the cart was edited concurrently.
        """
        if not snapshot:
            return 0
        result = session.execute(
            delete(CartItem)
            .where(
                or_(
                    *(
                        and_(CartItem.id == item_id, CartItem.quantity == quantity)
                        for item_id, quantity in snapshot
                    )
                )
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount
