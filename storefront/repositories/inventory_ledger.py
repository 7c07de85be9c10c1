# storefront/repositories/inventory_ledger.py
import uuid

from sqlalchemy import update
from sqlmodel import Session, select

from storefront.core.errors import InsufficientStock, InvalidQuantity, ProductNotFound
from storefront.models.product import Product


class InventoryLedger:
    """
    Authoritative stock counts per product.

    The ledger is the only writer of `Product.stock_on_hand` outside catalog
    management. Writes never commit: they join the caller's transaction so a
    checkout's decrements, order insert and cart clear commit together.

    Concurrency:
      - lock_products() takes row locks (SELECT ... FOR UPDATE) in id order
        on backends that support them.
      - decrement() is a compare-and-swap UPDATE guarded by
        `stock_on_hand >= amount`, so stock never goes negative even where
        row locks are unavailable (SQLite).
    """

    def current_stock(self, session: Session, product_id: uuid.UUID) -> int:
        stmt = select(Product.stock_on_hand).where(Product.id == product_id)
        stock = session.exec(stmt).first()
        if stock is None:
            raise ProductNotFound(product_id)
        return stock

    def lock_products(
        self,
        session: Session,
        product_ids: list[uuid.UUID],
    ) -> dict[uuid.UUID, Product]:
        """
        Load and row-lock the given products, ordered by id to avoid deadlocks.

        Missing products are simply absent from the returned mapping.
        """
        if not product_ids:
            return {}
        stmt = (
            select(Product)
            .where(Product.id.in_(sorted(set(product_ids))))
            .order_by(Product.id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return {p.id: p for p in session.exec(stmt).all()}

    def decrement(self, session: Session, product_id: uuid.UUID, amount: int) -> int:
        """
        Atomically subtract `amount` from stock; returns the remaining stock.

        Raises:
            InvalidQuantity: amount <= 0
            ProductNotFound: product does not exist
            InsufficientStock: amount exceeds current stock (nothing written)
        """
        if amount <= 0:
            raise InvalidQuantity(amount)

        stmt = (
            update(Product)
            .where(Product.id == product_id, Product.stock_on_hand >= amount)
            .values(stock_on_hand=Product.stock_on_hand - amount)
            .execution_options(synchronize_session=False)
        )
        result = session.execute(stmt)

        if result.rowcount != 1:
            available = self.current_stock(session, product_id)
            product = session.get(Product, product_id)
            raise InsufficientStock(
                product_id,
                requested=amount,
                available=available,
                product_name=product.name if product else None,
            )

        return self.current_stock(session, product_id)

    def increment(self, session: Session, product_id: uuid.UUID, amount: int) -> int:
        """Atomically add `amount` to stock (restock); returns the new stock."""
        if amount <= 0:
            raise InvalidQuantity(amount)

        stmt = (
            update(Product)
            .where(Product.id == product_id)
            .values(stock_on_hand=Product.stock_on_hand + amount)
            .execution_options(synchronize_session=False)
        )
        result = session.execute(stmt)
        if result.rowcount != 1:
            raise ProductNotFound(product_id)

        return self.current_stock(session, product_id)
