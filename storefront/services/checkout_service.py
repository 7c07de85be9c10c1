# storefront/services/checkout_service.py
import logging
import uuid
from decimal import Decimal

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from storefront.core.config import get_settings
from storefront.core.errors import (
    CheckoutConflict,
    EmptyCart,
    ProductNotFound,
    StorefrontError,
    Unavailable,
)
from storefront.core.transactions import backoff_sleep, is_retryable
from storefront.models.order import ORDER_STATUS_COMPLETED, Order, OrderItem
from storefront.repositories.cart_repo import CartRepository
from storefront.repositories.inventory_ledger import InventoryLedger
from storefront.repositories.order_repo import OrderRepository
from storefront.services.stock_validator import StockValidator

logger = logging.getLogger(__name__)


class CheckoutService:
    """
    Convert a user's cart into an immutable Order without overselling.

    One checkout is one database transaction:

      1. Load the cart lines (locked FOR UPDATE); EmptyCart if none.
      2. Lock the referenced products in id order and re-validate every line
         against *current* stock.
      3. Build the Order with price/name snapshots per line.
      4. Decrement stock through the InventoryLedger (compare-and-swap).
      5. Append the order to the journal and delete exactly the snapshotted
         cart lines, matching id and quantity; a line edited in between
         aborts the attempt and the checkout starts over.
      6. Commit.

    Any exception rolls everything back, so a failed checkout leaves cart and
    stock exactly as they were. Transient storage conflicts are retried up to
    `max_attempts`; other storage failures become `Unavailable`.
    """

    def __init__(
        self,
        cart_repo: CartRepository,
        order_repo: OrderRepository,
        ledger: InventoryLedger,
        validator: StockValidator,
        max_attempts: int | None = None,
        retry_backoff: float | None = None,
    ):
        settings = get_settings()
        self.cart_repo = cart_repo
        self.order_repo = order_repo
        self.ledger = ledger
        self.validator = validator
        self.max_attempts = max(1, max_attempts or settings.CHECKOUT_MAX_ATTEMPTS)
        self.retry_backoff = (
            settings.CHECKOUT_RETRY_BACKOFF if retry_backoff is None else retry_backoff
        )

    def checkout(self, session: Session, user_id: uuid.UUID) -> Order:
        """
        Run the checkout unit of work, retrying on transient conflicts.

        Raises:
            EmptyCart: the cart has no lines.
            ProductNotFound: a cart line references a removed product.
            InsufficientStock: a line exceeds current stock.
            Unavailable: storage failed; nothing was committed.
        """
        attempt = 0
        while True:
            attempt += 1
            try:
                order = self._checkout_once(session, user_id)
                session.commit()
            except StorefrontError as exc:
                session.rollback()
                logger.warning("checkout.rejected user=%s reason=%s", user_id, exc.code)
                raise
            except CheckoutConflict:
                session.rollback()
                if attempt >= self.max_attempts:
                    logger.error(
                        "checkout.conflict_exhausted user=%s attempts=%d",
                        user_id,
                        attempt,
                    )
                    raise Unavailable("Cart changed during checkout, please retry")
                logger.warning(
                    "checkout.cart_changed user=%s attempt=%d", user_id, attempt
                )
                backoff_sleep(self.retry_backoff, attempt)
                continue
            except SQLAlchemyError as exc:
                session.rollback()
                if is_retryable(exc) and attempt < self.max_attempts:
                    logger.warning(
                        "checkout.retry user=%s attempt=%d error=%s",
                        user_id,
                        attempt,
                        exc,
                    )
                    backoff_sleep(self.retry_backoff, attempt)
                    continue
                logger.error(
                    "checkout.storage_failure user=%s attempt=%d error=%s",
                    user_id,
                    attempt,
                    exc,
                )
                raise Unavailable() from exc

            session.refresh(order)
            logger.info(
                "checkout.completed user=%s order=%s total=%s",
                user_id,
                order.id,
                order.total_amount,
            )
            return order

    def _checkout_once(self, session: Session, user_id: uuid.UUID) -> Order:
        # 1) Snapshot the cart
        lines = self.cart_repo.list_for_user(session, user_id, for_update=True)
        if not lines:
            raise EmptyCart()
        snapshot = [(ln.id, ln.quantity) for ln in lines]

        logger.info("checkout.started user=%s lines=%d", user_id, len(lines))

        # 2) Lock products and re-validate against current stock
        products = self.ledger.lock_products(session, [ln.product_id for ln in lines])

        for line in lines:
            product = products.get(line.product_id)
            if product is None:
                raise ProductNotFound(line.product_id)
            self.validator.ensure_available(product, line.quantity)

        # 3) Build the order with price snapshots
        items: list[OrderItem] = []
        total = Decimal("0")
        for line in lines:
            product = products[line.product_id]
            items.append(
                OrderItem(
                    product_id=product.id,
                    product_name=product.name,
                    quantity=line.quantity,
                    unit_price=product.price,
                )
            )
            total += product.price * line.quantity

        order = Order(
            user_id=user_id,
            status=ORDER_STATUS_COMPLETED,
            total_amount=total,
        )

        # 4) Decrement stock (compare-and-swap per product)
        for line in lines:
            remaining = self.ledger.decrement(session, line.product_id, line.quantity)
            logger.info(
                "checkout.stock_reserved product=%s quantity=%d remaining=%d",
                line.product_id,
                line.quantity,
                remaining,
            )

        # 5) Journal the order and clear exactly the lines we priced
        self.order_repo.append(session, order, items)

        deleted = self.cart_repo.delete_lines_no_commit(session, snapshot)
        if deleted != len(snapshot):
            raise CheckoutConflict()

        return order
