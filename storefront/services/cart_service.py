# storefront/services/cart_service.py
import logging
import uuid
from decimal import Decimal

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from storefront.core.config import get_settings
from storefront.core.errors import CartLineNotFound, InvalidQuantity, ProductNotFound
from storefront.models.cart import CartItem
from storefront.models.product import Product
from storefront.repositories.cart_repo import CartRepository
from storefront.repositories.product_repo import ProductRepository
from storefront.schemas.cart import CartItemRead, CartSummary
from storefront.services.stock_validator import StockValidator

logger = logging.getLogger(__name__)


class CartService:
    """
    Business logic for cart operations.

    Responsibilities:
      - validate product existence
      - enforce 1 <= quantity <= MAX_CART_QUANTITY per line
      - enforce (merged) quantity <= stock_on_hand (advisory check)
      - one line per (user, product): adds merge into the existing line
      - compute line totals and cart totals from *current* product prices
    """

    def __init__(
        self,
        cart_repo: CartRepository,
        product_repo: ProductRepository,
        validator: StockValidator,
        max_quantity: int | None = None,
    ):
        self.cart_repo = cart_repo
        self.product_repo = product_repo
        self.validator = validator
        self.max_quantity = max_quantity or get_settings().MAX_CART_QUANTITY

    # ---- internal helpers ----

    def _get_product(self, session: Session, product_id: uuid.UUID) -> Product:
        product = self.product_repo.get_by_id(session, product_id)
        if not product:
            raise ProductNotFound(product_id)
        return product

    def _check_bounds(self, quantity: int) -> None:
        if quantity <= 0 or quantity > self.max_quantity:
            raise InvalidQuantity(quantity, self.max_quantity)

    # ---- queries ----

    def list_items(self, session: Session, user_id: uuid.UUID) -> list[CartItem]:
        return self.cart_repo.list_for_user(session, user_id)

    def total(self, session: Session, user_id: uuid.UUID) -> Decimal:
        """Live quote: current price * quantity summed over the cart."""
        return self.get_cart_summary(session, user_id).total_price

    def get_cart_summary(
        self,
        session: Session,
        user_id: uuid.UUID,
    ) -> CartSummary:
        """
        Return full cart summary:
          - list of CartItemRead (with live unit_price and line_total)
          - total_quantity
          - total_price
        """
        items = self.cart_repo.list_for_user(session, user_id)
        products = self.product_repo.get_many(session, [it.product_id for it in items])

        item_reads: list[CartItemRead] = []
        total_qty = 0
        total_price = Decimal("0")

        for it in items:
            product = products.get(it.product_id)
            # Product removed from the catalog: show the line, price it at zero;
            # checkout will reject it.
            unit_price = product.price if product else Decimal("0")
            line_total = unit_price * it.quantity
            total_qty += it.quantity
            total_price += line_total

            item_reads.append(
                CartItemRead(
                    id=it.id,
                    user_id=it.user_id,
                    product_id=it.product_id,
                    product_name=product.name if product else None,
                    quantity=it.quantity,
                    unit_price=unit_price,
                    line_total=line_total,
                    available_stock=product.stock_on_hand if product else 0,
                    created_at=it.created_at,
                )
            )

        return CartSummary(
            items=item_reads,
            total_quantity=total_qty,
            total_price=total_price,
        )

    # ---- mutations ----

    def add_or_merge(
        self,
        session: Session,
        user_id: uuid.UUID,
        product_id: uuid.UUID,
        quantity: int,
    ) -> CartItem:
        """
        Add a product to the user's cart, merging into an existing line.

        Rules:
          - product must exist
          - 1 <= quantity and existing + quantity <= MAX_CART_QUANTITY
          - existing + quantity <= stock_on_hand
        """
        self._check_bounds(quantity)
        product = self._get_product(session, product_id)
        existing = self.cart_repo.get_item(session, user_id, product_id)

        merged = quantity + (existing.quantity if existing else 0)
        self._check_bounds(merged)
        self.validator.ensure_available(product, merged)

        if existing:
            item = self.cart_repo.increment(session, existing.id, quantity)
            if item is not None:
                return item
            # Line was removed concurrently; fall through and recreate it.

        try:
            return self.cart_repo.create(
                session,
                CartItem(user_id=user_id, product_id=product_id, quantity=quantity),
            )
        except IntegrityError:
            # A concurrent add for the same (user, product) won the insert.
            session.rollback()
            existing = self.cart_repo.get_item(session, user_id, product_id)
            if existing is None:
                raise
            logger.info(
                "cart.merge_after_race user=%s product=%s", user_id, product_id
            )
            self._check_bounds(existing.quantity + quantity)
            self.validator.ensure_available(product, existing.quantity + quantity)
            item = self.cart_repo.increment(session, existing.id, quantity)
            if item is None:
                raise
            return item

    def set_quantity(
        self,
        session: Session,
        user_id: uuid.UUID,
        line_id: uuid.UUID,
        quantity: int,
    ) -> CartItem | None:
        """
        Set a line's quantity.

        quantity <= 0 deletes the line (absent line => no-op).
        Returns the updated line, or None when it was deleted.
        """
        item = self.cart_repo.get_for_user(session, user_id, line_id)

        if quantity <= 0:
            if item is not None:
                self.cart_repo.delete(session, item)
            return None

        self._check_bounds(quantity)
        if item is None:
            raise CartLineNotFound(line_id)

        product = self._get_product(session, item.product_id)
        self.validator.ensure_available(product, quantity)

        item.quantity = quantity
        return self.cart_repo.update(session, item)

    def remove(self, session: Session, user_id: uuid.UUID, line_id: uuid.UUID) -> None:
        """Remove a line from the cart if present."""
        item = self.cart_repo.get_for_user(session, user_id, line_id)
        if item is not None:
            self.cart_repo.delete(session, item)

    def clear(self, session: Session, user_id: uuid.UUID) -> None:
        removed = self.cart_repo.clear_user_cart(session, user_id)
        if removed:
            logger.info("cart.cleared user=%s lines=%d", user_id, removed)
