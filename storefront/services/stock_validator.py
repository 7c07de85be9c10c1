# storefront/services/stock_validator.py
import uuid

from sqlmodel import Session

from storefront.core.errors import InsufficientStock, ProductNotFound
from storefront.models.product import Product
from storefront.repositories.inventory_ledger import InventoryLedger


class StockValidator:
    """
    Compare requested quantities with current stock.

    Used at cart-mutation time and again inside checkout. Reads here are
    advisory: nothing is locked, so a positive answer can be stale by the
    time the caller acts on it. Checkout re-checks under lock.
    """

    def __init__(self, ledger: InventoryLedger):
        self.ledger = ledger

    def available_stock(self, session: Session, product_id: uuid.UUID) -> int:
        """Current stock, or 0 when the product does not exist."""
        try:
            return max(self.ledger.current_stock(session, product_id), 0)
        except ProductNotFound:
            return 0

    def is_available(
        self,
        session: Session,
        product_id: uuid.UUID,
        requested: int,
    ) -> bool:
        try:
            stock = self.ledger.current_stock(session, product_id)
        except ProductNotFound:
            return False
        return requested <= stock

    @staticmethod
    def ensure_available(product: Product, requested: int) -> None:
        """Raise InsufficientStock if `requested` exceeds the product's stock."""
        if requested > product.stock_on_hand:
            raise InsufficientStock(
                product.id,
                requested=requested,
                available=product.stock_on_hand,
                product_name=product.name,
            )
