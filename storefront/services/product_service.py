# storefront/services/product_service.py
import uuid

from sqlmodel import Session

from storefront.core.errors import ProductNotFound
from storefront.models.product import Product
from storefront.repositories.product_repo import ProductRepository
from storefront.schemas.product import ProductStock
from storefront.services.stock_validator import StockValidator


class ProductService:
    """
    Read-only product lookup for the storefront.

    Catalog management (create/edit/delete) lives outside this service.
    """

    def __init__(self, repo: ProductRepository, validator: StockValidator):
        self.repo = repo
        self.validator = validator

    def list_products(
        self,
        session: Session,
        skip: int = 0,
        limit: int = 50,
        category: str | None = None,
    ) -> list[Product]:
        return self.repo.list(session, skip=skip, limit=limit, category=category)

    def get_product(self, session: Session, product_id: uuid.UUID) -> Product:
        product = self.repo.get_by_id(session, product_id)
        if not product:
            raise ProductNotFound(product_id)
        return product

    def get_stock(self, session: Session, product_id: uuid.UUID) -> ProductStock:
        available = self.validator.available_stock(session, product_id)
        return ProductStock(product_id=product_id, available=available)
