# storefront/routers/products.py
import uuid

from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from storefront.database import get_session
from storefront.repositories.inventory_ledger import InventoryLedger
from storefront.repositories.product_repo import ProductRepository
from storefront.schemas.error import ErrorResponse
from storefront.schemas.product import ProductRead, ProductStock
from storefront.services.product_service import ProductService
from storefront.services.stock_validator import StockValidator

router = APIRouter(prefix="/products", tags=["Products"])

repo = ProductRepository()
service = ProductService(repo, StockValidator(InventoryLedger()))


# -------- Public endpoints --------


@router.get("", response_model=list[ProductRead])
def list_products(
    session: Session = Depends(get_session),
    skip: int = 0,
    limit: int = 50,
    category: str | None = None,
):
    """
    List products, optionally filtered by category.
    """
    return service.list_products(session, skip=skip, limit=limit, category=category)


@router.get(
    "/{product_id}",
    response_model=ProductRead,
    responses={status.HTTP_404_NOT_FOUND: {"model": ErrorResponse}},
)
def get_product(
    product_id: uuid.UUID,
    session: Session = Depends(get_session),
):
    """
    Get a single product by id.
    """
    return service.get_product(session, product_id)


@router.get("/{product_id}/stock", response_model=ProductStock)
def get_product_stock(
    product_id: uuid.UUID,
    session: Session = Depends(get_session),
):
    """
    Currently available stock (0 for unknown products).
    """
    return service.get_stock(session, product_id)
