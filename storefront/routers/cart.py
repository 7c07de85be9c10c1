# storefront/routers/cart.py
import uuid

from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from storefront.core.auth import require_user
from storefront.database import get_session
from storefront.models.user import User
from storefront.repositories.cart_repo import CartRepository
from storefront.repositories.inventory_ledger import InventoryLedger
from storefront.repositories.product_repo import ProductRepository
from storefront.schemas.cart import CartSummary, CartItemCreate, CartItemUpdate
from storefront.schemas.error import ErrorResponse
from storefront.services.cart_service import CartService
from storefront.services.stock_validator import StockValidator

router = APIRouter(
    prefix="/cart",
    tags=["Cart"],
    responses={
        status.HTTP_404_NOT_FOUND: {"model": ErrorResponse},
        status.HTTP_409_CONFLICT: {"model": ErrorResponse},
    },
)

cart_repo = CartRepository()
product_repo = ProductRepository()
validator = StockValidator(InventoryLedger())
service = CartService(cart_repo, product_repo, validator)


@router.get("", response_model=CartSummary)
def get_my_cart(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
):
    """
    Get current user's cart summary.

    Totals use current catalog prices; the price is only fixed at checkout.
    """
    return service.get_cart_summary(session, current_user.id)


@router.post("", response_model=CartSummary)
def add_to_cart(
    payload: CartItemCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
):
    """
    Add product to the current user's cart (merges into an existing line).

    Returns the updated cart summary.
    """
    service.add_or_merge(session, current_user.id, payload.product_id, payload.quantity)
    return service.get_cart_summary(session, current_user.id)


@router.patch("/items/{line_id}", response_model=CartSummary)
def update_cart_item(
    line_id: uuid.UUID,
    payload: CartItemUpdate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
):
    """
    Set the quantity of a cart line; quantity <= 0 removes it.

    Returns the updated cart summary.
    """
    service.set_quantity(
        session=session,
        user_id=current_user.id,
        line_id=line_id,
        quantity=payload.quantity,
    )
    return service.get_cart_summary(session, current_user.id)


@router.delete("/items/{line_id}", response_model=CartSummary)
def remove_cart_item(
    line_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
):
    """
    Remove a line from the cart (no-op if already gone).

    Returns the updated cart summary.
    """
    service.remove(session, current_user.id, line_id)
    return service.get_cart_summary(session, current_user.id)


@router.delete("", response_model=CartSummary)
def clear_cart(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
):
    """
    Clear the entire cart.

    Returns an empty cart summary.
    """
    service.clear(session, current_user.id)
    return service.get_cart_summary(session, current_user.id)
