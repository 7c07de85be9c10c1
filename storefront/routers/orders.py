# storefront/routers/orders.py
import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlmodel import Session

from storefront.core.auth import require_user
from storefront.database import get_session
from storefront.models.user import User
from storefront.repositories.cart_repo import CartRepository
from storefront.repositories.inventory_ledger import InventoryLedger
from storefront.repositories.order_repo import OrderRepository
from storefront.schemas.error import ErrorResponse
from storefront.schemas.order import OrderWithItemsRead
from storefront.services.checkout_service import CheckoutService
from storefront.services.order_service import OrderService
from storefront.services.stock_validator import StockValidator

router = APIRouter(prefix="/orders", tags=["Orders"])

order_repo = OrderRepository()
cart_repo = CartRepository()
ledger = InventoryLedger()
checkout_service = CheckoutService(cart_repo, order_repo, ledger, StockValidator(ledger))
service = OrderService(order_repo)


@router.post(
    "/checkout",
    response_model=OrderWithItemsRead,
    status_code=status.HTTP_201_CREATED,
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
        status.HTTP_404_NOT_FOUND: {"model": ErrorResponse},
        status.HTTP_409_CONFLICT: {"model": ErrorResponse},
        status.HTTP_503_SERVICE_UNAVAILABLE: {"model": ErrorResponse},
    },
)
def checkout(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
):
    """
    Create an order from the current user's cart.

    All-or-nothing: on any failure the cart and stock are left untouched.
    """
    order = checkout_service.checkout(session, current_user.id)
    return service.get_user_order(session, current_user.id, order.id)


@router.get(
    "/me",
    response_model=list[OrderWithItemsRead],
)
def list_my_orders(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
):
    """
    Order history of the authenticated user, newest first, with each order's items.
    """
    return service.list_user_orders_with_items(session, current_user.id, skip, limit)


@router.get(
    "/me/{order_id}",
    response_model=OrderWithItemsRead,
    responses={status.HTTP_404_NOT_FOUND: {"model": ErrorResponse}},
)
def get_my_order(
    order_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
):
    """
    Get a single order (with items) belonging to the current user.
    """
    return service.get_user_order(session, current_user.id, order_id)
