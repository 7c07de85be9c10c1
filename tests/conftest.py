import uuid
from decimal import Decimal

import pytest
from sqlmodel import SQLModel, Session

from storefront.database import build_engine
from storefront.models.cart import CartItem  # noqa: F401
from storefront.models.order import Order, OrderItem  # noqa: F401
from storefront.models.product import Product
from storefront.models.user import User  # noqa: F401
from storefront.repositories.cart_repo import CartRepository
from storefront.repositories.inventory_ledger import InventoryLedger
from storefront.repositories.order_repo import OrderRepository
from storefront.repositories.product_repo import ProductRepository
from storefront.services.cart_service import CartService
from storefront.services.checkout_service import CheckoutService
from storefront.services.order_service import OrderService
from storefront.services.stock_validator import StockValidator


@pytest.fixture()
def engine(tmp_path):
    """Fresh SQLite file database per test, built like the production engine."""
    engine = build_engine(f"sqlite:///{tmp_path / 'storefront-test.db'}")
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture()
def product_repo():
    return ProductRepository()


@pytest.fixture()
def cart_repo():
    return CartRepository()


@pytest.fixture()
def order_repo():
    return OrderRepository()


@pytest.fixture()
def ledger():
    return InventoryLedger()


@pytest.fixture()
def validator(ledger):
    return StockValidator(ledger)


@pytest.fixture()
def cart_service(cart_repo, product_repo, validator):
    return CartService(cart_repo, product_repo, validator, max_quantity=100)


@pytest.fixture()
def checkout_service(cart_repo, order_repo, ledger, validator):
    return CheckoutService(
        cart_repo,
        order_repo,
        ledger,
        validator,
        max_attempts=3,
        retry_backoff=0,
    )


@pytest.fixture()
def order_service(order_repo):
    return OrderService(order_repo)


@pytest.fixture()
def make_product(session, product_repo):
    """Factory: persist a product and return it."""

    def _make(name="Catan", price="19.99", stock=10, category="Games"):
        return product_repo.create(
            session,
            Product(
                name=name,
                price=Decimal(price),
                stock_on_hand=stock,
                category=category,
            ),
        )

    return _make


@pytest.fixture()
def user_id():
    return uuid.uuid4()


@pytest.fixture()
def other_user_id():
    return uuid.uuid4()
