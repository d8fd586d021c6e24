# tests/conftest.py
import os

# Settings are read at import time by storefront.database
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import asyncio
from datetime import datetime
from typing import Any, List, Optional

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from storefront import models  # noqa: F401  registers every table
from storefront.core.enums import SaleStatus
from storefront.core.security import TokenVerifier
from storefront.database import Base
from storefront.dependencies import get_db
from storefront.main import app
from storefront.models.order import Order, OrderItem
from storefront.models.product import Product
from storefront.models.sale import SalesRecord
from storefront.models.user import User
from storefront.services.rate_limiter import RateLimiter
from storefront.services.websockets.registry import ConnectionRegistry

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


class FakeClock:
    """Monotonic clock the tests move by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeTransport:
    """Stands in for a WebSocket: records every frame sent to it, optionally slowly."""

    def __init__(self, fail: bool = False, delay: float = 0.0):
        self.sent: List[dict] = []
        self.fail = fail
        self.delay = delay
        self.close_code: Optional[int] = None

    async def send_json(self, data: Any) -> None:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise RuntimeError("transport closed")
        self.sent.append(data)

    async def close(self, code: int = 1000) -> None:
        self.close_code = code

    def events(self) -> List[str]:
        return [frame["event"] for frame in self.sent]


@pytest.fixture(scope="function")
async def test_engine():
    """Create and configure the test database engine (function-scoped)."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def db_session(test_engine):
    """Provide a database session for tests"""
    async_session_local = async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False
    )
    async with async_session_local() as session:
        yield session
        await session.rollback()


@pytest.fixture
def verifier():
    return TokenVerifier(os.environ["SECRET_KEY"])


@pytest.fixture
def auth_headers(verifier):
    """Build the Authorization header for a stored user."""
    def _headers(user: User) -> dict:
        return {"Authorization": f"Bearer {verifier.issue(user.identity)}"}
    return _headers


@pytest.fixture
def make_user(db_session):
    counter = {"n": 0}

    async def _make_user(
        name: str = "Test User",
        email: Optional[str] = None,
        is_admin: bool = False,
        is_seller: bool = False,
    ) -> User:
        counter["n"] += 1
        user = User(
            name=name,
            email=email or f"user{counter['n']}@example.com",
            is_admin=is_admin,
            is_seller=is_seller,
            cart=[],
        )
        db_session.add(user)
        await db_session.commit()
        return user

    return _make_user


@pytest.fixture
def make_product(db_session):
    async def _make_product(seller: User, name: str = "Test Product", price: float = 10.0) -> Product:
        product = Product(seller_id=seller.id, name=name, image="/img/test.jpg", price=price, count_in_stock=5, sales=0)
        db_session.add(product)
        await db_session.commit()
        return product

    return _make_product


@pytest.fixture
def make_order(db_session):
    """Persist an order directly; items are (product, quantity) pairs."""
    async def _make_order(customer: User, items: list, is_paid: bool = False) -> Order:
        order = Order(
            user_id=customer.id,
            items_price=sum(p.price * q for p, q in items),
            total_price=sum(p.price * q for p, q in items),
            is_paid=is_paid,
            items=[
                OrderItem(product_id=p.id, seller_id=p.seller_id, name=p.name, image=p.image, quantity=q, price=p.price)
                for p, q in items
            ],
        )
        db_session.add(order)
        await db_session.commit()
        return order

    return _make_order


@pytest.fixture
def make_sales_record(db_session):
    async def _make_sales_record(
        product: Product,
        order_id: Optional[int],
        quantity: int,
        order_date: datetime,
        price: Optional[float] = None,
        status: SaleStatus = SaleStatus.COMPLETED,
    ) -> SalesRecord:
        price = product.price if price is None else price
        record = SalesRecord(
            seller_id=product.seller_id,
            order_id=order_id,
            product_id=product.id,
            product_name=product.name,
            quantity=quantity,
            price=price,
            total_amount=price * quantity,
            customer_name="Jane Customer",
            customer_email="jane@example.com",
            order_date=order_date,
            status=status.value,
        )
        db_session.add(record)
        await db_session.commit()
        return record

    return _make_sales_record


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_transport():
    return FakeTransport


@pytest.fixture
async def registry():
    registry = ConnectionRegistry(heartbeat_interval=3600, liveness_timeout=60)
    yield registry
    await registry.shutdown()


@pytest.fixture
async def client(db_session):
    """HTTP client bound to the app with the test session and fresh process state."""
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.state.rate_limiter = RateLimiter(capacity=10, window_seconds=60)
    app.state.connection_registry = ConnectionRegistry()

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
