# tests/unit/services/test_product_service.py
import pytest
from unittest.mock import AsyncMock
from datetime import datetime, timedelta
from sqlalchemy import select

from storefront.core.enums import SaleStatus
from storefront.core.exceptions import NotAuthorizedError, ProductNotFoundError
from storefront.models.product import Product
from storefront.models.sale import SalesRecord
from storefront.schemas.product import ProductCreate, ProductUpdate
from storefront.services.product_service import ProductService


async def _records_for(db_session, product_id):
    result = await db_session.execute(
        select(SalesRecord).where(SalesRecord.product_id == product_id).order_by(SalesRecord.id)
    )
    return list(result.scalars().all())


# --- get_product ---

@pytest.mark.asyncio
async def test_get_product_raises_when_missing():
    """
    get_product raises ProductNotFoundError when the session finds nothing.
    """
    # 1. Arrange: session.get returns None
    mock_session = AsyncMock()
    mock_session.get.return_value = None

    # 2. Act / 3. Assert
    with pytest.raises(ProductNotFoundError):
        await ProductService(db=mock_session).get_product(42)
    mock_session.get.assert_awaited_once_with(Product, 42)


# --- create_product ---

@pytest.mark.asyncio
async def test_create_product_opens_pending_placeholder_record(db_session, make_user):
    seller = await make_user(is_seller=True)

    product = await ProductService(db_session).create_product(
        seller, ProductCreate(name="Pedal", price=49.0, image="/img/pedal.jpg", count_in_stock=3)
    )

    assert product.id is not None
    assert product.seller_id == seller.id
    assert product.sales == 0

    records = await _records_for(db_session, product.id)
    assert len(records) == 1
    placeholder = records[0]
    assert placeholder.order_id is None
    assert placeholder.quantity == 0
    assert placeholder.total_amount == 0
    assert placeholder.status == SaleStatus.PENDING.value
    assert placeholder.seller_id == seller.id


# --- price propagation ---

@pytest.mark.asyncio
async def test_price_change_reprices_every_sales_record(db_session, make_user, make_product, make_sales_record):
    seller = await make_user(is_seller=True)
    product = await make_product(seller, price=10.0)
    other = await make_product(seller, name="Other", price=7.0)
    now = datetime(2026, 3, 1, 12, 0)
    for order_id, qty in [(1, 1), (2, 3), (3, 5)]:
        await make_sales_record(product, order_id, qty, now)
    untouched = await make_sales_record(other, 4, 2, now)

    updated = await ProductService(db_session).update_product(product.id, seller, ProductUpdate(price=12.5))

    assert updated.price == 12.5
    records = await _records_for(db_session, product.id)
    assert [(r.price, r.total_amount) for r in records] == [(12.5, 12.5), (12.5, 37.5), (12.5, 62.5)]
    await db_session.refresh(untouched)
    assert (untouched.price, untouched.total_amount) == (7.0, 14.0)


@pytest.mark.asyncio
async def test_propagate_price_change_returns_updated_count(db_session, make_user, make_product, make_sales_record):
    seller = await make_user(is_seller=True)
    product = await make_product(seller, price=10.0)
    start = datetime(2026, 1, 1)
    for i in range(4):
        await make_sales_record(product, i + 1, 1, start + timedelta(days=i))

    assert await ProductService(db_session).propagate_price_change(product.id, 3.0) == 4


@pytest.mark.asyncio
async def test_update_without_price_change_does_not_touch_records(
    db_session, make_user, make_product, make_sales_record, mocker
):
    seller = await make_user(is_seller=True)
    product = await make_product(seller, price=10.0)
    await make_sales_record(product, 1, 2, datetime(2026, 1, 1))
    service = ProductService(db_session)
    spy = mocker.spy(service, "propagate_price_change")

    updated = await service.update_product(product.id, seller, ProductUpdate(name="Renamed", price=10.0))

    assert updated.name == "Renamed"
    spy.assert_not_called()


@pytest.mark.asyncio
async def test_update_by_non_owner_is_rejected(db_session, make_user, make_product):
    seller = await make_user(is_seller=True)
    intruder = await make_user(is_seller=True)
    product = await make_product(seller, price=10.0)

    with pytest.raises(NotAuthorizedError):
        await ProductService(db_session).update_product(product.id, intruder, ProductUpdate(price=1.0))

    await db_session.refresh(product)
    assert product.price == 10.0


@pytest.mark.asyncio
async def test_admin_may_update_any_product(db_session, make_user, make_product):
    seller = await make_user(is_seller=True)
    admin = await make_user(is_admin=True)
    product = await make_product(seller, price=10.0)

    updated = await ProductService(db_session).update_product(product.id, admin, ProductUpdate(count_in_stock=0))
    assert updated.count_in_stock == 0


# --- delete_product ---

@pytest.mark.asyncio
async def test_delete_product_removes_its_sales_records(db_session, make_user, make_product, make_sales_record):
    seller = await make_user(is_seller=True)
    product = await make_product(seller)
    keep = await make_product(seller, name="Keep")
    await make_sales_record(product, 1, 1, datetime(2026, 1, 1))
    await make_sales_record(product, 2, 1, datetime(2026, 1, 2))
    await make_sales_record(keep, 3, 1, datetime(2026, 1, 3))
    product_id = product.id

    await ProductService(db_session).delete_product(product_id)

    assert await db_session.get(Product, product_id) is None
    assert await _records_for(db_session, product_id) == []
    assert len(await _records_for(db_session, keep.id)) == 1


@pytest.mark.asyncio
async def test_delete_missing_product_raises(db_session):
    with pytest.raises(ProductNotFoundError):
        await ProductService(db_session).delete_product(31337)
