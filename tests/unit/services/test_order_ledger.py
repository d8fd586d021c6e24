# tests/unit/services/test_order_ledger.py
import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, OperationalError

from storefront.core.enums import LedgerOutcome, SaleStatus
from storefront.core.exceptions import EmptyOrderError, OrderNotFoundError, UnresolvedSellerError
from storefront.core.utils import utc_now
from storefront.models.order import Order, OrderItem
from storefront.models.product import Product
from storefront.models.sale import SalesRecord
from storefront.schemas.order import OrderCreate, PaymentResult
from storefront.services.order_ledger import OrderLedgerService, collect_ledger_items


async def _records(db_session, order_id=None):
    query = select(SalesRecord).order_by(SalesRecord.id)
    if order_id is not None:
        query = query.where(SalesRecord.order_id == order_id)
    result = await db_session.execute(query)
    return list(result.scalars().all())


def _order_payload(*items, **extra):
    payload = {
        "orderItems": [
            {"product": p.id, "name": p.name, "image": p.image, "qty": q, "price": p.price}
            for p, q in items
        ],
        "shippingAddress": {"address": "1 Main St", "city": "Springfield"},
        "paymentMethod": "PayPal",
        "taxPrice": 1.5,
        "shippingPrice": 5.0,
    }
    payload.update(extra)
    return OrderCreate.model_validate(payload)


# --- create_order ---

@pytest.mark.asyncio
async def test_create_order_resolves_seller_from_product(db_session, make_user, make_product):
    """
    Items without a seller get the seller of their product.
    """
    # 1. Arrange
    seller = await make_user(is_seller=True)
    customer = await make_user()
    product = await make_product(seller, price=20.0)

    # 2. Act
    order = await OrderLedgerService(db_session).create_order(customer, _order_payload((product, 2)))

    # 3. Assert
    assert order.items[0].seller_id == seller.id
    assert order.items[0].quantity == 2
    assert order.items_price == pytest.approx(40.0)
    assert order.total_price == pytest.approx(46.5)
    assert order.is_paid is False
    assert order.is_delivered is False


@pytest.mark.asyncio
async def test_create_order_keeps_seller_given_by_client(db_session, make_user, make_product):
    seller = await make_user(is_seller=True)
    other_seller = await make_user(is_seller=True)
    customer = await make_user()
    product = await make_product(seller)

    payload = OrderCreate.model_validate({
        "orderItems": [{"product": product.id, "seller": other_seller.id, "name": "X", "qty": 1, "price": 1.0}],
    })
    order = await OrderLedgerService(db_session).create_order(customer, payload)

    assert order.items[0].seller_id == other_seller.id


@pytest.mark.asyncio
async def test_create_order_without_items_raises(db_session, make_user):
    customer = await make_user()
    with pytest.raises(EmptyOrderError):
        await OrderLedgerService(db_session).create_order(customer, OrderCreate(order_items=[]))


@pytest.mark.asyncio
async def test_unresolved_seller_fails_whole_order(db_session, make_user, make_product):
    """
    One item whose product is gone fails the order and nothing is written.
    """
    seller = await make_user(is_seller=True)
    customer = await make_user()
    product = await make_product(seller)
    ghost = Product(id=999, seller_id=seller.id, name="Ghost", price=3.0)

    with pytest.raises(UnresolvedSellerError) as exc_info:
        await OrderLedgerService(db_session).create_order(customer, _order_payload((product, 1), (ghost, 1)))

    assert "Ghost" in str(exc_info.value)
    assert await db_session.scalar(select(func.count()).select_from(Order)) == 0


# --- confirm_payment ---

@pytest.mark.asyncio
async def test_confirm_payment_writes_one_record_per_item(db_session, make_user, make_product, make_order):
    seller = await make_user(name="Sam Seller", is_seller=True)
    customer = await make_user(name="Cathy", email="cathy@example.com")
    p1 = await make_product(seller, name="Amp", price=100.0)
    p2 = await make_product(seller, name="Cable", price=5.0)
    order = await make_order(customer, [(p1, 1), (p2, 3)])

    paid, report = await OrderLedgerService(db_session).confirm_payment(
        order.id, PaymentResult(id="PAY-1", status="COMPLETED", update_time="t", email_address="c@x.com")
    )

    assert paid.is_paid is True
    assert paid.paid_at is not None
    assert paid.payment_result == {
        "id": "PAY-1", "status": "COMPLETED", "update_time": "t", "email_address": "c@x.com",
    }
    assert report.is_complete
    assert report.count(LedgerOutcome.RECORDED) == 2

    records = await _records(db_session, order.id)
    assert [(r.product_id, r.quantity, r.total_amount) for r in records] == [(p1.id, 1, 100.0), (p2.id, 3, 15.0)]
    assert all(r.status == SaleStatus.COMPLETED.value for r in records)
    assert all(r.seller_id == seller.id for r in records)
    assert all(r.customer_name == "Cathy" and r.customer_email == "cathy@example.com" for r in records)
    assert all(r.order_date == paid.paid_at for r in records)

    await db_session.refresh(p1)
    await db_session.refresh(p2)
    assert (p1.sales, p2.sales) == (1, 3)


@pytest.mark.asyncio
async def test_missing_product_is_skipped_and_order_still_paid(db_session, make_user, make_product, make_order):
    """
    P1 exists, P2 was deleted after checkout: the order is paid, P1 is
    recorded and P2 is reported as skipped.
    """
    seller = await make_user(is_seller=True)
    customer = await make_user()
    p1 = await make_product(seller)
    p2 = await make_product(seller, name="Gone")
    order = await make_order(customer, [(p1, 2), (p2, 1)])

    await db_session.delete(p2)
    await db_session.commit()

    paid, report = await OrderLedgerService(db_session).confirm_payment(order.id)

    assert paid.is_paid is True
    assert report.count(LedgerOutcome.RECORDED) == 1
    assert len(report.failures) == 1
    assert report.failures[0].product_id == p2.id
    assert report.failures[0].error.reason == "product_not_found"

    records = await _records(db_session, order.id)
    assert [r.product_id for r in records] == [p1.id]


@pytest.mark.asyncio
async def test_missing_seller_is_skipped_without_counting_the_sale(db_session, make_user, make_product, make_order):
    seller = await make_user(is_seller=True)
    customer = await make_user()
    product = await make_product(seller)
    order = await make_order(customer, [(product, 2)])

    order.items[0].seller_id = 4242
    await db_session.commit()

    _, report = await OrderLedgerService(db_session).confirm_payment(order.id)

    assert report.failures[0].error.reason == "seller_not_found"
    assert await _records(db_session, order.id) == []
    await db_session.refresh(product)
    assert product.sales == 0


@pytest.mark.asyncio
async def test_reconfirming_payment_does_not_duplicate(db_session, make_user, make_product, make_order):
    seller = await make_user(is_seller=True)
    customer = await make_user()
    product = await make_product(seller)
    order = await make_order(customer, [(product, 2)])
    service = OrderLedgerService(db_session)

    first, _ = await service.confirm_payment(order.id, PaymentResult(id="first"))
    first_paid_at = first.paid_at
    second, report = await service.confirm_payment(order.id, PaymentResult(id="second"))

    assert report.count(LedgerOutcome.ALREADY_RECORDED) == 1
    assert report.is_complete
    assert second.paid_at == first_paid_at
    assert second.payment_result["id"] == "second"
    assert len(await _records(db_session, order.id)) == 1
    await db_session.refresh(product)
    assert product.sales == 2


@pytest.mark.asyncio
async def test_storage_error_on_one_item_does_not_stop_the_rest(
    db_session, make_user, make_product, make_order, mocker
):
    seller = await make_user(is_seller=True)
    customer = await make_user()
    p1 = await make_product(seller, name="First")
    p2 = await make_product(seller, name="Second")
    order = await make_order(customer, [(p1, 1), (p2, 1)])

    real_commit = db_session.commit
    calls = {"n": 0}

    async def flaky_commit():
        calls["n"] += 1
        # 1st commit marks the order paid, 2nd writes P1's record
        if calls["n"] == 2:
            raise OperationalError("INSERT", {}, Exception("disk I/O error"))
        await real_commit()

    mocker.patch.object(db_session, "commit", side_effect=flaky_commit)

    paid, report = await OrderLedgerService(db_session).confirm_payment(order.id)

    assert paid.is_paid is True
    assert [r.outcome for r in report.results] == [LedgerOutcome.FAILED, LedgerOutcome.RECORDED]
    assert report.results[0].error.reason == "storage_error"
    records = await _records(db_session, order.id)
    assert [r.product_id for r in records] == [p2.id]


@pytest.mark.asyncio
async def test_concurrent_insert_is_treated_as_already_recorded(
    db_session, make_user, make_product, make_order, mocker
):
    seller = await make_user(is_seller=True)
    customer = await make_user()
    product = await make_product(seller)
    order = await make_order(customer, [(product, 1)])
    # Plain values; the rollback below expires every loaded instance
    seller_id, order_id, product_id = seller.id, order.id, product.id
    name, price = product.name, product.price

    real_commit = db_session.commit
    calls = {"n": 0}

    async def racing_commit():
        calls["n"] += 1
        if calls["n"] == 2:
            # Another confirmation lands the same (order, product) row first
            await db_session.rollback()
            db_session.add(
                SalesRecord(
                    seller_id=seller_id,
                    order_id=order_id,
                    product_id=product_id,
                    product_name=name,
                    quantity=1,
                    price=price,
                    total_amount=price,
                    customer_name="Other Worker",
                    customer_email="other@example.com",
                    order_date=utc_now(),
                    status=SaleStatus.COMPLETED.value,
                )
            )
            await real_commit()
            raise IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed"))
        await real_commit()

    mocker.patch.object(db_session, "commit", side_effect=racing_commit)

    _, report = await OrderLedgerService(db_session).confirm_payment(order_id)

    assert report.results[0].outcome == LedgerOutcome.ALREADY_RECORDED
    assert report.results[0].sales_record_id is not None
    assert report.is_complete
    assert len(await _records(db_session, order_id)) == 1


@pytest.mark.asyncio
async def test_other_constraint_failure_is_reported_as_failed(
    db_session, make_user, make_product, make_order, mocker
):
    """A constraint error that left no (order, product) row is a failure, not a duplicate."""
    seller = await make_user(is_seller=True)
    customer = await make_user()
    product = await make_product(seller)
    order = await make_order(customer, [(product, 1)])

    real_commit = db_session.commit
    calls = {"n": 0}

    async def fk_commit():
        calls["n"] += 1
        if calls["n"] == 2:
            raise IntegrityError("INSERT", {}, Exception("FOREIGN KEY constraint failed"))
        await real_commit()

    mocker.patch.object(db_session, "commit", side_effect=fk_commit)

    paid, report = await OrderLedgerService(db_session).confirm_payment(order.id)

    assert paid.is_paid is True
    assert report.results[0].outcome == LedgerOutcome.FAILED
    assert report.results[0].error.reason == "integrity_error"
    assert not report.is_complete
    assert await _records(db_session, order.id) == []


@pytest.mark.asyncio
async def test_repeated_product_lines_are_recorded_together(db_session, make_user, make_product, make_order):
    """Two lines for one product land in a single record carrying both quantities."""
    seller = await make_user(is_seller=True)
    customer = await make_user()
    product = await make_product(seller, price=10.0)
    order = await make_order(customer, [(product, 2), (product, 3)])
    items_price = order.items_price

    _, report = await OrderLedgerService(db_session).confirm_payment(order.id)

    assert [r.outcome for r in report.results] == [LedgerOutcome.RECORDED]
    records = await _records(db_session, order.id)
    assert [(r.quantity, r.price, r.total_amount) for r in records] == [(5, 10.0, 50.0)]
    assert sum(r.total_amount for r in records) == items_price
    await db_session.refresh(product)
    assert product.sales == 5


def test_collect_ledger_items_averages_mixed_prices():
    items = [
        OrderItem(product_id=1, seller_id=7, name="Amp", quantity=1, price=10.0),
        OrderItem(product_id=2, seller_id=7, name="Cable", quantity=2, price=3.0),
        OrderItem(product_id=1, seller_id=7, name="Amp", quantity=3, price=20.0),
    ]

    merged = collect_ledger_items(items)

    assert [(i.product_id, i.quantity, i.total_amount) for i in merged] == [(1, 4, 70.0), (2, 2, 6.0)]
    assert merged[0].price == 17.5
    assert merged[1].price == 3.0


@pytest.mark.asyncio
async def test_confirm_unknown_order_raises(db_session):
    with pytest.raises(OrderNotFoundError):
        await OrderLedgerService(db_session).confirm_payment(12345)


# --- mark_delivered ---

@pytest.mark.asyncio
async def test_mark_delivered_sets_flag_once(db_session, make_user, make_product, make_order):
    seller = await make_user(is_seller=True)
    customer = await make_user()
    product = await make_product(seller)
    order = await make_order(customer, [(product, 1)], is_paid=True)
    service = OrderLedgerService(db_session)

    delivered = await service.mark_delivered(order.id)
    first_delivered_at = delivered.delivered_at
    again = await service.mark_delivered(order.id)

    assert delivered.is_delivered is True
    assert first_delivered_at is not None
    assert again.delivered_at == first_delivered_at


@pytest.mark.asyncio
async def test_mark_delivered_unknown_order_raises(db_session):
    with pytest.raises(OrderNotFoundError):
        await OrderLedgerService(db_session).mark_delivered(777)


# --- reads ---

@pytest.mark.asyncio
async def test_list_orders_for_user_only_returns_own_orders(db_session, make_user, make_product, make_order):
    seller = await make_user(is_seller=True)
    alice = await make_user(name="Alice")
    bob = await make_user(name="Bob")
    product = await make_product(seller)
    await make_order(alice, [(product, 1)])
    await make_order(bob, [(product, 1)])
    await make_order(alice, [(product, 2)])

    service = OrderLedgerService(db_session)
    assert {o.user_id for o in await service.list_orders_for_user(alice.id)} == {alice.id}
    assert len(await service.list_orders_for_user(alice.id)) == 2
    assert len(await service.list_orders()) == 3
