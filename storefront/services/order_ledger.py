"""
Order Ledger Service

Takes an order from checkout to delivery:
- Order creation validates items and resolves each item's seller from its product.
  Resolution is all-or-nothing: one unresolved item fails the whole order.
- Payment confirmation marks the order paid, then runs the ledger step per item:
  bump the product's sales counter and append a completed SalesRecord.
  Ledger failures are collected per item and logged; they never undo or fail
  the payment confirmation.
- Delivery marks the order delivered.

SalesRecords are keyed by (order, product), so confirming the same order twice
does not append duplicates or count the same sale twice. Order lines repeating
a product are summed into one ledger entry before recording.
"""

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple, Union

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.enums import LedgerOutcome, SaleStatus
from storefront.core.exceptions import (
    EmptyOrderError,
    LedgerPartialFailure,
    OrderNotFoundError,
    UnresolvedSellerError,
)
from storefront.core.utils import utc_now
from storefront.models.order import Order, OrderItem
from storefront.models.product import Product
from storefront.models.sale import SalesRecord
from storefront.models.user import User
from storefront.schemas.order import OrderCreate, PaymentResult

logger = logging.getLogger(__name__)

DEFAULT_CUSTOMER_NAME = "Customer"
DEFAULT_CUSTOMER_EMAIL = "No email provided"


@dataclass(frozen=True)
class LedgerItem:
    """Plain copy of an order's lines for one product, safe to use across rollbacks."""
    product_id: int
    seller_id: Optional[int]
    name: str
    quantity: int
    price: float
    total_amount: float


def collect_ledger_items(order_items: Iterable[OrderItem]) -> List[LedgerItem]:
    """
    One ledger entry per product, in first-seen order.

    Lines repeating a product are summed into the first one, since the ledger
    keeps a single record per (order, product). Mixed unit prices become the
    average over the summed quantity.
    """
    merged: Dict[int, LedgerItem] = {}
    for item in order_items:
        line_total = item.price * item.quantity
        seen = merged.get(item.product_id)
        if seen is None:
            merged[item.product_id] = LedgerItem(
                product_id=item.product_id,
                seller_id=item.seller_id,
                name=item.name,
                quantity=item.quantity,
                price=item.price,
                total_amount=line_total,
            )
            continue

        quantity = seen.quantity + item.quantity
        total_amount = seen.total_amount + line_total
        merged[item.product_id] = replace(
            seen,
            seller_id=seen.seller_id if seen.seller_id is not None else item.seller_id,
            quantity=quantity,
            price=seen.price if seen.price == item.price else total_amount / quantity,
            total_amount=total_amount,
        )
    return list(merged.values())


@dataclass
class ItemLedgerResult:
    product_id: int
    outcome: LedgerOutcome
    sales_record_id: Optional[int] = None
    error: Optional[LedgerPartialFailure] = None


@dataclass
class LedgerReport:
    order_id: int
    results: List[ItemLedgerResult] = field(default_factory=list)

    def count(self, outcome: LedgerOutcome) -> int:
        return sum(1 for r in self.results if r.outcome == outcome)

    @property
    def failures(self) -> List[ItemLedgerResult]:
        return [r for r in self.results if r.outcome in (LedgerOutcome.SKIPPED, LedgerOutcome.FAILED)]

    @property
    def is_complete(self) -> bool:
        return not self.failures


class OrderLedgerService:
    def __init__(self, db: AsyncSession):
        self.db = db

    # =========================================================================
    # READS
    # =========================================================================

    async def get_order(self, order_id: int) -> Order:
        """Load an order with its items and owner, refreshing anything cached in the session."""
        result = await self.db.execute(
            select(Order)
            .where(Order.id == order_id)
            .execution_options(populate_existing=True)
        )
        order = result.scalar_one_or_none()
        if order is None:
            raise OrderNotFoundError(f"Order {order_id} not found")
        return order

    async def list_orders_for_user(self, user_id: int) -> List[Order]:
        result = await self.db.execute(
            select(Order).where(Order.user_id == user_id).order_by(Order.created_at.desc(), Order.id.desc())
        )
        return list(result.scalars().all())

    async def list_orders(self) -> List[Order]:
        result = await self.db.execute(select(Order).order_by(Order.created_at.desc(), Order.id.desc()))
        return list(result.scalars().all())

    # =========================================================================
    # CREATION
    # =========================================================================

    async def _resolve_sellers(self, order_data: OrderCreate) -> Dict[int, int]:
        """Map product id -> seller id for every item that did not name its seller."""
        missing = {item.product_id for item in order_data.order_items if item.seller_id is None}
        if not missing:
            return {}

        result = await self.db.execute(select(Product.id, Product.seller_id).where(Product.id.in_(missing)))
        sellers = {row.id: row.seller_id for row in result}

        for item in order_data.order_items:
            if item.seller_id is None and item.product_id not in sellers:
                logger.warning("Product %s not found while resolving seller for item %s", item.product_id, item.name)
                raise UnresolvedSellerError(f"Could not validate seller for item: {item.name}")
        return sellers

    async def create_order(self, user: User, order_data: OrderCreate) -> Order:
        """
        Persist a new, unpaid order.

        Raises:
            EmptyOrderError: If the order has no items
            UnresolvedSellerError: If any item's seller cannot be found; nothing is written
        """
        if not order_data.order_items:
            raise EmptyOrderError("No order items")

        sellers = await self._resolve_sellers(order_data)

        items = []
        for item in order_data.order_items:
            seller_id = item.seller_id if item.seller_id is not None else sellers[item.product_id]
            if item.seller_id is None:
                logger.debug("Added seller ID %s to item %s", seller_id, item.name)
            items.append(
                OrderItem(
                    product_id=item.product_id,
                    seller_id=seller_id,
                    name=item.name,
                    image=item.image,
                    quantity=item.quantity,
                    price=item.price,
                )
            )

        items_price = order_data.items_price
        if items_price is None:
            items_price = sum(i.price * i.quantity for i in items)
        total_price = order_data.total_price
        if total_price is None:
            total_price = items_price + order_data.tax_price + order_data.shipping_price

        order = Order(
            user_id=user.id,
            shipping_address=order_data.shipping_address,
            payment_method=order_data.payment_method,
            items_price=items_price,
            tax_price=order_data.tax_price,
            shipping_price=order_data.shipping_price,
            total_price=total_price,
            items=items,
        )
        self.db.add(order)
        await self.db.commit()

        logger.info("Order %s created for user %s with %d item(s)", order.id, user.id, len(items))
        return await self.get_order(order.id)

    # =========================================================================
    # PAYMENT CONFIRMATION
    # =========================================================================

    async def confirm_payment(
        self,
        order_id: int,
        payment_result: Union[PaymentResult, dict, None] = None,
    ) -> Tuple[Order, LedgerReport]:
        """
        Mark an order paid, then write the sales ledger item by item.

        Returns:
            The refreshed order and a per-item ledger report

        Raises:
            OrderNotFoundError: If the order does not exist
        """
        order = await self.get_order(order_id)

        if isinstance(payment_result, PaymentResult):
            payment_result = payment_result.to_storage()

        # The paid flag is one-way; a repeated confirmation keeps the first paid_at
        if not order.is_paid:
            order.is_paid = True
            order.paid_at = utc_now()
        order.payment_result = payment_result
        await self.db.commit()

        customer_name = (order.user.name if order.user else None) or DEFAULT_CUSTOMER_NAME
        customer_email = (order.user.email if order.user else None) or DEFAULT_CUSTOMER_EMAIL
        order_date = order.paid_at
        items = collect_ledger_items(order.items)

        report = LedgerReport(order_id=order_id)
        for item in items:
            report.results.append(
                await self._record_item(order_id, order_date, customer_name, customer_email, item)
            )

        log = logger.info if report.is_complete else logger.warning
        log(
            "Payment confirmed for order %s: %d recorded, %d already recorded, %d skipped, %d failed",
            order_id,
            report.count(LedgerOutcome.RECORDED),
            report.count(LedgerOutcome.ALREADY_RECORDED),
            report.count(LedgerOutcome.SKIPPED),
            report.count(LedgerOutcome.FAILED),
        )

        return await self.get_order(order_id), report

    async def _record_item(
        self,
        order_id: int,
        order_date: datetime,
        customer_name: str,
        customer_email: str,
        item: LedgerItem,
    ) -> ItemLedgerResult:
        """Ledger step for one item. Always returns a result; never raises."""
        try:
            if item.seller_id is None:
                return self._skip(order_id, item, "seller_missing", f"No seller ID found for item: {item.name}")

            product = await self.db.get(Product, item.product_id)
            if product is None:
                return self._skip(order_id, item, "product_not_found", f"Product not found: {item.product_id}")

            seller = await self.db.get(User, item.seller_id)
            if seller is None:
                return self._skip(order_id, item, "seller_not_found", f"Seller not found: {item.seller_id}")

            existing = await self.db.scalar(
                select(SalesRecord).where(
                    SalesRecord.order_id == order_id,
                    SalesRecord.product_id == item.product_id,
                )
            )
            if existing is not None:
                logger.info(
                    "Sales record for order %s product %s already exists, leaving it as is",
                    order_id,
                    item.product_id,
                )
                return ItemLedgerResult(item.product_id, LedgerOutcome.ALREADY_RECORDED, existing.id)

            product.sales = (product.sales or 0) + item.quantity

            record = SalesRecord(
                seller_id=item.seller_id,
                order_id=order_id,
                product_id=item.product_id,
                product_name=item.name,
                quantity=item.quantity,
                price=item.price,
                total_amount=item.total_amount,
                customer_name=customer_name,
                customer_email=customer_email,
                order_date=order_date,
                status=SaleStatus.COMPLETED.value,
            )
            self.db.add(record)
            await self.db.commit()

            logger.info(
                "Sales data recorded for seller %s for product %s (order %s)",
                seller.name,
                item.name,
                order_id,
            )
            return ItemLedgerResult(item.product_id, LedgerOutcome.RECORDED, record.id)

        except IntegrityError as e:
            await self.db.rollback()
            # Only a row for the same (order, product) makes this a duplicate;
            # any other constraint failure means nothing was written
            existing_id = await self.db.scalar(
                select(SalesRecord.id).where(
                    SalesRecord.order_id == order_id,
                    SalesRecord.product_id == item.product_id,
                )
            )
            if existing_id is not None:
                logger.info("Sales record for order %s product %s written concurrently", order_id, item.product_id)
                return ItemLedgerResult(item.product_id, LedgerOutcome.ALREADY_RECORDED, existing_id)

            logger.error(
                "Constraint violation recording sales data for order %s product %s: %s",
                order_id,
                item.product_id,
                e,
            )
            return ItemLedgerResult(
                item.product_id,
                LedgerOutcome.FAILED,
                error=LedgerPartialFailure(str(e), product_id=item.product_id, reason="integrity_error"),
            )

        except Exception as e:
            await self.db.rollback()
            logger.error(
                "Error recording sales data for order %s product %s: %s",
                order_id,
                item.product_id,
                e,
                exc_info=True,
            )
            return ItemLedgerResult(
                item.product_id,
                LedgerOutcome.FAILED,
                error=LedgerPartialFailure(str(e), product_id=item.product_id, reason="storage_error"),
            )

    @staticmethod
    def _skip(order_id: int, item: LedgerItem, reason: str, message: str) -> ItemLedgerResult:
        logger.warning("Skipping ledger entry for order %s: %s", order_id, message)
        return ItemLedgerResult(
            item.product_id,
            LedgerOutcome.SKIPPED,
            error=LedgerPartialFailure(message, product_id=item.product_id, reason=reason),
        )

    # =========================================================================
    # DELIVERY
    # =========================================================================

    async def mark_delivered(self, order_id: int) -> Order:
        """
        Mark an order delivered. Whether it was paid is not checked; callers
        only route paid orders here.
        """
        order = await self.get_order(order_id)
        if not order.is_delivered:
            order.is_delivered = True
            order.delivered_at = utc_now()
        await self.db.commit()
        logger.info("Order %s marked as delivered", order_id)
        return await self.get_order(order_id)
