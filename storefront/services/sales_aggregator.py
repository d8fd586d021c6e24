# storefront/services/sales_aggregator.py
"""
Seller Sales Analytics Service

Read-only folds over the sales ledger:
- Dashboard totals, top products and most recent orders
- Calendar-bucketed revenue / order series (last 7 days, 6 months, 5 years)
- Paged sales history and the seller's slice of each order

Empty periods stay at zero; nothing here fabricates sample data.
"""

from collections import OrderedDict
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional, Tuple, Union

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.enums import SalesPeriod
from storefront.core.utils import utc_now
from storefront.models.order import Order, OrderItem
from storefront.models.product import Product
from storefront.models.sale import SalesRecord
from storefront.schemas.order import OrderItemRead
from storefront.schemas.sales import (
    DashboardSummary,
    RecentOrder,
    SalesBucket,
    SellerOrderRead,
    TopProduct,
)

WEEKDAY_LABELS = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
MONTH_LABELS = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

BucketKey = Union[date, Tuple[int, int], int]


def _shift_month(year: int, month: int, months_back: int) -> Tuple[int, int]:
    index = year * 12 + (month - 1) - months_back
    return index // 12, index % 12 + 1


def build_buckets(period: SalesPeriod, now: datetime) -> "OrderedDict[BucketKey, SalesBucket]":
    """Empty, chronologically ordered buckets ending at `now`."""
    buckets: "OrderedDict[BucketKey, SalesBucket]" = OrderedDict()
    count = period.bucket_count

    if period == SalesPeriod.WEEKLY:
        today = now.date()
        for i in range(count - 1, -1, -1):
            day = today - timedelta(days=i)
            buckets[day] = SalesBucket(period=WEEKDAY_LABELS[day.weekday()], date=day.isoformat())
    elif period == SalesPeriod.MONTHLY:
        for i in range(count - 1, -1, -1):
            year, month = _shift_month(now.year, now.month, i)
            buckets[(year, month)] = SalesBucket(period=MONTH_LABELS[month - 1], date=f"{year}-{month:02d}")
    else:
        for i in range(count - 1, -1, -1):
            year = now.year - i
            buckets[year] = SalesBucket(period=str(year), date=str(year))
    return buckets


def bucket_key(period: SalesPeriod, moment: datetime) -> BucketKey:
    if period == SalesPeriod.WEEKLY:
        return moment.date()
    if period == SalesPeriod.MONTHLY:
        return (moment.year, moment.month)
    return moment.year


def series_start(period: SalesPeriod, now: datetime) -> datetime:
    """Midnight at the start of the oldest bucket."""
    if period == SalesPeriod.WEEKLY:
        start = now.date() - timedelta(days=period.bucket_count - 1)
    elif period == SalesPeriod.MONTHLY:
        year, month = _shift_month(now.year, now.month, period.bucket_count - 1)
        start = date(year, month, 1)
    else:
        start = date(now.year - (period.bucket_count - 1), 1, 1)
    return datetime(start.year, start.month, start.day)


class SalesAggregatorService:
    """
    Service for computing seller-facing sales analytics from SalesRecords.
    """

    def __init__(self, db: AsyncSession, top_products: int = 5, recent_orders: int = 5):
        self.db = db
        self.top_products = top_products
        self.recent_orders = recent_orders

    async def _records_for_seller(self, seller_id: int, since: Optional[datetime] = None) -> List[SalesRecord]:
        """Seller's records in ledger order (order date, then insertion)."""
        query = select(SalesRecord).where(SalesRecord.seller_id == seller_id)
        if since is not None:
            query = query.where(SalesRecord.order_date >= since)
        query = query.order_by(SalesRecord.order_date.asc(), SalesRecord.id.asc())
        result = await self.db.execute(query)
        return list(result.scalars().all())

    # =========================================================================
    # DASHBOARD
    # =========================================================================

    async def dashboard(self, seller_id: int) -> DashboardSummary:
        records = await self._records_for_seller(seller_id)

        total_revenue = 0.0
        total_items_sold = 0
        order_ids = set()
        per_product: "OrderedDict[int, Dict]" = OrderedDict()

        for record in records:
            total_revenue += record.total_amount or 0.0
            total_items_sold += record.quantity or 0
            if record.order_id is not None:
                order_ids.add(record.order_id)

            entry = per_product.setdefault(
                record.product_id,
                {"product_id": record.product_id, "product_name": record.product_name,
                 "quantity_sold": 0, "revenue": 0.0},
            )
            entry["quantity_sold"] += record.quantity or 0
            entry["revenue"] += record.total_amount or 0.0

        # sorted() is stable, so ties keep ledger order
        ranked = sorted(per_product.values(), key=lambda e: e["quantity_sold"], reverse=True)
        top_products = [TopProduct(**entry) for entry in ranked[: self.top_products]]

        total_products = await self.db.scalar(
            select(func.count()).select_from(Product).where(Product.seller_id == seller_id)
        ) or 0

        return DashboardSummary(
            total_revenue=total_revenue,
            total_orders=len(order_ids),
            total_items_sold=total_items_sold,
            total_products=total_products,
            top_products=top_products,
            recent_orders=self._recent_orders(records),
        )

    def _recent_orders(self, records: List[SalesRecord]) -> List[RecentOrder]:
        grouped: "OrderedDict[int, RecentOrder]" = OrderedDict()
        for record in sorted(records, key=lambda r: (r.order_date, r.id), reverse=True):
            if record.order_id is None:
                continue
            summary = grouped.get(record.order_id)
            if summary is None:
                if len(grouped) >= self.recent_orders:
                    continue
                summary = RecentOrder(
                    order_id=record.order_id,
                    order_date=record.order_date,
                    customer_name=record.customer_name,
                    customer_email=record.customer_email,
                    items=0,
                    total_amount=0.0,
                )
                grouped[record.order_id] = summary
            summary.items += record.quantity or 0
            summary.total_amount += record.total_amount or 0.0
        return list(grouped.values())

    # =========================================================================
    # TIME SERIES
    # =========================================================================

    async def sales_series(
        self,
        seller_id: int,
        period: Union[SalesPeriod, str] = SalesPeriod.MONTHLY,
        now: Optional[datetime] = None,
    ) -> List[SalesBucket]:
        """
        Revenue and distinct-order counts per calendar bucket, oldest first.

        Args:
            seller_id: Seller whose ledger is folded
            period: 'weekly' (7 days), 'monthly' (6 months) or 'yearly' (5 years)
            now: End of the series, defaults to the current UTC time

        Returns:
            Exactly period.bucket_count buckets
        """
        period = SalesPeriod(period)
        now = now or utc_now()
        buckets = build_buckets(period, now)
        orders_seen: Dict[BucketKey, set] = {key: set() for key in buckets}

        for record in await self._records_for_seller(seller_id, since=series_start(period, now)):
            key = bucket_key(period, record.order_date)
            bucket = buckets.get(key)
            if bucket is None:
                continue
            bucket.revenue += record.total_amount or 0.0
            if record.order_id is not None:
                orders_seen[key].add(record.order_id)

        for key, bucket in buckets.items():
            bucket.orders = len(orders_seen[key])
        return list(buckets.values())

    # =========================================================================
    # HISTORY AND ORDERS
    # =========================================================================

    async def sales_history(self, seller_id: int, page: int = 1, limit: int = 20) -> Tuple[List[SalesRecord], int]:
        """One page of the seller's records, newest first, plus the total count."""
        page = max(page, 1)
        total = await self.db.scalar(
            select(func.count()).select_from(SalesRecord).where(SalesRecord.seller_id == seller_id)
        ) or 0
        result = await self.db.execute(
            select(SalesRecord)
            .where(SalesRecord.seller_id == seller_id)
            .order_by(SalesRecord.order_date.desc(), SalesRecord.id.desc())
            .limit(limit)
            .offset((page - 1) * limit)
        )
        return list(result.scalars().all()), total

    async def seller_orders(self, seller_id: int) -> List[SellerOrderRead]:
        """Orders containing the seller's items, newest first, trimmed to those items."""
        order_ids = select(OrderItem.order_id).where(OrderItem.seller_id == seller_id)
        result = await self.db.execute(
            select(Order).where(Order.id.in_(order_ids)).order_by(Order.created_at.desc(), Order.id.desc())
        )

        seller_orders = []
        for order in result.scalars().all():
            items = [item for item in order.items if item.seller_id == seller_id]
            seller_orders.append(
                SellerOrderRead(
                    id=order.id,
                    customer_name=order.user.name if order.user else "Customer",
                    customer_email=order.user.email if order.user else "No email provided",
                    order_items=[OrderItemRead.model_validate(item) for item in items],
                    items_price=sum(item.line_total for item in items),
                    is_paid=order.is_paid,
                    paid_at=order.paid_at,
                    is_delivered=order.is_delivered,
                    created_at=order.created_at,
                )
            )
        return seller_orders
