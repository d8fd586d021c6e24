"""
Read models for the seller dashboard, sales series and sales history.
"""

from datetime import datetime
from typing import List, Optional

from storefront.schemas.base import BaseSchema
from storefront.schemas.order import OrderItemRead


class SalesRecordRead(BaseSchema):
    id: int
    seller_id: int
    order_id: Optional[int] = None
    product_id: int
    product_name: str
    quantity: int
    price: float
    total_amount: float
    customer_name: str
    customer_email: str
    order_date: datetime
    status: str


class TopProduct(BaseSchema):
    product_id: int
    product_name: str
    quantity_sold: int
    revenue: float


class RecentOrder(BaseSchema):
    order_id: int
    order_date: datetime
    customer_name: str
    customer_email: str
    items: int
    total_amount: float


class DashboardSummary(BaseSchema):
    total_revenue: float
    total_orders: int
    total_items_sold: int
    total_products: int
    top_products: List[TopProduct]
    recent_orders: List[RecentOrder]


class SalesBucket(BaseSchema):
    period: str
    date: str
    revenue: float = 0.0
    orders: int = 0


class SalesHistoryPage(BaseSchema):
    items: List[SalesRecordRead]
    page: int
    pages: int
    total: int


class SellerOrderRead(BaseSchema):
    """An order as one seller sees it: only that seller's lines."""
    id: int
    customer_name: str
    customer_email: str
    order_items: List[OrderItemRead]
    items_price: float
    is_paid: bool
    paid_at: Optional[datetime] = None
    is_delivered: bool
    created_at: datetime
