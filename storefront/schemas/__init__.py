"""
Schema exports for the application.
"""

# Base schemas
from .base import BaseSchema

# Cart schemas
from .cart import CartLine, CartReplace, CartRead, BroadcastCartLine

# Order schemas
from .order import OrderItemCreate, OrderCreate, PaymentResult, OrderItemRead, OrderRead

# Product schemas
from .product import ProductCreate, ProductUpdate, ProductRead

# Seller analytics schemas
from .sales import (
    SalesRecordRead,
    TopProduct,
    RecentOrder,
    DashboardSummary,
    SalesBucket,
    SalesHistoryPage,
    SellerOrderRead,
)
