from .user import User
from .product import Product
from .order import Order, OrderItem
from .sale import SalesRecord

# This ensures all models are registered with SQLAlchemy
__all__ = [
    'User',
    'Product',
    'Order',
    'OrderItem',
    'SalesRecord',
]
