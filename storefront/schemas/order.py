"""
Schemas for order creation, payment confirmation and order reads.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import AliasChoices, Field

from storefront.schemas.base import BaseSchema


class OrderItemCreate(BaseSchema):
    product_id: int = Field(validation_alias=AliasChoices("product", "productId", "product_id"))
    seller_id: Optional[int] = Field(
        default=None, validation_alias=AliasChoices("seller", "sellerId", "seller_id")
    )
    name: str = Field(min_length=1)
    image: Optional[str] = None
    quantity: int = Field(gt=0, validation_alias=AliasChoices("qty", "quantity"))
    price: float = Field(ge=0)


class OrderCreate(BaseSchema):
    order_items: List[OrderItemCreate] = Field(default_factory=list)
    shipping_address: Optional[Dict[str, Any]] = None
    payment_method: Optional[str] = None
    items_price: Optional[float] = None
    tax_price: float = 0.0
    shipping_price: float = 0.0
    total_price: Optional[float] = None


class PaymentResult(BaseSchema):
    """Opaque confirmation from the payment provider, stored as received."""
    id: Optional[str] = None
    status: Optional[str] = None
    update_time: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("update_time", "updateTime")
    )
    email_address: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("email_address", "emailAddress")
    )

    def to_storage(self) -> dict:
        return self.model_dump(mode="json")


class OrderItemRead(BaseSchema):
    id: int
    product_id: int
    seller_id: int
    name: str
    image: Optional[str] = None
    quantity: int
    price: float


class OrderRead(BaseSchema):
    id: int
    user_id: int
    order_items: List[OrderItemRead] = Field(validation_alias=AliasChoices("items", "order_items"))
    shipping_address: Optional[Dict[str, Any]] = None
    payment_method: Optional[str] = None
    payment_result: Optional[Dict[str, Any]] = None
    items_price: float
    tax_price: float
    shipping_price: float
    total_price: float
    is_paid: bool
    paid_at: Optional[datetime] = None
    is_delivered: bool
    delivered_at: Optional[datetime] = None
    created_at: datetime
