"""
Schemas for cart lines, both the durable cart and the real-time channel.
"""

from typing import Any, List, Optional, Union
from pydantic import ConfigDict, Field, StrictFloat, StrictInt, StrictStr, field_validator

from storefront.core.utils import is_number
from storefront.schemas.base import BaseSchema

ProductId = Union[StrictStr, StrictInt]
Amount = Union[StrictInt, StrictFloat]


def _require_positive_quantity(v):
    if not is_number(v) or v <= 0:
        raise ValueError('quantity must be a positive number')
    return v


def _require_product_id(v):
    if isinstance(v, str) and not v.strip():
        raise ValueError('productId must not be empty')
    return v


class CartLine(BaseSchema):
    """
    A line of the durable cart. Every field is required and checked strictly:
    strings must be non-empty, price a non-negative number, quantity a positive
    number. Values are stored exactly as given.
    """
    product_id: ProductId
    name: StrictStr
    image: StrictStr
    price: Amount
    quantity: Amount

    @field_validator('product_id')
    @classmethod
    def validate_product_id(cls, v):
        return _require_product_id(v)

    @field_validator('name', 'image')
    @classmethod
    def validate_text(cls, v):
        if not v.strip():
            raise ValueError('must be a non-empty string')
        return v

    @field_validator('price')
    @classmethod
    def validate_price(cls, v):
        if not is_number(v) or v < 0:
            raise ValueError('price must be a non-negative number')
        return v

    @field_validator('quantity')
    @classmethod
    def validate_quantity(cls, v):
        return _require_positive_quantity(v)


class CartReplace(BaseSchema):
    """Body of PUT /cart. Lines are validated by the cart service, not here."""
    cart_items: Any = Field(default_factory=list)


class CartRead(BaseSchema):
    success: bool = True
    cart: List[CartLine]


class BroadcastCartLine(BaseSchema):
    """
    A line relayed over the real-time channel. Only productId and quantity are
    checked; any other fields the client sent travel along untouched.
    """
    model_config = ConfigDict(extra='allow')

    product_id: ProductId
    quantity: Amount
    name: Optional[Any] = None
    image: Optional[Any] = None
    price: Optional[Any] = None

    @field_validator('product_id')
    @classmethod
    def validate_product_id(cls, v):
        return _require_product_id(v)

    @field_validator('quantity')
    @classmethod
    def validate_quantity(cls, v):
        return _require_positive_quantity(v)
