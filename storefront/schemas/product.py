"""
Schemas for the product endpoints the sales ledger depends on.
"""

from typing import Optional
from datetime import datetime
from pydantic import Field, field_validator

from storefront.schemas.base import BaseSchema


class ProductCreate(BaseSchema):
    name: str = Field(min_length=1)
    price: float = Field(default=0.0, ge=0)
    image: Optional[str] = None
    count_in_stock: int = Field(default=0, ge=0)


class ProductUpdate(BaseSchema):
    name: Optional[str] = None
    price: Optional[float] = None
    image: Optional[str] = None
    count_in_stock: Optional[int] = None

    @field_validator('price')
    @classmethod
    def validate_price(cls, v):
        if v is not None and v < 0:
            raise ValueError('Price must be a non-negative number')
        return v


class ProductRead(BaseSchema):
    id: int
    seller_id: int
    name: str
    image: Optional[str] = None
    price: float
    count_in_stock: int
    sales: int
    created_at: datetime
    updated_at: datetime
