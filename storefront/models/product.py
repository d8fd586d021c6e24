"""
Product model.

Only the fields the order ledger needs are modelled here: the owning seller,
the current unit price and the cumulative sales counter.
"""

from sqlalchemy import Column, Integer, String, Float, ForeignKey, TIMESTAMP
from sqlalchemy.orm import relationship

from storefront.core.utils import utc_now
from ..database import Base


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True)
    created_at = Column(TIMESTAMP(timezone=False), default=utc_now, nullable=False)
    updated_at = Column(TIMESTAMP(timezone=False), default=utc_now, onupdate=utc_now, nullable=False)

    seller_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)

    name = Column(String, nullable=False)
    image = Column(String, nullable=True)
    price = Column(Float, nullable=False, default=0.0)
    count_in_stock = Column(Integer, nullable=False, default=0)
    sales = Column(Integer, nullable=False, default=0)

    seller = relationship("User", back_populates="products")
    sales_records = relationship(
        "SalesRecord",
        back_populates="product",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Product id={self.id} seller={self.seller_id} price={self.price} sales={self.sales}>"
