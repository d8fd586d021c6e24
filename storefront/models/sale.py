# storefront/models/sale.py

from sqlalchemy import (
    Column, Integer, String, Float, ForeignKey, TIMESTAMP, Index, UniqueConstraint,
)
from sqlalchemy.orm import relationship

from storefront.core.enums import SaleStatus
from storefront.core.utils import utc_now
from ..database import Base


class SalesRecord(Base):
    """
    Per-seller sales ledger entry, one per (order, product).

    Written once at payment confirmation; afterwards only price and
    total_amount change, when the source product's price is edited. Placeholder
    rows created with a product have no order and zero quantity.
    """

    __tablename__ = "sales_records"
    __table_args__ = (
        UniqueConstraint("order_id", "product_id", name="uq_sales_records_order_product"),
        Index("ix_sales_records_seller_order_date", "seller_id", "order_date"),
    )

    id = Column(Integer, primary_key=True)
    created_at = Column(TIMESTAMP(timezone=False), default=utc_now, nullable=False)
    updated_at = Column(TIMESTAMP(timezone=False), default=utc_now, onupdate=utc_now, nullable=False)

    seller_id = Column(Integer, nullable=False)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), index=True, nullable=False)

    product_name = Column(String, nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    price = Column(Float, nullable=False, default=0.0)
    total_amount = Column(Float, nullable=False, default=0.0)

    customer_name = Column(String, nullable=False)
    customer_email = Column(String, nullable=False)
    order_date = Column(TIMESTAMP(timezone=False), default=utc_now, nullable=False)
    status = Column(String, nullable=False, default=SaleStatus.COMPLETED.value)

    product = relationship("Product", back_populates="sales_records")

    def recompute_total(self) -> None:
        self.total_amount = (self.price or 0.0) * (self.quantity or 0)

    def __repr__(self) -> str:
        return (
            f"<SalesRecord id={self.id} seller={self.seller_id} order={self.order_id} "
            f"product={self.product_id} qty={self.quantity} total={self.total_amount} status={self.status}>"
        )
