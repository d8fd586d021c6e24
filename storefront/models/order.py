# storefront/models/order.py
from sqlalchemy import Column, Integer, String, Float, Boolean, ForeignKey, TIMESTAMP
from sqlalchemy.orm import relationship

from storefront.core.utils import utc_now
from storefront.database import Base, JSONType


class Order(Base):
    """
    A checkout. Items are fixed at creation; only the paid and delivered
    flags (and their timestamps) change afterwards, and never back.
    """
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    created_at = Column(TIMESTAMP(timezone=False), default=utc_now, nullable=False)
    updated_at = Column(TIMESTAMP(timezone=False), default=utc_now, onupdate=utc_now, nullable=False)

    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)

    shipping_address = Column(JSONType, nullable=True)
    payment_method = Column(String, nullable=True)
    payment_result = Column(JSONType, nullable=True)

    items_price = Column(Float, nullable=False, default=0.0)
    tax_price = Column(Float, nullable=False, default=0.0)
    shipping_price = Column(Float, nullable=False, default=0.0)
    total_price = Column(Float, nullable=False, default=0.0)

    is_paid = Column(Boolean, nullable=False, default=False)
    paid_at = Column(TIMESTAMP(timezone=False), nullable=True)
    is_delivered = Column(Boolean, nullable=False, default=False)
    delivered_at = Column(TIMESTAMP(timezone=False), nullable=True)

    user = relationship("User", back_populates="orders", lazy="selectin")
    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Order id={self.id} user={self.user_id} paid={self.is_paid} delivered={self.is_delivered}>"


class OrderItem(Base):
    """
    One purchased line. Product and seller ids are kept as plain references so
    the order stays intact when the product is later deleted.
    """
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), index=True, nullable=False)

    product_id = Column(Integer, index=True, nullable=False)
    seller_id = Column(Integer, index=True, nullable=False)

    name = Column(String, nullable=False)
    image = Column(String, nullable=True)
    quantity = Column(Integer, nullable=False)
    price = Column(Float, nullable=False)

    order = relationship("Order", back_populates="items")

    @property
    def line_total(self) -> float:
        return self.price * self.quantity
