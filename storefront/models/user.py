# storefront/models/user.py

from sqlalchemy import Column, Integer, String, Boolean, TIMESTAMP
from sqlalchemy.orm import relationship

from storefront.core.utils import utc_now
from ..database import Base, JSONType


class User(Base):
    """
    An identity as seen by this service: customer, seller or admin.

    Credentials live with the external auth service. The durable cart is part
    of the profile and is always replaced as a whole.
    """

    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    created_at = Column(TIMESTAMP(timezone=False), default=utc_now, nullable=False)
    updated_at = Column(TIMESTAMP(timezone=False), default=utc_now, onupdate=utc_now, nullable=False)

    name = Column(String, nullable=False)
    email = Column(String, unique=True, nullable=False, index=True)
    is_admin = Column(Boolean, default=False, nullable=False)
    is_seller = Column(Boolean, default=False, nullable=False)
    seller_info = Column(JSONType, nullable=True)

    cart = Column(JSONType, nullable=False, default=list)

    products = relationship("Product", back_populates="seller")
    orders = relationship("Order", back_populates="user")

    @property
    def identity(self) -> str:
        """Opaque identity key used by the real-time channel and the rate limiter."""
        return str(self.id)

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email} admin={self.is_admin} seller={self.is_seller}>"
