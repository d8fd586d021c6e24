# storefront/services/cart_service.py
"""
Durable cart store.

The cart is part of the user's profile and is the source of truth; the
real-time channel only relays changes between open sessions. Reads and writes
are gated by the shared rate limiter, and a replacement is validated in full
before anything is written.
"""

import logging
from typing import Any, Dict, List

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.exceptions import InvalidCartItemError, UserNotFoundError
from storefront.models.user import User
from storefront.schemas.cart import CartLine
from storefront.services.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)


def validate_cart_lines(lines: Any) -> List[Dict[str, Any]]:
    """
    Validate a whole cart and return it in storage form.

    Raises InvalidCartItemError on the first bad line; duplicate productIds
    collapse onto the first position with the last line's values.
    """
    if not isinstance(lines, list):
        raise InvalidCartItemError("Cart items must be an array")

    merged: Dict[Any, Dict[str, Any]] = {}
    for index, raw in enumerate(lines):
        if not isinstance(raw, dict):
            raise InvalidCartItemError(f"Invalid cart item structure at position {index}")
        try:
            line = CartLine.model_validate(raw)
        except PydanticValidationError as e:
            # Union members add their own loc parts; report the field once
            fields = ", ".join(dict.fromkeys(str(err["loc"][0]) for err in e.errors()))
            raise InvalidCartItemError(
                f"Invalid cart item structure at position {index}: {fields}"
            ) from e
        merged[line.product_id] = line.model_dump(by_alias=True)

    return list(merged.values())


class CartService:
    def __init__(self, db: AsyncSession, rate_limiter: RateLimiter):
        self.db = db
        self.rate_limiter = rate_limiter

    async def _get_user(self, user_id: int) -> User:
        user = await self.db.get(User, user_id)
        if user is None:
            raise UserNotFoundError(f"User {user_id} not found")
        return user

    async def get(self, user_id: int) -> List[Dict[str, Any]]:
        """Return the stored cart, empty if the user never saved one."""
        self.rate_limiter.acquire_or_raise(str(user_id))
        user = await self._get_user(user_id)
        return list(user.cart or [])

    async def replace(self, user_id: int, lines: Any) -> List[Dict[str, Any]]:
        """
        Replace the whole cart.

        Args:
            user_id: Owner of the cart
            lines: Candidate cart lines as received from the client

        Returns:
            The cart as stored

        Raises:
            RateLimitedError: If the identity is over its quota
            InvalidCartItemError: If any line is invalid; the stored cart is untouched
        """
        self.rate_limiter.acquire_or_raise(str(user_id))
        validated = validate_cart_lines(lines)

        user = await self._get_user(user_id)
        # Assign a new list so the JSON column is flagged dirty
        user.cart = validated
        await self.db.commit()

        logger.info("Cart replaced for user %s (%d lines)", user_id, len(validated))
        return list(user.cart)
