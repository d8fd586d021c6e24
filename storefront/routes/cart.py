# storefront/routes/cart.py
import logging
import math

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.exceptions import InvalidCartItemError, RateLimitedError, UserNotFoundError
from storefront.core.security import get_current_user
from storefront.dependencies import get_db, get_rate_limiter
from storefront.models.user import User
from storefront.schemas.cart import CartRead, CartReplace
from storefront.services.cart_service import CartService
from storefront.services.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cart", tags=["cart"])


def rate_limited(e: RateLimitedError) -> HTTPException:
    retry_after = max(1, math.ceil(e.retry_after or 0))
    return HTTPException(status_code=429, detail=str(e), headers={"Retry-After": str(retry_after)})


@router.get("", response_model=CartRead)
async def get_cart(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    rate_limiter: RateLimiter = Depends(get_rate_limiter),
):
    """Current durable cart of the caller"""
    try:
        cart = await CartService(db, rate_limiter).get(user.id)
    except RateLimitedError as e:
        raise rate_limited(e)
    except UserNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return CartRead(cart=cart)


@router.put("", response_model=CartRead)
async def replace_cart(
    body: CartReplace,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    rate_limiter: RateLimiter = Depends(get_rate_limiter),
):
    """Replace the caller's cart; any invalid line rejects the whole request"""
    try:
        cart = await CartService(db, rate_limiter).replace(user.id, body.cart_items)
    except RateLimitedError as e:
        raise rate_limited(e)
    except InvalidCartItemError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except UserNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return CartRead(cart=cart)
