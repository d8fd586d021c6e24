"""
Identity verification and capability checks.

Access tokens are issued by the external auth service as
``<identity>.<hex HMAC-SHA256 of identity keyed with SECRET_KEY>``. This module
only verifies them and maps the identity onto a stored user.
"""

import hmac
import hashlib
import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.config import get_settings
from storefront.core.exceptions import UnauthenticatedError
from storefront.dependencies import get_db
from storefront.models.order import Order
from storefront.models.user import User

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


class TokenVerifier:
    """Verifies (and, for tooling and tests, issues) opaque access tokens."""

    def __init__(self, secret_key: str):
        if not secret_key:
            raise ValueError("SECRET_KEY is required to verify access tokens")
        self._key = secret_key.encode("utf8")

    def _sign(self, identity: str) -> str:
        return hmac.new(self._key, identity.encode("utf8"), hashlib.sha256).hexdigest()

    def issue(self, identity: str) -> str:
        return f"{identity}.{self._sign(identity)}"

    def verify(self, token: Optional[str]) -> str:
        """Return the identity a token was issued for, or raise UnauthenticatedError."""
        if not token or "." not in token:
            raise UnauthenticatedError("Not authorized, no token provided")
        identity, _, signature = token.rpartition(".")
        if not identity or not hmac.compare_digest(signature, self._sign(identity)):
            raise UnauthenticatedError("Not authorized, invalid token")
        return identity


def get_token_verifier() -> TokenVerifier:
    return TokenVerifier(get_settings().SECRET_KEY)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    verifier: TokenVerifier = Depends(get_token_verifier),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Resolve the bearer token to a stored user.
    """
    token = credentials.credentials if credentials else None
    try:
        identity = verifier.verify(token)
    except UnauthenticatedError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = await db.get(User, int(identity)) if identity.isdigit() else None
    if user is None:
        logger.info("Token identity %s has no matching user", identity)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authorized, user not found",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


async def require_admin(user: User = Depends(get_current_user)) -> User:
    if not user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized as an admin")
    return user


async def require_seller(user: User = Depends(get_current_user)) -> User:
    if not user.is_seller:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized as a seller")
    return user


async def require_seller_or_admin(user: User = Depends(get_current_user)) -> User:
    if not (user.is_seller or user.is_admin):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized as an admin or seller")
    return user


@dataclass(frozen=True)
class AuthorizationResult:
    allowed: bool
    reason: str = ""

    def __bool__(self) -> bool:
        return self.allowed


def require_owner_or_admin(order: Order, user: User) -> AuthorizationResult:
    """Capability check for order access: the order's owner or any admin."""
    if user.is_admin:
        return AuthorizationResult(True, "admin")
    if order.user_id == user.id:
        return AuthorizationResult(True, "owner")
    return AuthorizationResult(False, "Not authorized to access this order")


def owns_or_admin(owner_id: int, user: User) -> AuthorizationResult:
    """Same capability check for resources that carry a plain owner id (products)."""
    if user.is_admin:
        return AuthorizationResult(True, "admin")
    if owner_id == user.id:
        return AuthorizationResult(True, "owner")
    return AuthorizationResult(False, "Not authorized to modify this resource")
