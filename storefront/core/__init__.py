"""
Core module exports.
"""
from .enums import (
    SaleStatus,
    SalesPeriod,
    ConnectionState,
    LedgerOutcome,
)

from .exceptions import (
    BaseServiceError,
    UnauthenticatedError,
    InvalidHandshakeError,
    NotAuthorizedError,
    ValidationError,
    InvalidPayloadError,
    InvalidCartItemError,
    RateLimitedError,
    OrderServiceError,
    EmptyOrderError,
    UnresolvedSellerError,
    NotFoundError,
    OrderNotFoundError,
    ProductNotFoundError,
    SellerNotFoundError,
    UserNotFoundError,
    LedgerPartialFailure,
)

from .utils import (
    utc_now,
    is_number,
    page_count,
)
