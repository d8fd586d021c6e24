from typing import Optional


class BaseServiceError(Exception):
    """Base exception for all service-related errors."""
    pass


class UnauthenticatedError(BaseServiceError):
    """Raised when the acting connection or request has no verified identity."""
    pass


class InvalidHandshakeError(BaseServiceError):
    """Raised when a real-time authenticate message carries no usable identity."""
    pass


class NotAuthorizedError(BaseServiceError):
    """Raised when an identity lacks the capability for an action."""
    pass


class ValidationError(BaseServiceError):
    """Raised when data validation fails."""
    pass


class InvalidPayloadError(ValidationError):
    """Raised when a real-time cart payload is structurally invalid."""
    pass


class InvalidCartItemError(ValidationError):
    """Raised when a cart replacement contains an invalid line. Nothing is applied."""
    pass


class RateLimitedError(BaseServiceError):
    """Raised when an identity exceeded its quota for the current window."""

    def __init__(self, message: str, retry_after: Optional[float] = None):
        super().__init__(message)
        self.retry_after = retry_after


class OrderServiceError(BaseServiceError):
    """Base exception for order creation precondition failures."""
    pass


class EmptyOrderError(OrderServiceError):
    """Raised when an order is submitted without items."""
    pass


class UnresolvedSellerError(OrderServiceError):
    """Raised when the seller of an order item cannot be resolved from its product."""
    pass


class NotFoundError(BaseServiceError):
    """Base exception for referential integrity misses."""
    pass


class OrderNotFoundError(NotFoundError):
    """Raised when order is not found."""
    pass


class ProductNotFoundError(NotFoundError):
    """Raised when product is not found."""
    pass


class SellerNotFoundError(NotFoundError):
    """Raised when seller is not found."""
    pass


class UserNotFoundError(NotFoundError):
    """Raised when user is not found."""
    pass


class LedgerPartialFailure(BaseServiceError):
    """
    A single order item could not be written to the sales ledger.

    Never propagates out of payment confirmation; instances are carried in the
    per-item results of the confirmation report.
    """

    def __init__(self, message: str, product_id: Optional[int] = None, reason: str = "error"):
        super().__init__(message)
        self.product_id = product_id
        self.reason = reason
