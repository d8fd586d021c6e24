"""
Shared enums and constants used across the application.
"""

from enum import Enum


class SaleStatus(str, Enum):
    """Lifecycle states of a sales ledger record"""
    PENDING = "pending"
    COMPLETED = "completed"
    REFUNDED = "refunded"
    CANCELLED = "cancelled"


class SalesPeriod(str, Enum):
    """Bucketing periods for the seller sales series"""
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"

    @property
    def bucket_count(self) -> int:
        return {
            SalesPeriod.WEEKLY: 7,
            SalesPeriod.MONTHLY: 6,
            SalesPeriod.YEARLY: 5,
        }[self]


class ConnectionState(str, Enum):
    UNAUTHENTICATED = "UNAUTHENTICATED"
    AUTHENTICATED = "AUTHENTICATED"
    CLOSED = "CLOSED"


class LedgerOutcome(str, Enum):
    """Per-item result of the ledger step in payment confirmation"""
    RECORDED = "recorded"
    ALREADY_RECORDED = "already_recorded"
    SKIPPED = "skipped"
    FAILED = "failed"
