"""Seller analytics routes - dashboard, sales series, history and orders."""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.config import get_settings
from storefront.core.enums import SalesPeriod
from storefront.core.security import require_seller
from storefront.core.utils import page_count
from storefront.dependencies import get_db
from storefront.models.user import User
from storefront.schemas.sales import (
    DashboardSummary,
    SalesBucket,
    SalesHistoryPage,
    SalesRecordRead,
    SellerOrderRead,
)
from storefront.services.sales_aggregator import SalesAggregatorService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/sellers", tags=["sellers"])


def _aggregator(db: AsyncSession) -> SalesAggregatorService:
    settings = get_settings()
    return SalesAggregatorService(
        db,
        top_products=settings.DASHBOARD_TOP_PRODUCTS,
        recent_orders=settings.DASHBOARD_RECENT_ORDERS,
    )


@router.get("/dashboard", response_model=DashboardSummary)
async def seller_dashboard(
    seller: User = Depends(require_seller),
    db: AsyncSession = Depends(get_db),
):
    """Summary statistics for the calling seller"""
    return await _aggregator(db).dashboard(seller.id)


@router.get("/sales", response_model=List[SalesBucket])
async def seller_sales(
    period: SalesPeriod = Query(SalesPeriod.MONTHLY, description="weekly, monthly or yearly"),
    seller: User = Depends(require_seller),
    db: AsyncSession = Depends(get_db),
):
    """Revenue and order counts per calendar bucket, oldest first"""
    return await _aggregator(db).sales_series(seller.id, period)


@router.get("/sales-history", response_model=SalesHistoryPage)
async def seller_sales_history(
    limit: Optional[int] = Query(None, ge=1, le=200),
    page: int = Query(1, ge=1),
    seller: User = Depends(require_seller),
    db: AsyncSession = Depends(get_db),
):
    limit = limit or get_settings().SALES_HISTORY_PAGE_SIZE
    records, total = await _aggregator(db).sales_history(seller.id, page=page, limit=limit)
    return SalesHistoryPage(
        items=[SalesRecordRead.model_validate(r) for r in records],
        page=page,
        pages=page_count(total, limit),
        total=total,
    )


@router.get("/orders", response_model=List[SellerOrderRead])
async def seller_orders(
    seller: User = Depends(require_seller),
    db: AsyncSession = Depends(get_db),
):
    return await _aggregator(db).seller_orders(seller.id)
