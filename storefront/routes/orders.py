"""Order routes - checkout, payment confirmation and delivery."""
import logging
from typing import List, Optional

from fastapi import APIRouter, Body, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.exceptions import EmptyOrderError, OrderNotFoundError, UnresolvedSellerError
from storefront.core.security import get_current_user, require_admin, require_owner_or_admin
from storefront.dependencies import get_db
from storefront.models.order import Order
from storefront.models.user import User
from storefront.schemas.order import OrderCreate, OrderRead, PaymentResult
from storefront.services.order_ledger import OrderLedgerService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/orders", tags=["orders"])


async def _load_authorized(service: OrderLedgerService, order_id: int, user: User) -> Order:
    try:
        order = await service.get_order(order_id)
    except OrderNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    decision = require_owner_or_admin(order, user)
    if not decision:
        raise HTTPException(status_code=403, detail=decision.reason)
    return order


@router.post("", response_model=OrderRead, status_code=201)
async def create_order(
    order_data: OrderCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Create an unpaid order from the caller's checkout"""
    try:
        return await OrderLedgerService(db).create_order(user, order_data)
    except (EmptyOrderError, UnresolvedSellerError) as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/mine", response_model=List[OrderRead])
async def my_orders(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await OrderLedgerService(db).list_orders_for_user(user.id)


@router.get("", response_model=List[OrderRead])
async def all_orders(
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await OrderLedgerService(db).list_orders()


@router.get("/{order_id}", response_model=OrderRead)
async def get_order(
    order_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await _load_authorized(OrderLedgerService(db), order_id, user)


@router.put("/{order_id}/pay", response_model=OrderRead)
async def pay_order(
    order_id: int,
    payment_result: Optional[PaymentResult] = Body(default=None),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Record the payment provider's confirmation. Sales ledger problems are
    logged by the service and never fail this call.
    """
    service = OrderLedgerService(db)
    await _load_authorized(service, order_id, user)
    try:
        order, report = await service.confirm_payment(order_id, payment_result or PaymentResult())
    except OrderNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    if not report.is_complete:
        logger.warning(
            "Order %s paid with %d incomplete ledger item(s)", order_id, len(report.failures)
        )
    return order


@router.put("/{order_id}/deliver", response_model=OrderRead)
async def deliver_order(
    order_id: int,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    try:
        return await OrderLedgerService(db).mark_delivered(order_id)
    except OrderNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
