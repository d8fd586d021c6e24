"""Product write routes that keep the sales ledger consistent."""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.exceptions import NotAuthorizedError, ProductNotFoundError
from storefront.core.security import require_admin, require_seller_or_admin
from storefront.dependencies import get_db
from storefront.models.user import User
from storefront.schemas.product import ProductCreate, ProductRead, ProductUpdate
from storefront.services.product_service import ProductService

router = APIRouter(prefix="/products", tags=["products"])


@router.post("", response_model=ProductRead, status_code=201)
async def create_product(
    product_data: ProductCreate,
    user: User = Depends(require_seller_or_admin),
    db: AsyncSession = Depends(get_db),
):
    return await ProductService(db).create_product(user, product_data)


@router.put("/{product_id}", response_model=ProductRead)
async def update_product(
    product_id: int,
    changes: ProductUpdate,
    user: User = Depends(require_seller_or_admin),
    db: AsyncSession = Depends(get_db),
):
    """Edit a product; a price change re-prices its sales records"""
    try:
        return await ProductService(db).update_product(product_id, user, changes)
    except ProductNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except NotAuthorizedError as e:
        raise HTTPException(status_code=403, detail=str(e))


@router.delete("/{product_id}")
async def delete_product(
    product_id: int,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    try:
        await ProductService(db).delete_product(product_id)
    except ProductNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"message": "Product removed"}
