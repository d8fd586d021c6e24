"""
Purpose: Keeps the sales ledger in step with the products it refers to.

Catalog browsing and search live elsewhere; this service covers the product
writes the ledger depends on:
- Creating a product also opens a pending, zero-quantity SalesRecord for it
- Editing the price re-prices every SalesRecord of the product
- Deleting a product deletes its SalesRecords

Price propagation runs after the price edit is committed, so a reader can
briefly see some records re-priced and others not.
"""

import logging
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.enums import SaleStatus
from storefront.core.exceptions import NotAuthorizedError, ProductNotFoundError
from storefront.core.security import owns_or_admin
from storefront.models.product import Product
from storefront.models.sale import SalesRecord
from storefront.models.user import User
from storefront.schemas.product import ProductCreate, ProductUpdate

logger = logging.getLogger(__name__)

PLACEHOLDER_CUSTOMER = "N/A"


class ProductService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_product(self, product_id: int) -> Product:
        """
        Retrieves a product by ID.

        Raises:
            ProductNotFoundError: If product not found
        """
        product = await self.db.get(Product, product_id)
        if product is None:
            raise ProductNotFoundError(f"Product with ID {product_id} not found")
        return product

    async def create_product(self, seller: User, product_data: ProductCreate) -> Product:
        """
        Creates a product owned by `seller` together with its placeholder SalesRecord.
        """
        product = Product(seller_id=seller.id, sales=0, **product_data.model_dump())
        self.db.add(product)
        await self.db.flush()  # Get product ID without committing

        self.db.add(
            SalesRecord(
                seller_id=seller.id,
                order_id=None,
                product_id=product.id,
                product_name=product.name,
                quantity=0,
                price=product.price,
                total_amount=0.0,
                customer_name=PLACEHOLDER_CUSTOMER,
                customer_email=PLACEHOLDER_CUSTOMER,
                status=SaleStatus.PENDING.value,
            )
        )
        await self.db.commit()
        await self.db.refresh(product)

        logger.info("Product %s created for seller %s", product.id, seller.id)
        return product

    async def update_product(self, product_id: int, actor: User, changes: ProductUpdate) -> Product:
        """
        Apply an edit from the product's seller or an admin.

        A changed price is propagated to every SalesRecord of the product
        after the edit itself is saved.

        Raises:
            ProductNotFoundError: If product not found
            NotAuthorizedError: If actor neither owns the product nor is an admin
        """
        product = await self.get_product(product_id)
        decision = owns_or_admin(product.seller_id, actor)
        if not decision:
            raise NotAuthorizedError("Not authorized to update this product")

        updates = changes.model_dump(exclude_unset=True, exclude_none=True)
        new_price: Optional[float] = updates.get("price")
        price_changed = new_price is not None and new_price != product.price

        for key, value in updates.items():
            setattr(product, key, value)
        await self.db.commit()

        if price_changed:
            await self.propagate_price_change(product.id, new_price)

        await self.db.refresh(product)
        return product

    async def propagate_price_change(self, product_id: int, new_price: float) -> int:
        """
        Re-price every SalesRecord of a product: price = new_price and
        total_amount = new_price * quantity.

        Returns:
            Number of records updated
        """
        result = await self.db.execute(select(SalesRecord).where(SalesRecord.product_id == product_id))
        records = result.scalars().all()
        for record in records:
            record.price = new_price
            record.recompute_total()
        await self.db.commit()

        logger.info("Propagated price %.2f to %d sales record(s) of product %s", new_price, len(records), product_id)
        return len(records)

    async def delete_product(self, product_id: int) -> None:
        """Delete a product and, with it, its SalesRecords."""
        product = await self.get_product(product_id)
        removed = await self.db.execute(delete(SalesRecord).where(SalesRecord.product_id == product_id))
        await self.db.delete(product)
        await self.db.commit()
        logger.info("Product %s deleted with %d sales record(s)", product_id, removed.rowcount)
