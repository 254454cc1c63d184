from __future__ import annotations

import uuid
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from shoplist.db.models import Product
from shoplist.models.product import ProductCreate, ProductUpdate


def _parse_id(value: str) -> Optional[uuid.UUID]:
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


class ProductManager:
    """Master-list (catalog) products, always scoped to one owner."""

    async def list_products(self, user_id: uuid.UUID, db: AsyncSession) -> list[Product]:
        result = await db.execute(
            select(Product).where(Product.user_id == user_id).order_by(Product.name.asc())
        )
        return list(result.scalars().all())

    async def get_product(
        self, product_id: str, user_id: uuid.UUID, db: AsyncSession
    ) -> Optional[Product]:
        pid = _parse_id(product_id)
        if pid is None:
            return None
        result = await db.execute(
            select(Product).where(Product.id == pid, Product.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def create_product(
        self, user_id: uuid.UUID, data: ProductCreate, db: AsyncSession
    ) -> Product:
        row = Product(id=uuid.uuid4(), user_id=user_id, **data.model_dump(mode="json"))
        db.add(row)
        await db.commit()
        await db.refresh(row)
        return row

    async def update_product(
        self, product_id: str, user_id: uuid.UUID, data: ProductUpdate, db: AsyncSession
    ) -> Optional[Product]:
        row = await self.get_product(product_id, user_id, db)
        if row is None:
            return None
        for key, value in data.changes().items():
            setattr(row, key, value)
        await db.commit()
        await db.refresh(row)
        return row

    async def delete_product(self, product_id: str, user_id: uuid.UUID, db: AsyncSession) -> bool:
        row = await self.get_product(product_id, user_id, db)
        if row is None:
            return False
        await db.delete(row)
        await db.commit()
        return True


product_manager = ProductManager()
