from __future__ import annotations

import uuid
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from shoplist.db.models import ListItem, Product, ShoppingList
from shoplist.models.shopping_list import (
    DEFAULT_LIST_NAME,
    NEW_LIST_NAME,
    ListItemCreate,
    ListItemUpdate,
    ListStatus,
    ListUpdate,
)


class ProductNotOwnedError(LookupError):
    """The product referenced by a new list item does not exist for this user."""


class ListManager:
    """Shopping lists and their line items, always scoped to one owner.

    Every mutation reloads the list with items and products populated, so the
    routes can serialize it without lazy loads.
    """

    async def list_lists(
        self, user_id: uuid.UUID, db: AsyncSession, include_archived: bool = False
    ) -> list[ShoppingList]:
        query = (
            select(ShoppingList)
            .where(ShoppingList.user_id == user_id)
            .options(selectinload(ShoppingList.items).selectinload(ListItem.product))
            .order_by(ShoppingList.created_at.desc())
        )
        if not include_archived:
            query = query.where(ShoppingList.status != ListStatus.ARCHIVED.value)
        result = await db.execute(query)
        return list(result.scalars().all())

    async def create_list(
        self, user_id: uuid.UUID, name: Optional[str], db: AsyncSession
    ) -> ShoppingList:
        row = ShoppingList(
            id=uuid.uuid4(),
            user_id=user_id,
            name=(name or "").strip() or NEW_LIST_NAME,
            status=ListStatus.ACTIVE.value,
        )
        db.add(row)
        await db.commit()
        return await self._reload(row.id, db)

    async def get_list(
        self, list_id: str, user_id: uuid.UUID, db: AsyncSession
    ) -> Optional[ShoppingList]:
        try:
            lid = uuid.UUID(list_id)
        except ValueError:
            return None
        result = await db.execute(
            select(ShoppingList)
            .where(ShoppingList.id == lid, ShoppingList.user_id == user_id)
            .options(selectinload(ShoppingList.items).selectinload(ListItem.product))
        )
        return result.scalar_one_or_none()

    async def get_or_create_active(self, user_id: uuid.UUID, db: AsyncSession) -> ShoppingList:
        """Most recent active list; a default one is created when the user has none."""
        result = await db.execute(
            select(ShoppingList)
            .where(
                ShoppingList.user_id == user_id,
                ShoppingList.status == ListStatus.ACTIVE.value,
            )
            .options(selectinload(ShoppingList.items).selectinload(ListItem.product))
            .order_by(ShoppingList.created_at.desc())
            .limit(1)
        )
        row = result.scalar_one_or_none()
        if row is not None:
            return row
        return await self.create_list(user_id, DEFAULT_LIST_NAME, db)

    async def update_list(
        self, row: ShoppingList, data: ListUpdate, db: AsyncSession
    ) -> ShoppingList:
        if data.name is not None:
            row.name = data.name.strip() or row.name
        if data.status is not None:
            row.status = data.status.value
        return await self._save(row, db)

    async def set_archived(
        self, row: ShoppingList, archived: bool, db: AsyncSession
    ) -> ShoppingList:
        if archived:
            row.archive()
        else:
            row.unarchive()
        return await self._save(row, db)

    async def delete_list(self, row: ShoppingList, db: AsyncSession) -> None:
        await db.delete(row)
        await db.commit()

    # ------------------------------------------------------------------
    # Line items
    # ------------------------------------------------------------------

    async def add_item(
        self, row: ShoppingList, data: ListItemCreate, db: AsyncSession
    ) -> ShoppingList:
        if data.product_id is not None:
            owned = await db.execute(
                select(Product.id).where(
                    Product.id == data.product_id, Product.user_id == row.user_id
                )
            )
            if owned.scalar_one_or_none() is None:
                raise ProductNotOwnedError(str(data.product_id))
        row.add_item(
            product_id=data.product_id,
            quantity=data.quantity,
            custom_name=data.custom_name,
        )
        return await self._save(row, db)

    async def update_item(
        self, row: ShoppingList, item: ListItem, data: ListItemUpdate, db: AsyncSession
    ) -> ShoppingList:
        if data.quantity is not None:
            item.quantity = data.quantity
        if data.is_purchased is not None:
            item.is_purchased = data.is_purchased
        return await self._save(row, db)

    async def remove_item(
        self, row: ShoppingList, item_id: uuid.UUID, db: AsyncSession
    ) -> ShoppingList:
        row.remove_item(item_id)
        return await self._save(row, db)

    async def clear_completed(self, row: ShoppingList, db: AsyncSession) -> ShoppingList:
        row.clear_completed()
        return await self._save(row, db)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _save(self, row: ShoppingList, db: AsyncSession) -> ShoppingList:
        list_id = row.id
        await db.commit()
        return await self._reload(list_id, db)

    async def _reload(self, list_id: uuid.UUID, db: AsyncSession) -> ShoppingList:
        result = await db.execute(
            select(ShoppingList)
            .where(ShoppingList.id == list_id)
            .options(selectinload(ShoppingList.items).selectinload(ListItem.product))
            .execution_options(populate_existing=True)
        )
        return result.scalar_one()


list_manager = ListManager()
