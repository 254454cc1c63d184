from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shoplist.db.database import Base
from shoplist.models.product import ProductCategory, ProductUnit
from shoplist.models.shopping_list import ListStatus


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    google_id: Mapped[str] = mapped_column(String, unique=True, nullable=False, index=True)
    email: Mapped[str] = mapped_column(String, nullable=False)
    name: Mapped[str] = mapped_column(String, nullable=False)
    picture: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    last_login: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    products: Mapped[list[Product]] = relationship(back_populates="user", cascade="all, delete-orphan")
    lists: Mapped[list[ShoppingList]] = relationship(back_populates="user", cascade="all, delete-orphan")

    def touch_login(self) -> None:
        self.last_login = datetime.utcnow()


class Product(Base):
    __tablename__ = "products"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    brand: Mapped[str | None] = mapped_column(String, nullable=True)
    image_url: Mapped[str | None] = mapped_column(String, nullable=True)
    default_quantity: Mapped[float] = mapped_column(Float, default=1)
    alias: Mapped[str | None] = mapped_column(String, nullable=True)  # local name or nickname
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    consumption_duration: Mapped[int] = mapped_column(Integer, default=7)  # days one unit lasts
    category: Mapped[str] = mapped_column(String, default=ProductCategory.OTHER.value)
    unit: Mapped[str] = mapped_column(String, default=ProductUnit.UNIT.value)
    average_monthly_consumption: Mapped[float] = mapped_column(Float, default=1)
    preferred_store: Mapped[str | None] = mapped_column(String, nullable=True)
    product_link: Mapped[str | None] = mapped_column(String, nullable=True)
    last_known_price: Mapped[float | None] = mapped_column(Float, nullable=True)
    best_price: Mapped[float | None] = mapped_column(Float, nullable=True)
    best_price_store: Mapped[str | None] = mapped_column(String, nullable=True)
    best_price_link: Mapped[str | None] = mapped_column(String, nullable=True)
    consumers_count: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    user: Mapped[User] = relationship(back_populates="products")


class ShoppingList(Base):
    __tablename__ = "shopping_lists"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String, nullable=False, default="My Shopping List")
    status: Mapped[str] = mapped_column(String, nullable=False, default=ListStatus.ACTIVE.value, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    user: Mapped[User] = relationship(back_populates="lists")
    items: Mapped[list[ListItem]] = relationship(
        back_populates="shopping_list",
        cascade="all, delete-orphan",
        order_by="ListItem.created_at",
    )

    # ------------------------------------------------------------------
    # Item mutations (no I/O; the caller commits)
    # ------------------------------------------------------------------

    def find_item(
        self,
        product_id: Optional[uuid.UUID] = None,
        custom_name: Optional[str] = None,
    ) -> Optional[ListItem]:
        """Return the line item for a product, or for a free-text name (case-insensitive)."""
        wanted_name = custom_name.strip().lower() if custom_name else None
        for item in self.items:
            if product_id is not None and item.product_id == product_id:
                return item
            if wanted_name and item.custom_name and item.custom_name.strip().lower() == wanted_name:
                return item
        return None

    def get_item(self, item_id: uuid.UUID) -> Optional[ListItem]:
        return next((i for i in self.items if i.id == item_id), None)

    def add_item(
        self,
        product_id: Optional[uuid.UUID] = None,
        quantity: Optional[float] = None,
        custom_name: Optional[str] = None,
    ) -> ListItem:
        """Add a line item, or bump the quantity of the matching one."""
        amount = quantity or 1
        existing = self.find_item(product_id=product_id, custom_name=custom_name)
        if existing is not None:
            existing.quantity += amount
            return existing

        item = ListItem(
            id=uuid.uuid4(),
            product_id=product_id,
            custom_name=custom_name.strip() if custom_name else None,
            quantity=amount,
            is_purchased=False,
            created_at=datetime.utcnow(),
        )
        self.items.append(item)
        return item

    def remove_item(self, item_id: uuid.UUID) -> bool:
        item = self.get_item(item_id)
        if item is None:
            return False
        self.items.remove(item)
        return True

    def clear_completed(self) -> int:
        """Drop every purchased item; return how many were removed."""
        remaining = [i for i in self.items if not i.is_purchased]
        removed = len(self.items) - len(remaining)
        self.items = remaining
        return removed

    def archive(self) -> None:
        self.status = ListStatus.ARCHIVED.value

    def unarchive(self) -> None:
        self.status = ListStatus.ACTIVE.value

    @property
    def purchased_count(self) -> int:
        return sum(1 for i in self.items if i.is_purchased)


class ListItem(Base):
    __tablename__ = "list_items"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    list_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("shopping_lists.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # Nulled when the catalog product is deleted; the line item survives.
    product_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("products.id", ondelete="SET NULL"), nullable=True, index=True
    )
    custom_name: Mapped[str | None] = mapped_column(String, nullable=True)  # items not in the catalog
    quantity: Mapped[float] = mapped_column(Float, nullable=False)
    is_purchased: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    shopping_list: Mapped[ShoppingList] = relationship(back_populates="items")
    product: Mapped[Product | None] = relationship()

    @property
    def display_name(self) -> str:
        if self.custom_name:
            return self.custom_name
        if self.product is not None:
            return self.product.name
        return ""
