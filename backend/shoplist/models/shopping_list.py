import uuid
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .product import ProductRead


class ListStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    ARCHIVED = "archived"


DEFAULT_LIST_NAME = "My Shopping List"
NEW_LIST_NAME = "New Shopping List"


class ListCreate(BaseModel):
    name: Optional[str] = None


class ListUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    status: Optional[ListStatus] = None


class ListItemCreate(BaseModel):
    """Body for adding an item: a catalog product, a free-text name, or both."""

    product_id: Optional[uuid.UUID] = None
    quantity: Optional[float] = Field(None, gt=0)
    custom_name: Optional[str] = None

    @model_validator(mode="after")
    def _needs_product_or_name(self) -> "ListItemCreate":
        if self.custom_name is not None and not self.custom_name.strip():
            self.custom_name = None
        if self.product_id is None and self.custom_name is None:
            raise ValueError("Either product_id or custom_name is required")
        return self


class ListItemUpdate(BaseModel):
    quantity: Optional[float] = Field(None, gt=0)
    is_purchased: Optional[bool] = None


class ListItemRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    product: Optional[ProductRead] = None
    custom_name: Optional[str] = None
    display_name: str
    quantity: float
    is_purchased: bool
    created_at: datetime


class ShoppingListSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    status: ListStatus
    created_at: datetime


class ShoppingListRead(ShoppingListSummary):
    """A list with its items and product details populated."""

    items: List[ListItemRead] = []
    total_items: int = 0
    purchased_items: int = 0

    @classmethod
    def from_row(cls, row) -> "ShoppingListRead":
        return cls(
            id=row.id,
            name=row.name,
            status=row.status,
            created_at=row.created_at,
            items=[ListItemRead.model_validate(i) for i in row.items],
            total_items=len(row.items),
            purchased_items=row.purchased_count,
        )
