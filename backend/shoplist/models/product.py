import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ProductCategory(str, Enum):
    FRUITS_VEGGIES = "Fruits & Veggies"
    DAIRY_EGGS = "Dairy & Eggs"
    BAKERY = "Bakery"
    MEAT_SEAFOOD = "Meat & Seafood"
    PANTRY = "Pantry"
    SNACKS = "Snacks"
    BEVERAGES = "Beverages"
    HOUSEHOLD = "Household"
    PERSONAL_CARE = "Personal Care"
    OTHER = "Other"


class ProductUnit(str, Enum):
    UNIT = "unit"
    KG = "kg"
    G = "g"
    L = "l"
    ML = "ml"
    PACK = "pack"
    DOZEN = "dozen"
    BUNCH = "bunch"


# Columns that cannot be cleared with an explicit null
_NON_NULLABLE = {
    "name",
    "default_quantity",
    "consumption_duration",
    "category",
    "unit",
    "average_monthly_consumption",
    "consumers_count",
}


class ProductBase(BaseModel):
    """Fields shared by create and read."""

    description: Optional[str] = None
    brand: Optional[str] = None
    image_url: Optional[str] = None
    default_quantity: float = Field(1, gt=0)
    alias: Optional[str] = None  # local name or nickname
    notes: Optional[str] = None
    consumption_duration: int = Field(7, ge=0, description="Days a single unit lasts")
    category: ProductCategory = ProductCategory.OTHER
    unit: ProductUnit = ProductUnit.UNIT
    average_monthly_consumption: float = Field(1, ge=0)

    # Pricing metadata
    preferred_store: Optional[str] = None
    product_link: Optional[str] = None
    last_known_price: Optional[float] = Field(None, ge=0)
    best_price: Optional[float] = Field(None, ge=0)
    best_price_store: Optional[str] = None
    best_price_link: Optional[str] = None
    consumers_count: int = Field(0, ge=0)


class ProductCreate(ProductBase):
    name: str = Field(..., min_length=1)

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("name must not be blank")
        return value


class ProductUpdate(BaseModel):
    """Partial update: only fields present in the request body are applied."""

    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    brand: Optional[str] = None
    image_url: Optional[str] = None
    default_quantity: Optional[float] = Field(None, gt=0)
    alias: Optional[str] = None
    notes: Optional[str] = None
    consumption_duration: Optional[int] = Field(None, ge=0)
    category: Optional[ProductCategory] = None
    unit: Optional[ProductUnit] = None
    average_monthly_consumption: Optional[float] = Field(None, ge=0)
    preferred_store: Optional[str] = None
    product_link: Optional[str] = None
    last_known_price: Optional[float] = Field(None, ge=0)
    best_price: Optional[float] = Field(None, ge=0)
    best_price_store: Optional[str] = None
    best_price_link: Optional[str] = None
    consumers_count: Optional[int] = Field(None, ge=0)

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip()
        if not value:
            raise ValueError("name must not be blank")
        return value

    def changes(self) -> dict:
        """Fields the client actually sent, dropping nulls for required columns."""
        data = self.model_dump(mode="json", exclude_unset=True)
        return {k: v for k, v in data.items() if v is not None or k not in _NON_NULLABLE}


class ProductRead(ProductBase):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    created_at: datetime
