import uuid
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Suggestion(BaseModel):
    """One suggested catalog product and why it was picked."""

    product: uuid.UUID
    reason: str


class SuggestionResponse(BaseModel):
    suggestions: List[Suggestion] = []


class SuggestedProductName(BaseModel):
    """Shape the model is asked to return for each suggestion."""

    model_config = ConfigDict(populate_by_name=True)

    # Entries without a name are skipped, not rejected
    product_name: Optional[str] = Field(None, alias="productName")
    reason: str = ""
