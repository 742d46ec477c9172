"""Item schemas."""

from pydantic import BaseModel, ConfigDict, Field


class ItemSchema(BaseModel):
    """Immutable snapshot of a stored item."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: int
    name: str


class ItemCreate(BaseModel):
    """Schema for user input that creates an item."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, description="Item name")
