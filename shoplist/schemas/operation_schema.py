"""Schemas for background item operations."""

from enum import Enum

from pydantic import BaseModel, ConfigDict


class ItemOperation(str, Enum):
    ADD = "add"
    REMOVE = "remove"


class ItemOperationFailure(BaseModel):
    """Reported to failure callbacks when a dispatched operation fails."""

    model_config = ConfigDict(frozen=True)

    operation: ItemOperation
    item_name: str
    item_id: int | None = None
    error_code: str
    message: str
