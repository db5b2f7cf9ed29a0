"""Local record types for inventory items and their change history."""

from datetime import date, datetime
from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

Number = Union[int, float]

# Persisted item fields, in document order. Diffs and "created" history
# entries list fields in this order.
ITEM_FIELDS: tuple[str, ...] = (
    "name",
    "quantity",
    "expiry_date",
    "low_stock_threshold",
    "is_recurring",
    "recurring_cycle",
    "barcode",
)


class RecurringCycle(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class ChangeType(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"


class InventoryItemData(BaseModel):
    """An item record without its store-assigned id."""

    model_config = ConfigDict(use_enum_values=False)

    name: str = Field(..., min_length=1)
    quantity: Number = Field(..., ge=0)
    expiry_date: Optional[date] = None
    low_stock_threshold: Number = Field(5, ge=0)
    is_recurring: bool = False
    recurring_cycle: Optional[RecurringCycle] = None
    barcode: Optional[str] = None

    def normalized(self) -> "InventoryItemData":
        """Return a copy whose recurring cycle is cleared for non-recurring items."""
        if self.is_recurring:
            return self.model_copy()
        return self.model_copy(update={"recurring_cycle": None})


class InventoryItem(InventoryItemData):
    """A tracked item as published to readers."""

    id: str


class InventoryItemHistory(BaseModel):
    """Immutable audit record for one mutation of an item."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    item_id: str
    change_type: ChangeType
    changed_fields: Optional[list[str]] = None
    old_data: Optional[dict[str, Any]] = None
    new_data: Optional[dict[str, Any]] = None
    timestamp: Optional[datetime] = None
