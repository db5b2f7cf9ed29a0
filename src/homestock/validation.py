"""Validation rules for item submissions."""

import math
from collections.abc import Mapping
from datetime import date
from typing import Any, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator
from pydantic_core import PydanticCustomError

from .catalog import OTHER_VALUE, get_by_value
from .config import settings
from .schemas import InventoryItemData, Number, RecurringCycle
from .utils import parse_date_input

NAME_REQUIRED = "Item name is required."
QUANTITY_INVALID = "Quantity must be a non-negative number."
THRESHOLD_INVALID = "Threshold must be a non-negative number."
EXPIRY_INVALID = "Expiry date must be a valid calendar date."
CUSTOM_NAME_REQUIRED = 'Custom item name is required when "Other" is selected.'
CYCLE_REQUIRED = "Recurring cycle is required for recurring items."
CYCLE_INVALID = "Recurring cycle must be one of: daily, weekly, monthly."


class ItemValidationError(Exception):
    """Raised when an item submission is invalid.

    Attributes:
        errors: Mapping of field name to the messages for that field
    """

    def __init__(self, errors: dict[str, list[str]]) -> None:
        self.errors = errors
        fields = ", ".join(sorted(errors))
        super().__init__(f"Invalid item submission ({fields})")


def _field_error(message: str) -> PydanticCustomError:
    return PydanticCustomError("item_field", message)


class ItemForm(BaseModel):
    """A submitted item, before the display name has been resolved."""

    name: str = Field(default="", validate_default=True)
    custom_name: Optional[str] = None
    quantity: Number = Field(default=None, validate_default=True)
    expiry_date: Optional[date] = None
    low_stock_threshold: Number = Field(default_factory=lambda: settings.default_low_stock_threshold)
    is_recurring: bool = False
    recurring_cycle: Optional[RecurringCycle] = None
    barcode: Optional[str] = None

    @field_validator("name", mode="before")
    @classmethod
    def _require_name(cls, value: Any) -> str:
        if value is None or not str(value).strip():
            raise _field_error(NAME_REQUIRED)
        return str(value)

    @field_validator("quantity", mode="before")
    @classmethod
    def _coerce_quantity(cls, value: Any) -> Number:
        return _coerce_non_negative(value, QUANTITY_INVALID)

    @field_validator("low_stock_threshold", mode="before")
    @classmethod
    def _coerce_threshold(cls, value: Any) -> Number:
        if value is None or (isinstance(value, str) and not value.strip()):
            return settings.default_low_stock_threshold
        return _coerce_non_negative(value, THRESHOLD_INVALID)

    @field_validator("expiry_date", mode="before")
    @classmethod
    def _parse_expiry(cls, value: Any) -> Optional[date]:
        try:
            return parse_date_input(value)
        except ValueError:
            raise _field_error(EXPIRY_INVALID)

    @field_validator("recurring_cycle", mode="before")
    @classmethod
    def _parse_cycle(cls, value: Any) -> Optional[RecurringCycle]:
        if value is None or value == "":
            return None
        try:
            return RecurringCycle(value)
        except ValueError:
            raise _field_error(CYCLE_INVALID)

    @field_validator("barcode", mode="before")
    @classmethod
    def _blank_barcode(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        value = str(value).strip()
        return value or None

    @model_validator(mode="after")
    def _check_dependent_fields(self) -> "ItemForm":
        errors: dict[str, list[str]] = {}
        if self.name == OTHER_VALUE and not (self.custom_name or "").strip():
            errors["custom_name"] = [CUSTOM_NAME_REQUIRED]
        if self.is_recurring and self.recurring_cycle is None:
            errors["recurring_cycle"] = [CYCLE_REQUIRED]
        if errors:
            raise ItemValidationError(errors)
        return self

    def resolved_name(self) -> str:
        """Resolve the display name from the catalog selection or custom name."""
        if self.name == OTHER_VALUE:
            return (self.custom_name or "").strip()
        entry = get_by_value(self.name)
        if entry is not None:
            return entry.label
        return self.name

    def to_item_data(self) -> InventoryItemData:
        """Build the record handed to the inventory adapter (custom name dropped)."""
        return InventoryItemData(
            name=self.resolved_name(),
            quantity=self.quantity,
            expiry_date=self.expiry_date,
            low_stock_threshold=self.low_stock_threshold,
            is_recurring=self.is_recurring,
            recurring_cycle=self.recurring_cycle,
            barcode=self.barcode,
        )


def _coerce_non_negative(value: Any, message: str) -> Number:
    if value is None or isinstance(value, bool):
        raise _field_error(message)
    if isinstance(value, str):
        value = value.strip()
        try:
            value = float(value) if any(c in value for c in ".eE") else int(value)
        except ValueError:
            raise _field_error(message)
    if not isinstance(value, (int, float)) or math.isnan(value) or math.isinf(value) or value < 0:
        raise _field_error(message)
    return value


def validate_item(data: Mapping[str, Any]) -> ItemForm:
    """Validate a candidate item submission.

    Field-level rules run first; the cross-field rules (custom name for
    "other", cycle for recurring items) run once the fields are well formed.

    Args:
        data: Raw submission, e.g. a decoded JSON body

    Returns:
        The normalized form

    Raises:
        ItemValidationError: With every field-scoped message found
    """
    try:
        return ItemForm.model_validate(dict(data))
    except ValidationError as e:
        errors: dict[str, list[str]] = {}
        for err in e.errors():
            field = str(err["loc"][0]) if err["loc"] else "__root__"
            errors.setdefault(field, []).append(err["msg"])
        raise ItemValidationError(errors) from e
