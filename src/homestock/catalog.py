"""Predefined catalog of common household items."""

from datetime import date, timedelta
from typing import Optional

from pydantic import BaseModel

from .config import settings
from .schemas import InventoryItemData, RecurringCycle

OTHER_VALUE = "other"


class PredefinedItem(BaseModel):
    """A known item category with its barcode and default threshold."""

    value: str
    label: str
    barcode: Optional[str] = None
    low_stock_threshold: Optional[float] = None


PREDEFINED_ITEMS: tuple[PredefinedItem, ...] = (
    PredefinedItem(value="milk", label="Milk", barcode="101", low_stock_threshold=2),
    PredefinedItem(value="eggs", label="Eggs", barcode="102", low_stock_threshold=6),
    PredefinedItem(value="bread", label="Bread", barcode="103", low_stock_threshold=1),
    PredefinedItem(value="butter", label="Butter", barcode="104", low_stock_threshold=1),
    PredefinedItem(value="cheese", label="Cheese", barcode="105"),
    PredefinedItem(value="sugar", label="Sugar", barcode="201"),
    PredefinedItem(value="flour", label="Flour", barcode="202"),
    PredefinedItem(value="coffee", label="Coffee", barcode="203"),
    PredefinedItem(value="tea", label="Tea", barcode="204"),
    PredefinedItem(value="toothpaste", label="Toothpaste", barcode="301", low_stock_threshold=1),
    PredefinedItem(value="soap", label="Soap", barcode="302", low_stock_threshold=1),
    PredefinedItem(value="shampoo", label="Shampoo", barcode="303", low_stock_threshold=1),
    PredefinedItem(value=OTHER_VALUE, label="Other..."),
)

_BY_VALUE = {item.value: item for item in PREDEFINED_ITEMS}
_BY_BARCODE = {item.barcode: item for item in PREDEFINED_ITEMS if item.barcode}
_BY_LABEL = {item.label: item for item in PREDEFINED_ITEMS if item.value != OTHER_VALUE}


def get_by_value(value: str) -> Optional[PredefinedItem]:
    """Look up a catalog entry by its id."""
    return _BY_VALUE.get(value)


def get_by_barcode(barcode: str) -> Optional[PredefinedItem]:
    """Look up a catalog entry by barcode.

    Args:
        barcode: Scanned or typed barcode; surrounding whitespace is ignored

    Returns:
        The matching entry, or None if the barcode is unknown
    """
    if not barcode:
        return None
    return _BY_BARCODE.get(barcode.strip())


def get_by_label(label: str) -> Optional[PredefinedItem]:
    """Look up a catalog entry by display label (used when re-editing a saved item)."""
    return _BY_LABEL.get(label)


def catalog_defaults(value: Optional[str] = None, barcode: Optional[str] = None) -> dict[str, object]:
    """Compute the form auto-fill for a catalog selection or a barcode entry.

    A barcode takes precedence over a value. Selecting "other" or an unknown
    barcode fills nothing.

    Returns:
        Dict with ``name``, ``barcode`` and ``low_stock_threshold`` keys, or an
        empty dict when there is nothing to fill
    """
    entry = get_by_barcode(barcode) if barcode else None
    if entry is None and value and value != OTHER_VALUE:
        entry = get_by_value(value)
    if entry is None:
        return {}
    return {
        "name": entry.value,
        "barcode": entry.barcode or "",
        "low_stock_threshold": entry.low_stock_threshold or settings.default_low_stock_threshold,
    }


def demo_inventory(today: Optional[date] = None) -> list[InventoryItemData]:
    """Sample items for a fresh account: one low and nearly expired, one fine, one expired."""
    today = today or date.today()
    return [
        InventoryItemData(
            name="Milk",
            quantity=1,
            expiry_date=today + timedelta(days=2),
            low_stock_threshold=2,
            is_recurring=True,
            recurring_cycle=RecurringCycle.WEEKLY,
            barcode="101",
        ),
        InventoryItemData(
            name="Eggs",
            quantity=12,
            expiry_date=today + timedelta(days=14),
            low_stock_threshold=6,
            barcode="102",
        ),
        InventoryItemData(
            name="Bread",
            quantity=1,
            expiry_date=today - timedelta(days=1),
            low_stock_threshold=1,
            is_recurring=True,
            recurring_cycle=RecurringCycle.WEEKLY,
            barcode="103",
        ),
    ]
