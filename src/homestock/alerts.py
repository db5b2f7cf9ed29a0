"""Low-stock and expiring-soon alerts derived from the published item list."""

from collections.abc import Sequence
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel

from .config import settings
from .schemas import InventoryItem
from .utils import to_store_timestamp


class ItemStatus(str, Enum):
    EXPIRED = "expired"
    ATTENTION = "attention"
    OK = "ok"


class InventoryAlerts(BaseModel):
    low_stock: list[InventoryItem] = []
    expiring_soon: list[InventoryItem] = []

    @property
    def total(self) -> int:
        return len(self.low_stock) + len(self.expiring_soon)


def is_low_stock(item: InventoryItem) -> bool:
    return item.quantity <= item.low_stock_threshold


def expires_before(item: InventoryItem, cutoff: datetime) -> bool:
    """True if the item has an expiry date strictly before ``cutoff``."""
    expires_at = to_store_timestamp(item.expiry_date)
    return expires_at is not None and expires_at < cutoff


def _now(now: Optional[datetime]) -> datetime:
    if now is None:
        return datetime.now(timezone.utc)
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now


def derive_alerts(
    items: Sequence[InventoryItem],
    is_loaded: bool,
    now: Optional[datetime] = None,
) -> InventoryAlerts:
    """Compute the low-stock and expiring-soon subsets of an item list.

    Args:
        items: Published item list, already sorted by name
        is_loaded: Whether the first snapshot has arrived
        now: Reference time (defaults to the current UTC time)

    Returns:
        Both subsets in input order; empty while the list is still loading
    """
    if not is_loaded:
        return InventoryAlerts()
    cutoff = _now(now) + timedelta(days=settings.expiring_soon_days)
    return InventoryAlerts(
        low_stock=[item for item in items if is_low_stock(item)],
        expiring_soon=[item for item in items if expires_before(item, cutoff)],
    )


def item_status(item: InventoryItem, now: Optional[datetime] = None) -> ItemStatus:
    """Classify an item for listings: expired, needing attention, or fine."""
    current = _now(now)
    if expires_before(item, current):
        return ItemStatus.EXPIRED
    if is_low_stock(item) or expires_before(item, current + timedelta(days=settings.attention_days)):
        return ItemStatus.ATTENTION
    return ItemStatus.OK
