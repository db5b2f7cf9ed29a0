"""CRUD operations for users, item documents and item history.

Item and history helpers only stage changes on the session; the caller owns
the transaction so that an item write and its history entry commit together.
"""

import logging
import uuid
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import InventoryItem, InventoryItemHistory, User

logger = logging.getLogger(__name__)

# Document columns of an item, excluding id and bookkeeping timestamps
ITEM_COLUMNS: tuple[str, ...] = (
    "name",
    "quantity",
    "expiry_date",
    "low_stock_threshold",
    "is_recurring",
    "recurring_cycle",
    "barcode",
)


class DocumentNotFoundError(LookupError):
    """Raised when an update or delete targets a document that does not exist."""

    pass


def new_id() -> str:
    """Generate a document identifier."""
    return uuid.uuid4().hex


def _as_number(value: Any) -> Any:
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def item_to_document(item: InventoryItem) -> dict[str, Any]:
    """Build the document view of an item row (id plus document fields)."""
    return {
        "id": item.id,
        "name": item.name,
        "quantity": _as_number(item.quantity),
        "expiry_date": item.expiry_date,
        "low_stock_threshold": _as_number(item.low_stock_threshold),
        "is_recurring": item.is_recurring,
        "recurring_cycle": item.recurring_cycle,
        "barcode": item.barcode,
    }


# ===== User Operations =====


async def create_user(
    session: AsyncSession,
    email: Optional[str] = None,
    hashed_password: Optional[str] = None,
    is_anonymous: bool = False,
) -> User:
    """Create a new user account.

    Args:
        session: Database session
        email: User's email address (None for anonymous users)
        hashed_password: Hashed password (None for anonymous users)
        is_anonymous: Whether this is an anonymous session user

    Returns:
        The created user
    """
    user = User(id=new_id(), email=email, hashed_password=hashed_password, is_anonymous=is_anonymous)
    session.add(user)
    await session.commit()
    await session.refresh(user)
    logger.info(f"Created user: id={user.id} anonymous={user.is_anonymous}")
    return user


async def get_user(session: AsyncSession, user_id: str) -> Optional[User]:
    """Get a user by ID."""
    result = await session.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_user_by_email(session: AsyncSession, email: str) -> Optional[User]:
    """Get a user by email address.

    Args:
        session: Database session
        email: User's email address

    Returns:
        The user if found, None otherwise
    """
    result = await session.execute(select(User).where(User.email == email))
    return result.scalar_one_or_none()


# ===== Item Document Operations =====


async def get_item(session: AsyncSession, user_id: str, item_id: str) -> Optional[InventoryItem]:
    """Get an item document, scoped to its owner.

    Args:
        session: Database session
        user_id: ID of the owning user
        item_id: ID of the item

    Returns:
        The item if found and owned by the user, None otherwise
    """
    result = await session.execute(
        select(InventoryItem).where(
            InventoryItem.id == item_id,
            InventoryItem.user_id == user_id,
        )
    )
    return result.scalar_one_or_none()


async def list_items(session: AsyncSession, user_id: str) -> list[InventoryItem]:
    """List every item document in a user's collection."""
    result = await session.execute(
        select(InventoryItem).where(InventoryItem.user_id == user_id)
    )
    return list(result.scalars().all())


async def set_item(session: AsyncSession, user_id: str, item_id: str, data: dict[str, Any]) -> InventoryItem:
    """Create or overwrite an item document. Does not commit.

    Args:
        session: Database session
        user_id: ID of the owning user
        item_id: Pre-generated document ID
        data: Full document; every column is written, missing keys become NULL

    Returns:
        The staged item row
    """
    item = await get_item(session, user_id, item_id)
    if item is None:
        item = InventoryItem(id=item_id, user_id=user_id)
        session.add(item)
    for column in ITEM_COLUMNS:
        setattr(item, column, data.get(column))
    await session.flush()
    return item


async def update_item(session: AsyncSession, user_id: str, item_id: str, data: dict[str, Any]) -> InventoryItem:
    """Apply a partial update to an existing item document. Does not commit.

    Raises:
        DocumentNotFoundError: If the document does not exist
    """
    item = await get_item(session, user_id, item_id)
    if item is None:
        raise DocumentNotFoundError(f"users/{user_id}/inventory_items/{item_id}")
    for column, value in data.items():
        if column not in ITEM_COLUMNS:
            raise ValueError(f"Unknown item field: {column}")
        setattr(item, column, value)
    await session.flush()
    return item


async def delete_item(session: AsyncSession, user_id: str, item_id: str) -> None:
    """Delete an item document. History entries are left in place. Does not commit.

    Raises:
        DocumentNotFoundError: If the document does not exist
    """
    item = await get_item(session, user_id, item_id)
    if item is None:
        raise DocumentNotFoundError(f"users/{user_id}/inventory_items/{item_id}")
    await session.delete(item)
    await session.flush()


# ===== History Operations =====


async def add_history(
    session: AsyncSession,
    user_id: str,
    item_id: str,
    change_type: str,
    changed_fields: Optional[list[str]] = None,
    old_data: Optional[dict[str, Any]] = None,
    new_data: Optional[dict[str, Any]] = None,
) -> InventoryItemHistory:
    """Stage a history entry for an item. Does not commit.

    Args:
        session: Database session
        user_id: ID of the owning user
        item_id: ID of the item the change applies to
        change_type: created, updated or deleted
        changed_fields: Ordered names of the fields that changed
        old_data: JSON snapshot before the change
        new_data: JSON snapshot after the change

    Returns:
        The staged history row
    """
    entry = InventoryItemHistory(
        user_id=user_id,
        item_id=item_id,
        change_type=change_type,
        changed_fields=changed_fields,
        old_data=old_data,
        new_data=new_data,
    )
    session.add(entry)
    await session.flush()
    return entry


async def list_item_history(
    session: AsyncSession, user_id: str, item_id: str
) -> list[InventoryItemHistory]:
    """List an item's history entries, oldest first.

    Works for deleted items as well.

    Args:
        session: Database session
        user_id: ID of the owning user
        item_id: ID of the item

    Returns:
        History entries ordered by timestamp
    """
    result = await session.execute(
        select(InventoryItemHistory)
        .where(
            InventoryItemHistory.user_id == user_id,
            InventoryItemHistory.item_id == item_id,
        )
        .order_by(InventoryItemHistory.timestamp.asc(), InventoryItemHistory.id.asc())
    )
    return list(result.scalars().all())
