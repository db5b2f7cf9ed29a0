"""Database package initialization."""

from .crud import (
    DocumentNotFoundError,
    add_history,
    create_user,
    delete_item,
    get_item,
    get_user,
    get_user_by_email,
    list_item_history,
    list_items,
    set_item,
    update_item,
)
from .engine import AsyncSessionLocal, close_db, get_session, init_db
from .models import Base, InventoryItem, InventoryItemHistory, User
from .store import BatchWrite, BatchWriteError, InventoryStore, WriteOp

__all__ = [
    # Models
    "Base",
    "InventoryItem",
    "InventoryItemHistory",
    "User",
    # Engine
    "AsyncSessionLocal",
    "init_db",
    "close_db",
    "get_session",
    # CRUD - Users
    "create_user",
    "get_user",
    "get_user_by_email",
    # CRUD - Items
    "get_item",
    "list_items",
    "set_item",
    "update_item",
    "delete_item",
    "DocumentNotFoundError",
    # CRUD - History
    "add_history",
    "list_item_history",
    # Store
    "BatchWrite",
    "BatchWriteError",
    "InventoryStore",
    "WriteOp",
]
