"""Document-store facade over the database: atomic batches and live subscriptions."""

import asyncio
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from . import crud
from .engine import AsyncSessionLocal
from .models import InventoryItemHistory

logger = logging.getLogger(__name__)

SnapshotCallback = Callable[[list[dict[str, Any]]], None]
ErrorCallback = Callable[[Exception], None]


def items_path(user_id: str) -> str:
    return f"users/{user_id}/inventory_items"


def item_path(user_id: str, item_id: str) -> str:
    return f"{items_path(user_id)}/{item_id}"


def history_path(user_id: str, item_id: str) -> str:
    return f"{item_path(user_id, item_id)}/history"


class WriteOp(str, Enum):
    SET = "set"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(frozen=True)
class BatchWrite:
    """One write inside an atomic batch.

    ``history`` writes always append a new entry under the item's history
    collection; item writes target the item document itself.
    """

    op: WriteOp
    user_id: str
    item_id: str
    data: Optional[dict[str, Any]] = None
    history: bool = False

    @property
    def path(self) -> str:
        if self.history:
            return history_path(self.user_id, self.item_id)
        return item_path(self.user_id, self.item_id)


class BatchWriteError(Exception):
    """Raised when a batch is rejected; nothing from the batch was committed.

    Attributes:
        path: Document path of the write that failed
        operation: Write operation that failed (set, update, delete)
        payload: Data the failing write attempted to store
    """

    def __init__(self, path: str, operation: str, payload: Optional[dict[str, Any]], cause: Exception) -> None:
        self.path = path
        self.operation = operation
        self.payload = payload
        self.cause = cause
        super().__init__(f"Batch write failed at {path} ({operation}): {cause}")


@dataclass
class Subscription:
    handle: int
    user_id: str
    on_snapshot: SnapshotCallback
    on_error: Optional[ErrorCallback] = None
    active: bool = field(default=True)


class InventoryStore:
    """Per-user item collections with atomic batches and snapshot listeners.

    Listeners registered with :meth:`subscribe` receive the full collection of
    the user's item documents once on subscription and again after every
    committed batch touching that user. Snapshot reads and deliveries for one
    user are serialized, so a listener never receives an older snapshot after
    a newer one.
    """

    def __init__(self, session_factory: Optional[async_sessionmaker[AsyncSession]] = None) -> None:
        self._session_factory = session_factory or AsyncSessionLocal
        self._subscriptions: dict[int, Subscription] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._next_handle = 1

    def new_document_id(self) -> str:
        """Generate an identifier for a document before it is written."""
        return crud.new_id()

    async def subscribe(
        self,
        user_id: str,
        on_snapshot: SnapshotCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> int:
        """Start listening to a user's item collection.

        Args:
            user_id: Owner of the collection
            on_snapshot: Called with the list of item documents
            on_error: Called when a snapshot cannot be produced

        Returns:
            Handle to pass to :meth:`unsubscribe`
        """
        subscription = Subscription(self._next_handle, user_id, on_snapshot, on_error)
        self._next_handle += 1
        self._subscriptions[subscription.handle] = subscription
        logger.debug(f"Subscribed handle={subscription.handle} to {items_path(user_id)}")
        await self._deliver(user_id, [subscription])
        return subscription.handle

    def unsubscribe(self, handle: int) -> bool:
        """Stop a subscription. Returns False if the handle is unknown."""
        subscription = self._subscriptions.pop(handle, None)
        if subscription is None:
            return False
        subscription.active = False
        if not any(s.user_id == subscription.user_id for s in self._subscriptions.values()):
            lock = self._locks.get(subscription.user_id)
            if lock is not None and not lock.locked():
                del self._locks[subscription.user_id]
        logger.debug(f"Unsubscribed handle={handle}")
        return True

    async def resync(self, handle: int) -> bool:
        """Re-read the collection and deliver it to one subscription.

        Picks up writes committed by other store instances or processes.
        Returns False if the handle is unknown.
        """
        subscription = self._subscriptions.get(handle)
        if subscription is None:
            return False
        await self._deliver(subscription.user_id, [subscription])
        return True

    async def commit_batch(self, writes: Sequence[BatchWrite]) -> None:
        """Apply every write in one transaction, then notify subscribers.

        Raises:
            BatchWriteError: If any write fails; the whole batch is rolled back
        """
        if not writes:
            return
        current = writes[0]
        async with self._session_factory() as session:
            try:
                for current in writes:
                    await self._apply(session, current)
                await session.commit()
            except (SQLAlchemyError, crud.DocumentNotFoundError, ValueError) as e:
                await session.rollback()
                raise BatchWriteError(current.path, current.op.value, current.data, e) from e
        first = writes[0]
        logger.info(f"Committed batch of {len(writes)} write(s) to {item_path(first.user_id, first.item_id)}")

        for user_id in dict.fromkeys(w.user_id for w in writes):
            subscribers = [s for s in self._subscriptions.values() if s.user_id == user_id]
            if subscribers:
                await self._deliver(user_id, subscribers)

    async def item_history(self, user_id: str, item_id: str) -> list[InventoryItemHistory]:
        """Read an item's history collection, oldest first."""
        async with self._session_factory() as session:
            return await crud.list_item_history(session, user_id, item_id)

    async def snapshot(self, user_id: str) -> list[dict[str, Any]]:
        """Read the current item documents of a user's collection."""
        async with self._session_factory() as session:
            items = await crud.list_items(session, user_id)
            return [crud.item_to_document(item) for item in items]

    async def _apply(self, session: AsyncSession, write: BatchWrite) -> None:
        if write.history:
            if write.op is not WriteOp.SET:
                raise ValueError("History entries are append-only")
            data = write.data or {}
            await crud.add_history(
                session,
                write.user_id,
                write.item_id,
                change_type=data["change_type"],
                changed_fields=data.get("changed_fields"),
                old_data=data.get("old_data"),
                new_data=data.get("new_data"),
            )
        elif write.op is WriteOp.SET:
            await crud.set_item(session, write.user_id, write.item_id, write.data or {})
        elif write.op is WriteOp.UPDATE:
            await crud.update_item(session, write.user_id, write.item_id, write.data or {})
        else:
            await crud.delete_item(session, write.user_id, write.item_id)

    def _lock(self, user_id: str) -> asyncio.Lock:
        lock = self._locks.get(user_id)
        if lock is None:
            lock = self._locks[user_id] = asyncio.Lock()
        return lock

    async def _deliver(self, user_id: str, subscribers: Sequence[Subscription]) -> None:
        # Read and hand over under the user's lock: a snapshot read later is
        # always delivered later
        async with self._lock(user_id):
            try:
                documents = await self.snapshot(user_id)
            except SQLAlchemyError as e:
                logger.error(f"Snapshot of {items_path(user_id)} failed: {e}")
                for subscription in subscribers:
                    if subscription.active and subscription.on_error is not None:
                        subscription.on_error(e)
                return

            for subscription in subscribers:
                if not subscription.active:
                    continue
                try:
                    subscription.on_snapshot(list(documents))
                except Exception as e:  # Intentionally broad: one bad listener must not break the others
                    logger.exception(f"Snapshot listener handle={subscription.handle} failed")
                    if subscription.on_error is not None:
                        subscription.on_error(e)
