"""Inventory adapter: keeps a user's published item list in sync with the store.

Every add, edit and delete is written as one atomic batch holding the item
write and its history entry. The published list is only ever replaced by
store snapshots, never patched locally.
"""

import logging
from collections import OrderedDict
from collections.abc import Callable, Sequence
from typing import Any, Optional

from .alerts import InventoryAlerts, derive_alerts
from .config import settings
from .database.store import (
    BatchWrite,
    BatchWriteError,
    InventoryStore,
    WriteOp,
    items_path,
)
from .events import (
    InventoryEvent,
    ItemAdded,
    ItemDeleted,
    ItemUpdated,
    MutationDiagnostic,
    MutationFailed,
    MutationResult,
    MutationStatus,
    Operation,
)
from .schemas import (
    ITEM_FIELDS,
    ChangeType,
    InventoryItem,
    InventoryItemData,
    InventoryItemHistory,
    RecurringCycle,
)
from .utils import from_store_timestamp, to_json_value, to_store_timestamp

logger = logging.getLogger(__name__)

EventListener = Callable[[InventoryEvent], None]
DiagnosticListener = Callable[[MutationDiagnostic], None]

FAILURE_MESSAGES: dict[str, str] = {
    "create": "Could not add {name}. Please try again.",
    "update": "Could not update {name}. Please try again.",
    "delete": "Could not remove {name}. Please try again.",
}


def document_to_item(document: dict[str, Any]) -> InventoryItem:
    """Build a local item from a store document."""
    cycle = document.get("recurring_cycle")
    return InventoryItem(
        id=document["id"],
        name=document["name"],
        quantity=document["quantity"],
        expiry_date=from_store_timestamp(document.get("expiry_date")),
        low_stock_threshold=document["low_stock_threshold"],
        is_recurring=bool(document.get("is_recurring")),
        recurring_cycle=RecurringCycle(cycle) if cycle else None,
        barcode=document.get("barcode"),
    )


def item_to_document(item: InventoryItemData) -> dict[str, Any]:
    """Build the store document for an item.

    Absent expiry dates and recurring cycles are written as explicit None.
    """
    return {
        "name": item.name,
        "quantity": item.quantity,
        "expiry_date": to_store_timestamp(item.expiry_date),
        "low_stock_threshold": item.low_stock_threshold,
        "is_recurring": item.is_recurring,
        "recurring_cycle": item.recurring_cycle.value if item.recurring_cycle else None,
        "barcode": item.barcode,
    }


def item_snapshot(item: InventoryItemData, fields: Sequence[str] = ITEM_FIELDS) -> dict[str, Any]:
    """JSON-safe snapshot of the given fields, for history entries."""
    return {name: to_json_value(getattr(item, name)) for name in fields}


def diff_items(before: InventoryItemData, after: InventoryItemData) -> list[str]:
    """Names of the fields that differ between two records, in document order."""
    changed: list[str] = []
    if before.name != after.name:
        changed.append("name")
    if before.quantity != after.quantity:
        changed.append("quantity")
    if before.expiry_date != after.expiry_date:
        changed.append("expiry_date")
    if before.low_stock_threshold != after.low_stock_threshold:
        changed.append("low_stock_threshold")
    if before.is_recurring != after.is_recurring:
        changed.append("is_recurring")
    if before.recurring_cycle != after.recurring_cycle:
        changed.append("recurring_cycle")
    if before.barcode != after.barcode:
        changed.append("barcode")
    return changed


def sort_items(items: list[InventoryItem]) -> list[InventoryItem]:
    return sorted(items, key=lambda item: item.name)


class InventoryAdapter:
    """Bridge between one user's item collection and its readers.

    The adapter is inert until it has a user id and :meth:`start` has
    established a subscription. Mutations return a :class:`MutationResult`
    once the batch has settled, and also notify registered listeners.
    """

    def __init__(self, store: InventoryStore, user_id: Optional[str] = None) -> None:
        self._store = store
        self.user_id = user_id
        self._items: list[InventoryItem] = []
        self._is_loaded = False
        self._handle: Optional[int] = None
        self._listeners: list[EventListener] = []
        self._diagnostic_listeners: list[DiagnosticListener] = []

    @property
    def items(self) -> list[InventoryItem]:
        """Current items, sorted by name."""
        return list(self._items)

    @property
    def is_loaded(self) -> bool:
        return self._is_loaded

    @property
    def is_subscribed(self) -> bool:
        return self._handle is not None

    @property
    def alerts(self) -> InventoryAlerts:
        return derive_alerts(self._items, self._is_loaded)

    def get_item(self, item_id: str) -> Optional[InventoryItem]:
        for item in self._items:
            if item.id == item_id:
                return item
        return None

    def add_listener(self, listener: EventListener) -> None:
        self._listeners.append(listener)

    def add_diagnostic_listener(self, listener: DiagnosticListener) -> None:
        self._diagnostic_listeners.append(listener)

    # ===== Subscription =====

    async def start(self) -> None:
        """Subscribe to the user's collection. Does nothing without a user id."""
        if self.user_id is None:
            logger.debug("Inventory adapter has no user yet; not subscribing")
            return
        if self._handle is not None:
            return
        self._handle = await self._store.subscribe(self.user_id, self._on_snapshot, self._on_error)
        logger.info(f"Subscribed to {items_path(self.user_id)}")

    def stop(self) -> None:
        """Unsubscribe and return to the loading state."""
        if self._handle is not None:
            self._store.unsubscribe(self._handle)
            self._handle = None
        self._items = []
        self._is_loaded = False

    async def refresh(self) -> None:
        """Re-read the collection to pick up writes made outside this store."""
        if self._handle is not None:
            await self._store.resync(self._handle)

    async def set_user(self, user_id: Optional[str]) -> None:
        """Switch to another user's collection (or none)."""
        if user_id == self.user_id and self.is_subscribed:
            return
        self.stop()
        self.user_id = user_id
        await self.start()

    def _on_snapshot(self, documents: list[dict[str, Any]]) -> None:
        self._items = sort_items([document_to_item(doc) for doc in documents])
        self._is_loaded = True
        logger.debug(f"Published {len(self._items)} item(s) for user {self.user_id}")

    def _on_error(self, error: Exception) -> None:
        path = items_path(self.user_id) if self.user_id else "users"
        logger.error(f"Subscription to {path} failed: {error}")
        self._emit_diagnostic(MutationDiagnostic(path=path, operation="listen", error=str(error)))

    # ===== Mutations =====

    async def add_item(self, item: InventoryItemData) -> MutationResult:
        """Create a new item and its "created" history entry.

        Args:
            item: Validated record; any id it carries is ignored

        Returns:
            Result of the batch; skipped when there is no subscription
        """
        if self.user_id is None or not self.is_subscribed:
            return self._skipped("create", None, "No active inventory subscription")

        item_id = self._store.new_document_id()
        data = item.normalized()
        writes = [
            BatchWrite(WriteOp.SET, self.user_id, item_id, item_to_document(data)),
            self._history_write(
                item_id,
                ChangeType.CREATED,
                changed_fields=list(ITEM_FIELDS),
                new_data=item_snapshot(data),
            ),
        ]
        return await self._commit("create", item_id, data.name, writes, ItemAdded(item_id=item_id, name=data.name))

    async def edit_item(self, item: InventoryItem) -> MutationResult:
        """Overwrite an existing item, recording the changed fields.

        When nothing differs from the published record the document is still
        written, but no history entry is created.
        """
        if self.user_id is None or not self.is_subscribed:
            return self._skipped("update", item.id, "No active inventory subscription")
        baseline = self.get_item(item.id)
        if baseline is None:
            return self._skipped("update", item.id, "Item not found")

        data = item.normalized()
        changed = diff_items(baseline, data)
        writes = [BatchWrite(WriteOp.UPDATE, self.user_id, item.id, item_to_document(data))]
        if changed:
            writes.append(
                self._history_write(
                    item.id,
                    ChangeType.UPDATED,
                    changed_fields=changed,
                    old_data=item_snapshot(baseline, changed),
                    new_data=item_snapshot(data, changed),
                )
            )
        event = ItemUpdated(item_id=item.id, name=data.name, changed_fields=changed)
        return await self._commit("update", item.id, data.name, writes, event)

    async def delete_item(self, item_id: str) -> MutationResult:
        """Delete an item, keeping a "deleted" history entry with its last state (id included)."""
        if self.user_id is None or not self.is_subscribed:
            return self._skipped("delete", item_id, "No active inventory subscription")
        baseline = self.get_item(item_id)
        if baseline is None:
            return self._skipped("delete", item_id, "Item not found")

        writes = [
            BatchWrite(WriteOp.DELETE, self.user_id, item_id),
            self._history_write(item_id, ChangeType.DELETED, old_data=item_snapshot(baseline, ("id",) + ITEM_FIELDS)),
        ]
        return await self._commit("delete", item_id, baseline.name, writes, ItemDeleted(item_id=item_id, name=baseline.name))

    async def item_history(self, item_id: str) -> list[InventoryItemHistory]:
        """History of an item, oldest first. Available after deletion too."""
        if self.user_id is None:
            return []
        entries = await self._store.item_history(self.user_id, item_id)
        return [InventoryItemHistory.model_validate(entry) for entry in entries]

    # ===== Internals =====

    def _history_write(
        self,
        item_id: str,
        change_type: ChangeType,
        changed_fields: Optional[list[str]] = None,
        old_data: Optional[dict[str, Any]] = None,
        new_data: Optional[dict[str, Any]] = None,
    ) -> BatchWrite:
        assert self.user_id is not None
        payload = {
            "change_type": change_type.value,
            "changed_fields": changed_fields,
            "old_data": old_data,
            "new_data": new_data,
        }
        return BatchWrite(WriteOp.SET, self.user_id, item_id, payload, history=True)

    async def _commit(
        self,
        operation: Operation,
        item_id: str,
        name: str,
        writes: list[BatchWrite],
        success_event: InventoryEvent,
    ) -> MutationResult:
        try:
            await self._store.commit_batch(writes)
        except BatchWriteError as e:
            reason = FAILURE_MESSAGES[operation].format(name=name)
            diagnostic = MutationDiagnostic(
                path=e.path,
                operation=operation,
                payload=_jsonable(e.payload),
                error=str(e.cause),
            )
            logger.error(f"Inventory {operation} rejected: {diagnostic.model_dump_json()}")
            self._emit(MutationFailed(operation=operation, item_id=item_id, reason=reason))
            self._emit_diagnostic(diagnostic)
            return MutationResult(
                status=MutationStatus.FAILED, operation=operation, item_id=item_id, reason=reason, message=reason
            )

        self._emit(success_event)
        return MutationResult(
            status=MutationStatus.SUCCEEDED, operation=operation, item_id=item_id, message=success_event.message
        )

    def _skipped(self, operation: Operation, item_id: Optional[str], reason: str) -> MutationResult:
        logger.debug(f"Inventory {operation} skipped for item {item_id}: {reason}")
        return MutationResult(status=MutationStatus.SKIPPED, operation=operation, item_id=item_id, reason=reason)

    def _emit(self, event: InventoryEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:  # Intentionally broad: listeners must not undo a settled batch
                logger.exception(f"Inventory event listener failed for {type(event).__name__}")

    def _emit_diagnostic(self, diagnostic: MutationDiagnostic) -> None:
        for listener in list(self._diagnostic_listeners):
            try:
                listener(diagnostic)
            except Exception:  # Intentionally broad: listeners must not undo a settled batch
                logger.exception("Inventory diagnostic listener failed")


def _jsonable(payload: Optional[dict[str, Any]]) -> Optional[dict[str, Any]]:
    if payload is None:
        return None
    return {key: to_json_value(value) for key, value in payload.items()}


class AdapterRegistry:
    """Started adapters for the most recently active users, sharing a single store.

    Listeners passed here are attached to every adapter the registry creates.
    Once more than ``max_adapters`` users are live, the least recently used
    adapter is stopped and dropped; its user gets a fresh one on the next call.
    """

    def __init__(
        self,
        store: InventoryStore,
        listeners: Sequence[EventListener] = (),
        diagnostic_listeners: Sequence[DiagnosticListener] = (),
        max_adapters: Optional[int] = None,
    ) -> None:
        self.store = store
        self._listeners = list(listeners)
        self._diagnostic_listeners = list(diagnostic_listeners)
        self._max_adapters = max_adapters or settings.max_live_adapters
        # Least recently used first
        self._adapters: OrderedDict[str, InventoryAdapter] = OrderedDict()

    def __len__(self) -> int:
        return len(self._adapters)

    def __contains__(self, user_id: object) -> bool:
        return user_id in self._adapters

    async def get(self, user_id: str) -> InventoryAdapter:
        """Return the started adapter for a user.

        A cached adapter re-reads its collection first, so writes committed
        by another process or store instance are visible.
        """
        adapter = self._adapters.get(user_id)
        if adapter is None:
            adapter = InventoryAdapter(self.store, user_id)
            for listener in self._listeners:
                adapter.add_listener(listener)
            for diagnostic_listener in self._diagnostic_listeners:
                adapter.add_diagnostic_listener(diagnostic_listener)
            self._adapters[user_id] = adapter
            self._evict()
            await adapter.start()
            return adapter

        self._adapters.move_to_end(user_id)
        if adapter.is_subscribed:
            await adapter.refresh()
        else:
            await adapter.start()
        return adapter

    def _evict(self) -> None:
        while len(self._adapters) > self._max_adapters:
            user_id, adapter = self._adapters.popitem(last=False)
            adapter.stop()
            logger.debug(f"Evicted inventory adapter for user {user_id}")

    def close_all(self) -> None:
        for adapter in self._adapters.values():
            adapter.stop()
        self._adapters.clear()
