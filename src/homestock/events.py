"""Events and results emitted by the inventory adapter."""

from enum import Enum
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel

Operation = Literal["create", "update", "delete", "listen"]


class MutationStatus(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


class MutationResult(BaseModel):
    """Outcome of an add, edit or delete call.

    ``skipped`` means a precondition was not met (no active subscription or
    unknown item) and nothing was sent to the store.
    """

    status: MutationStatus
    operation: Operation
    item_id: Optional[str] = None
    reason: Optional[str] = None
    message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status is MutationStatus.SUCCEEDED


class ItemAdded(BaseModel):
    item_id: str
    name: str

    @property
    def message(self) -> str:
        return f"{self.name} added to inventory."


class ItemUpdated(BaseModel):
    item_id: str
    name: str
    changed_fields: list[str]

    @property
    def message(self) -> str:
        return f"{self.name} has been updated."


class ItemDeleted(BaseModel):
    item_id: str
    name: str

    @property
    def message(self) -> str:
        return f"{self.name} removed from inventory."


class MutationFailed(BaseModel):
    """User-facing failure notice. Carries no store internals."""

    operation: Operation
    item_id: Optional[str] = None
    reason: str

    @property
    def message(self) -> str:
        return self.reason


class MutationDiagnostic(BaseModel):
    """Structured failure detail for logs and debugging."""

    path: str
    operation: str
    payload: Optional[dict[str, Any]] = None
    error: str


InventoryEvent = Union[ItemAdded, ItemUpdated, ItemDeleted, MutationFailed]
