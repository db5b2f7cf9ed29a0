"""SQLAlchemy database models."""

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import JSON, Boolean, DateTime, Float, ForeignKey, Integer, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# uuid4 hex
ID_LENGTH = 32


class Base(DeclarativeBase):
    """Base class for all database models."""

    pass


class User(Base):
    """Model for user accounts (anonymous or email/password)."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(ID_LENGTH), primary_key=True)
    email: Mapped[Optional[str]] = mapped_column(String, unique=True, nullable=True, index=True)
    hashed_password: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    is_anonymous: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    def __repr__(self) -> str:
        return f"<User(id='{self.id}', email='{self.email}', anonymous={self.is_anonymous})>"


class InventoryItem(Base):
    """Item document stored at users/{user_id}/inventory_items/{id}."""

    __tablename__ = "inventory_items"

    id: Mapped[str] = mapped_column(String(ID_LENGTH), primary_key=True)
    user_id: Mapped[str] = mapped_column(
        String(ID_LENGTH), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String, nullable=False, index=True)
    quantity: Mapped[float] = mapped_column(Float, nullable=False)
    expiry_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    low_stock_threshold: Mapped[float] = mapped_column(Float, nullable=False, default=5)
    is_recurring: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    recurring_cycle: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    barcode: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), onupdate=func.now(), nullable=True
    )

    def __repr__(self) -> str:
        return f"<InventoryItem(id='{self.id}', name='{self.name}', quantity={self.quantity})>"


class InventoryItemHistory(Base):
    """History document stored at users/{user_id}/inventory_items/{item_id}/history/{id}.

    item_id carries no foreign key: history outlives the item it describes.
    """

    __tablename__ = "inventory_item_history"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(
        String(ID_LENGTH), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    item_id: Mapped[str] = mapped_column(String(ID_LENGTH), nullable=False, index=True)
    change_type: Mapped[str] = mapped_column(String(16), nullable=False)
    changed_fields: Mapped[Optional[list[str]]] = mapped_column(JSON, nullable=True)
    old_data: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)
    new_data: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), index=True
    )

    def __repr__(self) -> str:
        return f"<InventoryItemHistory(id={self.id}, item_id='{self.item_id}', change_type='{self.change_type}')>"
