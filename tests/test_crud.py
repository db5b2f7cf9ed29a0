"""Tests for CRUD operations."""

from typing import Any

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from homestock.database.crud import (
    DocumentNotFoundError,
    add_history,
    create_user,
    delete_item,
    get_item,
    get_user,
    get_user_by_email,
    item_to_document,
    list_item_history,
    list_items,
    new_id,
    set_item,
    update_item,
)
from homestock.database.models import User


def document(**kwargs: Any) -> dict[str, Any]:
    data: dict[str, Any] = {"name": "Milk", "quantity": 1.0, "low_stock_threshold": 2.0, "is_recurring": False}
    data.update(kwargs)
    return data


class TestUsers:
    """Tests for user operations."""

    @pytest.mark.asyncio
    async def test_create_anonymous_user(self, db_session: AsyncSession) -> None:
        user = await create_user(db_session, is_anonymous=True)

        assert len(user.id) == 32
        assert user.email is None
        assert user.is_anonymous is True
        assert (await get_user(db_session, user.id)).id == user.id

    @pytest.mark.asyncio
    async def test_get_user_by_email(self, db_session: AsyncSession) -> None:
        user = await create_user(db_session, "pantry@example.com", "hashed")

        found = await get_user_by_email(db_session, "pantry@example.com")
        assert found is not None
        assert found.id == user.id
        assert await get_user_by_email(db_session, "nobody@example.com") is None


class TestItemDocuments:
    """Tests for item document operations."""

    def test_new_id_unique(self) -> None:
        assert new_id() != new_id()

    @pytest.mark.asyncio
    async def test_set_item_creates_and_overwrites(self, db_session: AsyncSession, test_user: User) -> None:
        item_id = new_id()
        await set_item(db_session, test_user.id, item_id, document(barcode="101"))
        await set_item(db_session, test_user.id, item_id, document(quantity=3.0))
        await db_session.commit()

        item = await get_item(db_session, test_user.id, item_id)
        assert item.quantity == 3
        # Overwrite writes every column, so the missing barcode is cleared
        assert item.barcode is None

    @pytest.mark.asyncio
    async def test_document_view_uses_integers(self, db_session: AsyncSession, test_user: User) -> None:
        item_id = new_id()
        item = await set_item(db_session, test_user.id, item_id, document(quantity=2.0, low_stock_threshold=0.5))

        doc = item_to_document(item)

        assert doc["id"] == item_id
        assert doc["quantity"] == 2 and isinstance(doc["quantity"], int)
        assert doc["low_stock_threshold"] == 0.5

    @pytest.mark.asyncio
    async def test_update_item_partial(self, db_session: AsyncSession, test_user: User) -> None:
        item_id = new_id()
        await set_item(db_session, test_user.id, item_id, document(barcode="101"))

        item = await update_item(db_session, test_user.id, item_id, {"quantity": 4})

        assert item.quantity == 4
        assert item.barcode == "101"

    @pytest.mark.asyncio
    async def test_update_missing_item(self, db_session: AsyncSession, test_user: User) -> None:
        with pytest.raises(DocumentNotFoundError):
            await update_item(db_session, test_user.id, "missing", {"quantity": 4})

    @pytest.mark.asyncio
    async def test_update_unknown_field(self, db_session: AsyncSession, test_user: User) -> None:
        item_id = new_id()
        await set_item(db_session, test_user.id, item_id, document())
        with pytest.raises(ValueError):
            await update_item(db_session, test_user.id, item_id, {"user_id": "someone-else"})

    @pytest.mark.asyncio
    async def test_delete_item(self, db_session: AsyncSession, test_user: User) -> None:
        item_id = new_id()
        await set_item(db_session, test_user.id, item_id, document())

        await delete_item(db_session, test_user.id, item_id)

        assert await get_item(db_session, test_user.id, item_id) is None
        with pytest.raises(DocumentNotFoundError):
            await delete_item(db_session, test_user.id, item_id)

    @pytest.mark.asyncio
    async def test_items_scoped_to_owner(self, db_session: AsyncSession, test_user: User) -> None:
        other = await create_user(db_session, is_anonymous=True)
        item_id = new_id()
        await set_item(db_session, other.id, item_id, document())

        assert await get_item(db_session, test_user.id, item_id) is None
        assert await list_items(db_session, test_user.id) == []
        assert len(await list_items(db_session, other.id)) == 1


class TestHistory:
    """Tests for history operations."""

    @pytest.mark.asyncio
    async def test_history_ordered_oldest_first(self, db_session: AsyncSession, test_user: User) -> None:
        item_id = new_id()
        await add_history(db_session, test_user.id, item_id, "created", new_data={"name": "Milk"})
        await add_history(
            db_session,
            test_user.id,
            item_id,
            "updated",
            changed_fields=["quantity"],
            old_data={"quantity": 1},
            new_data={"quantity": 2},
        )
        await db_session.commit()

        history = await list_item_history(db_session, test_user.id, item_id)

        assert [entry.change_type for entry in history] == ["created", "updated"]
        assert history[1].changed_fields == ["quantity"]
        assert history[1].old_data == {"quantity": 1}
        assert history[0].timestamp is not None

    @pytest.mark.asyncio
    async def test_history_without_item(self, db_session: AsyncSession, test_user: User) -> None:
        """History entries outlive the item they describe."""
        await add_history(db_session, test_user.id, "gone", "deleted", old_data={"name": "Bread"})
        await db_session.commit()

        history = await list_item_history(db_session, test_user.id, "gone")
        assert len(history) == 1
        assert history[0].old_data == {"name": "Bread"}
