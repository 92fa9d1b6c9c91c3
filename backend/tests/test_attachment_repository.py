"""Tests for the attachment catalog repository.

Runs against an in-memory SQLite database.
"""

from datetime import UTC, datetime, timedelta
from uuid import uuid4

import pytest
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from conftest import KNOWN_DEAL_ID, OTHER_DEAL_ID
from deal_attachments.db.models.attachment import DealAttachment
from deal_attachments.repositories import attachment as attachment_repo


async def _create(db: AsyncSession, deal_id: int = KNOWN_DEAL_ID, **overrides) -> DealAttachment:
    fields = {
        "deal_id": deal_id,
        "file_name": "deck.pdf",
        "content_type": "application/pdf",
        "file_size_bytes": 1234,
        "storage_key": f"deals/{deal_id}/{uuid4().hex}/deck.pdf",
    }
    fields.update(overrides)
    return await attachment_repo.create_attachment(db, **fields)


async def _add_created_at(db: AsyncSession, created_at: datetime, file_name: str) -> DealAttachment:
    attachment = DealAttachment(
        deal_id=KNOWN_DEAL_ID,
        file_name=file_name,
        content_type="application/pdf",
        file_size_bytes=10,
        storage_key=f"deals/{KNOWN_DEAL_ID}/{uuid4().hex}/{file_name}",
        created_at=created_at,
    )
    db.add(attachment)
    await db.flush()
    return attachment


class TestCreateAndGet:
    """Tests for inserting and fetching rows."""

    @pytest.mark.anyio
    async def test_create_assigns_id_and_defaults(self, db_session: AsyncSession):
        attachment = await _create(db_session)

        assert attachment.id is not None
        assert attachment.version_number == 1
        assert attachment.parent_attachment_id is None
        assert attachment.created_at is not None

    @pytest.mark.anyio
    async def test_get_by_id(self, db_session: AsyncSession):
        attachment = await _create(db_session)
        await db_session.commit()

        fetched = await attachment_repo.get_attachment_by_id(db_session, attachment.id)

        assert fetched is not None
        assert fetched.storage_key == attachment.storage_key

    @pytest.mark.anyio
    async def test_get_missing_returns_none(self, db_session: AsyncSession):
        assert await attachment_repo.get_attachment_by_id(db_session, uuid4()) is None
        assert await attachment_repo.attachment_exists(db_session, uuid4()) is False

    @pytest.mark.anyio
    async def test_storage_key_is_unique(self, db_session: AsyncSession):
        await _create(db_session, storage_key="deals/101/abc/deck.pdf")

        with pytest.raises(IntegrityError):
            await _create(db_session, storage_key="deals/101/abc/deck.pdf")


class TestListByDeal:
    """Tests for listing a deal's rows."""

    @pytest.mark.anyio
    async def test_lists_only_the_deal_in_creation_order(self, db_session: AsyncSession):
        now = datetime.now(UTC)
        third = await _add_created_at(db_session, now + timedelta(seconds=2), "c.pdf")
        first = await _add_created_at(db_session, now, "a.pdf")
        second = await _add_created_at(db_session, now + timedelta(seconds=1), "b.pdf")
        await _create(db_session, deal_id=OTHER_DEAL_ID)
        await db_session.commit()

        attachments = await attachment_repo.get_attachments_by_deal(db_session, KNOWN_DEAL_ID)

        assert [a.id for a in attachments] == [first.id, second.id, third.id]

    @pytest.mark.anyio
    async def test_empty_deal(self, db_session: AsyncSession):
        assert await attachment_repo.get_attachments_by_deal(db_session, KNOWN_DEAL_ID) == []


class TestUpdateAndDelete:
    """Tests for rename and delete."""

    @pytest.mark.anyio
    async def test_update_file_name_only(self, db_session: AsyncSession):
        attachment = await _create(db_session)
        await db_session.commit()
        storage_key = attachment.storage_key
        created_at = attachment.created_at

        updated = await attachment_repo.update_file_name(db_session, attachment.id, "renamed.pdf")

        assert updated is not None
        assert updated.file_name == "renamed.pdf"
        assert updated.storage_key == storage_key
        assert updated.file_size_bytes == 1234
        assert updated.created_at == created_at

    @pytest.mark.anyio
    async def test_update_missing_returns_none(self, db_session: AsyncSession):
        assert await attachment_repo.update_file_name(db_session, uuid4(), "x.pdf") is None

    @pytest.mark.anyio
    async def test_delete_leaves_children(self, db_session: AsyncSession):
        parent = await _create(db_session)
        child = await _create(
            db_session, parent_attachment_id=parent.id, version_number=2
        )
        await db_session.commit()

        assert await attachment_repo.delete_attachment(db_session, parent.id) is True
        await db_session.commit()

        assert await attachment_repo.get_attachment_by_id(db_session, parent.id) is None
        survivor = await attachment_repo.get_attachment_by_id(db_session, child.id)
        assert survivor is not None
        assert survivor.parent_attachment_id == parent.id

    @pytest.mark.anyio
    async def test_delete_missing_returns_false(self, db_session: AsyncSession):
        assert await attachment_repo.delete_attachment(db_session, uuid4()) is False
