"""Attachment catalog repository (PostgreSQL async).

Contains only database operations. Transactions are committed by
AttachmentService, which also decides how a missing row is reported.
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from deal_attachments.db.models.attachment import DealAttachment


async def get_attachment_by_id(db: AsyncSession, attachment_id: UUID) -> DealAttachment | None:
    """Get attachment by ID."""
    return await db.get(DealAttachment, attachment_id)


async def attachment_exists(db: AsyncSession, attachment_id: UUID) -> bool:
    """Check the database for a row, bypassing the session's identity map."""
    result = await db.execute(select(DealAttachment.id).where(DealAttachment.id == attachment_id))
    return result.scalar_one_or_none() is not None


async def get_attachments_by_deal(db: AsyncSession, deal_id: int) -> list[DealAttachment]:
    """Get all attachments of a deal, oldest first.

    Ties on created_at are broken by id so the order is stable between calls.
    """
    query = (
        select(DealAttachment)
        .where(DealAttachment.deal_id == deal_id)
        .order_by(DealAttachment.created_at.asc(), DealAttachment.id.asc())
    )
    result = await db.execute(query)
    return list(result.scalars().all())


async def create_attachment(
    db: AsyncSession,
    *,
    deal_id: int,
    file_name: str,
    content_type: str,
    file_size_bytes: int,
    storage_key: str,
    parent_attachment_id: UUID | None = None,
    version_number: int = 1,
) -> DealAttachment:
    """Create a catalog row.

    Note: The blob must already be written; callers pass its storage key.
    """
    attachment = DealAttachment(
        deal_id=deal_id,
        file_name=file_name,
        content_type=content_type,
        file_size_bytes=file_size_bytes,
        storage_key=storage_key,
        parent_attachment_id=parent_attachment_id,
        version_number=version_number,
    )
    db.add(attachment)
    await db.flush()
    await db.refresh(attachment)
    return attachment


async def update_file_name(
    db: AsyncSession,
    attachment_id: UUID,
    file_name: str,
) -> DealAttachment | None:
    """Change an attachment's display name.

    Returns:
        The updated attachment, or None if it does not exist.
    """
    attachment = await get_attachment_by_id(db, attachment_id)
    if not attachment:
        return None

    if attachment.file_name != file_name:
        attachment.file_name = file_name
        db.add(attachment)
        await db.flush()
        await db.refresh(attachment)
    return attachment


async def delete_attachment(db: AsyncSession, attachment_id: UUID) -> bool:
    """Delete a catalog row.

    Children pointing at this row through parent_attachment_id are left alone.

    Returns:
        True if deleted, False if the row did not exist.
    """
    attachment = await get_attachment_by_id(db, attachment_id)
    if not attachment:
        return False

    await db.delete(attachment)
    await db.flush()
    return True
