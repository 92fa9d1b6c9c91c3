"""Attachment service (PostgreSQL async + blob store).

Contains the business logic for deal attachments. This is the only place
that pairs catalog rows with blob store keys:

- upload writes the blob first and records the row only after the write
  returned, so a row never points at bytes that were not persisted;
- download reads from the stored key only, never from a path rebuilt out of
  the deal id or file name;
- delete removes the row, then the blob.
"""

import asyncio
import logging
import mimetypes
from dataclasses import dataclass
from typing import BinaryIO
from uuid import UUID

import logfire
from sqlalchemy.ext.asyncio import AsyncSession

from deal_attachments.clients.deals import DealDirectory
from deal_attachments.core.exceptions import (
    AttachmentNotFoundError,
    AttachmentTooLargeError,
    BlobMissingError,
    DealNotFoundError,
    InvalidDealError,
    ValidationError,
    VersionMismatchError,
)
from deal_attachments.core.storage_keys import deal_namespace
from deal_attachments.db.models.attachment import DealAttachment
from deal_attachments.repositories import attachment as attachment_repo
from deal_attachments.schemas.attachment import (
    CONTROL_CHARS,
    MAX_FILE_NAME_LENGTH,
    AttachmentRead,
    VersionHistory,
)
from deal_attachments.services.blob_store import (
    BlobNotFoundError,
    BlobStore,
    BlobStream,
    BlobTooLargeError,
)

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"


@dataclass
class AttachmentDownload:
    """An open attachment ready to be streamed to the client."""

    stream: BlobStream
    file_name: str
    content_type: str
    file_size_bytes: int


class AttachmentService:
    """Service for deal attachment business logic."""

    def __init__(
        self,
        db: AsyncSession,
        blob_store: BlobStore,
        deals: DealDirectory,
        *,
        max_attachment_bytes: int | None = None,
    ):
        self.db = db
        self.blob_store = blob_store
        self.deals = deals
        self.max_attachment_bytes = max_attachment_bytes

    async def upload(
        self,
        deal_id: int,
        data: BinaryIO,
        file_name: str | None,
        content_type: str | None = None,
        parent_attachment_id: UUID | None = None,
    ) -> AttachmentRead:
        """Store a file for a deal, optionally as a new version of another attachment.

        Raises:
            ValidationError: If the file name is empty or too long.
            InvalidDealError: If the deal does not exist.
            VersionMismatchError: If the parent is missing or belongs to another deal.
            AttachmentTooLargeError: If the file exceeds the size limit.
        """
        file_name = self._validate_file_name(file_name)

        if not await self.deals.deal_exists(deal_id):
            raise InvalidDealError(details={"deal_id": deal_id})

        version_number = 1
        if parent_attachment_id is not None:
            parent = await attachment_repo.get_attachment_by_id(self.db, parent_attachment_id)
            if parent is None or parent.deal_id != deal_id:
                raise VersionMismatchError(
                    details={
                        "deal_id": deal_id,
                        "parent_attachment_id": str(parent_attachment_id),
                    },
                )
            version_number = parent.version_number + 1

        if not content_type:
            content_type = mimetypes.guess_type(file_name)[0] or DEFAULT_CONTENT_TYPE

        loop = asyncio.get_running_loop()
        namespace = deal_namespace(deal_id)
        try:
            # Blob I/O is blocking, so use executor
            blob = await loop.run_in_executor(
                None,
                lambda: self.blob_store.put(
                    data,
                    file_name,
                    namespace=namespace,
                    content_type=content_type,
                    max_bytes=self.max_attachment_bytes,
                ),
            )
        except BlobTooLargeError as e:
            raise AttachmentTooLargeError(details={"max_bytes": e.max_bytes}) from e

        # Bytes are durable from here on; only now may the row exist
        try:
            attachment = await attachment_repo.create_attachment(
                self.db,
                deal_id=deal_id,
                file_name=file_name,
                content_type=content_type,
                file_size_bytes=blob.size_bytes,
                storage_key=blob.storage_key,
                parent_attachment_id=parent_attachment_id,
                version_number=version_number,
            )
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            await self._discard_orphaned_blob(blob.storage_key)
            raise

        logger.info(
            f"Uploaded attachment {attachment.id} for deal {deal_id} "
            f"(v{version_number}, {blob.size_bytes} bytes)"
        )
        return self._to_read(attachment)

    async def download(self, attachment_id: UUID) -> AttachmentDownload:
        """Open an attachment's bytes by its stored key.

        Raises:
            AttachmentNotFoundError: If no such attachment exists.
            BlobMissingError: If the attachment exists but its bytes are gone.
        """
        attachment = await self._get_attachment(attachment_id)
        loop = asyncio.get_running_loop()

        if not await loop.run_in_executor(None, self.blob_store.exists, attachment.storage_key):
            raise await self._missing_blob_error(attachment)

        try:
            stream = await loop.run_in_executor(None, self.blob_store.get, attachment.storage_key)
        except BlobNotFoundError:
            # Deleted between the existence check and the open
            raise await self._missing_blob_error(attachment) from None

        return AttachmentDownload(
            stream=stream,
            file_name=attachment.file_name,
            content_type=attachment.content_type,
            file_size_bytes=attachment.file_size_bytes,
        )

    async def list_attachments(self, deal_id: int) -> list[AttachmentRead]:
        """List a deal's attachments, oldest first.

        Blob existence is not checked here; a missing blob only surfaces on download.

        Raises:
            DealNotFoundError: If the deal does not exist.
        """
        if not await self.deals.deal_exists(deal_id):
            raise DealNotFoundError(details={"deal_id": deal_id})

        attachments = await attachment_repo.get_attachments_by_deal(self.db, deal_id)
        return [self._to_read(attachment) for attachment in attachments]

    async def rename(self, attachment_id: UUID, new_file_name: str | None) -> AttachmentRead:
        """Change an attachment's display name. The stored key is unaffected.

        Raises:
            ValidationError: If the new name is empty or too long.
            AttachmentNotFoundError: If no such attachment exists.
        """
        new_file_name = self._validate_file_name(new_file_name)

        attachment = await attachment_repo.update_file_name(self.db, attachment_id, new_file_name)
        if attachment is None:
            raise AttachmentNotFoundError(details={"attachment_id": str(attachment_id)})
        await self.db.commit()
        return self._to_read(attachment)

    async def delete(self, attachment_id: UUID) -> None:
        """Delete an attachment's row and then its blob.

        Later versions that point at this attachment are kept; their
        parent_attachment_id simply stops resolving.

        Raises:
            AttachmentNotFoundError: If no such attachment exists.
        """
        attachment = await self._get_attachment(attachment_id)
        storage_key = attachment.storage_key

        await attachment_repo.delete_attachment(self.db, attachment.id)
        await self.db.commit()

        try:
            await asyncio.get_running_loop().run_in_executor(
                None, self.blob_store.delete, storage_key
            )
        except Exception:
            # The row is gone, so the attachment is deleted for every reader.
            # The leftover blob is unreachable and can be collected later.
            logger.exception(f"Failed to delete blob {storage_key} of attachment {attachment_id}")
            logfire.warn(
                "Orphaned attachment blob {storage_key}",
                storage_key=storage_key,
                attachment_id=str(attachment_id),
            )

        logger.info(f"Deleted attachment {attachment_id}")

    async def list_versions(self, attachment_id: UUID) -> VersionHistory:
        """Return the version chain ending at an attachment, oldest first.

        Walks parent links until the root. A parent that no longer exists
        ends the walk with root_lost=True instead of raising.

        Raises:
            AttachmentNotFoundError: If the starting attachment does not exist.
        """
        attachment = await self._get_attachment(attachment_id)

        chain = [attachment]
        seen = {attachment.id}
        root_lost = False
        current = attachment
        while current.parent_attachment_id is not None:
            if current.parent_attachment_id in seen:
                logger.error(f"Version chain cycle detected at attachment {current.id}")
                break
            parent = await attachment_repo.get_attachment_by_id(
                self.db, current.parent_attachment_id
            )
            if parent is None:
                root_lost = True
                break
            chain.append(parent)
            seen.add(parent.id)
            current = parent

        chain.reverse()
        return VersionHistory(
            versions=[self._to_read(item) for item in chain],
            root_lost=root_lost,
        )

    async def _get_attachment(self, attachment_id: UUID) -> DealAttachment:
        attachment = await attachment_repo.get_attachment_by_id(self.db, attachment_id)
        if attachment is None:
            raise AttachmentNotFoundError(details={"attachment_id": str(attachment_id)})
        return attachment

    async def _missing_blob_error(
        self, attachment: DealAttachment
    ) -> AttachmentNotFoundError | BlobMissingError:
        """Classify a blob that could not be read.

        If the row was deleted meanwhile, this is an ordinary not-found.
        Otherwise the catalog points at bytes that do not exist, which is
        reported as an integrity anomaly.
        """
        details = {"attachment_id": str(attachment.id)}
        if not await attachment_repo.attachment_exists(self.db, attachment.id):
            return AttachmentNotFoundError(details=details)

        logger.error(
            f"Integrity anomaly: attachment {attachment.id} of deal {attachment.deal_id} "
            f"has no blob at {attachment.storage_key}"
        )
        logfire.error(
            "Attachment blob missing {attachment_id}",
            attachment_id=str(attachment.id),
            deal_id=attachment.deal_id,
            storage_key=attachment.storage_key,
        )
        return BlobMissingError(details=details)

    async def _discard_orphaned_blob(self, storage_key: str) -> None:
        """Best-effort cleanup of a blob whose catalog insert failed."""
        try:
            await asyncio.get_running_loop().run_in_executor(
                None, self.blob_store.delete, storage_key
            )
        except Exception:
            logger.exception(f"Could not remove orphaned blob {storage_key}")

    @staticmethod
    def _validate_file_name(file_name: str | None) -> str:
        file_name = (file_name or "").strip()
        if not file_name:
            raise ValidationError(message="File name must not be empty")
        if len(file_name) > MAX_FILE_NAME_LENGTH:
            raise ValidationError(
                message=f"File name must be at most {MAX_FILE_NAME_LENGTH} characters",
                details={"length": len(file_name)},
            )
        if CONTROL_CHARS.search(file_name):
            raise ValidationError(message="File name must not contain control characters")
        return file_name

    @staticmethod
    def _to_read(attachment: DealAttachment) -> AttachmentRead:
        return AttachmentRead(
            attachment_id=attachment.id,
            deal_id=attachment.deal_id,
            file_name=attachment.file_name,
            content_type=attachment.content_type,
            file_size_bytes=attachment.file_size_bytes,
            created_at=attachment.created_at,
            parent_attachment_id=attachment.parent_attachment_id,
            version_number=attachment.version_number,
        )
