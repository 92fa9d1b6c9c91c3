"""API dependencies.

Dependency injection factories for services, storage backends and the
deal API client.
"""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from deal_attachments.clients.deals import DealApiClient, DealDirectory
from deal_attachments.core.config import settings
from deal_attachments.db.session import get_db_session
from deal_attachments.services.attachment import AttachmentService
from deal_attachments.services.blob_store import BlobStore, LocalBlobStore
from deal_attachments.services.s3 import S3BlobStore, create_s3_client

DBSession = Annotated[AsyncSession, Depends(get_db_session)]


@lru_cache
def get_blob_store() -> BlobStore:
    """Build the configured blob store once per process."""
    if settings.STORAGE_BACKEND == "s3":
        return S3BlobStore(create_s3_client(settings), settings.S3_BUCKET)
    return LocalBlobStore(settings.ATTACHMENTS_DIR)


@lru_cache
def get_deal_directory() -> DealDirectory:
    """Build the deal API client once per process."""
    return DealApiClient(
        settings.DEAL_API_BASE_URL,
        lookup_path=settings.DEAL_API_LOOKUP_PATH,
        timeout=settings.DEAL_API_TIMEOUT_SECONDS,
        api_token=settings.DEAL_API_TOKEN,
    )


BlobStoreDep = Annotated[BlobStore, Depends(get_blob_store)]
DealDirectoryDep = Annotated[DealDirectory, Depends(get_deal_directory)]


def get_attachment_service(
    db: DBSession,
    blob_store: BlobStoreDep,
    deals: DealDirectoryDep,
) -> AttachmentService:
    """Create AttachmentService instance with database session."""
    return AttachmentService(
        db,
        blob_store,
        deals,
        max_attachment_bytes=settings.MAX_ATTACHMENT_SIZE_BYTES,
    )


AttachmentSvc = Annotated[AttachmentService, Depends(get_attachment_service)]
