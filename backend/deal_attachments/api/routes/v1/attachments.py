"""Deal attachment routes.

Endpoints:
- POST /attachments/{deal_id} - Upload a file (optionally as a new version)
- GET /attachments/{deal_id} - List a deal's attachments
- GET /attachments/{attachment_id}/download - Download by stored key (streaming)
- GET /attachments/{attachment_id}/versions - Version chain ending at an attachment
- PATCH /attachments/{attachment_id} - Rename
- DELETE /attachments/{attachment_id} - Delete row and bytes
"""

import logging
from typing import Annotated
from urllib.parse import quote
from uuid import UUID

from fastapi import APIRouter, File, Form, UploadFile, status
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask

from deal_attachments.api.deps import AttachmentSvc
from deal_attachments.core.exceptions import (
    FILE_NOT_FOUND_MESSAGE,
    AttachmentNotFoundError,
    BlobMissingError,
    NotFoundError,
)
from deal_attachments.schemas.attachment import (
    CONTROL_CHARS,
    AttachmentDeleteResponse,
    AttachmentListResponse,
    AttachmentRename,
    AttachmentResponse,
    VersionHistoryResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _content_disposition(file_name: str) -> str:
    """Build an attachment Content-Disposition header safe for any file name."""
    file_name = CONTROL_CHARS.sub("", file_name)
    ascii_name = file_name.encode("ascii", "replace").decode("ascii").replace('"', "'")
    ascii_name = ascii_name.replace("?", "_").replace("\\", "_")
    return f"attachment; filename=\"{ascii_name}\"; filename*=UTF-8''{quote(file_name, safe='')}"


@router.post("/{deal_id}", response_model=AttachmentResponse, status_code=status.HTTP_201_CREATED)
async def upload_attachment(
    deal_id: int,
    attachment_service: AttachmentSvc,
    file: Annotated[UploadFile, File(description="File to attach to the deal")],
    parent_attachment_id: Annotated[UUID | None, Form(alias="parentAttachmentId")] = None,
) -> AttachmentResponse:
    """Upload a file to a deal.

    Pass parentAttachmentId to store the file as the next version of an
    existing attachment of the same deal.
    """
    try:
        attachment = await attachment_service.upload(
            deal_id,
            file.file,
            file.filename,
            file.content_type,
            parent_attachment_id=parent_attachment_id,
        )
    finally:
        await file.close()
    return AttachmentResponse(data=attachment)


@router.get("/{deal_id}", response_model=AttachmentListResponse)
async def list_attachments(
    deal_id: int,
    attachment_service: AttachmentSvc,
) -> AttachmentListResponse:
    """List a deal's attachments, oldest first.

    Raises 404 only if the deal itself is unknown.
    """
    attachments = await attachment_service.list_attachments(deal_id)
    return AttachmentListResponse(data=attachments)


@router.get("/{attachment_id}/download")
async def download_attachment(
    attachment_id: UUID,
    attachment_service: AttachmentSvc,
) -> StreamingResponse:
    """Stream an attachment's bytes.

    A missing attachment and an attachment whose bytes are gone both
    return 404 "File not found on server"; the error code tells them apart.
    """
    try:
        download = await attachment_service.download(attachment_id)
    except (AttachmentNotFoundError, BlobMissingError) as e:
        raise NotFoundError(message=FILE_NOT_FOUND_MESSAGE, code=e.code, details=e.details) from e

    return StreamingResponse(
        download.stream,
        media_type=download.content_type,
        headers={
            "Content-Disposition": _content_disposition(download.file_name),
            "Content-Length": str(download.file_size_bytes),
        },
        # Close the handle even if the client disconnects mid-stream
        background=BackgroundTask(download.stream.close),
    )


@router.get("/{attachment_id}/versions", response_model=VersionHistoryResponse)
async def list_attachment_versions(
    attachment_id: UUID,
    attachment_service: AttachmentSvc,
) -> VersionHistoryResponse:
    """Get the version chain ending at an attachment, oldest first.

    rootLost is true when an earlier version has been deleted.
    """
    history = await attachment_service.list_versions(attachment_id)
    return VersionHistoryResponse(data=history)


@router.patch("/{attachment_id}", response_model=AttachmentResponse)
async def rename_attachment(
    attachment_id: UUID,
    rename_in: AttachmentRename,
    attachment_service: AttachmentSvc,
) -> AttachmentResponse:
    """Rename an attachment. Only the display name changes."""
    attachment = await attachment_service.rename(attachment_id, rename_in.file_name)
    return AttachmentResponse(data=attachment)


@router.delete("/{attachment_id}", response_model=AttachmentDeleteResponse)
async def delete_attachment(
    attachment_id: UUID,
    attachment_service: AttachmentSvc,
) -> AttachmentDeleteResponse:
    """Delete an attachment and its stored bytes.

    Newer versions of the attachment are kept.
    """
    await attachment_service.delete(attachment_id)
    return AttachmentDeleteResponse()
