"""Attachment schemas for deal file uploads.

Responses use the dashboard envelope ``{success, data}``.
"""

import re
from datetime import datetime
from uuid import UUID

from pydantic import Field, field_validator

from deal_attachments.schemas.base import BaseSchema

MAX_FILE_NAME_LENGTH = 255

# File names end up in response headers
CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")


class AttachmentRead(BaseSchema):
    """Attachment as returned to the dashboard."""

    attachment_id: UUID = Field(description="Unique attachment identifier")
    deal_id: int = Field(description="Deal the attachment belongs to")
    file_name: str = Field(description="Display name")
    content_type: str = Field(description="MIME type captured at upload")
    file_size_bytes: int = Field(description="File size in bytes")
    created_at: datetime = Field(description="When the attachment was uploaded")
    parent_attachment_id: UUID | None = Field(
        default=None,
        description="Attachment this version supersedes. May reference a deleted attachment.",
    )
    version_number: int = Field(default=1, ge=1, description="1-based position in the version chain")


class AttachmentRename(BaseSchema):
    """Request body for renaming an attachment."""

    file_name: str = Field(min_length=1, max_length=MAX_FILE_NAME_LENGTH)

    @field_validator("file_name")
    @classmethod
    def validate_file_name(cls, v: str) -> str:
        """Reject names that are blank after trimming or hold control characters."""
        v = v.strip()
        if not v:
            raise ValueError("fileName must not be empty")
        if CONTROL_CHARS.search(v):
            raise ValueError("fileName must not contain control characters")
        return v


class VersionHistory(BaseSchema):
    """Version chain ending at an attachment, oldest first."""

    versions: list[AttachmentRead] = Field(default_factory=list)
    root_lost: bool = Field(
        default=False,
        description="True when an earlier version was deleted and the chain cannot be followed further",
    )


class AttachmentResponse(BaseSchema):
    """Envelope for a single attachment."""

    success: bool = True
    data: AttachmentRead


class AttachmentListResponse(BaseSchema):
    """Envelope for a deal's attachments."""

    success: bool = True
    data: list[AttachmentRead] = Field(default_factory=list)


class VersionHistoryResponse(BaseSchema):
    """Envelope for a version chain."""

    success: bool = True
    data: VersionHistory


class AttachmentDeleteResponse(BaseSchema):
    """Envelope for a successful delete."""

    success: bool = True
