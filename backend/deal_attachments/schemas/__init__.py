"""Pydantic schemas."""

from deal_attachments.schemas.attachment import (
    AttachmentDeleteResponse,
    AttachmentListResponse,
    AttachmentRead,
    AttachmentRename,
    AttachmentResponse,
    VersionHistory,
    VersionHistoryResponse,
)
from deal_attachments.schemas.base import BaseSchema

__all__ = [
    "AttachmentDeleteResponse",
    "AttachmentListResponse",
    "AttachmentRead",
    "AttachmentRename",
    "AttachmentResponse",
    "BaseSchema",
    "VersionHistory",
    "VersionHistoryResponse",
]
