"""Database models."""

from deal_attachments.db.models.attachment import DealAttachment

__all__ = ["DealAttachment"]
