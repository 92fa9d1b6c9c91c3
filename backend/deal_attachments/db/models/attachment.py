"""Deal attachment model - catalog row for one stored file."""

import uuid

from sqlalchemy import BigInteger, Column, Integer, String, Text, Uuid
from sqlmodel import Field, SQLModel

from deal_attachments.db.base import TimestampMixin


class DealAttachment(TimestampMixin, SQLModel, table=True):
    """DealAttachment model - metadata for a file uploaded to a deal.

    Attributes:
        id: Unique attachment identifier
        deal_id: The deal this attachment belongs to (immutable)
        file_name: Display name, the only field rename may change
        content_type: MIME type captured at upload
        file_size_bytes: Size counted while the bytes were written
        storage_key: Exact blob store key; downloads read from here only
        parent_attachment_id: Attachment this one supersedes, if any
        version_number: 1-based position in the version chain
    """

    __tablename__ = "deal_attachments"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        sa_column=Column(Uuid(as_uuid=True), primary_key=True),
    )
    deal_id: int = Field(
        sa_column=Column(Integer, nullable=False, index=True),
    )
    file_name: str = Field(sa_column=Column(String(255), nullable=False))
    content_type: str = Field(sa_column=Column(String(255), nullable=False))
    file_size_bytes: int = Field(sa_column=Column(BigInteger, nullable=False))
    storage_key: str = Field(sa_column=Column(Text, nullable=False, unique=True))
    # No foreign key: the parent may be deleted while children survive
    parent_attachment_id: uuid.UUID | None = Field(
        default=None,
        sa_column=Column(Uuid(as_uuid=True), nullable=True, index=True),
    )
    version_number: int = Field(default=1, sa_column=Column(Integer, nullable=False))

    def __repr__(self) -> str:
        return (
            f"<DealAttachment(id={self.id}, deal_id={self.deal_id}, "
            f"version_number={self.version_number})>"
        )
