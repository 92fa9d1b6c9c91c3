"""add deal_attachments table

Revision ID: 3f9c2d7e1a40
Revises:
Create Date: 2026-10-18 12:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3f9c2d7e1a40"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "deal_attachments",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("deal_id", sa.Integer(), nullable=False),
        sa.Column("file_name", sa.String(255), nullable=False),
        sa.Column("content_type", sa.String(255), nullable=False),
        sa.Column("file_size_bytes", sa.BigInteger(), nullable=False),
        sa.Column("storage_key", sa.Text(), nullable=False),
        # No foreign key: children outlive a deleted parent
        sa.Column("parent_attachment_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("version_number", sa.Integer(), nullable=False, server_default="1"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id", name="deal_attachments_pkey"),
        sa.UniqueConstraint("storage_key", name="deal_attachments_storage_key_key"),
    )
    op.create_index("deal_attachments_deal_id_idx", "deal_attachments", ["deal_id"])
    op.create_index(
        "deal_attachments_parent_attachment_id_idx",
        "deal_attachments",
        ["parent_attachment_id"],
    )


def downgrade() -> None:
    op.drop_index("deal_attachments_parent_attachment_id_idx", table_name="deal_attachments")
    op.drop_index("deal_attachments_deal_id_idx", table_name="deal_attachments")
    op.drop_table("deal_attachments")
