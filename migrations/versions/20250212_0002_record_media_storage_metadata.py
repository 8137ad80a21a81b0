"""record media storage metadata on content tables

Revision ID: 20250212_0002
Revises: 20250105_0001
Create Date: 2025-02-12 00:00:00.000000

"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "20250212_0002"
down_revision = "20250105_0001"
branch_labels = None
depends_on = None

CONTENT_TABLES = (
    "hero_slides",
    "team_members",
    "events",
    "notices",
    "magazines",
)


def upgrade() -> None:
    for table_name in CONTENT_TABLES:
        op.add_column(
            table_name,
            sa.Column("storage_provider", sa.String(length=32), nullable=True),
        )
        op.add_column(
            table_name,
            sa.Column("media_key", sa.String(length=512), nullable=True),
        )


def downgrade() -> None:
    for table_name in CONTENT_TABLES:
        op.drop_column(table_name, "media_key")
        op.drop_column(table_name, "storage_provider")
