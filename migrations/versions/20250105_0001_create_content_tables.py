"""create admin and content tables

Revision ID: 20250105_0001
Revises:
Create Date: 2025-01-05 00:00:00.000000

"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20250105_0001"
down_revision = None
branch_labels = None
depends_on = None


def _content_columns() -> list[sa.Column]:
    return [
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column(
            "position",
            sa.Integer(),
            server_default=sa.text("0"),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    op.create_table(
        "admin_users",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=True),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "uq_admin_users_email_lower",
        "admin_users",
        [sa.text("lower(email)")],
        unique=True,
    )

    op.create_table(
        "hero_slides",
        *_content_columns(),
        sa.Column("image_url", sa.Text(), server_default="", nullable=False),
        sa.Column("title", sa.String(length=255), server_default="", nullable=False),
        sa.Column("subtitle", sa.Text(), nullable=True),
        sa.Column(
            "object_fit",
            sa.String(length=16),
            server_default="cover",
            nullable=False,
        ),
        sa.Column("timer", sa.Integer(), server_default=sa.text("5"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "team_members",
        *_content_columns(),
        sa.Column("name", sa.String(length=255), server_default="", nullable=False),
        sa.Column("role", sa.String(length=255), nullable=True),
        sa.Column("image_url", sa.Text(), server_default="", nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("linkedin", sa.String(length=512), nullable=True),
        sa.Column("details", sa.Text(), nullable=True),
        sa.Column("category", sa.String(length=64), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "events",
        *_content_columns(),
        sa.Column("title", sa.String(length=255), server_default="", nullable=False),
        sa.Column("date", sa.String(length=32), nullable=True),
        sa.Column("time", sa.String(length=32), nullable=True),
        sa.Column("location", sa.String(length=255), nullable=True),
        sa.Column(
            "type",
            sa.String(length=16),
            server_default="Upcoming",
            nullable=False,
        ),
        sa.Column("image_url", sa.Text(), server_default="", nullable=False),
        sa.Column("orientation", sa.String(length=16), nullable=True),
        sa.Column("meeting_link", sa.String(length=512), nullable=True),
        sa.Column(
            "is_online",
            sa.Boolean(),
            server_default=sa.text("false"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "notices",
        *_content_columns(),
        sa.Column("title", sa.String(length=255), server_default="", nullable=False),
        sa.Column(
            "category",
            sa.String(length=64),
            server_default="General",
            nullable=False,
        ),
        sa.Column("content", sa.Text(), nullable=True),
        sa.Column("date", sa.String(length=32), nullable=True),
        sa.Column("time", sa.String(length=32), nullable=True),
        sa.Column("expiry_date", sa.String(length=32), nullable=True),
        sa.Column("image_url", sa.Text(), nullable=True),
        sa.Column("link", sa.String(length=512), nullable=True),
        sa.Column("link_label", sa.String(length=255), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "magazines",
        *_content_columns(),
        sa.Column("title", sa.String(length=255), server_default="", nullable=False),
        sa.Column("issue_date", sa.String(length=32), nullable=True),
        sa.Column("issue_month", sa.String(length=32), nullable=True),
        sa.Column("issue_year", sa.String(length=8), nullable=True),
        sa.Column("cover_url", sa.Text(), server_default="", nullable=False),
        sa.Column("pdf_url", sa.String(length=1024), nullable=True),
        sa.Column("flip_url", sa.String(length=1024), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )


def downgrade() -> None:
    op.drop_table("magazines")
    op.drop_table("notices")
    op.drop_table("events")
    op.drop_table("team_members")
    op.drop_table("hero_slides")
    op.drop_index("uq_admin_users_email_lower", table_name="admin_users")
    op.drop_table("admin_users")
