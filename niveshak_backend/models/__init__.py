"""SQLAlchemy models for the Niveshak site."""

from __future__ import annotations

import os
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    Index,
    Integer,
    String,
    Text,
    Uuid,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class that configures UUID primary keys by default."""

    type_annotation_map = {
        uuid.UUID: Uuid(as_uuid=True),
    }


class TimestampMixin:
    """Mixin that provides automatic creation timestamps."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class MediaMixin:
    """Columns describing where an entity's image actually lives.

    ``storage_provider`` is ``"r2"`` when ``media_key`` points into the managed
    bucket; ``None`` or ``"legacy"`` means the image column itself holds either
    an inline data URI or an external URL.
    """

    storage_provider: Mapped[Optional[str]] = mapped_column(String(32))
    media_key: Mapped[Optional[str]] = mapped_column(String(512))


class ContentMixin(MediaMixin):
    """Shared columns for admin-managed lists that are replaced in bulk."""

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class AdminUser(TimestampMixin, Base):
    """An administrator allowed to edit site content."""

    __tablename__ = "admin_users"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[Optional[str]] = mapped_column(String(255))
    last_login_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    __table_args__ = (
        Index("uq_admin_users_email_lower", func.lower(email), unique=True),
    )


class HeroSlide(ContentMixin, Base):
    """A slide in the landing page carousel."""

    __tablename__ = "hero_slides"

    image_url: Mapped[str] = mapped_column(Text, nullable=False, default="")
    title: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    subtitle: Mapped[Optional[str]] = mapped_column(Text)
    object_fit: Mapped[str] = mapped_column(
        String(16), nullable=False, default="cover"
    )
    timer: Mapped[int] = mapped_column(Integer, nullable=False, default=5)


class TeamMember(ContentMixin, Base):
    """A member of the club shown on the team page."""

    __tablename__ = "team_members"

    name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    role: Mapped[Optional[str]] = mapped_column(String(255))
    image_url: Mapped[str] = mapped_column(Text, nullable=False, default="")
    email: Mapped[Optional[str]] = mapped_column(String(255))
    linkedin: Mapped[Optional[str]] = mapped_column(String(512))
    details: Mapped[Optional[str]] = mapped_column(Text)
    category: Mapped[Optional[str]] = mapped_column(String(64))


class Event(ContentMixin, Base):
    """A club event, upcoming, live or past."""

    __tablename__ = "events"

    title: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    date: Mapped[Optional[str]] = mapped_column(String(32))
    time: Mapped[Optional[str]] = mapped_column(String(32))
    location: Mapped[Optional[str]] = mapped_column(String(255))
    type: Mapped[str] = mapped_column(
        String(16), nullable=False, default="Upcoming"
    )
    image_url: Mapped[str] = mapped_column(Text, nullable=False, default="")
    orientation: Mapped[Optional[str]] = mapped_column(String(16))
    meeting_link: Mapped[Optional[str]] = mapped_column(String(512))
    is_online: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )


class Notice(ContentMixin, Base):
    """A notice board entry."""

    __tablename__ = "notices"

    title: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    category: Mapped[str] = mapped_column(
        String(64), nullable=False, default="General"
    )
    content: Mapped[Optional[str]] = mapped_column(Text)
    date: Mapped[Optional[str]] = mapped_column(String(32))
    time: Mapped[Optional[str]] = mapped_column(String(32))
    expiry_date: Mapped[Optional[str]] = mapped_column(String(32))
    image_url: Mapped[Optional[str]] = mapped_column(Text)
    link: Mapped[Optional[str]] = mapped_column(String(512))
    link_label: Mapped[Optional[str]] = mapped_column(String(255))


class Magazine(ContentMixin, Base):
    """A published magazine issue."""

    __tablename__ = "magazines"

    title: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    issue_date: Mapped[Optional[str]] = mapped_column(String(32))
    issue_month: Mapped[Optional[str]] = mapped_column(String(32))
    issue_year: Mapped[Optional[str]] = mapped_column(String(8))
    cover_url: Mapped[str] = mapped_column(Text, nullable=False, default="")
    pdf_url: Mapped[Optional[str]] = mapped_column(String(1024))
    flip_url: Mapped[Optional[str]] = mapped_column(String(1024))


def get_database_url() -> str:
    """Return the configured DATABASE_URL."""

    database_url = os.environ.get("DATABASE_URL")
    if not database_url:
        raise RuntimeError("DATABASE_URL environment variable is not set")

    # Normalize common Postgres URL forms to the installed psycopg v3 driver.
    if database_url.startswith("postgres://"):
        return "postgresql+psycopg://" + database_url[len("postgres://") :]
    if database_url.startswith("postgresql://"):
        return "postgresql+psycopg://" + database_url[len("postgresql://") :]
    if database_url.startswith("postgresql+psycopg2://"):
        return (
            "postgresql+psycopg://"
            + database_url[len("postgresql+psycopg2://") :]
        )

    return database_url
