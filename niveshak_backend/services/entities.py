"""Catalogue of admin-managed content types that may carry images."""

from __future__ import annotations

from dataclasses import dataclass

from niveshak_backend.models import (
    ContentMixin,
    Event,
    HeroSlide,
    Magazine,
    Notice,
    TeamMember,
)


@dataclass(frozen=True, slots=True)
class EntityType:
    """Describes one bulk-replaced content collection."""

    name: str
    model: type[ContentMixin]
    image_fields: tuple[str, ...]
    path_prefix: str
    label: str

    @property
    def primary_image_field(self) -> str:
        return self.image_fields[0]


HERO_SLIDES = EntityType(
    name="hero_slides",
    model=HeroSlide,
    image_fields=("image_url",),
    path_prefix="hero",
    label="Hero Slides",
)
TEAM_MEMBERS = EntityType(
    name="team_members",
    model=TeamMember,
    image_fields=("image_url",),
    path_prefix="team",
    label="Team Members",
)
EVENTS = EntityType(
    name="events",
    model=Event,
    image_fields=("image_url",),
    path_prefix="event",
    label="Events",
)
NOTICES = EntityType(
    name="notices",
    model=Notice,
    image_fields=("image_url",),
    path_prefix="notice",
    label="Notices",
)
MAGAZINES = EntityType(
    name="magazines",
    model=Magazine,
    image_fields=("cover_url",),
    path_prefix="magazine",
    label="Magazines",
)

ENTITY_TYPES: dict[str, EntityType] = {
    entity_type.name: entity_type
    for entity_type in (HERO_SLIDES, TEAM_MEMBERS, EVENTS, NOTICES, MAGAZINES)
}

# Order only matters for progress reporting.
MIGRATION_ORDER: tuple[str, ...] = (
    HERO_SLIDES.name,
    TEAM_MEMBERS.name,
    EVENTS.name,
    NOTICES.name,
)


def get_entity_type(name: str) -> EntityType:
    """Return the catalogue entry for ``name`` or raise ``KeyError``."""

    try:
        return ENTITY_TYPES[name]
    except KeyError:
        raise KeyError(f"unknown entity type {name!r}") from None
