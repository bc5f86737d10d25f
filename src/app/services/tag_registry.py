# src/app/services/tag_registry.py
"""
Tag registry.

Owns the rules around tags: name and color validation, slug derivation and
collision handling, usage counts, merging and association with recipes and
blog posts. Persistence goes through a ContentStore; identity checks beyond
ownership of an entity are the caller's concern (see TagActions).
"""
from __future__ import annotations

import logging
import re
from typing import Iterable, Optional

from src.app.domain.errors import (
    AuthorizationError,
    NotFoundError,
    TagInUseError,
    ValidationError,
)
from src.app.domain.models import ContentKind, Tag, TagStats
from src.app.infra.db.base import ContentStore
from src.app.schemas.auth import CurrentUser
from src.services.slugify import numbered_slug, slugify

logger = logging.getLogger(__name__)

NAME_MAX_LENGTH = 50
DEFAULT_COLOR = "#000000"
POPULAR_LIMIT = 20
SEARCH_LIMIT = 10
STATS_TOP_LIMIT = 10

_COLOR_RE = re.compile(r"^#[0-9A-Fa-f]{6}$")


def validate_name(name: Optional[str]) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValidationError("name", "Tag name is required")
    if len(cleaned) > NAME_MAX_LENGTH:
        raise ValidationError("name", f"Tag name must be less than {NAME_MAX_LENGTH} characters")
    return cleaned


def validate_color(color: Optional[str]) -> str:
    cleaned = (color or "").strip()
    if not cleaned:
        return DEFAULT_COLOR
    if not _COLOR_RE.match(cleaned):
        raise ValidationError("color", "Color must be a hex value like #1a2b3c")
    return cleaned.lower()


def derive_slug(name: str) -> str:
    slug = slugify(name)
    if not slug:
        raise ValidationError("name", "Tag name must contain letters or digits")
    return slug


class TagRegistry:
    def __init__(self, store: ContentStore):
        self._store = store

    # --- read side ---------------------------------------------------------

    def list_all(self) -> list[Tag]:
        return self._store.list_tags()

    def get(self, tag_id: str) -> Optional[Tag]:
        return self._store.get_tag(tag_id)

    def get_by_slug(self, slug: str) -> Optional[Tag]:
        return self._store.get_tag_by_slug(slugify(slug))

    def popular(self, limit: int = POPULAR_LIMIT) -> list[Tag]:
        return self._store.popular_tags(max(1, limit))

    def search(self, query: str, limit: int = SEARCH_LIMIT) -> list[Tag]:
        if not query or not query.strip():
            return []
        return self._store.search_tags(query.strip(), max(1, limit))

    def stats(self) -> TagStats:
        tags = self._store.list_tags()
        active = [t for t in tags if t.count > 0]
        active.sort(key=lambda t: (-t.count, t.name.lower()))
        return TagStats(
            total_tags=len(tags),
            active_tags=len(active),
            top_tags=active[:STATS_TOP_LIMIT],
        )

    def resolve_slugs(self, slugs: Iterable[str]) -> Optional[frozenset[str]]:
        """
        Map tag slugs to tag ids.

        Returns:
            The ids, or None when any slug is unknown. An all-of tag filter
            with an unknown tag can never match, so callers short-circuit.
        """
        wanted = {s for s in slugs if s}
        if not wanted:
            return frozenset()
        found = self._store.get_tags_by_slugs(wanted)
        if len(found) != len(wanted):
            missing = wanted - {t.slug for t in found}
            logger.debug("tags.unknown_slugs slugs=%s", sorted(missing))
            return None
        return frozenset(t.id for t in found)

    # --- mutations ---------------------------------------------------------

    def _unique_slug(self, name: str, exclude_id: Optional[str] = None) -> str:
        base = derive_slug(name)
        slug = base
        counter = 1
        while self._store.slug_exists(slug, exclude_id=exclude_id):
            slug = numbered_slug(base, counter)
            counter += 1
        return slug

    def create(self, name: str, color: Optional[str] = None) -> Tag:
        cleaned = validate_name(name)
        hex_color = validate_color(color)
        slug = self._unique_slug(cleaned)
        tag = self._store.insert_tag(cleaned, slug, hex_color)
        logger.info("tags.created id=%s slug=%s", tag.id, tag.slug)
        return tag

    def update(self, tag_id: str, name: Optional[str] = None, color: Optional[str] = None) -> Tag:
        existing = self._store.get_tag(tag_id)
        if existing is None:
            raise NotFoundError("Tag", tag_id)

        changes: dict[str, str] = {}
        if name is not None:
            cleaned = validate_name(name)
            if cleaned != existing.name:
                changes["name"] = cleaned
                changes["slug"] = self._unique_slug(cleaned, exclude_id=tag_id)
        if color is not None:
            changes["color"] = validate_color(color)
        if not changes:
            return existing

        updated = self._store.update_tag(tag_id, changes)
        if updated is None:
            raise NotFoundError("Tag", tag_id)
        logger.info("tags.updated id=%s fields=%s", tag_id, ",".join(sorted(changes)))
        return updated

    def delete(self, tag_id: str) -> None:
        if self._store.get_tag(tag_id) is None:
            raise NotFoundError("Tag", tag_id)
        usage = self._store.count_tag_references(tag_id)
        if usage > 0:
            raise TagInUseError(tag_id, usage)
        self._store.delete_tag(tag_id)
        logger.info("tags.deleted id=%s", tag_id)

    def find_or_create(self, name: str) -> Tag:
        """Return the tag whose slug matches the name, creating it if needed."""
        cleaned = validate_name(name)
        return self._store.upsert_tag(cleaned, derive_slug(cleaned), DEFAULT_COLOR)

    def bulk_create(self, names: Iterable[str]) -> list[Tag]:
        """
        find_or_create over many names. Names that derive the same slug
        collapse into one tag; blank entries are skipped.
        """
        tags: list[Tag] = []
        seen: set[str] = set()
        for name in names:
            if not name or not name.strip():
                continue
            slug = derive_slug(validate_name(name))
            if slug in seen:
                continue
            seen.add(slug)
            tags.append(self.find_or_create(name))
        return tags

    def merge(self, source_id: str, target_id: str) -> Tag:
        if not source_id or not target_id:
            raise ValidationError("source_id", "Both tags are required")
        if source_id == target_id:
            raise ValidationError("target_id", "Cannot merge a tag into itself")
        target = self._store.merge_tags(source_id, target_id)
        logger.info("tags.merge_done source=%s target=%s count=%s", source_id, target_id, target.count)
        return target

    def _entity(self, kind: ContentKind, entity_id: str):
        if kind == ContentKind.RECIPE:
            entity = self._store.get_recipe(entity_id)
            label = "Recipe"
        else:
            entity = self._store.get_post(entity_id)
            label = "Blog post"
        if entity is None:
            raise NotFoundError(label, entity_id)
        return entity

    def _check_owner(self, entity, user: Optional[CurrentUser]) -> None:
        if user is None:
            raise AuthorizationError()
        if entity.author_id != user.id and not user.is_admin:
            raise AuthorizationError()

    def attach(
        self,
        kind: ContentKind,
        entity_id: str,
        tag_id: str,
        user: Optional[CurrentUser],
    ) -> bool:
        """
        Add a tag to a recipe or post. Only the author or an admin may do so.

        Returns:
            False when the tag was already attached
        """
        entity = self._entity(kind, entity_id)
        self._check_owner(entity, user)
        if self._store.get_tag(tag_id) is None:
            raise NotFoundError("Tag", tag_id)
        if tag_id in entity.tag_ids:
            return False
        self._store.set_entity_tags(kind, entity_id, [*entity.tag_ids, tag_id])
        self._store.recount_tag(tag_id)
        logger.info("tags.attached tag=%s kind=%s entity=%s", tag_id, kind.value, entity_id)
        return True

    def detach(
        self,
        kind: ContentKind,
        entity_id: str,
        tag_id: str,
        user: Optional[CurrentUser],
    ) -> bool:
        """
        Returns:
            False when the tag was not attached
        """
        entity = self._entity(kind, entity_id)
        self._check_owner(entity, user)
        if tag_id not in entity.tag_ids:
            return False
        self._store.set_entity_tags(kind, entity_id, [t for t in entity.tag_ids if t != tag_id])
        self._store.recount_tag(tag_id)
        logger.info("tags.detached tag=%s kind=%s entity=%s", tag_id, kind.value, entity_id)
        return True

    def recount(self, tag_ids: Iterable[str]) -> None:
        for tag_id in dict.fromkeys(tag_ids):
            self._store.recount_tag(tag_id)
