# src/app/services/tag_actions.py
"""
Admin-facing tag mutations.

Every operation checks the caller, runs the registry call and folds any
failure into a MutationResult instead of raising. Successful writes drop the
cached admin and public tag views.
"""
from __future__ import annotations

import logging
from typing import Callable, Iterable, Optional

from src.app.domain.errors import (
    AuthorizationError,
    NotFoundError,
    TagInUseError,
    UpstreamError,
    ValidationError,
)
from src.app.domain.models import ContentKind, Tag
from src.app.schemas.auth import CurrentUser
from src.app.schemas.tags import MutationResult, TagResponse
from src.app.services.tag_registry import TagRegistry
from src.app.services.view_cache import ViewCache

logger = logging.getLogger(__name__)

ADMIN_TAGS_VIEW = "/admin/tags"
PUBLIC_TAGS_VIEW = "/tags"
# listings filter and render by tag slug, so any tag change can stale them
LISTING_VIEWS = ("/recipes", "/blog")


class TagActions:
    def __init__(self, registry: TagRegistry, views: ViewCache):
        self._registry = registry
        self._views = views

    def _run(
        self,
        action: str,
        user: Optional[CurrentUser],
        operation: Callable[[], MutationResult],
        admin_only: bool = True,
        extra_views: tuple[str, ...] = (),
    ) -> MutationResult:
        if user is None or (admin_only and not user.is_admin):
            logger.info("tags.%s_refused user=%s", action, user.id if user else None)
            return MutationResult.fail("Unauthorized", code="unauthorized")
        try:
            result = operation()
        except ValidationError as exc:
            return MutationResult.fail(exc.message, code="validation", field=exc.field)
        except AuthorizationError:
            return MutationResult.fail("Unauthorized", code="unauthorized")
        except NotFoundError as exc:
            return MutationResult.fail(f"{exc.resource} not found", code="not_found")
        except TagInUseError as exc:
            return MutationResult.fail(str(exc), code="in_use")
        except UpstreamError as exc:
            logger.error("tags.%s_failed user=%s error=%s", action, user.id, exc)
            return MutationResult.fail(f"Failed to {action} tag", code="upstream")
        except Exception:
            logger.exception("tags.%s_unexpected_error user=%s", action, user.id)
            return MutationResult.fail(f"Failed to {action} tag")

        self._views.invalidate(ADMIN_TAGS_VIEW, PUBLIC_TAGS_VIEW, *extra_views)
        return result

    def create(self, user: Optional[CurrentUser], name: str, color: Optional[str] = None) -> MutationResult:
        return self._run(
            "create",
            user,
            lambda: MutationResult.ok(self._registry.create(name, color)),
            extra_views=LISTING_VIEWS,
        )

    def update(
        self,
        user: Optional[CurrentUser],
        tag_id: str,
        name: Optional[str] = None,
        color: Optional[str] = None,
    ) -> MutationResult:
        return self._run(
            "update",
            user,
            lambda: MutationResult.ok(self._registry.update(tag_id, name, color)),
            extra_views=LISTING_VIEWS,
        )

    def delete(self, user: Optional[CurrentUser], tag_id: str) -> MutationResult:
        def operation() -> MutationResult:
            self._registry.delete(tag_id)
            return MutationResult.ok()

        return self._run("delete", user, operation, extra_views=LISTING_VIEWS)

    def merge(self, user: Optional[CurrentUser], source_id: str, target_id: str) -> MutationResult:
        return self._run(
            "merge",
            user,
            lambda: MutationResult.ok(self._registry.merge(source_id, target_id)),
            extra_views=LISTING_VIEWS,
        )

    def bulk_create(self, user: Optional[CurrentUser], names: Iterable[str]) -> MutationResult:
        def operation() -> MutationResult:
            tags: list[Tag] = self._registry.bulk_create(names)
            return MutationResult(success=True, tags=[TagResponse.from_domain(t) for t in tags])

        return self._run("create", user, operation, extra_views=LISTING_VIEWS)

    def attach(
        self,
        user: Optional[CurrentUser],
        kind: ContentKind,
        entity_id: str,
        tag_id: str,
    ) -> MutationResult:
        def operation() -> MutationResult:
            changed = self._registry.attach(kind, entity_id, tag_id, user)
            return MutationResult.ok(message=None if changed else "Tag already associated")

        return self._run("attach", user, operation, admin_only=False, extra_views=(f"/{kind.value}",))

    def detach(
        self,
        user: Optional[CurrentUser],
        kind: ContentKind,
        entity_id: str,
        tag_id: str,
    ) -> MutationResult:
        def operation() -> MutationResult:
            changed = self._registry.detach(kind, entity_id, tag_id, user)
            return MutationResult.ok(message=None if changed else "Tag not associated")

        return self._run("detach", user, operation, admin_only=False, extra_views=(f"/{kind.value}",))
