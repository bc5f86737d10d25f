from __future__ import annotations

from src.app.domain.errors import UpstreamError
from src.app.domain.models import ContentKind, Recipe, Tag, UserRole
from src.app.infra.db.memory_content_repo import InMemoryContentStore
from src.app.schemas.auth import CurrentUser
from src.app.services.tag_actions import ADMIN_TAGS_VIEW, PUBLIC_TAGS_VIEW, TagActions
from src.app.services.tag_registry import TagRegistry
from src.app.services.view_cache import ViewCache

ADMIN = CurrentUser(id="admin-1", role=UserRole.ADMIN)
USER = CurrentUser(id="user-1")


class BrokenStore(InMemoryContentStore):
    def insert_tag(self, name: str, slug: str, color: str) -> Tag:
        raise RuntimeError("disk on fire")

    def delete_tag(self, tag_id: str) -> bool:
        raise UpstreamError("delete tag", "connection reset")


def make_actions(store: InMemoryContentStore | None = None) -> tuple[TagActions, InMemoryContentStore, ViewCache]:
    store = store or InMemoryContentStore()
    views = ViewCache()
    return TagActions(TagRegistry(store), views), store, views


def warm(views: ViewCache) -> None:
    views.set(PUBLIC_TAGS_VIEW, ["cached"])
    views.set(ADMIN_TAGS_VIEW, ["cached"])
    views.set("/recipes", ["cached"])
    views.set("/blog", ["cached"], variant=(("tags", "veggie"),))
    views.set("/admin/recipes", ["cached"])


class TestAuthorization:
    def test_anonymous_caller_is_unauthorized(self) -> None:
        actions, store, _ = make_actions()

        result = actions.create(None, "Vegan")

        assert result.success is False
        assert result.error == "Unauthorized"
        assert store.list_tags() == []

    def test_regular_user_cannot_mutate_tags(self) -> None:
        actions, _, _ = make_actions()

        for result in (
            actions.create(USER, "Vegan"),
            actions.update(USER, "t1", name="x"),
            actions.delete(USER, "t1"),
            actions.merge(USER, "a", "b"),
            actions.bulk_create(USER, ["a"]),
        ):
            assert result.model_dump(exclude_none=True) == {
                "success": False,
                "error": "Unauthorized",
                "code": "unauthorized",
            }


class TestMutations:
    def test_create_success_invalidates_tag_and_listing_views(self) -> None:
        actions, _, views = make_actions()
        warm(views)

        result = actions.create(ADMIN, "Vegan", "#00AA00")

        assert result.success is True
        assert result.tag is not None
        assert result.tag.slug == "vegan"
        assert result.tag.color == "#00aa00"
        assert views.get(PUBLIC_TAGS_VIEW) is None
        assert views.get(ADMIN_TAGS_VIEW) is None
        assert views.get("/recipes") is None
        assert views.get("/admin/recipes") == ["cached"]

    def test_failure_keeps_cached_views(self) -> None:
        actions, _, views = make_actions()
        warm(views)

        result = actions.create(ADMIN, "x" * 51)

        assert result.success is False
        assert result.field == "name"
        assert result.code == "validation"
        assert views.get(PUBLIC_TAGS_VIEW) == ["cached"]

    def test_delete_in_use(self) -> None:
        store = InMemoryContentStore(
            tags=[Tag(id="t1", name="Quick", slug="quick")],
            recipes=[Recipe(id="r1", slug="r1", title="Toast", tag_ids=["t1"])],
        )
        actions, _, _ = make_actions(store)

        result = actions.delete(ADMIN, "t1")

        assert result.success is False
        assert result.code == "in_use"
        assert result.error == "Cannot delete tag that is being used"

    def test_unknown_tag(self) -> None:
        actions, _, _ = make_actions()

        result = actions.update(ADMIN, "missing", name="Anything")

        assert result.success is False
        assert result.code == "not_found"
        assert result.error == "Tag not found"

    def test_merge_and_bulk(self) -> None:
        actions, store, _ = make_actions()
        created = actions.bulk_create(ADMIN, ["Veggie", "Vegetarian"])
        assert created.success is True
        source, target = created.tags

        result = actions.merge(ADMIN, source.id, target.id)

        assert result.success is True
        assert result.tag.id == target.id
        assert store.get_tag(source.id) is None

    def test_merge_update_delete_invalidate_listings(self) -> None:
        store = InMemoryContentStore(
            tags=[
                Tag(id="t1", name="Veggie", slug="veggie"),
                Tag(id="t2", name="Vegetarian", slug="vegetarian"),
            ],
        )
        actions, _, views = make_actions(store)

        for mutate in (
            lambda: actions.update(ADMIN, "t2", color="#112233"),
            lambda: actions.merge(ADMIN, "t1", "t2"),
            lambda: actions.delete(ADMIN, "t2"),
        ):
            warm(views)
            assert mutate().success is True
            assert views.get("/recipes") is None
            assert views.get("/blog", variant=(("tags", "veggie"),)) is None

    def test_unexpected_failure_becomes_generic_error(self) -> None:
        actions, _, views = make_actions(BrokenStore())
        warm(views)

        result = actions.create(ADMIN, "Vegan")

        assert result.success is False
        assert result.error == "Failed to create tag"
        assert views.get(PUBLIC_TAGS_VIEW) == ["cached"]

    def test_upstream_failure(self) -> None:
        store = BrokenStore(tags=[Tag(id="t1", name="Quick", slug="quick")])
        actions, _, _ = make_actions(store)

        result = actions.delete(ADMIN, "t1")

        assert result.success is False
        assert result.code == "upstream"
        assert result.error == "Failed to delete tag"


class TestAssociations:
    def _store(self) -> InMemoryContentStore:
        return InMemoryContentStore(
            tags=[Tag(id="t1", name="Quick", slug="quick")],
            recipes=[Recipe(id="r1", slug="r1", title="Toast", published=True, author_id=USER.id)],
        )

    def test_owner_can_attach(self) -> None:
        actions, store, views = make_actions(self._store())
        warm(views)

        result = actions.attach(USER, ContentKind.RECIPE, "r1", "t1")

        assert result.success is True
        assert store.get_recipe("r1").tag_ids == ["t1"]
        assert views.get("/recipes") is None
        assert views.get(PUBLIC_TAGS_VIEW) is None

    def test_anonymous_attach_is_refused(self) -> None:
        actions, store, _ = make_actions(self._store())

        result = actions.attach(None, ContentKind.RECIPE, "r1", "t1")

        assert result.error == "Unauthorized"
        assert store.get_recipe("r1").tag_ids == []

    def test_detach_not_attached(self) -> None:
        actions, _, _ = make_actions(self._store())

        result = actions.detach(USER, ContentKind.RECIPE, "r1", "t1")

        assert result.success is True
        assert result.message == "Tag not associated"
