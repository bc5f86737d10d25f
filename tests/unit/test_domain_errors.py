from __future__ import annotations

import pytest

from src.app.domain.errors import (
    AuthorizationError,
    ContentError,
    InvalidTransitionError,
    NotFoundError,
    StorageError,
    TagInUseError,
    UpstreamError,
    ValidationError,
)


class TestContentError:
    def test_base_exception(self) -> None:
        error = ContentError("Base error")
        assert str(error) == "Base error"
        assert isinstance(error, Exception)


class TestValidationError:
    def test_carries_field_and_message(self) -> None:
        error = ValidationError("name", "Tag name is required")
        assert error.field == "name"
        assert error.message == "Tag name is required"
        assert str(error) == "Tag name is required"
        assert isinstance(error, ContentError)


class TestAuthorizationError:
    def test_default_message(self) -> None:
        assert str(AuthorizationError()) == "Unauthorized"

    def test_custom_message(self) -> None:
        assert str(AuthorizationError("Not your recipe")) == "Not your recipe"


class TestNotFoundError:
    def test_message_names_resource(self) -> None:
        error = NotFoundError("Tag", "abc")
        assert error.resource == "Tag"
        assert error.identifier == "abc"
        assert "Tag not found: abc" in str(error)


class TestTagInUseError:
    def test_usage_is_kept(self) -> None:
        error = TagInUseError("t1", 3)
        assert error.tag_id == "t1"
        assert error.usage == 3
        assert str(error) == "Cannot delete tag that is being used"


class TestInvalidTransitionError:
    def test_states_are_kept(self) -> None:
        error = InvalidTransitionError("p1", "published", "draft")
        assert error.current == "published"
        assert error.requested == "draft"
        assert "p1" in str(error)


class TestUpstreamError:
    def test_message(self) -> None:
        error = UpstreamError("find_recipes", "connection reset")
        assert error.operation == "find_recipes"
        assert error.reason == "connection reset"
        assert "find_recipes" in str(error)
        assert "connection reset" in str(error)


class TestStorageError:
    def test_storage_error(self) -> None:
        error = StorageError("R2 credentials not configured")
        assert isinstance(error, ContentError)


class TestExceptionHierarchy:
    @pytest.mark.parametrize(
        "error",
        [
            ValidationError("name", "x"),
            AuthorizationError(),
            NotFoundError("Tag", "x"),
            TagInUseError("x", 1),
            InvalidTransitionError("x", "a", "b"),
            UpstreamError("op", "x"),
            StorageError("x"),
        ],
    )
    def test_all_inherit_from_base(self, error: Exception) -> None:
        assert isinstance(error, ContentError)

    def test_can_catch_with_base(self) -> None:
        with pytest.raises(ContentError):
            raise TagInUseError("t1", 2)
