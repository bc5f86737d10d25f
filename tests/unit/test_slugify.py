from __future__ import annotations

import pytest

from src.services.slugify import numbered_slug, slugify


class TestSlugify:
    @pytest.mark.parametrize(
        "text,expected",
        [
            ("Vegetarian", "vegetarian"),
            ("Bolo de Cenoura", "bolo-de-cenoura"),
            ("Crème Brûlée", "creme-brulee"),
            ("  Quick & Easy!  ", "quick-easy"),
            ("C++ / Rust", "c-rust"),
            ("2-Minute Noodles", "2-minute-noodles"),
        ],
    )
    def test_slugs(self, text: str, expected: str) -> None:
        assert slugify(text) == expected

    def test_empty_result_uses_default(self) -> None:
        assert slugify("!!!") == ""
        assert slugify("!!!", default="untitled") == "untitled"

    def test_non_string(self) -> None:
        assert slugify(None, default="x") == "x"  # type: ignore[arg-type]


class TestNumberedSlug:
    def test_suffix(self) -> None:
        assert numbered_slug("vegan", 2) == "vegan-2"
