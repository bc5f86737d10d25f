from __future__ import annotations

from src.app.services.view_cache import ViewCache


class FakeClock:
    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


class TestViewCache:
    def test_set_and_get(self) -> None:
        cache = ViewCache()
        cache.set("/tags", ["a"])

        assert cache.get("/tags") == ["a"]
        assert cache.get("/tags", variant="other") is None

    def test_entries_expire(self) -> None:
        clock = FakeClock()
        cache = ViewCache(ttl_seconds=10, clock=clock)
        cache.set("/tags", ["a"])

        clock.now += 10

        assert cache.get("/tags") is None

    def test_get_or_set_builds_once(self) -> None:
        cache = ViewCache()
        calls: list[int] = []

        def build() -> list[str]:
            calls.append(1)
            return ["built"]

        assert cache.get_or_set("/recipes", build, variant=("page", "1")) == ["built"]
        assert cache.get_or_set("/recipes", build, variant=("page", "1")) == ["built"]
        assert len(calls) == 1

    def test_invalidate_drops_path_and_children(self) -> None:
        cache = ViewCache()
        cache.set("/tags", 1)
        cache.set("/tags/vegan", 2)
        cache.set("/tags", 3, variant="q")
        cache.set("/tagsx", 4)
        cache.set("/admin/tags", 5)

        removed = cache.invalidate("/tags")

        assert removed == 3
        assert cache.get("/tagsx") == 4
        assert cache.get("/admin/tags") == 5

    def test_writes_purge_expired_entries(self) -> None:
        clock = FakeClock()
        cache = ViewCache(ttl_seconds=1, clock=clock)
        for i in range(1000):
            cache.set("/recipes", i, variant=("q", str(i)))

        clock.now = 10_000
        cache.set("/recipes", "fresh", variant=("q", "new"))

        assert len(cache) == 1
        assert cache.get("/recipes", variant=("q", "new")) == "fresh"

    def test_oldest_entry_is_evicted_past_the_cap(self) -> None:
        cache = ViewCache(max_entries=3)
        for path in ("/a", "/b", "/c", "/d"):
            cache.set(path, path)

        assert len(cache) == 3
        assert cache.get("/a") is None
        assert cache.get("/d") == "/d"

    def test_rewriting_a_key_refreshes_its_position(self) -> None:
        cache = ViewCache(max_entries=2)
        cache.set("/a", 1)
        cache.set("/b", 2)
        cache.set("/a", 3)
        cache.set("/c", 4)

        assert cache.get("/a") == 3
        assert cache.get("/b") is None

    def test_per_entry_ttl(self) -> None:
        clock = FakeClock()
        cache = ViewCache(ttl_seconds=100, clock=clock)
        cache.set("/short", 1, ttl_seconds=5)
        cache.set("/long", 2)

        clock.now += 5

        assert cache.get("/short") is None
        assert cache.get("/long") == 2
