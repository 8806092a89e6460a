from __future__ import annotations

import pytest

from staffauth.services._shared.ports.cache_store import InMemoryCacheStore
from staffauth.services.users.cache import UserCache, count_key, list_key, single_key
from tests.helpers.cache import FailingStore


class TestKeys:
    def test_layout(self):
        assert single_key(5) == "users:single:5"
        assert list_key(1, 10, None, None) == "users:list:page:1:limit:10:search:none:role:all"
        assert count_key(None, "ADMIN") == "users:count:search:none:role:=ADMIN"

    def test_present_values_never_collide_with_absence(self):
        assert list_key(1, 10, "none", None) != list_key(1, 10, None, None)
        assert count_key(None, "all") != count_key(None, None)

    def test_separators_in_search_are_encoded(self):
        # "a:role:=ADMIN" must not read as a role filter
        tricky = count_key("a:role:=ADMIN", None)

        assert tricky == "users:count:search:=a%3Arole%3A%3DADMIN:role:all"
        assert tricky != count_key("a", "ADMIN")

    @pytest.mark.parametrize("search", ["john", "John", "jo hn", "%"])
    def test_distinct_searches_get_distinct_keys(self, search):
        assert list_key(1, 10, search, None) != list_key(1, 10, search + "x", None)


class TestUserCache:
    def test_round_trips_json(self):
        cache = UserCache(InMemoryCacheStore())
        cache.put_json("users:single:1", {"id": 1, "email": "a@b.co"}, 600)

        assert cache.get_json("users:single:1") == {"id": 1, "email": "a@b.co"}

    def test_corrupt_entry_is_dropped(self):
        store = InMemoryCacheStore()
        store.set("users:single:1", "{not json", 600)
        cache = UserCache(store)

        assert cache.get_json("users:single:1") is None
        assert store.get("users:single:1") is None

    def test_invalidate_user_and_collections(self):
        store = InMemoryCacheStore()
        cache = UserCache(store)
        for key in (single_key(1), single_key(2), list_key(1, 10, None, None), count_key(None, None)):
            store.set(key, "1", 300)

        cache.invalidate_user_and_collections(1)

        assert store.keys() == [single_key(2)]

    def test_outage_is_swallowed_and_logged(self, caplog):
        cache = UserCache(FailingStore())

        assert cache.get_json("users:single:1") is None
        cache.put_json("users:single:1", {}, 600)
        cache.invalidate_user_and_collections(1)

        warnings = [r for r in caplog.records if r.levelname == "WARNING"]
        assert warnings
        assert all(r.name == "staffauth.services.users.cache" for r in warnings)
