"""
Tests for the in-memory store and the REST-backed store.
"""

import json

import httpx
import pytest

from rockmundo.errors import BackendError
from rockmundo.store import MemoryStore, RestStore


class TestMemoryStore:

    def test_equality_and_membership_filters(self, store):
        assert [r["id"] for r in store.select("cities", country="UK")] == ["c1", "c2", "c3"]
        assert [r["id"] for r in store.select("cities", id=["c4", "c1"])] == ["c1", "c4"]
        assert store.select("cities", country="Narnia") == []

    def test_order_and_limit(self, store):
        rows = store.select("setlist_songs", setlist_id="sl1", order="position.desc", limit=1)
        assert [r["song_id"] for r in rows] == ["s2"]

    def test_rows_are_copies(self, store):
        row = store.get("bands", id="b1")
        row["fame"] = 0
        assert store.get("bands", id="b1")["fame"] == 2000

    def test_insert_assigns_id(self):
        db = MemoryStore()
        row = db.insert("things", {"name": "amp"})
        assert row["id"]
        assert db.get("things", id=row["id"])["name"] == "amp"

    def test_update_returns_changed_rows(self, store):
        changed = store.update("profiles", {"cash": 1}, user_id=["u2", "u3"])
        assert sorted(r["user_id"] for r in changed) == ["u2", "u3"]
        assert store.get("profiles", user_id="u1")["cash"] == 5000

    def test_upsert_on_composite_key(self):
        db = MemoryStore()
        db.upsert("band_city_fans", {"band_id": "b1", "city_id": "c1", "total_fans": 5}, ("band_id", "city_id"))
        db.upsert("band_city_fans", {"band_id": "b1", "city_id": "c1", "total_fans": 9}, ("band_id", "city_id"))
        db.upsert("band_city_fans", {"band_id": "b1", "city_id": "c2", "total_fans": 1}, ("band_id", "city_id"))

        rows = db.select("band_city_fans", order="city_id.asc")
        assert [(r["city_id"], r["total_fans"]) for r in rows] == [("c1", 9), ("c2", 1)]


class TestRestStore:

    def make(self, handler):
        return RestStore("http://db.test/", "secret", transport=httpx.MockTransport(handler))

    def test_select_builds_query(self):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["params"] = dict(request.url.params)
            seen["auth"] = request.headers["authorization"]
            return httpx.Response(200, json=[{"id": "b1"}])

        rows = self.make(handler).select(
            "bands", id="b1", status=["a", "b"], deleted_at=None, is_touring_member=False,
            order="fame.desc", limit=5,
        )

        assert rows == [{"id": "b1"}]
        assert seen["path"] == "/rest/v1/bands"
        assert seen["auth"] == "Bearer secret"
        assert seen["params"] == {
            "select": "*",
            "id": "eq.b1",
            "status": "in.(a,b)",
            "deleted_at": "is.null",
            "is_touring_member": "eq.false",
            "order": "fame.desc",
            "limit": "5",
        }

    def test_insert_returns_representation(self):
        def handler(request):
            assert request.method == "POST"
            assert "return=representation" in request.headers["prefer"]
            body = json.loads(request.content)
            return httpx.Response(201, json=[{**body, "id": "new"}])

        assert self.make(handler).insert("songs", {"title": "Anthem"}) == {"title": "Anthem", "id": "new"}

    def test_upsert_sends_conflict_columns(self):
        def handler(request):
            assert request.url.params["on_conflict"] == "band_id,city_id"
            assert "merge-duplicates" in request.headers["prefer"]
            return httpx.Response(201, json=[{"id": "x"}])

        self.make(handler).upsert("band_city_fans", {"band_id": "b1", "city_id": "c1"}, ("band_id", "city_id"))

    def test_empty_response_body(self):
        store = self.make(lambda request: httpx.Response(204))
        assert store.update("gigs", {"status": "completed"}, id="g1") == []

    def test_error_message_is_passed_through(self):
        store = self.make(lambda request: httpx.Response(400, json={"message": "column does not exist"}))
        with pytest.raises(BackendError, match="column does not exist"):
            store.select("bands")

    def test_transport_failure(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(BackendError):
            self.make(handler).get("bands", id="b1")
