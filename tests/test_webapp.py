"""
HTTP tests for the FastAPI app, run against the in-memory world.
"""

import pytest

from rockmundo.errors import BackendError
from rockmundo.store import MemoryStore


class TestRules:

    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"

    def test_royalty_distribution_accepts_camel_case(self, client):
        resp = client.post("/rules/royalty-distribution", json={
            "grossRevenue": 1000,
            "artistPct": 20,
            "advanceAmount": 150,
            "collaborators": {"alice": 60, "bob": 40},
        })
        assert resp.status_code == 200
        body = resp.json()
        assert body["artist_payable"] == 50
        assert [s["amount"] for s in body["shares"]] == [30, 20]

    def test_royalty_rule_violation_is_400(self, client):
        resp = client.post("/rules/royalty-distribution", json={"gross_revenue": 100, "artist_pct": 150})
        assert resp.status_code == 400
        assert resp.json() == {"error": "Artist royalty percentage must be between 0 and 100"}

    def test_malformed_body_is_422(self, client):
        resp = client.post("/rules/royalty-distribution", json={"grossRevenue": "lots"})
        assert resp.status_code == 422

    def test_festival_score(self, client):
        resp = client.post("/rules/festival-score", json={
            "songFamiliarity": 80, "gearQuality": 60, "bandChemistry": 70,
            "setlistFlow": 50, "crowdManagement": 90, "eventResponses": 100,
            "crowdEnergyAvg": 100, "basePayment": 5000,
        })
        assert resp.status_code == 200
        body = resp.json()
        assert body["performance_score"] == 74
        assert body["rewards"]["merch_net"] == 2368

    def test_song_quality(self, client):
        resp = client.post("/rules/song-quality", json={"genre": "rock", "songsWritten": 4})
        assert resp.status_code == 200
        assert resp.json()["experience_bonus"] == 16
        assert resp.json()["skill_ceiling"] == 500


class TestFunctions:

    def test_festival_performance(self, client, store):
        resp = client.post("/functions/complete-festival-performance", json={
            "participationId": "p1",
            "bandId": "b1",
            "performanceScore": 90,
            "crowdEnergyPeak": 95,
            "crowdEnergyAvg": 80,
            "eventResponses": [95],
        })
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["payment_earned"] == 13440
        assert len(body["reviews"]) == 3
        assert store.get("festival_participants", id="p1")["status"] == "performed"

    def test_festival_unknown_participation_is_404(self, client):
        resp = client.post("/functions/complete-festival-performance", json={
            "participationId": "nope", "bandId": "b1",
            "performanceScore": 50, "crowdEnergyPeak": 50, "crowdEnergyAvg": 50,
        })
        assert resp.status_code == 404
        assert resp.json() == {"error": "Participation not found: nope"}

    def test_festival_score_out_of_range_is_422(self, client):
        resp = client.post("/functions/complete-festival-performance", json={
            "participationId": "p1", "bandId": "b1",
            "performanceScore": 150, "crowdEnergyPeak": 50, "crowdEnergyAvg": 50,
        })
        assert resp.status_code == 422

    def test_fan_conversion(self, client):
        resp = client.post("/functions/fan-conversion", json={
            "gigId": "g1", "bandId": "b1", "venueId": "v1",
            "actualAttendance": 1000, "overallRating": 25, "performanceGrade": "C",
            "bandFame": 0, "bandGenre": "rock",
        })
        assert resp.status_code == 200
        assert resp.json()["new_fans_gained"] == 150
        assert resp.json()["city_name"] == "Manchester"

    def test_execute_gig(self, client, store):
        resp = client.post("/functions/execute-gig", json={
            "gigId": "g1", "bandId": "b1", "setlistId": "sl1",
            "venueCapacity": 400, "ticketPrice": 15,
        })
        assert resp.status_code == 200
        body = resp.json()
        assert [p["song_title"] for p in body["song_performances"]] == ["Anthem", "Ballad"]
        assert store.get("gigs", id="g1")["status"] == "completed"

    def test_execute_gig_empty_setlist_is_400(self, client):
        resp = client.post("/functions/execute-gig", json={
            "gigId": "g1", "bandId": "b1", "setlistId": "none",
            "venueCapacity": 400, "ticketPrice": 15,
        })
        assert resp.status_code == 400
        assert resp.json() == {"error": "No songs in setlist"}


class TestFinances:

    def test_band_finances(self, client):
        resp = client.get("/bands/b1/finances")
        assert resp.status_code == 200
        body = resp.json()
        assert body["balance"] == "$1,000"
        assert len(body["ledger"]) == 6

    def test_unknown_band(self, client):
        resp = client.get("/bands/missing/finances")
        assert resp.status_code == 404
        assert resp.json() == {"error": "Band not found"}


class FailingStore(MemoryStore):
    """World whose reads blow up with a preset exception."""

    def __init__(self, exc):
        super().__init__()
        self.exc = exc

    def select(self, table, **kwargs):
        raise self.exc


@pytest.fixture
def failing_client():
    from fastapi.testclient import TestClient

    from rockmundo.webapp import app, get_game_store

    def install(exc):
        app.dependency_overrides[get_game_store] = lambda: FailingStore(exc)
        return TestClient(app, raise_server_exceptions=False)

    yield install
    app.dependency_overrides.clear()


class TestErrorMapping:

    def test_backend_failure_is_502(self, failing_client):
        client = failing_client(BackendError('relation "bands" does not exist'))
        resp = client.get("/bands/b1/finances")
        assert resp.status_code == 502
        assert resp.json() == {"error": 'relation "bands" does not exist'}

    def test_unexpected_failure_is_500_with_json_body(self, failing_client):
        client = failing_client(RuntimeError("disk on fire"))
        resp = client.get("/bands/b1/finances")
        assert resp.status_code == 500
        assert resp.json() == {"error": "disk on fire"}

    def test_huge_gross_revenue_is_rejected(self, failing_client):
        client = failing_client(RuntimeError("unused"))
        resp = client.post("/rules/royalty-distribution", json={"grossRevenue": 1e308, "artistPct": 50})
        assert resp.status_code == 400
        assert resp.json() == {"error": "Amounts must be finite"}
