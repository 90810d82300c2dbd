"""
Shared test fixtures.

Provides: a seeded RNG, an in-memory game world, and a FastAPI test client
wired to that world.
Dependencies: pytest, fastapi
"""

import random

import pytest

from rockmundo.store import MemoryStore


def world_tables():
    return {
        "bands": [{
            "id": "b1", "name": "The Static", "genre": "rock", "fame": 2000,
            "chemistry_level": 60, "band_balance": 1000, "performance_count": 3,
            "total_fans": 500, "casual_fans": 400, "dedicated_fans": 80,
            "superfans": 20, "global_fame": 10,
        }],
        "band_members": [
            {"id": "m1", "band_id": "b1", "user_id": "u1", "skill_contribution": 60, "is_touring_member": False},
            {"id": "m2", "band_id": "b1", "user_id": "u2", "skill_contribution": 80, "is_touring_member": False},
            {"id": "m3", "band_id": "b1", "user_id": "u3", "skill_contribution": 90, "is_touring_member": True},
        ],
        "profiles": [
            {"id": "pr1", "user_id": "u1", "fame": 100, "cash": 5000},
            {"id": "pr2", "user_id": "u2", "fame": 50, "cash": 0},
            {"id": "pr3", "user_id": "u3", "fame": 10, "cash": 0},
        ],
        "songs": [
            {"id": "s1", "title": "Anthem", "genre": "rock", "quality_score": 800},
            {"id": "s2", "title": "Ballad", "genre": "rock", "quality_score": 600},
        ],
        "setlist_songs": [
            {"id": "ss2", "setlist_id": "sl1", "song_id": "s2", "position": 2},
            {"id": "ss1", "setlist_id": "sl1", "song_id": "s1", "position": 1},
        ],
        "song_rehearsals": [
            {"id": "r1", "band_id": "b1", "song_id": "s1", "rehearsal_level": 80},
        ],
        "band_stage_equipment": [
            {"id": "e1", "band_id": "b1", "quality_rating": 70, "purchase_cost": 1000},
            {"id": "e2", "band_id": "b1", "quality_rating": 50, "purchase_cost": 500},
        ],
        "band_crew_members": [
            {"id": "c1", "band_id": "b1", "skill_level": 60, "salary_per_gig": 200},
        ],
        "player_merchandise": [
            {"id": "tee", "band_id": "b1", "price": 20, "stock_quantity": 10},
            {"id": "poster", "band_id": "b1", "price": 5, "stock_quantity": 1000},
        ],
        "gigs": [{"id": "g1", "venue_id": "v1", "status": "scheduled"}],
        "venues": [{"id": "v1", "city_id": "c1", "location": "Old Hall", "capacity": 400}],
        "cities": [
            {"id": "c1", "name": "Manchester", "country": "UK"},
            {"id": "c2", "name": "Leeds", "country": "UK"},
            {"id": "c3", "name": "Liverpool", "country": "UK"},
            {"id": "c4", "name": "Paris", "country": "France"},
        ],
        "age_demographics": [
            {"id": "d1", "name": "Teens", "genre_preferences": {"rock": 3.0}},
            {"id": "d2", "name": "Adults", "genre_preferences": {"rock": 1.0}},
        ],
        "festival_participants": [
            {"id": "p1", "event_id": "f1", "user_id": "u1", "slot_type": "main", "payout_amount": 8000,
             "status": "confirmed"},
            {"id": "p2", "event_id": "f1", "user_id": "u2", "slot_type": "opener", "payout_amount": 0,
             "status": "confirmed"},
        ],
        "companies": [{"id": "co1", "name": "Static Records", "balance": 1000}],
    }


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def store():
    return MemoryStore(world_tables())


@pytest.fixture
def client(store):
    from fastapi.testclient import TestClient

    from rockmundo.webapp import app, get_game_store, get_rng

    app.dependency_overrides[get_game_store] = lambda: store
    app.dependency_overrides[get_rng] = lambda: random.Random(42)
    yield TestClient(app)
    app.dependency_overrides.clear()
