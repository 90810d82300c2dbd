# rockmundo/gigs.py
from __future__ import annotations

import math
import random
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Sequence, Tuple

from rockmundo.balance import clamp
from rockmundo.config import (
    DEFAULT_CREW_SKILL,
    DEFAULT_EQUIPMENT_QUALITY,
    DEFAULT_MEMBER_SKILL,
    DEFAULT_SONG_QUALITY,
    EQUIPMENT_WEAR_RATE,
    GIG_ATTENDANCE_SWING,
    GIG_BASE_ATTENDANCE,
    GRADE_FLOOR,
    GRADE_THRESHOLDS,
    RATING_MAX,
)
from rockmundo.errors import NotFoundError, ValidationError
from rockmundo.logger import get_logger
from rockmundo.models import GigResult, PerformanceFactors, SongPerformance
from rockmundo.store import GameStore

logger = get_logger(__name__)

# Share of the 0..25 rating each factor can contribute
SONG_WEIGHTS = {
    "song_quality": 0.30,
    "rehearsal": 0.20,
    "chemistry": 0.15,
    "equipment": 0.10,
    "crew": 0.10,
    "member_skill": 0.15,
}

# (min score, label), highest first
CROWD_RESPONSES: List[Tuple[float, str]] = [
    (22.0, "ecstatic"),
    (18.0, "enthusiastic"),
    (14.0, "engaged"),
    (10.0, "mixed"),
]


def _avg(rows: Sequence[Mapping[str, Any]], key: str, default: float) -> float:
    if not rows:
        return default
    return sum((r.get(key) or default) for r in rows) / len(rows)


def crowd_response(score: float) -> str:
    for threshold, label in CROWD_RESPONSES:
        if score >= threshold:
            return label
    return "disappointed"


def calculate_song_performance(factors: PerformanceFactors) -> Tuple[float, str, Dict[str, float]]:
    """
    Score one song on the 0..25 scale.

    A full room lifts the whole song a little; an empty one drags it down by
    up to 15%.
    """
    parts = {
        "song_quality": clamp(factors.song_quality / 1000, 0.0, 1.0),
        "rehearsal": clamp(factors.rehearsal_level / 100, 0.0, 1.0),
        "chemistry": clamp(factors.band_chemistry / 100, 0.0, 1.0),
        "equipment": clamp(factors.equipment_quality / 100, 0.0, 1.0),
        "crew": clamp(factors.crew_skill_level / 100, 0.0, 1.0),
        "member_skill": clamp(factors.member_skill_average / 100, 0.0, 1.0),
    }
    room = 0.85 + 0.15 * clamp(factors.venue_capacity_used / 100, 0.0, 1.0)

    breakdown = {
        name: round(RATING_MAX * SONG_WEIGHTS[name] * value * room, 2)
        for name, value in parts.items()
    }
    score = round(clamp(sum(breakdown.values()), 0.0, RATING_MAX), 2)
    return score, crowd_response(score), breakdown


def performance_grade(rating: float) -> str:
    for threshold, grade in GRADE_THRESHOLDS:
        if rating >= threshold:
            return grade
    return GRADE_FLOOR


def merch_sales(
    attendance: int,
    fame: float,
    rating: float,
    items: Sequence[Mapping[str, Any]],
) -> Tuple[int, int, Dict[str, int]]:
    """
    Returns (revenue, items_sold, sold_per_item_id).

    Buyers spread evenly across the stocked items; an item that sells out
    hands its leftover buyers to the next one.
    """
    stocked = [i for i in items if (i.get("stock_quantity") or 0) > 0]
    if attendance <= 0 or not stocked:
        return 0, 0, {}

    buy_rate = 0.05 + (rating / RATING_MAX) * 0.15 + min(0.10, fame / 100000)
    buyers = math.floor(attendance * buy_rate)

    sold: Dict[str, int] = {}
    revenue = 0.0
    remaining = buyers
    for n, item in enumerate(stocked):
        want = math.ceil(remaining / (len(stocked) - n))
        count = min(want, int(item["stock_quantity"]))
        sold[item["id"]] = count
        revenue += count * float(item.get("price") or 0)
        remaining -= count

    return int(round(revenue)), buyers - remaining, sold


def chemistry_change(rating: float) -> int:
    if rating >= 20:
        return 3
    if rating >= 17:
        return 2
    if rating >= 14:
        return 1
    if rating < 10:
        return -1
    return 0


def execute_gig(
    store: GameStore,
    *,
    gig_id: str,
    band_id: str,
    setlist_id: str,
    venue_capacity: int,
    ticket_price: float,
    rng: random.Random,
) -> GigResult:
    if venue_capacity <= 0:
        raise ValidationError("Venue capacity must be positive")

    setlist = store.select("setlist_songs", setlist_id=setlist_id, order="position.asc")
    if not setlist:
        raise ValidationError("No songs in setlist")

    band = store.get("bands", id=band_id)
    if not band:
        raise NotFoundError("Band not found")

    song_ids = [s["song_id"] for s in setlist]
    songs = {s["id"]: s for s in store.select("songs", id=song_ids)}
    equipment = store.select("band_stage_equipment", band_id=band_id)
    crew = store.select("band_crew_members", band_id=band_id)
    rehearsals = {
        r["song_id"]: r for r in store.select("song_rehearsals", band_id=band_id, song_id=song_ids)
    }
    members = store.select("band_members", band_id=band_id, is_touring_member=False)
    merch = store.select("player_merchandise", band_id=band_id)

    equipment_quality = _avg(equipment, "quality_rating", DEFAULT_EQUIPMENT_QUALITY)
    crew_skill = _avg(crew, "skill_level", DEFAULT_CREW_SKILL)
    member_skill = _avg(members, "skill_contribution", DEFAULT_MEMBER_SKILL)
    chemistry = band.get("chemistry_level") or 0

    swing = rng.uniform(-GIG_ATTENDANCE_SWING / 2, GIG_ATTENDANCE_SWING / 2)
    attendance = math.floor(venue_capacity * GIG_BASE_ATTENDANCE * (1 + swing))
    attendance = max(1, min(venue_capacity, attendance))
    capacity_used = attendance / venue_capacity * 100

    performances: List[SongPerformance] = []
    for position, entry in enumerate(setlist, start=1):
        song = songs.get(entry["song_id"], {})
        rehearsal = rehearsals.get(entry["song_id"], {})
        score, response, breakdown = calculate_song_performance(PerformanceFactors(
            song_quality=song.get("quality_score") or DEFAULT_SONG_QUALITY,
            rehearsal_level=rehearsal.get("rehearsal_level") or 0,
            band_chemistry=chemistry,
            equipment_quality=equipment_quality,
            crew_skill_level=crew_skill,
            member_skill_average=member_skill,
            venue_capacity_used=capacity_used,
        ))
        performances.append(SongPerformance(
            song_id=entry["song_id"],
            song_title=song.get("title") or "Unknown",
            position=position,
            score=score,
            crowd_response=response,
            breakdown=breakdown,
        ))

    rating = sum(p.score for p in performances) / len(performances)
    grade = performance_grade(rating)

    fame = band.get("fame") or 0
    merch_revenue, merch_sold, sold_by_item = merch_sales(attendance, fame, rating, merch)

    crew_costs = sum((c.get("salary_per_gig") or 0) for c in crew)
    wear = round(sum((e.get("purchase_cost") or 0) * EQUIPMENT_WEAR_RATE for e in equipment))
    ticket_revenue = int(round(attendance * ticket_price))
    total_costs = int(crew_costs + wear)
    net_profit = ticket_revenue + merch_revenue - total_costs
    fame_gained = int(round((rating / RATING_MAX) * attendance * 0.5))
    chem_delta = chemistry_change(rating)

    logger.debug("gig %s: attendance=%d rating=%.2f grade=%s", gig_id, attendance, rating, grade)

    outcome = store.insert("gig_outcomes", {
        "gig_id": gig_id,
        "overall_rating": rating,
        "actual_attendance": attendance,
        "attendance_percentage": capacity_used,
        "ticket_revenue": ticket_revenue,
        "merch_revenue": merch_revenue,
        "total_revenue": ticket_revenue + merch_revenue,
        "crew_cost": int(crew_costs),
        "equipment_cost": int(wear),
        "total_costs": total_costs,
        "net_profit": net_profit,
        "performance_grade": grade,
        "equipment_quality_avg": equipment_quality,
        "crew_skill_avg": crew_skill,
        "band_chemistry_level": chemistry,
        "member_skill_avg": member_skill,
        "fame_gained": fame_gained,
        "chemistry_change": chem_delta,
        "merch_items_sold": merch_sold,
    })

    for p in performances:
        store.insert("gig_song_performances", {
            "gig_outcome_id": outcome["id"],
            "song_id": p.song_id,
            "song_title": p.song_title,
            "position": p.position,
            "performance_score": p.score,
            "crowd_response": p.crowd_response,
            **{f"{name}_contrib": value for name, value in p.breakdown.items()},
        })

    for item in merch:
        if sold_by_item.get(item["id"]):
            store.update("player_merchandise",
                         {"stock_quantity": item["stock_quantity"] - sold_by_item[item["id"]]},
                         id=item["id"])

    store.update("gigs", {"status": "completed"}, id=gig_id)
    store.update("bands", {
        "fame": fame + fame_gained,
        "chemistry_level": int(clamp(chemistry + chem_delta, 0, 100)),
        "performance_count": (band.get("performance_count") or 0) + 1,
        "band_balance": (band.get("band_balance") or 0) + net_profit,
    }, id=band_id)

    fame_per_member = fame_gained // max(1, len(members))
    for member in members:
        profile = store.get("profiles", user_id=member["user_id"])
        if profile:
            store.update("profiles", {"fame": (profile.get("fame") or 0) + fame_per_member},
                         user_id=member["user_id"])

    store.insert("band_earnings", {
        "band_id": band_id,
        "amount": net_profit,
        "source": "gig",
        "created_at": datetime.now(timezone.utc).isoformat(),
        "description": f"Gig performance ({attendance} attendance, rating: {rating:.1f})",
        "metadata": {
            "gig_id": gig_id,
            "ticket_revenue": ticket_revenue,
            "merch_sales": merch_revenue,
            "crew_costs": int(crew_costs),
            "equipment_wear": int(wear),
        },
    })

    logger.info("Gig %s complete: grade %s, net %d, +%d fame", gig_id, grade, net_profit, fame_gained)

    return GigResult(
        gig_id=gig_id,
        outcome_id=outcome["id"],
        actual_attendance=attendance,
        overall_rating=rating,
        grade=grade,
        ticket_revenue=ticket_revenue,
        merch_revenue=merch_revenue,
        total_costs=total_costs,
        net_profit=net_profit,
        fame_gained=fame_gained,
        chemistry_change=chem_delta,
        song_performances=performances,
    )
