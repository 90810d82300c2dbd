# rockmundo/fans.py
from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional, Sequence

from rockmundo.config import (
    BASE_CONVERSION_RATE,
    COUNTRY_SPILLOVER_RATE,
    GRADE_MULTIPLIERS,
    MAX_CONVERSION_RATE,
    MAX_REPEAT_RATE,
    RATING_MAX,
    SPILLOVER_CITY_LIMIT,
)
from rockmundo.logger import get_logger
from rockmundo.models import FanConversionInput, FanConversionResult
from rockmundo.store import GameStore

logger = get_logger(__name__)

UNKNOWN_COUNTRY = "Unknown"


def tier_rates(rating: float) -> Dict[str, float]:
    superfan = 0.10 if rating >= 22 else 0.05 if rating >= 18 else 0.02
    dedicated = 0.25 if rating >= 18 else 0.15 if rating >= 14 else 0.10
    return {"superfans": superfan, "dedicated": dedicated, "casual": 1 - superfan - dedicated}


def convert_fans(
    *,
    attendance: int,
    rating: float,
    grade: str,
    fame: float,
    gigs_in_city: int,
    existing_fans: int,
) -> Dict[str, float]:
    """
    Pure arithmetic of a gig's fan conversion.

    gigs_in_city counts this gig. Repeat attendees come out of the existing
    city fan base and cannot be converted again.
    """
    repeat_rate = min(MAX_REPEAT_RATE, gigs_in_city * 0.1 + (fame / 10000) * 0.3)
    repeat = math.floor(min(existing_fans, attendance * repeat_rate))
    potential = max(0, attendance - repeat)

    grade_mult = GRADE_MULTIPLIERS.get(grade, 1.0)
    rating_bonus = (rating / RATING_MAX) * 0.1
    fame_bonus = min(0.05, fame / 50000)
    rate = min(MAX_CONVERSION_RATE, (BASE_CONVERSION_RATE + rating_bonus + fame_bonus) * grade_mult)

    new_fans = math.floor(potential * rate)
    rates = tier_rates(rating)
    superfans = math.floor(new_fans * rates["superfans"])
    dedicated = math.floor(new_fans * rates["dedicated"])

    return {
        "repeat_attendees": repeat,
        "conversion_rate": rate,
        "new_fans": new_fans,
        "superfans": superfans,
        "dedicated": dedicated,
        "casual": new_fans - superfans - dedicated,
    }


def split_demographics(
    new_fans: int,
    demographics: Sequence[Mapping[str, Any]],
    genre: Optional[str],
) -> Dict[str, int]:
    """Spread new fans over age groups by their preference for the genre."""
    if not demographics or not genre or new_fans <= 0:
        return {}

    key = genre.strip().lower()
    weights = {}
    for demo in demographics:
        prefs = demo.get("genre_preferences") or {}
        weights[demo["name"]] = float(prefs.get(key, 1.0) or 1.0)

    total = sum(weights.values())
    if total <= 0:
        return {}
    return {name: math.floor(new_fans * w / total) for name, w in weights.items()}


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def calculate_fan_conversion_with_demographics(
    store: GameStore,
    data: FanConversionInput,
) -> FanConversionResult:
    venue = store.get("venues", id=data.venue_id) or {}
    city_id = venue.get("city_id")
    city_name = venue.get("location") or "Unknown City"
    country = UNKNOWN_COUNTRY

    if city_id:
        city = store.get("cities", id=city_id)
        if city:
            city_name = city["name"]
            country = city.get("country") or UNKNOWN_COUNTRY

    city_fans = store.get("band_city_fans", band_id=data.band_id, city_id=city_id) or {}
    gigs_in_city = (city_fans.get("gigs_in_city") or 0) + 1
    existing = city_fans.get("total_fans") or 0

    calc = convert_fans(
        attendance=data.actual_attendance,
        rating=data.overall_rating,
        grade=data.performance_grade,
        fame=data.band_fame,
        gigs_in_city=gigs_in_city,
        existing_fans=existing,
    )
    new_fans = calc["new_fans"]
    casual, dedicated, superfans = calc["casual"], calc["dedicated"], calc["superfans"]

    demographics = store.select("age_demographics")
    breakdown = split_demographics(new_fans, demographics, data.band_genre)
    if breakdown:
        demo_ids = {d["name"]: d["id"] for d in demographics}
        for name, count in breakdown.items():
            if count <= 0:
                continue
            store.upsert("band_demographic_fans", {
                "band_id": data.band_id,
                "demographic_id": demo_ids[name],
                "city_id": city_id,
                "country": country,
                "fan_count": count,
                "engagement_rate": data.overall_rating / RATING_MAX,
            }, on_conflict=("band_id", "demographic_id", "city_id"))

    spillover = math.floor(new_fans * COUNTRY_SPILLOVER_RATE)
    if spillover > 0 and country != UNKNOWN_COUNTRY:
        others = [c for c in store.select("cities", country=country) if c["id"] != city_id]
        others = others[:SPILLOVER_CITY_LIMIT]
        per_city = spillover // len(others) if others else 0

        if per_city > 0:
            for other in others:
                prev = store.get("band_city_fans", band_id=data.band_id, city_id=other["id"]) or {}
                store.upsert("band_city_fans", {
                    "band_id": data.band_id,
                    "city_id": other["id"],
                    "city_name": other["name"],
                    "country": country,
                    "total_fans": (prev.get("total_fans") or 0) + per_city,
                    "casual_fans": (prev.get("casual_fans") or 0) + per_city,
                    "dedicated_fans": prev.get("dedicated_fans") or 0,
                    "superfans": prev.get("superfans") or 0,
                }, on_conflict=("band_id", "city_id"))

        prev_country = store.get("band_country_fans", band_id=data.band_id, country=country) or {}
        store.upsert("band_country_fans", {
            "band_id": data.band_id,
            "country": country,
            "total_fans": (prev_country.get("total_fans") or 0) + new_fans + spillover,
            "casual_fans": (prev_country.get("casual_fans") or 0) + casual + spillover,
            "dedicated_fans": (prev_country.get("dedicated_fans") or 0) + dedicated,
            "superfans": (prev_country.get("superfans") or 0) + superfans,
            "fame": (prev_country.get("fame") or 0) + math.floor(data.band_fame * 0.01),
            "last_activity_date": _now(),
        }, on_conflict=("band_id", "country"))

    store.upsert("gig_fan_conversions", {
        "gig_id": data.gig_id,
        "band_id": data.band_id,
        "attendance_count": data.actual_attendance,
        "new_fans_gained": new_fans,
        "repeat_fans": calc["repeat_attendees"],
        "superfans_converted": superfans,
        "conversion_rate": calc["conversion_rate"] * 100,
        "fan_demographics": {
            "city": city_name,
            "country": country,
            "casual": casual,
            "dedicated": dedicated,
            "superfans": superfans,
            "spillover": spillover,
            "breakdown": breakdown,
        },
    }, on_conflict=("gig_id",))

    if city_id:
        store.upsert("band_city_fans", {
            "band_id": data.band_id,
            "city_id": city_id,
            "city_name": city_name,
            "country": country,
            "total_fans": existing + new_fans,
            "casual_fans": (city_fans.get("casual_fans") or 0) + casual,
            "dedicated_fans": (city_fans.get("dedicated_fans") or 0) + dedicated,
            "superfans": (city_fans.get("superfans") or 0) + superfans,
            "last_gig_date": _now(),
            "gigs_in_city": gigs_in_city,
            "avg_satisfaction": data.overall_rating * 4,
            "city_fame": math.floor(data.band_fame * 0.05),
        }, on_conflict=("band_id", "city_id"))

    band = store.get("bands", id=data.band_id)
    if band:
        store.update("bands", {
            "total_fans": (band.get("total_fans") or 0) + new_fans + spillover,
            "casual_fans": (band.get("casual_fans") or 0) + casual + spillover,
            "dedicated_fans": (band.get("dedicated_fans") or 0) + dedicated,
            "superfans": (band.get("superfans") or 0) + superfans,
            "global_fame": (band.get("global_fame") or 0) + math.floor(data.band_fame * 0.001),
        }, id=data.band_id)

    store.insert("band_fame_history", {
        "band_id": data.band_id,
        "city_id": city_id,
        "country": country,
        "scope": "city",
        "fame_value": data.band_fame,
        "fame_change": math.floor(data.band_fame * 0.05),
        "event_type": "gig",
    })

    store.update("gig_outcomes", {
        "fan_conversions": new_fans,
        "casual_fans_gained": casual,
        "dedicated_fans_gained": dedicated,
        "superfans_gained": superfans,
        "repeat_attendees": calc["repeat_attendees"],
    }, gig_id=data.gig_id)

    logger.info("Gig %s converted %d fans in %s (+%d spillover)",
                data.gig_id, new_fans, city_name, spillover)

    return FanConversionResult(
        new_fans_gained=new_fans,
        casual_fans=casual,
        dedicated_fans=dedicated,
        superfans=superfans,
        repeat_attendees=calc["repeat_attendees"],
        conversion_rate=calc["conversion_rate"] * 100,
        city_name=city_name,
        country_spillover=spillover,
        demographic_breakdown=breakdown,
    )
