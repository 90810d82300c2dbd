# rockmundo/festivals.py
from __future__ import annotations

import math
import os
import random
from datetime import datetime, timezone
from typing import Dict, List, Optional

from jinja2 import Environment, FileSystemLoader, StrictUndefined

from rockmundo.balance import clamp
from rockmundo.config import (
    FESTIVAL_BASE_FAME,
    FESTIVAL_BASE_FANS,
    FESTIVAL_BASE_MERCH,
    FESTIVAL_DEFAULT_PAYOUT,
    FESTIVAL_MERCH_CUT,
    PERFORMANCE_WEIGHTS,
)
from rockmundo.errors import NotFoundError
from rockmundo.finance import format_currency
from rockmundo.logger import get_logger
from rockmundo.models import (
    FestivalPerformanceInput,
    FestivalPerformanceResult,
    PerformanceMetrics,
    Review,
)
from rockmundo.store import GameStore

logger = get_logger(__name__)

_TEMPLATE_DIR = os.path.join(os.path.dirname(__file__), "templates")
templates = Environment(
    loader=FileSystemLoader(_TEMPLATE_DIR),
    undefined=StrictUndefined,
    autoescape=False,
)
templates.filters["money"] = format_currency

# (name, reviewer type, weight)
REVIEW_PUBLICATIONS = [
    ("Rock Review Weekly", "critic", 1.2),
    ("Festival Gazette", "critic", 1.0),
    ("Music Underground", "blog", 0.8),
    ("LiveMusicFans.com", "fan", 0.6),
    ("BandWatch", "industry", 1.1),
    ("Pitchfork Festival Report", "critic", 1.5),
    ("NME Live", "critic", 1.4),
    ("Rolling Stone Festivals", "critic", 1.5),
]
FEATURED_WEIGHT = 1.4

HEADLINES: Dict[str, List[str]] = {
    "excellent": [
        "{band} Delivers a Performance for the Ages",
        "Absolutely Electric: {band} Steals the Show",
        "{band} Sets the Festival Ablaze",
        "A Star-Making Moment for {band}",
        "The Crowd Went Wild for {band}",
    ],
    "good": [
        "{band} Delivers Solid Festival Set",
        "Crowd-Pleasing Performance from {band}",
        "{band} Proves Their Worth",
        "Energetic Show from {band}",
        "{band} Wins Over Festival Crowd",
    ],
    "average": [
        "{band}: Decent But Unmemorable",
        "{band} Plays It Safe",
        "Mixed Results for {band}",
        "{band} Has Room to Grow",
        "A Standard Set from {band}",
    ],
    "poor": [
        "{band} Disappoints Festival Crowd",
        "Rough Night for {band}",
        "Technical Issues Plague {band} Set",
        "{band} Falls Short of Expectations",
        "{band} Needs to Regroup",
    ],
}


def calculate_performance_score(metrics: PerformanceMetrics) -> int:
    return int(round(sum(
        getattr(metrics, name) * weight for name, weight in PERFORMANCE_WEIGHTS.items()
    )))


def headline_category(score: float) -> str:
    if score >= 85:
        return "excellent"
    if score >= 70:
        return "good"
    if score >= 50:
        return "average"
    return "poor"


def energy_description(crowd_energy: float) -> str:
    if crowd_energy > 80:
        return "electric"
    if crowd_energy > 60:
        return "energetic"
    if crowd_energy > 40:
        return "steady"
    return "lukewarm"


def review_text(score: float, band_name: str, crowd_energy: float) -> str:
    return templates.get_template("review.txt").render(
        category=headline_category(score),
        band=band_name,
        energy=energy_description(crowd_energy),
    )


def pick_headline(rng: random.Random, score: float, band_name: str) -> str:
    return rng.choice(HEADLINES[headline_category(score)]).replace("{band}", band_name)


def review_sentiment(score: float) -> str:
    if score >= 75:
        return "positive"
    if score >= 50:
        return "mixed"
    if score >= 30:
        return "neutral"
    return "negative"


def festival_rewards(score: float, energy_avg: float, base_payment: Optional[float] = None) -> Dict[str, float]:
    """Payment, fame, fans and merch for a set; merch here is gross of the festival's cut."""
    base = base_payment or FESTIVAL_DEFAULT_PAYOUT
    score_mult = 0.5 + score / 100
    energy_mult = 0.8 + energy_avg / 200
    merch = round(FESTIVAL_BASE_MERCH * (score / 50) * (energy_avg / 50))

    return {
        "score_multiplier": score_mult,
        "energy_multiplier": energy_mult,
        "payment": round(base * score_mult * energy_mult),
        "fame": round(FESTIVAL_BASE_FAME * score_mult * energy_mult),
        "fans": round(FESTIVAL_BASE_FANS * score_mult * energy_mult),
        "merch_gross": merch,
        "festival_cut": round(merch * FESTIVAL_MERCH_CUT),
        "merch_net": round(merch * (1 - FESTIVAL_MERCH_CUT)),
    }


def highlight_moments(data: FestivalPerformanceInput) -> List[str]:
    out = []
    if data.crowd_energy_peak >= 90:
        out.append("Incredible crowd energy peak!")
    if data.performance_score >= 85:
        out.append("Near-perfect execution")
    if any(r >= 90 for r in data.event_responses):
        out.append("Handled challenges brilliantly")
    return out


def publication_reviews(
    rng: random.Random,
    score: float,
    band_name: str,
    crowd_energy: float,
) -> List[Review]:
    count = 3 if score >= 80 else 2 if score >= 60 else 1
    reviews = []
    for name, kind, weight in rng.sample(REVIEW_PUBLICATIONS, count):
        review_score = clamp(score + (rng.random() - 0.5) * 15 * weight, 0, 100)
        reviews.append(Review(
            publication_name=name,
            reviewer_type=kind,
            score=int(round(review_score)),
            headline=pick_headline(rng, score, band_name),
            review_text=review_text(review_score, band_name, crowd_energy),
            sentiment=review_sentiment(review_score),
            fame_impact=int(round((review_score - 50) * weight * 2)),
            is_featured=weight >= FEATURED_WEIGHT,
        ))
    return reviews


def complete_festival_performance(
    store: GameStore,
    data: FestivalPerformanceInput,
    rng: random.Random,
) -> FestivalPerformanceResult:
    participation = store.get("festival_participants", id=data.participation_id)
    if not participation:
        raise NotFoundError(f"Participation not found: {data.participation_id}")

    band = store.get("bands", id=data.band_id)
    if not band:
        raise NotFoundError("Band not found")

    score = data.performance_score
    energy = data.crowd_energy_avg
    rewards = festival_rewards(score, energy, participation.get("payout_amount"))

    headline = pick_headline(rng, score, band["name"])
    critic_score = int(clamp(score + math.floor((rng.random() - 0.5) * 20), 0, 100))
    fan_score = int(clamp(score + math.floor((rng.random() - 0.5) * 15) + 5, 0, 100))
    highlights = highlight_moments(data)

    history = store.insert("festival_performance_history", {
        "participation_id": data.participation_id,
        "band_id": data.band_id,
        "festival_id": participation.get("event_id"),
        "user_id": participation.get("user_id"),
        "performance_score": score,
        "crowd_energy_peak": data.crowd_energy_peak,
        "crowd_energy_avg": energy,
        "songs_performed": data.songs_performed,
        "payment_earned": rewards["payment"],
        "fame_earned": rewards["fame"],
        "merch_revenue": rewards["merch_gross"],
        "new_fans_gained": rewards["fans"],
        "critic_score": critic_score,
        "fan_score": fan_score,
        "review_headline": headline,
        "review_summary": review_text(score, band["name"], energy),
        "highlight_moments": highlights,
        "slot_type": participation.get("slot_type"),
        "performance_date": datetime.now(timezone.utc).isoformat(),
    })

    reviews = publication_reviews(rng, score, band["name"], energy)
    for review in reviews:
        store.insert("festival_reviews", {
            "performance_id": history["id"],
            "band_id": data.band_id,
            "reviewer_type": review.reviewer_type,
            "publication_name": review.publication_name,
            "score": review.score,
            "headline": review.headline,
            "review_text": review.review_text,
            "sentiment": review.sentiment,
            "fame_impact": review.fame_impact,
            "is_featured": review.is_featured,
        })

    store.insert("festival_merch_sales", {
        "performance_id": history["id"],
        "band_id": data.band_id,
        "festival_id": participation.get("event_id"),
        "tshirts_sold": round((score / 10) * (energy / 20)),
        "posters_sold": round((score / 15) * (energy / 25)),
        "albums_sold": round((score / 20) * (energy / 30)),
        "gross_revenue": rewards["merch_gross"],
        "festival_cut": rewards["festival_cut"],
        "net_revenue": rewards["merch_net"],
        "performance_boost": rewards["score_multiplier"],
    })

    store.update("festival_participants", {"status": "performed"}, id=data.participation_id)
    store.update("bands", {
        "fame": (band.get("fame") or 0) + rewards["fame"],
        "band_balance": (band.get("band_balance") or 0) + rewards["payment"] + rewards["merch_net"],
    }, id=data.band_id)

    store.insert("inbox_messages", {
        "user_id": participation.get("user_id"),
        "subject": "Festival Performance Complete!",
        "content": templates.get_template("festival_inbox.txt").render(
            score=f"{score:g}",
            payment=rewards["payment"],
            fame=rewards["fame"],
            merch=rewards["merch_net"],
            fans=rewards["fans"],
            highlights=highlights,
        ),
        "message_type": "festival_result",
        "priority": "high" if score >= 80 else "normal",
    })

    logger.info("Festival set for %s scored %s: +%d fame, %s paid",
                band["name"], score, rewards["fame"], format_currency(rewards["payment"]))

    return FestivalPerformanceResult(
        performance_score=score,
        payment_earned=rewards["payment"],
        fame_earned=rewards["fame"],
        merch_revenue=rewards["merch_net"],
        new_fans_gained=rewards["fans"],
        critic_score=critic_score,
        fan_score=fan_score,
        review_headline=headline,
        highlights=highlights,
        reviews=reviews,
    )
