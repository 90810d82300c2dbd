# rockmundo/songs.py
from __future__ import annotations

import math
import random
from typing import List, Mapping, Tuple

from rockmundo.models import SongQualityInputs, SongQualityResult

# (cumulative roll, low multiplier, width, label)
SESSION_LUCK: List[Tuple[float, float, float, str]] = [
    (0.05, 0.75, 0.07, "Terrible Day"),
    (0.15, 0.82, 0.08, "Off Day"),
    (0.82, 0.93, 0.14, "Normal Session"),
    (0.93, 1.10, 0.12, "Inspired!"),
    (1.00, 1.22, 0.13, "Lightning Strike!"),
]

COMPONENT_VARIANCE = (0.85, 1.15)


def _skill(levels: Mapping[str, float], slug: str) -> float:
    return levels.get(slug) or 0


def _tiered(levels: Mapping[str, float], area: str, tiers: Tuple[Tuple[float, float], ...]) -> float:
    """Sum basic/professional/mastery contributions, each (rate, cap)."""
    total = 0.0
    for tier, (rate, cap) in zip(("basic", "professional", "mastery"), tiers):
        total += min(cap, _skill(levels, f"songwriting_{tier}_{area}") * rate)
    return total


def genre_skill_slug(genre: str) -> str:
    return f"genres_basic_{genre.strip().lower().replace(' ', '_').replace('-', '_')}"


def skill_ceiling(skill_levels: Mapping[str, float]) -> int:
    mastery = ("composing_anthems", "lyrics", "record_production")
    professional = ("composing", "lyrics", "record_production")
    if any(_skill(skill_levels, f"songwriting_mastery_{s}") >= 10 for s in mastery):
        return 1000
    if any(_skill(skill_levels, f"songwriting_professional_{s}") >= 10 for s in professional):
        return 800
    return 500


def session_luck(rng: random.Random) -> Tuple[float, str]:
    roll = rng.random()
    for upper, low, width, label in SESSION_LUCK:
        if roll < upper:
            return low + rng.random() * width, label
    low, width, label = SESSION_LUCK[-1][1:]
    return low + rng.random() * width, label


def melody_strength(levels: Mapping[str, float], musical_ability: float) -> float:
    base = (
        min(60, _skill(levels, "songwriting_basic_composing") * 0.6)
        + min(70, _skill(levels, "songwriting_professional_composing") * 0.9)
        + min(90, _skill(levels, "songwriting_mastery_composing_anthems") * 1.1)
    )
    return base + min(80, musical_ability * 0.08)


def lyrics_strength(levels: Mapping[str, float], creative_insight: float, ai_lyrics: bool) -> float:
    total = _tiered(levels, "lyrics", ((0.5, 50), (1.0, 80), (1.1, 90)))
    total += min(80, creative_insight * 0.08)
    return total * 0.85 if ai_lyrics else total


def rhythm_strength(levels: Mapping[str, float]) -> float:
    return _tiered(levels, "beatmaking", ((0.6, 60), (0.9, 70), (1.1, 90)))


def arrangement_strength(levels: Mapping[str, float], co_writers: int) -> float:
    base = _tiered(levels, "record_production", ((0.5, 50), (0.9, 70), (1.2, 100)))
    return base + min(30, co_writers * 7)


def production_potential(levels: Mapping[str, float], technical_mastery: float) -> float:
    mixing = _tiered(levels, "mixing", ((0.5, 50), (0.5, 40), (0.6, 50)))
    daw = _tiered(levels, "daw", ((0.4, 40), (0.4, 30), (0.5, 40)))
    return mixing + daw + min(80, technical_mastery * 0.08)


def experience_bonus(songs_written: int) -> int:
    # diminishing returns: 1 song = +8, 4 = +16, 9 = +24 ... capped at 50
    if songs_written <= 0:
        return 0
    return min(50, round(math.sqrt(songs_written) * 8))


def session_depth_bonus(sessions_completed: int) -> int:
    if sessions_completed <= 3:
        return 0
    return min(35, (sessions_completed - 3) * 8)


def calculate_song_quality(inputs: SongQualityInputs, rng: random.Random) -> SongQualityResult:
    luck_mult, luck_label = session_luck(rng)

    def vary(value: float) -> int:
        lo, hi = COMPONENT_VARIANCE
        return int(round(value * (lo + rng.random() * (hi - lo))))

    levels = inputs.skill_levels
    melody = vary(melody_strength(levels, inputs.musical_ability))
    lyrics = vary(lyrics_strength(levels, inputs.creative_insight, inputs.ai_lyrics))
    rhythm = vary(rhythm_strength(levels))
    arrangement = vary(arrangement_strength(levels, inputs.co_writers))
    production = vary(production_potential(levels, inputs.technical_mastery))

    familiarity = _skill(levels, genre_skill_slug(inputs.genre)) if inputs.genre else 0
    genre_mult = 1 + min(0.5, familiarity / 500)

    exp_bonus = experience_bonus(inputs.songs_written)
    depth_bonus = session_depth_bonus(inputs.sessions_completed)

    raw_total = melody + lyrics + rhythm + arrangement + production + exp_bonus + depth_bonus
    ceiling = skill_ceiling(levels)
    total = min(ceiling, int(round(raw_total * genre_mult * luck_mult)))

    return SongQualityResult(
        total_quality=total,
        melody_strength=melody,
        lyrics_strength=lyrics,
        rhythm_strength=rhythm,
        arrangement_strength=arrangement,
        production_potential=production,
        genre_multiplier=genre_mult,
        skill_ceiling=ceiling,
        session_luck_label=luck_label,
        session_luck_multiplier=luck_mult,
        experience_bonus=exp_bonus,
        session_depth_bonus=depth_bonus,
    )
