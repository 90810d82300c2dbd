# rockmundo/balance.py
from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from rockmundo.config import (
    ATTRIBUTE_MAX,
    ATTRIBUTE_MULT_FLOOR,
    COOLDOWNS,
    EXPERIENCE_PER_LEVEL,
    FAME_TITLES,
    FAME_TITLE_DEFAULT,
    MAX_LEVEL,
    SKILL_CAPS,
    TRAINING_BASE_COST,
    TRAINING_COST_GROWTH,
    TRAINING_MAX_REDUCTION,
    TRAINING_MIN_COST,
)

ATTRIBUTE_KEYS = ["looks", "charisma", "musicality", "mental_focus", "physical_endurance"]

FOCUS_WEIGHTS: Dict[str, List[Tuple[str, float]]] = {
    "general": [("musicality", 0.4), ("charisma", 0.35), ("looks", 0.25)],
    "instrumental": [("musicality", 0.75), ("charisma", 0.25)],
    "performance": [("charisma", 0.6), ("looks", 0.4)],
    "songwriting": [("musicality", 0.7), ("charisma", 0.3)],
    "vocals": [("charisma", 0.55), ("musicality", 0.45)],
}

# How much a strong focus score can boost experience
FOCUS_EXPERIENCE_BONUS = {"performance": 0.45, "instrumental": 0.4}


def clamp(x: float, lo: float, hi: float) -> float:
    return lo if x < lo else hi if x > hi else x


def _finite(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        numeric = float(value)
    except (TypeError, ValueError):
        return None
    return numeric if math.isfinite(numeric) else None


def clamp_attribute_score(value: Any) -> int:
    """
    Normalize an attribute to 0..1000.

    Old characters stored attributes as 1..3 multipliers; those are stretched
    onto the new scale so 1.0 -> 0 and 3.0 -> 1000.
    """
    numeric = _finite(value)
    if numeric is None:
        return 0
    if 0 <= numeric <= 3:
        return int(clamp(round((numeric - 1) / 2 * ATTRIBUTE_MAX), 0, ATTRIBUTE_MAX))
    return int(clamp(round(numeric), 0, ATTRIBUTE_MAX))


def attribute_multiplier(value: Any, max_bonus: float = 0.5, base: float = 1.0) -> float:
    numeric = _finite(value)
    if numeric is None:
        return base

    hi = base + max_bonus
    if 0 < numeric <= 3:
        # legacy value already is a multiplier
        return clamp(numeric, ATTRIBUTE_MULT_FLOOR, hi)

    normalized = clamp_attribute_score(numeric)
    return clamp(base + (normalized / ATTRIBUTE_MAX) * max_bonus, ATTRIBUTE_MULT_FLOOR, hi)


def extract_attribute_scores(source: Any) -> Dict[str, float]:
    """Pull attribute numbers out of a profile row; accepts n or {"value": n}."""
    if not isinstance(source, Mapping):
        return {}

    out: Dict[str, float] = {}
    for key in ATTRIBUTE_KEYS:
        raw = source.get(key)
        if isinstance(raw, Mapping):
            raw = raw.get("value")
        if isinstance(raw, (int, float)) and not isinstance(raw, bool):
            out[key] = raw
    return out


def focus_attribute_score(attributes: Optional[Mapping[str, Any]], focus: str = "general") -> int:
    if not attributes:
        return 0
    weights = FOCUS_WEIGHTS.get(focus) or FOCUS_WEIGHTS["general"]

    weighted_total = 0.0
    total_weight = 0.0
    for key, weight in weights:
        if weight <= 0:
            continue
        weighted_total += clamp_attribute_score(attributes.get(key) or 0) * weight
        total_weight += weight

    if total_weight <= 0:
        return 0
    return int(round(weighted_total / total_weight))


def experience_reward(
    base_experience: float,
    attributes: Optional[Mapping[str, Any]] = None,
    focus: str = "general",
) -> int:
    base = _finite(base_experience) or 0.0
    if base <= 0:
        return 0

    attributes = attributes or {}
    focus_mult = attribute_multiplier(
        focus_attribute_score(attributes, focus),
        FOCUS_EXPERIENCE_BONUS.get(focus, 0.35),
    )
    mental_mult = attribute_multiplier(attributes.get("mental_focus"), 0.3)
    return max(0, int(round(base * focus_mult * mental_mult)))


def calculate_level(experience: float) -> int:
    return min(int(experience // EXPERIENCE_PER_LEVEL) + 1, MAX_LEVEL)


def experience_to_next_level(experience: float) -> int:
    level = calculate_level(experience)
    if level >= MAX_LEVEL:
        return 0
    return int(level * EXPERIENCE_PER_LEVEL - experience)


def skill_cap(total_experience: float) -> int:
    for min_exp, cap in SKILL_CAPS:
        if total_experience >= min_exp:
            return cap
    return SKILL_CAPS[-1][1]


def training_cost(
    current_skill_level: float,
    attributes: Optional[Mapping[str, Any]] = None,
    focus: str = "general",
) -> int:
    base = math.floor(TRAINING_BASE_COST * TRAINING_COST_GROWTH ** (current_skill_level / 10))
    if base <= 0:
        return 0

    reduction = clamp(focus_attribute_score(attributes, focus) / ATTRIBUTE_MAX, 0.0, 1.0)
    adjusted = round(base * (1 - reduction * TRAINING_MAX_REDUCTION))
    return max(TRAINING_MIN_COST, int(adjusted))


def success_rate(
    required_skills: Mapping[str, float],
    player_skills: Mapping[str, float],
    attributes: Optional[Mapping[str, Any]] = None,
    focus: str = "general",
) -> float:
    """Average of per-skill readiness, floored at 10%, boosted by attributes."""
    checks = [
        min((player_skills.get(skill) or 0) / required, 1.0) if required > 0 else 1.0
        for skill, required in required_skills.items()
    ]
    average = sum(checks) / len(checks) if checks else 1.0
    mult = attribute_multiplier(focus_attribute_score(attributes, focus), 0.35)
    return min(1.0, max(average, 0.1) * mult)


def gig_payment(
    base_payment: float,
    performance_skill: float,
    fame: float,
    success: float,
    attributes: Optional[Mapping[str, Any]] = None,
) -> int:
    attributes = attributes or {}
    skill_mult = 1 + performance_skill / 100
    fame_mult = 1 + fame / 10000
    performance_mult = 0.5 + success * 0.5  # 50%..100%

    charisma_mult = attribute_multiplier(attributes.get("charisma"), 0.4)
    looks_mult = attribute_multiplier(attributes.get("looks"), 0.25)
    musicality_mult = attribute_multiplier(attributes.get("musicality"), 0.2)

    return math.floor(
        base_payment * skill_mult * fame_mult * performance_mult
        * charisma_mult * looks_mult * musicality_mult
    )


def fan_gain(
    base_gain: float,
    performance_skill: float,
    attributes: Optional[Mapping[str, Any]] = None,
) -> int:
    attributes = attributes or {}
    skill_mult = 1 + performance_skill / 200  # max +50%
    charisma_mult = attribute_multiplier(attributes.get("charisma"), 0.5)
    looks_mult = attribute_multiplier(attributes.get("looks"), 0.3)
    return math.floor(base_gain * skill_mult * charisma_mult * looks_mult)


def meets_requirements(
    requirements: Mapping[str, float],
    player_stats: Mapping[str, float],
) -> Tuple[bool, List[str]]:
    missing = []
    for requirement, value in requirements.items():
        have = player_stats.get(requirement) or 0
        if have < value:
            missing.append(f"{requirement}: {value} (you have {have})")
    return not missing, missing


def equipment_bonus(equipped_items: Iterable[Mapping[str, Any]]) -> Dict[str, float]:
    total: Dict[str, float] = {}
    for item in equipped_items:
        for stat, boost in (item.get("stat_boosts") or {}).items():
            total[stat] = total.get(stat, 0) + boost
    return total


def fame_title(fame: float) -> str:
    for threshold, title in FAME_TITLES:
        if fame >= threshold:
            return title
    return FAME_TITLE_DEFAULT


def _as_datetime(value: Union[str, datetime]) -> datetime:
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def action_cooldown(action: str) -> int:
    """Cooldown in seconds for a named activity; unknown activities have none."""
    return COOLDOWNS.get(action, 0)


def is_on_cooldown(
    last_action: Union[str, datetime, None],
    cooldown_seconds: float,
    now: Optional[datetime] = None,
) -> bool:
    if not last_action:
        return False
    now = now or datetime.now(timezone.utc)
    elapsed = (_as_datetime(now) - _as_datetime(last_action)).total_seconds()
    return elapsed < cooldown_seconds


def remaining_cooldown_minutes(
    last_action: Union[str, datetime, None],
    cooldown_seconds: float,
    now: Optional[datetime] = None,
) -> int:
    if not last_action:
        return 0
    now = now or datetime.now(timezone.utc)
    elapsed = (_as_datetime(now) - _as_datetime(last_action)).total_seconds()
    return max(0, math.ceil((cooldown_seconds - elapsed) / 60))
