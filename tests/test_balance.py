"""
Unit tests for rockmundo.balance progression and payout formulas.
"""

from datetime import datetime, timedelta, timezone

import pytest

from rockmundo import balance


class TestAttributeScores:
    """Attribute normalization and multipliers."""

    @pytest.mark.parametrize("raw, expected", [
        (None, 0),
        (float("nan"), 0),
        ("abc", 0),
        (1, 0),
        (2, 500),
        (3, 1000),
        (650.4, 650),
        (1500, 1000),
        (-20, 0),
    ])
    def test_clamp_attribute_score(self, raw, expected):
        assert balance.clamp_attribute_score(raw) == expected

    def test_multiplier_defaults_to_base_when_missing(self):
        assert balance.attribute_multiplier(None) == 1.0
        assert balance.attribute_multiplier(None, base=0.8) == 0.8

    def test_legacy_multiplier_passes_through(self):
        assert balance.attribute_multiplier(1.2) == pytest.approx(1.2)
        # capped at base + max_bonus
        assert balance.attribute_multiplier(2.5, max_bonus=0.3) == pytest.approx(1.3)

    def test_scaled_multiplier(self):
        assert balance.attribute_multiplier(1000) == pytest.approx(1.5)
        assert balance.attribute_multiplier(500, max_bonus=0.4) == pytest.approx(1.2)
        assert balance.attribute_multiplier(0) == pytest.approx(1.0)

    def test_extract_attribute_scores(self):
        source = {"looks": 5, "charisma": {"value": 700}, "musicality": "x", "other": 1}
        assert balance.extract_attribute_scores(source) == {"looks": 5, "charisma": 700}
        assert balance.extract_attribute_scores(None) == {}

    def test_focus_score_uses_weights(self):
        attrs = {"charisma": 1000, "looks": 0, "musicality": 0}
        assert balance.focus_attribute_score(attrs, "performance") == 600
        # unknown focus falls back to general
        assert balance.focus_attribute_score(attrs, "juggling") == 350
        assert balance.focus_attribute_score(None, "general") == 0


class TestProgression:

    def test_levels(self):
        assert balance.calculate_level(0) == 1
        assert balance.calculate_level(999) == 1
        assert balance.calculate_level(1000) == 2
        assert balance.calculate_level(10 ** 9) == 100

    def test_experience_to_next_level(self):
        assert balance.experience_to_next_level(1500) == 500
        assert balance.experience_to_next_level(99500) == 0

    @pytest.mark.parametrize("exp, cap", [(0, 30), (999, 30), (1000, 50), (5000, 80), (20000, 100)])
    def test_skill_cap(self, exp, cap):
        assert balance.skill_cap(exp) == cap

    def test_experience_reward(self):
        assert balance.experience_reward(0) == 0
        assert balance.experience_reward(100) == 100
        strong = {"charisma": 1000, "looks": 1000, "mental_focus": 1000}
        # 1.45 focus bonus times 1.3 mental focus
        assert balance.experience_reward(1000, strong, "performance") == 1885

    def test_training_cost(self):
        assert balance.training_cost(0) == 100
        assert balance.training_cost(10) == 150
        maxed = {"musicality": 1000, "charisma": 1000, "looks": 1000}
        assert balance.training_cost(0, maxed) == 75

    def test_success_rate(self):
        assert balance.success_rate({"guitar": 50}, {"guitar": 25}) == pytest.approx(0.5)
        assert balance.success_rate({"guitar": 50}, {}) == pytest.approx(0.1)
        assert balance.success_rate({"guitar": 50}, {"guitar": 80}) == pytest.approx(1.0)


class TestPayouts:

    def test_gig_payment_baseline(self):
        assert balance.gig_payment(1000, 0, 0, 1.0) == 1000

    def test_gig_payment_scales_with_skill_and_fame(self):
        # 2x skill, 2x fame, half for a failed show
        assert balance.gig_payment(1000, 100, 10000, 0.0) == 2000

    def test_fan_gain(self):
        assert balance.fan_gain(100, 0) == 100
        assert balance.fan_gain(100, 100) == 150

    def test_meets_requirements(self):
        ok, missing = balance.meets_requirements({"fame": 100, "level": 2}, {"fame": 150, "level": 1})
        assert not ok
        assert missing == ["level: 2 (you have 1)"]

    def test_equipment_bonus(self):
        items = [{"stat_boosts": {"guitar": 5}}, {"stat_boosts": {"guitar": 3, "vocals": 2}}, {}]
        assert balance.equipment_bonus(items) == {"guitar": 8, "vocals": 2}

    @pytest.mark.parametrize("fame, title", [
        (0, "Unknown Artist"),
        (100, "Local Talent"),
        (4999, "Known Performer"),
        (100000, "Living Legend"),
    ])
    def test_fame_title(self, fame, title):
        assert balance.fame_title(fame) == title


class TestCooldowns:

    def test_cooldown_window(self):
        now = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
        last = now - timedelta(minutes=90)
        assert balance.is_on_cooldown(last, 2 * 60 * 60, now=now)
        assert balance.remaining_cooldown_minutes(last, 2 * 60 * 60, now=now) == 30
        assert not balance.is_on_cooldown(last, 60 * 60, now=now)
        assert balance.remaining_cooldown_minutes(last, 60 * 60, now=now) == 0

    def test_named_actions(self):
        now = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
        assert balance.action_cooldown("social_post") == 30 * 60
        assert balance.action_cooldown("juggling") == 0
        last = now - timedelta(hours=3)
        assert balance.is_on_cooldown(last, balance.action_cooldown("skill_training"), now=now)
        assert not balance.is_on_cooldown(last, balance.action_cooldown("song_recording"), now=now)

    def test_iso_strings_and_missing(self):
        now = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
        assert balance.is_on_cooldown("2024-05-01T11:50:00Z", 30 * 60, now=now)
        assert not balance.is_on_cooldown(None, 30 * 60, now=now)
        assert balance.remaining_cooldown_minutes("", 30 * 60, now=now) == 0
