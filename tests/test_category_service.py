"""Unit tests for CategoryService — rule scoring and category derivation."""
import pytest

from earprint.data.category_defaults import BUILT_IN_PRIORITY, default_rules
from earprint.data.presets import PRESET_MAP, PRESETS, bars
from earprint.schemas.category import BarConstraint
from earprint.services.category_service import (
    CategoryService,
    level_to_number,
    number_to_level,
)


@pytest.fixture
def category_service():
    return CategoryService()


def _c(lo, hi, gradient=0):
    return BarConstraint(min=lo, max=hi, gradient=gradient)


class TestScoreRule:
    """Tests for single-rule scoring."""

    def test_exact_centre_with_zero_width_scores_one(self, category_service):
        """min == max and the value sits on it."""
        rule = {"Bass Presence": _c(4, 4)}
        assert category_service.score_rule(bars(4, 3, 3, 3, 3, 3), rule) == 1.0

    def test_boundary_value_scores_below_one(self, category_service):
        """Range edge: dist == maxDist gives 1 - 0.5 / 1.5."""
        rule = {"Bass Presence": _c(4, 5)}
        score = category_service.score_rule(bars(4, 3, 3, 3, 3, 3), rule)
        assert score == pytest.approx(2 / 3)

    def test_out_of_range_rejects_whole_rule(self, category_service):
        rule = {"Bass Presence": _c(4, 5), "Warmth": _c(1, 2)}
        assert category_service.score_rule(bars(5, 3, 3, 3, 3, 3), rule) == 0.0

    def test_empty_rule_scores_zero(self, category_service):
        assert category_service.score_rule(bars(3, 3, 3, 3, 3, 3), {}) == 0.0

    def test_missing_dimension_scores_zero(self, category_service):
        partial = bars(5, 5, 5, 5, 5, 5)[:2]
        rule = {"Bass Presence": _c(4, 5), "Warmth": _c(4, 5)}
        assert category_service.score_rule(partial, rule) == 0.0

    def test_ballpark_gradient_widens_range(self, category_service):
        """Value one level outside the range matches only in ballpark."""
        rule = {"Bass Presence": _c(4, 5, gradient=1)}
        vector = bars(3, 3, 3, 3, 3, 3)
        assert category_service.score_rule(vector, rule, "precise") == 0.0
        # mid 4.5, maxDist 1.5, dist 1.5 -> 1 - 1.5 / 2.5
        assert category_service.score_rule(vector, rule, "ballpark") == pytest.approx(0.4)

    def test_gradient_ignored_in_precise_mode(self, category_service):
        rule = {"Bass Presence": _c(4, 4, gradient=2)}
        assert category_service.score_rule(bars(4, 3, 3, 3, 3, 3), rule, "precise") == 1.0

    def test_score_is_mean_of_dimensions(self, category_service):
        rule = {"Bass Presence": _c(4, 4), "Warmth": _c(4, 5)}
        score = category_service.score_rule(bars(4, 3, 3, 3, 3, 4), rule)
        assert score == pytest.approx((1.0 + 2 / 3) / 2)


class TestDeriveCategories:
    """Tests for primary/secondary selection."""

    def test_worked_example_v_shaped(self, category_service, v_shaped_bars):
        """Bass 5, Vocal 2, Treble 5 lands in v-shaped with nothing else
        scoring."""
        derived = category_service.derive_categories(v_shaped_bars)
        assert derived.primary == "v-shaped"
        assert derived.secondary == []
        assert len(derived.scores) == 1
        assert derived.scores[0].score == pytest.approx(7 / 9)

    def test_warm_preset_with_two_secondaries(self, category_service):
        derived = category_service.derive_categories(PRESET_MAP["airpods-pro-2"].baseline.bars)
        assert derived.primary == "warm"
        assert derived.secondary == ["intimate", "balanced"]
        assert derived.scores[0].score == pytest.approx(8 / 9)

    def test_secondary_threshold_and_cap(self, category_service):
        for preset in PRESETS:
            derived = category_service.derive_categories(preset.baseline.bars)
            if derived.primary == "unmatched":
                continue
            top = derived.scores[0].score
            assert derived.primary not in derived.secondary
            assert len(derived.secondary) <= 2
            by_id = {s.category_id: s.score for s in derived.scores}
            secondary_scores = [by_id[c] for c in derived.secondary]
            assert secondary_scores == sorted(secondary_scores, reverse=True)
            assert all(s >= 0.65 * top for s in secondary_scores)

    def test_scores_sorted_and_positive(self, category_service):
        derived = category_service.derive_categories(bars(4, 4, 4, 4, 4, 4))
        values = [s.score for s in derived.scores]
        assert values == sorted(values, reverse=True)
        assert all(0 < v <= 1 for v in values)

    def test_impossible_rules_yield_unmatched(self, category_service, flat_bars):
        rules = {c: {"Bass Presence": _c(5, 5)} for c in BUILT_IN_PRIORITY}
        derived = category_service.derive_categories(flat_bars, rules)
        assert derived.primary == "unmatched"
        assert derived.secondary == []
        assert derived.scores == []

    def test_tie_resolves_to_priority_order(self, category_service):
        rule = {"Bass Presence": _c(3, 3)}
        rules = {"balanced": dict(rule), "warm": dict(rule)}
        derived = category_service.derive_categories(bars(3, 3, 3, 3, 3, 3), rules)
        assert derived.primary == "warm"
        assert derived.secondary == ["balanced"]

    def test_custom_category_scored_after_built_ins(self, category_service):
        rules = default_rules()
        rules["basshead"] = {"Bass Presence": _c(5, 5)}
        derived = category_service.derive_categories(
            bars(5, 3, 3, 3, 3, 3), rules, custom_category_ids=["basshead"],
        )
        assert derived.primary == "basshead"

    def test_custom_category_without_rule_is_skipped(self, category_service, v_shaped_bars):
        derived = category_service.derive_categories(
            v_shaped_bars, default_rules(), custom_category_ids=["ghost"],
        )
        assert derived.primary == "v-shaped"

    def test_ballpark_matches_superset_of_precise(self, category_service):
        for preset in PRESETS:
            precise = {
                s.category_id
                for s in category_service.derive_categories(preset.baseline.bars, mode="precise").scores
            }
            ballpark = {
                s.category_id
                for s in category_service.derive_categories(preset.baseline.bars, mode="ballpark").scores
            }
            assert precise <= ballpark, preset.id

    def test_deterministic(self, category_service, v_shaped_bars):
        first = category_service.derive_categories(v_shaped_bars, mode="ballpark")
        second = category_service.derive_categories(v_shaped_bars, mode="ballpark")
        assert first == second

    def test_derive_category_returns_primary(self, category_service, v_shaped_bars):
        assert category_service.derive_category(v_shaped_bars) == "v-shaped"

    def test_presets_cover_every_built_in_category(self, category_service):
        primaries = {category_service.derive_category(p.baseline.bars) for p in PRESETS}
        assert set(BUILT_IN_PRIORITY) <= primaries


class TestBarsFromCategory:
    """Tests for starting-point vectors."""

    def test_midpoints_round_half_up(self, category_service):
        result = category_service.bars_from_category("balanced")
        assert [b.level for b in result] == [
            "mid-high", "mid-high", "mid-high", "mid", "mid", "mid-high",
        ]

    def test_vector_classifies_back_to_category(self, category_service):
        for category in ("v-shaped", "dark", "warm", "intimate"):
            vector = category_service.bars_from_category(category)
            assert category_service.derive_category(vector) == category

    def test_unknown_category_is_all_mid(self, category_service):
        assert {b.level for b in category_service.bars_from_category("nope")} == {"mid"}


class TestLevelHelpers:
    def test_round_trip(self):
        for n in range(1, 6):
            assert level_to_number(number_to_level(n)) == n

    def test_unknown_level_is_zero(self):
        assert level_to_number("loud") == 0

    def test_number_clamped(self):
        assert number_to_level(9) == "high"
        assert number_to_level(-1) == "low"
