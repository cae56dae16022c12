"""
Earprint — Category scoring engine.

Maps a six-dimension rating vector onto the category rule set and selects a
primary category plus up to two secondary ones.

Per-rule scoring:
  1. Every constrained dimension must be present in the vector.
  2. mid = (min + max) / 2,  half = (max - min) / 2
  3. maxDist = half + gradient (ballpark) | half (precise)
  4. dist = |value - mid|;  dist > maxDist rejects the whole rule
  5. dimension score = 1 - dist / (maxDist + 1)   (1.0 when maxDist == 0)
  6. rule score = mean of dimension scores

Selection:
  candidates = built-in priority order, then custom ids;  zero scores drop
  out;  stable descending sort;  secondary = runners-up scoring at least
  65% of the primary, capped at two.
"""

from __future__ import annotations

from typing import Iterable, Mapping, Optional, Sequence

import structlog

from earprint.data.bar_metadata import BAR_LABELS, LEVEL_TO_NUMBER, NUMBER_TO_LEVEL
from earprint.data.category_defaults import (
    BUILT_IN_PRIORITY,
    DEFAULT_CATEGORY_RULES,
    UNMATCHED,
)
from earprint.schemas.category import (
    BarConstraint,
    CategoryRule,
    CategoryRuleSet,
    CategoryScore,
    DerivedCategories,
    FilterMode,
)
from earprint.schemas.signature import StrengthBar

logger = structlog.get_logger("earprint.category_service")


def level_to_number(level: str) -> int:
    """Ordinal value of a level name; 0 for anything off the scale."""
    return LEVEL_TO_NUMBER.get(level, 0)


def number_to_level(value: int) -> str:
    """Level name for a 1-5 ordinal, clamped to the scale."""
    return NUMBER_TO_LEVEL[max(1, min(5, value)) - 1]


class CategoryService:
    """Score rating vectors against category rules.

    Stateless; every method is a pure function of its arguments.
    """

    SCORE_PADDING: float = 1.0        # keeps boundary matches strictly below 1
    SECONDARY_THRESHOLD: float = 0.65
    MAX_SECONDARY: int = 2

    # ── Public API ──────────────────────────────────────────────────

    def score_rule(
        self,
        bars: Sequence[StrengthBar],
        rule: Mapping[str, BarConstraint],
        mode: FilterMode = "precise",
    ) -> float:
        """Score a single category rule against a rating vector.

        Returns
        -------
        float
            0.0 when the rule has no constraints, a constrained dimension is
            missing, or any dimension falls outside its tolerance; otherwise
            the mean per-dimension score in (0, 1].
        """
        constraints = [(label, c) for label, c in rule.items() if c is not None]
        if not constraints:
            return 0.0

        values = self._bar_values(bars)
        total = 0.0
        for label, constraint in constraints:
            value = values.get(label, 0)
            if value == 0:
                return 0.0

            mid = (constraint.min + constraint.max) / 2
            half_width = (constraint.max - constraint.min) / 2
            gradient = constraint.gradient if mode == "ballpark" else 0
            max_dist = half_width + gradient
            dist = abs(value - mid)

            if dist > max_dist:
                return 0.0

            if max_dist == 0:
                total += 1.0
            else:
                total += 1.0 - dist / (max_dist + self.SCORE_PADDING)

        return total / len(constraints)

    def derive_categories(
        self,
        bars: Sequence[StrengthBar],
        rules: Optional[CategoryRuleSet] = None,
        mode: FilterMode = "precise",
        custom_category_ids: Iterable[str] = (),
    ) -> DerivedCategories:
        """Derive primary and secondary categories for a rating vector.

        Parameters
        ----------
        bars : sequence of StrengthBar
            The rating vector to classify.
        rules : CategoryRuleSet, optional
            Rule set to score against; the built-in defaults when omitted.
        mode : "precise" | "ballpark"
            Whether constraint gradients widen the accepted ranges.
        custom_category_ids : iterable of str
            User category ids, tried after the built-ins in the given order.

        Returns
        -------
        DerivedCategories
            ``primary="unmatched"`` with empty ``secondary``/``scores`` when
            nothing matches.
        """
        rules = DEFAULT_CATEGORY_RULES if rules is None else rules

        scores: list[CategoryScore] = []
        for category_id in self._candidates(custom_category_ids):
            rule = rules.get(category_id)
            if not rule:
                continue
            score = self.score_rule(bars, rule, mode)
            if score > 0:
                scores.append(CategoryScore(category_id=category_id, score=score))

        # sorted() is stable, so ties keep candidate priority order
        scores = sorted(scores, key=lambda s: s.score, reverse=True)

        if not scores:
            logger.debug("category.unmatched", mode=mode)
            return DerivedCategories(primary=UNMATCHED, secondary=[], scores=[])

        primary = scores[0]
        threshold = primary.score * self.SECONDARY_THRESHOLD
        secondary = [
            s.category_id for s in scores[1:] if s.score >= threshold
        ][: self.MAX_SECONDARY]

        logger.debug(
            "category.derived",
            mode=mode,
            primary=primary.category_id,
            primary_score=round(primary.score, 4),
            secondary=secondary,
        )
        return DerivedCategories(
            primary=primary.category_id, secondary=secondary, scores=scores,
        )

    def derive_category(
        self,
        bars: Sequence[StrengthBar],
        rules: Optional[CategoryRuleSet] = None,
        mode: FilterMode = "precise",
        custom_category_ids: Iterable[str] = (),
    ) -> str:
        """Primary category only."""
        return self.derive_categories(bars, rules, mode, custom_category_ids).primary

    def bars_from_category(
        self, category: str, rules: Optional[CategoryRuleSet] = None
    ) -> list[StrengthBar]:
        """Starting-point vector for a category: every constrained dimension
        at the rounded midpoint of its range, the rest at ``mid``."""
        rules = DEFAULT_CATEGORY_RULES if rules is None else rules
        rule: CategoryRule = rules.get(category) or {}
        result = []
        for label in BAR_LABELS:
            constraint = rule.get(label)
            # Round half up; Python's round() would send 4.5 to 4
            value = int((constraint.min + constraint.max) / 2 + 0.5) if constraint else 3
            result.append(StrengthBar(label=label, level=number_to_level(value)))
        return result

    # ── Internal helpers ────────────────────────────────────────────

    @staticmethod
    def _candidates(custom_category_ids: Iterable[str]) -> list[str]:
        candidates: list[str] = []
        for category_id in (*BUILT_IN_PRIORITY, *custom_category_ids):
            if category_id == UNMATCHED or category_id in candidates:
                continue
            candidates.append(category_id)
        return candidates

    @staticmethod
    def _bar_values(bars: Sequence[StrengthBar]) -> dict[str, int]:
        values: dict[str, int] = {}
        for bar in bars:
            values.setdefault(bar.label, level_to_number(bar.level))
        return values
