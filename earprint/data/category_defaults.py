"""
Built-in headphone categories and their default matching rules.

Rules are tuning data, not derived: each entry lists the dimensions that
define the category and the acceptable level range on each.
"""

from __future__ import annotations

from earprint.schemas.category import BarConstraint, CategoryRuleSet

UNMATCHED = "unmatched"

BUILT_IN_CATEGORIES: tuple[str, ...] = (
    "dark", "bright", "balanced", UNMATCHED, "v-shaped", "warm", "analytical", "intimate",
)

# Candidate order for scoring; ties resolve to the earlier entry.
BUILT_IN_PRIORITY: tuple[str, ...] = (
    "v-shaped",
    "analytical",
    "dark",
    "bright",
    "intimate",
    "warm",
    "balanced",
)

CATEGORY_LABELS: dict[str, str] = {
    "dark": "Dark",
    "bright": "Bright",
    "balanced": "Balanced",
    UNMATCHED: "Unmatched",
    "v-shaped": "V-Shaped",
    "warm": "Warm",
    "analytical": "Analytical",
    "intimate": "Intimate",
}


def _c(lo: int, hi: int, gradient: int = 1) -> BarConstraint:
    return BarConstraint(min=lo, max=hi, gradient=gradient)


DEFAULT_CATEGORY_RULES: CategoryRuleSet = {
    "v-shaped": {
        "Bass Presence": _c(4, 5),
        "Treble Detail": _c(4, 5),
        "Vocal Focus": _c(1, 3),
    },
    "analytical": {
        "Dynamic Range": _c(4, 5),
        "Treble Detail": _c(4, 5),
        "Soundstage": _c(4, 5),
    },
    "dark": {
        "Bass Presence": _c(4, 5),
        "Warmth": _c(4, 5),
        "Treble Detail": _c(1, 3),
    },
    "bright": {
        "Treble Detail": _c(4, 5),
        "Bass Presence": _c(1, 3),
        "Warmth": _c(1, 2),
    },
    "intimate": {
        "Vocal Focus": _c(4, 5),
        "Soundstage": _c(1, 3),
        "Warmth": _c(3, 5),
    },
    "warm": {
        "Warmth": _c(4, 5),
        "Bass Presence": _c(3, 5),
        "Vocal Focus": _c(3, 5),
    },
    "balanced": {
        "Bass Presence": _c(3, 4),
        "Vocal Focus": _c(3, 4),
        "Treble Detail": _c(3, 4),
        "Warmth": _c(3, 4),
    },
    UNMATCHED: {},
}


def default_rules() -> CategoryRuleSet:
    """Fresh copy of the default rule set, safe for callers to modify."""
    return {
        category: {label: c.model_copy() for label, c in rule.items()}
        for category, rule in DEFAULT_CATEGORY_RULES.items()
    }


def is_built_in(category: str) -> bool:
    return category in BUILT_IN_CATEGORIES
