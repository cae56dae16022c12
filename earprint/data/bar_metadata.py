"""
Rating-vector vocabulary: the six dimension labels, the five-step level
scale, and the human-facing descriptions and readouts for each dimension.
"""

from __future__ import annotations

from typing import Literal, Optional

BarLevel = Literal["low", "mid-low", "mid", "mid-high", "high"]

# Canonical dimension order for every rating vector.
BAR_LABELS: tuple[str, ...] = (
    "Bass Presence",
    "Vocal Focus",
    "Treble Detail",
    "Soundstage",
    "Dynamic Range",
    "Warmth",
)

LEVEL_NAMES: tuple[str, ...] = ("low", "mid-low", "mid", "mid-high", "high")

LEVEL_TO_NUMBER: dict[str, int] = {
    "low": 1, "mid-low": 2, "mid": 3, "mid-high": 4, "high": 5,
}
NUMBER_TO_LEVEL: tuple[str, ...] = LEVEL_NAMES

TICK_LABELS: tuple[str, ...] = ("L", "ML", "M", "MH", "H")

BAR_FREQ_SUBTITLES: dict[str, str] = {
    "Bass Presence": "20–250 Hz",
    "Vocal Focus": "250 Hz–4 kHz",
    "Treble Detail": "4–20 kHz",
    "Soundstage": "Narrow → Wide",
    "Dynamic Range": "Compressed → Expansive",
    "Warmth": "200–500 Hz",
}

BAR_DESCRIPTIONS: dict[str, str] = {
    "Bass Presence": (
        "Sub-bass through mid-bass impact. How much low-end weight and punch "
        "the headphone delivers (20–250 Hz)."
    ),
    "Vocal Focus": (
        "Midrange forwardness. How prominent and present vocals and lead "
        "instruments sound (250 Hz–4 kHz)."
    ),
    "Treble Detail": (
        "High-frequency clarity and air. Cymbal shimmer, sibilance, and "
        "overall brightness (4–20 kHz)."
    ),
    "Soundstage": (
        "Perceived spatial width and depth. How far outside your head the "
        "sound appears to extend."
    ),
    "Dynamic Range": (
        "Micro and macro dynamics. The ability to resolve both subtle detail "
        "and large volume swings."
    ),
    "Warmth": (
        "Lower-mid richness and body. Fullness in male vocals, guitar body, "
        "and string resonance (200–500 Hz)."
    ),
}

BAR_TICK_TOOLTIPS: dict[str, tuple[str, ...]] = {
    "Bass Presence": ("~20–60 Hz", "~60–120 Hz", "~80–160 Hz", "~120–200 Hz", "~160–250 Hz"),
    "Vocal Focus": ("~250–500 Hz", "~500 Hz–1 kHz", "~800 Hz–2 kHz", "~1.5–3 kHz", "~2–4 kHz"),
    "Treble Detail": ("~4–6 kHz", "~6–9 kHz", "~8–12 kHz", "~10–16 kHz", "~14–20 kHz"),
    "Soundstage": ("Intimate", "Narrow", "Average", "Wide", "Expansive"),
    "Dynamic Range": ("Compressed", "Limited", "Moderate", "Dynamic", "Expansive"),
    "Warmth": ("~200–280 Hz", "~250–350 Hz", "~300–400 Hz", "~350–450 Hz", "~400–500 Hz"),
}

BAR_TICK_BOUNDS: dict[str, tuple[tuple[str, str], ...]] = {
    "Bass Presence": (("20", "60 Hz"), ("60", "120 Hz"), ("80", "160 Hz"), ("120", "200 Hz"), ("160", "250 Hz")),
    "Vocal Focus": (("250", "500 Hz"), ("500 Hz", "1 kHz"), ("800 Hz", "2 kHz"), ("1.5", "3 kHz"), ("2", "4 kHz")),
    "Treble Detail": (("4", "6 kHz"), ("6", "9 kHz"), ("8", "12 kHz"), ("10", "16 kHz"), ("14", "20 kHz")),
    "Soundstage": (("Intimate", "Intimate"), ("Narrow", "Narrow"), ("Average", "Average"), ("Wide", "Wide"), ("Expansive", "Expansive")),
    "Dynamic Range": (("Compressed", "Compressed"), ("Limited", "Limited"), ("Moderate", "Moderate"), ("Dynamic", "Dynamic"), ("Expansive", "Expansive")),
    "Warmth": (("200", "280 Hz"), ("250", "350 Hz"), ("300", "400 Hz"), ("350", "450 Hz"), ("400", "500 Hz")),
}

# Qualitative dimensions read out as words rather than frequency spans.
_WORD_SCALES = {"Soundstage", "Dynamic Range"}


def get_readout(label: str, low: int, high: int) -> Optional[str]:
    """Readout for a constraint range, e.g. ``"60–200 Hz"`` or ``"Wide"``."""
    bounds = BAR_TICK_BOUNDS.get(label)
    if bounds is None or not (1 <= low <= 5 and 1 <= high <= 5):
        return None
    low_entry = bounds[low - 1]
    high_entry = bounds[high - 1]
    if label in _WORD_SCALES and low == high:
        return low_entry[0]
    return f"{low_entry[0]}–{high_entry[1]}"


def get_single_readout(label: str, level: int) -> Optional[str]:
    tooltips = BAR_TICK_TOOLTIPS.get(label)
    if tooltips is None or not 1 <= level <= 5:
        return None
    return tooltips[level - 1]
