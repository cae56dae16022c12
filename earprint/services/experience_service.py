"""
Earprint — Rule-based listening experience notes.

Compares a headphone's rating vector against a song's and describes how
the song will feel on that headphone.  Output is a pure function of the two
vectors.
"""

from __future__ import annotations

from typing import Optional, Sequence

import structlog

from earprint.data.bar_metadata import LEVEL_TO_NUMBER
from earprint.schemas.experience import BarDelta, ExperienceNote
from earprint.schemas.signature import StrengthBar

logger = structlog.get_logger("earprint.experience_service")

FAITHFUL_TAGLINE = (
    "This headphone reproduces the song faithfully — what you hear is what "
    "was intended"
)
CLOSE_MATCH_DESCRIPTION = (
    "This is a close match — the headphone's signature aligns with what this "
    "song asks for. You'll hear it largely as the artist intended."
)

# (dimension) -> {bucket: phrase}; buckets are clamped deltas -2..+2
EXPERIENCE_PHRASES: dict[str, dict[int, str]] = {
    "Bass Presence": {
        2: "The low-end hits harder than the mix calls for — expect a thicker, more physical bass",
        1: "Bass feels slightly fuller, adding weight to the low-end",
        0: "Bass reproduced faithfully to the mix",
        -1: "Bass sits a touch lighter than intended — the low-end feels leaner",
        -2: "The low-end is noticeably pulled back — bass-heavy moments lose their punch",
    },
    "Vocal Focus": {
        2: "Vocals push forward and dominate — expect an intimate, in-your-face midrange",
        1: "Vocals come through slightly more present and upfront",
        0: "Vocals land exactly where the mix places them",
        -1: "Vocals sit a step back in the mix — they're there but not leading",
        -2: "Vocals recede behind instruments — the midrange takes a back seat",
    },
    "Treble Detail": {
        2: "Cymbals, hi-hats, and sibilance are sharp and forward — bright and revealing",
        1: "Treble has a slight sparkle, revealing more high-frequency detail",
        0: "Treble detail matches what the recording intended",
        -1: "High-end is slightly smoothed over — a more relaxed, less fatiguing listen",
        -2: "Treble is noticeably rolled off — high-frequency textures get lost",
    },
    "Soundstage": {
        2: "The sound opens up wider than the recording — instruments spread out with extra space",
        1: "Slight extra width gives the mix a bit more room to breathe",
        0: "Spatial presentation matches the recording's intent",
        -1: "The image feels a touch narrower — elements sit closer together",
        -2: "Everything feels compressed inward — wide-panned elements lose their separation",
    },
    "Dynamic Range": {
        2: "Quiet-to-loud contrasts feel exaggerated — dynamic moments hit harder",
        1: "Dynamics are slightly more pronounced, adding drama to swells",
        0: "Dynamic contrasts come through naturally",
        -1: "Dynamic swings feel slightly evened out — a more consistent volume",
        -2: "Loud and quiet passages blend together — the drama is flattened",
    },
    "Warmth": {
        2: "A rich, full-bodied coloration wraps the sound in extra warmth",
        1: "A touch of added warmth gives the lower-mids more body",
        0: "Warmth and body match the recording faithfully",
        -1: "The sound leans slightly cooler and thinner",
        -2: "The lower-mids feel stripped back — the sound comes across lean and clinical",
    },
}

TRAIT_WORDS: dict[int, str] = {
    2: "emphasized",
    1: "slightly fuller",
    -1: "leaner",
    -2: "recessed",
}

PROMPT_DELTA_LABELS: dict[int, str] = {
    4: "strongly emphasized",
    3: "strongly emphasized",
    2: "noticeably forward",
    1: "slightly forward",
    0: "matched",
    -1: "slightly recessed",
    -2: "noticeably recessed",
    -3: "strongly recessed",
    -4: "strongly recessed",
}

_SHORT_NAME_SUFFIXES = (" Presence", " Focus", " Detail", " Range")


def _bucket(delta: int) -> int:
    return max(-2, min(2, delta))


def _short_name(label: str) -> str:
    for suffix in _SHORT_NAME_SUFFIXES:
        label = label.replace(suffix, "")
    return label.lower()


def _by_magnitude(deltas: Sequence[BarDelta]) -> list[BarDelta]:
    return sorted(
        (d for d in deltas if d.delta != 0),
        key=lambda d: abs(d.delta),
        reverse=True,
    )


class ExperienceService:
    """Deterministic experience notes and prompt comparison blocks."""

    MID_LEVEL: int = 3
    TAGLINE_TRAITS: int = 2

    def compute_deltas(
        self, hp_bars: Sequence[StrengthBar], song_bars: Sequence[StrengthBar]
    ) -> list[BarDelta]:
        """One delta per headphone dimension, headphone minus song.

        Levels missing on either side count as ``mid``.
        """
        song_levels = {b.label: LEVEL_TO_NUMBER.get(b.level, self.MID_LEVEL) for b in song_bars}
        deltas = []
        for bar in hp_bars:
            hp_level = LEVEL_TO_NUMBER.get(bar.level, self.MID_LEVEL)
            song_level = song_levels.get(bar.label, self.MID_LEVEL)
            deltas.append(BarDelta(
                label=bar.label,
                hp_level=hp_level,
                song_level=song_level,
                delta=hp_level - song_level,
            ))
        return deltas

    def derive_experience_note(
        self, hp_bars: Sequence[StrengthBar], song_bars: Sequence[StrengthBar]
    ) -> ExperienceNote:
        significant = _by_magnitude(self.compute_deltas(hp_bars, song_bars))

        if not significant:
            tagline = FAITHFUL_TAGLINE
            description = CLOSE_MATCH_DESCRIPTION
        else:
            traits = [
                f"{TRAIT_WORDS[_bucket(d.delta)]} {_short_name(d.label)}"
                for d in significant[: self.TAGLINE_TRAITS]
            ]
            tagline = f"Expect {' and '.join(traits)} compared to the original mix"

            lines = [
                phrase for phrase in (self._phrase(d) for d in significant)
                if phrase
            ]
            description = ". ".join(lines) + "." if lines else CLOSE_MATCH_DESCRIPTION

        logger.debug("experience.derived", changed=len(significant))
        return ExperienceNote(tagline=tagline, description=description, source="auto")

    def format_deltas_for_prompt(
        self, hp_bars: Sequence[StrengthBar], song_bars: Sequence[StrengthBar]
    ) -> str:
        """Comparison block for experience prompts, one line per dimension:
        ``- Bass Presence: HP 5/5 vs Song 3/5 (+2) — noticeably forward``."""
        lines = []
        for d in self.compute_deltas(hp_bars, song_bars):
            sign = "+" if d.delta > 0 else "=" if d.delta == 0 else ""
            descriptor = PROMPT_DELTA_LABELS[max(-4, min(4, d.delta))]
            lines.append(
                f"- {d.label}: HP {d.hp_level}/5 vs Song {d.song_level}/5 "
                f"({sign}{d.delta}) — {descriptor}"
            )
        return "\n".join(lines)

    @staticmethod
    def _phrase(delta: BarDelta) -> Optional[str]:
        phrases = EXPERIENCE_PHRASES.get(delta.label)
        if phrases is None:
            return None
        return phrases[_bucket(delta.delta)]
