"""
Earprint — Prompt builder.

Produces the copy-paste (or API) prompts that ask an LLM for a song
signature, a headphone signature, or a listening-experience write-up.  The
JSON shapes requested here are exactly what ``signature_parser`` accepts.
"""

from __future__ import annotations

from typing import Optional, Union

from earprint.data.bar_metadata import BAR_LABELS, LEVEL_NAMES
from earprint.data.voices import get_voice
from earprint.schemas.catalog import Headphone, Song
from earprint.schemas.signature import ActiveSignature, Signature
from earprint.services.experience_service import ExperienceService

SignatureLike = Union[Signature, ActiveSignature]

_HEADPHONE_NAME_PLACEHOLDER = "{headphoneName}"


def _labels_block() -> str:
    return "\n".join(f'- "{label}"' for label in BAR_LABELS)


def _levels_line() -> str:
    return ", ".join(f'"{level}"' for level in LEVEL_NAMES)


def _json_skeleton() -> str:
    bar_lines = ",\n".join(
        f'    {{ "label": "{label}", "level": "..." }}' for label in BAR_LABELS
    )
    return (
        "{\n"
        '  "tags": ["...", "...", "..."],\n'
        '  "bars": [\n'
        f"{bar_lines}\n"
        "  ]\n"
        "}"
    )


def build_custom_voice_hint(name: str, handle: str, headphone_name: str) -> str:
    """Style hint for a reviewer that is not in the built-in voice list."""
    handle_str = f" ({handle} on YouTube)" if handle else ""
    return (
        f"Write in the style of {name}{handle_str}. Match their personality, "
        "vocabulary, and review style as closely as possible. IMPORTANT: If you "
        f"have the tool for websearch, first search for {name}{handle_str} "
        f'headphone reviews — specifically whether they have reviewed the "{headphone_name}" '
        "— to capture their specific opinions, biases, and personality. If you "
        "find their video review, include the YouTube URL in your response as "
        '"videoReviewUrl". If no review exists, emulate their general review '
        "style based on their other content."
    )


class PromptService:
    """Builds LLM prompts for signatures and experience notes."""

    def __init__(self, experience_service: Optional[ExperienceService] = None) -> None:
        self._experience = experience_service or ExperienceService()

    def song_signature_prompt(self, song: Song) -> str:
        return f"""Analyze the sound signature of this song:

Title: {song.title}
Artist: {song.artist}
Album: {song.album}

Please provide a JSON object describing this song's audio characteristics. The JSON must have:
1. "tags" — an array of 3-5 short descriptive words (e.g. "dreamy", "bass-heavy", "crisp")
2. "bars" — an array of exactly 6 objects, each with a "label" and "level"

The 6 required labels (in order):
{_labels_block()}

Each "level" must be one of: {_levels_line()}

Respond with ONLY the JSON object, no other text:

{_json_skeleton()}"""

    def headphone_signature_prompt(self, headphone: Headphone) -> str:
        return f"""Analyze the general sound signature of this headphone:

Name: {headphone.name}
Type: {headphone.specs}

Please provide a JSON object describing this headphone's overall sound characteristics. The JSON must have:
1. "tags" — an array of 3-5 short descriptive words (e.g. "neutral", "wide-stage", "bass-forward", "airy")
2. "bars" — an array of exactly 6 objects, each with a "label" and "level"

The 6 required labels (in order):
{_labels_block()}

Each "level" must be one of: {_levels_line()}

This is about the headphone's general character — how it colors ALL music — not about a specific song.

Respond with ONLY the JSON object, no other text:

{_json_skeleton()}"""

    def voice_hint(
        self,
        headphone_name: str,
        voice_id: Optional[str] = None,
        custom_voice_name: Optional[str] = None,
        custom_voice_handle: str = "",
    ) -> Optional[str]:
        """Resolve the reviewer style hint: custom voice first, then a
        built-in voice; ``None`` for the neutral voice or no voice."""
        if custom_voice_name:
            return build_custom_voice_hint(custom_voice_name, custom_voice_handle, headphone_name)
        voice = get_voice(voice_id)
        if voice is None or not voice.prompt_hint:
            return None
        return voice.prompt_hint

    def experience_prompt(
        self,
        song: Song,
        song_signature: SignatureLike,
        headphone: Headphone,
        hp_signature: SignatureLike,
        voice_prompt_hint: Optional[str] = None,
    ) -> str:
        """Prompt asking how *song* sounds on *headphone*.

        Parameters
        ----------
        song_signature, hp_signature:
            Stored signatures or resolved active signatures; only the
            active values (tags, bars, sections, category) are used.
        voice_prompt_hint:
            Reviewer style hint; ``{headphoneName}`` is substituted.

        Returns
        -------
        str
            The complete prompt string.
        """
        song_bars = "\n".join(f"  {b.label}: {b.level}" for b in song_signature.bars)
        hp_bars = "\n".join(f"  {b.label}: {b.level}" for b in hp_signature.bars)
        deltas = self._experience.format_deltas_for_prompt(hp_signature.bars, song_signature.bars)

        sections = song_signature.sections or []
        has_sections = bool(sections)

        sections_block = ""
        sections_example = ""
        sections_instruction = ""
        if has_sections:
            lines = "\n".join(f"  {s.time} {s.label}: {s.description}" for s in sections)
            sections_block = f"\nSONG STRUCTURE:\n{lines}\n"
            example_lines = ",\n".join(
                f'    {{ "time": "{s.time}", "label": "{s.label}", '
                '"description": "How this section sounds on this headphone" }'
                for s in sections
            )
            sections_example = f',\n  "sections": [\n{example_lines}\n  ]'
            sections_instruction = (
                '\n3. "sections" — an array matching the song structure above. '
                "For each section, describe how it sounds on THIS headphone. Keep "
                "each description to 1 sentence focused on what the listener notices."
            )

        voice_block = ""
        video_instruction = ""
        video_example = ""
        if voice_prompt_hint:
            hint = voice_prompt_hint.replace(_HEADPHONE_NAME_PLACEHOLDER, headphone.name, 1)
            voice_block = f"\nVOICE / PERSONALITY:\n{hint}\n"
            number = "4" if has_sections else "3"
            video_instruction = (
                f'{number}. "videoReviewUrl" — (optional) if you found a YouTube video '
                "review of this headphone by the specified reviewer, include the URL "
                "here. Omit this field if no video was found.\n"
            )
            video_example = (
                ',\n  "videoReviewUrl": "https://youtube.com/watch?v=... '
                '(optional, only if found)"'
            )

        structure_clause = " and the song's structure" if has_sections else ""

        return f"""Describe how this specific song sounds on this specific headphone. Focus on the EXPERIENCE — how the headphone's character shapes the listener's perception of this particular song. There is no "best" headphone — describe the unique coloration and experience this pairing creates.
{voice_block}
SONG:
  Title: {song.title}
  Artist: {song.artist}
  Album: {song.album}
  Tags: {', '.join(song_signature.tags)}
  Sound signature:
{song_bars}
{sections_block}
HEADPHONE:
  Name: {headphone.name}
  Type: {headphone.specs}
  Tags: {', '.join(hp_signature.tags)}
  Category: {hp_signature.category}
  Sound signature:
{hp_bars}

SIGNATURE COMPARISON (headphone vs song):
{deltas}

Based on the comparison above{structure_clause}, describe the listening experience. Reference specific moments or elements of the song where the headphone's character would be most noticeable.

Respond with ONLY a JSON object:
1. "tagline" — a short evocative one-liner describing the experience
2. "description" — 2-3 sentences about how the song sounds on this headphone. Focus on what the listener FEELS, not frequency response.{sections_instruction}
{video_instruction}
{{
  "tagline": "A short evocative one-liner (e.g. \\"The close-your-eyes-on-the-train experience\\")",
  "description": "2-3 sentences about the overall experience."{sections_example}{video_example}
}}"""
