"""
Earprint — Parsing of LLM-produced JSON payloads.

LLM replies arrive either pasted by the user or straight from a provider
API.  Both paths go through the same extraction pipeline and the same
validation, and every rejection carries a message that can be shown to the
user verbatim.
"""

from __future__ import annotations

import json
import re
import uuid
from typing import Iterable, Optional

import structlog
from json_repair import repair_json

from earprint.data.bar_metadata import BAR_LABELS, LEVEL_NAMES
from earprint.data.voices import get_voice
from earprint.schemas.category import CategoryRuleSet, FilterMode
from earprint.schemas.experience import ExperienceVoice
from earprint.schemas.signature import (
    LlmTag,
    Signature,
    SignaturePerspective,
    SignatureValidation,
    SongSection,
    StrengthBar,
)
from earprint.services.category_service import CategoryService

logger = structlog.get_logger("earprint.signature_parser")

_FENCE_PATTERN = re.compile(r"```(?:json)?\s*\n?(.*?)\n?\s*```", re.DOTALL | re.IGNORECASE)

_category_service = CategoryService()


class SignatureParseError(ValueError):
    """Payload could not be turned into a signature or experience voice."""


def new_perspective_id(prefix: str = "llm") -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


# ── JSON extraction ─────────────────────────────────────────────────────────

def extract_json_object(text: str) -> dict:
    """Parse a JSON object out of free-form LLM output.

    Pipeline:
    1. Direct ``json.loads`` on the stripped text
    2. Markdown code-fence extraction
    3. Outermost ``{`` ... ``}`` slice
    4. ``repair_json`` on the text, then on the brace slice

    Raises
    ------
    SignatureParseError
        If no strategy yields a JSON object.
    """
    if not text or not text.strip():
        raise SignatureParseError("Response is empty")

    cleaned = text.strip()

    result = _try_load(cleaned)
    if result is not None:
        return result

    fence = _FENCE_PATTERN.search(cleaned)
    if fence:
        result = _try_load(fence.group(1).strip())
        if result is not None:
            return result

    first_brace = cleaned.find("{")
    last_brace = cleaned.rfind("}")
    candidate = None
    if first_brace >= 0 and last_brace > first_brace:
        candidate = cleaned[first_brace : last_brace + 1]
        result = _try_load(candidate)
        if result is not None:
            return result

    for source in (cleaned, candidate):
        if source is None:
            continue
        try:
            result = _try_load(repair_json(source))
        except Exception as exc:  # repair_json raises a mix of types
            logger.debug("parser.repair_failed", error=str(exc))
            continue
        if result is not None:
            logger.info("parser.json_repaired", preview=cleaned[:80])
            return result

    raise SignatureParseError("Could not find a JSON object in the response")


def _try_load(text: str) -> Optional[dict]:
    try:
        result = json.loads(text)
    except (json.JSONDecodeError, TypeError):
        return None
    return result if isinstance(result, dict) else None


# ── Field validation ────────────────────────────────────────────────────────

def _validate_tags(payload: dict) -> list[str]:
    tags = payload.get("tags")
    if not isinstance(tags, list) or not all(isinstance(t, str) for t in tags):
        raise SignatureParseError("tags must be an array of strings")
    return list(tags)


def _validate_bars(payload: dict) -> list[StrengthBar]:
    raw_bars = payload.get("bars")
    if not isinstance(raw_bars, list) or len(raw_bars) != len(BAR_LABELS):
        raise SignatureParseError("bars must be an array of exactly 6 items")

    bars = []
    for item in raw_bars:
        item = item if isinstance(item, dict) else {}
        label = item.get("label")
        level = item.get("level")
        if label not in BAR_LABELS:
            raise SignatureParseError(
                f'Invalid bar label: "{label}". Expected one of: {", ".join(BAR_LABELS)}'
            )
        if level not in LEVEL_NAMES:
            raise SignatureParseError(
                f'Invalid level "{level}" for "{label}". '
                f'Expected one of: {", ".join(LEVEL_NAMES)}'
            )
        bars.append(StrengthBar(label=label, level=level))

    if len({b.label for b in bars}) != len(BAR_LABELS):
        raise SignatureParseError("All 6 bar labels must be unique")
    return bars


def _parse_sections(payload: dict) -> Optional[list[SongSection]]:
    """Well-formed sections only; malformed entries are dropped."""
    raw = payload.get("sections")
    if not isinstance(raw, list):
        return None
    sections = [
        SongSection(time=s["time"], label=s["label"], description=s["description"])
        for s in raw
        if isinstance(s, dict)
        and all(isinstance(s.get(k), str) for k in ("time", "label", "description"))
    ]
    return sections or None


def _required_text(payload: dict, field: str) -> str:
    value = payload.get(field)
    if not isinstance(value, str) or not value.strip():
        raise SignatureParseError(f"{field} must be a non-empty string")
    return value.strip()


# ── Public parsers ──────────────────────────────────────────────────────────

def parse_song_signature(
    raw: str, llm_tag: Optional[LlmTag] = None, label: str = "LLM"
) -> Signature:
    payload = extract_json_object(raw)
    perspective = SignaturePerspective(
        perspective_id=new_perspective_id(),
        label=label,
        source="llm",
        llm_tag=llm_tag,
        tags=_validate_tags(payload),
        bars=_validate_bars(payload),
        sections=_parse_sections(payload),
    )
    return Signature(perspectives=[perspective], default_perspective_id=perspective.perspective_id)


def parse_headphone_signature(
    raw: str,
    rules: Optional[CategoryRuleSet] = None,
    mode: FilterMode = "precise",
    custom_category_ids: Iterable[str] = (),
    llm_tag: Optional[LlmTag] = None,
    label: str = "LLM",
) -> Signature:
    """Parse a headphone payload and attach the categories its bars derive
    to under the caller's rules."""
    payload = extract_json_object(raw)
    tags = _validate_tags(payload)
    bars = _validate_bars(payload)

    derived = _category_service.derive_categories(bars, rules, mode, custom_category_ids)
    perspective = SignaturePerspective(
        perspective_id=new_perspective_id(),
        label=label,
        source="llm",
        llm_tag=llm_tag,
        tags=tags,
        bars=bars,
        category=derived.primary,
        secondary_categories=derived.secondary,
    )
    return Signature(perspectives=[perspective], default_perspective_id=perspective.perspective_id)


def parse_experience_voice(
    raw: str, voice_id: Optional[str] = None, llm_tag: Optional[LlmTag] = None
) -> ExperienceVoice:
    payload = extract_json_object(raw)
    tagline = _required_text(payload, "tagline")
    description = _required_text(payload, "description")

    voice = get_voice(voice_id)
    video_url = payload.get("videoReviewUrl")
    if not isinstance(video_url, str) or not video_url.strip():
        video_url = None

    return ExperienceVoice(
        perspective_id=new_perspective_id(),
        label=voice.name if voice else (voice_id or "LLM"),
        source="llm",
        llm_tag=llm_tag,
        voice_id=voice_id,
        tagline=tagline,
        description=description,
        sections=_parse_sections(payload),
        video_review_url=video_url.strip() if video_url else None,
    )


# ── Non-raising validation ──────────────────────────────────────────────────

def validate_song_payload(raw: str) -> SignatureValidation:
    try:
        return SignatureValidation(valid=True, signature=parse_song_signature(raw))
    except SignatureParseError as exc:
        return SignatureValidation(valid=False, error=str(exc))


def validate_headphone_payload(
    raw: str,
    rules: Optional[CategoryRuleSet] = None,
    mode: FilterMode = "precise",
    custom_category_ids: Iterable[str] = (),
) -> SignatureValidation:
    try:
        signature = parse_headphone_signature(raw, rules, mode, custom_category_ids)
    except SignatureParseError as exc:
        return SignatureValidation(valid=False, error=str(exc))
    return SignatureValidation(valid=True, signature=signature)
