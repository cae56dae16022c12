"""
Reviewer "voices" for experience prompts and the LLM tag options shown next
to LLM-sourced perspectives.
"""

from __future__ import annotations

from typing import NamedTuple, Optional

_WEBSEARCH_HINT = (
    "IMPORTANT: If you have the tool for websearch, first search for whether "
    "{reviewer} has actually reviewed the \"{{headphoneName}}\" to capture "
    "{focus}. If you find {pronoun} video review, include the YouTube URL in "
    "your response as \"videoReviewUrl\"."
)


class Voice(NamedTuple):
    id: str
    name: str
    handle: str
    style: str        # short description for the UI
    prompt_hint: str  # injected into the LLM prompt


class LlmTagOption(NamedTuple):
    id: str
    name: str
    icon: str


LLM_TAG_OPTIONS: list[LlmTagOption] = [
    LlmTagOption("chatgpt", "ChatGPT", "GPT"),
    LlmTagOption("gemini", "Gemini", "GEM"),
    LlmTagOption("claude", "Claude", "CLD"),
    LlmTagOption("other", "Other", "LLM"),
]


def _hint(style: str, reviewer: str, focus: str, pronoun: str = "his") -> str:
    return f"{style} " + _WEBSEARCH_HINT.format(
        reviewer=reviewer, focus=focus, pronoun=pronoun,
    )


VOICES: list[Voice] = [
    Voice(
        id="neutral",
        name="Neutral",
        handle="",
        style="No personality — straightforward description",
        prompt_hint="",
    ),
    Voice(
        id="zeos",
        name="Z Reviews / Zeos Pantera",
        handle="@ZeosReviews",
        style="Chaotic, hyperbolic, stream-of-consciousness energy",
        prompt_hint=_hint(
            "Write in the style of Zeos Pantera (Z Reviews on YouTube). He is "
            "chaotic, hyperbolic, uses stream-of-consciousness rants, all-caps "
            "energy, colorful metaphors, and gets physically excited about bass "
            "and soundstage. He often says things like \"DUDE\" and uses absurd "
            "comparisons.",
            "Zeos", "his specific opinions and biases toward this headphone",
        ),
    ),
    Voice(
        id="dms",
        name="DMS",
        handle="@DMS3TV",
        style="Analytical, structured, technical but accessible",
        prompt_hint=_hint(
            "Write in the style of DMS (YouTube headphone reviewer). He is "
            "analytical, structured, and methodical. He breaks down the sound "
            "scientifically but keeps it accessible. He references specific "
            "frequency ranges and uses precise audiophile terminology without "
            "being pretentious.",
            "DMS", "his specific opinions and biases toward this headphone",
        ),
    ),
    Voice(
        id="crinacle",
        name="Crinacle",
        handle="@Crinacle",
        style="Data-driven, deadpan, measurement-focused, occasionally savage",
        prompt_hint=_hint(
            "Write in the style of Crinacle (In-Ear Fidelity). He is "
            "data-driven, deadpan, measurement-focused, and occasionally savage "
            "in his assessments. He references graphs and target curves "
            "implicitly, ranks things on a letter-grade scale mentally, and "
            "doesn't sugarcoat. He's skeptical of hype.",
            "Crinacle", "his specific measurement data and ranking",
        ),
    ),
    Voice(
        id="dankpods",
        name="DankPods",
        handle="@DankPods",
        style="Comedy-first, irreverent, Australian slang, brutally honest",
        prompt_hint=_hint(
            "Write in the style of DankPods (Wade Nixon on YouTube). He is "
            "comedy-first, uses Australian slang, irreverent, and brutally "
            "honest about bad gear. He names things with absurd nicknames, uses "
            "phrases like \"nuggets\" for earbuds, and has a genuine love for "
            "good audio underneath the humor.",
            "DankPods", "his specific takes",
        ),
    ),
    Voice(
        id="joshua-valour",
        name="Joshua Valour",
        handle="@JoshuaValour",
        style="Cinematic, emotive, poetic descriptions",
        prompt_hint=_hint(
            "Write in the style of Joshua Valour (YouTube audiophile reviewer). "
            "He is cinematic and emotive, using poetic and evocative language to "
            "describe sound. He focuses on the emotional journey of listening "
            "and paints vivid pictures with words. His descriptions feel like "
            "short film narrations.",
            "Joshua Valour", "his specific impressions",
        ),
    ),
    Voice(
        id="resolve",
        name="Resolve / The Headphone Show",
        handle="@TheHeadphoneShow",
        style="Methodical, measurement-backed, structured listening notes",
        prompt_hint=_hint(
            "Write in the style of Resolve from The Headphone Show. He is "
            "methodical, measurement-backed, and writes structured listening "
            "notes. He references specific measurement artifacts and their "
            "audible effects, compares to well-known reference headphones, and "
            "is balanced but opinionated when warranted.",
            "Resolve/The Headphone Show", "his specific analysis",
        ),
    ),
    Voice(
        id="badguy",
        name="BadGuy Good Audio",
        handle="@BadGuyGoodAudio",
        style="Casual, conversational, community-focused, relatable",
        prompt_hint=_hint(
            "Write in the style of BadGuy Good Audio Reviews (YouTube). He is "
            "casual, conversational, community-focused, and relatable. He "
            "speaks like a friend recommending gear over coffee, uses everyday "
            "language instead of audiophile jargon, and cares about value and "
            "real-world usability.",
            "BadGuy Good Audio", "his specific opinions",
        ),
    ),
    Voice(
        id="super-review",
        name="Super* Review",
        handle="@SuperReview",
        style="Calm, understated, measured, dry wit",
        prompt_hint=_hint(
            "Write in the style of Super* Review (YouTube). He is calm, "
            "understated, and measured with a dry wit. He doesn't exaggerate or "
            "hype — every word is chosen carefully. His reviews feel considered "
            "and trustworthy because of their restraint.",
            "Super* Review", "his specific impressions",
        ),
    ),
]

VOICE_MAP: dict[str, Voice] = {v.id: v for v in VOICES}


def get_voice(voice_id: Optional[str]) -> Optional[Voice]:
    if not voice_id:
        return None
    return VOICE_MAP.get(voice_id)
