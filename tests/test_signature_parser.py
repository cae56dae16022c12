"""Unit tests for the LLM payload parsers."""
import json

import pytest

from earprint.data.category_defaults import default_rules
from earprint.schemas.category import BarConstraint
from earprint.services.signature_parser import (
    SignatureParseError,
    extract_json_object,
    parse_experience_voice,
    parse_headphone_signature,
    parse_song_signature,
    validate_headphone_payload,
    validate_song_payload,
)


@pytest.fixture
def song_payload(bars_payload):
    return {
        "tags": ["dreamy", "lush"],
        "bars": bars_payload(),
        "sections": [
            {"time": "0:00–0:30", "label": "Intro", "description": "Soft pads"},
            {"time": "0:30–1:10", "label": "Verse"},
        ],
    }


class TestExtractJsonObject:
    """Tests for the extraction pipeline."""

    def test_plain_json(self):
        assert extract_json_object('{"a": 1}') == {"a": 1}

    def test_fenced_json_with_chatter(self):
        text = 'Here you go:\n```json\n{"a": 1}\n```\nEnjoy!'
        assert extract_json_object(text) == {"a": 1}

    def test_braces_inside_prose(self):
        assert extract_json_object('Sure! {"a": [1, 2]} Hope that helps.') == {"a": [1, 2]}

    def test_trailing_comma_repaired(self):
        assert extract_json_object('{"a": 1, "b": 2,}') == {"a": 1, "b": 2}

    def test_empty_text(self):
        with pytest.raises(SignatureParseError, match="Response is empty"):
            extract_json_object("   ")

    def test_array_is_not_an_object(self):
        with pytest.raises(SignatureParseError):
            extract_json_object("[1, 2, 3]")


class TestParseSongSignature:
    def test_valid_payload(self, song_payload):
        sig = parse_song_signature(json.dumps(song_payload), llm_tag="claude")
        active = sig.active
        assert active.source == "llm"
        assert active.llm_tag == "claude"
        assert active.label == "LLM"
        assert active.perspective_id.startswith("llm-")
        assert sig.tags == ["dreamy", "lush"]
        assert [b.level for b in sig.bars] == ["mid-high", "mid-low", "mid-high", "mid", "mid", "mid"]

    def test_malformed_sections_dropped(self, song_payload):
        sig = parse_song_signature(json.dumps(song_payload))
        assert [s.label for s in sig.sections] == ["Intro"]

    def test_songs_carry_no_category(self, song_payload):
        assert parse_song_signature(json.dumps(song_payload)).category is None

    def test_fresh_perspective_ids(self, song_payload):
        raw = json.dumps(song_payload)
        assert (
            parse_song_signature(raw).default_perspective_id
            != parse_song_signature(raw).default_perspective_id
        )

    def test_tags_must_be_strings(self, song_payload):
        song_payload["tags"] = ["ok", 3]
        with pytest.raises(SignatureParseError, match="tags must be an array of strings"):
            parse_song_signature(json.dumps(song_payload))

    def test_wrong_bar_count(self, song_payload):
        song_payload["bars"] = song_payload["bars"][:5]
        with pytest.raises(SignatureParseError, match="exactly 6 items"):
            parse_song_signature(json.dumps(song_payload))

    def test_unknown_label(self, song_payload):
        song_payload["bars"][0]["label"] = "Sub Bass"
        with pytest.raises(SignatureParseError) as exc_info:
            parse_song_signature(json.dumps(song_payload))
        assert str(exc_info.value).startswith('Invalid bar label: "Sub Bass". Expected one of: Bass Presence')

    def test_unknown_level(self, song_payload):
        song_payload["bars"][2]["level"] = "extreme"
        with pytest.raises(SignatureParseError) as exc_info:
            parse_song_signature(json.dumps(song_payload))
        assert str(exc_info.value) == (
            'Invalid level "extreme" for "Treble Detail". '
            "Expected one of: low, mid-low, mid, mid-high, high"
        )

    def test_duplicate_labels(self, song_payload):
        song_payload["bars"][1]["label"] = "Bass Presence"
        with pytest.raises(SignatureParseError, match="All 6 bar labels must be unique"):
            parse_song_signature(json.dumps(song_payload))

    def test_no_json(self):
        with pytest.raises(SignatureParseError):
            parse_song_signature("I cannot help with that.")


class TestParseHeadphoneSignature:
    def test_category_derived_from_bars(self, bars_payload):
        raw = json.dumps({"tags": ["fun"], "bars": bars_payload((5, 2, 5, 3, 3, 3))})
        sig = parse_headphone_signature(raw, default_rules())
        assert sig.category == "v-shaped"
        assert sig.secondary_categories == []
        assert sig.sections is None

    def test_custom_rules_respected(self, bars_payload):
        rules = default_rules()
        rules["basshead"] = {"Bass Presence": BarConstraint(min=5, max=5, gradient=0)}
        raw = json.dumps({"tags": [], "bars": bars_payload((5, 3, 3, 3, 3, 3))})
        sig = parse_headphone_signature(raw, rules, custom_category_ids=["basshead"])
        assert sig.category == "basshead"

    def test_tags_checked_before_bars(self):
        raw = json.dumps({"tags": "warm", "bars": []})
        with pytest.raises(SignatureParseError, match="tags must be"):
            parse_headphone_signature(raw)


class TestParseExperienceVoice:
    def test_known_voice_label(self):
        raw = json.dumps({
            "tagline": "  Big bass energy ",
            "description": "It slams.",
            "videoReviewUrl": "https://youtu.be/abc",
        })
        voice = parse_experience_voice(raw, voice_id="zeos", llm_tag="gemini")
        assert voice.label == "Z Reviews / Zeos Pantera"
        assert voice.voice_id == "zeos"
        assert voice.tagline == "Big bass energy"
        assert voice.video_review_url == "https://youtu.be/abc"
        assert voice.source == "llm"

    def test_unknown_voice_uses_id(self):
        raw = json.dumps({"tagline": "t", "description": "d"})
        assert parse_experience_voice(raw, voice_id="custom-bob").label == "custom-bob"
        assert parse_experience_voice(raw).label == "LLM"

    def test_blank_video_url_dropped(self):
        raw = json.dumps({"tagline": "t", "description": "d", "videoReviewUrl": " "})
        assert parse_experience_voice(raw).video_review_url is None

    def test_missing_tagline(self):
        with pytest.raises(SignatureParseError, match="tagline must be a non-empty string"):
            parse_experience_voice(json.dumps({"description": "d"}))

    def test_blank_description(self):
        with pytest.raises(SignatureParseError, match="description must be a non-empty string"):
            parse_experience_voice(json.dumps({"tagline": "t", "description": "  "}))


class TestValidatePayload:
    def test_valid_song(self, song_payload):
        result = validate_song_payload(json.dumps(song_payload))
        assert result.valid
        assert result.error is None

    def test_invalid_song_reports_message(self):
        result = validate_song_payload('{"tags": []}')
        assert not result.valid
        assert result.signature is None
        assert result.error == "bars must be an array of exactly 6 items"

    def test_headphone(self, bars_payload):
        result = validate_headphone_payload(
            json.dumps({"tags": [], "bars": bars_payload()}), default_rules(),
        )
        assert result.valid
        assert result.signature.category is not None
