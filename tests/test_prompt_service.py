"""Unit tests for PromptService."""
import pytest

from earprint.data.bar_metadata import BAR_LABELS
from earprint.data.voices import get_voice
from earprint.schemas.catalog import Headphone, Song
from earprint.schemas.signature import SongSection
from earprint.services.prompt_service import PromptService, build_custom_voice_hint


@pytest.fixture
def prompt_service():
    return PromptService()


@pytest.fixture
def song():
    return Song(id="s1", title="Teardrop", artist="Massive Attack", album="Mezzanine")


@pytest.fixture
def headphone():
    return Headphone(id="hd600", name="Sennheiser HD 600", specs="open-back · 300Ω · dynamic", dot_color="sennheiser")


class TestSignaturePrompts:
    def test_song_prompt_lists_metadata_and_labels(self, prompt_service, song):
        prompt = prompt_service.song_signature_prompt(song)
        assert "Title: Teardrop" in prompt
        assert "Artist: Massive Attack" in prompt
        for label in BAR_LABELS:
            assert f'- "{label}"' in prompt
            assert f'{{ "label": "{label}", "level": "..." }}' in prompt
        assert '"low", "mid-low", "mid", "mid-high", "high"' in prompt

    def test_headphone_prompt(self, prompt_service, headphone):
        prompt = prompt_service.headphone_signature_prompt(headphone)
        assert prompt.startswith("Analyze the general sound signature of this headphone:")
        assert "Name: Sennheiser HD 600" in prompt
        assert "how it colors ALL music" in prompt
        assert prompt.rstrip().endswith("}")


class TestVoiceHint:
    def test_custom_voice_wins(self, prompt_service):
        hint = prompt_service.voice_hint("HD 600", voice_id="zeos", custom_voice_name="Bob")
        assert hint.startswith("Write in the style of Bob.")
        assert '"HD 600"' in hint

    def test_custom_voice_handle(self):
        hint = build_custom_voice_hint("Bob", "@bob", "HD 600")
        assert "Bob (@bob on YouTube)" in hint

    def test_builtin_voice(self, prompt_service):
        assert prompt_service.voice_hint("HD 600", voice_id="zeos") == get_voice("zeos").prompt_hint

    def test_neutral_and_missing_voice(self, prompt_service):
        assert prompt_service.voice_hint("HD 600", voice_id="neutral") is None
        assert prompt_service.voice_hint("HD 600") is None


class TestExperiencePrompt:
    def test_contains_both_signatures_and_comparison(
        self, prompt_service, song, headphone, song_signature, headphone_signature
    ):
        prompt = prompt_service.experience_prompt(song, song_signature, headphone, headphone_signature)
        assert "Tags: dreamy, lush" in prompt
        assert "Category: warm" in prompt
        assert "- Bass Presence: HP 5/5 vs Song 3/5 (+2) — noticeably forward" in prompt
        assert "VOICE / PERSONALITY" not in prompt
        assert '"sections"' not in prompt
        assert "videoReviewUrl" not in prompt

    def test_sections_included(
        self, prompt_service, song, headphone, make_perspective, make_signature, headphone_signature
    ):
        sections = [SongSection(time="0:00–0:40", label="Intro", description="Harpsichord")]
        song_sig = make_signature(make_perspective("s", sections=sections))
        prompt = prompt_service.experience_prompt(song, song_sig, headphone, headphone_signature)
        assert "SONG STRUCTURE:\n  0:00–0:40 Intro: Harpsichord" in prompt
        assert "and the song's structure" in prompt
        assert '"time": "0:00–0:40"' in prompt

    def test_voice_hint_substitutes_headphone_name(
        self, prompt_service, song, headphone, song_signature, headphone_signature
    ):
        prompt = prompt_service.experience_prompt(
            song, song_signature, headphone, headphone_signature,
            voice_prompt_hint='Review the "{headphoneName}" loudly.',
        )
        assert 'VOICE / PERSONALITY:\nReview the "Sennheiser HD 600" loudly.' in prompt
        assert '3. "videoReviewUrl"' in prompt

    def test_video_instruction_numbered_after_sections(
        self, prompt_service, song, headphone, make_perspective, make_signature, headphone_signature
    ):
        sections = [SongSection(time="0:00", label="Intro", description="Quiet")]
        song_sig = make_signature(make_perspective("s", sections=sections))
        prompt = prompt_service.experience_prompt(
            song, song_sig, headphone, headphone_signature, voice_prompt_hint="Be terse.",
        )
        assert '4. "videoReviewUrl"' in prompt
