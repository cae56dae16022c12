"""Shared pytest fixtures for Earprint tests."""
from unittest.mock import MagicMock

import pytest

from earprint.data.presets import bars
from earprint.repository import InMemoryRepository
from earprint.schemas.signature import Signature, SignaturePerspective


def _make_perspective(pid, levels=(3, 3, 3, 3, 3, 3), **fields):
    fields.setdefault("label", pid)
    fields.setdefault("source", "manual")
    return SignaturePerspective(perspective_id=pid, bars=bars(*levels), **fields)


def _make_signature(*perspectives, default=None):
    return Signature(
        perspectives=list(perspectives),
        default_perspective_id=default or perspectives[0].perspective_id,
    )


@pytest.fixture
def make_perspective():
    return _make_perspective


@pytest.fixture
def make_signature():
    return _make_signature


@pytest.fixture
def bars_payload():
    """JSON-ready bars list as an LLM would return it."""
    def _payload(levels=(4, 2, 4, 3, 3, 3)):
        return [b.model_dump() for b in bars(*levels)]
    return _payload


@pytest.fixture
def repo():
    return InMemoryRepository()


@pytest.fixture
def v_shaped_bars():
    """Bass 5, Vocal 2, Treble 5, Stage 3, Dynamic 3, Warmth 3."""
    return bars(5, 2, 5, 3, 3, 3)


@pytest.fixture
def flat_bars():
    return bars(3, 3, 3, 3, 3, 3)


@pytest.fixture
def song_signature():
    return _make_signature(_make_perspective("song-llm", (3, 3, 3, 3, 3, 3), tags=["dreamy", "lush"]))


@pytest.fixture
def headphone_signature():
    return _make_signature(
        _make_perspective("hp-preset", (5, 3, 2, 3, 3, 4), tags=["warm", "bassy"], category="warm"),
    )


@pytest.fixture
def llm_settings():
    """Settings double for the LLM client."""
    settings = MagicMock()
    settings.OPENAI_MODEL = "gpt-4o"
    settings.OPENAI_API_URL = "https://api.openai.com/v1/chat/completions"
    settings.ANTHROPIC_MODEL = "claude-sonnet-4-20250514"
    settings.GEMINI_MODEL = "gemini-2.0-flash"
    settings.LLM_TEMPERATURE = 0.7
    settings.LLM_MAX_TOKENS = 1024
    settings.LLM_MAX_ATTEMPTS = 3
    settings.LLM_TIMEOUT_SECONDS = 5.0
    return settings
