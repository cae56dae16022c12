"""
Earprint — Reference data API

Static vocabulary the client renders: dimension descriptions and tick
readouts, category names, reviewer voices and LLM tag options.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from earprint.config import get_settings
from earprint.data.bar_metadata import (
    BAR_DESCRIPTIONS,
    BAR_FREQ_SUBTITLES,
    BAR_LABELS,
    BAR_TICK_TOOLTIPS,
    TICK_LABELS,
    get_readout,
    get_single_readout,
)
from earprint.data.category_defaults import BUILT_IN_CATEGORIES, CATEGORY_LABELS
from earprint.data.voices import LLM_TAG_OPTIONS, VOICES
from earprint.repository import KeyValueRepository, get_repository
from earprint.schemas.meta import (
    CategoryInfo,
    DimensionInfo,
    LlmTagInfo,
    ReadoutResponse,
    VoiceInfo,
)
from earprint.services.rule_store import RuleStore

router = APIRouter()


@router.get("/dimensions", response_model=list[DimensionInfo], summary="Rating dimensions")
async def list_dimensions() -> list[DimensionInfo]:
    return [
        DimensionInfo(
            label=label,
            subtitle=BAR_FREQ_SUBTITLES[label],
            description=BAR_DESCRIPTIONS[label],
            tick_labels=list(TICK_LABELS),
            tick_tooltips=list(BAR_TICK_TOOLTIPS[label]),
        )
        for label in BAR_LABELS
    ]


@router.get("/readout", response_model=ReadoutResponse, summary="Readout for a level or range")
async def readout(
    label: str,
    low: int = Query(ge=1, le=5),
    high: Optional[int] = Query(default=None, ge=1, le=5),
) -> ReadoutResponse:
    """Single-level tooltip when ``high`` is omitted, range readout
    otherwise."""
    if high is None:
        return ReadoutResponse(label=label, readout=get_single_readout(label, low))
    return ReadoutResponse(label=label, readout=get_readout(label, low, high))


@router.get("/categories", response_model=list[CategoryInfo], summary="Built-in and custom categories")
async def list_categories(
    repo: KeyValueRepository = Depends(get_repository),
) -> list[CategoryInfo]:
    store = RuleStore(repo, get_settings().DEFAULT_FILTER_MODE)
    built_in = [CategoryInfo(id=c, name=CATEGORY_LABELS[c]) for c in BUILT_IN_CATEGORIES]
    custom = [
        CategoryInfo(id=d.id, name=d.name, built_in=False)
        for d in await store.load_custom_categories()
    ]
    return built_in + custom


@router.get("/voices", response_model=list[VoiceInfo], summary="Reviewer voices")
async def list_voices() -> list[VoiceInfo]:
    return [VoiceInfo(id=v.id, name=v.name, handle=v.handle, style=v.style) for v in VOICES]


@router.get("/llm-tags", response_model=list[LlmTagInfo], summary="LLM tag options")
async def list_llm_tags() -> list[LlmTagInfo]:
    return [LlmTagInfo(id=t.id, name=t.name, icon=t.icon) for t in LLM_TAG_OPTIONS]
