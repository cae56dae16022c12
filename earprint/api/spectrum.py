"""
Earprint — Spectrum API
"""

from __future__ import annotations

import random

import structlog
from fastapi import APIRouter, Depends, HTTPException, status

from earprint.config import get_settings
from earprint.repository import KeyValueRepository, get_repository
from earprint.schemas.catalog import SpectrumSlot
from earprint.services.category_service import CategoryService
from earprint.services.library_service import (
    CollectionStore,
    SignatureStore,
    SpectrumSelectionStore,
)
from earprint.services.rule_store import RuleStore
from earprint.services.spectrum_service import SpectrumService

logger = structlog.get_logger("earprint.api.spectrum")

router = APIRouter()

_spectrum_service: SpectrumService | None = None


def _get_spectrum_service() -> SpectrumService:
    global _spectrum_service
    if _spectrum_service is None:
        seed = get_settings().SPECTRUM_SEED
        _spectrum_service = SpectrumService(CategoryService(), random.Random(seed))
    return _spectrum_service


async def _build(repo: KeyValueRepository) -> list[SpectrumSlot]:
    collection_ids = await CollectionStore(repo).load()
    signatures = await SignatureStore(repo, "headphone").load_many(collection_ids)
    pins = await SpectrumSelectionStore(repo).load()
    context = await RuleStore(repo, get_settings().DEFAULT_FILTER_MODE).load_context()
    return _get_spectrum_service().build_spectrum(
        collection_ids,
        signatures,
        pins,
        rules=context.rules,
        mode=context.mode,
        custom_category_ids=context.custom_category_ids,
    )


@router.get("", response_model=list[SpectrumSlot], summary="One headphone per category")
async def get_spectrum(
    repo: KeyValueRepository = Depends(get_repository),
) -> list[SpectrumSlot]:
    return await _build(repo)


@router.post(
    "/{category}/reroll",
    response_model=list[SpectrumSlot],
    summary="Pick a different headphone for one category",
)
async def reroll(
    category: str,
    repo: KeyValueRepository = Depends(get_repository),
) -> list[SpectrumSlot]:
    slots = await _build(repo)
    slot = next((s for s in slots if s.category == category), None)
    if slot is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No spectrum slot for category {category!r}.",
        )

    selections = SpectrumSelectionStore(repo)
    pins = _get_spectrum_service().reroll(slot, await selections.load())
    await selections.save(pins)
    logger.info("spectrum_rerolled", category=category, pinned=pins.get(category))
    return await _build(repo)
