"""
Earprint — Collection API

The user's owned headphones (catalog preset ids) and the preset catalog
itself.
"""

from __future__ import annotations

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, status

from earprint.data.presets import (
    PRESET_MAP,
    PRESETS,
    get_presets_by_brand,
    get_presets_by_form_factor,
)
from earprint.api.categories import rederive_headphones
from earprint.repository import KeyValueRepository, get_repository
from earprint.schemas.catalog import CollectionResponse, HeadphonePreset
from earprint.services.library_service import CollectionStore

logger = structlog.get_logger("earprint.api.collection")

router = APIRouter()


def _response(ids: list[str]) -> CollectionResponse:
    return CollectionResponse(ids=ids, headphones=CollectionStore.to_headphones(ids))


@router.get("", response_model=CollectionResponse, summary="List owned headphones")
async def get_collection(
    repo: KeyValueRepository = Depends(get_repository),
) -> CollectionResponse:
    """Owned headphones.  A pre-catalog ``headphones`` list is migrated on
    first read."""
    ids = await CollectionStore(repo).migrate_from_legacy()
    return _response(ids)


@router.get("/presets", response_model=list[HeadphonePreset], summary="Browse the preset catalog")
async def list_presets(
    brand: Optional[str] = Query(default=None),
    form_factor: Optional[str] = Query(default=None, alias="formFactor"),
) -> list[HeadphonePreset]:
    presets = get_presets_by_brand(brand) if brand is not None else list(PRESETS)
    if form_factor is not None:
        allowed = {p.id for p in get_presets_by_form_factor(form_factor)}
        presets = [p for p in presets if p.id in allowed]
    return presets


@router.post("/{headphone_id}", response_model=CollectionResponse, summary="Add a headphone")
async def add_headphone(
    headphone_id: str,
    repo: KeyValueRepository = Depends(get_repository),
) -> CollectionResponse:
    if headphone_id not in PRESET_MAP:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown preset {headphone_id!r}.",
        )
    ids = await CollectionStore(repo).add(headphone_id)
    await rederive_headphones(repo, [headphone_id])
    logger.info("collection_added", headphone_id=headphone_id, size=len(ids))
    return _response(ids)


@router.delete("/{headphone_id}", response_model=CollectionResponse, summary="Remove a headphone")
async def remove_headphone(
    headphone_id: str,
    repo: KeyValueRepository = Depends(get_repository),
) -> CollectionResponse:
    ids = await CollectionStore(repo).remove(headphone_id)
    logger.info("collection_removed", headphone_id=headphone_id, size=len(ids))
    return _response(ids)
