"""
Earprint — Categories API

Endpoints for reading and tuning the category rule set, switching the
filter mode, managing custom categories, and classifying a rating vector.
"""

from __future__ import annotations

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, status

from earprint.config import get_settings
from earprint.repository import KeyValueRepository, get_repository
from earprint.schemas.category import (
    CategoryRuleSet,
    CustomCategoryCreate,
    DeriveRequest,
    DerivedCategories,
    FilterModeUpdate,
    RuleSetResponse,
)
from earprint.services.category_service import CategoryService
from earprint.services.library_service import CollectionStore, SignatureStore
from earprint.services.perspective_service import PerspectiveService
from earprint.services.rule_store import (
    CategoryExistsError,
    CategoryNotFoundError,
    RuleStore,
)

logger = structlog.get_logger("earprint.api.categories")

router = APIRouter()

# ── Service singletons ────────────────────────────────────────────────────────

_category_service: CategoryService | None = None
_perspective_service: PerspectiveService | None = None


def _get_category_service() -> CategoryService:
    global _category_service
    if _category_service is None:
        _category_service = CategoryService()
    return _category_service


def _get_perspective_service() -> PerspectiveService:
    global _perspective_service
    if _perspective_service is None:
        _perspective_service = PerspectiveService(_get_category_service())
    return _perspective_service


def _rule_store(repo: KeyValueRepository) -> RuleStore:
    return RuleStore(repo, get_settings().DEFAULT_FILTER_MODE)


async def rederive_headphones(
    repo: KeyValueRepository, headphone_ids: Optional[list[str]] = None
) -> int:
    """Re-classify stored headphone signatures under the current rules,
    mode and custom categories, saving the ones whose categories moved.

    Defaults to every headphone in the collection.  Returns the number of
    signatures rewritten.
    """
    context = await _rule_store(repo).load_context()
    if headphone_ids is None:
        headphone_ids = await CollectionStore(repo).load()

    store = SignatureStore(repo, "headphone")
    service = _get_perspective_service()
    changed = 0
    for headphone_id, signature in (await store.load_many(headphone_ids)).items():
        updated = service.rederive_categories(signature, *context)
        if updated != signature:
            await store.save(headphone_id, updated)
            changed += 1

    logger.info("headphones_rederived", checked=len(headphone_ids), changed=changed)
    return changed


async def _snapshot(store: RuleStore) -> RuleSetResponse:
    return RuleSetResponse(
        rules=await store.load_rules(),
        mode=await store.load_filter_mode(),
        custom_categories=await store.load_custom_categories(),
    )


# ──────────────────────────────────────────────────────────────────────────────
# Rule set and filter mode
# ──────────────────────────────────────────────────────────────────────────────

@router.get("", response_model=RuleSetResponse, summary="Current category configuration")
async def get_categories(
    repo: KeyValueRepository = Depends(get_repository),
) -> RuleSetResponse:
    return await _snapshot(_rule_store(repo))


@router.put("/rules", response_model=RuleSetResponse, summary="Replace the rule set")
async def put_rules(
    rules: CategoryRuleSet,
    repo: KeyValueRepository = Depends(get_repository),
) -> RuleSetResponse:
    store = _rule_store(repo)
    await store.save_rules(rules)
    await rederive_headphones(repo)
    return await _snapshot(store)


@router.post("/rules/reset", response_model=RuleSetResponse, summary="Restore default rules")
async def reset_rules(
    repo: KeyValueRepository = Depends(get_repository),
) -> RuleSetResponse:
    store = _rule_store(repo)
    await store.reset_rules()
    await rederive_headphones(repo)
    logger.info("rules_reset")
    return await _snapshot(store)


@router.put("/mode", response_model=RuleSetResponse, summary="Set the filter mode")
async def put_mode(
    body: FilterModeUpdate,
    repo: KeyValueRepository = Depends(get_repository),
) -> RuleSetResponse:
    store = _rule_store(repo)
    await store.save_filter_mode(body.mode)
    await rederive_headphones(repo)
    return await _snapshot(store)


# ──────────────────────────────────────────────────────────────────────────────
# Custom categories
# ──────────────────────────────────────────────────────────────────────────────

@router.post(
    "/custom",
    response_model=RuleSetResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a custom category",
)
async def add_custom_category(
    body: CustomCategoryCreate,
    repo: KeyValueRepository = Depends(get_repository),
) -> RuleSetResponse:
    store = _rule_store(repo)
    try:
        await store.add_custom_category(body.definition, body.rule)
    except CategoryExistsError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    await rederive_headphones(repo)
    return await _snapshot(store)


@router.put(
    "/custom/{category_id}",
    response_model=RuleSetResponse,
    summary="Update a custom category",
)
async def update_custom_category(
    category_id: str,
    body: CustomCategoryCreate,
    repo: KeyValueRepository = Depends(get_repository),
) -> RuleSetResponse:
    if body.definition.id != category_id:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Category id in the body does not match the path",
        )
    store = _rule_store(repo)
    try:
        await store.update_custom_category(body.definition, body.rule or None)
    except CategoryNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Custom category {category_id!r} not found.",
        )
    await rederive_headphones(repo)
    return await _snapshot(store)


@router.delete(
    "/custom/{category_id}",
    response_model=RuleSetResponse,
    summary="Delete a custom category and its rule",
)
async def delete_custom_category(
    category_id: str,
    repo: KeyValueRepository = Depends(get_repository),
) -> RuleSetResponse:
    store = _rule_store(repo)
    try:
        await store.delete_custom_category(category_id)
    except CategoryNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Custom category {category_id!r} not found.",
        )
    await rederive_headphones(repo)
    return await _snapshot(store)


# ──────────────────────────────────────────────────────────────────────────────
# POST /derive: classify a rating vector
# ──────────────────────────────────────────────────────────────────────────────

@router.post("/derive", response_model=DerivedCategories, summary="Classify a rating vector")
async def derive(
    body: DeriveRequest,
    repo: KeyValueRepository = Depends(get_repository),
) -> DerivedCategories:
    """Score *bars* against the stored rules.  ``mode`` overrides the stored
    filter mode for this call only."""
    store = _rule_store(repo)
    mode = body.mode or await store.load_filter_mode()
    return _get_category_service().derive_categories(
        body.bars,
        await store.load_rules(),
        mode,
        await store.custom_category_ids(),
    )
