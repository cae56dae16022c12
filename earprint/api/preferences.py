"""
Earprint — Preferences API
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException, status

from earprint.repository import KeyValueRepository, get_repository
from earprint.schemas.llm import ApiKeysStatus, ApiKeysUpdate
from earprint.services.library_service import LLM_PROVIDERS, ApiKeyStore
from earprint.utils.encryption import get_fernet

logger = structlog.get_logger("earprint.api.preferences")

router = APIRouter()


@router.get("/api-keys", response_model=ApiKeysStatus, summary="Providers with a stored key")
async def get_api_keys(
    repo: KeyValueRepository = Depends(get_repository),
) -> ApiKeysStatus:
    """Key values are never returned, only which providers have one."""
    store = ApiKeyStore(repo, get_fernet())
    return ApiKeysStatus(configured=await store.configured(), encrypted=store.encrypted)


@router.put("/api-keys", response_model=ApiKeysStatus, summary="Replace stored API keys")
async def put_api_keys(
    body: ApiKeysUpdate,
    repo: KeyValueRepository = Depends(get_repository),
) -> ApiKeysStatus:
    unknown = sorted(set(body.keys) - set(LLM_PROVIDERS))
    if unknown:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Unsupported providers: {', '.join(unknown)}",
        )
    store = ApiKeyStore(repo, get_fernet())
    await store.save(body.keys)
    return ApiKeysStatus(configured=await store.configured(), encrypted=store.encrypted)
