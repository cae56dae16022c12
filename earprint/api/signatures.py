"""
Earprint — Signatures API

Song and headphone signatures: fetch, delete, apply pasted LLM output,
generate through a provider, add manual perspectives, seed from a catalog
preset, and switch or delete perspectives.
"""

from __future__ import annotations

import uuid

import structlog
from fastapi import APIRouter, Depends, HTTPException, Response, status

from earprint.config import get_settings
from earprint.data.presets import PRESET_MAP
from earprint.repository import KeyValueRepository, get_repository
from earprint.schemas.catalog import Headphone, Song
from earprint.schemas.experience import PromptResponse
from earprint.schemas.signature import (
    DefaultPerspectiveUpdate,
    GenerateRequest,
    LlmPayloadSubmit,
    PerspectiveInput,
    Signature,
    SignatureKind,
    SignaturePerspective,
    SignaturePromptRequest,
    SignatureValidation,
    SignatureView,
)
from earprint.services.category_service import CategoryService
from earprint.services.library_service import ApiKeyStore, SignatureStore
from earprint.services.llm_service import LLMService
from earprint.services.perspective_service import PerspectiveService
from earprint.services.prompt_service import PromptService
from earprint.services.rule_store import RuleStore
from earprint.services.signature_parser import (
    SignatureParseError,
    parse_headphone_signature,
    parse_song_signature,
    validate_headphone_payload,
    validate_song_payload,
)
from earprint.services.spectrum_service import SpectrumService
from earprint.utils.encryption import get_fernet

logger = structlog.get_logger("earprint.api.signatures")

router = APIRouter()

# ── Service singletons ────────────────────────────────────────────────────────

_category_service: CategoryService | None = None
_perspective_service: PerspectiveService | None = None
_prompt_service: PromptService | None = None
_llm_service: LLMService | None = None
_spectrum_service: SpectrumService | None = None


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


def _get_prompt_service() -> PromptService:
    global _prompt_service
    if _prompt_service is None:
        _prompt_service = PromptService()
    return _prompt_service


def _get_llm_service() -> LLMService:
    global _llm_service
    if _llm_service is None:
        _llm_service = LLMService()
    return _llm_service


def _get_spectrum_service() -> SpectrumService:
    global _spectrum_service
    if _spectrum_service is None:
        _spectrum_service = SpectrumService()
    return _spectrum_service


# ── Helpers ───────────────────────────────────────────────────────────────────

_LLM_ERROR_STATUS = {
    "auth": status.HTTP_401_UNAUTHORIZED,
    "rate-limit": status.HTTP_429_TOO_MANY_REQUESTS,
}


async def _view(
    signature: Signature, kind: SignatureKind, repo: KeyValueRepository
) -> SignatureView:
    rules = mode = None
    custom_ids: list[str] = []
    if kind == "headphone":
        store = RuleStore(repo, get_settings().DEFAULT_FILTER_MODE)
        rules = await store.load_rules()
        mode = await store.load_filter_mode()
        custom_ids = await store.custom_category_ids()
    active = _get_perspective_service().resolve_signature(
        signature, rules, mode or "precise", custom_ids,
    )
    return SignatureView(signature=signature, active=active)


async def _load_or_404(store: SignatureStore, entity_id: str) -> Signature:
    signature = await store.load(entity_id)
    if signature is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No {store.kind} signature for {entity_id!r}.",
        )
    return signature


async def _parse_payload(
    kind: SignatureKind, raw: str, llm_tag, label: str, repo: KeyValueRepository
) -> Signature:
    try:
        if kind == "song":
            return parse_song_signature(raw, llm_tag=llm_tag, label=label)
        store = RuleStore(repo, get_settings().DEFAULT_FILTER_MODE)
        return parse_headphone_signature(
            raw,
            await store.load_rules(),
            await store.load_filter_mode(),
            await store.custom_category_ids(),
            llm_tag=llm_tag,
            label=label,
        )
    except SignatureParseError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))


async def _classify(
    perspective: SignaturePerspective, repo: KeyValueRepository
) -> SignaturePerspective:
    """Headphone perspective with categories derived under the stored rules."""
    context = await RuleStore(repo, get_settings().DEFAULT_FILTER_MODE).load_context()
    derived = _get_category_service().derive_categories(perspective.bars, *context)
    return perspective.model_copy(update={
        "category": derived.primary,
        "secondary_categories": derived.secondary,
    })


async def _merge(
    store: SignatureStore, entity_id: str, perspective: SignaturePerspective, make_default: bool
) -> Signature:
    """Add *perspective* to the stored signature, creating it if needed."""
    service = _get_perspective_service()
    existing = await store.load(entity_id)
    if existing is None:
        signature = service.new_signature(perspective)
    else:
        signature = service.upsert_perspective(existing, perspective, make_default=make_default)
    await store.save(entity_id, signature)
    return signature


def _prompt_for(kind: SignatureKind, entity_id: str, body: SignaturePromptRequest) -> str:
    service = _get_prompt_service()
    if kind == "song":
        song = Song(id=entity_id, title=body.name, artist=body.artist, album=body.album)
        return service.song_signature_prompt(song)
    preset = PRESET_MAP.get(entity_id)
    headphone = Headphone(
        id=entity_id,
        name=body.name,
        specs=body.specs or (preset.specs if preset else ""),
        dot_color=preset.dot_color if preset else "blue",
    )
    return service.headphone_signature_prompt(headphone)


# ──────────────────────────────────────────────────────────────────────────────
# GET / DELETE /{kind}/{entity_id}
# ──────────────────────────────────────────────────────────────────────────────

@router.get("/{kind}/{entity_id}", response_model=SignatureView, summary="Get a signature")
async def get_signature(
    kind: SignatureKind,
    entity_id: str,
    repo: KeyValueRepository = Depends(get_repository),
) -> SignatureView:
    store = SignatureStore(repo, kind)
    return await _view(await _load_or_404(store, entity_id), kind, repo)


@router.delete(
    "/{kind}/{entity_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a signature",
)
async def delete_signature(
    kind: SignatureKind,
    entity_id: str,
    repo: KeyValueRepository = Depends(get_repository),
) -> Response:
    await SignatureStore(repo, kind).delete(entity_id)
    logger.info("signature_deleted", kind=kind, entity_id=entity_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ──────────────────────────────────────────────────────────────────────────────
# LLM payloads: validate, apply, prompt, generate
# ──────────────────────────────────────────────────────────────────────────────

@router.post(
    "/{kind}/{entity_id}/validate",
    response_model=SignatureValidation,
    summary="Check a pasted LLM payload without saving",
)
async def validate_payload(
    kind: SignatureKind,
    entity_id: str,
    body: LlmPayloadSubmit,
    repo: KeyValueRepository = Depends(get_repository),
) -> SignatureValidation:
    if kind == "song":
        return validate_song_payload(body.raw)
    store = RuleStore(repo, get_settings().DEFAULT_FILTER_MODE)
    return validate_headphone_payload(
        body.raw,
        await store.load_rules(),
        await store.load_filter_mode(),
        await store.custom_category_ids(),
    )


@router.post("/{kind}/{entity_id}/llm", response_model=SignatureView, summary="Apply an LLM payload")
async def apply_llm_payload(
    kind: SignatureKind,
    entity_id: str,
    body: LlmPayloadSubmit,
    repo: KeyValueRepository = Depends(get_repository),
) -> SignatureView:
    parsed = await _parse_payload(kind, body.raw, body.llm_tag, body.label or "LLM", repo)
    store = SignatureStore(repo, kind)
    signature = await _merge(store, entity_id, parsed.active, make_default=True)
    logger.info("signature_llm_applied", kind=kind, entity_id=entity_id, llm_tag=body.llm_tag)
    return await _view(signature, kind, repo)


@router.post("/{kind}/{entity_id}/prompt", response_model=PromptResponse, summary="Build a signature prompt")
async def build_prompt(
    kind: SignatureKind,
    entity_id: str,
    body: SignaturePromptRequest,
) -> PromptResponse:
    return PromptResponse(prompt=_prompt_for(kind, entity_id, body))


@router.post(
    "/{kind}/{entity_id}/generate",
    response_model=SignatureView,
    summary="Generate a signature through a provider API",
)
async def generate_signature(
    kind: SignatureKind,
    entity_id: str,
    body: GenerateRequest,
    repo: KeyValueRepository = Depends(get_repository),
) -> SignatureView:
    log = logger.bind(kind=kind, entity_id=entity_id, provider=body.provider)

    api_key = await ApiKeyStore(repo, get_fernet()).get(body.provider)
    result = await _get_llm_service().generate(
        body.provider, api_key or "", _prompt_for(kind, entity_id, body),
    )
    if not result.ok:
        log.warning("signature_generate_failed", error_type=result.error.type)
        raise HTTPException(
            status_code=_LLM_ERROR_STATUS.get(result.error.type, status.HTTP_502_BAD_GATEWAY),
            detail=result.error.message,
        )

    parsed = await _parse_payload(kind, result.text, body.provider, "LLM", repo)
    store = SignatureStore(repo, kind)
    signature = await _merge(store, entity_id, parsed.active, make_default=True)
    log.info("signature_generated")
    return await _view(signature, kind, repo)


# ──────────────────────────────────────────────────────────────────────────────
# Perspectives
# ──────────────────────────────────────────────────────────────────────────────

@router.post(
    "/{kind}/{entity_id}/perspectives",
    response_model=SignatureView,
    summary="Add or replace a manual perspective",
)
async def upsert_perspective(
    kind: SignatureKind,
    entity_id: str,
    body: PerspectiveInput,
    repo: KeyValueRepository = Depends(get_repository),
) -> SignatureView:
    perspective = SignaturePerspective(
        perspective_id=body.perspective_id or f"manual-{uuid.uuid4().hex[:12]}",
        label=body.label,
        source="manual",
        tags=body.tags,
        bars=body.bars,
        sections=body.sections,
        category=body.category,
        secondary_categories=body.secondary_categories,
        refined_from=body.refined_from,
    )
    if kind == "headphone" and body.category is None:
        perspective = await _classify(perspective, repo)
    store = SignatureStore(repo, kind)
    signature = await _merge(store, entity_id, perspective, body.make_default)
    return await _view(signature, kind, repo)


@router.post(
    "/headphone/{entity_id}/preset/{preset_id}",
    response_model=SignatureView,
    summary="Seed a headphone signature from a catalog preset",
)
async def seed_from_preset(
    entity_id: str,
    preset_id: str,
    repo: KeyValueRepository = Depends(get_repository),
) -> SignatureView:
    preset_signature = _get_spectrum_service().preset_to_signature(preset_id)
    if preset_signature is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown preset {preset_id!r}.",
        )
    store = SignatureStore(repo, "headphone")
    perspective = await _classify(preset_signature.active, repo)
    signature = await _merge(store, entity_id, perspective, make_default=False)
    return await _view(signature, "headphone", repo)


@router.put("/{kind}/{entity_id}/default", response_model=SignatureView, summary="Switch the default perspective")
async def set_default_perspective(
    kind: SignatureKind,
    entity_id: str,
    body: DefaultPerspectiveUpdate,
    repo: KeyValueRepository = Depends(get_repository),
) -> SignatureView:
    store = SignatureStore(repo, kind)
    result = _get_perspective_service().set_default(
        await _load_or_404(store, entity_id), body.perspective_id,
    )
    if not result.ok:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=result.error)
    await store.save(entity_id, result.value)
    return await _view(result.value, kind, repo)


@router.delete(
    "/{kind}/{entity_id}/perspectives/{perspective_id}",
    response_model=SignatureView,
    summary="Delete a perspective",
)
async def delete_perspective(
    kind: SignatureKind,
    entity_id: str,
    perspective_id: str,
    repo: KeyValueRepository = Depends(get_repository),
) -> SignatureView:
    store = SignatureStore(repo, kind)
    signature = await _load_or_404(store, entity_id)
    result = _get_perspective_service().delete_perspective(signature, perspective_id)
    if not result.ok:
        code = (
            status.HTTP_404_NOT_FOUND
            if signature.find(perspective_id) is None
            else status.HTTP_422_UNPROCESSABLE_ENTITY
        )
        raise HTTPException(status_code=code, detail=result.error)
    await store.save(entity_id, result.value)
    return await _view(result.value, kind, repo)
