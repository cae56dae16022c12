"""
Earprint — Experiences API

How a song sounds on a headphone: the stored default voice when one exists,
otherwise a note derived from the two signatures.  Also builds experience
prompts and manages the stored voices.
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException, Response, status

from earprint.data.presets import PRESET_MAP
from earprint.repository import KeyValueRepository, get_repository
from earprint.schemas.catalog import Headphone, Song
from earprint.schemas.experience import (
    ExperienceNote,
    ExperiencePromptRequest,
    ExperienceRecord,
    ExperienceSubmit,
    ExperienceView,
    PromptResponse,
)
from earprint.schemas.signature import DefaultPerspectiveUpdate, Signature
from earprint.services.experience_service import ExperienceService
from earprint.services.library_service import ExperienceStore, SignatureStore
from earprint.services.perspective_service import PerspectiveService
from earprint.services.prompt_service import PromptService
from earprint.services.signature_parser import SignatureParseError, parse_experience_voice

logger = structlog.get_logger("earprint.api.experiences")

router = APIRouter()

# ── Service singletons ────────────────────────────────────────────────────────

_experience_service: ExperienceService | None = None
_perspective_service: PerspectiveService | None = None
_prompt_service: PromptService | None = None


def _get_experience_service() -> ExperienceService:
    global _experience_service
    if _experience_service is None:
        _experience_service = ExperienceService()
    return _experience_service


def _get_perspective_service() -> PerspectiveService:
    global _perspective_service
    if _perspective_service is None:
        _perspective_service = PerspectiveService()
    return _perspective_service


def _get_prompt_service() -> PromptService:
    global _prompt_service
    if _prompt_service is None:
        _prompt_service = PromptService(_get_experience_service())
    return _prompt_service


# ── Helpers ───────────────────────────────────────────────────────────────────

async def _signatures(
    repo: KeyValueRepository, song_id: str, headphone_id: str
) -> tuple[Signature | None, Signature | None]:
    song_signature = await SignatureStore(repo, "song").load(song_id)
    hp_signature = await SignatureStore(repo, "headphone").load(headphone_id)
    return song_signature, hp_signature


async def _record_or_404(store: ExperienceStore, song_id: str, headphone_id: str) -> ExperienceRecord:
    record = await store.load(song_id, headphone_id)
    if record is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No stored experience for this pairing.",
        )
    return record


async def _view(repo: KeyValueRepository, song_id: str, headphone_id: str) -> ExperienceView:
    record = await ExperienceStore(repo).load(song_id, headphone_id)
    song_signature, hp_signature = await _signatures(repo, song_id, headphone_id)

    deltas = []
    derived = None
    if song_signature is not None and hp_signature is not None:
        service = _get_experience_service()
        deltas = service.compute_deltas(hp_signature.bars, song_signature.bars)
        derived = service.derive_experience_note(hp_signature.bars, song_signature.bars)

    if record is not None:
        voice = record.active
        note = ExperienceNote(
            tagline=voice.tagline,
            description=voice.description,
            source="manual" if voice.source == "manual" else "llm",
        )
    elif derived is not None:
        note = derived
    else:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Both a song signature and a headphone signature are required.",
        )
    return ExperienceView(note=note, record=record, deltas=deltas)


# ──────────────────────────────────────────────────────────────────────────────
# GET / DELETE /{song_id}/{headphone_id}
# ──────────────────────────────────────────────────────────────────────────────

@router.get("/{song_id}/{headphone_id}", response_model=ExperienceView, summary="Experience for a pairing")
async def get_experience(
    song_id: str,
    headphone_id: str,
    repo: KeyValueRepository = Depends(get_repository),
) -> ExperienceView:
    return await _view(repo, song_id, headphone_id)


@router.delete(
    "/{song_id}/{headphone_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete the stored voices for a pairing",
)
async def delete_experience(
    song_id: str,
    headphone_id: str,
    repo: KeyValueRepository = Depends(get_repository),
) -> Response:
    await ExperienceStore(repo).delete(song_id, headphone_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ──────────────────────────────────────────────────────────────────────────────
# POST /{song_id}/{headphone_id}/prompt
# ──────────────────────────────────────────────────────────────────────────────

@router.post(
    "/{song_id}/{headphone_id}/prompt",
    response_model=PromptResponse,
    summary="Build an experience prompt",
)
async def build_prompt(
    song_id: str,
    headphone_id: str,
    body: ExperiencePromptRequest,
    repo: KeyValueRepository = Depends(get_repository),
) -> PromptResponse:
    song_signature, hp_signature = await _signatures(repo, song_id, headphone_id)
    if song_signature is None or hp_signature is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Both a song signature and a headphone signature are required.",
        )

    preset = PRESET_MAP.get(headphone_id)
    song = Song(id=song_id, title=body.song_title, artist=body.song_artist, album=body.song_album)
    headphone = Headphone(
        id=headphone_id,
        name=body.headphone_name,
        specs=body.headphone_specs or (preset.specs if preset else ""),
        dot_color=preset.dot_color if preset else "blue",
    )

    service = _get_prompt_service()
    hint = service.voice_hint(
        headphone.name, body.voice_id, body.custom_voice_name, body.custom_voice_handle,
    )
    prompt = service.experience_prompt(song, song_signature, headphone, hp_signature, hint)
    return PromptResponse(prompt=prompt)


# ──────────────────────────────────────────────────────────────────────────────
# Voices
# ──────────────────────────────────────────────────────────────────────────────

@router.post(
    "/{song_id}/{headphone_id}/voices",
    response_model=ExperienceRecord,
    summary="Apply an LLM experience payload",
)
async def submit_voice(
    song_id: str,
    headphone_id: str,
    body: ExperienceSubmit,
    repo: KeyValueRepository = Depends(get_repository),
) -> ExperienceRecord:
    try:
        voice = parse_experience_voice(body.raw, voice_id=body.voice_id, llm_tag=body.llm_tag)
    except SignatureParseError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))

    store = ExperienceStore(repo)
    service = _get_perspective_service()
    existing = await store.load(song_id, headphone_id)
    if existing is None:
        record = service.new_record(voice)
    else:
        record = service.upsert_perspective(existing, voice, make_default=body.make_default)

    await store.save(song_id, headphone_id, record)
    logger.info(
        "experience_voice_saved",
        song_id=song_id,
        headphone_id=headphone_id,
        voice_id=body.voice_id,
        voices=len(record.perspectives),
    )
    return record


@router.put(
    "/{song_id}/{headphone_id}/default",
    response_model=ExperienceRecord,
    summary="Switch the default voice",
)
async def set_default_voice(
    song_id: str,
    headphone_id: str,
    body: DefaultPerspectiveUpdate,
    repo: KeyValueRepository = Depends(get_repository),
) -> ExperienceRecord:
    store = ExperienceStore(repo)
    result = _get_perspective_service().set_default(
        await _record_or_404(store, song_id, headphone_id), body.perspective_id,
    )
    if not result.ok:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=result.error)
    await store.save(song_id, headphone_id, result.value)
    return result.value


@router.delete(
    "/{song_id}/{headphone_id}/voices/{perspective_id}",
    response_model=ExperienceRecord,
    summary="Delete one voice",
)
async def delete_voice(
    song_id: str,
    headphone_id: str,
    perspective_id: str,
    repo: KeyValueRepository = Depends(get_repository),
) -> ExperienceRecord:
    store = ExperienceStore(repo)
    record = await _record_or_404(store, song_id, headphone_id)
    result = _get_perspective_service().delete_perspective(record, perspective_id)
    if not result.ok:
        code = (
            status.HTTP_404_NOT_FOUND
            if record.find(perspective_id) is None
            else status.HTTP_422_UNPROCESSABLE_ENTITY
        )
        raise HTTPException(status_code=code, detail=result.error)
    await store.save(song_id, headphone_id, result.value)
    return result.value
