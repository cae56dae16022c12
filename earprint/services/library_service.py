"""
Earprint — Library stores.

Thin typed wrappers over the key-value repository for everything the user
accumulates: signatures, the headphone collection, spectrum pins,
experience records and provider API keys.  Stored documents that no longer
validate are treated as absent and logged, never raised to the caller.
"""

from __future__ import annotations

from typing import Optional

import structlog
from cryptography.fernet import Fernet, InvalidToken
from pydantic import ValidationError

from earprint.data.presets import PRESET_MAP
from earprint.repository import KeyValueRepository
from earprint.schemas.catalog import Headphone
from earprint.schemas.experience import ExperienceRecord
from earprint.schemas.signature import Signature, SignatureKind
from earprint.utils.encryption import decrypt_api_keys, encrypt_api_keys

logger = structlog.get_logger("earprint.library_service")

LLM_PROVIDERS = ("chatgpt", "gemini", "claude")


# ── Signatures ──────────────────────────────────────────────────────────────

class SignatureStore:
    """Song or headphone signatures under ``<kind>_signature_<id>``."""

    def __init__(self, repository: KeyValueRepository, kind: SignatureKind) -> None:
        self._repo = repository
        self.kind = kind
        self.prefix = f"{kind}_signature_"

    def key(self, entity_id: str) -> str:
        return self.prefix + entity_id

    async def load(self, entity_id: str) -> Optional[Signature]:
        raw = await self._repo.get(self.key(entity_id))
        if raw is None:
            return None
        try:
            return Signature.model_validate(raw)
        except ValidationError as exc:
            logger.warning(
                "signature.invalid_stored",
                kind=self.kind,
                entity_id=entity_id,
                errors=exc.error_count(),
            )
            return None

    async def save(self, entity_id: str, signature: Signature) -> None:
        await self._repo.put(self.key(entity_id), signature.to_record())

    async def delete(self, entity_id: str) -> None:
        await self._repo.delete(self.key(entity_id))

    async def load_many(self, entity_ids: list[str]) -> dict[str, Signature]:
        found = {}
        for entity_id in entity_ids:
            signature = await self.load(entity_id)
            if signature is not None:
                found[entity_id] = signature
        return found


# ── Collection ──────────────────────────────────────────────────────────────

class CollectionStore:
    """Ordered list of owned headphone preset ids."""

    KEY = "headphone_collection"
    LEGACY_KEY = "headphones"
    LEGACY_ID_MAP: dict[str, str] = {
        "airpods": "airpods-pro-2",
        "xm5": "wh-1000xm5",
        "hd600": "hd600",
    }

    def __init__(self, repository: KeyValueRepository) -> None:
        self._repo = repository

    async def load(self) -> list[str]:
        raw = await self._repo.get(self.KEY)
        if not isinstance(raw, list):
            return []
        return [i for i in raw if isinstance(i, str)]

    async def save(self, ids: list[str]) -> None:
        await self._repo.put(self.KEY, list(ids))

    async def add(self, headphone_id: str) -> list[str]:
        ids = await self.load()
        if headphone_id not in ids:
            ids.append(headphone_id)
            await self.save(ids)
        return ids

    async def remove(self, headphone_id: str) -> list[str]:
        ids = [i for i in await self.load() if i != headphone_id]
        await self.save(ids)
        return ids

    @staticmethod
    def to_headphones(ids: list[str]) -> list[Headphone]:
        """Display headphones for the ids that name a catalog preset."""
        headphones = []
        for headphone_id in ids:
            preset = PRESET_MAP.get(headphone_id)
            if preset is None:
                continue
            headphones.append(Headphone(
                id=preset.id, name=preset.name, specs=preset.specs, dot_color=preset.dot_color,
            ))
        return headphones

    async def migrate_from_legacy(self) -> list[str]:
        """Convert the pre-catalog ``headphones`` list to preset ids.

        No-op when a collection already exists.  Signatures stored under a
        legacy id are copied to the new id.
        """
        if await self._repo.get(self.KEY) is not None:
            return await self.load()

        legacy = await self._repo.get(self.LEGACY_KEY)
        if not isinstance(legacy, list):
            return []

        signatures = SignatureStore(self._repo, "headphone")
        new_ids: list[str] = []
        for old_id in legacy:
            new_id = self.LEGACY_ID_MAP.get(old_id) if isinstance(old_id, str) else None
            if new_id is None or new_id not in PRESET_MAP:
                continue
            new_ids.append(new_id)
            if old_id != new_id:
                existing = await signatures.load(old_id)
                if existing is not None:
                    await signatures.save(new_id, existing)

        if new_ids:
            await self.save(new_ids)
            logger.info("collection.migrated", count=len(new_ids))
        return new_ids


# ── Spectrum pins ───────────────────────────────────────────────────────────

class SpectrumSelectionStore:
    KEY = "spectrum_selections"

    def __init__(self, repository: KeyValueRepository) -> None:
        self._repo = repository

    async def load(self) -> dict[str, str]:
        raw = await self._repo.get(self.KEY)
        if not isinstance(raw, dict):
            return {}
        return {k: v for k, v in raw.items() if isinstance(v, str)}

    async def save(self, selections: dict[str, str]) -> None:
        await self._repo.put(self.KEY, dict(selections))


# ── Experiences ─────────────────────────────────────────────────────────────

class ExperienceStore:
    """Experience records under ``experience_<song>_<headphone>``."""

    PREFIX = "experience_"

    def __init__(self, repository: KeyValueRepository) -> None:
        self._repo = repository

    def key(self, song_id: str, headphone_id: str) -> str:
        return f"{self.PREFIX}{song_id}_{headphone_id}"

    async def load(self, song_id: str, headphone_id: str) -> Optional[ExperienceRecord]:
        raw = await self._repo.get(self.key(song_id, headphone_id))
        if raw is None:
            return None
        try:
            return ExperienceRecord.model_validate(raw)
        except ValidationError as exc:
            logger.warning(
                "experience.invalid_stored",
                song_id=song_id,
                headphone_id=headphone_id,
                errors=exc.error_count(),
            )
            return None

    async def save(self, song_id: str, headphone_id: str, record: ExperienceRecord) -> None:
        await self._repo.put(self.key(song_id, headphone_id), record.to_record())

    async def delete(self, song_id: str, headphone_id: str) -> None:
        await self._repo.delete(self.key(song_id, headphone_id))


# ── API keys ────────────────────────────────────────────────────────────────

class ApiKeyStore:
    """Per-provider API keys, Fernet-encrypted at rest when a key is given.

    Stored shape: ``{"encrypted": true, "token": "..."}`` or
    ``{"encrypted": false, "keys": {...}}``.
    """

    KEY = "api_key_preferences"

    def __init__(self, repository: KeyValueRepository, fernet: Optional[Fernet] = None) -> None:
        self._repo = repository
        self._fernet = fernet

    @property
    def encrypted(self) -> bool:
        return self._fernet is not None

    async def load(self) -> dict[str, str]:
        raw = await self._repo.get(self.KEY)
        if not isinstance(raw, dict):
            return {}

        if raw.get("encrypted"):
            if self._fernet is None:
                logger.warning("api_keys.no_fernet_key")
                return {}
            try:
                return decrypt_api_keys(raw.get("token", ""), self._fernet)
            except InvalidToken:
                logger.warning("api_keys.decrypt_failed")
                return {}

        keys = raw.get("keys", {})
        return {k: v for k, v in keys.items() if isinstance(v, str)}

    async def save(self, keys: dict[str, str]) -> None:
        keys = {k: v for k, v in keys.items() if v}
        if self._fernet is not None:
            document = {"encrypted": True, "token": encrypt_api_keys(keys, self._fernet)}
        else:
            document = {"encrypted": False, "keys": keys}
        await self._repo.put(self.KEY, document)
        logger.info("api_keys.saved", providers=sorted(keys), encrypted=self.encrypted)

    async def get(self, provider: str) -> Optional[str]:
        return (await self.load()).get(provider) or None

    async def configured(self) -> list[str]:
        keys = await self.load()
        return [p for p in LLM_PROVIDERS if keys.get(p)]
