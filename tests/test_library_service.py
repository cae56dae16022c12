"""Unit tests for the library stores and API key encryption."""
from unittest.mock import MagicMock, patch

import pytest
from cryptography.fernet import Fernet

from earprint.schemas.experience import ExperienceVoice
from earprint.services.library_service import (
    ApiKeyStore,
    CollectionStore,
    ExperienceStore,
    SignatureStore,
    SpectrumSelectionStore,
)
from earprint.services.perspective_service import PerspectiveService
from earprint.utils.encryption import decrypt_api_keys, encrypt_api_keys, get_fernet


@pytest.fixture
def fernet():
    return Fernet(Fernet.generate_key())


class TestSignatureStore:
    @pytest.mark.asyncio
    async def test_round_trip(self, repo, headphone_signature):
        store = SignatureStore(repo, "headphone")
        await store.save("hd600", headphone_signature)
        assert "headphone_signature_hd600" in repo.keys()
        assert await store.load("hd600") == headphone_signature

    @pytest.mark.asyncio
    async def test_kinds_are_separate(self, repo, song_signature):
        await SignatureStore(repo, "song").save("x", song_signature)
        assert await SignatureStore(repo, "headphone").load("x") is None

    @pytest.mark.asyncio
    async def test_stored_record_has_display_projection(self, repo, headphone_signature):
        await SignatureStore(repo, "headphone").save("hd600", headphone_signature)
        raw = await repo.get("headphone_signature_hd600")
        assert raw["category"] == "warm"
        assert raw["tags"] == ["warm", "bassy"]

    @pytest.mark.asyncio
    async def test_invalid_document_treated_as_absent(self, repo):
        await repo.put("song_signature_x", {"perspectives": [], "defaultPerspectiveId": "a"})
        assert await SignatureStore(repo, "song").load("x") is None

    @pytest.mark.asyncio
    async def test_delete(self, repo, song_signature):
        store = SignatureStore(repo, "song")
        await store.save("x", song_signature)
        await store.delete("x")
        assert await store.load("x") is None

    @pytest.mark.asyncio
    async def test_load_many_skips_missing(self, repo, headphone_signature):
        store = SignatureStore(repo, "headphone")
        await store.save("a", headphone_signature)
        assert list(await store.load_many(["a", "b"])) == ["a"]


class TestCollectionStore:
    @pytest.mark.asyncio
    async def test_add_is_idempotent(self, repo):
        store = CollectionStore(repo)
        await store.add("hd600")
        assert await store.add("hd600") == ["hd600"]

    @pytest.mark.asyncio
    async def test_remove(self, repo):
        store = CollectionStore(repo)
        await store.save(["hd600", "sundara"])
        assert await store.remove("hd600") == ["sundara"]

    def test_to_headphones_skips_unknown(self):
        headphones = CollectionStore.to_headphones(["hd600", "mystery"])
        assert [h.id for h in headphones] == ["hd600"]

    @pytest.mark.asyncio
    async def test_migrate_legacy_ids(self, repo, headphone_signature):
        await repo.put("headphones", ["airpods", "xm5", "hd600", "unknown"])
        await SignatureStore(repo, "headphone").save("xm5", headphone_signature)

        store = CollectionStore(repo)
        assert await store.migrate_from_legacy() == ["airpods-pro-2", "wh-1000xm5", "hd600"]
        assert await store.load() == ["airpods-pro-2", "wh-1000xm5", "hd600"]
        moved = await SignatureStore(repo, "headphone").load("wh-1000xm5")
        assert moved == headphone_signature

    @pytest.mark.asyncio
    async def test_migrate_is_noop_when_collection_exists(self, repo):
        await repo.put("headphones", ["airpods"])
        store = CollectionStore(repo)
        await store.save(["sundara"])
        assert await store.migrate_from_legacy() == ["sundara"]

    @pytest.mark.asyncio
    async def test_migrate_without_legacy_data(self, repo):
        assert await CollectionStore(repo).migrate_from_legacy() == []
        assert await repo.get(CollectionStore.KEY) is None


class TestSpectrumSelectionStore:
    @pytest.mark.asyncio
    async def test_round_trip_filters_garbage(self, repo):
        store = SpectrumSelectionStore(repo)
        assert await store.load() == {}
        await repo.put(SpectrumSelectionStore.KEY, {"warm": "lcd-x", "dark": 3})
        assert await store.load() == {"warm": "lcd-x"}


class TestExperienceStore:
    @pytest.mark.asyncio
    async def test_round_trip(self, repo):
        record = PerspectiveService.new_record(ExperienceVoice(
            perspective_id="v1", label="Neutral", source="manual",
            tagline="Punchy", description="Lots of bass.",
        ))
        store = ExperienceStore(repo)
        await store.save("song-1", "hd600", record)
        assert store.key("song-1", "hd600") == "experience_song-1_hd600"
        assert await store.load("song-1", "hd600") == record
        await store.delete("song-1", "hd600")
        assert await store.load("song-1", "hd600") is None


class TestApiKeyStore:
    @pytest.mark.asyncio
    async def test_plaintext_without_fernet(self, repo):
        store = ApiKeyStore(repo)
        await store.save({"claude": "sk-ant", "gemini": ""})
        assert not store.encrypted
        assert await store.load() == {"claude": "sk-ant"}
        assert await store.configured() == ["claude"]

    @pytest.mark.asyncio
    async def test_encrypted_at_rest(self, repo, fernet):
        store = ApiKeyStore(repo, fernet)
        await store.save({"chatgpt": "sk-openai"})
        raw = await repo.get(ApiKeyStore.KEY)
        assert raw["encrypted"] is True
        assert "sk-openai" not in raw["token"]
        assert await store.get("chatgpt") == "sk-openai"
        assert await store.get("claude") is None

    @pytest.mark.asyncio
    async def test_wrong_key_yields_nothing(self, repo, fernet):
        await ApiKeyStore(repo, fernet).save({"chatgpt": "sk-openai"})
        other = ApiKeyStore(repo, Fernet(Fernet.generate_key()))
        assert await other.load() == {}

    @pytest.mark.asyncio
    async def test_encrypted_document_without_fernet(self, repo, fernet):
        await ApiKeyStore(repo, fernet).save({"chatgpt": "sk-openai"})
        assert await ApiKeyStore(repo).load() == {}


class TestEncryption:
    def test_round_trip(self, fernet):
        token = encrypt_api_keys({"claude": "k"}, fernet)
        assert decrypt_api_keys(token, fernet) == {"claude": "k"}

    def test_get_fernet_disabled_without_key(self):
        settings = MagicMock()
        settings.FERNET_KEY = ""
        with patch("earprint.utils.encryption.get_settings", return_value=settings):
            assert get_fernet() is None

    def test_get_fernet_with_key(self):
        settings = MagicMock()
        settings.FERNET_KEY = Fernet.generate_key().decode()
        with patch("earprint.utils.encryption.get_settings", return_value=settings):
            assert isinstance(get_fernet(), Fernet)
