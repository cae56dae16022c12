from typing import Literal, Optional

from pydantic import Field, computed_field

from earprint.schemas.base import CamelModel
from earprint.schemas.signature import LlmTag, PerspectiveBase, PerspectiveSet, SongSection

ExperienceNoteSource = Literal["auto", "llm", "manual"]


class ExperienceNote(CamelModel):
    tagline: str
    description: str
    source: ExperienceNoteSource


class BarDelta(CamelModel):
    label: str
    hp_level: int
    song_level: int
    delta: int


class ExperienceVoice(PerspectiveBase):
    """One written take on a song/headphone pairing, optionally in the
    style of a named reviewer."""

    voice_id: Optional[str] = None
    tagline: str
    description: str
    sections: Optional[list[SongSection]] = None
    video_review_url: Optional[str] = None

    def semantic_key(self) -> Optional[str]:
        return self.voice_id


class ExperienceRecord(PerspectiveSet[ExperienceVoice]):
    @computed_field(alias="tagline")
    @property
    def tagline(self) -> str:
        return self.active.tagline

    @computed_field(alias="description")
    @property
    def description(self) -> str:
        return self.active.description


class ExperienceView(CamelModel):
    """What the UI shows for a pairing: the stored default voice when one
    exists, otherwise the rule-based note."""

    note: ExperienceNote
    record: Optional[ExperienceRecord] = None
    deltas: list[BarDelta] = []


class ExperienceSubmit(CamelModel):
    raw: str = Field(min_length=1)
    voice_id: Optional[str] = None
    llm_tag: LlmTag = "other"
    make_default: bool = True


class ExperiencePromptRequest(CamelModel):
    song_title: str
    song_artist: str = ""
    song_album: str = ""
    headphone_name: str
    headphone_specs: str = ""
    voice_id: Optional[str] = None
    custom_voice_name: Optional[str] = None
    custom_voice_handle: str = ""


class PromptResponse(CamelModel):
    prompt: str
