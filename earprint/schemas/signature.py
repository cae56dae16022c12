from typing import Generic, Iterable, Literal, Optional, TypeVar

from pydantic import Field, computed_field, field_validator, model_validator

from earprint.data.bar_metadata import BAR_LABELS, BarLevel
from earprint.schemas.base import CamelModel

PerspectiveSource = Literal["preset", "llm", "manual", "auto"]
LlmTag = Literal["chatgpt", "gemini", "claude", "other"]
SignatureKind = Literal["song", "headphone"]


class StrengthBar(CamelModel):
    label: str
    level: BarLevel


class SongSection(CamelModel):
    time: str          # e.g. "0:00–0:32"
    label: str         # e.g. "Intro"
    description: str


def check_rating_vector(bars: Iterable[StrengthBar]) -> None:
    """Raise ``ValueError`` unless *bars* holds each of the six dimension
    labels exactly once."""
    bars = list(bars)
    if len(bars) != len(BAR_LABELS):
        raise ValueError("bars must be an array of exactly 6 items")
    for bar in bars:
        if bar.label not in BAR_LABELS:
            raise ValueError(
                f'Invalid bar label: "{bar.label}". '
                f"Expected one of: {', '.join(BAR_LABELS)}"
            )
    if len({bar.label for bar in bars}) != len(BAR_LABELS):
        raise ValueError("All 6 bar labels must be unique")


# ── Perspectives ────────────────────────────────────────────────────────────

class PerspectiveBase(CamelModel):
    perspective_id: str = Field(min_length=1)
    label: str
    source: PerspectiveSource
    llm_tag: Optional[LlmTag] = None
    refined_from: Optional[str] = None  # informational only

    def semantic_key(self) -> Optional[str]:
        """Second identity used by upserts; ``None`` means id-only."""
        return None


class SignaturePerspective(PerspectiveBase):
    tags: list[str] = []
    bars: list[StrengthBar]
    sections: Optional[list[SongSection]] = None
    category: Optional[str] = None
    secondary_categories: Optional[list[str]] = None

    @field_validator("bars")
    @classmethod
    def _complete_rating_vector(cls, v: list[StrengthBar]) -> list[StrengthBar]:
        check_rating_vector(v)
        return v


P = TypeVar("P", bound=PerspectiveBase)


class PerspectiveSet(CamelModel, Generic[P]):
    """Alternative ratings of one entity plus the id of the one in use."""

    perspectives: list[P] = Field(min_length=1)
    default_perspective_id: str

    @model_validator(mode="after")
    def _default_must_exist(self) -> "PerspectiveSet":
        ids = [p.perspective_id for p in self.perspectives]
        if len(set(ids)) != len(ids):
            raise ValueError("perspectiveId values must be unique")
        if self.default_perspective_id not in ids:
            raise ValueError(
                f"defaultPerspectiveId {self.default_perspective_id!r} "
                "does not reference a perspective"
            )
        return self

    def find(self, perspective_id: str) -> Optional[P]:
        for perspective in self.perspectives:
            if perspective.perspective_id == perspective_id:
                return perspective
        return None

    @property
    def active(self) -> P:
        found = self.find(self.default_perspective_id)
        return found if found is not None else self.perspectives[0]


class Signature(PerspectiveSet[SignaturePerspective]):
    """Song or headphone signature.

    The display fields are projections of the default perspective; they are
    written out with the record and ignored when a record is loaded.
    """

    @computed_field(alias="tags")
    @property
    def tags(self) -> list[str]:
        return list(self.active.tags)

    @computed_field(alias="bars")
    @property
    def bars(self) -> list[StrengthBar]:
        return list(self.active.bars)

    @computed_field(alias="category")
    @property
    def category(self) -> Optional[str]:
        return self.active.category

    @computed_field(alias="secondaryCategories")
    @property
    def secondary_categories(self) -> Optional[list[str]]:
        return self.active.secondary_categories

    @computed_field(alias="sections")
    @property
    def sections(self) -> Optional[list[SongSection]]:
        return self.active.sections


class ActiveSignature(CamelModel):
    perspective_id: str
    label: str
    source: PerspectiveSource
    tags: list[str]
    bars: list[StrengthBar]
    sections: Optional[list[SongSection]] = None
    category: Optional[str] = None
    secondary_categories: list[str] = []


# ── API payloads ────────────────────────────────────────────────────────────

class PerspectiveInput(CamelModel):
    """A manual refinement submitted by the user."""

    perspective_id: Optional[str] = None
    label: str = "My Take"
    tags: list[str] = []
    bars: list[StrengthBar]
    sections: Optional[list[SongSection]] = None
    category: Optional[str] = None
    secondary_categories: Optional[list[str]] = None
    refined_from: Optional[str] = None
    make_default: bool = False

    @field_validator("bars")
    @classmethod
    def _complete_rating_vector(cls, v: list[StrengthBar]) -> list[StrengthBar]:
        check_rating_vector(v)
        return v


class LlmPayloadSubmit(CamelModel):
    raw: str = Field(min_length=1)
    llm_tag: LlmTag = "other"
    label: Optional[str] = None


class SignaturePromptRequest(CamelModel):
    """Metadata for a signature prompt: song title or headphone name in
    ``name``, plus whatever context the kind uses."""

    name: str = Field(min_length=1)
    specs: str = ""
    artist: str = ""
    album: str = ""


class GenerateRequest(SignaturePromptRequest):
    provider: LlmTag


class DefaultPerspectiveUpdate(CamelModel):
    perspective_id: str


class SignatureView(CamelModel):
    signature: Signature
    active: ActiveSignature


class SignatureValidation(CamelModel):
    valid: bool
    signature: Optional[Signature] = None
    error: Optional[str] = None
