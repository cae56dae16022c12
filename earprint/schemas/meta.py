from typing import Optional

from earprint.schemas.base import CamelModel


class DimensionInfo(CamelModel):
    label: str
    subtitle: str
    description: str
    tick_labels: list[str]
    tick_tooltips: list[str]


class CategoryInfo(CamelModel):
    id: str
    name: str
    built_in: bool = True


class VoiceInfo(CamelModel):
    id: str
    name: str
    handle: str
    style: str


class LlmTagInfo(CamelModel):
    id: str
    name: str
    icon: str


class ReadoutResponse(CamelModel):
    label: str
    readout: Optional[str] = None
