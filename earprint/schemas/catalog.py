from typing import Literal, Optional

from earprint.schemas.base import CamelModel
from earprint.schemas.signature import StrengthBar

DotColor = Literal["sennheiser", "sony", "apple", "blue"]
HeadphoneFormFactor = Literal["over-ear", "on-ear", "iem", "tws", "earbud"]
HeadphoneConnectivity = Literal["wired", "wireless", "hybrid"]
HeadphoneFeature = Literal["anc", "transparency", "spatial-audio", "lossless", "ldac", "aptx"]
HeadphoneBrand = Literal["apple", "sony", "sennheiser", "beyerdynamic", "hifiman", "audeze"]


class Headphone(CamelModel):
    id: str
    name: str
    specs: str
    dot_color: DotColor


class Song(CamelModel):
    id: Optional[str] = None
    title: str
    artist: str
    album: str
    album_art_url: Optional[str] = None
    album_art_emoji: str = "\U0001f3b5"
    tags: list[str] = []


class PresetBaseline(CamelModel):
    bars: list[StrengthBar]
    tags: list[str]


class PresetVariation(CamelModel):
    source: str
    bars: list[StrengthBar]
    tags: Optional[list[str]] = None


class HeadphonePreset(CamelModel):
    id: str
    name: str
    brand: HeadphoneBrand
    form_factor: HeadphoneFormFactor
    connectivity: HeadphoneConnectivity
    features: list[HeadphoneFeature] = []
    specs: str
    dot_color: DotColor
    baseline: PresetBaseline
    variations: Optional[list[PresetVariation]] = None


class SpectrumSlot(CamelModel):
    category: str
    preset_id: Optional[str] = None
    source: Literal["collection", "preset", "none"]
    alternatives: list[str] = []


class CollectionResponse(CamelModel):
    ids: list[str]
    headphones: list[Headphone] = []
