"""
Static headphone catalog.  Each preset carries a baseline rating vector used
for the spectrum fallback and for "start from preset" signatures.
"""

from __future__ import annotations

from earprint.data.bar_metadata import BAR_LABELS, NUMBER_TO_LEVEL
from earprint.schemas.catalog import HeadphonePreset
from earprint.schemas.signature import StrengthBar


def bars(*levels: int) -> list[StrengthBar]:
    """Rating vector from six 1-5 levels in canonical dimension order."""
    return [
        StrengthBar(label=label, level=NUMBER_TO_LEVEL[n - 1] if 1 <= n <= 5 else "mid")
        for label, n in zip(BAR_LABELS, levels)
    ]


def _preset(**fields) -> HeadphonePreset:
    baseline = {"bars": bars(*fields.pop("levels")), "tags": fields.pop("tags")}
    return HeadphonePreset(baseline=baseline, **fields)


PRESETS: list[HeadphonePreset] = [
    _preset(
        id="airpods-pro-3", name="AirPods Pro 3", brand="apple",
        form_factor="tws", connectivity="wireless",
        features=["anc", "transparency", "spatial-audio"],
        specs="tws · ANC · H2 chip", dot_color="blue",
        levels=(4, 3, 4, 3, 3, 3), tags=["v-shaped", "punchy", "modern"],
    ),
    _preset(
        id="airpods-pro-2", name="AirPods Pro 2", brand="apple",
        form_factor="tws", connectivity="wireless",
        features=["anc", "transparency", "spatial-audio"],
        specs="tws · ANC · H2 chip", dot_color="blue",
        levels=(4, 4, 4, 3, 4, 4), tags=["balanced", "clean", "versatile"],
    ),
    _preset(
        id="airpods-4-anc", name="AirPods 4 (ANC)", brand="apple",
        form_factor="tws", connectivity="wireless",
        features=["anc", "transparency", "spatial-audio"],
        specs="tws · ANC · H2 chip", dot_color="blue",
        levels=(3, 4, 4, 3, 3, 3), tags=["intimate", "vocal-forward", "casual"],
    ),
    _preset(
        id="airpods-4", name="AirPods 4", brand="apple",
        form_factor="earbud", connectivity="wireless",
        features=["spatial-audio"],
        specs="earbud · open-fit · H2 chip", dot_color="blue",
        levels=(3, 4, 3, 3, 3, 3), tags=["balanced", "light", "everyday"],
    ),
    _preset(
        id="airpods-max-usbc", name="AirPods Max (USB-C)", brand="apple",
        form_factor="over-ear", connectivity="wireless",
        features=["anc", "transparency", "spatial-audio"],
        specs="over-ear · ANC · H1 chip", dot_color="blue",
        levels=(4, 4, 4, 4, 4, 4), tags=["warm", "spacious", "premium"],
    ),
    _preset(
        id="earpods-usbc", name="EarPods (USB-C)", brand="apple",
        form_factor="earbud", connectivity="wired",
        features=[],
        specs="earbud · wired · USB-C", dot_color="blue",
        levels=(2, 4, 3, 2, 2, 3), tags=["intimate", "mid-forward", "basic"],
    ),
    _preset(
        id="wh-1000xm5", name="Sony WH-1000XM5", brand="sony",
        form_factor="over-ear", connectivity="wireless",
        features=["anc", "transparency", "ldac"],
        specs="closed-back · ANC · dynamic", dot_color="sony",
        levels=(5, 3, 3, 3, 3, 5), tags=["dark", "bass-forward", "smooth"],
    ),
    _preset(
        id="wf-1000xm5", name="Sony WF-1000XM5", brand="sony",
        form_factor="tws", connectivity="wireless",
        features=["anc", "ldac"],
        specs="tws · ANC · dynamic", dot_color="sony",
        levels=(5, 2, 4, 3, 3, 3), tags=["v-shaped", "energetic", "sparkly"],
    ),
    _preset(
        id="hd600", name="Sennheiser HD 600", brand="sennheiser",
        form_factor="over-ear", connectivity="wired",
        features=[],
        specs="open-back · 300Ω · dynamic", dot_color="sennheiser",
        levels=(3, 4, 3, 4, 4, 3), tags=["neutral", "natural", "reference"],
    ),
    _preset(
        id="hd800s", name="Sennheiser HD 800 S", brand="sennheiser",
        form_factor="over-ear", connectivity="wired",
        features=[],
        specs="open-back · 300Ω · dynamic", dot_color="sennheiser",
        levels=(2, 3, 5, 5, 4, 2), tags=["bright", "airy", "holographic"],
    ),
    _preset(
        id="dt-1990-pro", name="Beyerdynamic DT 1990 Pro", brand="beyerdynamic",
        form_factor="over-ear", connectivity="wired",
        features=[],
        specs="open-back · 250Ω · dynamic", dot_color="sennheiser",
        levels=(3, 3, 5, 4, 5, 2), tags=["analytical", "crisp", "studio"],
    ),
    _preset(
        id="sundara", name="HiFiMAN Sundara", brand="hifiman",
        form_factor="over-ear", connectivity="wired",
        features=[],
        specs="open-back · planar magnetic", dot_color="apple",
        levels=(3, 3, 4, 4, 4, 3), tags=["detailed", "fast", "open"],
    ),
    _preset(
        id="lcd-x", name="Audeze LCD-X", brand="audeze",
        form_factor="over-ear", connectivity="wired",
        features=[],
        specs="open-back · planar magnetic", dot_color="sony",
        levels=(5, 4, 3, 4, 5, 4), tags=["lush", "weighty", "dynamic"],
    ),
]

PRESET_MAP: dict[str, HeadphonePreset] = {p.id: p for p in PRESETS}


def get_presets_by_brand(brand: str) -> list[HeadphonePreset]:
    return [p for p in PRESETS if p.brand == brand]


def get_presets_by_form_factor(form_factor: str) -> list[HeadphonePreset]:
    return [p for p in PRESETS if p.form_factor == form_factor]
