"""
Earprint — Spectrum builder.

Lays out one representative headphone per built-in category.  Headphones
from the user's collection win; catalog presets fill the gaps.
"""

from __future__ import annotations

import random
from typing import Iterable, Mapping, Optional, Sequence

import structlog

from earprint.data.category_defaults import BUILT_IN_PRIORITY
from earprint.data.presets import PRESET_MAP, PRESETS
from earprint.schemas.catalog import Headphone, HeadphonePreset, SpectrumSlot
from earprint.schemas.category import CategoryRuleSet, FilterMode
from earprint.schemas.signature import Signature, SignaturePerspective
from earprint.services.category_service import CategoryService

logger = structlog.get_logger("earprint.spectrum_service")


class SpectrumService:
    """Build and reroll the category spectrum.

    Parameters
    ----------
    category_service : CategoryService, optional
        Engine used to classify preset baselines.
    rng : random.Random, optional
        Source of the random preset picks; pass a seeded instance for
        reproducible layouts.
    """

    def __init__(
        self,
        category_service: Optional[CategoryService] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._categories = category_service or CategoryService()
        self._rng = rng or random.Random()

    def build_spectrum(
        self,
        collection_ids: Sequence[str],
        hp_signatures: Mapping[str, Signature],
        pinned_selections: Mapping[str, str],
        presets: Sequence[HeadphonePreset] = PRESETS,
        rules: Optional[CategoryRuleSet] = None,
        mode: FilterMode = "precise",
        custom_category_ids: Iterable[str] = (),
    ) -> list[SpectrumSlot]:
        """One slot per built-in priority category, in priority order.

        Owned headphones are bucketed by their stored category; one without a
        category is classified under *rules*, *mode* and the custom ids.
        Presets are always bucketed under the built-in defaults.
        """
        custom_ids = list(custom_category_ids)
        preset_buckets: dict[str, list[str]] = {}
        for preset in presets:
            category = self._categories.derive_category(preset.baseline.bars)
            preset_buckets.setdefault(category, []).append(preset.id)

        collection_buckets: dict[str, list[str]] = {}
        for hp_id in collection_ids:
            signature = hp_signatures.get(hp_id)
            if signature is None:
                continue
            category = signature.category or self._categories.derive_category(
                signature.bars, rules, mode, custom_ids,
            )
            collection_buckets.setdefault(category, []).append(hp_id)

        slots = []
        for category in BUILT_IN_PRIORITY:
            owned = collection_buckets.get(category, [])
            catalog = preset_buckets.get(category, [])
            pinned = pinned_selections.get(category)

            if owned:
                options = list(dict.fromkeys([*owned, *catalog]))
                chosen = pinned if pinned in options else owned[0]
                slots.append(SpectrumSlot(
                    category=category,
                    preset_id=chosen,
                    source="collection",
                    alternatives=[o for o in options if o != chosen],
                ))
            elif catalog:
                chosen = pinned if pinned in catalog else self._rng.choice(catalog)
                slots.append(SpectrumSlot(
                    category=category,
                    preset_id=chosen,
                    source="preset",
                    alternatives=[o for o in catalog if o != chosen],
                ))
            else:
                slots.append(SpectrumSlot(category=category, source="none"))

        logger.info(
            "spectrum.built",
            collection=len(collection_ids),
            filled=sum(1 for s in slots if s.source != "none"),
        )
        return slots

    def reroll(self, slot: SpectrumSlot, pinned_selections: Mapping[str, str]) -> dict[str, str]:
        """New pin map with a random alternative pinned for the slot's
        category; unchanged when the slot has no alternatives."""
        updated = dict(pinned_selections)
        if not slot.alternatives:
            return updated
        updated[slot.category] = self._rng.choice(slot.alternatives)
        return updated

    # ── Catalog conversions ────────────────────────────────────────

    @staticmethod
    def preset_to_headphone(preset_id: str) -> Optional[Headphone]:
        preset = PRESET_MAP.get(preset_id)
        if preset is None:
            return None
        return Headphone(
            id=preset.id, name=preset.name, specs=preset.specs, dot_color=preset.dot_color,
        )

    def preset_to_signature(self, preset_id: str) -> Optional[Signature]:
        """Ready-made signature holding the preset baseline as its only
        perspective."""
        preset = PRESET_MAP.get(preset_id)
        if preset is None:
            return None
        derived = self._categories.derive_categories(preset.baseline.bars)
        perspective = SignaturePerspective(
            perspective_id=f"preset-{preset_id}",
            label=preset.name,
            source="preset",
            tags=list(preset.baseline.tags),
            bars=list(preset.baseline.bars),
            category=derived.primary,
            secondary_categories=derived.secondary,
        )
        return Signature(perspectives=[perspective], default_perspective_id=perspective.perspective_id)
