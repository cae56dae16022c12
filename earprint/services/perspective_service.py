"""
Earprint — Perspective resolver.

A perspective set holds alternative ratings of one entity (a song, a
headphone, or a song/headphone pairing) plus the id of the one in use.  The
same operations serve every kind of set; all of them return new objects and
leave their inputs untouched.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, Iterable, Optional, TypeVar

import structlog

from earprint.schemas.category import CategoryRuleSet, FilterMode
from earprint.schemas.experience import ExperienceRecord, ExperienceVoice
from earprint.schemas.signature import (
    ActiveSignature,
    PerspectiveBase,
    PerspectiveSet,
    Signature,
    SignaturePerspective,
)
from earprint.services.category_service import CategoryService

logger = structlog.get_logger("earprint.perspective_service")

P = TypeVar("P", bound=PerspectiveBase)
S = TypeVar("S", bound=PerspectiveSet)


@dataclass(frozen=True)
class ResolverResult(Generic[S]):
    """Outcome of a resolver operation that can be refused.

    ``value`` is always a usable container: the updated one on success, the
    unchanged input on failure.
    """

    ok: bool
    value: S
    error: Optional[str] = None


class PerspectiveService:
    """Default resolution, switching, upserting and deleting of perspectives."""

    def __init__(self, category_service: Optional[CategoryService] = None) -> None:
        self._categories = category_service or CategoryService()

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    @staticmethod
    def resolve_active(container: PerspectiveSet[P]) -> P:
        """The default perspective, or the first one if the default id is
        dangling."""
        return container.active

    def resolve_signature(
        self,
        signature: Signature,
        rules: Optional[CategoryRuleSet] = None,
        mode: FilterMode = "precise",
        custom_category_ids: Iterable[str] = (),
    ) -> ActiveSignature:
        """Flatten a signature into the values the UI shows.

        An explicit category on the perspective wins.  Otherwise, when a rule
        set is supplied, the category is derived from the perspective's bars.
        """
        active = signature.active
        category = active.category
        secondary = list(active.secondary_categories or [])

        if category is None and rules is not None:
            derived = self._categories.derive_categories(
                active.bars, rules, mode, custom_category_ids,
            )
            category = derived.primary
            secondary = derived.secondary

        return ActiveSignature(
            perspective_id=active.perspective_id,
            label=active.label,
            source=active.source,
            tags=list(active.tags),
            bars=list(active.bars),
            sections=active.sections,
            category=category,
            secondary_categories=secondary,
        )

    # ------------------------------------------------------------------
    # Mutation (copy-on-write)
    # ------------------------------------------------------------------

    def set_default(self, container: S, perspective_id: str) -> ResolverResult[S]:
        if container.find(perspective_id) is None:
            logger.info("perspective.set_default_unknown", perspective_id=perspective_id)
            return ResolverResult(
                ok=False,
                value=container,
                error=f"Unknown perspective: {perspective_id}",
            )
        return ResolverResult(
            ok=True,
            value=self._rebuild(container, list(container.perspectives), perspective_id),
        )

    def upsert_perspective(
        self, container: S, perspective: PerspectiveBase, make_default: bool = False
    ) -> S:
        """Insert *perspective* or replace the one it matches.

        A match is the same ``perspective_id`` or, for perspective types that
        define one, the same semantic key (an experience voice's
        ``voice_id``).  Replacement keeps the list position; any other entry
        carrying the incoming ``perspective_id`` is dropped so ids stay
        unique.
        """
        perspectives = list(container.perspectives)
        key = perspective.semantic_key()
        index = next(
            (
                i for i, p in enumerate(perspectives)
                if p.perspective_id == perspective.perspective_id
                or (key is not None and p.semantic_key() == key)
            ),
            None,
        )

        default_id = container.default_perspective_id
        if index is None:
            perspectives.append(perspective)
        else:
            replaced = perspectives[index]
            if replaced.perspective_id == default_id:
                default_id = perspective.perspective_id
            perspectives = [
                perspective if i == index else p
                for i, p in enumerate(perspectives)
                if i == index or p.perspective_id != perspective.perspective_id
            ]

        if make_default:
            default_id = perspective.perspective_id

        return self._rebuild(container, perspectives, default_id)

    def delete_perspective(self, container: S, perspective_id: str) -> ResolverResult[S]:
        if container.find(perspective_id) is None:
            return ResolverResult(
                ok=False,
                value=container,
                error=f"Unknown perspective: {perspective_id}",
            )
        if len(container.perspectives) == 1:
            return ResolverResult(
                ok=False,
                value=container,
                error="Cannot delete the only perspective",
            )

        remaining = [p for p in container.perspectives if p.perspective_id != perspective_id]
        return ResolverResult(
            ok=True,
            value=self._rebuild(container, remaining, container.default_perspective_id),
        )

    def rederive_categories(
        self,
        signature: Signature,
        rules: CategoryRuleSet,
        mode: FilterMode = "precise",
        custom_category_ids: Iterable[str] = (),
    ) -> Signature:
        """Copy of *signature* with every perspective's categories derived
        from its bars under *rules*; stored categories are overwritten."""
        custom_ids = list(custom_category_ids)
        perspectives = []
        for perspective in signature.perspectives:
            derived = self._categories.derive_categories(perspective.bars, rules, mode, custom_ids)
            perspectives.append(perspective.model_copy(update={
                "category": derived.primary,
                "secondary_categories": derived.secondary,
            }))
        return self._rebuild(signature, perspectives, signature.default_perspective_id)

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @staticmethod
    def new_signature(perspective: SignaturePerspective) -> Signature:
        return Signature(
            perspectives=[perspective],
            default_perspective_id=perspective.perspective_id,
        )

    @staticmethod
    def new_record(voice: ExperienceVoice) -> ExperienceRecord:
        return ExperienceRecord(
            perspectives=[voice],
            default_perspective_id=voice.perspective_id,
        )

    # ------------------------------------------------------------------

    @staticmethod
    def _rebuild(container: S, perspectives: list, default_id: str) -> S:
        ids = {p.perspective_id for p in perspectives}
        if default_id not in ids:
            default_id = perspectives[0].perspective_id
        return type(container)(
            perspectives=perspectives,
            default_perspective_id=default_id,
        )
