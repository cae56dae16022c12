"""
Earprint — Persistence of category rules, filter mode and custom categories.
"""

from __future__ import annotations

from typing import NamedTuple, Optional

import structlog
from pydantic import TypeAdapter, ValidationError

from earprint.data.category_defaults import default_rules, is_built_in
from earprint.repository import KeyValueRepository
from earprint.schemas.category import (
    CategoryRule,
    CategoryRuleSet,
    CustomCategoryDef,
    FilterMode,
)

logger = structlog.get_logger("earprint.rule_store")

RULES_KEY = "category_rules"
MODE_KEY = "category_filter_mode"
CUSTOM_CATEGORIES_KEY = "custom_categories"

_rule_set_adapter = TypeAdapter(CategoryRuleSet)
_custom_defs_adapter = TypeAdapter(list[CustomCategoryDef])


class RuleContext(NamedTuple):
    """Everything the engine needs to classify under the user's settings."""

    rules: CategoryRuleSet
    mode: FilterMode
    custom_category_ids: list[str]


class CategoryExistsError(ValueError):
    """A custom category id collides with a built-in or existing category."""


class CategoryNotFoundError(LookupError):
    """No custom category with the given id."""


class RuleStore:
    """Category configuration backed by a key-value repository."""

    def __init__(self, repository: KeyValueRepository, default_mode: FilterMode = "precise") -> None:
        self._repo = repository
        self._default_mode = default_mode

    # ── Rules ───────────────────────────────────────────────────────

    async def load_rules(self) -> CategoryRuleSet:
        """Stored rule set, or a fresh copy of the defaults."""
        raw = await self._repo.get(RULES_KEY)
        if raw is None:
            return default_rules()
        try:
            return _rule_set_adapter.validate_python(raw)
        except ValidationError as exc:
            logger.warning("rules.invalid_stored", errors=exc.error_count())
            return default_rules()

    async def save_rules(self, rules: CategoryRuleSet) -> None:
        await self._repo.put(RULES_KEY, self._dump_rules(rules))
        logger.info("rules.saved", categories=len(rules))

    async def reset_rules(self) -> CategoryRuleSet:
        """Restore the default rules; custom category rules survive."""
        current = await self.load_rules()
        rules = default_rules()
        for category_id in await self.custom_category_ids():
            if category_id in current:
                rules[category_id] = current[category_id]
        await self.save_rules(rules)
        return rules

    # ── Filter mode ─────────────────────────────────────────────────

    async def load_filter_mode(self) -> FilterMode:
        raw = await self._repo.get(MODE_KEY)
        if raw in ("precise", "ballpark"):
            return raw
        return self._default_mode

    async def save_filter_mode(self, mode: FilterMode) -> None:
        await self._repo.put(MODE_KEY, mode)

    # ── Custom categories ───────────────────────────────────────────

    async def load_custom_categories(self) -> list[CustomCategoryDef]:
        raw = await self._repo.get(CUSTOM_CATEGORIES_KEY)
        if raw is None:
            return []
        try:
            return _custom_defs_adapter.validate_python(raw)
        except ValidationError as exc:
            logger.warning("custom_categories.invalid_stored", errors=exc.error_count())
            return []

    async def save_custom_categories(self, definitions: list[CustomCategoryDef]) -> None:
        await self._repo.put(
            CUSTOM_CATEGORIES_KEY, [d.to_record() for d in definitions],
        )

    async def custom_category_ids(self) -> list[str]:
        return [d.id for d in await self.load_custom_categories()]

    async def load_context(self) -> RuleContext:
        return RuleContext(
            await self.load_rules(),
            await self.load_filter_mode(),
            await self.custom_category_ids(),
        )

    async def add_custom_category(
        self, definition: CustomCategoryDef, rule: Optional[CategoryRule] = None
    ) -> list[CustomCategoryDef]:
        definitions = await self.load_custom_categories()
        if is_built_in(definition.id) or any(d.id == definition.id for d in definitions):
            raise CategoryExistsError(f"Category {definition.id!r} already exists")

        definitions.append(definition)
        rules = await self.load_rules()
        rules[definition.id] = dict(rule or {})

        await self.save_custom_categories(definitions)
        await self.save_rules(rules)
        logger.info("custom_category.added", category_id=definition.id)
        return definitions

    async def update_custom_category(
        self, definition: CustomCategoryDef, rule: Optional[CategoryRule] = None
    ) -> list[CustomCategoryDef]:
        definitions = await self.load_custom_categories()
        index = next((i for i, d in enumerate(definitions) if d.id == definition.id), None)
        if index is None:
            raise CategoryNotFoundError(definition.id)

        definitions[index] = definition
        await self.save_custom_categories(definitions)
        if rule is not None:
            rules = await self.load_rules()
            rules[definition.id] = dict(rule)
            await self.save_rules(rules)
        return definitions

    async def delete_custom_category(self, category_id: str) -> list[CustomCategoryDef]:
        definitions = await self.load_custom_categories()
        remaining = [d for d in definitions if d.id != category_id]
        if len(remaining) == len(definitions):
            raise CategoryNotFoundError(category_id)

        rules = await self.load_rules()
        rules.pop(category_id, None)
        await self.save_custom_categories(remaining)
        await self.save_rules(rules)
        logger.info("custom_category.deleted", category_id=category_id)
        return remaining

    # ------------------------------------------------------------------

    @staticmethod
    def _dump_rules(rules: CategoryRuleSet) -> dict:
        return {
            category_id: {label: c.to_record() for label, c in rule.items()}
            for category_id, rule in rules.items()
        }
