from typing import Annotated, Literal, Optional

from pydantic import AfterValidator, Field, model_validator

from earprint.data.bar_metadata import BAR_LABELS
from earprint.schemas.base import CamelModel
from earprint.schemas.signature import StrengthBar

FilterMode = Literal["precise", "ballpark"]


class BarConstraint(CamelModel):
    """Acceptable range for one dimension.  ``gradient`` widens the range by
    N levels on each side in ballpark mode only."""

    min: int = Field(ge=1, le=5)
    max: int = Field(ge=1, le=5)
    gradient: int = Field(default=0, ge=0, le=2)

    @model_validator(mode="after")
    def _min_not_above_max(self) -> "BarConstraint":
        if self.min > self.max:
            raise ValueError(
                f"Constraint min ({self.min}) must not exceed max ({self.max})"
            )
        return self


def _known_dimensions(rule: dict[str, BarConstraint]) -> dict[str, BarConstraint]:
    unknown = [label for label in rule if label not in BAR_LABELS]
    if unknown:
        raise ValueError(
            f"Unknown dimension label(s): {', '.join(unknown)}. "
            f"Expected one of: {', '.join(BAR_LABELS)}"
        )
    return rule


# Dimension label -> constraint.  Absent labels are unconstrained.
CategoryRule = Annotated[dict[str, BarConstraint], AfterValidator(_known_dimensions)]
# Category id -> rule.
CategoryRuleSet = dict[str, CategoryRule]


class CustomCategoryDef(CamelModel):
    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    color: str
    description: Optional[str] = None


class CategoryScore(CamelModel):
    category_id: str
    score: float


class DerivedCategories(CamelModel):
    primary: str
    secondary: list[str] = []
    scores: list[CategoryScore] = []


class CustomCategoryCreate(CamelModel):
    definition: CustomCategoryDef
    rule: CategoryRule = {}


class RuleSetResponse(CamelModel):
    rules: CategoryRuleSet
    mode: FilterMode
    custom_categories: list[CustomCategoryDef] = []


class FilterModeUpdate(CamelModel):
    mode: FilterMode


class DeriveRequest(CamelModel):
    bars: list[StrengthBar]
    mode: Optional[FilterMode] = None
