from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base for every persisted / wire model: snake_case in Python,
    camelCase in JSON (``perspectiveId``, ``defaultPerspectiveId``...)."""

    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
    }

    def to_record(self) -> dict:
        """JSON-ready dict in the persisted (camelCase) shape."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
