"""Base model class for normalized records."""

from typing import Any, Dict

from pydantic import BaseModel as PydanticBaseModel, ConfigDict


class BaseModel(PydanticBaseModel):
    """Immutable record built once per poll and never mutated."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to dictionary."""
        return self.model_dump()
