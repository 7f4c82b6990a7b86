from __future__ import annotations

from typing import Annotated

from pydantic import BaseModel as PydanticBaseModel
from pydantic import ConfigDict, Field

# Vocabulary categories fit in a single byte
CategoryId = Annotated[int, Field(ge=0, le=255)]
TagId = Annotated[int, Field(ge=0)]


class AppBaseModel(PydanticBaseModel):
    """Base for tag models and API schemas. Unknown fields are rejected."""

    model_config = ConfigDict(
        from_attributes=True,
        extra="forbid",
        populate_by_name=True,
    )
