from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """camelCase on the wire, snake_case accepted on input and used in Python."""

    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel, from_attributes=True)
