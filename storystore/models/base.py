"""Base model for everything the store puts on the channel."""
from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Store models with snake_case attributes and camelCase wire keys.

    A peer sends ``{"storyId": ..., "viewMode": ...}``; Python code reads
    ``selection.story_id``. Validation takes either spelling, and channel
    adapters dump with ``by_alias=True``.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )
