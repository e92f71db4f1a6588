"""Public models: the selection value and the extracted story view."""
from __future__ import annotations

from typing import Any

from pydantic import ConfigDict, Field

from storystore.models.base import CamelModel


class Selection(CamelModel):
    """The currently active story / view-mode pair. Immutable."""

    model_config = ConfigDict(frozen=True)

    story_id: str
    view_mode: str


class StoryView(CamelModel):
    """Public projection of a registered story.

    Carries the merged parameters only; args, decorators and story
    functions never leave the store through ``extract()``.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    kind: str
    name: str
    parameters: dict[str, Any] = Field(default_factory=dict)
