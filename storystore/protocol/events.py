"""Story store message models — the contract on the channel.

Every message the store sends, or accepts from a peer, is an instance of a
``StoreMessage`` subclass. Adapters that move messages over a real transport
serialize with ``model_dump(by_alias=True)`` and rebuild them with
``parse_message()``.

Wire format rules:
  - keys are camelCase (``storyId``, ``viewMode``)
  - every message carries ``type``
  - unknown fields are rejected (extra="forbid")

Directions:
  selectionChanged   store → peer     current selection
  storyArgsChanged   store → peer     full args after an update
  changeStoryArgs    peer → store     partial args update request
  setStories         store → peer     ordered catalogue after configuration
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Literal, Optional

from pydantic import ConfigDict, Field

from storystore.models.base import CamelModel
from storystore.models.story import Selection, StoryView


class StoreEvent(str, Enum):
    """Event kinds shared by channel messages and local listeners."""

    SELECTION_CHANGED = "selectionChanged"
    STORY_ARGS_CHANGED = "storyArgsChanged"
    CHANGE_STORY_ARGS = "changeStoryArgs"
    SET_STORIES = "setStories"


class StoreMessage(CamelModel):
    """Base class for every channel message."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    type: str

    @property
    def event(self) -> StoreEvent:
        return StoreEvent(self.type)


class SelectionChangedMessage(StoreMessage):
    """The current selection, sent on change and re-announced on attach.

    ``selection`` is ``None`` when the selection was cleared.
    """

    type: Literal["selectionChanged"] = "selectionChanged"
    selection: Optional[Selection]


class StoryArgsChangedMessage(StoreMessage):
    """Full args of one story after an update was applied."""

    type: Literal["storyArgsChanged"] = "storyArgsChanged"
    story_id: str
    args: dict[str, Any] = Field(default_factory=dict)


class ChangeStoryArgsMessage(StoreMessage):
    """Peer request to merge ``args`` into a story's args."""

    type: Literal["changeStoryArgs"] = "changeStoryArgs"
    story_id: str
    args: dict[str, Any] = Field(default_factory=dict)


class SetStoriesMessage(StoreMessage):
    """Ordered catalogue pushed to the peer when configuration finishes."""

    type: Literal["setStories"] = "setStories"
    stories: dict[str, StoryView] = Field(default_factory=dict)


def strip_callables(value: Any) -> Any:
    """Drop callables from nested dicts / lists so the value is transportable."""
    if isinstance(value, dict):
        return {
            key: strip_callables(item)
            for key, item in value.items()
            if not callable(item)
        }
    if isinstance(value, (list, tuple)):
        return [strip_callables(item) for item in value if not callable(item)]
    return value
