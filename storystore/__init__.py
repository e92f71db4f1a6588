"""storystore — story registry and presentation-state engine."""
from storystore.core.channel import Channel, LoopbackChannel
from storystore.core.decorators import compose_decorators
from storystore.core.ids import sanitize, to_id
from storystore.core.scheduler import AsyncioScheduler, ManualScheduler
from storystore.core.story_store import StoryInput, StoryRecord, StoryStore, add_stories
from storystore.errors import (
    InvalidSortConfigError,
    InvalidStoryIdError,
    MessageValidationError,
    StoryStoreError,
    UnknownStoryError,
)
from storystore.models.story import Selection, StoryView
from storystore.protocol.events import StoreEvent

__all__ = [
    "AsyncioScheduler",
    "Channel",
    "InvalidSortConfigError",
    "InvalidStoryIdError",
    "LoopbackChannel",
    "ManualScheduler",
    "MessageValidationError",
    "Selection",
    "StoreEvent",
    "StoryInput",
    "StoryRecord",
    "StoryStore",
    "StoryStoreError",
    "StoryView",
    "UnknownStoryError",
    "add_stories",
    "compose_decorators",
    "sanitize",
    "to_id",
]
