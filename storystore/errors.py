"""Exception types for the story store.

Removal operations never raise for a missing story; lookups and args
updates do, because their callers expect the story to exist.
"""
from __future__ import annotations


class StoryStoreError(Exception):
    """Base exception for story store errors."""


class UnknownStoryError(StoryStoreError, KeyError):
    """Raised when a lookup or args update references an id that is not registered."""

    def __init__(self, story_id: str) -> None:
        self.story_id = story_id
        super().__init__(f"Unknown story: {story_id}")

    def __str__(self) -> str:
        # KeyError.__str__ would repr() the message.
        return f"Unknown story: {self.story_id}"


class InvalidStoryIdError(StoryStoreError, ValueError):
    """Raised when a kind or name has no characters left after sanitizing."""

    def __init__(self, part: str, value: str) -> None:
        self.part = part
        self.value = value
        super().__init__(
            f"Invalid {part} '{value}', must include alphanumeric characters"
        )


class InvalidSortConfigError(StoryStoreError, ValueError):
    """Raised when ``options.storySort`` is neither a comparator nor a sort mapping."""


class MessageValidationError(StoryStoreError):
    """Raised when a wire dict fails message validation.

    Channel adapters must catch this and drop the message; the store
    state is never touched by a message that fails validation.
    """
