"""Message registry — canonical mapping of message type strings to model classes.

Invariants:
  - Every message the store can send or accept has an entry.
  - Unknown message types cannot be parsed.
  - Registry is frozen at import time. No runtime mutation.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Type

from storystore.errors import MessageValidationError
from storystore.protocol.events import (
    ChangeStoryArgsMessage,
    SelectionChangedMessage,
    SetStoriesMessage,
    StoreMessage,
    StoryArgsChangedMessage,
)


MESSAGE_REGISTRY: dict[str, Type[StoreMessage]] = {
    "selectionChanged": SelectionChangedMessage,
    "storyArgsChanged": StoryArgsChangedMessage,
    "changeStoryArgs": ChangeStoryArgsMessage,
    "setStories": SetStoriesMessage,
}

ALL_MESSAGE_TYPES: frozenset[str] = frozenset(MESSAGE_REGISTRY.keys())


def is_known_message(message_type: str) -> bool:
    """Return ``True`` when ``message_type`` is a registered message type string."""
    return message_type in MESSAGE_REGISTRY


def parse_message(data: Mapping[str, object]) -> StoreMessage:
    """Deserialize a wire-format dict into the matching message subclass.

    Both camelCase and snake_case keys are accepted.
    Raises ``MessageValidationError`` for unknown or malformed messages.
    """
    message_type = data.get("type")
    if not isinstance(message_type, str):
        raise MessageValidationError("Message dict missing 'type' field")

    if message_type not in MESSAGE_REGISTRY:
        raise MessageValidationError(
            f"Unknown message type '{message_type}'. Cannot deserialize."
        )

    model_class = MESSAGE_REGISTRY[message_type]
    try:
        return model_class.model_validate(data)
    except Exception as exc:
        raise MessageValidationError(
            f"Message '{message_type}' failed deserialization: {exc}"
        ) from exc
