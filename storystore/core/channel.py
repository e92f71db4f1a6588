"""Channel boundary.

The store talks to a remote peer (usually a UI manager) through an object
satisfying ``Channel``. The transport behind it is not the store's concern;
``LoopbackChannel`` is the in-process implementation used by tests and by
hosts where both ends live in one process.
"""
from __future__ import annotations

import logging
from collections import deque
from collections.abc import Callable, Mapping
from typing import Deque, Protocol, Union

from storystore.errors import MessageValidationError
from storystore.protocol.events import StoreEvent, StoreMessage
from storystore.protocol.registry import parse_message

logger = logging.getLogger(__name__)

MessageHandler = Callable[[StoreMessage], None]
EventKey = Union[StoreEvent, str]


def event_key(event: EventKey) -> str:
    return event.value if isinstance(event, StoreEvent) else str(event)


class Channel(Protocol):
    """Reliable, ordered, bidirectional message pipe."""

    def send(self, message: StoreMessage) -> None: ...

    def on_message(self, event: EventKey, handler: MessageHandler) -> None: ...

    def is_attached(self) -> bool: ...


class LoopbackChannel:
    """Synchronous in-memory channel.

    ``send`` delivers to every handler registered for the message type
    before returning, whichever side sent it. A bounded history of sent
    messages is kept for inspection.
    """

    def __init__(self, history_limit: int = 200) -> None:
        self._handlers: dict[str, list[MessageHandler]] = {}
        self._history: Deque[StoreMessage] = deque(maxlen=max(1, history_limit))

    def is_attached(self) -> bool:
        return True

    def on_message(self, event: EventKey, handler: MessageHandler) -> None:
        self._handlers.setdefault(event_key(event), []).append(handler)

    def off_message(self, event: EventKey, handler: MessageHandler) -> None:
        handlers = self._handlers.get(event_key(event), [])
        if handler in handlers:
            handlers.remove(handler)

    def send(self, message: StoreMessage) -> None:
        self._history.append(message)
        for handler in list(self._handlers.get(message.type, ())):
            try:
                handler(message)
            except Exception:
                logger.warning(
                    f"Channel handler failure for {message.type}", exc_info=True
                )

    def receive(self, data: Mapping[str, object]) -> bool:
        """Deliver a wire-format dict as if a peer had sent it.

        Malformed messages are dropped. Returns whether the message was delivered.
        """
        try:
            message = parse_message(data)
        except MessageValidationError as exc:
            logger.warning(f"Dropping malformed channel message: {exc}")
            return False
        self.send(message)
        return True

    def history(self, limit: int = 20) -> list[StoreMessage]:
        return list(self._history)[-max(limit, 1):]
