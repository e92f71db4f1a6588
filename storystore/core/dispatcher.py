"""
Selection & event dispatcher.

Tracks the current selection and fans store events out to two audiences:

    channel          — the remote peer, attached at construction or later
    local listeners  — in-process callbacks registered with ``on()``

Delivery contract:

    event              channel                  local listeners
    selectionChanged   same call (if attached)  next scheduler turn
    storyArgsChanged   same call (if attached)  same call
    setStories         same call (if attached)  same call

States:
    DETACHED — no channel; channel-bound messages are skipped, not queued
    ATTACHED — channel set; attaching re-announces the current selection

DETACHED → ATTACHED is the only transition; ``dispose()`` resets.
"""

from __future__ import annotations

import functools
import logging
from collections.abc import Callable, Mapping
from enum import Enum
from typing import Any, Optional

from storystore.core.channel import Channel, EventKey, MessageHandler, event_key
from storystore.core.scheduler import Scheduler
from storystore.errors import StoryStoreError
from storystore.models.story import Selection
from storystore.protocol.events import (
    ChangeStoryArgsMessage,
    SelectionChangedMessage,
    SetStoriesMessage,
    StoreEvent,
    StoreMessage,
    StoryArgsChangedMessage,
)

logger = logging.getLogger(__name__)

ArgsUpdateHandler = Callable[[str, Mapping[str, Any]], None]


class ChannelState(str, Enum):
    """Relationship between the dispatcher and its channel."""

    DETACHED = "detached"
    ATTACHED = "attached"


class InvalidTransitionError(StoryStoreError):
    """Raised when a second, different channel is attached."""

    def __init__(self, from_state: ChannelState, to_state: ChannelState):
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(f"Invalid transition: {from_state.value} → {to_state.value}")


class Dispatcher:
    """Routes selection and args events to the channel and local listeners."""

    def __init__(
        self,
        scheduler: Scheduler,
        on_args_update: ArgsUpdateHandler,
        channel: Optional[Channel] = None,
    ) -> None:
        self._scheduler = scheduler
        self._on_args_update = on_args_update
        self._channel: Optional[Channel] = None
        self._state = ChannelState.DETACHED
        self._listeners: dict[str, list[MessageHandler]] = {}
        self._selection: Optional[Selection] = None
        self._error: Optional[Any] = None
        self._has_selection = False
        if channel is not None:
            self.attach(channel)

    @property
    def state(self) -> ChannelState:
        return self._state

    @property
    def channel(self) -> Optional[Channel]:
        return self._channel

    @property
    def selection(self) -> Optional[Selection]:
        return self._selection

    @property
    def error(self) -> Optional[Any]:
        return self._error

    def is_attached(self) -> bool:
        return (
            self._state is ChannelState.ATTACHED
            and self._channel is not None
            and self._channel.is_attached()
        )

    # =========================================================================
    # Channel lifecycle
    # =========================================================================

    def attach(self, channel: Channel) -> None:
        """Attach the channel and re-announce the current selection to it."""
        if self._state is ChannelState.ATTACHED:
            if channel is self._channel:
                return
            raise InvalidTransitionError(self._state, ChannelState.ATTACHED)

        self._channel = channel
        self._state = ChannelState.ATTACHED
        channel.on_message(
            StoreEvent.CHANGE_STORY_ARGS,
            functools.partial(self._handle_change_story_args, channel),
        )
        logger.info("🔌 Channel attached")

        if self._has_selection:
            self._send(SelectionChangedMessage(selection=self._selection))

    def _handle_change_story_args(self, source: Channel, message: StoreMessage) -> None:
        # Handlers stay registered on channels that were disposed or replaced.
        if source is not self._channel:
            logger.debug("Ignoring changeStoryArgs from a detached channel")
            return
        if not isinstance(message, ChangeStoryArgsMessage):
            logger.warning(f"Ignoring unexpected message on changeStoryArgs: {message.type}")
            return
        self._on_args_update(message.story_id, message.args)

    # =========================================================================
    # Local listeners
    # =========================================================================

    def on(self, event: EventKey, handler: MessageHandler) -> None:
        self._listeners.setdefault(event_key(event), []).append(handler)

    def off(self, event: EventKey, handler: MessageHandler) -> None:
        handlers = self._listeners.get(event_key(event), [])
        if handler in handlers:
            handlers.remove(handler)

    def _notify_local(self, message: StoreMessage) -> None:
        for handler in list(self._listeners.get(message.type, ())):
            try:
                handler(message)
            except Exception:
                logger.warning(
                    f"Store listener failure for {message.type}", exc_info=True
                )

    def _send(self, message: StoreMessage) -> None:
        if not self.is_attached():
            logger.debug(f"No channel attached; skipped {message.type}")
            return
        assert self._channel is not None
        self._channel.send(message)

    # =========================================================================
    # Announcements
    # =========================================================================

    def announce_selection(
        self, selection: Optional[Selection], error: Optional[Any] = None
    ) -> None:
        """Record the selection (``None`` clears it); channel now, local listeners next turn."""
        self._selection = selection
        self._error = error
        self._has_selection = True
        message = SelectionChangedMessage(selection=selection)
        self._send(message)
        self._scheduler.call_soon(self._notify_local, message)

    def announce_args(self, story_id: str, args: Mapping[str, Any]) -> None:
        """Publish a story's full args to both audiences synchronously."""
        message = StoryArgsChangedMessage(story_id=story_id, args=dict(args))
        self._send(message)
        self._notify_local(message)

    def announce_stories(self, message: SetStoriesMessage) -> None:
        self._send(message)
        self._notify_local(message)

    def dispose(self) -> None:
        """Drop listeners, channel and selection; back to DETACHED."""
        self._listeners.clear()
        self._channel = None
        self._state = ChannelState.DETACHED
        self._selection = None
        self._error = None
        self._has_selection = False
