"""Tests for the scheduler, loopback channel and selection dispatcher."""
from __future__ import annotations

import asyncio
from typing import Any

import pytest

from storystore.core.channel import LoopbackChannel
from storystore.core.dispatcher import ChannelState, Dispatcher, InvalidTransitionError
from storystore.core.scheduler import AsyncioScheduler, ManualScheduler, create_scheduler
from storystore.models.story import Selection
from storystore.protocol.events import (
    ChangeStoryArgsMessage,
    SelectionChangedMessage,
    StoreEvent,
    StoreMessage,
    StoryArgsChangedMessage,
)


def _selection(story_id: str = "a--1") -> Selection:
    return Selection(story_id=story_id, view_mode="story")


class TestManualScheduler:
    """Callbacks run only on flush."""

    def test_queues_until_flush(self) -> None:
        scheduler = ManualScheduler()
        calls: list[int] = []
        scheduler.call_soon(calls.append, 1)

        assert calls == []
        assert scheduler.pending == 1
        assert scheduler.flush() == 1
        assert calls == [1]
        assert scheduler.pending == 0

    def test_flush_runs_callbacks_queued_while_flushing(self) -> None:
        scheduler = ManualScheduler()
        calls: list[str] = []

        def first() -> None:
            calls.append("first")
            scheduler.call_soon(calls.append, "second")

        scheduler.call_soon(first)
        assert scheduler.flush() == 2
        assert calls == ["first", "second"]

    def test_create_scheduler(self) -> None:
        assert isinstance(create_scheduler("manual"), ManualScheduler)
        assert isinstance(create_scheduler("asyncio"), AsyncioScheduler)
        with pytest.raises(ValueError):
            create_scheduler("threads")


class TestAsyncioScheduler:
    """Callbacks run on the next loop iteration."""

    async def test_defers_to_running_loop(self) -> None:
        scheduler = AsyncioScheduler()
        calls: list[int] = []
        scheduler.call_soon(calls.append, 1)

        assert calls == []
        await asyncio.sleep(0.01)
        assert calls == [1]

    def test_without_loop_queues_for_flush(self) -> None:
        scheduler = AsyncioScheduler()
        calls: list[int] = []
        scheduler.call_soon(calls.append, 1)

        assert calls == []
        scheduler.flush()
        assert calls == [1]

    def test_warns_once_without_loop(self, caplog: pytest.LogCaptureFixture) -> None:
        scheduler = AsyncioScheduler()
        scheduler.call_soon(print)
        scheduler.call_soon(print)

        warnings = [r for r in caplog.records if "No running event loop" in r.getMessage()]
        assert len(warnings) == 1
        assert scheduler.pending == 2

    def test_queued_callbacks_move_to_loop_oldest_first(self) -> None:
        """Callbacks queued before a loop existed run before newer ones."""
        scheduler = AsyncioScheduler()
        calls: list[str] = []
        scheduler.call_soon(calls.append, "queued")

        async def later() -> None:
            scheduler.call_soon(calls.append, "new")
            await asyncio.sleep(0)

        asyncio.run(later())

        assert calls == ["queued", "new"]
        assert scheduler.pending == 0


class TestLoopbackChannel:
    """In-process channel."""

    def test_send_delivers_synchronously(self) -> None:
        channel = LoopbackChannel()
        received: list[StoreMessage] = []
        channel.on_message(StoreEvent.SELECTION_CHANGED, received.append)

        message = SelectionChangedMessage(selection=_selection())
        channel.send(message)

        assert received == [message]
        assert channel.history() == [message]

    def test_off_message(self) -> None:
        channel = LoopbackChannel()
        received: list[StoreMessage] = []
        channel.on_message("selectionChanged", received.append)
        channel.off_message("selectionChanged", received.append)

        channel.send(SelectionChangedMessage(selection=_selection()))
        assert received == []

    def test_receive_parses_wire_dict(self) -> None:
        channel = LoopbackChannel()
        received: list[StoreMessage] = []
        channel.on_message(StoreEvent.CHANGE_STORY_ARGS, received.append)

        assert channel.receive({"type": "changeStoryArgs", "storyId": "a--1", "args": {"foo": "bar"}})
        assert received == [ChangeStoryArgsMessage(story_id="a--1", args={"foo": "bar"})]

    def test_receive_drops_malformed(self) -> None:
        channel = LoopbackChannel()
        received: list[StoreMessage] = []
        channel.on_message(StoreEvent.CHANGE_STORY_ARGS, received.append)

        assert not channel.receive({"type": "changeStoryArgs"})
        assert not channel.receive({"type": "explode"})
        assert received == []

    def test_handler_failure_does_not_stop_fanout(self) -> None:
        channel = LoopbackChannel()
        received: list[StoreMessage] = []

        def broken(message: StoreMessage) -> None:
            raise RuntimeError("boom")

        channel.on_message(StoreEvent.SELECTION_CHANGED, broken)
        channel.on_message(StoreEvent.SELECTION_CHANGED, received.append)
        channel.send(SelectionChangedMessage(selection=_selection()))

        assert len(received) == 1

    def test_history_is_bounded(self) -> None:
        channel = LoopbackChannel(history_limit=2)
        for index in range(3):
            channel.send(SelectionChangedMessage(selection=_selection(f"a--{index}")))
        assert len(channel.history(limit=10)) == 2


class TestDispatcher:
    """Delivery contract for selection and args events."""

    def _dispatcher(self, channel: Any = None) -> tuple[Dispatcher, ManualScheduler, list[tuple[str, Any]]]:
        scheduler = ManualScheduler()
        updates: list[tuple[str, Any]] = []
        dispatcher = Dispatcher(
            scheduler,
            on_args_update=lambda story_id, args: updates.append((story_id, dict(args))),
            channel=channel,
        )
        return dispatcher, scheduler, updates

    def test_starts_detached(self) -> None:
        dispatcher, _, _ = self._dispatcher()
        assert dispatcher.state is ChannelState.DETACHED
        assert not dispatcher.is_attached()

    def test_selection_channel_now_local_later(self) -> None:
        channel = LoopbackChannel()
        on_channel: list[StoreMessage] = []
        channel.on_message(StoreEvent.SELECTION_CHANGED, on_channel.append)
        dispatcher, scheduler, _ = self._dispatcher(channel)
        local: list[StoreMessage] = []
        dispatcher.on(StoreEvent.SELECTION_CHANGED, local.append)

        dispatcher.announce_selection(_selection())

        assert len(on_channel) == 1
        assert local == []
        scheduler.flush()
        assert len(local) == 1
        assert len(on_channel) == 1

    def test_detached_selection_is_not_queued_for_channel(self) -> None:
        dispatcher, scheduler, _ = self._dispatcher()
        dispatcher.announce_selection(_selection("a--1"))
        dispatcher.announce_selection(_selection("a--2"))

        channel = LoopbackChannel()
        on_channel: list[StoreMessage] = []
        channel.on_message(StoreEvent.SELECTION_CHANGED, on_channel.append)
        dispatcher.attach(channel)

        assert [m.selection.story_id for m in on_channel] == ["a--2"]
        assert dispatcher.state is ChannelState.ATTACHED

    def test_attach_without_selection_sends_nothing(self) -> None:
        dispatcher, _, _ = self._dispatcher()
        channel = LoopbackChannel()
        dispatcher.attach(channel)
        assert channel.history() == []

    def test_attach_same_channel_twice_is_noop(self) -> None:
        channel = LoopbackChannel()
        dispatcher, _, _ = self._dispatcher(channel)
        dispatcher.attach(channel)
        assert dispatcher.channel is channel

    def test_attach_second_channel_raises(self) -> None:
        dispatcher, _, _ = self._dispatcher(LoopbackChannel())
        with pytest.raises(InvalidTransitionError):
            dispatcher.attach(LoopbackChannel())

    def test_args_reach_both_audiences_synchronously(self) -> None:
        channel = LoopbackChannel()
        on_channel: list[StoreMessage] = []
        channel.on_message(StoreEvent.STORY_ARGS_CHANGED, on_channel.append)
        dispatcher, _, _ = self._dispatcher(channel)
        local: list[StoreMessage] = []
        dispatcher.on(StoreEvent.STORY_ARGS_CHANGED, local.append)

        dispatcher.announce_args("a--1", {"foo": "bar"})

        expected = StoryArgsChangedMessage(story_id="a--1", args={"foo": "bar"})
        assert on_channel == [expected]
        assert local == [expected]

    def test_inbound_change_story_args(self) -> None:
        channel = LoopbackChannel()
        _, _, updates = self._dispatcher(channel)

        channel.receive({"type": "changeStoryArgs", "storyId": "a--1", "args": {"foo": "bar"}})
        assert updates == [("a--1", {"foo": "bar"})]

    def test_off_removes_local_listener(self) -> None:
        dispatcher, _, _ = self._dispatcher()
        local: list[StoreMessage] = []
        dispatcher.on(StoreEvent.STORY_ARGS_CHANGED, local.append)
        dispatcher.off(StoreEvent.STORY_ARGS_CHANGED, local.append)

        dispatcher.announce_args("a--1", {})
        assert local == []

    def test_dispose_resets(self) -> None:
        channel = LoopbackChannel()
        dispatcher, _, updates = self._dispatcher(channel)
        dispatcher.announce_selection(_selection())
        dispatcher.dispose()

        assert dispatcher.state is ChannelState.DETACHED
        assert dispatcher.selection is None
        channel.receive({"type": "changeStoryArgs", "storyId": "a--1", "args": {}})
        assert updates == []

    def test_replaced_channel_cannot_change_args(self) -> None:
        """After dispose and a new attach only the new channel is listened to."""
        old = LoopbackChannel()
        dispatcher, _, updates = self._dispatcher(old)
        dispatcher.dispose()

        new = LoopbackChannel()
        dispatcher.attach(new)
        old.receive({"type": "changeStoryArgs", "storyId": "a--1", "args": {"x": 1}})
        assert updates == []

        new.receive({"type": "changeStoryArgs", "storyId": "a--1", "args": {"x": 2}})
        assert updates == [("a--1", {"x": 2})]

    def test_cleared_selection_follows_delivery_contract(self) -> None:
        channel = LoopbackChannel()
        on_channel: list[StoreMessage] = []
        channel.on_message(StoreEvent.SELECTION_CHANGED, on_channel.append)
        dispatcher, scheduler, _ = self._dispatcher(channel)
        local: list[StoreMessage] = []
        dispatcher.on(StoreEvent.SELECTION_CHANGED, local.append)

        dispatcher.announce_selection(None, {"title": "Couldn't find story"})

        assert [m.selection for m in on_channel] == [None]
        assert local == []
        scheduler.flush()
        assert [m.selection for m in local] == [None]

    def test_cleared_selection_reannounced_on_attach(self) -> None:
        dispatcher, _, _ = self._dispatcher()
        dispatcher.announce_selection(None, "missing")

        channel = LoopbackChannel()
        on_channel: list[StoreMessage] = []
        channel.on_message(StoreEvent.SELECTION_CHANGED, on_channel.append)
        dispatcher.attach(channel)

        assert [m.selection for m in on_channel] == [None]
