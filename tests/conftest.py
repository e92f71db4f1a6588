"""Pytest configuration and fixtures."""
from __future__ import annotations

from collections.abc import Callable
from typing import Any, Optional

import pytest

from storystore.config import Settings
from storystore.core.channel import LoopbackChannel
from storystore.core.decorators import compose_decorators
from storystore.core.scheduler import ManualScheduler
from storystore.core.story_store import StoryInput, StoryRecord, StoryStore


def pytest_configure(config):
    """Ensure asyncio_mode is auto so async tests run without a pyproject in cwd."""
    if hasattr(config.option, "asyncio_mode") and config.option.asyncio_mode is None:
        config.option.asyncio_mode = "auto"


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from the environment and any .env file."""
    return Settings(_env_file=None, scheduler="manual")


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def channel() -> LoopbackChannel:
    return LoopbackChannel()


@pytest.fixture
def store(channel: LoopbackChannel, scheduler: ManualScheduler, settings: Settings) -> StoryStore:
    return StoryStore(channel=channel, scheduler=scheduler, settings=settings)


def add_story_to_store(
    store: StoryStore,
    kind: str,
    name: str,
    story_fn: Callable[..., Any],
    parameters: Optional[dict[str, Any]] = None,
) -> StoryRecord:
    """Register one story the way most tests need it."""
    return store.add_story(
        StoryInput(kind=kind, name=name, story_fn=story_fn, parameters=parameters or {}),
        apply_decorators=compose_decorators,
    )


@pytest.fixture
def add_story() -> Callable[..., StoryRecord]:
    return add_story_to_store
