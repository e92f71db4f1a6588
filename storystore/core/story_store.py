"""
StoryStore — the story registry and presentation state.

This is the **single owner** of registered stories, their merged metadata,
their args and the current selection.

Key principles:
1. Metadata is merged once, at registration: global → kind → story
2. Decorator chains are composed lazily, the first time a story is decorated
3. Args are seeded lazily from argTypes and change only through per-key updates
4. Every selection / args change is announced through the Dispatcher
5. The catalogue is ordered at extraction time by the sort engine

Lifecycle:
    store = StoryStore(channel=channel)
    store.add_global_metadata(parameters={...}, decorators=[...])
    store.add_kind_metadata("Button", parameters={...})
    store.add_story(StoryInput(kind="Button", name="Primary", story_fn=render))
    store.extract()          # ordered {id: StoryView}
    store.dispose()

Duplicate ids overwrite the previous record in place (last write wins; the
catalogue position of the first registration is kept).
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Optional, Union

from storystore.config import Settings, get_settings
from storystore.contracts.story_types import (
    ARG_TYPES_KEY,
    DOCS_ONLY_KEY,
    ApplyDecorators,
    Args,
    ArgTypesEnhancer,
    DecoratedStory,
    Decorator,
    Parameters,
    StoryContext,
    StoryFn,
)
from storystore.core.args import apply_args_update, initial_args
from storystore.core.channel import Channel, EventKey, MessageHandler
from storystore.core.decorators import compose_decorators, merge_context
from storystore.core.dispatcher import Dispatcher
from storystore.core.ids import to_id
from storystore.core.metadata import GlobalMetadata, KindMetadata, resolve_metadata
from storystore.core.scheduler import Scheduler, create_scheduler
from storystore.core.story_sort import order_entries, split_kind
from storystore.errors import UnknownStoryError
from storystore.models.story import Selection, StoryView
from storystore.protocol.events import SetStoriesMessage, strip_callables

logger = logging.getLogger(__name__)


@dataclass
class StoryInput:
    """Caller-supplied story registration. ``id`` is derived when omitted."""

    kind: str
    name: str
    story_fn: StoryFn
    parameters: Parameters = field(default_factory=dict)
    decorators: list[Decorator] = field(default_factory=list)
    id: str = ""

    def __post_init__(self) -> None:
        if not self.id:
            self.id = to_id(self.kind, self.name)


@dataclass
class StoryRecord:
    """A registered story. Owned by the store; only ``args`` changes after creation."""

    id: str
    kind: str
    name: str
    parameters: Parameters
    decorators: tuple[Decorator, ...]
    original_fn: StoryFn
    apply_decorators: ApplyDecorators = compose_decorators
    _args: Optional[Args] = field(default=None, repr=False)
    _decorated: Optional[DecoratedStory] = field(default=None, repr=False)

    @property
    def args(self) -> Args:
        """Current args, seeded from argTypes defaults on first access."""
        if self._args is None:
            self._args = initial_args(self.parameters)
        return self._args

    def update_args(self, update: Mapping[str, Any]) -> Args:
        self._args = apply_args_update(self.args, update)
        return self._args

    def get_decorated(self) -> DecoratedStory:
        """The composed decorator chain around the story function, built once."""
        if self._decorated is None:
            self._decorated = self.apply_decorators(list(self.decorators), self.original_fn)
        return self._decorated

    def context(self, runtime: Optional[Mapping[str, Any]] = None) -> StoryContext:
        base = merge_context(StoryContext(id=self.id, kind=self.kind, name=self.name), runtime)
        return StoryContext(**{**base, "parameters": self.parameters, "args": self.args})

    def story_fn(self, runtime: Optional[Mapping[str, Any]] = None) -> Any:
        """Invoke the decorated story with its full context, args included."""
        return self.get_decorated()(self.context(runtime))

    def to_view(self) -> StoryView:
        return StoryView(id=self.id, kind=self.kind, name=self.name, parameters=self.parameters)


SelectionInput = Union[Selection, Mapping[str, Any]]


class StoryStore:
    """
    Process-local story registry with args and selection state.

    Provides:
    1. Registration with three-scope metadata inheritance
    2. Lazily composed decorator chains
    3. Args state kept in sync with a remote peer over the channel
    4. Catalogue ordering through ``options.storySort``
    5. Selection announcements (channel now, local listeners next turn)
    """

    def __init__(
        self,
        channel: Optional[Channel] = None,
        scheduler: Optional[Scheduler] = None,
        settings: Optional[Settings] = None,
    ):
        self._settings = settings or get_settings()
        self._scheduler = scheduler or create_scheduler(self._settings.scheduler)

        self._stories: dict[str, StoryRecord] = {}
        self._global = GlobalMetadata()
        self._kinds: dict[str, KindMetadata] = {}
        self._arg_types_enhancers: list[ArgTypesEnhancer] = []

        self._revision: int = 0
        self._configuring: bool = False

        self._dispatcher = Dispatcher(
            self._scheduler,
            on_args_update=self.set_story_args,
            channel=channel,
        )

        logger.debug(f"🏗️ StoryStore initialized (scheduler={type(self._scheduler).__name__})")

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def dispatcher(self) -> Dispatcher:
        return self._dispatcher

    @property
    def revision(self) -> int:
        """Bumped on every add / remove, so hosts can detect catalogue changes."""
        return self._revision

    def increment_revision(self) -> int:
        self._revision += 1
        return self._revision

    def __len__(self) -> int:
        return len(self._stories)

    def __contains__(self, story_id: object) -> bool:
        return story_id in self._stories

    # =========================================================================
    # Channel & listeners
    # =========================================================================

    def set_channel(self, channel: Channel) -> None:
        """Attach the channel; the current selection is re-announced on it."""
        self._dispatcher.attach(channel)

    @property
    def channel(self) -> Optional[Channel]:
        return self._dispatcher.channel

    def on(self, event: EventKey, handler: MessageHandler) -> None:
        """Register a local (in-process) listener."""
        self._dispatcher.on(event, handler)

    def off(self, event: EventKey, handler: MessageHandler) -> None:
        self._dispatcher.off(event, handler)

    def flush_notifications(self) -> int:
        """Run deferred notifications queued outside an event loop."""
        return self._scheduler.flush()

    # =========================================================================
    # Metadata
    # =========================================================================

    def add_global_metadata(
        self,
        parameters: Optional[Mapping[str, Any]] = None,
        decorators: Optional[Iterable[Decorator]] = None,
    ) -> None:
        """Extend the global scope: parameter keys override, decorators append."""
        self._global.extend(parameters, decorators)
        logger.debug(f"🌐 Global metadata updated ({len(self._global.decorators)} decorators)")

    def add_kind_metadata(
        self,
        kind: str,
        parameters: Optional[Mapping[str, Any]] = None,
        decorators: Optional[Iterable[Decorator]] = None,
    ) -> None:
        """Extend the scope of one kind; same rules as the global scope."""
        meta = self._kinds.setdefault(kind, KindMetadata(kind=kind))
        meta.extend(parameters, decorators)
        logger.debug(f"🗂️ Kind metadata updated: {kind}")

    def add_arg_types_enhancer(self, enhancer: ArgTypesEnhancer) -> None:
        """Register a function that rewrites argTypes for stories added afterwards."""
        self._arg_types_enhancers.append(enhancer)

    def _enhance_arg_types(self, context: StoryContext) -> Parameters:
        parameters = context["parameters"]
        for enhancer in self._arg_types_enhancers:
            arg_types = dict(enhancer(context))
            parameters = {**parameters, ARG_TYPES_KEY: arg_types}
            context = StoryContext(**{**context, "parameters": parameters})
        return parameters

    # =========================================================================
    # Registration
    # =========================================================================

    def add_story(
        self,
        story: StoryInput,
        apply_decorators: ApplyDecorators = compose_decorators,
    ) -> StoryRecord:
        """Register a story, merging global, kind and story metadata."""
        if story.id in self._stories and self._settings.warn_on_duplicate_story:
            logger.warning(f"⚠️ Story {story.id} registered twice; replacing previous record")

        parameters, decorators = resolve_metadata(
            self._global,
            self._kinds.get(story.kind),
            story.parameters,
            story.decorators,
        )
        if self._arg_types_enhancers:
            parameters = self._enhance_arg_types(
                StoryContext(id=story.id, kind=story.kind, name=story.name, parameters=parameters)
            )

        record = StoryRecord(
            id=story.id,
            kind=story.kind,
            name=story.name,
            parameters=parameters,
            decorators=decorators,
            original_fn=story.story_fn,
            apply_decorators=apply_decorators,
        )
        self._stories[story.id] = record
        self.increment_revision()

        logger.debug(f"📚 Registered story: {story.kind} / {story.name} → {story.id}")
        return record

    def remove(self, story_id: str) -> None:
        """Remove one story. Unknown ids are ignored."""
        if self._stories.pop(story_id, None) is None:
            return
        self.increment_revision()
        logger.debug(f"🗑️ Removed story {story_id}")

    def remove_story_kind(self, kind: str) -> None:
        """Remove every story of ``kind`` or of a kind nested under it.

        ``"a"`` removes ``a`` and ``a/b`` but not ``ab``. The kinds' own
        metadata is dropped too, so re-registering starts clean.
        """
        prefix = split_kind(kind)

        def matches(candidate: str) -> bool:
            return split_kind(candidate)[: len(prefix)] == prefix

        doomed = [sid for sid, record in self._stories.items() if matches(record.kind)]
        for story_id in doomed:
            del self._stories[story_id]
        for registered_kind in [k for k in self._kinds if matches(k)]:
            del self._kinds[registered_kind]

        if doomed:
            self.increment_revision()
            logger.debug(f"🗑️ Removed kind {kind} ({len(doomed)} stories)")

    # =========================================================================
    # Lookup
    # =========================================================================

    def from_id(self, story_id: str) -> Optional[StoryRecord]:
        return self._stories.get(story_id)

    def has_story(self, story_id: str) -> bool:
        return story_id in self._stories

    def get_raw_story(self, kind: str, name: str) -> StoryRecord:
        """Look up a story by kind and name. Raises UnknownStoryError."""
        story_id = to_id(kind, name)
        record = self._stories.get(story_id)
        if record is None:
            raise UnknownStoryError(story_id)
        return record

    def raw(self) -> list[StoryRecord]:
        """Every record, in registration order."""
        return list(self._stories.values())

    def get_story_kinds(self) -> list[str]:
        """Distinct kinds, in order of first registration."""
        return list(dict.fromkeys(record.kind for record in self._stories.values()))

    def get_stories_for_kind(self, kind: str) -> list[StoryRecord]:
        return [record for record in self._stories.values() if record.kind == kind]

    # =========================================================================
    # Args
    # =========================================================================

    def set_story_args(self, story_id: str, update: Mapping[str, Any]) -> None:
        """Merge ``update`` into a story's args and announce the full result.

        Raises UnknownStoryError before anything changes if the id is unknown.
        """
        if not isinstance(update, Mapping):
            raise TypeError(f"args update must be a mapping, got {type(update).__name__}")
        record = self._stories.get(story_id)
        if record is None:
            raise UnknownStoryError(story_id)

        args = record.update_args(update)
        logger.debug(f"🎛️ Args updated for {story_id}: {sorted(update)}")
        self._dispatcher.announce_args(story_id, args)

    # =========================================================================
    # Selection
    # =========================================================================

    def set_selection(
        self, selection: Optional[SelectionInput], error: Optional[Any] = None
    ) -> None:
        """Set the current selection.

        ``None`` clears it, typically together with an ``error`` when the
        requested story does not exist. The channel (if attached) hears about
        it before this returns; local listeners on a later scheduler turn.
        """
        if selection is not None and not isinstance(selection, Selection):
            data = dict(selection)
            if "view_mode" not in data and "viewMode" not in data:
                data["view_mode"] = self._settings.default_view_mode
            selection = Selection.model_validate(data)
        self._dispatcher.announce_selection(selection, error)

    def get_selection(self) -> Optional[Selection]:
        return self._dispatcher.selection

    def get_error(self) -> Optional[Any]:
        return self._dispatcher.error

    # =========================================================================
    # Extraction
    # =========================================================================

    def extract(self, include_docs_only: bool = False) -> dict[str, StoryView]:
        """The ordered public catalogue.

        Stories whose parameters set ``docsOnly`` are left out unless
        ``include_docs_only`` is true.
        """
        ordered = order_entries(
            list(self._stories.items()),
            strict=self._settings.strict_sort_config,
        )
        return {
            story_id: record.to_view()
            for story_id, record in ordered
            if include_docs_only or not record.parameters.get(DOCS_ONLY_KEY)
        }

    def start_configuring(self) -> None:
        self._configuring = True
        logger.info("⏳ Story configuration started")

    def finish_configuring(self) -> None:
        """End a configuration pass and push the catalogue to the peer."""
        self._configuring = False
        stories = {
            story_id: view.model_copy(update={"parameters": strip_callables(view.parameters)})
            for story_id, view in self.extract(include_docs_only=True).items()
        }
        self._dispatcher.announce_stories(SetStoriesMessage(stories=stories))
        logger.info(f"✅ Story configuration finished ({len(stories)} stories)")

    @property
    def configuring(self) -> bool:
        return self._configuring

    def dispose(self) -> None:
        """Clear stories, metadata, selection, listeners and the channel."""
        self._stories.clear()
        self._kinds.clear()
        self._global = GlobalMetadata()
        self._arg_types_enhancers.clear()
        self._dispatcher.dispose()
        self._configuring = False
        logger.debug("🧹 StoryStore disposed")


def add_stories(
    store: StoryStore,
    stories: Sequence[StoryInput],
    apply_decorators: ApplyDecorators = compose_decorators,
) -> list[StoryRecord]:
    """Register several stories inside one configuration pass."""
    store.start_configuring()
    records = [store.add_story(story, apply_decorators) for story in stories]
    store.finish_configuring()
    return records
