"""Named data shapes shared across the story store.

Parameters are arbitrary user data that also crosses the channel, so the
reserved parameter keys keep their camelCase wire spelling:

  argTypes              — name → ArgTypeDict, seeds a story's args
  options.storySort     — sort configuration (callable or StorySortDict)
  docsOnly              — story is omitted from ``extract()`` by default

## Entity catalog

  Parameters        — dict[str, Any], merged global → kind → story
  Args              — dict[str, Any], mutable per-story input values
  ArgTypeDict       — one declared argument ({defaultValue, ...})
  StorySortDict     — structured sort configuration ({method, order})
  StoryContext      — what a story function and its decorators receive
  StoryFn           — the base story callable
  Decorator         — wrapper receiving (story, context)
  StoryEntry        — (id, StoryRecord) pair fed to sort comparators
"""
from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from typing import TYPE_CHECKING, Any, Literal

from typing_extensions import TypedDict

if TYPE_CHECKING:
    from storystore.core.story_store import StoryRecord

Parameters = dict[str, Any]
Args = dict[str, Any]

ARG_TYPES_KEY = "argTypes"
DEFAULT_VALUE_KEY = "defaultValue"
OPTIONS_KEY = "options"
STORY_SORT_KEY = "storySort"
DOCS_ONLY_KEY = "docsOnly"


class ArgTypeDict(TypedDict, total=False):
    """A declared argument. Only ``defaultValue`` is read by the store."""

    name: str
    description: str
    defaultValue: Any


class StorySortDict(TypedDict, total=False):
    """Structured form of ``options.storySort``.

    ``order`` holds kind segment names; a list placed right after a name
    gives the order of that name's children.
    """

    method: Literal["alphabetical", "configure"]
    order: list[Any]


class StoryContext(TypedDict, total=False):
    """Context handed to decorators and the story function."""

    id: str
    kind: str
    name: str
    parameters: Parameters
    args: Args


# A decorator may call ``story()`` or ``story(update)``; ``update`` is merged
# over the current context before it reaches the next layer.
InnerStory = Callable[..., Any]
StoryFn = Callable[[StoryContext], Any]
Decorator = Callable[[InnerStory, StoryContext], Any]
DecoratedStory = Callable[..., Any]
ApplyDecorators = Callable[[Sequence[Decorator], StoryFn], DecoratedStory]
ArgTypesEnhancer = Callable[[StoryContext], Mapping[str, ArgTypeDict]]

StoryEntry = tuple[str, "StoryRecord"]
StoryComparator = Callable[[StoryEntry, StoryEntry], int]
