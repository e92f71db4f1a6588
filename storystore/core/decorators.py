"""
Decorator composition.

``compose_decorators([d0, d1], story_fn)`` returns ``g`` where calling
``g(context)`` runs ``d0`` first; ``d0``'s inner call runs ``d1``; ``d1``'s
inner call runs ``story_fn``. With an empty list ``g`` is ``story_fn``
itself.

Each decorator receives ``(story, context)``. It may call ``story()`` any
number of times, or ``story(update)`` to hand the next layer a modified
context. ``update`` is merged over the current context; its
``parameters`` are merged key by key rather than replacing the mapping.
"""
from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Optional

from storystore.contracts.story_types import (
    DecoratedStory,
    Decorator,
    InnerStory,
    StoryContext,
    StoryFn,
)


def merge_context(
    context: StoryContext, update: Optional[Mapping[str, Any]] = None
) -> StoryContext:
    """Overlay ``update`` on ``context`` without mutating either."""
    if not update:
        return context
    merged: dict[str, Any] = {**context, **update}
    if "parameters" in update:
        merged["parameters"] = {
            **context.get("parameters", {}),
            **(update.get("parameters") or {}),
        }
    return StoryContext(**merged)


def _decorate(inner: InnerStory, decorator: Decorator) -> DecoratedStory:
    def decorated(context: Optional[StoryContext] = None) -> Any:
        current: StoryContext = context if context is not None else StoryContext()

        def story(update: Optional[Mapping[str, Any]] = None) -> Any:
            return inner(merge_context(current, update))

        return decorator(story, current)

    return decorated


def compose_decorators(
    decorators: Sequence[Decorator], story_fn: StoryFn
) -> DecoratedStory:
    """Wrap ``story_fn`` so that ``decorators[0]`` is the outermost layer."""
    decorated: DecoratedStory = story_fn
    for decorator in reversed(decorators):
        decorated = _decorate(decorated, decorator)
    return decorated
