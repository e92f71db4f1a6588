"""
Metadata merge engine.

Three scopes contribute to every story:

    global  →  kind  →  story

Parameters merge shallowly, the most specific scope winning on a key
conflict. Decorators concatenate in scope order, so global decorators end
up outermost once composed.

Both merges return fresh containers; merging the same inputs twice gives
equal results and never accumulates duplicates.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Optional

from storystore.contracts.story_types import Decorator, Parameters


def combine_parameters(*scopes: Optional[Mapping[str, Any]]) -> Parameters:
    """Shallow right-biased merge; later scopes override earlier ones key by key."""
    merged: Parameters = {}
    for scope in scopes:
        if scope:
            merged.update(scope)
    return merged


def merge_decorators(*scopes: Optional[Sequence[Decorator]]) -> list[Decorator]:
    """Concatenate decorator lists, preserving scope order."""
    merged: list[Decorator] = []
    for scope in scopes:
        if scope:
            merged.extend(scope)
    return merged


@dataclass
class ScopeMetadata:
    """Parameters and decorators contributed by one scope."""

    parameters: Parameters = field(default_factory=dict)
    decorators: list[Decorator] = field(default_factory=list)

    def extend(
        self,
        parameters: Optional[Mapping[str, Any]] = None,
        decorators: Optional[Iterable[Decorator]] = None,
    ) -> None:
        """Fold another call's metadata into this scope.

        Parameter keys from the newer call win; decorators are appended.
        """
        self.parameters = combine_parameters(self.parameters, parameters)
        if decorators:
            self.decorators.extend(decorators)


@dataclass
class GlobalMetadata(ScopeMetadata):
    """Metadata applied to every story in the store."""


@dataclass
class KindMetadata(ScopeMetadata):
    """Metadata applied to every story of one kind."""

    kind: str = ""


def resolve_metadata(
    global_meta: ScopeMetadata,
    kind_meta: Optional[ScopeMetadata],
    story_parameters: Optional[Mapping[str, Any]],
    story_decorators: Optional[Sequence[Decorator]] = None,
) -> tuple[Parameters, tuple[Decorator, ...]]:
    """Return the effective ``(parameters, decorators)`` for one story."""
    parameters = combine_parameters(
        global_meta.parameters,
        kind_meta.parameters if kind_meta else None,
        story_parameters,
    )
    decorators = merge_decorators(
        global_meta.decorators,
        kind_meta.decorators if kind_meta else None,
        story_decorators,
    )
    return parameters, tuple(decorators)
