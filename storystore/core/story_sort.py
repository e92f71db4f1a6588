"""
Story sort engine.

The sort configuration lives at ``parameters["options"]["storySort"]`` and is
resolved once per extraction into one of three policies:

    CustomSort        — user comparator over (id, record) pairs, stable sort
    AlphabeticalSort  — kind tree, unlisted groups in natural order
    ConfigureSort     — kind tree, unlisted groups in insertion order

Kind tree rules (alphabetical and configure):
    1. A kind is split on ``/`` into segments; each segment is a group.
    2. A group's own stories come before its child groups.
    3. Children named in ``order`` come first, in ``order`` position.
       A list right after a name in ``order`` orders that name's children.
    4. Remaining children follow: natural order (``b9`` < ``b10``, case
       ignored) for alphabetical, first insertion for configure.
    5. Stories of the same kind keep insertion order.

Without any configuration the catalogue keeps insertion order.
"""

from __future__ import annotations

import functools
import logging
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from storystore.contracts.story_types import (
    OPTIONS_KEY,
    STORY_SORT_KEY,
    StoryComparator,
    StoryEntry,
)
from storystore.errors import InvalidSortConfigError

logger = logging.getLogger(__name__)

_KIND_SEPARATOR = re.compile(r"\s*/\s*")
_DIGIT_RUNS = re.compile(r"(\d+)")


# =============================================================================
# Segment comparison
# =============================================================================


def split_kind(kind: str) -> list[str]:
    """Split a kind path into its segments, ignoring spaces around ``/``."""
    return _KIND_SEPARATOR.split(kind.strip())


def natural_key(text: str) -> tuple[tuple[int, int, str], ...]:
    """Sort key comparing digit runs numerically and text case-insensitively.

    Digit runs sort before text at the same position, so ``"b9"`` < ``"b10"``
    and ``"1a"`` < ``"a"``.
    """
    key: list[tuple[int, int, str]] = []
    for index, chunk in enumerate(_DIGIT_RUNS.split(text.casefold())):
        if index % 2:
            key.append((0, int(chunk), chunk))
        elif chunk:
            key.append((1, 0, chunk))
    return tuple(key)


def locale_compare(a: str, b: str) -> int:
    """Three-way natural comparison of two strings (-1, 0 or 1)."""
    key_a, key_b = natural_key(a), natural_key(b)
    return (key_a > key_b) - (key_a < key_b)


# =============================================================================
# Configuration
# =============================================================================


def _check_order(order: Sequence[Any], path: str = "order") -> None:
    for position, item in enumerate(order):
        if isinstance(item, list):
            _check_order(item, f"{path}[{position}]")
        elif not isinstance(item, str):
            raise ValueError(
                f"{path}[{position}] must be a kind segment or a nested list, "
                f"got {type(item).__name__}"
            )


class StorySortOptions(BaseModel):
    """Validated structured form of ``options.storySort``."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    method: Literal["alphabetical", "configure"] = "configure"
    order: list[Any] = Field(default_factory=list)

    @field_validator("order")
    @classmethod
    def _order_holds_segments(cls, order: list[Any]) -> list[Any]:
        _check_order(order)
        return order


@dataclass(frozen=True)
class CustomSort:
    comparator: StoryComparator


@dataclass(frozen=True)
class AlphabeticalSort:
    order: list[Any] = field(default_factory=list)


@dataclass(frozen=True)
class ConfigureSort:
    order: list[Any] = field(default_factory=list)


StorySort = Union[CustomSort, AlphabeticalSort, ConfigureSort]


def parse_story_sort(value: Any) -> StorySort:
    """Resolve a raw ``storySort`` parameter into a sort policy.

    Raises InvalidSortConfigError for anything that is neither a callable nor
    a valid ``{method, order}`` mapping.
    """
    if callable(value):
        return CustomSort(comparator=value)
    if isinstance(value, Mapping):
        try:
            options = StorySortOptions.model_validate(dict(value))
        except ValidationError as exc:
            raise InvalidSortConfigError(f"Invalid storySort options: {exc}") from exc
        if options.method == "alphabetical":
            return AlphabeticalSort(order=options.order)
        return ConfigureSort(order=options.order)
    raise InvalidSortConfigError(
        f"storySort must be a comparator or a mapping, got {type(value).__name__}"
    )


def find_story_sort(entries: Sequence[StoryEntry]) -> Optional[Any]:
    """Raw ``storySort`` value of the first story whose parameters define one."""
    for _, record in entries:
        options = record.parameters.get(OPTIONS_KEY)
        if isinstance(options, Mapping) and options.get(STORY_SORT_KEY) is not None:
            return options[STORY_SORT_KEY]
    return None


# =============================================================================
# Kind tree
# =============================================================================


@dataclass
class _KindGroup:
    segment: str
    stories: list[StoryEntry] = field(default_factory=list)
    children: dict[str, _KindGroup] = field(default_factory=dict)


def _build_kind_tree(entries: Sequence[StoryEntry]) -> _KindGroup:
    root = _KindGroup(segment="")
    for entry in entries:
        group = root
        for segment in split_kind(entry[1].kind):
            group = group.children.setdefault(segment, _KindGroup(segment=segment))
        group.stories.append(entry)
    return root


def _child_order(order: Sequence[Any], segment: str) -> Sequence[Any]:
    if segment not in order:
        return ()
    position = order.index(segment)
    if position + 1 < len(order) and isinstance(order[position + 1], list):
        return order[position + 1]
    return ()


def _ordered_children(
    group: _KindGroup, order: Sequence[Any], alphabetical: bool
) -> list[_KindGroup]:
    children = list(group.children.values())
    listed = sorted(
        (child for child in children if child.segment in order),
        key=lambda child: order.index(child.segment),
    )
    unlisted = [child for child in children if child.segment not in order]
    if alphabetical:
        unlisted.sort(key=lambda child: natural_key(child.segment))
    return listed + unlisted


def _flatten(
    group: _KindGroup,
    order: Sequence[Any],
    alphabetical: bool,
    out: list[StoryEntry],
) -> None:
    out.extend(group.stories)
    for child in _ordered_children(group, order, alphabetical):
        _flatten(child, _child_order(order, child.segment), alphabetical, out)


# =============================================================================
# Public API
# =============================================================================


def sort_stories(
    entries: Sequence[StoryEntry], story_sort: Optional[StorySort]
) -> list[StoryEntry]:
    """Order ``entries`` with the given policy; ``None`` keeps insertion order."""
    if story_sort is None:
        return list(entries)
    if isinstance(story_sort, CustomSort):
        # sorted() is stable: pairs comparing equal keep insertion order.
        return sorted(entries, key=functools.cmp_to_key(story_sort.comparator))
    ordered: list[StoryEntry] = []
    _flatten(
        _build_kind_tree(entries),
        story_sort.order,
        isinstance(story_sort, AlphabeticalSort),
        ordered,
    )
    return ordered


def order_entries(entries: Sequence[StoryEntry], strict: bool = True) -> list[StoryEntry]:
    """Resolve the catalogue's sort configuration and apply it.

    With ``strict=False`` an invalid configuration is logged and the
    catalogue keeps insertion order instead of raising.
    """
    raw = find_story_sort(entries)
    if raw is None:
        return list(entries)
    try:
        story_sort = parse_story_sort(raw)
    except InvalidSortConfigError:
        if strict:
            raise
        logger.warning("Ignoring invalid storySort configuration", exc_info=True)
        return list(entries)
    logger.debug(f"Sorting {len(entries)} stories using {type(story_sort).__name__}")
    return sort_stories(entries, story_sort)
