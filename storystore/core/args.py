"""Argument state helpers.

Args are seeded once from ``parameters["argTypes"]`` and afterwards only
change through per-key updates. The store owns the mutable mapping; the
helpers here never mutate their inputs.
"""
from __future__ import annotations

import copy
from collections.abc import Mapping
from typing import Any, Optional

from storystore.contracts.story_types import (
    ARG_TYPES_KEY,
    DEFAULT_VALUE_KEY,
    Args,
    ArgTypeDict,
)


def materialize_args(arg_types: Optional[Mapping[str, ArgTypeDict]]) -> Args:
    """Initial args: every declared argument with a ``defaultValue`` gets it.

    Arguments declared without a default get no entry at all (not ``None``).
    """
    if not arg_types:
        return {}
    return {
        name: copy.deepcopy(arg_type[DEFAULT_VALUE_KEY])
        for name, arg_type in arg_types.items()
        if isinstance(arg_type, Mapping) and DEFAULT_VALUE_KEY in arg_type
    }


def initial_args(parameters: Mapping[str, Any]) -> Args:
    """Initial args for a story with the given merged parameters."""
    return materialize_args(parameters.get(ARG_TYPES_KEY))


def apply_args_update(current: Mapping[str, Any], update: Mapping[str, Any]) -> Args:
    """Shallow per-key merge: new keys added, given keys overwritten, others kept."""
    return {**current, **update}
