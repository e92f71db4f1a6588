"""Story identifiers.

An id is ``<kind>--<name>`` with both parts sanitized, so ``("a/b", "Story 1")``
becomes ``"a-b--story-1"``. The same inputs always produce the same id.
"""
from __future__ import annotations

import re

from storystore.errors import InvalidStoryIdError

ID_SEPARATOR = "--"

# Space and punctuation that collapse into a single dash.
_SEPARATOR_CHARS = re.compile(r"""[ ’–—―′¿'`~!@#$%^&*()_|+\-=?;:'",.<>{}\[\]\\/]""")
_DASH_RUNS = re.compile(r"-+")


def sanitize(text: str) -> str:
    """Lower-case ``text`` and reduce punctuation runs to single dashes."""
    slug = _SEPARATOR_CHARS.sub("-", text.lower())
    slug = _DASH_RUNS.sub("-", slug)
    return slug.strip("-")


def _sanitize_part(text: str, part: str) -> str:
    slug = sanitize(text)
    if not slug:
        raise InvalidStoryIdError(part, text)
    return slug


def to_id(kind: str, name: str) -> str:
    """Derive the unique story id for a ``(kind, name)`` pair.

    Raises InvalidStoryIdError when either part has nothing left after
    sanitizing (for example ``"!!!"``).
    """
    return f"{_sanitize_part(kind, 'kind')}{ID_SEPARATOR}{_sanitize_part(name, 'name')}"
