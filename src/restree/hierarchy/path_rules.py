"""Path classification rules for resource inference.

This module converts raw path templates (e.g. ``/users/{id}/posts``) into
*resource chains*: the ordered resource names a path addresses, with path
parameters and action words removed.

The classification pipeline:

1. **Strip prefix** -- an optional configured prefix (e.g. ``/api/v1``) is
   removed at segment boundaries.
2. **Drop parameters** -- ``{name}`` and ``:name`` tokens identify an
   instance or a custom verb, not a resource, and are removed wherever they
   sit in a segment (``{bookId}:publish``, ``books:batchGet``).  What is
   left of a segment after its parameter is a format suffix such as
   ``.json`` is dropped with it.
3. **Drop action words** -- segments such as ``search``, ``login`` or
   ``health`` (see :data:`ACTION_SEGMENTS`, compared case-insensitively) and
   any extra configured skip words are removed wherever they appear.

The remaining segments are the chain; ``".".join(chain)`` is the resource
key.  A path made only of parameters and action words yields an empty chain
and no resource.  There is no fallback that turns such a path into a
single-segment resource.

:func:`select_canonical_path` picks the displayed template of a resource
among all templates that map to the same key.
"""

from __future__ import annotations

import re
from typing import Iterable, Optional

_PARAM_TOKEN = re.compile(r"[{:][^}/:]+\}?")
_BRACE_PARAM = re.compile(r"\{([^}/]+)\}")

ACTION_SEGMENTS = frozenset(
    {
        "actions",
        "action",
        "status",
        "health",
        "metrics",
        "search",
        "login",
        "logout",
        "refresh",
        "validate",
        "verify",
    }
)


def extract_resource_chain(
    path: str,
    skip_segments: Optional[Iterable[str]] = None,
    strip_prefix: Optional[str] = None,
) -> list[str]:
    """Extract the resource chain addressed by a path template.

    Args:
        path: A path template such as ``"/users/{id}/posts/{postId}/comments"``.
        skip_segments: Extra words to remove on top of :data:`ACTION_SEGMENTS`.
        strip_prefix: Prefix removed from *path* before classification.

    Returns:
        The resource chain, possibly empty.

    Example::

        >>> extract_resource_chain("/users/{id}/posts/{postId}/comments")
        ['users', 'posts', 'comments']
        >>> extract_resource_chain("/books/{bookId}:publish")
        ['books']
        >>> extract_resource_chain("/auth/login", skip_segments=["auth"])
        []
    """
    skip = ACTION_SEGMENTS | {s.lower() for s in skip_segments or ()}
    if strip_prefix:
        path = _strip_prefix(path, strip_prefix)
    chain = []
    for segment in _split_segments(path):
        name = _resource_segment(segment)
        if name and name.lower() not in skip:
            chain.append(name)
    return chain


def resource_key(chain: list[str]) -> str:
    """Join a resource chain into its key: ``["books", "notes"]`` -> ``"books.notes"``."""
    return ".".join(chain)


def trailing_params(path: str, name: str) -> list[str]:
    """Return the parameters that directly follow the last *name* segment.

    These identify one instance of the resource called *name*:

    >>> trailing_params("/authors/{id}/books/{bookId}", "books")
    ['bookId']
    >>> trailing_params("/authors/{id}/books", "books")
    []
    """
    segments = _split_segments(path)
    positions = [
        i for i, segment in enumerate(segments) if _resource_segment(segment) == name
    ]
    if not positions:
        return []

    params: list[str] = []
    for segment in segments[positions[-1] + 1 :]:
        names = _segment_params(segment)
        if not names:
            break
        params.extend(names)
    return params


def canonical_sort_key(path: str) -> tuple[int, int, str]:
    """Ordering used to pick a canonical template: fewer segments, no parameters, lexicographic."""
    segments = _split_segments(path)
    has_params = any(_segment_params(s) for s in segments)
    return len(segments), int(has_params), path


def select_canonical_path(paths: Iterable[str]) -> str:
    """Pick the canonical template among the templates of one resource.

    Fewer URL segments wins; among equal segment counts a template with no
    parameters wins; remaining ties are broken lexicographically.

    Raises:
        ValueError: If *paths* is empty.

    Example::

        >>> select_canonical_path(["/books/{id}", "/books"])
        '/books'
    """
    return min(paths, key=canonical_sort_key)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _resource_segment(segment: str) -> Optional[str]:
    """Return what names a resource in *segment* once parameters are removed.

    ``"books"`` -> ``"books"``, ``"books:batchGet"`` -> ``"books"``,
    ``"{id}"``, ``":id"``, ``"{id}.json"`` and ``"{id}:publish"`` -> ``None``.
    """
    remnant = _PARAM_TOKEN.sub("", segment)
    if remnant == segment:
        return segment
    if remnant.startswith("."):
        return None
    return remnant.strip("-_.") or None


def _segment_params(segment: str) -> list[str]:
    """Return the parameter names in *segment*.

    A ``:name`` token counts as a parameter only when it fills the segment;
    elsewhere it is a custom verb (``{bookId}:publish``).
    """
    if segment.startswith(":"):
        return [segment[1:]]
    return _BRACE_PARAM.findall(segment)


def _split_segments(path: str) -> list[str]:
    """Split a path into non-empty segments.

    ``"/api/v1/users"`` -> ``["api", "v1", "users"]``
    ``"/"``             -> ``[]``
    """
    return [s for s in path.split("/") if s]


def _strip_prefix(path: str, prefix: str) -> str:
    """Strip *prefix* from *path*. Returns path with leading ``/``.

    If *path* does not start with *prefix*, it is returned unchanged.
    """
    prefix_segments = _split_segments(prefix)
    path_segments = _split_segments(path)

    if not prefix_segments or path_segments[: len(prefix_segments)] != prefix_segments:
        return path

    return "/" + "/".join(path_segments[len(prefix_segments) :])
