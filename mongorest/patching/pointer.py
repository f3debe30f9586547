"""Pointer resolution over plain dict/list document trees.

Paths are "/"-delimited with `~1` standing for "/" and `~0` for "~", or a
pre-split sequence of segments. `resolve` returns the container that holds
the last segment so callers can read from it or write into it.
"""

from __future__ import annotations

import re
from typing import Any, List, NamedTuple, Optional, Sequence, Union

from mongorest.core.exceptions import PathResolutionFailure

PathLike = Union[str, Sequence[Union[str, int]]]

ARRAY_INDEX_PATTERN = re.compile(r"^(?:0|[1-9][0-9]*)\Z")


class Location(NamedTuple):
    container: Any
    key: Union[str, int]


def escape_segment(segment: str) -> str:
    return segment.replace("~", "~0").replace("/", "~1")


def unescape_segment(segment: str) -> str:
    # order matters: "~01" must decode to "~1", not "/"
    return segment.replace("~1", "/").replace("~0", "~")


def split_pointer(path: PathLike) -> List[Union[str, int]]:
    """Split a pointer into unescaped segments, dropping empty ones."""

    if isinstance(path, str):
        return [unescape_segment(part) for part in path.split("/") if part]
    return [part for part in path if part != ""]


def join_pointer(segments: Sequence[Union[str, int]]) -> str:
    if not segments:
        return ""
    return "/" + "/".join(escape_segment(str(seg)) for seg in segments)


def _as_index(segment: Union[str, int]) -> Optional[int]:
    if isinstance(segment, bool):
        return None
    if isinstance(segment, int):
        return segment if segment >= 0 else None
    if ARRAY_INDEX_PATTERN.match(segment):
        return int(segment)
    return None


def _is_container(node: Any) -> bool:
    return isinstance(node, (dict, list))


def _descend(node: Any, segments: List[Union[str, int]]) -> Optional[Location]:
    if not _is_container(node) or not segments:
        return None

    head = segments[0]
    if len(segments) == 1:
        if isinstance(node, list):
            if head == "-":
                return Location(node, len(node))
            index = _as_index(head)
            return Location(node, index) if index is not None else None
        return Location(node, str(head))

    if isinstance(node, list):
        index = _as_index(head)
        if index is None or index >= len(node):
            return None
        return _descend(node[index], segments[1:])

    key = str(head)
    if key not in node:
        return None
    return _descend(node[key], segments[1:])


def resolve(root: Any, path: PathLike) -> Optional[Location]:
    """Return the (container, key) addressed by `path`, or None.

    Intermediate segments must exist. The final key is not required to exist;
    for lists it is returned as an int and bounds are left to the caller.
    """

    return _descend(root, split_pointer(path))


def contains(location: Location) -> bool:
    container, key = location
    if isinstance(container, list):
        return isinstance(key, int) and 0 <= key < len(container)
    return key in container


def get(root: Any, path: PathLike) -> Any:
    """Read the value at `path`; the whole document for an empty path."""

    if not split_pointer(path):
        return root
    location = resolve(root, path)
    if location is None or not contains(location):
        raise PathResolutionFailure(path if isinstance(path, str) else join_pointer(path))
    return location.container[location.key]
