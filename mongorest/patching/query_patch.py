"""Partial updates expressed as `path=value` query parameters."""

from __future__ import annotations

import copy
import logging
from typing import Any, Dict, List, Mapping, Optional

from mongorest.patching.literals import UNDEFINED, coerce
from mongorest.patching.pointer import resolve, split_pointer

logger = logging.getLogger(__name__)


def query_key_segments(key: str) -> List[str]:
    """`a/b` and `a.b` both address field `b` inside `a`."""

    if "/" in key:
        return [str(seg) for seg in split_pointer(key)]
    return [seg for seg in key.split(".") if seg]


def apply_query_patch(original: Dict[str, Any], params: Mapping[str, Optional[str]]) -> Dict[str, Any]:
    """Return a patched copy of `original`.

    Keys that do not resolve to a location in the document are ignored.
    """

    patched = copy.deepcopy(original)

    for key, raw in params.items():
        segments = query_key_segments(key)
        location = resolve(patched, segments) if segments else None
        if location is None or raw is None:
            logger.debug("Skipping query patch key %r: no such location", key)
            continue

        value = coerce(str(raw))
        container, target = location

        if isinstance(container, list):
            if value is UNDEFINED:
                logger.debug("Ignoring undefined for list element %r", key)
            elif target < len(container):
                container[target] = value
            elif target == len(container):
                container.append(value)
            else:
                logger.debug("Skipping query patch key %r: index out of range", key)
            continue

        if value is UNDEFINED:
            container.pop(target, None)
        else:
            container[target] = value

    return patched
