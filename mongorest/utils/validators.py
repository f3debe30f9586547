"""Input validation helpers."""

from __future__ import annotations

import re

OBJECT_ID_PATTERN = re.compile(r"^[0-9a-fA-F]{24}$")


def is_object_id(value: str) -> bool:
    return bool(OBJECT_ID_PATTERN.match(value))
