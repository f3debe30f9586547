"""Typed coercion of raw query-string tokens."""

from __future__ import annotations

import math
import re
from datetime import datetime
from typing import Any, Optional


class _Undefined:
    """Marker for the `undefined` literal: the field should be removed."""

    _instance: Optional["_Undefined"] = None

    def __new__(cls) -> "_Undefined":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNDEFINED"

    def __bool__(self) -> bool:
        return False


UNDEFINED = _Undefined()

LITERALS = {
    "undefined": UNDEFINED,
    "null": None,
    "true": True,
    "false": False,
}

NUMBER_PATTERN = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?$")
INTEGER_PATTERN = re.compile(r"^[+-]?\d+$")


def parse_number(raw: str) -> Optional[float | int]:
    if not NUMBER_PATTERN.match(raw):
        return None
    if INTEGER_PATTERN.match(raw):
        return int(raw)
    value = float(raw)
    if not math.isfinite(value):
        return None
    return value


def parse_datetime(raw: str) -> Optional[datetime]:
    candidate = raw[:-1] + "+00:00" if raw[-1:] in ("Z", "z") else raw
    try:
        return datetime.fromisoformat(candidate)
    except ValueError:
        return None


def coerce(raw: str) -> Any:
    """Convert a raw token to null/bool/number/datetime/str.

    Quoted strings are checked before numbers so `"42"` stays a string.
    """

    if raw in LITERALS:
        return LITERALS[raw]

    if len(raw) >= 2 and raw[0] == '"' and raw[-1] == '"':
        return raw[1:-1]

    number = parse_number(raw)
    if number is not None:
        return number

    moment = parse_datetime(raw)
    if moment is not None:
        return moment

    return raw
