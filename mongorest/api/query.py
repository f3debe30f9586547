"""Translate listing query strings into MongoDB criteria and find options."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from bson import ObjectId

from mongorest.core.exceptions import ValidationError, error_record
from mongorest.patching.literals import UNDEFINED, coerce
from mongorest.utils.validators import is_object_id

RESERVED_KEYS = {"fields", "sort", "offset", "limit"}


@dataclass
class SearchQuery:
    criteria: Dict[str, Any] = field(default_factory=dict)
    projection: Optional[Dict[str, int]] = None
    sort: Optional[List[tuple]] = None
    skip: int = 0
    limit: int = 0


def _coerce_value(key: str, raw: str) -> Any:
    if key == "_id" and is_object_id(raw):
        return ObjectId(raw)
    value = coerce(raw)
    return None if value is UNDEFINED else value


def _criterion(key: str, raw: str) -> Any:
    negate = raw.startswith("!")
    if negate:
        raw = raw[1:]
    if "," in raw:
        values = [_coerce_value(key, part) for part in raw.split(",")]
        return {"$nin": values} if negate else {"$in": values}
    value = _coerce_value(key, raw)
    return {"$ne": value} if negate else value


def _parse_fields(raw: str) -> Dict[str, int]:
    projection: Dict[str, int] = {}
    for name in filter(None, (part.strip() for part in raw.split(","))):
        if name.startswith("-"):
            projection[name[1:]] = 0
        else:
            projection[name.lstrip("+")] = 1
    return projection


def _parse_sort(raw: str) -> List[tuple]:
    sort: List[tuple] = []
    for name in filter(None, (part.strip() for part in raw.split(","))):
        if name.startswith("-"):
            sort.append((name[1:], -1))
        else:
            sort.append((name.lstrip("+"), 1))
    return sort


def _parse_non_negative(key: str, raw: str) -> int:
    if not raw.isdigit():
        raise ValidationError(
            [error_record(f"{key} must be a non-negative integer", instance_path=f"/{key}", keyword="type")]
        )
    return int(raw)


def parse_query(params: Mapping[str, str], *, default_limit: int = 0, max_limit: int = 0) -> SearchQuery:
    """Build criteria and options from listing query parameters.

    `fields`, `sort`, `offset` and `limit` shape the result set; every other
    key filters on equality using the same literal coercion as query patches.
    """

    query = SearchQuery(limit=default_limit)
    for key, raw in params.items():
        if key == "fields":
            query.projection = _parse_fields(raw) or None
        elif key == "sort":
            query.sort = _parse_sort(raw) or None
        elif key == "offset":
            query.skip = _parse_non_negative(key, raw)
        elif key == "limit":
            query.limit = _parse_non_negative(key, raw)
        elif key:
            query.criteria[key] = _criterion(key, raw)

    if max_limit and (query.limit == 0 or query.limit > max_limit):
        query.limit = max_limit
    return query
