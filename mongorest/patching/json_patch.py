"""RFC 6902 JSON-Patch application with schema-checked input.

Supported operations: add, remove, replace, move, copy and test. A patch is
applied to a deep copy of the document; the first failing operation aborts
the whole patch with a `ValidationError`.
"""

from __future__ import annotations

import copy
import json
import logging
from typing import Any, Dict, List, Union

from jsonschema import Draft202012Validator

from mongorest.core.exceptions import (
    PatchSchemaError,
    PatchSyntaxError,
    PathResolutionFailure,
    ValidationError,
    error_record,
)
from mongorest.patching.pointer import Location, contains, get, resolve, split_pointer
from mongorest.utils.serialization import to_json_document
from mongorest.validation.errors import to_error_records

logger = logging.getLogger(__name__)

POINTER_SCHEMA = {"type": "string", "pattern": "^(/([^~/]|~[01])*)*$"}

JSON_PATCH_SCHEMA: Dict[str, Any] = {
    "type": "array",
    "items": {
        "oneOf": [
            {
                "type": "object",
                "properties": {
                    "op": {"enum": ["add", "replace", "test"]},
                    "path": POINTER_SCHEMA,
                    "value": {},
                },
                "required": ["op", "path", "value"],
            },
            {
                "type": "object",
                "properties": {
                    "op": {"enum": ["remove"]},
                    "path": POINTER_SCHEMA,
                },
                "required": ["op", "path"],
            },
            {
                "type": "object",
                "properties": {
                    "op": {"enum": ["move", "copy"]},
                    "from": POINTER_SCHEMA,
                    "path": POINTER_SCHEMA,
                },
                "required": ["op", "from", "path"],
            },
        ]
    },
}

_patch_validator = Draft202012Validator(JSON_PATCH_SCHEMA)

PatchDocument = Union[bytes, bytearray, str, List[Dict[str, Any]]]


def load_patch(patch_doc: PatchDocument) -> List[Dict[str, Any]]:
    """Decode and grammar-check a patch document."""

    if isinstance(patch_doc, (bytes, bytearray, str)):
        try:
            operations = json.loads(patch_doc)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise PatchSyntaxError(str(exc)) from exc
    else:
        operations = patch_doc

    errors = sorted(_patch_validator.iter_errors(operations), key=lambda err: [str(part) for part in err.path])
    if errors:
        raise PatchSchemaError(to_error_records(errors))
    return operations


def deep_equal(left: Any, right: Any) -> bool:
    if isinstance(left, bool) or isinstance(right, bool):
        return type(left) is type(right) and left == right
    if isinstance(left, dict) and isinstance(right, dict):
        return left.keys() == right.keys() and all(deep_equal(left[k], right[k]) for k in left)
    if isinstance(left, list) and isinstance(right, list):
        return len(left) == len(right) and all(deep_equal(a, b) for a, b in zip(left, right))
    if isinstance(left, (dict, list)) or isinstance(right, (dict, list)):
        return False
    return left == right


def _locate(document: Any, path: str) -> Location:
    location = resolve(document, path)
    if location is None:
        raise PathResolutionFailure(path)
    return location


def _add(document: Any, path: str, value: Any) -> Any:
    if not split_pointer(path):
        return value
    container, key = _locate(document, path)
    if isinstance(container, list):
        if key > len(container):
            raise PathResolutionFailure(path, "index out of range")
        container.insert(key, value)
    else:
        container[key] = value
    return document


def _remove(document: Any, path: str) -> Any:
    if not split_pointer(path):
        raise PathResolutionFailure(path, "cannot remove the document root")
    location = _locate(document, path)
    if not contains(location):
        raise PathResolutionFailure(path)
    container, key = location
    if isinstance(container, list):
        container.pop(key)
    else:
        del container[key]
    return document


def _replace(document: Any, path: str, value: Any) -> Any:
    if not split_pointer(path):
        return value
    location = _locate(document, path)
    if not contains(location):
        raise PathResolutionFailure(path)
    container, key = location
    container[key] = value
    return document


def _move(document: Any, source: str, path: str) -> Any:
    if source == path:
        get(document, source)
        return document
    if path.startswith(source + "/"):
        raise PathResolutionFailure(path, "cannot move a value into one of its children")
    value = get(document, source)
    document = _remove(document, source)
    return _add(document, path, value)


def _copy(document: Any, source: str, path: str) -> Any:
    value = copy.deepcopy(get(document, source))
    return _add(document, path, value)


def _test(document: Any, path: str, value: Any) -> Any:
    # stored BSON values (ObjectId, datetime) compare by their JSON form
    if not deep_equal(to_json_document(get(document, path)), value):
        raise ValidationError(
            [
                error_record(
                    "The test operation failed; the value at the path did not match.",
                    instance_path=path,
                    keyword="test",
                    params={"value": value},
                )
            ]
        )
    return document


def _apply_operation(document: Any, operation: Dict[str, Any]) -> Any:
    op = operation["op"]
    path = operation["path"]
    if op == "add":
        return _add(document, path, copy.deepcopy(operation["value"]))
    if op == "remove":
        return _remove(document, path)
    if op == "replace":
        return _replace(document, path, copy.deepcopy(operation["value"]))
    if op == "move":
        return _move(document, operation["from"], path)
    if op == "copy":
        return _copy(document, operation["from"], path)
    if op == "test":
        return _test(document, path, operation["value"])
    raise PathResolutionFailure(path, f"unsupported operation {op!r}")


def apply_json_patch(original: Any, patch_doc: PatchDocument) -> Any:
    """Apply a JSON-Patch document and return the new document.

    Raises `PatchSyntaxError` for unparseable input, `PatchSchemaError` for
    operations that break the grammar and `ValidationError` when an operation
    cannot be applied.
    """

    operations = load_patch(patch_doc)
    document = copy.deepcopy(original)

    for index, operation in enumerate(operations):
        try:
            document = _apply_operation(document, operation)
        except PathResolutionFailure as exc:
            logger.debug("JSON Patch operation %d (%s) failed: %s", index, operation["op"], exc)
            raise ValidationError(
                [
                    error_record(
                        f"The {operation['op']} operation could not be applied: {exc.reason}.",
                        instance_path=operation["path"],
                        keyword=operation["op"],
                        schema_path=f"/{index}",
                        params={"from": operation["from"]} if "from" in operation else {},
                    )
                ]
            ) from exc

    return document
