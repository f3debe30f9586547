"""Reconciles an update request against a stored document.

A PATCH request is either a JSON-Patch body or, when the body is empty or
`{}`, a set of `path=value` query parameters. Both encodings produce a
candidate document that must keep the identity of the original.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Mapping, Optional, Union

from mongorest.core.exceptions import ValidationError, error_record
from mongorest.patching.json_patch import apply_json_patch
from mongorest.patching.pointer import join_pointer
from mongorest.patching.query_patch import apply_query_patch

logger = logging.getLogger(__name__)

READ_ONLY_MESSAGE = "The {field} field is read only."

PatchBody = Union[bytes, bytearray, str, list, Dict[str, Any], None]


def is_empty_body(body: PatchBody) -> bool:
    if body is None:
        return True
    if isinstance(body, (bytes, bytearray, str)):
        text = body.strip()
        if not text:
            return True
        try:
            return json.loads(text) == {}
        except ValueError:
            # left for the JSON-Patch branch to report
            return False
    if isinstance(body, dict):
        return not body
    return False


def identity_changed(original: Mapping[str, Any], candidate: Any, identity_field: str = "_id") -> bool:
    if not isinstance(candidate, dict) or identity_field not in candidate:
        return True
    return str(candidate[identity_field]) != str(original.get(identity_field))


def reconcile(
    original: Dict[str, Any],
    body: PatchBody = None,
    query: Optional[Mapping[str, Optional[str]]] = None,
    *,
    identity_field: str = "_id",
) -> Dict[str, Any]:
    """Produce the patched document for `original`.

    Raises `ValidationError` when the patch alters the identity field, along
    with whatever the selected patch encoding raises.
    """

    if is_empty_body(body):
        logger.debug("Reconciling %s with %d query parameter(s)", original.get(identity_field), len(query or {}))
        candidate = apply_query_patch(original, query or {})
    else:
        logger.debug("Reconciling %s with a JSON Patch body", original.get(identity_field))
        candidate = apply_json_patch(original, body)

    if identity_changed(original, candidate, identity_field):
        logger.warning("Rejected patch that modifies %s of %s", identity_field, original.get(identity_field))
        raise ValidationError(
            [
                error_record(
                    READ_ONLY_MESSAGE.format(field=identity_field),
                    instance_path=join_pointer([identity_field]),
                )
            ]
        )
    return candidate
