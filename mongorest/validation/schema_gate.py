"""Schema validation for collection payloads.

The user supplied JSON Schema describes the business fields of a document.
`SchemaGate` derives the variants needed by the collection endpoints:

* inserts are validated against the schema as given, after the identity and
  managed date fields are stripped from the payload;
* replacements and patches are validated against an augmented schema in
  which the identity is an optional string and the managed date fields are
  optional `date-time` strings.
"""

from __future__ import annotations

import copy
import logging
from datetime import datetime
from typing import Any, Dict, List

from jsonschema import Draft202012Validator, FormatChecker

from mongorest.core.exceptions import ValidationError
from mongorest.models.options import DateFields
from mongorest.utils.serialization import to_json_document
from mongorest.validation.errors import to_error_records

logger = logging.getLogger(__name__)

IDENTITY_FIELD = "_id"

format_checker = FormatChecker()


@format_checker.checks("date-time", raises=ValueError)
def _is_date_time(value: object) -> bool:
    if not isinstance(value, str):
        return True
    if len(value) < 11 or value[10] not in "Tt ":
        return False
    candidate = value[:-1] + "+00:00" if value[-1] in "Zz" else value
    datetime.fromisoformat(candidate)
    return True


def with_identity(schema: Dict[str, Any], identity_field: str = IDENTITY_FIELD) -> Dict[str, Any]:
    """Make the identity field typed but not required."""

    new_schema = dict(schema)
    new_schema["properties"] = {**schema.get("properties", {}), identity_field: {"type": "string"}}
    if "required" in schema:
        new_schema["required"] = [name for name in schema["required"] if name != identity_field]
    return new_schema


def with_managed_dates(schema: Dict[str, Any], date_fields: DateFields | None = None) -> Dict[str, Any]:
    """Allow the managed date fields as optional date-time strings."""

    date_fields = date_fields or DateFields()
    new_schema = dict(schema)
    properties = dict(schema.get("properties", {}))
    for name in date_fields.names():
        properties[name] = {"type": ["string", "null"], "format": "date-time"}
    new_schema["properties"] = properties
    return new_schema


class SchemaGate:
    """Validates payloads for one collection."""

    def __init__(
        self,
        schema: Dict[str, Any],
        date_fields: DateFields | None = None,
        *,
        identity_field: str = IDENTITY_FIELD,
    ) -> None:
        Draft202012Validator.check_schema(schema)
        self.schema = schema
        self.date_fields = date_fields or DateFields()
        self.identity_field = identity_field
        self.managed_schema = with_managed_dates(with_identity(schema, identity_field), self.date_fields)
        self._insert_validator = Draft202012Validator(schema, format_checker=format_checker)
        self._update_validator = Draft202012Validator(self.managed_schema, format_checker=format_checker)

    def _strip_managed(self, payload: Any) -> Any:
        if not isinstance(payload, dict):
            return payload
        stripped = copy.deepcopy(payload)
        for name in (self.identity_field, *self.date_fields.names()):
            stripped.pop(name, None)
        return stripped

    def _check(self, validator: Draft202012Validator, payload: Any) -> None:
        violations = sorted(
            validator.iter_errors(to_json_document(payload)),
            key=lambda violation: [str(part) for part in violation.absolute_path],
        )
        if violations:
            logger.debug("Payload failed validation with %d error(s)", len(violations))
            raise ValidationError(to_error_records(violations))

    def validate(self, payload: Any, allow_managed_dates: bool = False) -> Any:
        """Validate one payload and return what should be stored.

        Raises `ValidationError` carrying every schema violation found.
        """

        if allow_managed_dates:
            self._check(self._update_validator, payload)
            return payload

        stripped = self._strip_managed(payload)
        self._check(self._insert_validator, stripped)
        return stripped

    def validate_many(self, payload: Any) -> List[Any]:
        """Validate a single object or a list; the first failure aborts."""

        items = payload if isinstance(payload, list) else [payload]
        return [self.validate(item) for item in items]
