"""Conversion of jsonschema errors into validation error set records."""

from __future__ import annotations

from typing import Iterable, List

from jsonschema.exceptions import ValidationError as SchemaViolation

from mongorest.core.exceptions import ErrorRecord, error_record
from mongorest.patching.pointer import join_pointer


def to_error_record(violation: SchemaViolation) -> ErrorRecord:
    return error_record(
        violation.message,
        instance_path=join_pointer(list(violation.absolute_path)),
        keyword=str(violation.validator),
        schema_path="#" + join_pointer(list(violation.absolute_schema_path)),
        params={str(violation.validator): violation.validator_value},
    )


def to_error_records(violations: Iterable[SchemaViolation]) -> List[ErrorRecord]:
    return [to_error_record(violation) for violation in violations]
