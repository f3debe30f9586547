"""Schema validation for collection payloads."""

from mongorest.validation.schema_gate import SchemaGate, with_identity, with_managed_dates

__all__ = ["SchemaGate", "with_identity", "with_managed_dates"]
