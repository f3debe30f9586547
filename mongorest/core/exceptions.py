"""Custom exception hierarchy for mongorest."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import status

ErrorRecord = Dict[str, Any]


def error_record(
    message: str,
    *,
    instance_path: str = "",
    keyword: str = "",
    schema_path: str = "",
    params: Optional[Dict[str, Any]] = None,
) -> ErrorRecord:
    """Build one entry of a validation error set."""

    return {
        "keyword": keyword,
        "instancePath": instance_path,
        "schemaPath": schema_path,
        "params": params or {},
        "message": message,
    }


class ApplicationError(Exception):
    """Base application error with HTTP semantics."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "application_error"

    def __init__(self, message: str, *, status_code: int | None = None, code: str | None = None) -> None:
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code
        if code is not None:
            self.code = code
        self.message = message

    def to_payload(self) -> Dict[str, Any]:
        return {"error": self.message, "code": self.code}


class NotFoundError(ApplicationError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"

    def __init__(self, message: str = "An entry with that id could not be found.", **kwargs: Any) -> None:
        super().__init__(message, **kwargs)


class StoreUnavailableError(ApplicationError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "store_unavailable"


class PayloadSyntaxError(ApplicationError):
    """Raised when a request body cannot be decoded as JSON."""

    code = "invalid_json"

    def __init__(self, detail: str) -> None:
        super().__init__("Invalid JSON payload")
        self.detail = detail

    def to_payload(self) -> Dict[str, Any]:
        return {"error": self.message, "code": self.code, "jsonParseError": self.detail}


class PatchSyntaxError(PayloadSyntaxError):
    """Raised when a JSON-Patch body is not parseable JSON."""


class ValidationError(ApplicationError):
    """A payload failed structural or semantic validation."""

    code = "validation_error"

    def __init__(self, errors: List[ErrorRecord], message: str = "Invalid payload") -> None:
        super().__init__(message)
        self.errors = list(errors)

    def __str__(self) -> str:
        details = "; ".join(
            f"{err.get('instancePath') or '/'}: {err.get('message')}" for err in self.errors
        )
        return f"{self.message} :: {details}" if details else self.message

    def to_payload(self) -> Dict[str, Any]:
        return {"error": self.message, "code": self.code, "validationErrors": self.errors}


class PatchSchemaError(ValidationError):
    """A JSON-Patch document does not follow the operation grammar."""

    code = "invalid_patch"


class PathResolutionFailure(LookupError):
    """A pointer does not lead to a usable location inside a document."""

    def __init__(self, path: str, reason: str = "path does not exist") -> None:
        super().__init__(f"{reason}: {path!r}")
        self.path = path
        self.reason = reason
