"""Response data model definitions."""

from __future__ import annotations

from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field


class InsertedResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    inserted_id: str = Field(..., alias="insertedId")


class BulkInsertedResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    inserted_ids: List[str] = Field(..., alias="insertedIds")


class ModifiedResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    modified_count: int = Field(..., alias="modifiedCount")


class DeletedResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    deleted_count: int = Field(..., alias="deletedCount")


class ErrorResponse(BaseModel):
    error: str
    code: str
    validation_errors: List[Dict[str, Any]] = Field(default_factory=list, alias="validationErrors")
