"""Collection router configuration models."""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

HttpMethod = Literal["GET", "POST", "PUT", "PATCH", "DELETE"]


class DateFields(BaseModel):
    """Names of the lifecycle timestamp fields managed by the router."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    added: str = "added"
    last_modified: str = Field("lastModified", alias="lastModified")
    deleted: str = "deleted"

    def names(self) -> Tuple[str, str, str]:
        return (self.added, self.last_modified, self.deleted)


class CollectionOptions(BaseModel):
    """Behavior switches for a collection router."""

    methods: Optional[List[HttpMethod]] = Field(None, description="Methods to expose; all when unset")
    sort: Optional[Dict[str, int]] = Field(None, description="Default sort unless the query overrides it")
    no_get_search: bool = False
    no_post_bulk: bool = False
    results_field: Optional[str] = Field(None, description="Search results field; the collection name when unset")
    no_archive: bool = False
    no_managed_dates: bool = False
    date_fields: DateFields = Field(default_factory=DateFields)
    identity_field: str = "_id"

    def allows(self, method: HttpMethod) -> bool:
        return self.methods is None or method in self.methods

    @property
    def archive_enabled(self) -> bool:
        return not (self.no_archive or self.no_managed_dates)

    def live_criteria(self, criteria: Dict[str, Any]) -> Dict[str, Any]:
        if self.no_managed_dates:
            return criteria
        return {**criteria, self.date_fields.deleted: {"$exists": False}}

    def archived_criteria(self, criteria: Dict[str, Any]) -> Dict[str, Any]:
        return {**criteria, self.date_fields.deleted: {"$exists": True}}
