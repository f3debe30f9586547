"""Expose a MongoDB collection as a REST resource.

`build_collection_router` returns an `APIRouter` with:

* GET `/` - search live entries; `{count, <collection>: [...]}`
* GET `/{id}` - one live entry
* GET `/archive` and `/archive/{id}` - the same over archived entries
* POST `/` - insert one entry or a list of entries
* PUT `/{id}` - replace an entry
* PATCH `/{id}` - JSON Patch body, or `path=value` query parameters
* DELETE `/{id}` - archive an entry (or remove it when archiving is off)
* DELETE `/archive/{id}` - permanently remove an archived entry

Example::

    BookSchema = {"type": "object", "properties": {"title": {"type": "string"}}}
    app.include_router(build_collection_router("books", BookSchema), prefix="/api/v1/books")
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional, Union

from bson import ObjectId
from fastapi import APIRouter, Depends, Path, Request, status
from fastapi.responses import JSONResponse
from motor.motor_asyncio import AsyncIOMotorCollection, AsyncIOMotorDatabase

from mongorest.api.query import parse_query
from mongorest.core.config import settings
from mongorest.core.database import DatabaseManager, database_manager
from mongorest.core.exceptions import NotFoundError, PayloadSyntaxError, ValidationError, error_record
from mongorest.models.options import CollectionOptions
from mongorest.models.response import (
    BulkInsertedResponse,
    DeletedResponse,
    ErrorResponse,
    InsertedResponse,
    ModifiedResponse,
)
from mongorest.patching.reconciler import reconcile
from mongorest.utils.serialization import to_json_document
from mongorest.utils.validators import OBJECT_ID_PATTERN
from mongorest.validation.schema_gate import SchemaGate

logger = logging.getLogger(__name__)

DatabaseSource = Union[DatabaseManager, Callable[[], AsyncIOMotorDatabase], None]

ERROR_RESPONSES: Dict[Union[int, str], Dict[str, Any]] = {
    status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
    status.HTTP_404_NOT_FOUND: {"model": ErrorResponse},
}


def _resolve_database(source: DatabaseSource) -> AsyncIOMotorDatabase:
    if source is None:
        return database_manager.database
    if isinstance(source, DatabaseManager):
        return source.database
    return source()


async def _read_json(request: Request) -> Any:
    body = await request.body()
    try:
        return json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise PayloadSyntaxError(str(exc)) from exc


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def build_collection_router(
    collection: str,
    schema: Dict[str, Any],
    options: Optional[CollectionOptions] = None,
    *,
    database: DatabaseSource = None,
    **router_kwargs: Any,
) -> APIRouter:
    """Build the REST router for one collection.

    `database` is a `DatabaseManager`, a callable returning a motor database,
    or None to use the shared manager.
    """

    options = options or CollectionOptions()
    date_fields = options.date_fields
    identity = options.identity_field
    gate = SchemaGate(schema, date_fields, identity_field=identity)
    results_field = options.results_field or collection
    router_kwargs.setdefault("tags", [collection])
    router = APIRouter(responses=ERROR_RESPONSES, **router_kwargs)

    def get_collection() -> AsyncIOMotorCollection:
        return _resolve_database(database)[collection]

    item_id_param = Path(..., pattern=OBJECT_ID_PATTERN.pattern, description="24 hex digit identifier")

    async def search(request: Request, coll: AsyncIOMotorCollection, archived: bool) -> JSONResponse:
        query = parse_query(
            request.query_params,
            default_limit=settings.DEFAULT_PAGE_LIMIT,
            max_limit=settings.MAX_PAGE_LIMIT,
        )
        criteria = options.archived_criteria(query.criteria) if archived else options.live_criteria(query.criteria)
        sort = query.sort or (list(options.sort.items()) if options.sort else None)

        count = await coll.count_documents(criteria)
        cursor = coll.find(criteria, query.projection)
        if sort:
            cursor = cursor.sort(sort)
        if query.skip:
            cursor = cursor.skip(query.skip)
        if query.limit:
            cursor = cursor.limit(query.limit)
        documents = await cursor.to_list(length=query.limit or None)
        return JSONResponse(to_json_document({"count": count, results_field: documents}))

    async def find_or_404(coll: AsyncIOMotorCollection, criteria: Dict[str, Any]) -> Dict[str, Any]:
        document = await coll.find_one(criteria)
        if not document:
            raise NotFoundError()
        return document

    def managed_fields_from(stored: Dict[str, Any], document: Dict[str, Any]) -> Dict[str, Any]:
        """Drop client supplied lifecycle fields, keep the stored `added`."""

        replacement = {key: value for key, value in document.items() if key != identity}
        if options.no_managed_dates:
            return replacement
        for name in date_fields.names():
            replacement.pop(name, None)
        if date_fields.added in stored:
            replacement[date_fields.added] = stored[date_fields.added]
        replacement[date_fields.last_modified] = _utcnow()
        return replacement

    if options.allows("GET"):
        if options.archive_enabled:

            @router.get("/archive")
            async def search_archive(request: Request, coll: AsyncIOMotorCollection = Depends(get_collection)):
                """Search archived entries."""

                return await search(request, coll, archived=True)

            @router.get("/archive/{item_id}")
            async def get_archived_entry(
                item_id: str = item_id_param, coll: AsyncIOMotorCollection = Depends(get_collection)
            ):
                """Retrieve an archived entry."""

                document = await find_or_404(coll, options.archived_criteria({identity: ObjectId(item_id)}))
                return JSONResponse(to_json_document(document))

        if not options.no_get_search:

            @router.get("/")
            async def search_entries(request: Request, coll: AsyncIOMotorCollection = Depends(get_collection)):
                """Search live entries by query string criteria."""

                return await search(request, coll, archived=False)

        @router.get("/{item_id}")
        async def get_entry(item_id: str = item_id_param, coll: AsyncIOMotorCollection = Depends(get_collection)):
            """Retrieve a live entry."""

            document = await find_or_404(coll, options.live_criteria({identity: ObjectId(item_id)}))
            return JSONResponse(to_json_document(document))

    if options.allows("POST"):

        @router.post(
            "/",
            status_code=status.HTTP_201_CREATED,
            response_model=Union[InsertedResponse, BulkInsertedResponse],
        )
        async def create_entries(request: Request, coll: AsyncIOMotorCollection = Depends(get_collection)):
            """Store one entry, or many when a list is posted."""

            payload = await _read_json(request)
            is_bulk = isinstance(payload, list)
            if is_bulk and options.no_post_bulk:
                raise ValidationError([error_record("Expecting an object", keyword="type")])
            items = payload if is_bulk else [payload]
            for index, item in enumerate(items):
                if not isinstance(item, dict):
                    path = f"/{index}" if is_bulk else ""
                    raise ValidationError([error_record("Expecting an object", instance_path=path, keyword="type")])

            documents = gate.validate_many(payload)
            if not documents:
                raise ValidationError([error_record("Expecting at least one entry", keyword="minItems")])
            if not options.no_managed_dates:
                now = _utcnow()
                for document in documents:
                    document[date_fields.added] = now

            if is_bulk:
                result = await coll.insert_many(documents)
                return BulkInsertedResponse(inserted_ids=[str(value) for value in result.inserted_ids])

            result = await coll.insert_one(documents[0])
            return InsertedResponse(inserted_id=str(result.inserted_id))

    if options.allows("PUT"):

        @router.put("/{item_id}", response_model=ModifiedResponse)
        async def replace_entry(
            request: Request, item_id: str = item_id_param, coll: AsyncIOMotorCollection = Depends(get_collection)
        ):
            """Replace an entry wholesale."""

            payload = await _read_json(request)
            if not isinstance(payload, dict):
                raise ValidationError([error_record("Expecting an object", keyword="type")])
            gate.validate(payload, allow_managed_dates=True)

            criteria = options.live_criteria({identity: ObjectId(item_id)})
            stored = await find_or_404(coll, criteria)
            result = await coll.replace_one(criteria, managed_fields_from(stored, payload))
            if result.matched_count == 0:
                raise NotFoundError()
            return ModifiedResponse(modified_count=result.modified_count)

    if options.allows("PATCH"):

        @router.patch("/{item_id}", response_model=ModifiedResponse)
        async def patch_entry(
            request: Request, item_id: str = item_id_param, coll: AsyncIOMotorCollection = Depends(get_collection)
        ):
            """Update individual fields with a JSON Patch body or query parameters."""

            stored = await find_or_404(coll, options.live_criteria({identity: ObjectId(item_id)}))
            body = await request.body()
            patched = reconcile(stored, body, request.query_params, identity_field=identity)
            gate.validate(patched, allow_managed_dates=True)

            result = await coll.replace_one({identity: stored[identity]}, managed_fields_from(stored, patched))
            return ModifiedResponse(modified_count=result.matched_count)

    if options.allows("DELETE"):
        if options.archive_enabled:

            @router.delete("/archive/{item_id}", response_model=DeletedResponse)
            async def purge_entry(item_id: str = item_id_param, coll: AsyncIOMotorCollection = Depends(get_collection)):
                """Permanently remove an archived entry."""

                result = await coll.delete_one(options.archived_criteria({identity: ObjectId(item_id)}))
                logger.info("Purged %s/%s from the archive (%d removed)", collection, item_id, result.deleted_count)
                return DeletedResponse(deleted_count=result.deleted_count)

        @router.delete("/{item_id}", response_model=DeletedResponse)
        async def delete_entry(item_id: str = item_id_param, coll: AsyncIOMotorCollection = Depends(get_collection)):
            """Archive an entry, or remove it when archiving is disabled."""

            if not options.archive_enabled:
                result = await coll.delete_one({identity: ObjectId(item_id)})
                logger.info("Deleted %s/%s (%d removed)", collection, item_id, result.deleted_count)
                return DeletedResponse(deleted_count=result.deleted_count)

            result = await coll.update_one(
                options.live_criteria({identity: ObjectId(item_id)}),
                {"$set": {date_fields.deleted: _utcnow()}},
            )
            logger.info("Archived %s/%s (%d modified)", collection, item_id, result.modified_count)
            return DeletedResponse(deleted_count=result.modified_count)

    return router
