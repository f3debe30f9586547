import copy
from collections import defaultdict
from types import SimpleNamespace
from typing import Any, Dict, List, Optional

import pytest
from bson import ObjectId
from fastapi import FastAPI
from fastapi.testclient import TestClient

from mongorest.api.main import install_error_handlers
from mongorest.api.router import build_collection_router
from mongorest.core.database import DatabaseManager
from mongorest.models.options import CollectionOptions

_MISSING = object()


def _matches_condition(value: Any, condition: Any) -> bool:
    if isinstance(condition, dict) and condition and all(key.startswith("$") for key in condition):
        for operator, operand in condition.items():
            if operator == "$exists":
                if (value is not _MISSING) != bool(operand):
                    return False
            elif operator == "$in":
                if value is _MISSING or value not in operand:
                    return False
            elif operator == "$nin":
                if value is not _MISSING and value in operand:
                    return False
            elif operator == "$ne":
                if value == operand:
                    return False
            else:
                raise NotImplementedError(operator)
        return True
    return value is not _MISSING and value == condition


def matches(document: Dict[str, Any], criteria: Optional[Dict[str, Any]]) -> bool:
    return all(_matches_condition(document.get(key, _MISSING), cond) for key, cond in (criteria or {}).items())


class FakeCursor:
    def __init__(self, documents: List[Dict[str, Any]], projection: Optional[Dict[str, int]] = None) -> None:
        self._documents = documents
        self._projection = projection
        self._skip = 0
        self._limit = 0

    def sort(self, keys):
        for key, direction in reversed(keys):
            self._documents.sort(key=lambda doc: doc.get(key), reverse=direction < 0)
        return self

    def skip(self, count: int):
        self._skip = count
        return self

    def limit(self, count: int):
        self._limit = count
        return self

    def _project(self, document: Dict[str, Any]) -> Dict[str, Any]:
        if not self._projection:
            return document
        if any(self._projection.values()):
            keep = {key for key, flag in self._projection.items() if flag} | {"_id"}
            return {key: value for key, value in document.items() if key in keep}
        return {key: value for key, value in document.items() if key not in self._projection}

    async def to_list(self, length: Optional[int] = None):
        documents = self._documents[self._skip :]
        if self._limit:
            documents = documents[: self._limit]
        if length:
            documents = documents[:length]
        return [self._project(doc) for doc in documents]


class FakeCollection:
    """In-memory stand-in for the subset of AsyncIOMotorCollection in use."""

    def __init__(self) -> None:
        self.documents: List[Dict[str, Any]] = []

    def _index_of(self, criteria: Dict[str, Any]) -> Optional[int]:
        for index, document in enumerate(self.documents):
            if matches(document, criteria):
                return index
        return None

    async def find_one(self, criteria=None):
        index = self._index_of(criteria or {})
        return None if index is None else copy.deepcopy(self.documents[index])

    def find(self, criteria=None, projection=None):
        found = [copy.deepcopy(doc) for doc in self.documents if matches(doc, criteria)]
        return FakeCursor(found, projection)

    async def count_documents(self, criteria):
        return sum(1 for doc in self.documents if matches(doc, criteria))

    async def insert_one(self, document):
        document.setdefault("_id", ObjectId())
        self.documents.append(copy.deepcopy(document))
        return SimpleNamespace(inserted_id=document["_id"])

    async def insert_many(self, documents):
        ids = []
        for document in documents:
            result = await self.insert_one(document)
            ids.append(result.inserted_id)
        return SimpleNamespace(inserted_ids=ids)

    async def replace_one(self, criteria, replacement):
        index = self._index_of(criteria)
        if index is None:
            return SimpleNamespace(matched_count=0, modified_count=0)
        current = self.documents[index]
        updated = {"_id": current["_id"], **copy.deepcopy(replacement)}
        self.documents[index] = updated
        return SimpleNamespace(matched_count=1, modified_count=int(updated != current))

    async def update_one(self, criteria, update):
        index = self._index_of(criteria)
        if index is None:
            return SimpleNamespace(matched_count=0, modified_count=0)
        self.documents[index].update(copy.deepcopy(update["$set"]))
        return SimpleNamespace(matched_count=1, modified_count=1)

    async def delete_one(self, criteria):
        index = self._index_of(criteria)
        if index is None:
            return SimpleNamespace(deleted_count=0)
        del self.documents[index]
        return SimpleNamespace(deleted_count=1)


PERSON_SCHEMA = {
    "type": "object",
    "properties": {
        "name": {"type": "string"},
        "age": {"type": "integer", "minimum": 0},
        "address": {
            "type": "object",
            "properties": {"city": {"type": "string"}},
        },
        "tags": {"type": "array", "items": {"type": "string"}},
    },
    "required": ["name"],
    "additionalProperties": False,
}


@pytest.fixture
def person_schema():
    return copy.deepcopy(PERSON_SCHEMA)


@pytest.fixture
def fake_db():
    return defaultdict(FakeCollection)


@pytest.fixture
def make_client(fake_db, person_schema):
    def _make(options: Optional[CollectionOptions] = None) -> TestClient:
        app = FastAPI()
        install_error_handlers(app, DatabaseManager())
        router = build_collection_router("people", person_schema, options, database=lambda: fake_db)
        app.include_router(router, prefix="/people")
        return TestClient(app)

    return _make


@pytest.fixture
def client(make_client):
    return make_client()


@pytest.fixture
def people(fake_db):
    return fake_db["people"]
