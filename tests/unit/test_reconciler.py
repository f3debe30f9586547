import copy
import json

import pytest
from bson import ObjectId

from mongorest.core.exceptions import PatchSyntaxError, ValidationError
from mongorest.patching.reconciler import identity_changed, is_empty_body, reconcile

READ_ONLY_ERROR = {
    "keyword": "",
    "instancePath": "/_id",
    "schemaPath": "",
    "params": {},
    "message": "The _id field is read only.",
}


@pytest.fixture
def original():
    return {"_id": ObjectId(), "name": "Rachel", "age": 29, "address": {"city": "New York"}}


@pytest.mark.parametrize("body", [None, b"", b"  \n", "", {}, b"{}", " { } "])
def test_empty_body_uses_query_parameters(original, body):
    result = reconcile(original, body, {"name": "Phoebe"})
    assert result["name"] == "Phoebe"
    assert result["_id"] == original["_id"]


def test_body_uses_json_patch(original):
    body = json.dumps([{"op": "replace", "path": "/address/city", "value": "Paris"}]).encode()
    result = reconcile(original, body, {"name": "ignored"})
    assert result["address"]["city"] == "Paris"
    assert result["name"] == "Rachel"


def test_query_parameters_cannot_change_identity(original):
    snapshot = copy.deepcopy(original)
    with pytest.raises(ValidationError) as excinfo:
        reconcile(original, b"", {"_id": "change-the-id"})
    assert excinfo.value.errors == [READ_ONLY_ERROR]
    assert original == snapshot


@pytest.mark.parametrize(
    "operation",
    [
        {"op": "replace", "path": "/_id", "value": "0123456789abcdef01234567"},
        {"op": "remove", "path": "/_id"},
        {"op": "move", "from": "/_id", "path": "/legacy_id"},
        {"op": "replace", "path": "", "value": {"name": "root"}},
    ],
)
def test_json_patch_cannot_change_identity(original, operation):
    snapshot = copy.deepcopy(original)
    with pytest.raises(ValidationError) as excinfo:
        reconcile(original, json.dumps([operation]))
    assert excinfo.value.errors == [READ_ONLY_ERROR]
    assert original == snapshot


def test_identity_compares_by_string_form(original):
    body = json.dumps([{"op": "replace", "path": "/_id", "value": str(original["_id"])}])
    result = reconcile(original, body)
    assert str(result["_id"]) == str(original["_id"])


def test_patch_errors_propagate(original):
    with pytest.raises(PatchSyntaxError):
        reconcile(original, b"not json")


def test_custom_identity_field():
    original = {"key": "abc", "value": 1}
    with pytest.raises(ValidationError) as excinfo:
        reconcile(original, None, {"key": "xyz"}, identity_field="key")
    assert excinfo.value.errors[0]["instancePath"] == "/key"
    assert excinfo.value.errors[0]["message"] == "The key field is read only."


def test_helpers():
    assert is_empty_body(None)
    assert not is_empty_body(b"[]")
    assert identity_changed({"_id": 1}, {"name": "x"})
    assert not identity_changed({"_id": 1}, {"_id": "1"})
