import pytest

from mongorest.core.exceptions import PathResolutionFailure
from mongorest.patching.pointer import Location, get, join_pointer, resolve, split_pointer


def test_resolve_returns_parent_container_and_key():
    doc = {"address": {"city": "Springfield"}}
    location = resolve(doc, "/address/city")
    assert location == Location(doc["address"], "city")
    assert location.container is doc["address"]


def test_resolve_accepts_paths_without_leading_slash():
    doc = {"address": {"city": "Springfield"}}
    assert resolve(doc, "address/city") == Location(doc["address"], "city")


def test_resolve_unescapes_segments():
    doc = {"a/b": {"m~n": 1}}
    location = resolve(doc, "/a~1b/m~0n")
    assert location.container is doc["a/b"]
    assert location.key == "m~n"


def test_split_pointer_decodes_tilde_before_slash():
    assert split_pointer("/~01") == ["~1"]
    assert join_pointer(["a/b", "m~n"]) == "/a~1b/m~0n"


def test_resolve_descends_through_lists():
    doc = {"tags": [{"name": "x"}, {"name": "y"}]}
    location = resolve(doc, "/tags/1/name")
    assert location.container is doc["tags"][1]
    assert location.key == "name"


def test_resolve_returns_integer_key_for_lists():
    doc = {"tags": ["a", "b"]}
    assert resolve(doc, "/tags/0") == Location(doc["tags"], 0)
    assert resolve(doc, "/tags/-") == Location(doc["tags"], 2)


def test_resolve_accepts_pre_split_segments():
    doc = {"a": {"b": [1, 2]}}
    assert resolve(doc, ["a", "b", 1]) == Location(doc["a"]["b"], 1)


@pytest.mark.parametrize(
    "path",
    [
        "/missing/child",
        "/name/first",
        "/tags/x",
        "/tags/9/name",
        "/tags/-1",
        "/tags/01",
        "/tags/²",
        "/tags/²/name",
        "",
    ],
)
def test_resolve_returns_none_for_unreachable_locations(path):
    doc = {"name": "Ross", "tags": [{"name": "x"}]}
    assert resolve(doc, path) is None


def test_resolve_rejects_scalar_root():
    assert resolve(42, "/a") is None


def test_get_reads_values_and_root():
    doc = {"a": [10, 20]}
    assert get(doc, "/a/1") == 20
    assert get(doc, "") is doc


def test_get_raises_for_missing_value():
    with pytest.raises(PathResolutionFailure):
        get({"a": [1]}, "/a/3")
    with pytest.raises(PathResolutionFailure):
        get({"a": {}}, "/a/b")
