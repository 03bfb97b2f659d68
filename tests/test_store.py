"""Tests for ItemStore list operations."""

from __future__ import annotations

import os
import uuid

import pytest

from sbedit.codec import decode, encode
from sbedit.errors import BookmarkError, PathError, StructureError
from sbedit.models import (
    BOOKMARK_KEY,
    CUSTOM_PROPERTIES_KEY,
    FORCE_TEMPLATE_ICONS,
    ITEM_IS_HIDDEN,
    Item,
)
from sbedit.store import ItemStore, normalize_path
from sbedit.values import tree_equal


def _token(path: str) -> bytes:
    return f"fake:{path}".encode()


# ---------------------------------------------------------------------------
# normalize_path
# ---------------------------------------------------------------------------


def test_normalize_expands_home(monkeypatch, tmp_path):
    monkeypatch.setenv("HOME", str(tmp_path))
    assert normalize_path("~/Projects") == str(tmp_path / "Projects")


def test_normalize_makes_relative_paths_absolute(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    assert normalize_path("docs/../src") == os.path.join(os.getcwd(), "src")


def test_normalize_collapses_dots_and_trailing_slash():
    assert normalize_path("/data/./a/b/../c/") == "/data/a/c"


@pytest.mark.parametrize("bad", ["", "bad\x00path"])
def test_normalize_rejects_invalid_paths(bad):
    with pytest.raises(PathError):
        normalize_path(bad)


# ---------------------------------------------------------------------------
# add
# ---------------------------------------------------------------------------


def test_add_appends_item(store, archive):
    item = store.add("/data/projects")
    assert item.location_token == _token("/data/projects")
    assert item.visibility == 0
    assert archive["items"] == [item.to_dict()]
    assert archive["items"][0][BOOKMARK_KEY] == _token("/data/projects")


def test_add_mints_uppercase_uuid(store):
    item = store.add("/data/projects")
    assert item.unique_id == item.unique_id.upper()
    assert uuid.UUID(item.unique_id)


def test_add_gives_fresh_ids(store):
    first = store.add("/data/a")
    second = store.add("/data/b")
    assert first.unique_id != second.unique_id


def test_add_sets_custom_properties(store, archive):
    item = store.add("/Users/me/Documents")
    assert item.custom_properties is not None
    assert item.custom_properties[ITEM_IS_HIDDEN] == 1
    assert CUSTOM_PROPERTIES_KEY in archive["items"][0]


def test_add_desktop_has_no_custom_properties(store, archive):
    item = store.add("/Users/me/Desktop")
    assert item.custom_properties is None
    assert CUSTOM_PROPERTIES_KEY not in archive["items"][0]


@pytest.mark.parametrize("path", ["/Users/me/Desktop2", "/Users/me/My Desktop", "/Users/Desktop/sub"])
def test_add_only_exact_desktop_name_is_bare(store, path):
    assert store.add(path).custom_properties is not None


def test_add_duplicate_is_rejected(store, archive):
    store.add("/data/a")
    with pytest.raises(PathError, match="already exists"):
        store.add("/data/a")
    assert len(archive["items"]) == 1


def test_add_duplicate_after_normalization(store, archive):
    store.add("/data/a")
    with pytest.raises(PathError):
        store.add("/data/x/../a/")
    assert len(archive["items"]) == 1


def test_add_duplicate_of_stale_item(store, locator, archive):
    store.add("/data/a")
    locator.stale.add("/data/a")
    with pytest.raises(PathError):
        store.add("/data/a")
    assert len(archive["items"]) == 1


def test_add_bookmark_failure_leaves_archive_untouched(store, locator, archive):
    locator.missing.add("/data/gone")
    with pytest.raises(BookmarkError):
        store.add("/data/gone")
    assert archive["items"] == []


def test_add_bad_path(store, archive):
    with pytest.raises(PathError):
        store.add("")
    assert archive["items"] == []


def test_add_without_items_array(locator):
    store = ItemStore({"properties": {}}, locator)
    with pytest.raises(StructureError, match="items"):
        store.add("/data/a")


def test_add_resolves_every_stored_token(store, locator):
    for name in "abc":
        store.add(f"/data/{name}")
    locator.decoded = 0
    store.add("/data/d")
    assert locator.decoded == 3


# ---------------------------------------------------------------------------
# add_many
# ---------------------------------------------------------------------------


def test_add_many_continues_after_failure(store, locator):
    locator.missing.add("/data/gone")
    result = store.add_many(["/data/a", "/data/gone", "/data/b", "/data/a"])
    assert [path for path, _item in result.added] == ["/data/a", "/data/b"]
    assert [type(exc) for _path, exc in result.failures] == [BookmarkError, PathError]
    assert [path for path, _out in result.outcomes] == ["/data/a", "/data/gone", "/data/b", "/data/a"]
    assert result.ok
    assert list(store.paths()) == ["/data/a", "/data/b"]


def test_add_many_all_failed(store, locator, archive):
    locator.missing.update({"/data/x", "/data/y"})
    result = store.add_many(["/data/x", "/data/y"])
    assert not result.ok
    assert result.added == []
    assert len(result.failures) == 2
    assert archive["items"] == []


def test_add_many_reports_repeated_failures_separately(store, locator):
    locator.missing.add("/data/gone")
    result = store.add_many(["/data/gone", "/data/ok", "/data/gone"])
    assert [path for path, _out in result.outcomes] == ["/data/gone", "/data/ok", "/data/gone"]
    assert len(result.failures) == 2
    assert [path for path, _item in result.added] == ["/data/ok"]


# ---------------------------------------------------------------------------
# list / entries
# ---------------------------------------------------------------------------


def test_order_is_preserved(store):
    for path in ("/data/A", "/data/B", "/data/C"):
        store.add(path)
    assert list(store.tokens()) == [_token("/data/A"), _token("/data/B"), _token("/data/C")]
    assert list(store.paths()) == ["/data/A", "/data/B", "/data/C"]

    assert store.remove("/data/B")
    assert list(store.paths()) == ["/data/A", "/data/C"]


def test_malformed_entries_are_skipped(locator):
    archive = {
        "items": [
            "not a dict",
            {"uuid": "NO-BOOKMARK"},
            {"uuid": "TEXT-BOOKMARK", "Bookmark": "fake:/data/text"},
            {"uuid": "GOOD", "Bookmark": _token("/data/good"), "visibility": 0},
        ],
    }
    store = ItemStore(archive, locator)
    assert [i.unique_id for i in store.items()] == ["GOOD"]
    assert list(store.tokens()) == [_token("/data/good")]
    assert list(store.paths()) == ["/data/good"]


def test_undecodable_tokens_are_skipped(locator):
    archive = {
        "items": [
            {"uuid": "BAD", "Bookmark": b"\x00garbage"},
            {"uuid": "GOOD", "Bookmark": _token("/data/good")},
        ],
    }
    store = ItemStore(archive, locator)
    assert len(list(store.tokens())) == 2
    assert [e.item.unique_id for e in store.entries()] == ["GOOD"]


def test_entries_report_stale(store, locator):
    store.add("/data/a")
    store.add("/data/b")
    locator.stale.add("/data/b")
    assert [(e.path, e.stale) for e in store.entries()] == [("/data/a", False), ("/data/b", True)]


# ---------------------------------------------------------------------------
# remove / clear
# ---------------------------------------------------------------------------


def test_remove_missing_path_is_not_an_error(store, archive):
    store.add("/data/a")
    before = list(archive["items"])
    assert store.remove("/data/nope") is False
    assert archive["items"] == before


def test_remove_normalizes_path(store):
    store.add("/data/a")
    assert store.remove("/data/b/../a/")
    assert list(store.paths()) == []


def test_remove_takes_only_the_first_duplicate(locator):
    archive = {
        "items": [
            Item("FIRST", _token("/data/a")).to_dict(),
            Item("OTHER", _token("/data/b")).to_dict(),
            Item("SECOND", _token("/data/a")).to_dict(),
        ],
    }
    store = ItemStore(archive, locator)
    assert store.remove("/data/a")
    assert [i.unique_id for i in store.items()] == ["OTHER", "SECOND"]


def test_remove_bad_path(store):
    with pytest.raises(PathError):
        store.remove("")


def test_clear_keeps_properties(store, archive):
    store.add("/data/a")
    store.add("/data/b")
    store.clear()
    assert archive["items"] == []
    assert archive["properties"] == {FORCE_TEMPLATE_ICONS: True}


def test_clear_without_items_array(locator):
    archive = {"properties": {"x": 1}}
    ItemStore(archive, locator).clear()
    assert archive == {"properties": {"x": 1}, "items": []}


def test_store_rejects_non_map_root(locator):
    with pytest.raises(StructureError):
        ItemStore([], locator)


# ---------------------------------------------------------------------------
# Through the codec
# ---------------------------------------------------------------------------


def test_mutations_survive_encode(store, archive, locator):
    archive["properties"]["extra"] = {"nested": [1, b"\x02"]}
    store.add("/data/a")
    store.add("/Users/me/Desktop")

    decoded = decode(encode(archive))
    assert tree_equal(decoded["properties"], archive["properties"])
    reopened = ItemStore(decoded, locator)
    assert list(reopened.paths()) == ["/data/a", "/Users/me/Desktop"]
    assert [i.custom_properties is None for i in reopened.items()] == [False, True]
