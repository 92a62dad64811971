"""
Tests for the JSON credential store.
"""
import json
import os
import stat

import pytest

from toons_library.credential_store import CredentialRecord, CredentialStore
from toons_library.error_handler import NotFoundError, SerializationError


def test_missing_file_is_empty_store(tmp_path):
    store = CredentialStore.load(tmp_path / "absent.json")
    assert len(store) == 0
    assert store.records() == []


def test_round_trip(populated_store):
    reloaded = CredentialStore.load(populated_store.path)
    assert reloaded.records() == populated_store.records()


def test_file_format_matches_legacy_layout(populated_store):
    with open(populated_store.path, "r", encoding="utf-8") as f:
        raw = json.load(f)
    assert raw["January"] == {
        "name": "January",
        "id": 9001,
        "refresh_token": "rt-january",
        "scopes": "esi-skills.read_skills.v1",
    }


def test_loads_file_written_by_hand(tmp_path):
    path = tmp_path / "toons.json"
    path.write_text(
        json.dumps(
            {"Alpha": {"name": "Alpha", "id": 1, "refresh_token": "abc", "scopes": "s"}}
        ),
        encoding="utf-8",
    )
    store = CredentialStore.load(path)
    assert store.get("Alpha") == CredentialRecord("Alpha", 1, "abc", "s")


@pytest.mark.skipif(os.name == "nt", reason="POSIX permissions only")
def test_saved_file_is_owner_only(populated_store):
    mode = stat.S_IMODE(os.stat(populated_store.path).st_mode)
    assert mode == 0o600


def test_upsert_replaces_existing_record(populated_store):
    updated = CredentialRecord("January", 9001, "rt-new", "scope-b")
    assert populated_store.upsert(updated) is True
    populated_store.save()

    reloaded = CredentialStore.load(populated_store.path)
    assert reloaded.get("January").refresh_token == "rt-new"
    assert len(reloaded) == 3


def test_upsert_new_record(tmp_path):
    store = CredentialStore(tmp_path / "toons.json")
    assert store.upsert(CredentialRecord("New", 5, "rt")) is False
    assert "New" in store


@pytest.mark.parametrize(
    "content",
    [
        "{not json",
        "[]",
        json.dumps({"A": {"name": "A", "refresh_token": "x"}}),
        json.dumps({"A": {"name": "A", "id": "12", "refresh_token": "x"}}),
        json.dumps({"A": "just a string"}),
    ],
)
def test_corrupt_file_raises_serialization_error(tmp_path, content):
    path = tmp_path / "toons.json"
    path.write_text(content, encoding="utf-8")
    with pytest.raises(SerializationError):
        CredentialStore.load(path)


class TestFindByName:
    def test_exact_match(self, populated_store):
        assert populated_store.find_by_name("January").character_id == 9001

    def test_prefix_fallback(self, populated_store):
        assert populated_store.find_by_name("Jan").name == "January"

    def test_exact_match_wins_over_prefix(self, tmp_path):
        store = CredentialStore(tmp_path / "toons.json")
        store.upsert(CredentialRecord("Jan", 1, "a"))
        store.upsert(CredentialRecord("January", 2, "b"))
        assert store.find_by_name("Jan").character_id == 1

    def test_ambiguous_prefix_picks_first_alphabetically(self, populated_store):
        assert populated_store.find_by_name("Farmer").name == "Farmer One"

    def test_no_match(self, populated_store):
        assert populated_store.find_by_name("Zed") is None

    def test_require_raises_not_found(self, populated_store):
        with pytest.raises(NotFoundError) as excinfo:
            populated_store.require("Zed")
        assert "No Character 'Zed' found" in str(excinfo.value)


def test_records_are_sorted_by_name(populated_store):
    assert populated_store.names() == ["Farmer One", "Farmer Two", "January"]


def test_record_repr_hides_refresh_token():
    assert "secret-token" not in repr(CredentialRecord("A", 1, "secret-token"))
