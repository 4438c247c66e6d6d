"""Durable client storage."""

import json

from portal.storage import ClientStorage


def test_values_survive_a_new_instance(tmp_path):
    path = tmp_path / "storage.json"
    ClientStorage(str(path)).set_many({"user": "{}", "token": "abc"})

    reopened = ClientStorage(str(path))
    assert reopened.get("token") == "abc"
    assert reopened.get("user") == "{}"


def test_remove_deletes_several_keys(storage):
    storage.set_many({"user": "{}", "token": "abc", "notifications": "[]"})
    storage.remove("user", "token", "missing")

    assert storage.get("user") is None
    assert storage.get("token") is None
    assert storage.get("notifications") == "[]"


def test_corrupt_file_reads_as_empty(tmp_path):
    path = tmp_path / "storage.json"
    path.write_text("{not json", encoding="utf-8")

    storage = ClientStorage(str(path))
    assert storage.get("token") is None

    storage.set("token", "fresh")
    assert json.loads(path.read_text(encoding="utf-8")) == {"token": "fresh"}


def test_non_object_document_is_ignored(tmp_path):
    path = tmp_path / "storage.json"
    path.write_text("[1, 2, 3]", encoding="utf-8")
    assert ClientStorage(str(path)).get("0") is None


def test_json_helpers(storage):
    storage.set_json("notifications", [{"id": "n1"}])
    assert storage.get_json("notifications") == [{"id": "n1"}]
    assert storage.get_json("absent") is None
