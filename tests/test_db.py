import json
import os

import pytest

from reqtree import db
from reqtree.models import CollectionsConfig, EnvironmentsConfig


def _write(location, name, content):
    os.makedirs(location, exist_ok=True)
    with open(os.path.join(location, name), "w", encoding="utf-8") as f:
        f.write(content)


class TestLoadFallbacks:
    def test_missing_documents(self, location, store):
        assert db.load_collections_config(location, store) == CollectionsConfig(version="1.0.0", collections=[])
        assert db.load_environments_config(location, store) == EnvironmentsConfig(version="1.0.0", environments=[])

    def test_invalid_json(self, location, store, caplog):
        _write(location, "collections.json", "{not json")
        with caplog.at_level("WARNING"):
            config = db.load_collections_config(location, store)
        assert config.collections == []
        assert "collections.json" in caplog.text

    def test_wrong_shape_keeps_version(self, location, store):
        _write(location, "collections.json", json.dumps({"version": "2.0.0", "collections": {"oops": 1}}))
        config = db.load_collections_config(location, store)
        assert config.version == "2.0.0"
        assert config.collections == []

    def test_non_object_root(self, location, store):
        _write(location, "environments.json", "[]")
        assert db.load_environments_config(location, store).environments == []

    def test_duplicate_ids_are_malformed(self, location, store):
        node = {"id": "x", "name": "a", "type": "collection", "createdAt": "t", "updatedAt": "t", "children": []}
        twin = dict(node, name="b")
        _write(location, "collections.json", json.dumps({"version": "1.0.0", "collections": [node, twin]}))
        assert db.load_collections_config(location, store).collections == []

    def test_request_node_without_request_is_malformed(self, location, store):
        node = {"id": "x", "name": "a", "type": "request", "createdAt": "t", "updatedAt": "t"}
        _write(location, "collections.json", json.dumps({"collections": [node]}))
        assert db.load_collections_config(location, store).collections == []

    def test_wrong_shape_keeps_active_environment(self, location, store):
        _write(location, "environments.json", json.dumps({"environments": "oops", "activeEnvironmentId": "e1"}))
        config = db.load_environments_config(location, store)
        assert config.environments == []
        assert config.active_environment_id == "e1"
        assert config.version == "1.0.0"

    def test_directory_in_place_of_document(self, location, store):
        os.makedirs(os.path.join(location, "collections.json"))
        assert db.load_collections_config(location, store) == CollectionsConfig()


class TestFileStore:
    def test_write_creates_directory(self, tmp_path):
        location = str(tmp_path / "nested" / "dir")
        db.FileDocumentStore().write(location, "doc.json", "{}")
        assert open(os.path.join(location, "doc.json"), encoding="utf-8").read() == "{}"
        assert os.listdir(location) == ["doc.json"]

    def test_saved_file_is_indented(self, location, store):
        db.save_environments_config(location, EnvironmentsConfig(), store)
        with open(os.path.join(location, "environments.json"), encoding="utf-8") as f:
            text = f.read()
        assert text.startswith('{\n  "version": "1.0.0"')


class TestMongoStore:
    def test_read_write(self, fake_mongo):
        store = db.MongoDocumentStore(fake_mongo)
        assert store.read("ws", "collections.json") is None
        store.write("ws", "collections.json", "{}")
        store.write("ws", "collections.json", '{"version": "1.0.0"}')
        assert store.read("ws", "collections.json") == '{"version": "1.0.0"}'
        assert list(fake_mongo.docs) == ["ws/collections.json"]

    def test_environments_config(self, fake_mongo):
        store = db.MongoDocumentStore(fake_mongo)
        config = EnvironmentsConfig(active_environment_id="e1")
        db.save_environments_config("ws", config, store)
        assert db.load_environments_config("ws", store) == config

    def test_non_text_record_falls_back(self, fake_mongo):
        fake_mongo.docs["ws/collections.json"] = {"_id": "ws/collections.json", "data": {"version": "1.0.0"}}
        store = db.MongoDocumentStore(fake_mongo)
        assert db.load_collections_config("ws", store) == CollectionsConfig()


class TestStoreSelection:
    @pytest.fixture(autouse=True)
    def no_dotenv(self, monkeypatch):
        monkeypatch.setattr("reqtree.config.load_dotenv", lambda: None)

    def test_file_by_default(self, monkeypatch):
        monkeypatch.delenv("REQTREE_STORAGE", raising=False)
        assert isinstance(db.get_store(), db.FileDocumentStore)

    def test_mongo_selected(self, monkeypatch):
        monkeypatch.setenv("REQTREE_STORAGE", "mongo")
        assert isinstance(db.get_store(), db.MongoDocumentStore)

    def test_default_location(self, monkeypatch, tmp_path):
        monkeypatch.setenv("REQTREE_DATA_DIR", str(tmp_path))
        assert db.default_location(None) == str(tmp_path)
        assert db.default_location("elsewhere") == "elsewhere"
