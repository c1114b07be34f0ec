import pytest

from reqtree import db, environment_store
from reqtree.errors import DuplicateName, NotFound
from reqtree.models import EnvironmentVariable


class TestEnvironmentStore:
    def test_empty(self, location, store):
        assert environment_store.get_environments(location, store) == []
        assert environment_store.get_active_environment(location, store) is None

    def test_create_and_list(self, location, store):
        dev = environment_store.create_environment(location, "dev", store)
        prod = environment_store.create_environment(location, "prod", store)
        assert [e.id for e in environment_store.get_environments(location, store)] == [dev.id, prod.id]

    def test_duplicate_name(self, location, store):
        environment_store.create_environment(location, "dev", store)
        with pytest.raises(DuplicateName):
            environment_store.create_environment(location, "dev", store)

    def test_update(self, location, store):
        dev = environment_store.create_environment(location, "dev", store)
        variables = [EnvironmentVariable(key="host", value="https://dev.test")]
        environment_store.update_environment(location, dev.id, "development", variables, store)
        stored = environment_store.get_environment(location, dev.id, store)
        assert stored.name == "development"
        assert stored.variables == variables

    def test_update_name_clash(self, location, store):
        dev = environment_store.create_environment(location, "dev", store)
        environment_store.create_environment(location, "prod", store)
        with pytest.raises(DuplicateName):
            environment_store.update_environment(location, dev.id, "prod", [], store)

    def test_update_unknown(self, location, store):
        with pytest.raises(NotFound):
            environment_store.update_environment(location, "missing", "x", [], store)

    def test_delete_clears_active(self, location, store):
        dev = environment_store.create_environment(location, "dev", store)
        environment_store.set_active_environment(location, dev.id, store)
        assert environment_store.delete_environment(location, dev.id, store) is True
        assert db.load_environments_config(location, store).active_environment_id is None
        assert environment_store.delete_environment(location, dev.id, store) is False

    def test_duplicate_environment_names(self, location, store):
        dev = environment_store.create_environment(location, "dev", store)
        environment_store.update_environment(
            location, dev.id, "dev", [EnvironmentVariable(key="a", value="1")], store
        )
        first = environment_store.duplicate_environment(location, dev.id, store)
        second = environment_store.duplicate_environment(location, dev.id, store)
        assert first.name == "dev Copy"
        assert second.name == "dev Copy 2"
        assert first.id != dev.id
        assert first.variables == [EnvironmentVariable(key="a", value="1")]

    def test_active_environment(self, location, store):
        dev = environment_store.create_environment(location, "dev", store)
        environment_store.set_active_environment(location, dev.id, store)
        assert environment_store.get_active_environment(location, store).id == dev.id
        environment_store.set_active_environment(location, None, store)
        assert environment_store.get_active_environment(location, store) is None

    def test_set_active_unknown(self, location, store):
        with pytest.raises(NotFound):
            environment_store.set_active_environment(location, "missing", store)

    def test_active_environment_reads_linked_file(self, location, store, tmp_path):
        env_file = tmp_path / "dev.env"
        env_file.write_text("HOST=https://file.test\nTOKEN=from-file\n", encoding="utf-8")
        dev = environment_store.create_environment(location, "dev", store)
        environment_store.update_environment(
            location, dev.id, "dev", [EnvironmentVariable(key="TOKEN", value="own")], store
        )
        environment_store.link_env_file(location, dev.id, str(env_file), store)
        environment_store.set_active_environment(location, dev.id, store)

        active = environment_store.get_active_environment(location, store)
        assert [(v.key, v.value) for v in active.variables] == [
            ("HOST", "https://file.test"),
            ("TOKEN", "from-file"),
            ("TOKEN", "own"),
        ]
        # file variables are never written back
        assert len(environment_store.get_environment(location, dev.id, store).variables) == 1

    def test_unlink(self, location, store, tmp_path):
        dev = environment_store.create_environment(location, "dev", store)
        environment_store.link_env_file(location, dev.id, str(tmp_path / ".env"), store)
        environment_store.unlink_env_file(location, dev.id, store)
        assert environment_store.get_environment(location, dev.id, store).env_file_path is None
