"""Tests for the JSON file store."""

import json

import pytest
from storage.exceptions import StoreCorruptedError
from storage.model.items import ItemStack
from storage.model.locations import Processor, StorageLocation
from storage.model.serialization import dump_system
from storage.model.system import StorageSystem
from storage.persistence import SystemStore


@pytest.fixture()
def path(tmp_path):
    return tmp_path / "warehouse.json"


class TestLoad:
    def test_missing_file_starts_empty(self, path):
        assert SystemStore(path).load() == []
        assert json.loads(path.read_text()) == []

    def test_round_trip(self, path, cobblestone):
        system = StorageSystem(
            name="main",
            storage=[StorageLocation(id="chest_0", items=[ItemStack(item=cobblestone, count=3), None])],
        )
        store = SystemStore(path)
        store.save([system, StorageSystem(name="other")])
        assert store.load() == [system, StorageSystem(name="other")]

    def test_save_leaves_no_scratch_file(self, path):
        SystemStore(path).save([StorageSystem(name="main")])
        assert [entry.name for entry in path.parent.iterdir()] == ["warehouse.json"]


class TestCorruption:
    def test_invalid_json(self, path):
        path.write_text("{ not json")
        with pytest.raises(StoreCorruptedError) as exc:
            SystemStore(path).load()
        assert "Database file is invalid" in str(exc.value)

    def test_top_level_must_be_a_list(self, path):
        path.write_text('{"name": "main"}')
        with pytest.raises(StoreCorruptedError):
            SystemStore(path).load()

    def test_bad_record(self, path):
        path.write_text('[{"name": "main", "storage": []}]')
        with pytest.raises(StoreCorruptedError) as exc:
            SystemStore(path).load()
        assert "processors" in str(exc.value)

    def test_unknown_key(self, path):
        record = {**dump_system(StorageSystem(name="main")), "bogus": 1}
        path.write_text(json.dumps([record]))
        with pytest.raises(StoreCorruptedError) as exc:
            SystemStore(path).load()
        assert "bogus" in str(exc.value)

    def test_duplicate_system_name(self, path):
        record = dump_system(StorageSystem(name="main"))
        path.write_text(json.dumps([record, record]))
        with pytest.raises(StoreCorruptedError):
            SystemStore(path).load()

    def test_location_registered_twice(self, path):
        system = StorageSystem(
            name="main",
            storage=[StorageLocation(id="chest_0")],
            processors=[
                Processor(
                    process="smelting",
                    input_buffer=StorageLocation(id="chest_0"),
                    output_buffer=StorageLocation(id="out"),
                )
            ],
        )
        path.write_text(json.dumps([dump_system(system)]))
        with pytest.raises(StoreCorruptedError):
            SystemStore(path).load()
