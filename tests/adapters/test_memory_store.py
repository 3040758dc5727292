import pytest

from tracksync.adapters.destinations import InMemoryStore
from tracksync.common.exceptions import ApplyOperationError
from tracksync.sync import generate_record_id


def test_initial_records_are_keyed(memory_store, existing_shipments):
    assert len(memory_store) == 2
    record_id = generate_record_id(existing_shipments[0], ["tracking_code"])
    assert memory_store.get(record_id) == existing_shipments[0]
    assert memory_store.read_all() == existing_shipments


def test_returned_records_are_copies(memory_store):
    record = memory_store.read_all()[0]
    record["status"] = "changed"
    assert memory_store.read_all()[0]["status"] == "pending"


def test_insert_update_delete():
    store = InMemoryStore(key_fields=["order_number"])
    store.insert("1", {"order_number": "1"})
    store.update("1", {"order_number": "1", "status": "paid"})
    assert store.get("1") == {"order_number": "1", "status": "paid"}

    store.delete("1")
    assert store.get("1") is None
    assert "1" not in store


def test_invalid_operations_raise():
    store = InMemoryStore()
    store.insert("1", {})

    with pytest.raises(ApplyOperationError, match="already exists"):
        store.insert("1", {})
    with pytest.raises(ApplyOperationError, match="does not exist"):
        store.update("2", {})
    with pytest.raises(ApplyOperationError, match="does not exist"):
        store.delete("2")


def test_context_manager_tracks_connection():
    store = InMemoryStore()
    with store:
        assert store._connected
    assert not store._connected
    assert store.config["key_fields"] == ["tracking_code"]
