"""Unit tests for the private temp store and its backends."""

from unittest.mock import MagicMock, Mock

import pytest

from entities_info.clients import tempstore as tempstore_module
from entities_info.clients.firestore import FirestoreKeyValueBackend
from entities_info.clients.tempstore import (
    MemoryKeyValueBackend,
    PrivateTempStore,
    PrivateTempStoreFactory,
)
from entities_info.utils.errors import TempStoreError


def test_factory_prefixes_collection():
    factory = PrivateTempStoreFactory(MemoryKeyValueBackend(), collection_prefix="tempstore_private")

    store = factory.get("entities_info_export", "user-1")

    assert store.collection == "tempstore_private_entities_info_export"
    assert store.owner == "user-1"


def test_owners_do_not_share_entries():
    factory = PrivateTempStoreFactory(MemoryKeyValueBackend())
    factory.get("export", "user-1").set("values", ["a-ei-node"])

    assert factory.get("export", "user-2").get("values") is None
    assert factory.get("export", "user-1").get("values") == ["a-ei-node"]


def test_metadata_and_delete():
    store = PrivateTempStoreFactory(MemoryKeyValueBackend()).get("export", "user-1")
    assert store.get_metadata("values") is None

    store.set("values", [])
    metadata = store.get_metadata("values")

    assert metadata.owner == "user-1"
    assert store.delete("values") is True
    assert store.delete("values") is False


def test_entries_expire(monkeypatch):
    now = [1000.0]
    monkeypatch.setattr(tempstore_module.time, "time", lambda: now[0])
    store = PrivateTempStore(MemoryKeyValueBackend(), "export", "user-1", expire_seconds=60)
    store.set("values", ["a-ei-node"])

    now[0] += 59
    assert store.get("values") == ["a-ei-node"]

    now[0] += 2
    assert store.get("values") is None


def test_memory_backend_copies_entries():
    store = PrivateTempStoreFactory(MemoryKeyValueBackend()).get("export", "user-1")
    values = ["a-ei-node"]
    store.set("values", values)
    values.append("b-ei-node")

    store.get("values").append("c-ei-node")

    assert store.get("values") == ["a-ei-node"]


def test_entry_with_foreign_owner_is_ignored():
    backend = MemoryKeyValueBackend()
    backend.set("export", "user-1:values", {"owner": "someone-else", "data": ["x"], "updated": 0})

    store = PrivateTempStore(backend, "export", "user-1", expire_seconds=10**12)

    assert store.get("values") is None


def _firestore_client(doc_snapshot):
    client = MagicMock()
    doc_ref = client.collection.return_value.document.return_value
    doc_ref.get.return_value = doc_snapshot
    return client, doc_ref


def test_firestore_backend_reads_document():
    snapshot = Mock(exists=True)
    snapshot.to_dict.return_value = {"owner": "user-1", "data": ["a-ei-node"], "updated": 1.0}
    client, _ = _firestore_client(snapshot)
    backend = FirestoreKeyValueBackend(client=client)

    entry = backend.get("tempstore_private_export", "user-1:values")

    assert entry["data"] == ["a-ei-node"]
    client.collection.assert_called_with("tempstore_private_export")
    client.collection.return_value.document.assert_called_with("user-1:values")


def test_firestore_backend_missing_document():
    client, _ = _firestore_client(Mock(exists=False))

    assert FirestoreKeyValueBackend(client=client).get("c", "k") is None


def test_firestore_backend_writes_and_deletes():
    client, doc_ref = _firestore_client(Mock(exists=False))
    backend = FirestoreKeyValueBackend(client=client)

    backend.set("c", "k", {"owner": "o", "data": 1, "updated": 2.0})
    backend.delete("c", "k")

    doc_ref.set.assert_called_once_with({"owner": "o", "data": 1, "updated": 2.0})
    doc_ref.delete.assert_called_once()


def test_firestore_backend_wraps_errors():
    client, doc_ref = _firestore_client(Mock(exists=False))
    doc_ref.set.side_effect = Exception("permission denied")

    with pytest.raises(TempStoreError):
        FirestoreKeyValueBackend(client=client).set("c", "k", {})


def test_private_store_over_firestore_backend():
    stored = {}
    client = MagicMock()

    def document(key):
        doc_ref = MagicMock()
        doc_ref.set.side_effect = lambda entry: stored.__setitem__(key, entry)
        doc_ref.get.side_effect = lambda: Mock(exists=key in stored, to_dict=lambda: stored.get(key))
        return doc_ref

    client.collection.return_value.document.side_effect = document
    factory = PrivateTempStoreFactory(FirestoreKeyValueBackend(client=client))

    factory.get("entities_info_export", "uid-1").set("values", ["article-ei-node_type"])

    assert "uid-1:values" in stored
    assert factory.get("entities_info_export", "uid-1").get("values") == ["article-ei-node_type"]
