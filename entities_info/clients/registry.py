"""Factories for content store and temp store instances."""

from __future__ import annotations

from ..config.settings import RuntimeConfig
from ..utils.errors import ContentStoreError
from .content_store import ContentStore
from .drush_store import DrushContentStore
from .snapshot_store import SnapshotContentStore
from .tempstore import KeyValueBackend, MemoryKeyValueBackend, PrivateTempStoreFactory


def build_content_store(config: RuntimeConfig) -> ContentStore:
    store_config = config.content_store
    if store_config.backend == "drush":
        return DrushContentStore(
            drush_command=store_config.drush_command,
            drupal_root=store_config.drupal_root or None,
            timeout_seconds=store_config.timeout_seconds,
        )
    if not store_config.snapshot_path:
        raise ContentStoreError("snapshot", "content_store.snapshot_path is not configured")
    return SnapshotContentStore(store_config.snapshot_path)


def build_tempstore_factory(config: RuntimeConfig) -> PrivateTempStoreFactory:
    tempstore_config = config.tempstore
    backend: KeyValueBackend
    if tempstore_config.backend == "firestore":
        # google-cloud-firestore is only needed by this backend.
        from .firestore import FirestoreKeyValueBackend

        backend = FirestoreKeyValueBackend()
    else:
        backend = MemoryKeyValueBackend()
    return PrivateTempStoreFactory(
        backend,
        collection_prefix=tempstore_config.collection_prefix,
        expire_seconds=tempstore_config.expire_seconds,
    )
