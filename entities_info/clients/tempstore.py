"""Per-user temporary storage used to hand data between requests.

A private temp store belongs to one owner: entries written by one owner are
invisible to every other owner, and entries older than the expiry read as
missing.
"""

from __future__ import annotations

import copy
import logging
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from ..config.settings import ONE_WEEK_SECONDS

logger = logging.getLogger(__name__)


class KeyValueBackend(ABC):
    """Raw storage of JSON-compatible entries, grouped by collection."""

    @abstractmethod
    def get(self, collection: str, key: str) -> Optional[Dict[str, Any]]:
        ...

    @abstractmethod
    def set(self, collection: str, key: str, entry: Dict[str, Any]) -> None:
        ...

    @abstractmethod
    def delete(self, collection: str, key: str) -> None:
        ...


class MemoryKeyValueBackend(KeyValueBackend):
    """Process-local backend for development and tests."""

    def __init__(self) -> None:
        self._entries: Dict[Tuple[str, str], Dict[str, Any]] = {}
        self._lock = threading.Lock()

    def get(self, collection: str, key: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            entry = self._entries.get((collection, key))
            return copy.deepcopy(entry) if entry is not None else None

    def set(self, collection: str, key: str, entry: Dict[str, Any]) -> None:
        with self._lock:
            self._entries[(collection, key)] = copy.deepcopy(entry)

    def delete(self, collection: str, key: str) -> None:
        with self._lock:
            self._entries.pop((collection, key), None)


@dataclass
class TempStoreMetadata:
    owner: str
    updated: float


class PrivateTempStore:
    """Temp store bound to a single collection and owner."""

    def __init__(
        self,
        backend: KeyValueBackend,
        collection: str,
        owner: str,
        expire_seconds: int = ONE_WEEK_SECONDS,
    ):
        self._backend = backend
        self.collection = collection
        self.owner = owner
        self._expire_seconds = expire_seconds

    def _storage_key(self, key: str) -> str:
        return f"{self.owner}:{key}"

    def _read(self, key: str) -> Optional[Dict[str, Any]]:
        entry = self._backend.get(self.collection, self._storage_key(key))
        if not entry or entry.get("owner") != self.owner:
            return None
        if time.time() - float(entry.get("updated", 0)) > self._expire_seconds:
            logger.debug("Temp store entry expired", extra={"collection": self.collection, "key": key})
            return None
        return entry

    def get(self, key: str) -> Any:
        entry = self._read(key)
        return entry.get("data") if entry else None

    def set(self, key: str, value: Any) -> None:
        self._backend.set(
            self.collection,
            self._storage_key(key),
            {"owner": self.owner, "data": value, "updated": time.time()},
        )

    def get_metadata(self, key: str) -> Optional[TempStoreMetadata]:
        entry = self._read(key)
        if not entry:
            return None
        return TempStoreMetadata(owner=entry["owner"], updated=float(entry["updated"]))

    def delete(self, key: str) -> bool:
        if self._read(key) is None:
            return False
        self._backend.delete(self.collection, self._storage_key(key))
        return True


class PrivateTempStoreFactory:
    """Hands out owner-bound temp stores sharing one backend."""

    def __init__(
        self,
        backend: KeyValueBackend,
        collection_prefix: str = "tempstore_private",
        expire_seconds: int = ONE_WEEK_SECONDS,
    ):
        self._backend = backend
        self._collection_prefix = collection_prefix
        self._expire_seconds = expire_seconds

    def get(self, collection: str, owner: str) -> PrivateTempStore:
        return PrivateTempStore(
            self._backend,
            f"{self._collection_prefix}_{collection}",
            owner,
            expire_seconds=self._expire_seconds,
        )
