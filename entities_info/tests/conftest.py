"""Pytest configuration and shared fixtures."""

from pathlib import Path

import pytest

from entities_info.clients.snapshot_store import SnapshotContentStore
from entities_info.clients.tempstore import MemoryKeyValueBackend, PrivateTempStoreFactory
from entities_info.config.settings import ReportConfig
from entities_info.services.entities_info_manager import EntitiesInfoManager
from entities_info.services.selection import SelectionService


@pytest.fixture
def fixtures_dir() -> Path:
    """Return path to test fixtures directory."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def snapshot_path(fixtures_dir: Path) -> Path:
    return fixtures_dir / "content_snapshot.json"


@pytest.fixture
def content_store(snapshot_path: Path) -> SnapshotContentStore:
    """Snapshot-backed store over the sample site (articles, pages, terms, users)."""
    return SnapshotContentStore(snapshot_path)


@pytest.fixture
def tempstore_factory() -> PrivateTempStoreFactory:
    return PrivateTempStoreFactory(MemoryKeyValueBackend())


@pytest.fixture
def manager(content_store, tempstore_factory) -> EntitiesInfoManager:
    return EntitiesInfoManager(content_store, tempstore_factory, ReportConfig())


@pytest.fixture
def selection_service(manager) -> SelectionService:
    return SelectionService(manager)
