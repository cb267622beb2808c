"""Content store backed by a JSON or YAML snapshot of a site's content model.

Snapshot layout::

    {
      "entity_types": {"node": {"label": "Content", "bundle_entity_type": "node_type",
                                "entity_keys": {"id": "nid", "bundle": "type"},
                                "bundles": {"article": "Article"}}, ...},
      "fields": {"node": {"article": [{"name": "body", "type": "text_long", ...}]}},
      "entities": {"node": [{"nid": 1, "type": "article", "body": "..."}]}
    }
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from ..utils.errors import ContentStoreError
from .content_store import (
    IS_NOT_NULL,
    ContentStore,
    EntityQuery,
    EntityTypeDefinition,
    FieldDefinition,
)

logger = logging.getLogger(__name__)


def is_empty_value(value: Any) -> bool:
    """Stored values count as null when missing, None, or an empty item list."""
    if value is None:
        return True
    if isinstance(value, (list, tuple, dict)) and not value:
        return True
    return False


def _matches(record: Dict[str, Any], field_name: str, value: Any, operator: str) -> bool:
    current = record.get(field_name)
    if operator == IS_NOT_NULL:
        return not is_empty_value(current)
    if isinstance(current, list):
        return any(str(item) == str(value) for item in current)
    return current is not None and str(current) == str(value)


class SnapshotEntityQuery(EntityQuery):
    def __init__(self, entity_type_id: str, records: List[Dict[str, Any]], id_key: Optional[str]):
        super().__init__(entity_type_id)
        self._records = records
        self._id_key = id_key

    def execute(self) -> Union[int, List[str]]:
        matched = [
            record
            for record in self._records
            if all(_matches(record, c.field, c.value, c.operator) for c in self.conditions)
        ]
        if self.is_count:
            return len(matched)
        if not self._id_key:
            return [str(index) for index, _ in enumerate(matched)]
        return [str(record.get(self._id_key)) for record in matched]


class SnapshotContentStore(ContentStore):
    """Caches the snapshot file and answers definition and count lookups from it."""

    name = "snapshot"

    def __init__(self, path: Optional[Union[str, Path]] = None):
        self._path = Path(path) if path else None
        self._cache: Optional[Dict[str, Any]] = None
        self._definitions: Dict[str, EntityTypeDefinition] = {}
        self._mtime: Optional[float] = None

    @classmethod
    def from_data(cls, data: Dict[str, Any]) -> "SnapshotContentStore":
        """Build a store from an in-memory snapshot with no file behind it."""
        store = cls()
        store._install(data)
        return store

    @property
    def path(self) -> Optional[Path]:
        return self._path

    def load(self) -> Dict[str, Any]:
        if self._path is None:
            return self._cache or {}
        if not self._path.exists():
            raise ContentStoreError(self.name, f"Snapshot file not found at {self._path}")
        mtime = self._path.stat().st_mtime
        if self._cache is None or mtime != self._mtime:
            try:
                with self._path.open("r", encoding="utf-8") as handle:
                    if self._path.suffix in (".yaml", ".yml"):
                        data = yaml.safe_load(handle) or {}
                    else:
                        data = json.load(handle)
            except (OSError, ValueError, yaml.YAMLError) as exc:
                raise ContentStoreError(self.name, f"Unable to read {self._path}: {exc}") from exc
            self._install(data)
            self._mtime = mtime
            logger.info(
                "Loaded content snapshot",
                extra={"path": str(self._path), "entity_types": len(self._definitions)},
            )
        return self._cache or {}

    def _install(self, data: Dict[str, Any]) -> None:
        self._cache = data
        self._definitions = {
            entity_type_id: EntityTypeDefinition.from_dict(entity_type_id, definition or {})
            for entity_type_id, definition in (data.get("entity_types") or {}).items()
        }

    def get_definitions(self) -> Dict[str, EntityTypeDefinition]:
        self.load()
        return self._definitions

    def get_field_definitions(self, entity_type_id: str, bundle: str) -> Dict[str, FieldDefinition]:
        self.ensure_bundle(entity_type_id, bundle)
        data = self.load()
        raw_fields = ((data.get("fields") or {}).get(entity_type_id) or {}).get(bundle) or []
        fields: Dict[str, FieldDefinition] = {}
        for raw in raw_fields:
            definition = FieldDefinition.from_dict(entity_type_id, bundle, raw)
            fields[definition.name] = definition
        return fields

    def get_query(self, entity_type_id: str) -> SnapshotEntityQuery:
        definition = self.get_definition(entity_type_id)
        records = (self.load().get("entities") or {}).get(entity_type_id) or []
        return SnapshotEntityQuery(entity_type_id, records, definition.entity_keys.get("id"))
